"""API de eventos: listagem pública, CRUD do painel e métodos de pagamento."""
import json
from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from inscricoes.models import Evento, InscricaoStatus

from .conftest import CPF_1, CPF_2


def _payload_evento(**extra):
    agora = timezone.now()
    dados = {
        "title": "Acampamento de Carnaval",
        "description": "Quatro dias de retiro durante o carnaval.",
        "slug": "acampamento-carnaval",
        "location": "Sítio Santa Rita, Palmas",
        "startDate": (agora + timedelta(days=30)).isoformat(),
        "endDate": (agora + timedelta(days=34)).isoformat(),
        "registrationStartDate": agora.isoformat(),
        "registrationEndDate": (agora + timedelta(days=29)).isoformat(),
        "maxParticipants": 120,
        "price": "180.00",
    }
    dados.update(extra)
    return dados


@pytest.mark.django_db
def test_listagem_publica_com_filtros(client, criar_evento):
    agora = timezone.now()
    criar_evento(titulo="Futuro")
    criar_evento(titulo="Passado", data_inicio=agora - timedelta(days=3), fim_inscricoes=agora - timedelta(days=4),
                 inicio_inscricoes=agora - timedelta(days=20))
    criar_evento(titulo="Inativo", ativo=False)

    tudo = client.get("/api/events").json()["data"]
    assert tudo["pagination"]["total"] == 3
    assert tudo["pagination"]["totalPages"] == 1

    ativos = client.get("/api/events", {"active": "true"}).json()["data"]["items"]
    assert [e["title"] for e in ativos] == ["Futuro"]

    inativos = client.get("/api/events", {"active": "false"}).json()["data"]["items"]
    assert [e["title"] for e in inativos] == ["Inativo"]

    abertos = client.get("/api/events", {"upcoming": "true"}).json()["data"]["items"]
    assert [e["title"] for e in abertos] == ["Futuro"]


@pytest.mark.django_db
def test_paginacao(client, criar_evento):
    for i in range(3):
        criar_evento(titulo=f"Evento {i}")

    pagina = client.get("/api/events", {"page": 2, "limit": 2}).json()["data"]

    assert len(pagina["items"]) == 1
    assert pagina["pagination"] == {
        "page": 2, "limit": 2, "total": 3, "totalPages": 2, "hasNext": False, "hasPrev": True,
    }


@pytest.mark.django_db
def test_evento_ativo_mais_proximo(client, criar_evento):
    agora = timezone.now()
    criar_evento(titulo="Depois", data_inicio=agora + timedelta(days=40))
    criar_evento(titulo="Antes", data_inicio=agora + timedelta(days=10))

    itens = client.get("/api/events/active").json()["data"]["items"]
    assert [e["title"] for e in itens] == ["Antes"]


@pytest.mark.django_db
def test_detalhe_por_id_ou_slug_com_stats(client, evento, criar_inscricao):
    criar_inscricao(evento, CPF_1, status=InscricaoStatus.CONFIRMED)
    criar_inscricao(evento, CPF_2)

    por_slug = client.get(f"/api/events/{evento.slug}").json()["data"]
    assert por_slug["id"] == str(evento.pk)
    assert por_slug["price"] == 100.0
    assert "stats" not in por_slug

    com_stats = client.get(f"/api/events/{evento.pk}", {"includeStats": "true"}).json()["data"]
    assert com_stats["stats"] == {
        "totalRegistrations": 2,
        "confirmedRegistrations": 1,
        "availableSpots": 49,
        "isRegistrationOpen": True,
    }

    assert client.get("/api/events/nao-existe").status_code == 404


@pytest.mark.django_db
def test_criar_evento_exige_admin(client):
    resp = client.post("/api/events", json.dumps(_payload_evento()), content_type="application/json")
    assert resp.status_code == 401


@pytest.mark.django_db
def test_crud_de_evento(cliente_admin):
    resp = cliente_admin.post("/api/events", json.dumps(_payload_evento()), content_type="application/json")
    assert resp.status_code == 201
    evento_id = resp.json()["data"]["id"]

    repetido = cliente_admin.post("/api/events", json.dumps(_payload_evento()), content_type="application/json")
    assert repetido.status_code == 409

    resp = cliente_admin.put(
        f"/api/events/{evento_id}", json.dumps({"price": "200.00", "isActive": False}), content_type="application/json"
    )
    assert resp.status_code == 200
    ev = Evento.objects.get(pk=evento_id)
    assert ev.preco == Decimal("200.00")
    assert ev.ativo is False
    assert ev.titulo == "Acampamento de Carnaval"

    assert cliente_admin.delete(f"/api/events/{evento_id}").status_code == 200
    assert not Evento.objects.exists()


@pytest.mark.django_db
def test_validacao_de_datas_e_payment_config(cliente_admin):
    agora = timezone.now()
    resp = cliente_admin.post("/api/events", json.dumps(_payload_evento(
        endDate=agora.isoformat(),
        paymentConfig={"methods": {"pix": {"enabled": True}}},
    )), content_type="application/json")

    assert resp.status_code == 400
    detalhes = resp.json()["details"]
    assert "endDate" in detalhes
    assert "paymentConfig" in detalhes


@pytest.mark.django_db
def test_update_parcial_respeita_datas_salvas(cliente_admin, evento):
    resp = cliente_admin.put(
        f"/api/events/{evento.pk}",
        json.dumps({"registrationEndDate": (evento.data_inicio + timedelta(days=1)).isoformat()}),
        content_type="application/json",
    )
    assert resp.status_code == 400


@pytest.mark.django_db
def test_nao_deleta_evento_com_inscricoes(cliente_admin, evento, criar_inscricao):
    criar_inscricao(evento, CPF_1)

    resp = cliente_admin.delete(f"/api/events/{evento.pk}")

    assert resp.status_code == 409
    assert Evento.objects.filter(pk=evento.pk).exists()


@pytest.mark.django_db
def test_metodos_de_pagamento(client, criar_evento):
    ev = criar_evento(payment_config={
        "methods": {
            "pix": {"enabled": True, "passthrough_fee": False},
            "credit_card": {"enabled": True, "max_installments": 3, "passthrough_fee": True},
            "debit_card": {"enabled": False, "passthrough_fee": False},
        },
    })

    dados = client.get(f"/api/events/{ev.pk}/payment-methods").json()["data"]
    assert len(dados["available_methods"]) == 4
    assert dados["base_value"] == 100.0

    ok = client.post(f"/api/events/{ev.pk}/payment-methods", json.dumps({"method": "credit_card", "installments": 2}),
                     content_type="application/json")
    assert ok.status_code == 200
    assert ok.json()["data"]["finalValue"] == 105.99

    nao = client.post(f"/api/events/{ev.pk}/payment-methods", json.dumps({"method": "debit_card"}),
                      content_type="application/json")
    assert nao.status_code == 400


@pytest.mark.django_db
def test_metodos_de_pagamento_evento_encerrado(client, criar_evento):
    ev = criar_evento(fim_inscricoes=timezone.now() - timedelta(minutes=1))
    assert client.get(f"/api/events/{ev.pk}/payment-methods").status_code == 400
