"""Mesa de check-in: busca, registro e desfazer."""
import json
from datetime import timedelta

import pytest
from django.utils import timezone

from inscricoes.models import InscricaoStatus

from .conftest import CPF_1, CPF_2, CPF_3


def _buscar(client, termo):
    return client.post("/api/checkin/search", json.dumps({"query": termo}), content_type="application/json")


@pytest.mark.django_db
def test_busca_so_confirmadas_ordenando_por_checkin(cliente_admin, evento, criar_inscricao):
    agora = timezone.now()
    criar_inscricao(evento, CPF_1, nome="Maria Antiga", status=InscricaoStatus.CONFIRMED,
                    checked_in_at=agora - timedelta(hours=2))
    criar_inscricao(evento, CPF_2, nome="Maria Recente", status=InscricaoStatus.CONFIRMED, checked_in_at=agora)
    criar_inscricao(evento, CPF_3, nome="Maria Pendente")

    corpo = _buscar(cliente_admin, "maria").json()["data"]

    assert corpo["total"] == 2
    assert [i["name"] for i in corpo["items"]] == ["Maria Recente", "Maria Antiga"]


@pytest.mark.django_db
def test_busca_por_cpf_com_pelo_menos_tres_digitos(cliente_admin, evento, criar_inscricao):
    criar_inscricao(evento, CPF_1, status=InscricaoStatus.CONFIRMED)

    assert _buscar(cliente_admin, "529.982").json()["data"]["total"] == 1
    assert _buscar(cliente_admin, "52").json()["data"]["total"] == 0
    assert _buscar(cliente_admin, "").status_code == 400


@pytest.mark.django_db
def test_checkin_e_desfazer(cliente_admin, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1, status=InscricaoStatus.CONFIRMED)
    url = f"/api/checkin/{insc.pk}"

    resp = cliente_admin.post(url)
    assert resp.status_code == 200
    assert resp.json()["message"] == "Check-in realizado com sucesso"
    insc.refresh_from_db()
    assert insc.checked_in_at is not None

    de_novo = cliente_admin.post(url)
    assert de_novo.status_code == 400
    assert de_novo.json()["error"] == "Check-in já foi realizado para esta inscrição"

    resp = cliente_admin.delete(url)
    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.checked_in_at is None

    assert cliente_admin.delete(url).json()["error"] == "Não há check-in para desfazer"


@pytest.mark.django_db
def test_checkin_de_inscricao_nao_confirmada(cliente_admin, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1)

    resp = cliente_admin.post(f"/api/checkin/{insc.pk}")

    assert resp.status_code == 400
    assert resp.json()["error"] == "Apenas inscrições confirmadas podem fazer check-in"


@pytest.mark.django_db
def test_checkin_inexistente_e_sem_login(client, cliente_admin):
    assert cliente_admin.post("/api/checkin/00000000-0000-0000-0000-000000000000").status_code == 404
    cliente_admin.logout()
    assert client.post("/api/checkin/00000000-0000-0000-0000-000000000000").status_code == 401
