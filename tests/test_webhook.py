"""
Webhook do Mercado Pago: localização da inscrição pelas quatro estratégias,
mapeamento de status, entregas repetidas e trava otimista.
"""
import json
import logging
from decimal import Decimal

import pytest
from django.core import mail

from inscricoes.models import Inscricao, InscricaoStatus
from pagamentos import conciliacao
from pagamentos.detalhes import DetalhesPagamento

from .conftest import CPF_1, CPF_2

URL = "/api/payments/webhook"


def _notificar(client, payment_id, tipo="payment"):
    return client.post(URL, json.dumps({"type": tipo, "data": {"id": str(payment_id)}}), content_type="application/json")


def test_get_responde_que_esta_ativo(client):
    resp = client.get(URL)
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "message": "Webhook endpoint is active"}


@pytest.mark.django_db
def test_tipo_diferente_de_payment_so_confirma_recebimento(client, mp):
    resp = _notificar(client, 1, tipo="merchant_order")
    assert resp.status_code == 200
    assert resp.json() == {"received": True}
    assert mp.chamadas == []


@pytest.mark.django_db
def test_sem_payment_id_e_json_invalido(client, mp):
    resp = client.post(URL, json.dumps({"type": "payment", "data": {}}), content_type="application/json")
    assert resp.status_code == 400
    assert resp.json()["error"] == "Payment ID missing"

    resp = client.post(URL, "{nao-e-json", content_type="application/json")
    assert resp.status_code == 400


@pytest.mark.django_db
def test_mercado_pago_nao_configurado(client):
    resp = _notificar(client, 1)
    assert resp.status_code == 200
    assert resp.json()["received"] is True


@pytest.mark.django_db
def test_aprovado_pela_preferencia_confirma_e_envia_email(client, mp, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1, payment_id="pref-1", preference_id="pref-1")
    mp.adicionar_pagamento(555, status="approved", status_detail="accredited",
                           preference_id="pref-1", transaction_amount=100.0, payment_method_id="pix")

    resp = _notificar(client, 555)

    assert resp.status_code == 200
    assert resp.json() == {"received": True, "status": "CONFIRMED", "registrationId": str(insc.pk)}
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.CONFIRMED
    assert insc.payment_id == "555"
    assert insc.payment_error is None
    assert insc.versao == 1
    detalhes = DetalhesPagamento.de_json(insc.payment_details)
    assert detalhes.status_provider == "approved"
    assert detalhes.provider["payment_method"] == "pix"
    assert detalhes.transaction_amount == Decimal("100.0")
    assert len(mail.outbox) == 1
    assert mail.outbox[0].to == ["maria@exemplo.com"]


@pytest.mark.django_db
def test_entrega_repetida_acha_pelo_payment_id_e_nao_reenvia_email(client, mp, evento, criar_inscricao):
    criar_inscricao(evento, CPF_1, payment_id="pref-1", preference_id="pref-1")
    mp.adicionar_pagamento(555, status="approved", preference_id="pref-1")

    assert _notificar(client, 555).status_code == 200
    assert _notificar(client, 555).status_code == 200

    insc = Inscricao.objects.get(cpf=CPF_1)
    assert insc.status == InscricaoStatus.CONFIRMED
    assert insc.versao == 2
    assert len(mail.outbox) == 1


@pytest.mark.django_db
def test_localiza_pela_merchant_order(client, mp, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1, payment_id="order-9")
    mp.adicionar_pagamento(556, status="approved", order={"id": "order-9"})

    resp = _notificar(client, 556)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.payment_id == "556"
    assert insc.merchant_order_id == "order-9"


@pytest.mark.django_db
def test_localiza_pendente_pelo_external_reference(client, mp, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1, payment_id="pref-antiga", external_reference="event_a_cpf_b_1")
    mp.adicionar_pagamento(557, status="approved", preference_id="pref-nova", external_reference="event_a_cpf_b_1")

    resp = _notificar(client, 557)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.CONFIRMED


@pytest.mark.django_db
def test_localiza_pendente_pelos_ids_no_payment_details(client, mp, evento, criar_inscricao):
    detalhes = DetalhesPagamento()
    detalhes.registrar_checkout({"method": "pix", "base_value": 100, "fee_amount": 0, "final_value": 100}, "pref-x", None)
    insc = criar_inscricao(evento, CPF_1, payment_id="outro", payment_details=detalhes.para_json())
    mp.adicionar_pagamento(558, status="approved", metadata={"preference_id": "pref-x"})

    resp = _notificar(client, 558)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.CONFIRMED


@pytest.mark.django_db
def test_varredura_ignora_inscricoes_que_nao_estao_pendentes(client, mp, evento, criar_inscricao):
    cancelada = criar_inscricao(evento, CPF_1, payment_id="x", preference_id="pref-y", status=InscricaoStatus.CANCELLED)
    outra = criar_inscricao(evento, CPF_2, payment_id="pref-z", preference_id="pref-z")
    mp.adicionar_pagamento(559, status="approved", preference_id="pref-y")

    resp = _notificar(client, 559)

    assert resp.status_code == 404
    assert resp.json()["error"] == "Registration not found"
    assert "pref-y" in resp.json()["candidates"]
    for insc, status, payment_id in ((cancelada, InscricaoStatus.CANCELLED, "x"),
                                     (outra, InscricaoStatus.PENDING, "pref-z")):
        insc.refresh_from_db()
        assert insc.status == status
        assert insc.payment_id == payment_id
        assert insc.versao == 0
    assert len(mail.outbox) == 0


@pytest.mark.django_db
def test_pagamento_inexistente_no_mercado_pago(client, mp):
    resp = _notificar(client, 999)
    assert resp.status_code == 404
    assert resp.json()["error"] == "Payment not found"


@pytest.mark.django_db
@pytest.mark.parametrize("status_mp,status_esperado,prefixo_erro", [
    ("rejected", InscricaoStatus.PAYMENT_FAILED, "Pagamento rejeitado: cc_rejected_other_reason"),
    ("cancelled", InscricaoStatus.CANCELLED, "Pagamento cancelado: cc_rejected_other_reason"),
    ("in_process", InscricaoStatus.PENDING, None),
])
def test_mapeamento_de_status(client, mp, evento, criar_inscricao, status_mp, status_esperado, prefixo_erro):
    insc = criar_inscricao(evento, CPF_2, payment_id="pref-2")
    mp.adicionar_pagamento(600, status=status_mp, status_detail="cc_rejected_other_reason", preference_id="pref-2")

    resp = _notificar(client, 600)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.status == status_esperado
    assert insc.payment_error == prefixo_erro
    assert len(mail.outbox) == 0


@pytest.mark.django_db
def test_status_desconhecido_fica_pendente_com_aviso(client, mp, evento, criar_inscricao, caplog, monkeypatch):
    # o logger "pagamentos" não propaga para a raiz (ver LOGGING)
    monkeypatch.setattr(logging.getLogger("pagamentos"), "propagate", True)
    insc = criar_inscricao(evento, CPF_2, payment_id="pref-2")
    mp.adicionar_pagamento(601, status="weird_status", preference_id="pref-2")

    with caplog.at_level(logging.WARNING, logger="pagamentos.conciliacao"):
        resp = _notificar(client, 601)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.PENDING
    assert insc.payment_error is None
    assert any("weird_status" in r.getMessage() for r in caplog.records if r.levelno == logging.WARNING)


@pytest.mark.django_db
def test_regressao_de_status_final_e_aplicada(client, mp, evento, criar_inscricao):
    insc = criar_inscricao(evento, CPF_1, payment_id="700", status=InscricaoStatus.CONFIRMED)
    mp.adicionar_pagamento(700, status="cancelled", status_detail="by_collector")

    resp = _notificar(client, 700)

    assert resp.status_code == 200
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.CANCELLED


@pytest.mark.django_db
def test_conflito_de_versao_retorna_409(client, mp, evento, criar_inscricao, monkeypatch):
    insc = criar_inscricao(evento, CPF_1, payment_id="pref-1")
    mp.adicionar_pagamento(555, status="approved", preference_id="pref-1")

    original = conciliacao.localizar_inscricao

    def _localizar_e_concorrer(candidatos):
        achada = original(candidatos)
        # outra entrega grava antes desta
        Inscricao.objects.filter(pk=achada.pk).update(versao=achada.versao + 1)
        return achada

    monkeypatch.setattr("pagamentos.views.localizar_inscricao", _localizar_e_concorrer)

    resp = _notificar(client, 555)

    assert resp.status_code == 409
    insc.refresh_from_db()
    assert insc.status == InscricaoStatus.PENDING


def test_ids_candidatos():
    ids = conciliacao.ids_candidatos("1", {
        "id": 1, "metadata": {"preference_id": "pref"}, "order": {"id": 9}, "external_reference": "",
    })
    assert ids == {"payment_id": "1", "preference_id": "pref", "order_id": "9", "external_reference": None}
