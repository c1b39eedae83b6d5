# pagamentos/mercadopago_client.py
import logging

import mercadopago
from django.conf import settings
from mercadopago.config import RequestOptions

logger = logging.getLogger(__name__)


class MercadoPagoNaoConfigurado(RuntimeError):
    pass


class ErroMercadoPago(RuntimeError):
    """Resposta do SDK fora da faixa 2xx (ou sem corpo)."""

    def __init__(self, mensagem, status=None, resposta=None):
        super().__init__(mensagem)
        self.status = status
        self.resposta = resposta


def mp_configurado() -> bool:
    return bool((getattr(settings, "MERCADO_PAGO_ACCESS_TOKEN", "") or "").strip())


def mp_client():
    token = (getattr(settings, "MERCADO_PAGO_ACCESS_TOKEN", "") or "").strip()
    if not token:
        raise MercadoPagoNaoConfigurado("Mercado Pago não está configurado.")
    opcoes = RequestOptions(connection_timeout=getattr(settings, "MERCADO_PAGO_TIMEOUT", 5))
    return mercadopago.SDK(token, request_options=opcoes)


def resposta_ou_erro(resultado, contexto: str) -> dict:
    """
    O SDK devolve ``{"status": <http>, "response": {...}}`` sem levantar
    exceção em erro HTTP; aqui o erro vira ``ErroMercadoPago``.
    """
    resultado = resultado or {}
    status = resultado.get("status")
    resp = resultado.get("response") or {}
    if not isinstance(status, int) or not 200 <= status < 300 or not resp:
        logger.error("MP %s falhou: status=%s resposta=%r", contexto, status, resp)
        msg = resp.get("message") if isinstance(resp, dict) else None
        raise ErroMercadoPago(msg or f"Falha ao {contexto} no Mercado Pago", status=status, resposta=resp)
    return resp


def buscar_pagamento(sdk, payment_id) -> dict:
    return resposta_ou_erro(sdk.payment().get(payment_id), "consultar pagamento")


def criar_preferencia(sdk, dados: dict) -> dict:
    return resposta_ou_erro(sdk.preference().create(dados), "criar preferência")


def atualizar_preferencia(sdk, preference_id: str, dados: dict) -> dict:
    return resposta_ou_erro(sdk.preference().update(preference_id, dados), "atualizar preferência")
