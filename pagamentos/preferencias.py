# pagamentos/preferencias.py
"""Montagem das preferências de checkout (Checkout Pro) do Mercado Pago."""
import logging
import time
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.utils import timezone

from inscricoes.utils.phones import telefone_para_mp

from .mercadopago_client import atualizar_preferencia, criar_preferencia

logger = logging.getLogger(__name__)


def _site() -> str:
    return (getattr(settings, "SITE_URL", "") or "").rstrip("/")


def gerar_external_reference(evento_id, cpf: str) -> str:
    return f"event_{evento_id}_cpf_{cpf}_{int(time.time() * 1000)}"


def tipos_excluidos(metodo: Optional[str]) -> list:
    if metodo == "pix":
        return [{"id": "credit_card"}, {"id": "debit_card"}, {"id": "ticket"}]
    if metodo in ("credit_card", "debit_card"):
        return [{"id": "ticket"}]
    return []


def _expiracao() -> dict:
    agora = timezone.localtime()
    fim = agora + timedelta(minutes=getattr(settings, "PREFERENCIA_EXPIRACAO_MINUTOS", 30))
    return {
        "expires": True,
        "expiration_date_from": agora.isoformat(timespec="milliseconds"),
        "expiration_date_to": fim.isoformat(timespec="milliseconds"),
    }


def montar_preferencia(evento, participante: dict, external_reference: str,
                       opcao: Optional[dict] = None, inscricao_id=None) -> dict:
    """
    ``participante`` usa as chaves do payload público (name, email, cpf, phone),
    já normalizadas. ``opcao`` é a PaymentOption escolhida; sem ela cobra o preço do evento.
    """
    site = _site()
    sucesso = f"{site}/payment/success"

    titulo = evento.titulo
    descricao = evento.descricao
    preco = evento.preco
    if opcao is not None:
        preco = opcao["final_value"]
        if opcao.get("passthrough_fee"):
            titulo = f"{evento.titulo} - {opcao['description']}"
            descricao = f"{evento.descricao} | Taxa de serviço: R$ {opcao['fee_amount']:.2f}"

    dados = {
        "items": [{
            "id": str(evento.pk),
            "title": titulo,
            "description": descricao,
            "quantity": 1,
            "unit_price": float(preco),
            "currency_id": "BRL",
        }],
        "payer": {
            "name": participante["name"],
            "email": participante["email"],
            "identification": {"type": "CPF", "number": participante["cpf"]},
            "phone": telefone_para_mp(participante["phone"]),
        },
        "back_urls": {
            "success": sucesso,
            "failure": f"{site}/payment/failure",
            "pending": f"{site}/payment/pending",
        },
        "notification_url": f"{site}/api/payments/webhook",
        "external_reference": external_reference,
        "statement_descriptor": evento.titulo[:13].upper(),
        "metadata": {
            "event_id": str(evento.pk),
            "registration_id": str(inscricao_id) if inscricao_id else None,
            "participant_name": participante["name"],
            "participant_email": participante["email"],
            "participant_cpf": participante["cpf"],
            "participant_phone": participante["phone"],
        },
        **_expiracao(),
    }

    # Só adiciona auto_return se o success for HTTPS (exigência do MP)
    if sucesso.startswith("https://"):
        dados["auto_return"] = "approved"

    if opcao is not None:
        metodo = opcao["method"]
        parcelas = opcao.get("installments") or 1
        dados["binary_mode"] = metodo != "pix"
        dados["payment_methods"] = {
            "excluded_payment_types": tipos_excluidos(metodo),
            "excluded_payment_methods": [],
            "installments": parcelas,
            "default_installments": parcelas,
        }
        dados["metadata"].update({
            "payment_method": metodo,
            "installments": parcelas,
            "base_value": float(opcao["base_value"]),
            "fee_amount": float(opcao["fee_amount"]),
            "final_value": float(opcao["final_value"]),
        })

    return dados


def criar_preferencia_checkout(sdk, evento, participante: dict, opcao: Optional[dict] = None,
                               inscricao_id=None) -> tuple:
    """Retorna (resposta do MP, external_reference usado)."""
    ref = gerar_external_reference(evento.pk, participante["cpf"])
    dados = montar_preferencia(evento, participante, ref, opcao=opcao, inscricao_id=inscricao_id)
    resp = criar_preferencia(sdk, dados)
    logger.info("Preferência %s criada para o evento %s (ref=%s)", resp.get("id"), evento.pk, ref)
    return resp, ref


def atualizar_preferencia_checkout(sdk, inscricao, opcao: dict) -> tuple:
    participante = {
        "name": inscricao.nome,
        "email": inscricao.email,
        "cpf": inscricao.cpf,
        "phone": inscricao.telefone,
    }
    ref = gerar_external_reference(inscricao.evento_id, inscricao.cpf)
    dados = montar_preferencia(inscricao.evento, participante, ref, opcao=opcao, inscricao_id=inscricao.pk)
    dados["metadata"]["is_update"] = True
    resp = atualizar_preferencia(sdk, inscricao.payment_id, dados)
    logger.info(
        "Preferência da inscrição %s atualizada: %s → %s (%s, %sx, R$ %s)",
        inscricao.pk, inscricao.payment_id, resp.get("id"),
        opcao["method"], opcao.get("installments") or 1, opcao["final_value"],
    )
    return resp, ref
