# pagamentos/conciliacao.py
"""
Conciliação das notificações de pagamento do Mercado Pago com as inscrições.

O Mercado Pago notifica o id do *pagamento*, mas a inscrição nasce guardando
o id da *preferência*. A busca tenta, em ordem:

1. id do pagamento contra ``Inscricao.payment_id`` (notificação repetida);
2. id da preferência contra ``payment_id`` (primeira notificação);
3. id da ordem (merchant order) contra ``payment_id``;
4. entre as inscrições PENDING, qualquer candidato contra as colunas
   ``preference_id``/``merchant_order_id``/``external_reference`` ou contra
   os ids gravados em ``payment_details``. Contorno de integração: preferências
   atualizadas ou checkouts antigos podem não ter deixado o id em ``payment_id``.
"""
import logging
from typing import List, Optional, Tuple

from django.db.models import F, Q
from django.utils import timezone

from inscricoes.models import Inscricao, InscricaoStatus, STATUS_TERMINAIS
from inscricoes.notificacoes import enviar_confirmacao_inscricao

from .detalhes import DetalhesPagamento

logger = logging.getLogger(__name__)

# quantas inscrições pendentes (mais recentes) olhar dentro de payment_details
LIMITE_VARREDURA_PENDENTES = 500


class ConflitoConcorrencia(Exception):
    """Outra entrega do webhook alterou a inscrição entre a leitura e a escrita."""


def mapear_status(status_mp: Optional[str], detalhe: Optional[str]) -> Tuple[str, Optional[str]]:
    """Status do Mercado Pago → (status da inscrição, mensagem de erro)."""
    if status_mp == "approved":
        return InscricaoStatus.CONFIRMED, None
    if status_mp == "rejected":
        return InscricaoStatus.PAYMENT_FAILED, f"Pagamento rejeitado: {detalhe or 'Motivo não especificado'}"
    if status_mp == "cancelled":
        return InscricaoStatus.CANCELLED, f"Pagamento cancelado: {detalhe or 'Cancelado pelo usuário'}"
    if status_mp not in ("pending", "in_process", "in_mediation"):
        logger.warning("Status desconhecido do Mercado Pago: %r", status_mp)
    return InscricaoStatus.PENDING, None


def _texto(valor) -> Optional[str]:
    if valor is None or valor == "":
        return None
    return str(valor)


def ids_candidatos(payment_id, pagamento: dict) -> dict:
    metadata = pagamento.get("metadata") or {}
    ordem = pagamento.get("order") or {}
    return {
        "payment_id": _texto(pagamento.get("id")) or _texto(payment_id),
        "preference_id": _texto(pagamento.get("preference_id")) or _texto(metadata.get("preference_id")),
        "order_id": _texto(ordem.get("id")) if isinstance(ordem, dict) else None,
        "external_reference": _texto(pagamento.get("external_reference")),
    }


def _buscar_pendente(ids: List[str]) -> Optional[Inscricao]:
    pendentes = Inscricao.objects.filter(status=InscricaoStatus.PENDING)

    achada = (
        pendentes.filter(
            Q(preference_id__in=ids) | Q(merchant_order_id__in=ids) | Q(external_reference__in=ids)
        )
        .order_by("-criado_em")
        .first()
    )
    if achada:
        return achada

    alvo = set(ids)
    for insc in pendentes.exclude(payment_details__isnull=True).order_by("-criado_em")[:LIMITE_VARREDURA_PENDENTES]:
        if DetalhesPagamento.de_json(insc.payment_details).identificadores() & alvo:
            return insc
    return None


def localizar_inscricao(candidatos: dict) -> Optional[Inscricao]:
    for chave in ("payment_id", "preference_id", "order_id"):
        valor = candidatos.get(chave)
        if not valor:
            continue
        insc = Inscricao.objects.filter(payment_id=valor).order_by("-criado_em").first()
        if insc:
            logger.info("Inscrição %s localizada por %s=%s", insc.pk, chave, valor)
            return insc

    ids = [v for v in candidatos.values() if v]
    if not ids:
        return None
    insc = _buscar_pendente(ids)
    if insc:
        logger.info("Inscrição %s localizada entre as pendentes (ids=%s)", insc.pk, ids)
    return insc


def registrar_nao_encontrada(candidatos: dict) -> None:
    ultimas = list(
        Inscricao.objects.order_by("-criado_em").values("id", "status", "payment_id", "preference_id")[:5]
    )
    logger.warning("Nenhuma inscrição para o pagamento %s. Últimas inscrições: %r", candidatos, ultimas)


def aplicar_pagamento(inscricao: Inscricao, pagamento: dict, candidatos: dict) -> Inscricao:
    """
    Grava o novo status e o retrato do pagamento numa única atualização,
    condicionada à ``versao`` lida. Levanta ``ConflitoConcorrencia`` se perder a corrida.
    """
    anterior = inscricao.status
    novo, erro = mapear_status(pagamento.get("status"), pagamento.get("status_detail"))

    if anterior in STATUS_TERMINAIS and novo != anterior:
        # sem trava de regressão: o último aviso do Mercado Pago prevalece
        logger.warning("Inscrição %s saindo do status final %s para %s", inscricao.pk, anterior, novo)

    detalhes = DetalhesPagamento.de_json(inscricao.payment_details)
    agora = timezone.now()
    detalhes.registrar_provider(pagamento, agora.isoformat())

    campos = {
        "status": novo,
        "payment_id": candidatos["payment_id"],
        "payment_error": erro,
        "payment_details": detalhes.para_json(),
        "versao": F("versao") + 1,
        "atualizado_em": agora,
    }
    if candidatos.get("order_id"):
        campos["merchant_order_id"] = candidatos["order_id"]

    alteradas = Inscricao.objects.filter(pk=inscricao.pk, versao=inscricao.versao).update(**campos)
    if not alteradas:
        raise ConflitoConcorrencia(f"Inscrição {inscricao.pk} alterada por outra notificação")

    inscricao.refresh_from_db()
    logger.info("Inscrição %s: %s → %s (pagamento %s)", inscricao.pk, anterior, novo, candidatos["payment_id"])

    if novo == InscricaoStatus.CONFIRMED and anterior != InscricaoStatus.CONFIRMED:
        enviar_confirmacao_inscricao(inscricao)

    return inscricao
