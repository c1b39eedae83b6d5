# pagamentos/receita.py
"""
Valor efetivamente cobrado de cada inscrição e os totais do relatório financeiro.

O valor é refeito pela CalculadoraTaxas a partir do método/parcelas gravados
no checkout; sem essa informação (inscrição manual, registro antigo, config
alterada) vale o preço do evento.
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Iterable

from django.utils import timezone

from inscricoes.models import InscricaoStatus

from .detalhes import DetalhesPagamento
from .taxas import ConfigPagamentoInvalida, calcular_opcoes_pagamento, encontrar_opcao

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")

ORIGEM_MERCADO_PAGO = "MERCADO_PAGO"
ORIGEM_MANUAL = "MANUAL"


def origem_pagamento(inscricao) -> str:
    return ORIGEM_MANUAL if inscricao.is_manual else ORIGEM_MERCADO_PAGO


def valor_pago(inscricao) -> Decimal:
    evento = inscricao.evento
    detalhes = DetalhesPagamento.de_json(inscricao.payment_details)
    if not detalhes.metodo:
        return evento.preco

    try:
        calculo = calcular_opcoes_pagamento(evento.preco, evento.payment_config)
    except (ConfigPagamentoInvalida, ValueError) as e:
        logger.warning("Evento %s com payment_config inválido no relatório: %s", evento.pk, e)
        return evento.preco

    opcao = encontrar_opcao(calculo, detalhes.metodo, detalhes.parcelas)
    if opcao is None:
        return evento.preco
    return opcao["final_value"]


def receita_confirmada(inscricoes: Iterable) -> Decimal:
    return sum((valor_pago(i) for i in inscricoes if i.status == InscricaoStatus.CONFIRMED), ZERO)


def _contadores():
    return {
        "totalRegistrations": 0,
        "confirmedRegistrations": 0,
        "pendingRegistrations": 0,
        "cancelledRegistrations": 0,
        "paymentFailedRegistrations": 0,
        "totalRevenue": ZERO,
        "confirmedRevenue": ZERO,
        "pendingRevenue": ZERO,
        "mercadoPagoRegistrations": 0,
        "manualRegistrations": 0,
        "mercadoPagoConfirmedRegistrations": 0,
        "manualConfirmedRegistrations": 0,
        "mercadoPagoRevenue": ZERO,
        "manualRevenue": ZERO,
        "mercadoPagoConfirmedRevenue": ZERO,
        "manualConfirmedRevenue": ZERO,
    }


_CHAVE_STATUS = {
    InscricaoStatus.CONFIRMED: "confirmedRegistrations",
    InscricaoStatus.PENDING: "pendingRegistrations",
    InscricaoStatus.CANCELLED: "cancelledRegistrations",
    InscricaoStatus.PAYMENT_FAILED: "paymentFailedRegistrations",
}


def _acumular(grupo: dict, status: str, origem: str, valor: Decimal) -> None:
    grupo["totalRegistrations"] += 1
    grupo[_CHAVE_STATUS[status]] += 1
    grupo["totalRevenue"] += valor

    prefixo = "mercadoPago" if origem == ORIGEM_MERCADO_PAGO else "manual"
    grupo[f"{prefixo}Registrations"] += 1
    grupo[f"{prefixo}Revenue"] += valor

    if status == InscricaoStatus.CONFIRMED:
        grupo["confirmedRevenue"] += valor
        grupo[f"{prefixo}ConfirmedRegistrations"] += 1
        grupo[f"{prefixo}ConfirmedRevenue"] += valor
    elif status == InscricaoStatus.PENDING:
        grupo["pendingRevenue"] += valor


def relatorio_financeiro(inscricoes: Iterable) -> dict:
    """
    Totais gerais, por evento e por dia. ``inscricoes`` deve vir com
    ``select_related("evento")``.
    """
    geral = _contadores()
    por_evento: "OrderedDict[str, dict]" = OrderedDict()
    por_dia: dict = {}

    for insc in inscricoes:
        valor = valor_pago(insc)
        origem = origem_pagamento(insc)
        _acumular(geral, insc.status, origem, valor)

        ev = insc.evento
        chave_ev = str(ev.pk)
        if chave_ev not in por_evento:
            por_evento[chave_ev] = {
                "eventId": chave_ev,
                "eventTitle": ev.titulo,
                "eventPrice": ev.preco,
                "eventDate": ev.data_inicio.isoformat(),
                **_contadores(),
            }
        _acumular(por_evento[chave_ev], insc.status, origem, valor)

        dia = timezone.localdate(insc.criado_em).isoformat()
        grupo_dia = por_dia.setdefault(
            dia, {"date": dia, "revenue": ZERO, "registrations": 0, "mercadoPagoRevenue": ZERO, "manualRevenue": ZERO}
        )
        grupo_dia["revenue"] += valor
        grupo_dia["registrations"] += 1
        if origem == ORIGEM_MERCADO_PAGO:
            grupo_dia["mercadoPagoRevenue"] += valor
        else:
            grupo_dia["manualRevenue"] += valor

    geral["mercadoPagoTotalRevenue"] = geral.pop("mercadoPagoRevenue")
    geral["manualTotalRevenue"] = geral.pop("manualRevenue")
    geral["eventBreakdown"] = list(por_evento.values())
    geral["dailyRevenue"] = [por_dia[d] for d in sorted(por_dia)]
    return geral
