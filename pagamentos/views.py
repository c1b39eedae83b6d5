# pagamentos/views.py
import logging

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, F
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from inscricoes.models import Evento, Inscricao, InscricaoStatus
from inscricoes.utils.respostas import (
    CorpoInvalido,
    erro_interno,
    erros_formulario,
    ler_json,
    resposta_erro,
    resposta_json,
)

from .conciliacao import (
    ConflitoConcorrencia,
    aplicar_pagamento,
    ids_candidatos,
    localizar_inscricao,
    registrar_nao_encontrada,
)
from .detalhes import DetalhesPagamento
from .forms import AtualizarPreferenciaForm, CriarPreferenciaForm
from .mercadopago_client import (
    ErroMercadoPago,
    MercadoPagoNaoConfigurado,
    buscar_pagamento,
    mp_client,
    mp_configurado,
)
from .preferencias import atualizar_preferencia_checkout, criar_preferencia_checkout
from .taxas import (
    ConfigPagamentoInvalida,
    calcular_opcoes_pagamento,
    encontrar_opcao,
    validar_opcao_pagamento,
)

logger = logging.getLogger(__name__)


def _opcao_sem_escolha(evento) -> dict:
    # checkout sem método definido: cobra o preço do evento
    return {
        "method": None,
        "installments": 1,
        "base_value": evento.preco,
        "fee_amount": 0,
        "final_value": evento.preco,
    }


def _reais(valor) -> str:
    return f"R$ {valor:.2f}".replace(".", ",")


def _checar_minimo_parcela(opcao, metodo, parcelas):
    """Parcelamento no crédito exige valor e parcela >= PAGAMENTO_VALOR_MINIMO_PARCELA."""
    if metodo != "credit_card" or not parcelas or parcelas <= 1:
        return None
    minimo = settings.PAGAMENTO_VALOR_MINIMO_PARCELA
    final = opcao["final_value"]
    if final < minimo:
        return resposta_erro(
            f"Valor mínimo para parcelamento é {_reais(minimo)}", 400,
            current_value=final, minimum_value=minimo,
        )
    por_parcela = final / parcelas
    if por_parcela < minimo:
        return resposta_erro(
            f"Valor mínimo por parcela é {_reais(minimo)}. Com {parcelas}x ficaria {_reais(por_parcela)} por parcela",
            400,
            current_value_per_installment=por_parcela,
            minimum_value_per_installment=minimo,
        )
    return None


def _escolher_opcao(evento, metodo, parcelas):
    """Retorna (opcao, resposta_de_erro)."""
    config = evento.payment_config
    if not validar_opcao_pagamento(metodo, parcelas, config):
        return None, resposta_erro(
            "Método de pagamento não disponível para este evento", 400,
            method=metodo, installments=parcelas,
        )
    try:
        calculo = calcular_opcoes_pagamento(evento.preco, config)
    except ConfigPagamentoInvalida:
        return None, resposta_erro("Configuração de pagamento do evento inválida", 400)

    opcao = encontrar_opcao(calculo, metodo, parcelas)
    if opcao is None:
        return None, resposta_erro("Opção de pagamento não encontrada", 400)
    erro = _checar_minimo_parcela(opcao, metodo, parcelas)
    if erro:
        return None, erro
    return opcao, None


# =====================================================================
# Criar preferência (checkout público)
# =====================================================================
@csrf_exempt
@require_POST
def criar_preferencia(request):
    try:
        try:
            body = ler_json(request)
        except CorpoInvalido as e:
            return resposta_erro(str(e), 400)

        form = CriarPreferenciaForm(body)
        if not form.is_valid():
            return erros_formulario(form)

        dados = form.cleaned_data
        participante = dados["participante"]
        registration_id = dados.get("registrationId")

        evento = (
            Evento.objects.filter(pk=dados["eventId"])
            .annotate(total_inscricoes=Count("inscricoes"))
            .first()
        )
        if not evento:
            return resposta_erro("Evento não encontrado", 404)
        if not evento.ativo:
            return resposta_erro("Evento não está ativo", 400)
        if evento.total_inscricoes >= evento.max_participantes:
            return resposta_erro("Evento lotado", 400)
        if not evento.inscricoes_abertas():
            return resposta_erro("Período de inscrições encerrado", 400)

        existente = (
            Inscricao.objects.filter(evento=evento, cpf=participante["cpf"])
            .order_by("-criado_em")
            .first()
        )
        if existente:
            if not registration_id:
                return resposta_erro("CPF já possui inscrição neste evento", 400)
            if registration_id != existente.pk:
                return resposta_erro("ID de inscrição não corresponde ao CPF informado", 400)
            if existente.status not in (InscricaoStatus.PENDING, InscricaoStatus.CANCELLED):
                return resposta_erro("Esta inscrição já foi confirmada", 400, current_status=existente.status)

        opcao = None
        pagamento = dados.get("pagamento")
        if pagamento:
            opcao, erro = _escolher_opcao(evento, pagamento["method"], pagamento.get("installments"))
            if erro:
                return erro

        try:
            sdk = mp_client()
        except MercadoPagoNaoConfigurado:
            return resposta_erro("Sistema de pagamento não configurado", 500)

        try:
            resp, ref = criar_preferencia_checkout(
                sdk, evento, participante, opcao=opcao,
                inscricao_id=existente.pk if existente else None,
            )
        except ErroMercadoPago as e:
            return resposta_erro("Falha ao criar preferência no Mercado Pago", 500, provider_error=str(e))

        preference_id = str(resp.get("id") or "")
        with transaction.atomic():
            insc = existente or Inscricao(
                evento=evento,
                nome=participante["name"],
                email=participante["email"],
                cpf=participante["cpf"],
                telefone=participante["phone"],
            )
            detalhes = DetalhesPagamento.de_json(insc.payment_details)
            detalhes.registrar_checkout(opcao or _opcao_sem_escolha(evento), preference_id, ref)

            insc.status = InscricaoStatus.PENDING
            insc.payment_id = preference_id
            insc.preference_id = preference_id
            insc.external_reference = ref
            insc.payment_error = None
            insc.payment_details = detalhes.para_json()
            if existente:
                insc.versao = F("versao") + 1
            insc.save()

        logger.info("Inscrição %s pendente com preferência %s", insc.pk, preference_id)
        return resposta_json({
            "success": True,
            "registrationId": str(insc.pk),
            "preferenceId": preference_id,
            "checkoutUrl": resp.get("init_point"),
            "sandboxCheckoutUrl": resp.get("sandbox_init_point"),
        })
    except Exception as e:
        return erro_interno(logger, "Erro ao criar preferência", e)


# =====================================================================
# Atualizar preferência (troca de método/parcelas antes de pagar)
# =====================================================================
@csrf_exempt
@require_http_methods(["PUT"])
def atualizar_preferencia(request):
    try:
        try:
            body = ler_json(request)
        except CorpoInvalido as e:
            return resposta_erro(str(e), 400)

        form = AtualizarPreferenciaForm(body)
        if not form.is_valid():
            return erros_formulario(form)

        metodo = form.cleaned_data["pagamento"]["method"]
        parcelas = form.cleaned_data["pagamento"].get("installments")

        insc = Inscricao.objects.select_related("evento").filter(pk=form.cleaned_data["registrationId"]).first()
        if not insc:
            return resposta_erro("Inscrição não encontrada", 404)

        if insc.status != InscricaoStatus.PENDING:
            return resposta_erro("Esta inscrição não pode ser atualizada", 400, current_status=insc.status)
        if not insc.payment_id:
            return resposta_erro("Inscrição não possui ID de pagamento para atualizar", 400)

        opcao, erro = _escolher_opcao(insc.evento, metodo, parcelas)
        if erro:
            return erro

        try:
            sdk = mp_client()
        except MercadoPagoNaoConfigurado:
            return resposta_erro("Sistema de pagamento não configurado", 500)

        try:
            resp, ref = atualizar_preferencia_checkout(sdk, insc, opcao)
        except ErroMercadoPago as e:
            return resposta_erro("Falha ao atualizar preferência no Mercado Pago", 500, provider_error=str(e))

        novo_id = str(resp.get("id") or insc.payment_id)
        detalhes = DetalhesPagamento.de_json(insc.payment_details)
        detalhes.registrar_checkout(opcao, novo_id, ref)

        Inscricao.objects.filter(pk=insc.pk).update(
            payment_id=novo_id,
            preference_id=novo_id,
            external_reference=ref,
            payment_details=detalhes.para_json(),
            versao=F("versao") + 1,
            atualizado_em=timezone.now(),
        )

        return resposta_json({
            "success": True,
            "preferenceId": novo_id,
            "checkoutUrl": resp.get("init_point"),
            "sandboxCheckoutUrl": resp.get("sandbox_init_point"),
            "updated": True,
            "paymentDetails": {
                "method": metodo,
                "installments": parcelas or 1,
                "baseValue": opcao["base_value"],
                "feeAmount": opcao["fee_amount"],
                "finalValue": opcao["final_value"],
            },
        })
    except Exception as e:
        return erro_interno(logger, "Erro ao atualizar preferência", e)


# =====================================================================
# Consulta de status (páginas de retorno do checkout)
# =====================================================================
STATUS_CONSULTA = {
    "approved": InscricaoStatus.CONFIRMED,
    "rejected": InscricaoStatus.CANCELLED,
    "cancelled": InscricaoStatus.CANCELLED,
}


def _resumo(insc, status, **extra) -> dict:
    return {
        "id": str(insc.pk),
        "name": insc.nome,
        "email": insc.email,
        "event": insc.evento.titulo,
        "status": status,
        **extra,
    }


@require_GET
def status_pagamento(request):
    try:
        payment_id = request.GET.get("paymentId")
        registration_id = request.GET.get("registrationId")
        if not payment_id and not registration_id:
            return resposta_erro("paymentId ou registrationId é obrigatório", 400)

        qs = Inscricao.objects.select_related("evento")
        if registration_id:
            try:
                insc = qs.filter(pk=registration_id).first()
            except ValidationError:
                insc = None
        else:
            insc = qs.filter(payment_id=payment_id).first()

        if not insc:
            return resposta_erro("Registro não encontrado", 404)

        if insc.status == InscricaoStatus.CONFIRMED:
            return resposta_json({"success": True, "status": "approved", "registration": _resumo(insc, insc.status)})

        if insc.payment_id and mp_configurado():
            try:
                info = buscar_pagamento(mp_client(), insc.payment_id)
                status_mp = info.get("status")
                novo = STATUS_CONSULTA.get(status_mp, InscricaoStatus.PENDING)
                if novo != insc.status:
                    Inscricao.objects.filter(pk=insc.pk).update(
                        status=novo, versao=F("versao") + 1, atualizado_em=timezone.now()
                    )
                    logger.info("Status da inscrição %s atualizado por consulta: %s → %s", insc.pk, insc.status, novo)
                return resposta_json({
                    "success": True,
                    "status": status_mp,
                    "registration": _resumo(insc, novo, paymentStatus=status_mp),
                })
            except Exception as e:
                # segue com o status local
                logger.warning("Erro ao consultar Mercado Pago para a inscrição %s: %s", insc.pk, e)

        return resposta_json({
            "success": True,
            "status": insc.status.lower(),
            "registration": _resumo(insc, insc.status),
        })
    except Exception as e:
        return erro_interno(logger, "Erro ao verificar status", e)


# =====================================================================
# Webhook (fonte da verdade)
# =====================================================================
@csrf_exempt
@require_http_methods(["GET", "POST"])
def webhook(request):
    # o Mercado Pago faz GET para checar se o endpoint está no ar
    if request.method == "GET":
        return resposta_json({"status": "ok", "message": "Webhook endpoint is active"})

    try:
        try:
            body = ler_json(request)
        except CorpoInvalido as e:
            return resposta_erro(str(e), 400)

        logger.info("Webhook recebido: %s", body)

        if body.get("type") != "payment":
            return resposta_json({"received": True})

        data = body.get("data")
        payment_id = data.get("id") if isinstance(data, dict) else None
        if not payment_id:
            logger.error("Webhook sem payment_id: %s", body)
            return resposta_erro("Payment ID missing", 400)

        if not mp_configurado():
            logger.warning("Webhook recebido mas Mercado Pago não configurado - ignorando")
            return resposta_json({"received": True, "message": "Mercado Pago não configurado"})

        try:
            pagamento = buscar_pagamento(mp_client(), payment_id)
        except Exception as e:
            logger.error("Pagamento %s não encontrado no Mercado Pago: %s", payment_id, e)
            return resposta_erro("Payment not found", 404, provider_error=str(e))

        candidatos = ids_candidatos(payment_id, pagamento)
        insc = localizar_inscricao(candidatos)
        if insc is None:
            registrar_nao_encontrada(candidatos)
            return resposta_erro(
                "Registration not found", 404,
                candidates=[v for v in candidatos.values() if v],
            )

        try:
            insc = aplicar_pagamento(insc, pagamento, candidatos)
        except ConflitoConcorrencia as e:
            logger.warning(str(e))
            return resposta_erro("Registration updated concurrently", 409, registrationId=str(insc.pk))

        return resposta_json({"received": True, "status": insc.status, "registrationId": str(insc.pk)})
    except Exception as e:
        logger.exception("Erro no webhook: %s", e)
        extra = {"message": str(e)} if settings.DEBUG else {}
        return resposta_erro("Internal server error", 500, **extra)
