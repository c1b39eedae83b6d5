# --- Python stdlib
import csv
import logging
import time
import uuid
from collections import Counter
from decimal import Decimal
from io import BytesIO

# --- Django
from django.contrib.auth import get_user_model, login, logout
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db import transaction
from django.db.models import Count, F, Q
from django.http import HttpResponse
from django.urls import reverse
from django.utils import timezone
from django.utils.dateparse import parse_date
from django.views.decorators.csrf import csrf_exempt, ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_http_methods, require_POST

# --- Terceiros
import qrcode

# --- App
from integracoes.cloudinary_upload import CloudinaryNaoConfigurado, UploadInvalido, enviar_imagem
from pagamentos.receita import origem_pagamento, receita_confirmada, relatorio_financeiro, valor_pago
from pagamentos.taxas import (
    ConfigPagamentoInvalida,
    calcular_opcoes_pagamento,
    encontrar_opcao,
    validar_opcao_pagamento,
)

from .db import com_retry_prepared_statement
from .decorators import admin_required, super_admin_required
from .forms import (
    AlterarSenhaForm,
    BuscaCheckinForm,
    BuscaCPFForm,
    EventoForm,
    InscricaoAdminForm,
    InscricaoManualForm,
    LoginForm,
    OpcaoPagamentoForm,
    UsuarioForm,
)
from .models import Evento, Inscricao, InscricaoStatus, Papel
from .utils.cpf import somente_digitos
from .utils.respostas import (
    CorpoInvalido,
    erro_interno,
    erros_formulario,
    ler_json,
    resposta_erro,
    resposta_json,
    resposta_ok,
)

logger = logging.getLogger(__name__)
User = get_user_model()


# =====================================================================
# Helpers de serialização
# =====================================================================
def _iso(dt):
    return dt.isoformat() if dt else None


def evento_json(ev: Evento, **extra) -> dict:
    return {
        "id": str(ev.pk),
        "title": ev.titulo,
        "description": ev.descricao,
        "slug": ev.slug,
        "location": ev.local,
        "startDate": _iso(ev.data_inicio),
        "endDate": _iso(ev.data_fim),
        "registrationStartDate": _iso(ev.inicio_inscricoes),
        "registrationEndDate": _iso(ev.fim_inscricoes),
        "maxParticipants": ev.max_participantes,
        "price": ev.preco,
        "isActive": ev.ativo,
        "bannerUrl": ev.banner_url,
        "paymentConfig": ev.payment_config,
        "createdAt": _iso(ev.criado_em),
        "updatedAt": _iso(ev.atualizado_em),
        **extra,
    }


def inscricao_json(insc: Inscricao, com_detalhes: bool = False) -> dict:
    ev = insc.evento
    dados = {
        "id": str(insc.pk),
        "eventId": str(insc.evento_id),
        "name": insc.nome,
        "email": insc.email,
        "cpf": insc.cpf,
        "phone": insc.telefone,
        "status": insc.status,
        "paymentId": insc.payment_id,
        "paymentError": insc.payment_error,
        "paymentMethod": origem_pagamento(insc),
        "checkedInAt": _iso(insc.checked_in_at),
        "createdAt": _iso(insc.criado_em),
        "updatedAt": _iso(insc.atualizado_em),
        "event": {
            "id": str(ev.pk),
            "title": ev.titulo,
            "price": ev.preco,
            "startDate": _iso(ev.data_inicio),
        },
    }
    if com_detalhes:
        dados["paymentDetails"] = insc.payment_details
    return dados


def usuario_json(u) -> dict:
    return {
        "id": u.pk,
        "name": u.nome,
        "email": u.email,
        "role": u.role,
        "isActive": u.is_active,
        "lastLogin": _iso(u.last_login),
        "createdAt": _iso(u.date_joined),
    }


def _paginacao(request, padrao: int = 10):
    try:
        pagina = max(int(request.GET.get("page") or 1), 1)
    except ValueError:
        pagina = 1
    try:
        limite = max(int(request.GET.get("limit") or padrao), 1)
    except ValueError:
        limite = padrao
    return pagina, limite


def _paginado(itens_qs, pagina, limite, serializar):
    paginator = Paginator(itens_qs, limite)
    page_obj = paginator.get_page(pagina)
    return {
        "items": [serializar(i) for i in page_obj.object_list],
        "pagination": {
            "page": page_obj.number,
            "limit": limite,
            "total": paginator.count,
            "totalPages": paginator.num_pages,
            "hasNext": page_obj.has_next(),
            "hasPrev": page_obj.has_previous(),
        },
    }


def _buscar_evento(chave: str):
    """Aceita o UUID ou o slug do evento."""
    try:
        return Evento.objects.filter(pk=uuid.UUID(str(chave))).first()
    except ValueError:
        return Evento.objects.filter(slug=chave).first()


def _gerar_payment_id_manual() -> str:
    return f"manual_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


# =====================================================================
# Eventos
# =====================================================================
@require_http_methods(["GET", "POST"])
def eventos(request):
    if request.method == "POST":
        return _criar_evento(request)

    try:
        pagina, limite = _paginacao(request)
        agora = timezone.now()
        qs = Evento.objects.annotate(total_inscricoes=Count("inscricoes"))

        if request.GET.get("upcoming") == "true":
            qs = qs.filter(ativo=True, inicio_inscricoes__lte=agora, fim_inscricoes__gte=agora).order_by("data_inicio")
        elif request.GET.get("active") == "true":
            qs = qs.filter(ativo=True, data_inicio__gte=agora).order_by("data_inicio")
        elif request.GET.get("active") == "false":
            qs = qs.filter(ativo=False).order_by("-criado_em")
        else:
            qs = qs.order_by("-criado_em")

        dados = _paginado(qs, pagina, limite, lambda ev: evento_json(ev, totalRegistrations=ev.total_inscricoes))
        return resposta_ok(dados, message="Eventos encontrados")
    except Exception as e:
        return erro_interno(logger, "Erro ao listar eventos", e)


@require_GET
def eventos_ativos(request):
    agora = timezone.now()
    ev = (
        Evento.objects.filter(ativo=True, data_inicio__gte=agora)
        .annotate(total_inscricoes=Count("inscricoes"))
        .order_by("data_inicio")
        .first()
    )
    itens = [evento_json(ev, totalRegistrations=ev.total_inscricoes)] if ev else []
    return resposta_ok({"items": itens})


@admin_required
def _criar_evento(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = EventoForm(body)
    if not form.is_valid():
        return erros_formulario(form)

    if Evento.objects.filter(slug=form.cleaned_data["slug"]).exists():
        return resposta_erro("Já existe um evento com este slug", 409)

    try:
        ev = form.aplicar(Evento())
        ev.save()
    except Exception as e:
        return erro_interno(logger, "Erro ao criar evento", e)

    logger.info("Evento %s (%s) criado por %s", ev.pk, ev.slug, request.user.email)
    return resposta_ok(evento_json(ev), status=201, message="Evento criado com sucesso")


@require_http_methods(["GET", "PUT", "DELETE"])
def evento_detalhe(request, chave):
    if request.method == "PUT":
        return _atualizar_evento(request, chave)
    if request.method == "DELETE":
        return _deletar_evento(request, chave)

    ev = _buscar_evento(chave)
    if not ev:
        return resposta_erro("Evento não encontrado", 404)

    extra = {}
    if request.GET.get("includeStats") == "true":
        contagem = ev.inscricoes.aggregate(
            total=Count("id"),
            confirmadas=Count("id", filter=Q(status=InscricaoStatus.CONFIRMED)),
        )
        extra["stats"] = {
            "totalRegistrations": contagem["total"],
            "confirmedRegistrations": contagem["confirmadas"],
            "availableSpots": max(ev.max_participantes - contagem["confirmadas"], 0),
            "isRegistrationOpen": ev.inscricoes_abertas(),
        }
    return resposta_ok(evento_json(ev, **extra), message="Evento encontrado")


@admin_required
def _atualizar_evento(request, chave):
    ev = _buscar_evento(chave)
    if not ev:
        return resposta_erro("Evento não encontrado", 404)

    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = EventoForm(body, parcial=True, evento=ev)
    if not form.is_valid():
        return erros_formulario(form)

    novo_slug = form.cleaned_data.get("slug")
    if novo_slug and novo_slug != ev.slug and Evento.objects.filter(slug=novo_slug).exists():
        return resposta_erro("Já existe um evento com este slug", 409)

    form.aplicar(ev).save()
    logger.info("Evento %s atualizado por %s", ev.pk, request.user.email)
    return resposta_ok(evento_json(ev), message="Evento atualizado com sucesso")


@admin_required
def _deletar_evento(request, chave):
    ev = _buscar_evento(chave)
    if not ev:
        return resposta_erro("Evento não encontrado", 404)

    total = ev.inscricoes.count()
    if total:
        return resposta_erro("Não é possível deletar um evento com inscrições", 409, registrations=total)

    ev.delete()
    logger.info("Evento %s removido por %s", chave, request.user.email)
    return resposta_ok(None, message="Evento deletado com sucesso")


@csrf_exempt
@require_http_methods(["GET", "POST"])
def evento_metodos_pagamento(request, chave):
    """GET: opções calculadas; POST {method, installments?}: valida uma opção."""
    try:
        ev = _buscar_evento(chave)
        if not ev:
            return resposta_erro("Evento não encontrado", 404)

        if not ev.ativo or timezone.now() > ev.fim_inscricoes:
            return resposta_erro("Este evento não está aceitando inscrições", 400)

        if request.method == "GET":
            return resposta_ok(calcular_opcoes_pagamento(ev.preco, ev.payment_config))

        try:
            body = ler_json(request)
        except CorpoInvalido as e:
            return resposta_erro(str(e), 400)

        form = OpcaoPagamentoForm(body)
        if not form.is_valid():
            return erros_formulario(form)
        metodo = form.cleaned_data["method"]
        parcelas = form.cleaned_data.get("installments")

        if not validar_opcao_pagamento(metodo, parcelas, ev.payment_config):
            return resposta_erro("Método de pagamento não disponível para este evento", 400)

        opcao = encontrar_opcao(calcular_opcoes_pagamento(ev.preco, ev.payment_config), metodo, parcelas)
        if opcao is None:
            return resposta_erro("Opção de pagamento não encontrada", 400)

        return resposta_ok({
            "valid": True,
            "method": metodo,
            "installments": parcelas or 1,
            "finalValue": opcao["final_value"],
            "description": opcao["description"],
        })
    except ConfigPagamentoInvalida:
        return resposta_erro("Configuração de pagamento do evento inválida", 400)
    except Exception as e:
        return erro_interno(logger, "Erro ao calcular métodos de pagamento", e)


# =====================================================================
# Inscrições (painel)
# =====================================================================
def _filtrar_inscricoes(request):
    qs = Inscricao.objects.select_related("evento")

    status = request.GET.get("status")
    if status and status != "ALL":
        qs = qs.filter(status=status)

    evento_id = request.GET.get("eventId")
    if evento_id and evento_id != "ALL":
        try:
            qs = qs.filter(evento_id=uuid.UUID(evento_id))
        except ValueError:
            qs = qs.none()

    termo = (request.GET.get("search") or "").strip()
    if termo:
        cond = Q(nome__icontains=termo) | Q(email__icontains=termo) | Q(evento__titulo__icontains=termo)
        digitos = somente_digitos(termo)
        if digitos:
            cond |= Q(cpf__contains=digitos)
        qs = qs.filter(cond)

    return qs


@require_http_methods(["GET", "POST"])
@admin_required
def inscricoes(request):
    if request.method == "POST":
        return _criar_inscricao_admin(request)

    try:
        pagina, limite = _paginacao(request)
        qs = _filtrar_inscricoes(request).order_by("-criado_em")
        inicio = (pagina - 1) * limite

        def _consulta():
            return list(qs[inicio:inicio + limite]), qs.count()

        itens, total = com_retry_prepared_statement(_consulta)
        return resposta_ok({
            "items": [inscricao_json(i) for i in itens],
            "pagination": {
                "page": pagina,
                "limit": limite,
                "total": total,
                "pages": (total + limite - 1) // limite,
            },
        })
    except Exception as e:
        return erro_interno(logger, "Erro ao buscar inscrições", e)


def _criar_inscricao_admin(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = InscricaoAdminForm(body)
    if not form.is_valid():
        return erros_formulario(form)
    dados = form.cleaned_data

    ev = Evento.objects.filter(pk=dados.get("eventId")).first() if dados.get("eventId") else None
    if not ev:
        return resposta_erro("Evento não encontrado", 404)

    if Inscricao.objects.filter(evento=ev, cpf=dados["cpf"]).exists():
        return resposta_erro("Já existe uma inscrição para este CPF neste evento", 400)

    insc = Inscricao.objects.create(
        evento=ev,
        nome=dados["name"],
        email=dados["email"],
        cpf=dados["cpf"],
        telefone=dados.get("phone") or "",
        status=dados.get("status") or InscricaoStatus.CONFIRMED,
        payment_id=_gerar_payment_id_manual(),
    )
    logger.info("Inscrição manual %s criada por %s", insc.pk, request.user.email)
    return resposta_ok(inscricao_json(insc), status=201, message="Inscrição criada com sucesso")


@require_http_methods(["GET", "PUT", "DELETE"])
@admin_required
def inscricao_detalhe(request, pk):
    insc = Inscricao.objects.select_related("evento").filter(pk=pk).first()
    if not insc:
        return resposta_erro("Inscrição não encontrada", 404)

    if request.method == "GET":
        return resposta_ok(inscricao_json(insc, com_detalhes=True))

    if request.method == "DELETE":
        insc.delete()
        logger.info("Inscrição %s excluída por %s", pk, request.user.email)
        return resposta_ok(None, message="Inscrição excluída com sucesso")

    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    body.pop("eventId", None)
    form = InscricaoAdminForm(body, parcial=True)
    if not form.is_valid():
        return erros_formulario(form)

    mapa = {"name": "nome", "email": "email", "cpf": "cpf", "phone": "telefone", "status": "status"}
    anterior = insc.status
    for campo, valor in form.cleaned_data.items():
        if valor in (None, ""):
            continue
        setattr(insc, mapa[campo], valor)
    insc.versao = F("versao") + 1
    insc.save()
    insc.refresh_from_db()

    if insc.status != anterior:
        logger.info("Status da inscrição %s alterado manualmente: %s → %s (%s)",
                    insc.pk, anterior, insc.status, request.user.email)
    return resposta_ok(inscricao_json(insc, com_detalhes=True), message="Inscrição atualizada com sucesso")


@require_GET
@admin_required
def inscricoes_stats(request):
    try:
        qs = _filtrar_inscricoes(request)
        status = request.GET.get("status")

        contagem = qs.aggregate(
            total=Count("id"),
            confirmed=Count("id", filter=Q(status=InscricaoStatus.CONFIRMED)),
            pending=Count("id", filter=Q(status=InscricaoStatus.PENDING)),
            cancelled=Count("id", filter=Q(status=InscricaoStatus.CANCELLED)),
            payment_failed=Count("id", filter=Q(status=InscricaoStatus.PAYMENT_FAILED)),
        )
        confirmadas = com_retry_prepared_statement(lambda: list(qs.filter(status=InscricaoStatus.CONFIRMED)))

        return resposta_ok({
            "total": contagem["total"],
            "confirmed": contagem["confirmed"],
            "pending": contagem["pending"],
            "cancelled": contagem["cancelled"],
            "paymentFailed": contagem["payment_failed"],
            "totalRevenue": receita_confirmada(confirmadas),
            "statusFilter": status if status and status != "ALL" else None,
        })
    except Exception as e:
        return erro_interno(logger, "Erro ao buscar estatísticas", e)


@require_GET
@admin_required
def inscricoes_export(request):
    evento_id = request.GET.get("eventId")
    if not evento_id:
        return resposta_erro("ID do evento é obrigatório", 400)

    ev = _buscar_evento(evento_id)
    if not ev:
        return resposta_erro("Evento não encontrado", 404)

    confirmadas = list(
        Inscricao.objects.select_related("evento")
        .filter(evento=ev, status=InscricaoStatus.CONFIRMED)
        .order_by("nome")
    )
    total = len(confirmadas)
    feitos = [i for i in confirmadas if i.checked_in_at]
    por_hora = Counter(timezone.localtime(i.checked_in_at).hour for i in feitos)

    if request.GET.get("format") == "csv":
        resp = HttpResponse(content_type="text/csv; charset=utf-8")
        resp["Content-Disposition"] = f'attachment; filename="inscricoes-{ev.slug}.csv"'
        resp.write("\ufeff")  # BOM para o Excel abrir com acentos
        w = csv.writer(resp, delimiter=";")
        w.writerow(["Nome", "E-mail", "CPF", "Telefone", "Valor pago", "Check-in"])
        for i in confirmadas:
            checkin = timezone.localtime(i.checked_in_at).strftime("%d/%m/%Y %H:%M") if i.checked_in_at else ""
            w.writerow([i.nome, i.email, i.cpf_formatado, i.telefone, f"{valor_pago(i):.2f}", checkin])
        return resp

    return resposta_ok({
        "event": evento_json(ev),
        "registrations": [inscricao_json(i) for i in confirmadas],
        "stats": {
            "total": total,
            "checkedIn": len(feitos),
            "pending": total - len(feitos),
            "totalRevenue": receita_confirmada(confirmadas),
            "checkinRate": round(len(feitos) * 100 / total) if total else 0,
        },
        "checkinsByHour": {str(h): n for h, n in sorted(por_hora.items())},
        "exportedAt": timezone.now().isoformat(),
    })


@csrf_exempt
@require_POST
def inscricao_por_cpf(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = BuscaCPFForm(body)
    if not form.is_valid():
        return resposta_erro("CPF inválido", 400, details=form.errors)

    insc = (
        Inscricao.objects.select_related("evento")
        .filter(cpf=form.cleaned_data["cpf"])
        .order_by("-criado_em")
        .first()
    )
    if not insc:
        return resposta_erro("Inscrição não encontrada", 404)

    ev = insc.evento
    return resposta_json({
        "id": str(insc.pk),
        "name": insc.nome,
        "email": insc.email,
        "cpf": insc.cpf,
        "phone": insc.telefone,
        "status": insc.status,
        "paymentId": insc.payment_id,
        "registrationDate": _iso(insc.criado_em),
        "event": {
            "title": ev.titulo,
            "price": ev.preco,
            "date": _iso(ev.data_inicio),
            "location": ev.local,
        },
    })


@require_GET
def inscricao_qrcode(request, pk):
    """PNG com o QR code do comprovante, lido na mesa de check-in."""
    insc = Inscricao.objects.filter(pk=pk).first()
    if not insc:
        return resposta_erro("Inscrição não encontrada", 404)

    destino = request.build_absolute_uri(reverse("inscricoes:checkin", args=[insc.pk]))

    qr = qrcode.QRCode(box_size=4, border=2)
    qr.add_data(destino)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    buffer.seek(0)
    return HttpResponse(buffer, content_type="image/png")


@require_POST
@admin_required
def inscricao_manual(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = InscricaoManualForm(body)
    if not form.is_valid():
        return erros_formulario(form)
    participante = form.cleaned_data["participante"]

    try:
        with transaction.atomic():
            ev = (
                Evento.objects.filter(pk=form.cleaned_data["eventId"])
                .annotate(total_inscricoes=Count("inscricoes"))
                .first()
            )
            if not ev:
                return resposta_erro("Evento não encontrado", 404)
            if not ev.ativo:
                return resposta_erro("Evento não está ativo", 400)
            if ev.total_inscricoes >= ev.max_participantes:
                return resposta_erro("Evento lotado", 400)
            if Inscricao.objects.filter(evento=ev, cpf=participante["cpf"]).exists():
                return resposta_erro("CPF já possui inscrição neste evento", 400)

            insc = Inscricao.objects.create(
                evento=ev,
                nome=participante["name"],
                email=participante["email"],
                cpf=participante["cpf"],
                telefone=participante["phone"],
                status=form.cleaned_data["status"],
                payment_id=_gerar_payment_id_manual(),
            )
    except Exception as e:
        return erro_interno(logger, "Erro ao criar inscrição manual", e)

    logger.info("Inscrição manual %s criada por %s", insc.pk, request.user.email)
    return resposta_json({
        "success": True,
        "registration": {
            "id": str(insc.pk),
            "name": insc.nome,
            "email": insc.email,
            "status": insc.status,
            "eventTitle": ev.titulo,
        },
    })


# =====================================================================
# Check-in
# =====================================================================
@require_POST
@admin_required
def checkin_busca(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = BuscaCheckinForm(body)
    if not form.is_valid():
        return resposta_erro("Termo de busca inválido", 400, details=form.errors)

    termo = form.cleaned_data["query"]
    cond = Q(nome__icontains=termo) | Q(email__icontains=termo)
    digitos = somente_digitos(termo)
    if len(digitos) >= 3:
        cond |= Q(cpf__contains=digitos)

    itens = list(
        Inscricao.objects.select_related("evento")
        .filter(cond, status=InscricaoStatus.CONFIRMED)
        .order_by(F("checked_in_at").desc(nulls_last=True), "nome")[:50]
    )
    return resposta_ok({"items": [inscricao_json(i) for i in itens], "total": len(itens)})


@require_http_methods(["POST", "DELETE"])
@admin_required
def checkin(request, pk):
    insc = Inscricao.objects.select_related("evento").filter(pk=pk).first()
    if not insc:
        return resposta_erro("Inscrição não encontrada", 404)

    if request.method == "DELETE":
        if not insc.checked_in_at:
            return resposta_erro("Não há check-in para desfazer", 400)
        insc.checked_in_at = None
        insc.save(update_fields=["checked_in_at", "atualizado_em"])
        logger.info("Check-in da inscrição %s desfeito por %s", insc.pk, request.user.email)
        return resposta_ok(inscricao_json(insc), message="Check-in desfeito com sucesso")

    if insc.status != InscricaoStatus.CONFIRMED:
        return resposta_erro("Apenas inscrições confirmadas podem fazer check-in", 400, current_status=insc.status)
    if insc.checked_in_at:
        return resposta_erro("Check-in já foi realizado para esta inscrição", 400)

    insc.checked_in_at = timezone.now()
    insc.save(update_fields=["checked_in_at", "atualizado_em"])
    logger.info("Check-in da inscrição %s feito por %s", insc.pk, request.user.email)
    return resposta_ok(inscricao_json(insc), message="Check-in realizado com sucesso")


# =====================================================================
# Financeiro
# =====================================================================
@require_GET
@admin_required
def financeiro(request):
    try:
        qs = Inscricao.objects.select_related("evento")

        inicio = parse_date(request.GET.get("startDate") or "")
        fim = parse_date(request.GET.get("endDate") or "")
        if inicio and fim:
            qs = qs.filter(criado_em__date__gte=inicio, criado_em__date__lte=fim)

        evento_id = request.GET.get("eventId")
        if evento_id and evento_id != "ALL":
            try:
                qs = qs.filter(evento_id=uuid.UUID(evento_id))
            except ValueError:
                return resposta_erro("ID do evento inválido", 400)

        inscricoes_lista = list(qs.order_by("criado_em"))
        resumo = relatorio_financeiro(inscricoes_lista)
        formato = request.GET.get("format")

        if formato == "csv":
            resp = HttpResponse(content_type="text/csv; charset=utf-8")
            resp["Content-Disposition"] = 'attachment; filename="financeiro.csv"'
            resp.write("\ufeff")
            w = csv.writer(resp, delimiter=";")
            w.writerow(["Evento", "Participante", "E-mail", "CPF", "Status", "Origem", "Valor", "Data"])
            for i in inscricoes_lista:
                w.writerow([
                    i.evento.titulo, i.nome, i.email, i.cpf_formatado, i.status,
                    origem_pagamento(i), f"{valor_pago(i):.2f}",
                    timezone.localtime(i.criado_em).strftime("%d/%m/%Y %H:%M"),
                ])
            w.writerow([])
            w.writerow(["Receita confirmada", f"{resumo['confirmedRevenue']:.2f}"])
            w.writerow(["Receita pendente", f"{resumo['pendingRevenue']:.2f}"])
            w.writerow(["Receita total", f"{resumo['totalRevenue']:.2f}"])
            return resp

        if formato == "export":
            return resposta_ok({
                "summary": resumo,
                "detailedRegistrations": [
                    {
                        "id": str(i.pk),
                        "eventTitle": i.evento.titulo,
                        "participantName": i.nome,
                        "participantEmail": i.email,
                        "participantCPF": i.cpf,
                        "participantPhone": i.telefone,
                        "status": i.status,
                        "paymentMethod": origem_pagamento(i),
                        "amount": valor_pago(i),
                        "registrationDate": _iso(i.criado_em),
                        "eventDate": _iso(i.evento.data_inicio),
                    }
                    for i in inscricoes_lista
                ],
            })

        return resposta_ok(resumo)
    except Exception as e:
        return erro_interno(logger, "Erro ao buscar dados financeiros", e)


# =====================================================================
# Autenticação
# =====================================================================
@require_POST
def auth_login(request):
    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = LoginForm(body)
    if not form.is_valid():
        return erros_formulario(form)

    user = User.objects.filter(email__iexact=form.cleaned_data["email"]).first()
    if not user or not user.check_password(form.cleaned_data["password"]):
        return resposta_erro("Credenciais inválidas", 401)
    if not user.is_active:
        return resposta_erro("Conta desativada. Entre em contato com o administrador.", 403)

    # o sinal user_logged_in atualiza last_login
    login(request, user, backend="django.contrib.auth.backends.ModelBackend")
    return resposta_ok({"user": usuario_json(user)}, message="Login realizado com sucesso")


@require_POST
def auth_logout(request):
    logout(request)
    return resposta_ok(None, message="Logout realizado com sucesso")


@ensure_csrf_cookie
@require_GET
def auth_me(request):
    if not request.user.is_authenticated:
        return resposta_erro("Não autenticado", 401)
    return resposta_ok({"user": usuario_json(request.user)})


# =====================================================================
# Usuários administrativos (somente SUPER_ADMIN)
# =====================================================================
@require_http_methods(["GET", "POST"])
@super_admin_required
def usuarios(request):
    if request.method == "POST":
        try:
            body = ler_json(request)
        except CorpoInvalido as e:
            return resposta_erro(str(e), 400)

        form = UsuarioForm(body)
        if not form.is_valid():
            return erros_formulario(form)
        dados = form.cleaned_data

        if User.objects.filter(Q(email__iexact=dados["email"]) | Q(username__iexact=dados["email"])).exists():
            return resposta_erro("Email já está em uso", 409)

        user = User.objects.create_user(
            username=dados["email"],
            email=dados["email"],
            password=dados["password"],
            nome=dados["name"],
            role=dados.get("role") or Papel.ADMIN,
            is_active=True if dados.get("isActive") is None else dados["isActive"],
        )
        logger.info("Usuário %s criado por %s", user.email, request.user.email)
        return resposta_ok(usuario_json(user), status=201, message="Usuário criado com sucesso")

    pagina, limite = _paginacao(request)
    qs = User.objects.order_by("-date_joined")

    termo = (request.GET.get("search") or "").strip()
    if termo:
        qs = qs.filter(Q(nome__icontains=termo) | Q(email__icontains=termo))
    if request.GET.get("role") in Papel.values:
        qs = qs.filter(role=request.GET["role"])
    if request.GET.get("isActive") in ("true", "false"):
        qs = qs.filter(is_active=request.GET["isActive"] == "true")

    return resposta_ok(_paginado(qs, pagina, limite, usuario_json))


@require_http_methods(["GET", "PUT", "DELETE"])
@super_admin_required
def usuario_detalhe(request, pk):
    user = User.objects.filter(pk=pk).first()
    if not user:
        return resposta_erro("Usuário não encontrado", 404)

    if request.method == "GET":
        return resposta_ok(usuario_json(user))

    if request.method == "DELETE":
        if user.pk == request.user.pk:
            return resposta_erro("Você não pode excluir sua própria conta", 400)
        user.delete()
        logger.info("Usuário %s excluído por %s", user.email, request.user.email)
        return resposta_ok(None, message="Usuário excluído com sucesso")

    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    body.pop("password", None)
    form = UsuarioForm(body, parcial=True)
    if not form.is_valid():
        return erros_formulario(form)
    dados = form.cleaned_data

    if dados.get("isActive") is False and user.pk == request.user.pk:
        return resposta_erro("Você não pode desativar sua própria conta", 400)

    email = dados.get("email")
    if email and email != user.email and User.objects.filter(email__iexact=email).exclude(pk=user.pk).exists():
        return resposta_erro("Email já está em uso", 409)

    if "name" in dados:
        user.nome = dados["name"]
    if email:
        user.email = email
        user.username = email
    if dados.get("role"):
        user.role = dados["role"]
    if dados.get("isActive") is not None:
        user.is_active = dados["isActive"]
    user.save()
    return resposta_ok(usuario_json(user), message="Usuário atualizado com sucesso")


@require_POST
@super_admin_required
def usuario_alternar_status(request, pk):
    user = User.objects.filter(pk=pk).first()
    if not user:
        return resposta_erro("Usuário não encontrado", 404)
    if user.pk == request.user.pk:
        return resposta_erro("Você não pode desativar sua própria conta", 400)

    user.is_active = not user.is_active
    user.save(update_fields=["is_active"])
    logger.info("Usuário %s %s por %s", user.email, "ativado" if user.is_active else "desativado", request.user.email)
    return resposta_ok(usuario_json(user), message="Status do usuário alterado com sucesso")


@require_POST
@super_admin_required
def usuario_alterar_senha(request, pk):
    user = User.objects.filter(pk=pk).first()
    if not user:
        return resposta_erro("Usuário não encontrado", 404)

    try:
        body = ler_json(request)
    except CorpoInvalido as e:
        return resposta_erro(str(e), 400)

    form = AlterarSenhaForm(body)
    if not form.is_valid():
        return erros_formulario(form)

    user.set_password(form.cleaned_data["newPassword"])
    user.save(update_fields=["password"])
    logger.info("Senha do usuário %s alterada por %s", user.email, request.user.email)
    return resposta_ok(None, message="Senha alterada com sucesso")


# =====================================================================
# Upload de imagem (banner do evento)
# =====================================================================
@require_POST
@admin_required
def upload_imagem(request):
    try:
        dados = enviar_imagem(request.FILES.get("file"))
    except UploadInvalido as e:
        return resposta_erro(str(e), 400)
    except CloudinaryNaoConfigurado as e:
        logger.error(str(e))
        return resposta_erro("Serviço de imagens não configurado", 500)
    except Exception as e:
        return erro_interno(logger, "Erro ao enviar imagem", e)
    return resposta_ok(dados, message="Imagem enviada com sucesso")
