from django.contrib import admin, messages
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, F
from django.utils import timezone
from django.utils.html import format_html

from pagamentos.receita import origem_pagamento, valor_pago

from .models import Evento, Inscricao, InscricaoStatus, User


# ======================== Eventos ======================
@admin.register(Evento)
class EventoAdmin(admin.ModelAdmin):
    list_display = ("titulo", "data_inicio", "local", "preco", "max_participantes", "total_inscricoes", "ativo")
    list_filter = ("ativo",)
    search_fields = ("titulo", "slug", "local")
    prepopulated_fields = {"slug": ("titulo",)}
    readonly_fields = ("criado_em", "atualizado_em")
    actions = ["ativar", "desativar"]

    fieldsets = (
        (None, {"fields": ("titulo", "slug", "descricao", "local", "banner_url", "ativo")}),
        ("Datas", {"fields": ("data_inicio", "data_fim", "inicio_inscricoes", "fim_inscricoes")}),
        ("Vagas e valores", {"fields": ("max_participantes", "preco", "payment_config")}),
        ("Controle", {"fields": ("criado_em", "atualizado_em")}),
    )

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_total=Count("inscricoes"))

    @admin.display(description="Inscrições", ordering="_total")
    def total_inscricoes(self, obj):
        return obj._total

    @admin.action(description="Ativar eventos selecionados")
    def ativar(self, request, queryset):
        n = queryset.update(ativo=True)
        self.message_user(request, f"{n} evento(s) ativado(s).", level=messages.SUCCESS)

    @admin.action(description="Desativar eventos selecionados")
    def desativar(self, request, queryset):
        n = queryset.update(ativo=False)
        self.message_user(request, f"{n} evento(s) desativado(s).", level=messages.SUCCESS)


# ======================== Inscrições ======================
CORES_STATUS = {
    InscricaoStatus.CONFIRMED: "#10B981",
    InscricaoStatus.PENDING: "#F59E0B",
    InscricaoStatus.CANCELLED: "#6B7280",
    InscricaoStatus.PAYMENT_FAILED: "#EF4444",
}


@admin.register(Inscricao)
class InscricaoAdmin(admin.ModelAdmin):
    list_display = ("nome", "cpf_formatado", "evento", "status_colorido", "origem", "valor", "checked_in_at", "criado_em")
    list_filter = ("status", "evento")
    search_fields = ("nome", "email", "cpf", "payment_id", "preference_id", "external_reference")
    list_select_related = ("evento",)
    readonly_fields = (
        "payment_id", "preference_id", "external_reference", "merchant_order_id",
        "payment_details", "versao", "criado_em", "atualizado_em",
    )
    actions = ["marcar_confirmada", "fazer_checkin"]

    fieldsets = (
        ("Participante", {"fields": ("evento", "nome", "email", "cpf", "telefone")}),
        ("Situação", {"fields": ("status", "payment_error", "checked_in_at")}),
        ("Mercado Pago", {"fields": ("payment_id", "preference_id", "external_reference",
                                     "merchant_order_id", "payment_details")}),
        ("Controle", {"fields": ("versao", "criado_em", "atualizado_em")}),
    )

    @admin.display(description="Status", ordering="status")
    def status_colorido(self, obj):
        return format_html(
            '<b style="color:{}">{}</b>', CORES_STATUS.get(obj.status, "#111827"), obj.get_status_display()
        )

    @admin.display(description="Origem")
    def origem(self, obj):
        return origem_pagamento(obj)

    @admin.display(description="Valor pago")
    def valor(self, obj):
        return f"R$ {valor_pago(obj):.2f}"

    @admin.action(description="Marcar como CONFIRMADA (ajuste manual)")
    def marcar_confirmada(self, request, queryset):
        n = queryset.exclude(status=InscricaoStatus.CONFIRMED).update(
            status=InscricaoStatus.CONFIRMED, payment_error=None, versao=F("versao") + 1
        )
        self.message_user(request, f"{n} inscrição(ões) confirmada(s).", level=messages.SUCCESS)

    @admin.action(description="Registrar check-in (somente confirmadas)")
    def fazer_checkin(self, request, queryset):
        n = queryset.filter(status=InscricaoStatus.CONFIRMED, checked_in_at__isnull=True).update(
            checked_in_at=timezone.now()
        )
        self.message_user(request, f"Check-in registrado para {n} inscrição(ões).", level=messages.SUCCESS)


# ======================== Usuários ======================
@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ('email', 'nome', 'role', 'is_active', 'last_login')
    list_filter = ('role', 'is_active')
    fieldsets = (
        (None, {'fields': ('username', 'password')}),
        ('Informações Pessoais', {'fields': ('nome', 'email', 'role')}),
        ('Permissões', {'fields': ('is_staff', 'is_superuser', 'is_active')}),
        ('Datas importantes', {'fields': ('last_login', 'date_joined')}),
    )
    add_fieldsets = (
        (None, {'classes': ('wide',), 'fields': ('username', 'email', 'nome', 'role', 'password1', 'password2')}),
    )
    search_fields = ('username', 'email', 'nome')
    ordering = ('email',)
