import uuid
from datetime import datetime
from typing import Optional

from django.contrib.auth.models import AbstractUser
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify

from .utils.cpf import somente_digitos


# ---------------------------------------------------------------------
# Usuário administrativo
# ---------------------------------------------------------------------
class Papel(models.TextChoices):
    ADMIN       = "ADMIN",       "Administrador"
    SUPER_ADMIN = "SUPER_ADMIN", "Super administrador"


class User(AbstractUser):
    nome = models.CharField(max_length=100, blank=True)
    email = models.EmailField(unique=True)
    role = models.CharField(max_length=20, choices=Papel.choices, default=Papel.ADMIN)

    def __str__(self):
        return self.nome or self.email or self.username

    def is_admin(self) -> bool:
        return self.is_superuser or self.role in (Papel.ADMIN, Papel.SUPER_ADMIN)

    def is_super_admin(self) -> bool:
        return self.is_superuser or self.role == Papel.SUPER_ADMIN


# ---------------------------------------------------------------------
# Evento
# ---------------------------------------------------------------------
class Evento(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    titulo = models.CharField(max_length=100)
    descricao = models.TextField(max_length=2000)
    slug = models.SlugField(max_length=100, unique=True, blank=True)
    local = models.CharField(max_length=200)

    data_inicio = models.DateTimeField()
    data_fim = models.DateTimeField()
    inicio_inscricoes = models.DateTimeField()
    fim_inscricoes = models.DateTimeField()

    max_participantes = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    preco = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=0,
        validators=[MinValueValidator(0)],
        verbose_name="Valor da Inscrição",
    )
    ativo = models.BooleanField(default=True)
    banner_url = models.URLField(max_length=500, blank=True, null=True)

    # métodos habilitados, parcelas e repasse de taxa (ver pagamentos.taxas)
    payment_config = models.JSONField(blank=True, null=True)

    criado_em = models.DateTimeField(auto_now_add=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-criado_em"]

    def save(self, *args, **kwargs):
        # slug único e resiliente
        if not self.slug:
            base = slugify(self.titulo)[:90] or "evento"
            slug = base
            i = 1
            while Evento.objects.filter(slug=slug).exclude(pk=self.pk).exists():
                i += 1
                slug = f"{base}-{i}"
            self.slug = slug
        super().save(*args, **kwargs)

    def __str__(self):
        return self.titulo

    def inscricoes_abertas(self, agora: Optional[datetime] = None) -> bool:
        agora = agora or timezone.now()
        return self.ativo and self.inicio_inscricoes <= agora <= self.fim_inscricoes


# ---------------------------------------------------------------------
# Inscrição
# ---------------------------------------------------------------------
class InscricaoStatus(models.TextChoices):
    PENDING        = "PENDING",        "Pagamento pendente"
    CONFIRMED      = "CONFIRMED",      "Confirmada"
    CANCELLED      = "CANCELLED",      "Cancelada"
    PAYMENT_FAILED = "PAYMENT_FAILED", "Pagamento recusado"


STATUS_TERMINAIS = {InscricaoStatus.CONFIRMED, InscricaoStatus.CANCELLED, InscricaoStatus.PAYMENT_FAILED}


class Inscricao(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    evento = models.ForeignKey(Evento, on_delete=models.CASCADE, related_name="inscricoes")

    nome = models.CharField(max_length=100)
    email = models.EmailField()
    cpf = models.CharField(max_length=11, db_index=True)
    telefone = models.CharField(max_length=20)

    status = models.CharField(
        max_length=20,
        choices=InscricaoStatus.choices,
        default=InscricaoStatus.PENDING,
        db_index=True,
    )

    # identificador "oficial" guardado para o Mercado Pago (preferência e, após o webhook, o pagamento)
    payment_id = models.CharField(max_length=120, blank=True, null=True, db_index=True)
    # identificadores candidatos usados na conciliação do webhook
    preference_id = models.CharField(max_length=120, blank=True, null=True, db_index=True)
    external_reference = models.CharField(max_length=160, blank=True, null=True, db_index=True)
    merchant_order_id = models.CharField(max_length=120, blank=True, null=True, db_index=True)

    payment_error = models.TextField(blank=True, null=True)
    payment_details = models.JSONField(blank=True, null=True)

    checked_in_at = models.DateTimeField(blank=True, null=True)

    # trava otimista para o webhook
    versao = models.PositiveIntegerField(default=0)

    criado_em = models.DateTimeField(auto_now_add=True, db_index=True)
    atualizado_em = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-criado_em"]
        indexes = [
            models.Index(fields=["evento", "cpf"], name="inscricao_evento_cpf_idx"),
        ]

    def __str__(self):
        return f"{self.nome} – {self.evento.titulo} ({self.status})"

    def save(self, *args, **kwargs):
        # CPF e telefone sempre só com dígitos
        self.cpf = somente_digitos(self.cpf)
        self.telefone = somente_digitos(self.telefone)
        super().save(*args, **kwargs)

    @property
    def is_manual(self) -> bool:
        return (self.payment_id or "").startswith("manual_")

    @property
    def cpf_formatado(self) -> str:
        d = self.cpf or ""
        return f"{d[0:3]}.{d[3:6]}.{d[6:9]}-{d[9:11]}" if len(d) == 11 else d
