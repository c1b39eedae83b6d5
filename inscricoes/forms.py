from django import forms
from django.core.exceptions import ValidationError
from django.core.validators import RegexValidator

from .models import InscricaoStatus, Papel
from .utils.cpf import somente_digitos, verificar_cpf


# ---------------------------------------------------------------------
# Campos auxiliares para payload JSON
# ---------------------------------------------------------------------
class JSONDictField(forms.Field):
    """Aceita o dict já decodificado do corpo da requisição."""

    def to_python(self, value):
        if value in self.empty_values:
            return None
        if not isinstance(value, dict):
            raise ValidationError("Informe um objeto.")
        return value


class BooleanoJSONField(forms.Field):
    """BooleanField do Django trata "false" como False, mas None como falso também; aqui None = não enviado."""

    def to_python(self, value):
        if value in (None, ""):
            return None
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.lower() in ("true", "false"):
            return value.lower() == "true"
        raise ValidationError("Valor booleano inválido.")


class FormParcial(forms.Form):
    """
    Form que, com ``parcial=True``, só valida os campos presentes no payload
    (equivalente ao PUT parcial das telas de edição).
    """

    def __init__(self, *args, parcial=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.parcial = parcial
        if parcial:
            enviados = set(self.data.keys()) if self.data else set()
            for nome in list(self.fields):
                if nome not in enviados:
                    del self.fields[nome]


# ---------------------------------------------------------------------
# Participante (checkout público e inscrição manual)
# ---------------------------------------------------------------------
class ParticipanteForm(forms.Form):
    name = forms.CharField(min_length=2, max_length=100, error_messages={
        "min_length": "Nome deve ter pelo menos 2 caracteres",
        "required": "Nome é obrigatório",
    })
    email = forms.EmailField(error_messages={"invalid": "Email inválido", "required": "Email é obrigatório"})
    cpf = forms.CharField(min_length=11, max_length=14, error_messages={"min_length": "CPF deve ter 11 dígitos"})
    phone = forms.CharField(max_length=20)

    def clean_name(self):
        return self.cleaned_data["name"].strip()

    def clean_cpf(self):
        ok, msg = verificar_cpf(self.cleaned_data.get("cpf"))
        if not ok:
            raise ValidationError(msg)
        return somente_digitos(self.cleaned_data["cpf"])

    def clean_phone(self):
        d = somente_digitos(self.cleaned_data.get("phone"))
        if len(d) < 10:
            raise ValidationError("Telefone deve ter pelo menos 10 dígitos")
        return d


class FormAninhadoMixin:
    """Valida um objeto aninhado do payload (ex.: participantData) com outro form."""

    def validar_aninhado(self, cleaned, campo, form_class, destino):
        valor = cleaned.get(campo)
        if valor is None:
            return
        sub = form_class(valor)
        if sub.is_valid():
            cleaned[destino] = sub.cleaned_data
            return
        for nome, msgs in sub.errors.items():
            for m in msgs:
                self.add_error(campo, f"{nome}: {m}")


class InscricaoManualForm(FormAninhadoMixin, forms.Form):
    eventId = forms.UUIDField(error_messages={"required": "ID do evento é obrigatório", "invalid": "ID do evento inválido"})
    participantData = JSONDictField()
    status = forms.ChoiceField(
        choices=[(s, s) for s in (InscricaoStatus.PENDING, InscricaoStatus.CONFIRMED, InscricaoStatus.CANCELLED)],
        required=False,
    )

    def clean_status(self):
        return self.cleaned_data.get("status") or InscricaoStatus.CONFIRMED

    def clean(self):
        cleaned = super().clean()
        self.validar_aninhado(cleaned, "participantData", ParticipanteForm, "participante")
        return cleaned


class InscricaoAdminForm(FormParcial):
    """Criação (POST /registrations) e edição (PUT /registrations/<id>) pelo painel."""
    name = forms.CharField(min_length=2, max_length=100)
    email = forms.EmailField()
    cpf = forms.CharField(max_length=14)
    phone = forms.CharField(max_length=20, required=False)
    status = forms.ChoiceField(choices=InscricaoStatus.choices, required=False)
    eventId = forms.UUIDField(required=False)

    def clean_cpf(self):
        ok, msg = verificar_cpf(self.cleaned_data.get("cpf"))
        if not ok:
            raise ValidationError(msg)
        return somente_digitos(self.cleaned_data["cpf"])

    def clean_phone(self):
        return somente_digitos(self.cleaned_data.get("phone"))


class BuscaCPFForm(forms.Form):
    cpf = forms.CharField(min_length=11, max_length=11, error_messages={
        "min_length": "CPF deve ter 11 dígitos",
        "max_length": "CPF inválido",
    })

    def clean_cpf(self):
        return somente_digitos(self.cleaned_data["cpf"])


class BuscaCheckinForm(forms.Form):
    query = forms.CharField(min_length=1, strip=True, error_messages={"required": "Termo de busca é obrigatório"})


# ---------------------------------------------------------------------
# Evento
# ---------------------------------------------------------------------
slug_validator = RegexValidator(r"^[a-z0-9-]+$", "Slug deve conter apenas letras minúsculas, números e hífens")


class EventoForm(FormParcial):
    title = forms.CharField(min_length=3, max_length=100, error_messages={
        "min_length": "Título deve ter pelo menos 3 caracteres",
        "max_length": "Título muito longo",
    })
    description = forms.CharField(min_length=10, max_length=2000, error_messages={
        "min_length": "Descrição deve ter pelo menos 10 caracteres",
        "max_length": "Descrição muito longa",
    })
    slug = forms.CharField(min_length=3, max_length=100, validators=[slug_validator])
    location = forms.CharField(min_length=5, max_length=200, error_messages={
        "min_length": "Local deve ter pelo menos 5 caracteres",
        "max_length": "Local muito longo",
    })
    startDate = forms.DateTimeField()
    endDate = forms.DateTimeField()
    registrationStartDate = forms.DateTimeField()
    registrationEndDate = forms.DateTimeField()
    maxParticipants = forms.IntegerField(min_value=1, error_messages={
        "min_value": "Deve permitir pelo menos 1 participante",
    })
    price = forms.DecimalField(min_value=0, max_digits=10, decimal_places=2, error_messages={
        "min_value": "Preço deve ser maior ou igual a zero",
    })
    bannerUrl = forms.URLField(required=False, max_length=500)
    isActive = BooleanoJSONField(required=False)
    paymentConfig = JSONDictField(required=False)

    # campo do form → campo do model
    MAPA_CAMPOS = {
        "title": "titulo",
        "description": "descricao",
        "slug": "slug",
        "location": "local",
        "startDate": "data_inicio",
        "endDate": "data_fim",
        "registrationStartDate": "inicio_inscricoes",
        "registrationEndDate": "fim_inscricoes",
        "maxParticipants": "max_participantes",
        "price": "preco",
        "bannerUrl": "banner_url",
        "isActive": "ativo",
        "paymentConfig": "payment_config",
    }

    def __init__(self, *args, evento=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.evento = evento

    def clean_paymentConfig(self):
        from pagamentos.taxas import validar_config_pagamento

        config = self.cleaned_data.get("paymentConfig")
        if config is None:
            return None
        try:
            return validar_config_pagamento(config)
        except ValidationError as e:
            raise ValidationError([f"{campo}: {'; '.join(msgs)}" for campo, msgs in e.message_dict.items()])

    def _valor(self, cleaned, campo):
        # no PUT parcial, o que não veio no payload vem do evento salvo
        if campo in cleaned:
            return cleaned[campo]
        if self.evento is not None:
            return getattr(self.evento, self.MAPA_CAMPOS[campo])
        return None

    def clean(self):
        cleaned = super().clean()
        inicio, fim = self._valor(cleaned, "startDate"), self._valor(cleaned, "endDate")
        ini_insc, fim_insc = self._valor(cleaned, "registrationStartDate"), self._valor(cleaned, "registrationEndDate")

        if inicio and fim and inicio >= fim:
            self.add_error("endDate" if "endDate" in self.fields else None,
                           "Data de início deve ser anterior à data de fim")
        if ini_insc and fim_insc and ini_insc >= fim_insc:
            self.add_error("registrationEndDate" if "registrationEndDate" in self.fields else None,
                           "Data de início das inscrições deve ser anterior à data de fim")
        if fim_insc and inicio and fim_insc > inicio:
            self.add_error("registrationEndDate" if "registrationEndDate" in self.fields else None,
                           "Inscrições devem encerrar antes ou no início do evento")
        return cleaned

    def aplicar(self, evento):
        for campo, valor in self.cleaned_data.items():
            if campo == "isActive" and valor is None:
                continue
            setattr(evento, self.MAPA_CAMPOS[campo], valor if valor != "" else None)
        return evento


class OpcaoPagamentoForm(forms.Form):
    method = forms.ChoiceField(
        choices=[("pix", "PIX"), ("credit_card", "Cartão de crédito"), ("debit_card", "Cartão de débito")],
        error_messages={"invalid_choice": "Método de pagamento inválido"},
    )
    installments = forms.IntegerField(min_value=1, max_value=12, required=False, error_messages={
        "min_value": "Mínimo 1 parcela",
        "max_value": "Máximo 12 parcelas",
        "invalid": "Número de parcelas deve ser um inteiro",
    })


# ---------------------------------------------------------------------
# Usuários administrativos
# ---------------------------------------------------------------------
class LoginForm(forms.Form):
    email = forms.EmailField(error_messages={"invalid": "Email inválido"})
    password = forms.CharField(min_length=1, strip=False, error_messages={"required": "Senha é obrigatória"})


class UsuarioForm(FormParcial):
    name = forms.CharField(min_length=2, max_length=100)
    email = forms.EmailField()
    password = forms.CharField(min_length=6, max_length=100, strip=False)
    role = forms.ChoiceField(choices=Papel.choices, required=False)
    isActive = BooleanoJSONField(required=False)

    def clean_email(self):
        return self.cleaned_data["email"].lower()


class AlterarSenhaForm(forms.Form):
    newPassword = forms.CharField(min_length=6, max_length=100, strip=False, error_messages={
        "min_length": "Nova senha deve ter pelo menos 6 caracteres",
    })
    confirmPassword = forms.CharField(strip=False)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("newPassword") and cleaned.get("newPassword") != cleaned.get("confirmPassword"):
            self.add_error("confirmPassword", "Senhas não conferem")
        return cleaned
