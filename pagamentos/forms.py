from django import forms

from inscricoes.forms import FormAninhadoMixin, JSONDictField, OpcaoPagamentoForm, ParticipanteForm


class CriarPreferenciaForm(FormAninhadoMixin, forms.Form):
    eventId = forms.UUIDField(error_messages={"required": "ID do evento é obrigatório", "invalid": "ID do evento inválido"})
    registrationId = forms.UUIDField(required=False)
    participantData = JSONDictField()
    paymentData = JSONDictField(required=False)

    def clean(self):
        cleaned = super().clean()
        self.validar_aninhado(cleaned, "participantData", ParticipanteForm, "participante")
        self.validar_aninhado(cleaned, "paymentData", OpcaoPagamentoForm, "pagamento")
        return cleaned


class AtualizarPreferenciaForm(FormAninhadoMixin, forms.Form):
    registrationId = forms.UUIDField(error_messages={"required": "ID da inscrição é obrigatório"})
    paymentData = JSONDictField()

    def clean(self):
        cleaned = super().clean()
        self.validar_aninhado(cleaned, "paymentData", OpcaoPagamentoForm, "pagamento")
        return cleaned
