# inscricoes/notificacoes.py
import logging

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.utils import timezone

logger = logging.getLogger(__name__)


def _link_comprovante(inscricao) -> str:
    return f"{settings.SITE_URL}/api/registrations/{inscricao.pk}/qrcode.png"


def enviar_confirmacao_inscricao(inscricao) -> bool:
    """
    E-mail de inscrição confirmada. Falha no envio só gera log: o pagamento
    já foi gravado e o webhook não pode voltar erro por causa disso.
    """
    if not inscricao.email:
        logger.warning("Inscrição %s confirmada sem e-mail para avisar.", inscricao.pk)
        return False

    evento = inscricao.evento
    inicio = timezone.localtime(evento.data_inicio).strftime("%d/%m/%Y %H:%M")
    assunto = f"Inscrição confirmada – {evento.titulo}"
    texto = (
        f"Olá {inscricao.nome},\n\n"
        f"Seu pagamento foi aprovado e sua inscrição em {evento.titulo} está confirmada.\n\n"
        f"Data: {inicio}\n"
        f"Local: {evento.local}\n\n"
        f"Apresente o QR code do comprovante no check-in:\n{_link_comprovante(inscricao)}\n\n"
        "Deus abençoe!"
    )
    html = (
        f"<p>Olá <strong>{inscricao.nome}</strong>,</p>"
        f"<p>Seu pagamento foi aprovado e sua inscrição em <strong>{evento.titulo}</strong> está confirmada.</p>"
        f"<p>Data: {inicio}<br>Local: {evento.local}</p>"
        f'<p><img src="{_link_comprovante(inscricao)}" alt="QR code do comprovante"></p>'
        "<p>Deus abençoe!</p>"
    )

    try:
        msg = EmailMultiAlternatives(assunto, texto, settings.DEFAULT_FROM_EMAIL, [inscricao.email])
        msg.attach_alternative(html, "text/html")
        msg.send()
        logger.info("E-mail de confirmação enviado para %s (inscrição %s).", inscricao.email, inscricao.pk)
        return True
    except Exception as e:
        logger.exception("Falha ao enviar confirmação para %s: %s", inscricao.email, e)
        return False
