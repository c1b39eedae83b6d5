# inscricoes/signals.py
from __future__ import annotations

import logging

from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.dispatch import receiver

logger = logging.getLogger("django")


def get_client_ip(request) -> str | None:
    if request is None:
        return None
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


# =========================
# Logs de login/logout do painel
# =========================
@receiver(user_logged_in)
def log_login(sender, request, user, **kwargs):
    logger.info("LOGIN: %s (%s) | IP: %s", user.email, user.role, get_client_ip(request))


@receiver(user_logged_out)
def log_logout(sender, request, user, **kwargs):
    # logout sem sessão chega com user=None
    logger.info("LOGOUT: %s | IP: %s", getattr(user, "email", "-"), get_client_ip(request))


@receiver(user_login_failed)
def log_login_falhou(sender, credentials, request=None, **kwargs):
    logger.warning("LOGIN FALHOU: %s | IP: %s", credentials.get("username") or credentials.get("email"), get_client_ip(request))
