# inscricoes/middleware.py
import logging
import time

from django.utils.deprecation import MiddlewareMixin

from .signals import get_client_ip

logger = logging.getLogger('django')


class UserActivityLoggingMiddleware(MiddlewareMixin):
    """
    Loga as chamadas da API feitas por administradores autenticados:
    admin@igreja.org GET /api/registrations -> 200 45ms (ip=127.0.0.1)

    Rotas públicas (checkout, webhook, busca por CPF) ficam de fora.
    """
    INCLUDE_PREFIXES = ('/api/',)
    EXCLUDE_PREFIXES = ('/api/payments/',)

    def process_request(self, request):
        request._ua_start = time.monotonic()

    def process_response(self, request, response):
        path = getattr(request, "path", "/") or "/"
        if not path.startswith(self.INCLUDE_PREFIXES) or path.startswith(self.EXCLUDE_PREFIXES):
            return response

        user = getattr(request, "user", None)
        if not (user and user.is_authenticated):
            return response

        inicio = getattr(request, "_ua_start", None)
        dur_ms = int((time.monotonic() - inicio) * 1000) if inicio is not None else None
        ip = get_client_ip(request)

        logger.info(
            "%s %s %s -> %s %s%s",
            user.email,
            request.method,
            path,
            response.status_code,
            f"{dur_ms}ms " if dur_ms is not None else "",
            f"(ip={ip})" if ip else "",
        )
        return response
