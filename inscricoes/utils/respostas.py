# inscricoes/utils/respostas.py
import json
import logging
from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.http import JsonResponse


class CorpoInvalido(ValueError):
    pass


class EncoderAPI(DjangoJSONEncoder):
    """Dinheiro sai como número no JSON (o front faz conta com ele)."""

    def default(self, o):
        if isinstance(o, Decimal):
            return float(o)
        return super().default(o)


def ler_json(request) -> dict:
    try:
        dados = json.loads(request.body or b"{}")
    except (ValueError, UnicodeDecodeError):
        raise CorpoInvalido("JSON inválido")
    if not isinstance(dados, dict):
        raise CorpoInvalido("JSON inválido")
    return dados


def resposta_json(payload, status: int = 200) -> JsonResponse:
    return JsonResponse(payload, status=status, encoder=EncoderAPI, safe=isinstance(payload, dict))


def resposta_ok(data=None, status: int = 200, **extra) -> JsonResponse:
    payload = {"success": True}
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return resposta_json(payload, status=status)


def resposta_erro(mensagem: str, status: int = 400, **extra) -> JsonResponse:
    return resposta_json({"error": mensagem, **extra}, status=status)


def erros_formulario(form) -> JsonResponse:
    detalhes = {campo: [str(m) for m in msgs] for campo, msgs in form.errors.items()}
    return resposta_erro("Dados inválidos", 400, details=detalhes)


def erro_interno(logger: logging.Logger, contexto: str, exc: Exception) -> JsonResponse:
    logger.exception("%s: %s", contexto, exc)
    extra = {"message": str(exc)} if settings.DEBUG else {}
    return resposta_erro("Erro interno do servidor", 500, **extra)
