# inscricoes/decorators.py
from functools import wraps

from .utils.respostas import resposta_erro


def _checar(user, precisa_super: bool):
    if not user or not user.is_authenticated:
        return resposta_erro("Não autenticado", 401)
    if not user.is_active:
        return resposta_erro("Usuário inativo", 403)
    permitido = user.is_super_admin() if precisa_super else user.is_admin()
    if not permitido:
        return resposta_erro("Acesso negado", 403)
    return None


def admin_required(view):
    """Equivalente JSON do @login_required + @user_passes_test dos painéis."""

    @wraps(view)
    def _wrapped(request, *args, **kwargs):
        negado = _checar(getattr(request, "user", None), precisa_super=False)
        return negado or view(request, *args, **kwargs)

    return _wrapped


def super_admin_required(view):
    @wraps(view)
    def _wrapped(request, *args, **kwargs):
        negado = _checar(getattr(request, "user", None), precisa_super=True)
        return negado or view(request, *args, **kwargs)

    return _wrapped
