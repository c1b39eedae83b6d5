# inscricoes/utils/cpf.py
import re
from typing import Optional, Tuple


def somente_digitos(valor: Optional[str]) -> str:
    return re.sub(r'\D', '', valor or '')


def validar_digitos_cpf(cpf: str) -> bool:
    """
    Valida os dois dígitos verificadores (algoritmo da Receita Federal).
    Aceita CPF com ou sem máscara.
    """
    d = somente_digitos(cpf)
    if len(d) != 11:
        return False

    # 111.111.111-11 e afins passam na conta, mas não existem
    if d == d[0] * 11:
        return False

    nums = [int(c) for c in d]

    soma = sum(nums[i] * (10 - i) for i in range(9))
    resto = soma % 11
    primeiro = 0 if resto < 2 else 11 - resto
    if nums[9] != primeiro:
        return False

    soma = sum(nums[i] * (11 - i) for i in range(10))
    resto = soma % 11
    segundo = 0 if resto < 2 else 11 - resto
    return nums[10] == segundo


def verificar_cpf(cpf: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Retorna (valido, mensagem_de_erro) para exibir no formulário."""
    if not cpf:
        return False, "CPF é obrigatório"

    d = somente_digitos(cpf)
    if not d:
        return False, "CPF não pode estar vazio"
    if len(d) < 11:
        return False, "CPF incompleto"
    if len(d) > 11:
        return False, "CPF deve ter exatamente 11 dígitos"
    if d == d[0] * 11:
        return False, "CPF inválido (todos os dígitos são iguais)"
    if not validar_digitos_cpf(d):
        return False, "CPF inválido (dígitos verificadores incorretos)"
    return True, None
