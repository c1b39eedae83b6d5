# inscricoes/utils/phones.py
import re
from typing import Dict, Optional


def _digitos_nacionais(raw: str) -> Optional[str]:
    # pega só dígitos
    dig = re.sub(r'\D', '', raw or '')

    # remove zero inicial do DDD (algumas pessoas digitam 0DDD)
    if dig.startswith('0'):
        dig = dig[1:]

    # remove DDI 55 se já vier com ele (só quando sobra um número completo)
    if dig.startswith('55') and len(dig) in (12, 13):
        dig = dig[2:]

    # agora deve restar 10 (fixo) ou 11 (celular) dígitos
    if len(dig) not in (10, 11):
        return None
    return dig


def normalizar_e164_br(raw: str) -> Optional[str]:
    """
    Converte telefones BR variados p/ E.164: +55 + (10|11) dígitos.
    Aceita coisas como: '063 92001-3103', '(63) 2001-3103', '+55 63 92001-3103', '063920013103', etc.
    Retorna None se não conseguir normalizar.
    """
    if not raw:
        return None
    dig = _digitos_nacionais(raw)
    return f'+55{dig}' if dig else None



def telefone_para_mp(raw: str) -> Dict[str, str]:
    """
    Formato de telefone do payer no Mercado Pago: {"area_code": "63", "number": "920013103"}.
    Sem DDD reconhecível, manda só os dígitos em "number".
    """
    dig = _digitos_nacionais(raw or '')
    if not dig:
        return {"area_code": "", "number": re.sub(r'\D', '', raw or '')}
    return {"area_code": dig[:2], "number": dig[2:]}
