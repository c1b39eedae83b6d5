# pagamentos/taxas.py
"""
Cálculo das opções de pagamento (PIX, débito e crédito 1..12x) de um evento.

As taxas padrão são as do Mercado Pago na data da contratação; cada evento
pode sobrescrevê-las em ``Evento.payment_config`` e decidir, por método, se a
taxa é repassada ao participante (``passthrough_fee``) ou absorvida pela
organização.

O mesmo cálculo é usado na criação da preferência de checkout e nos
relatórios financeiros, para que os dois lados concordem sobre o valor pago.
"""
import copy
import json
import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional

from django.conf import settings
from django.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

METODOS = ("pix", "credit_card", "debit_card")
MAX_PARCELAS = 12

# Taxas padrão do Mercado Pago (fração, não percentual)
TAXAS_PADRAO = {
    "pix": Decimal("0.0099"),
    "debit_card": Decimal("0.0299"),
    "credit_card": {
        1: Decimal("0.0499"),
        2: Decimal("0.0599"),
        3: Decimal("0.0699"),
        4: Decimal("0.0799"),
        5: Decimal("0.0899"),
        6: Decimal("0.0999"),
        7: Decimal("0.1099"),
        8: Decimal("0.1199"),
        9: Decimal("0.1299"),
        10: Decimal("0.1399"),
        11: Decimal("0.1499"),
        12: Decimal("0.1599"),
    },
}

CACHE_TTL_PADRAO = 24 * 60 * 60  # 24 horas

CENTAVOS = Decimal("0.01")


class ConfigPagamentoInvalida(ValueError):
    """payment_config presente, mas sem o mapa ``methods``."""


def _decimal(valor: Any) -> Decimal:
    if isinstance(valor, Decimal):
        return valor
    return Decimal(str(valor))


def _arredondar(valor: Decimal) -> Decimal:
    return valor.quantize(CENTAVOS, rounding=ROUND_HALF_UP)


def _percentual_txt(taxa: Decimal) -> str:
    return f"{_arredondar(taxa * 100)}%"


def config_padrao() -> Dict[str, Any]:
    """Todos os métodos habilitados, crédito até 12x, sem repasse de taxa."""
    return {
        "methods": {
            "pix": {"enabled": True, "passthrough_fee": False},
            "credit_card": {"enabled": True, "max_installments": MAX_PARCELAS, "passthrough_fee": False},
            "debit_card": {"enabled": True, "passthrough_fee": False},
        },
        "default_method": "pix",
    }


def taxa_padrao(metodo: str, parcelas: Optional[int] = None) -> Decimal:
    """Taxa da tabela padrão. Crédito sem parcelas válidas cai na taxa à vista."""
    if metodo == "pix":
        return TAXAS_PADRAO["pix"]
    if metodo == "debit_card":
        return TAXAS_PADRAO["debit_card"]
    if parcelas and 1 <= parcelas <= MAX_PARCELAS:
        return TAXAS_PADRAO["credit_card"][parcelas]
    return TAXAS_PADRAO["credit_card"][1]


# ---------------------------------------------------------------------
# Cache com TTL (relógio injetável para testes)
# ---------------------------------------------------------------------
class CacheTaxas:
    def __init__(self, ttl: float = CACHE_TTL_PADRAO, relogio: Callable[[], float] = time.time):
        self.ttl = ttl
        self._relogio = relogio
        self._itens: Dict[Any, tuple] = {}

    def get(self, chave):
        item = self._itens.get(chave)
        if item is None:
            return None
        expira_em, valor = item
        if self._relogio() >= expira_em:
            self._itens.pop(chave, None)
            return None
        return valor

    def set(self, chave, valor) -> None:
        agora = self._relogio()
        vencidas = [c for c, (expira_em, _) in self._itens.items() if agora >= expira_em]
        for c in vencidas:
            del self._itens[c]
        self._itens[chave] = (agora + self.ttl, valor)

    def clear(self) -> None:
        self._itens.clear()

    def __len__(self) -> int:
        return len(self._itens)


# ---------------------------------------------------------------------
# Calculadora
# ---------------------------------------------------------------------
class CalculadoraTaxas:
    def __init__(self, cache: Optional[CacheTaxas] = None):
        self.cache = cache if cache is not None else CacheTaxas()

    @staticmethod
    def _chave(valor_base: Decimal, config: Optional[dict]) -> tuple:
        return (str(valor_base), json.dumps(config, sort_keys=True, default=str))

    def calcular_opcoes(self, valor_base, config: Optional[dict] = None) -> Dict[str, Any]:
        """
        Retorna ``{"base_value", "available_methods", "default_method"}``.

        ``available_methods`` traz PIX e débito (se habilitados) e uma opção
        de crédito para cada parcela de 1 até ``max_installments``.
        """
        base = _decimal(valor_base)
        if base < 0:
            raise ValueError("Valor base não pode ser negativo")

        chave = self._chave(base, config)
        em_cache = self.cache.get(chave)
        if em_cache is not None:
            return copy.deepcopy(em_cache)

        cfg = config if config is not None else config_padrao()
        metodos = cfg.get("methods") if isinstance(cfg, dict) else None
        if not isinstance(metodos, dict):
            logger.error("Configuração de pagamento inválida: %r", config)
            raise ConfigPagamentoInvalida("Configuração de pagamento inválida")

        opcoes: List[Dict[str, Any]] = []

        pix = metodos.get("pix") or {}
        if pix.get("enabled"):
            opcoes.append(self._opcao_pix(base, pix))

        debito = metodos.get("debit_card") or {}
        if debito.get("enabled"):
            opcoes.append(self._opcao_debito(base, debito))

        credito = metodos.get("credit_card") or {}
        if credito.get("enabled"):
            max_parcelas = int(credito.get("max_installments") or 1)
            for parcelas in range(1, max_parcelas + 1):
                opcoes.append(self._opcao_credito(base, credito, parcelas))

        resultado = {
            "base_value": base,
            "available_methods": opcoes,
            "default_method": cfg.get("default_method"),
        }

        self.cache.set(chave, resultado)
        return copy.deepcopy(resultado)

    def limpar_cache(self) -> None:
        self.cache.clear()

    # ----- opções por método -----
    @staticmethod
    def _taxa_custom(valor) -> Optional[Decimal]:
        # 0 ou vazio = sem override, vale a tabela padrão
        if valor is None or isinstance(valor, bool):
            return None
        taxa = _decimal(valor)
        return taxa if taxa else None

    def _montar(self, metodo, base, taxa, repassa, descricao, parcelas=None) -> Dict[str, Any]:
        valor_taxa = base * taxa if repassa else Decimal("0")
        opcao = {
            "method": metodo,
            "enabled": True,
            "fee_percentage": taxa,
            "base_value": base,
            "fee_amount": valor_taxa,
            "final_value": _arredondar(base + valor_taxa),
            "description": descricao,
            "passthrough_fee": repassa,
        }
        if parcelas is not None:
            opcao["installments"] = parcelas
        return opcao

    def _opcao_pix(self, base: Decimal, cfg: dict) -> Dict[str, Any]:
        taxa = self._taxa_custom(cfg.get("custom_fee"))
        if taxa is None:
            taxa = TAXAS_PADRAO["pix"]
        repassa = bool(cfg.get("passthrough_fee"))
        descricao = "PIX - Aprovação instantânea"
        if repassa:
            descricao += f" (+ {_percentual_txt(taxa)} taxa)"
        return self._montar("pix", base, taxa, repassa, descricao)

    def _opcao_debito(self, base: Decimal, cfg: dict) -> Dict[str, Any]:
        taxa = self._taxa_custom(cfg.get("custom_fee"))
        if taxa is None:
            taxa = TAXAS_PADRAO["debit_card"]
        repassa = bool(cfg.get("passthrough_fee"))
        descricao = "Cartão de Débito"
        if repassa:
            descricao += f" (+ {_percentual_txt(taxa)} taxa)"
        return self._montar("debit_card", base, taxa, repassa, descricao)

    def _opcao_credito(self, base: Decimal, cfg: dict, parcelas: int) -> Dict[str, Any]:
        customizadas = cfg.get("custom_fees") or {}
        taxa = self._taxa_custom(customizadas.get(str(parcelas), customizadas.get(parcelas)))
        if taxa is None:
            taxa = TAXAS_PADRAO["credit_card"].get(parcelas, TAXAS_PADRAO["credit_card"][MAX_PARCELAS])
        repassa = bool(cfg.get("passthrough_fee"))

        total = base + (base * taxa if repassa else Decimal("0"))
        if parcelas == 1:
            descricao = "Cartão de Crédito à vista"
        else:
            descricao = f"Cartão de Crédito {parcelas}x de R$ {_arredondar(total / parcelas)}"
        if repassa:
            descricao += f" (+ {_percentual_txt(taxa)} taxa)"
        return self._montar("credit_card", base, taxa, repassa, descricao, parcelas=parcelas)


# instância do processo (cache compartilhado entre requests)
calculadora = CalculadoraTaxas(CacheTaxas(getattr(settings, "TAXAS_CACHE_TTL", CACHE_TTL_PADRAO)))


def calcular_opcoes_pagamento(valor_base, config: Optional[dict] = None) -> Dict[str, Any]:
    return calculadora.calcular_opcoes(valor_base, config)


def validar_opcao_pagamento(metodo: str, parcelas: Optional[int], config: Optional[dict] = None) -> bool:
    """Confere se (método, parcelas) está habilitado para o evento."""
    cfg = config if config is not None else config_padrao()
    metodos = cfg.get("methods") if isinstance(cfg, dict) else None
    if not isinstance(metodos, dict):
        logger.error("Configuração de pagamento inválida na validação: %r", config)
        return False

    if metodo == "pix":
        return bool((metodos.get("pix") or {}).get("enabled"))
    if metodo == "debit_card":
        return bool((metodos.get("debit_card") or {}).get("enabled"))
    if metodo == "credit_card":
        credito = metodos.get("credit_card") or {}
        return bool(credito.get("enabled")) and (parcelas or 1) <= int(credito.get("max_installments") or 1)
    return False


def encontrar_opcao(calculo: Dict[str, Any], metodo: str, parcelas: Optional[int] = None) -> Optional[Dict[str, Any]]:
    for opcao in calculo.get("available_methods", []):
        if opcao["method"] != metodo:
            continue
        if metodo != "credit_card" or opcao.get("installments") == (parcelas or 1):
            return opcao
    return None


# ---------------------------------------------------------------------
# Validação do payment_config salvo no evento
# ---------------------------------------------------------------------
def _fracao(valor, caminho: str, erros: Dict[str, str]) -> None:
    if valor is None:
        return
    if isinstance(valor, bool) or not isinstance(valor, (int, float, Decimal)):
        erros[caminho] = "Informe um número entre 0 e 1."
    elif not 0 <= valor <= 1:
        erros[caminho] = "A taxa deve estar entre 0 e 1."


def validar_config_pagamento(data: Any) -> Dict[str, Any]:
    """
    Valida a estrutura de ``payment_config``. Levanta ``ValidationError`` com
    o caminho de cada campo problemático (ex.: ``methods.credit_card.max_installments``).
    """
    if not isinstance(data, dict):
        raise ValidationError({"payment_config": "Configuração de pagamento deve ser um objeto."})

    metodos = data.get("methods")
    if not isinstance(metodos, dict):
        raise ValidationError({"methods": "Informe os métodos de pagamento."})

    erros: Dict[str, str] = {}
    for metodo in METODOS:
        cfg = metodos.get(metodo)
        prefixo = f"methods.{metodo}"
        if not isinstance(cfg, dict):
            erros[prefixo] = "Configuração do método ausente."
            continue
        for flag in ("enabled", "passthrough_fee"):
            if not isinstance(cfg.get(flag), bool):
                erros[f"{prefixo}.{flag}"] = "Valor booleano obrigatório."
        _fracao(cfg.get("custom_fee"), f"{prefixo}.custom_fee", erros)

        if metodo == "credit_card":
            maximo = cfg.get("max_installments")
            if isinstance(maximo, bool) or not isinstance(maximo, int) or not 1 <= maximo <= MAX_PARCELAS:
                erros[f"{prefixo}.max_installments"] = f"Informe de 1 a {MAX_PARCELAS} parcelas."
            customizadas = cfg.get("custom_fees")
            if customizadas is not None:
                if not isinstance(customizadas, dict):
                    erros[f"{prefixo}.custom_fees"] = "Informe um objeto {parcela: taxa}."
                else:
                    for chave, taxa in customizadas.items():
                        if not str(chave).isdigit():
                            erros[f"{prefixo}.custom_fees.{chave}"] = "Parcela inválida."
                        else:
                            _fracao(taxa, f"{prefixo}.custom_fees.{chave}", erros)

    padrao = data.get("default_method")
    if padrao is not None and padrao not in METODOS:
        erros["default_method"] = "Método padrão inválido."

    if erros:
        raise ValidationError(erros)

    return {"methods": {m: metodos[m] for m in METODOS}, **({"default_method": padrao} if padrao else {})}
