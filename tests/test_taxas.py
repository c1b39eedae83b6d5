"""Calculadora de taxas, cache com TTL e validação do payment_config."""
import json
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from pagamentos.taxas import (
    CacheTaxas,
    CalculadoraTaxas,
    ConfigPagamentoInvalida,
    calcular_opcoes_pagamento,
    config_padrao,
    encontrar_opcao,
    taxa_padrao,
    validar_config_pagamento,
    validar_opcao_pagamento,
)


def _config(pix=True, credito=True, debito=True, parcelas=12, repasse=True, **extra_credito):
    return {
        "methods": {
            "pix": {"enabled": pix, "passthrough_fee": repasse},
            "credit_card": {"enabled": credito, "max_installments": parcelas, "passthrough_fee": repasse, **extra_credito},
            "debit_card": {"enabled": debito, "passthrough_fee": repasse},
        },
        "default_method": "pix",
    }


def test_config_padrao_gera_14_opcoes_sem_repasse():
    calculo = calcular_opcoes_pagamento(Decimal("100.00"))

    opcoes = calculo["available_methods"]
    assert len(opcoes) == 14
    assert [o["method"] for o in opcoes[:2]] == ["pix", "debit_card"]
    assert [o["installments"] for o in opcoes[2:]] == list(range(1, 13))
    assert all(o["final_value"] == Decimal("100.00") for o in opcoes)
    assert all(o["fee_amount"] == 0 for o in opcoes)
    assert calculo["default_method"] == "pix"


def test_repasse_de_taxa_no_credito_parcelado():
    calculo = calcular_opcoes_pagamento(Decimal("100.00"), _config())

    opcao = encontrar_opcao(calculo, "credit_card", 3)
    assert opcao["fee_percentage"] == Decimal("0.0699")
    assert opcao["final_value"] == Decimal("106.99")
    assert opcao["description"].startswith("Cartão de Crédito 3x de R$ 35.66")
    assert "(+ 6.99% taxa)" in opcao["description"]


def test_taxa_do_credito_cresce_com_as_parcelas():
    calculo = calcular_opcoes_pagamento(Decimal("80.00"), _config())
    credito = [o for o in calculo["available_methods"] if o["method"] == "credit_card"]

    finais = [o["final_value"] for o in credito]
    assert finais == sorted(finais)
    assert len(set(finais)) == 12


def test_arredondamento_half_up_so_no_valor_final():
    calculo = calcular_opcoes_pagamento(Decimal("10.05"), _config())
    pix = encontrar_opcao(calculo, "pix")

    assert pix["fee_amount"] == Decimal("10.05") * Decimal("0.0099")
    assert pix["final_value"] == Decimal("10.15")

    cfg = _config()
    cfg["methods"]["pix"]["custom_fee"] = 0.0001
    pix = encontrar_opcao(calcular_opcoes_pagamento(Decimal("50.00"), cfg), "pix")
    assert pix["final_value"] == Decimal("50.01")


def test_taxa_customizada_zero_usa_tabela_padrao():
    cfg = _config(parcelas=3, custom_fees={"3": 0})
    cfg["methods"]["debit_card"]["custom_fee"] = 0
    cfg["methods"]["pix"]["custom_fee"] = 0
    calculo = calcular_opcoes_pagamento(Decimal("100"), cfg)

    debito = encontrar_opcao(calculo, "debit_card")
    assert debito["fee_percentage"] == Decimal("0.0299")
    assert debito["final_value"] == Decimal("102.99")
    assert encontrar_opcao(calculo, "pix")["final_value"] == Decimal("100.99")
    assert encontrar_opcao(calculo, "credit_card", 3)["final_value"] == Decimal("106.99")


def test_custom_fees_por_parcela():
    cfg = _config(parcelas=2, custom_fees={"2": 0.05})
    calculo = calcular_opcoes_pagamento(Decimal("200"), cfg)

    assert encontrar_opcao(calculo, "credit_card", 1)["fee_percentage"] == Decimal("0.0499")
    assert encontrar_opcao(calculo, "credit_card", 2)["final_value"] == Decimal("210.00")


def test_metodos_desabilitados_ficam_de_fora():
    calculo = calcular_opcoes_pagamento(Decimal("100"), _config(pix=False, debito=False, parcelas=3))

    assert {o["method"] for o in calculo["available_methods"]} == {"credit_card"}
    assert len(calculo["available_methods"]) == 3


def test_config_sem_methods_e_valor_negativo():
    with pytest.raises(ConfigPagamentoInvalida):
        calcular_opcoes_pagamento(Decimal("100"), {"default_method": "pix"})
    with pytest.raises(ValueError):
        calcular_opcoes_pagamento(Decimal("-1"))


def test_taxa_padrao():
    assert taxa_padrao("pix") == Decimal("0.0099")
    assert taxa_padrao("credit_card", 12) == Decimal("0.1599")
    assert taxa_padrao("credit_card", 99) == Decimal("0.0499")


def test_validar_opcao_pagamento():
    cfg = _config(parcelas=6, debito=False)

    assert validar_opcao_pagamento("pix", None, cfg)
    assert validar_opcao_pagamento("credit_card", 6, cfg)
    assert not validar_opcao_pagamento("credit_card", 7, cfg)
    assert not validar_opcao_pagamento("debit_card", None, cfg)
    assert not validar_opcao_pagamento("boleto", None, cfg)
    assert not validar_opcao_pagamento("pix", None, {"sem": "methods"})
    assert validar_opcao_pagamento("credit_card", 12, None)


# ---------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------
class Relogio:
    def __init__(self):
        self.agora = 1000.0

    def __call__(self):
        return self.agora


def test_cache_expira_pelo_relogio_injetado():
    relogio = Relogio()
    calc = CalculadoraTaxas(CacheTaxas(ttl=60, relogio=relogio))

    primeiro = calc.calcular_opcoes(Decimal("100"), _config())
    assert len(calc.cache) == 1

    relogio.agora += 59
    assert calc.cache.get((str(Decimal("100")), _chave_config(_config()))) is not None

    relogio.agora += 1
    assert calc.cache.get((str(Decimal("100")), _chave_config(_config()))) is None
    assert len(calc.cache) == 0

    assert calc.calcular_opcoes(Decimal("100"), _config()) == primeiro


def test_cache_descarta_vencidas_ao_gravar():
    relogio = Relogio()
    calc = CalculadoraTaxas(CacheTaxas(ttl=60, relogio=relogio))

    calc.calcular_opcoes(Decimal("100"))
    calc.calcular_opcoes(Decimal("120"))
    assert len(calc.cache) == 2

    relogio.agora += 60
    calc.calcular_opcoes(Decimal("150"))

    assert len(calc.cache) == 1
    assert calc.cache.get((str(Decimal("150")), _chave_config(None))) is not None


def _chave_config(cfg):
    return json.dumps(cfg, sort_keys=True, default=str)


def test_cache_devolve_copia():
    calc = CalculadoraTaxas(CacheTaxas(ttl=60, relogio=Relogio()))

    calculo = calc.calcular_opcoes(Decimal("100"))
    calculo["available_methods"].clear()

    assert len(calc.calcular_opcoes(Decimal("100"))["available_methods"]) == 14


def test_chave_do_cache_inclui_config():
    calc = CalculadoraTaxas(CacheTaxas(ttl=60, relogio=Relogio()))

    sem_repasse = calc.calcular_opcoes(Decimal("100"), config_padrao())
    com_repasse = calc.calcular_opcoes(Decimal("100"), _config())

    assert encontrar_opcao(sem_repasse, "pix")["final_value"] == Decimal("100.00")
    assert encontrar_opcao(com_repasse, "pix")["final_value"] == Decimal("100.99")
    assert len(calc.cache) == 2


# ---------------------------------------------------------------------
# Validação do payment_config
# ---------------------------------------------------------------------
def test_validar_config_pagamento_ok():
    cfg = validar_config_pagamento(_config(parcelas=4))
    assert cfg["methods"]["credit_card"]["max_installments"] == 4
    assert cfg["default_method"] == "pix"


def test_validar_config_pagamento_aponta_o_campo():
    cfg = _config(parcelas=13)
    cfg["methods"]["pix"]["custom_fee"] = 1.5
    cfg["methods"]["debit_card"]["enabled"] = "sim"

    with pytest.raises(ValidationError) as exc:
        validar_config_pagamento(cfg)

    erros = exc.value.message_dict
    assert "methods.credit_card.max_installments" in erros
    assert "methods.pix.custom_fee" in erros
    assert "methods.debit_card.enabled" in erros


def test_validar_config_pagamento_sem_methods():
    with pytest.raises(ValidationError) as exc:
        validar_config_pagamento({"default_method": "pix"})
    assert "methods" in exc.value.message_dict
