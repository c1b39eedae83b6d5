# pagamentos/detalhes.py
"""
Estrutura versionada de ``Inscricao.payment_details``.

Formato atual (v2)::

    {"v": 2,
     "checkout": {"method", "installments", "base_value", "fee_amount", "amount_paid",
                  "preference_id", "external_reference"},
     "provider": {"payment_id", "status", "status_detail", "payment_method",
                  "transaction_amount", "date_processed",
                  "payer": {"email", "identification"}}}

Registros antigos (sem ``"v"``) guardavam só o retrato do pagamento, em
camelCase e achatado. A leitura é tolerante: campo ausente ou de tipo
inesperado vira ``None``, nunca exceção.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Set

VERSAO = 2

# chave legada (camelCase) → chave v2 da seção provider
_LEGADO_PROVIDER = {
    "paymentId": "payment_id",
    "status": "status",
    "statusDetail": "status_detail",
    "paymentMethod": "payment_method",
    "transactionAmount": "transaction_amount",
    "dateProcessed": "date_processed",
    "payer": "payer",
}

# alguns registros antigos traziam a escolha do checkout na raiz
_LEGADO_CHECKOUT = {
    "method": "method",
    "installments": "installments",
    "baseValue": "base_value",
    "feeAmount": "fee_amount",
    "finalValue": "amount_paid",
}


def _dict(valor) -> Dict[str, Any]:
    return dict(valor) if isinstance(valor, dict) else {}


def _decimal_ou_none(valor) -> Optional[Decimal]:
    if valor is None or isinstance(valor, bool):
        return None
    try:
        return Decimal(str(valor))
    except (InvalidOperation, ValueError):
        return None


def _texto(valor) -> Optional[str]:
    if valor is None or valor == "":
        return None
    return str(valor)


class DetalhesPagamento:
    def __init__(self, checkout: Optional[dict] = None, provider: Optional[dict] = None, legado: bool = False):
        self.checkout: Dict[str, Any] = _dict(checkout)
        self.provider: Dict[str, Any] = _dict(provider)
        self.legado = legado

    # ----- leitura -----
    @classmethod
    def de_json(cls, blob) -> "DetalhesPagamento":
        if not isinstance(blob, dict):
            return cls()

        if blob.get("v") == VERSAO:
            return cls(checkout=blob.get("checkout"), provider=blob.get("provider"))

        provider = {novo: blob[antigo] for antigo, novo in _LEGADO_PROVIDER.items() if antigo in blob}
        checkout = {novo: blob[antigo] for antigo, novo in _LEGADO_CHECKOUT.items() if antigo in blob}
        return cls(checkout=checkout, provider=provider, legado=True)

    def para_json(self) -> Dict[str, Any]:
        return {"v": VERSAO, "checkout": dict(self.checkout), "provider": dict(self.provider)}

    # ----- escrita -----
    def registrar_checkout(self, opcao: Dict[str, Any], preference_id=None, external_reference=None) -> None:
        """Guarda a opção escolhida (saída da CalculadoraTaxas) para o relatório financeiro."""
        self.checkout = {
            "method": opcao.get("method"),
            "installments": opcao.get("installments") or 1,
            "base_value": str(opcao.get("base_value")),
            "fee_amount": str(opcao.get("fee_amount")),
            "amount_paid": str(opcao.get("final_value")),
            "preference_id": _texto(preference_id),
            "external_reference": _texto(external_reference),
        }

    def registrar_provider(self, pagamento: Dict[str, Any], agora_iso: str) -> None:
        """Retrato do pagamento consultado no Mercado Pago (substitui o anterior)."""
        payer = _dict(pagamento.get("payer"))
        self.provider = {
            "payment_id": _texto(pagamento.get("id")),
            "status": pagamento.get("status"),
            "status_detail": pagamento.get("status_detail"),
            "payment_method": pagamento.get("payment_method_id"),
            "transaction_amount": pagamento.get("transaction_amount"),
            "date_processed": pagamento.get("date_approved") or agora_iso,
            "payer": {
                "email": payer.get("email"),
                "identification": payer.get("identification"),
            },
        }

    # ----- consulta -----
    @property
    def metodo(self) -> Optional[str]:
        metodo = self.checkout.get("method")
        return metodo if isinstance(metodo, str) else None

    @property
    def parcelas(self) -> int:
        try:
            return int(self.checkout.get("installments") or 1)
        except (TypeError, ValueError):
            return 1

    @property
    def valor_pago(self) -> Optional[Decimal]:
        return _decimal_ou_none(self.checkout.get("amount_paid"))

    @property
    def transaction_amount(self) -> Optional[Decimal]:
        return _decimal_ou_none(self.provider.get("transaction_amount"))

    @property
    def status_provider(self) -> Optional[str]:
        return self.provider.get("status")

    def identificadores(self) -> Set[str]:
        """Ids gravados no blob que servem para casar uma notificação do Mercado Pago."""
        ids = {
            _texto(self.checkout.get("preference_id")),
            _texto(self.checkout.get("external_reference")),
            _texto(self.provider.get("payment_id")),
        }
        ids.discard(None)
        return ids

    def __bool__(self) -> bool:
        return bool(self.checkout or self.provider)

    def __repr__(self) -> str:
        return f"DetalhesPagamento(checkout={self.checkout!r}, provider={self.provider!r})"
