"""
Fixtures comuns dos testes da API.

Usuários ADMIN/SUPER_ADMIN com cliente já logado, fábrica de eventos e um
SDK falso do Mercado Pago injetado no lugar do cliente real.
"""
from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone

from inscricoes.models import Evento, Inscricao, InscricaoStatus, Papel
from pagamentos.taxas import calculadora

User = get_user_model()

CPF_1 = "52998224725"
CPF_2 = "11144477735"
CPF_3 = "12345678909"


@pytest.fixture(autouse=True)
def _cache_taxas_limpo():
    calculadora.limpar_cache()
    yield
    calculadora.limpar_cache()


@pytest.fixture(autouse=True)
def _site_http(settings):
    settings.SITE_URL = "http://testserver"
    settings.MERCADO_PAGO_ACCESS_TOKEN = ""


@pytest.fixture
def usuario_admin(db):
    return User.objects.create_user(
        username="admin@igreja.org", email="admin@igreja.org", password="senha123",
        nome="Admin", role=Papel.ADMIN,
    )


@pytest.fixture
def usuario_super(db):
    return User.objects.create_user(
        username="super@igreja.org", email="super@igreja.org", password="senha123",
        nome="Super", role=Papel.SUPER_ADMIN,
    )


@pytest.fixture
def cliente_admin(client, usuario_admin):
    client.force_login(usuario_admin)
    return client


@pytest.fixture
def cliente_super(client, usuario_super):
    client.force_login(usuario_super)
    return client


@pytest.fixture
def criar_evento(db):
    def _criar(**kwargs):
        agora = timezone.now()
        dados = {
            "titulo": "Retiro de Jovens",
            "descricao": "Retiro anual de jovens da paróquia.",
            "local": "Chácara Bom Pastor",
            "data_inicio": agora + timedelta(days=20),
            "data_fim": agora + timedelta(days=22),
            "inicio_inscricoes": agora - timedelta(days=5),
            "fim_inscricoes": agora + timedelta(days=19),
            "max_participantes": 50,
            "preco": Decimal("100.00"),
        }
        dados.update(kwargs)
        return Evento.objects.create(**dados)

    return _criar


@pytest.fixture
def evento(criar_evento):
    return criar_evento()


@pytest.fixture
def criar_inscricao(db):
    def _criar(evento, cpf, **kwargs):
        dados = {
            "evento": evento,
            "nome": "Maria Souza",
            "email": "maria@exemplo.com",
            "cpf": cpf,
            "telefone": "63999990000",
            "status": InscricaoStatus.PENDING,
        }
        dados.update(kwargs)
        return Inscricao.objects.create(**dados)

    return _criar


# ---------------------------------------------------------------------
# SDK falso do Mercado Pago
# ---------------------------------------------------------------------
class _Recurso:
    def __init__(self, sdk):
        self.sdk = sdk


class _Pagamentos(_Recurso):
    def get(self, payment_id):
        self.sdk.chamadas.append(("payment.get", str(payment_id)))
        pagamento = self.sdk.pagamentos.get(str(payment_id))
        if pagamento is None:
            return {"status": 404, "response": {"message": "Payment not found"}}
        return {"status": 200, "response": pagamento}


class _Preferencias(_Recurso):
    def create(self, dados):
        self.sdk.chamadas.append(("preference.create", dados))
        return {"status": 201, "response": {
            "id": self.sdk.proximo_preference_id,
            "init_point": "https://mp.test/checkout",
            "sandbox_init_point": "https://sandbox.mp.test/checkout",
        }}

    def update(self, preference_id, dados):
        self.sdk.chamadas.append(("preference.update", preference_id, dados))
        return {"status": 200, "response": {
            "id": preference_id,
            "init_point": "https://mp.test/checkout",
            "sandbox_init_point": "https://sandbox.mp.test/checkout",
        }}


class FakeSDK:
    def __init__(self):
        self.pagamentos = {}
        self.chamadas = []
        self.proximo_preference_id = "pref-123"

    def payment(self):
        return _Pagamentos(self)

    def preference(self):
        return _Preferencias(self)

    def adicionar_pagamento(self, payment_id, **campos):
        self.pagamentos[str(payment_id)] = {"id": int(payment_id), **campos}


@pytest.fixture
def mp(monkeypatch):
    sdk = FakeSDK()
    monkeypatch.setattr("pagamentos.views.mp_client", lambda: sdk)
    monkeypatch.setattr("pagamentos.views.mp_configurado", lambda: True)
    return sdk
