# -*- coding: utf-8 -*-
import random
from datetime import timedelta
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
from django.db import transaction
from django.utils import timezone

from inscricoes.models import Evento, Inscricao, InscricaoStatus, Papel
from pagamentos.detalhes import DetalhesPagamento
from pagamentos.taxas import calcular_opcoes_pagamento, encontrar_opcao

User = get_user_model()

# ----------------- Configs -----------------
FIRST = ["Ana", "Bruno", "Carla", "Diego", "Elisa", "Felipe", "Gabriela", "Heitor", "Isabela", "João"]
SOBRENOMES = ["Silva", "Souza", "Oliveira", "Pereira", "Costa", "Rodrigues", "Almeida", "Nunes"]

EVENTOS_DEMO = [
    {
        "titulo": "Retiro de Jovens 2025",
        "slug": "retiro-de-jovens-2025",
        "local": "Chácara Bom Pastor, Palmas - TO",
        "preco": Decimal("150.00"),
        "max_participantes": 80,
        "offset_dias": 20,
        "payment_config": {
            "methods": {
                "pix": {"enabled": True, "passthrough_fee": False},
                "credit_card": {"enabled": True, "max_installments": 6, "passthrough_fee": True},
                "debit_card": {"enabled": True, "passthrough_fee": True},
            },
            "default_method": "pix",
        },
    },
    {
        "titulo": "Encontro de Casais",
        "slug": "encontro-de-casais",
        "local": "Salão Paroquial São José, Gurupi - TO",
        "preco": Decimal("90.00"),
        "max_participantes": 40,
        "offset_dias": 45,
        "payment_config": None,  # tabela padrão
    },
]

METODOS_DEMO = [("pix", None), ("credit_card", 1), ("credit_card", 3), ("debit_card", None)]


# ----------------- Helpers -----------------
def cpf_valido(base9: str) -> str:
    """Completa 9 dígitos com os dois verificadores."""
    nums = [int(c) for c in base9]
    for peso_inicial in (10, 11):
        soma = sum(n * (peso_inicial - i) for i, n in enumerate(nums))
        resto = soma % 11
        nums.append(0 if resto < 2 else 11 - resto)
    return "".join(str(n) for n in nums)


def nome_fake(i: int) -> str:
    return f"{FIRST[i % len(FIRST)]} {SOBRENOMES[(i // len(FIRST)) % len(SOBRENOMES)]}"


# ======================================================
class Command(BaseCommand):
    help = "Seed de demonstração: admin, eventos com payment_config e inscrições em todos os status."

    def add_arguments(self, parser):
        parser.add_argument("--por-evento", type=int, default=12, help="Inscrições por evento")

    @transaction.atomic
    def handle(self, *args, **opts):
        self.stdout.write(self.style.MIGRATE_HEADING("==> Seed (eventos + inscrições + pagamentos)"))
        agora = timezone.now()
        rnd = random.Random(42)

        # Admin
        if not User.objects.filter(email="admin@sistema.local").exists():
            User.objects.create_superuser(
                username="admin@sistema.local",
                email="admin@sistema.local",
                password="admin123",
                nome="Administrador",
                role=Papel.SUPER_ADMIN,
            )

        contador = 0
        for dados in EVENTOS_DEMO:
            inicio = agora + timedelta(days=dados["offset_dias"])
            evento, _ = Evento.objects.get_or_create(
                slug=dados["slug"],
                defaults={
                    "titulo": dados["titulo"],
                    "descricao": f"Evento de demonstração: {dados['titulo']}.",
                    "local": dados["local"],
                    "data_inicio": inicio,
                    "data_fim": inicio + timedelta(days=2),
                    "inicio_inscricoes": agora - timedelta(days=5),
                    "fim_inscricoes": inicio - timedelta(days=1),
                    "max_participantes": dados["max_participantes"],
                    "preco": dados["preco"],
                    "payment_config": dados["payment_config"],
                },
            )
            calculo = calcular_opcoes_pagamento(evento.preco, evento.payment_config)
            status_ciclo = list(InscricaoStatus.values)

            for i in range(opts["por_evento"]):
                contador += 1
                cpf = cpf_valido(f"{100000000 + contador * 7919:09d}"[-9:])
                if Inscricao.objects.filter(evento=evento, cpf=cpf).exists():
                    continue

                status = status_ciclo[i % len(status_ciclo)]
                insc = Inscricao(
                    evento=evento,
                    nome=nome_fake(contador),
                    email=f"participante{contador}@exemplo.local",
                    cpf=cpf,
                    telefone=f"63999{contador:06d}"[:11],
                    status=status,
                )

                # a cada 4 inscrições, uma é manual (sem Mercado Pago)
                if i % 4 == 3:
                    insc.payment_id = f"manual_{int(agora.timestamp() * 1000)}_{contador:09d}"
                else:
                    metodo, parcelas = METODOS_DEMO[i % len(METODOS_DEMO)]
                    opcao = encontrar_opcao(calculo, metodo, parcelas) or calculo["available_methods"][0]
                    ref = f"event_{evento.pk}_cpf_{cpf}_{int(agora.timestamp() * 1000)}"
                    detalhes = DetalhesPagamento()
                    detalhes.registrar_checkout(opcao, f"pref-demo-{contador}", ref)
                    insc.preference_id = f"pref-demo-{contador}"
                    insc.external_reference = ref
                    insc.payment_id = str(900000 + contador) if status != InscricaoStatus.PENDING else insc.preference_id
                    insc.payment_details = detalhes.para_json()
                    if status == InscricaoStatus.PAYMENT_FAILED:
                        insc.payment_error = "Pagamento rejeitado: cc_rejected_insufficient_amount"

                if status == InscricaoStatus.CONFIRMED and rnd.random() < 0.5:
                    insc.checked_in_at = agora - timedelta(hours=rnd.randint(0, 6))
                insc.save()

            self.stdout.write(f"  • {evento.titulo}: {evento.inscricoes.count()} inscrições")

        self.stdout.write(self.style.SUCCESS("OK: eventos e inscrições de demonstração criados."))
        self.stdout.write(self.style.SUCCESS("Login admin@sistema.local / admin123 (se necessário)."))
