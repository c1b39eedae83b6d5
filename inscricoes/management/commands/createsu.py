from django.core.management.base import BaseCommand
from django.contrib.auth import get_user_model
import os

from inscricoes.models import Papel


class Command(BaseCommand):
    help = "Cria o SUPER_ADMIN inicial do painel se não existir (idempotente)."

    def handle(self, *args, **opts):
        User = get_user_model()
        email = os.getenv("DJANGO_SUPERUSER_EMAIL", "admin@example.com").lower()
        username = os.getenv("DJANGO_SUPERUSER_USERNAME", email)
        password = os.getenv("DJANGO_SUPERUSER_PASSWORD", "admin123")
        nome = os.getenv("DJANGO_SUPERUSER_NOME", "Administrador")

        if User.objects.filter(email__iexact=email).exists():
            self.stdout.write(self.style.WARNING(f"Usuário '{email}' já existe."))
            return
        User.objects.create_superuser(
            username=username,
            email=email,
            password=password,
            nome=nome,
            role=Papel.SUPER_ADMIN,
        )
        self.stdout.write(self.style.SUCCESS(f"SUPER_ADMIN '{email}' criado."))
