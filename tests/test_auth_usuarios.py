"""Login por sessão e gestão de usuários do painel (SUPER_ADMIN)."""
import json

import pytest
from django.contrib.auth import get_user_model

from inscricoes.models import Papel

User = get_user_model()


def _post(client, url, payload=None):
    return client.post(url, json.dumps(payload or {}), content_type="application/json")


@pytest.mark.django_db
def test_login_me_logout(client, usuario_admin):
    assert client.get("/api/auth/me").status_code == 401

    resp = _post(client, "/api/auth/login", {"email": "ADMIN@igreja.org", "password": "senha123"})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Login realizado com sucesso"
    assert resp.json()["data"]["user"]["role"] == "ADMIN"

    usuario_admin.refresh_from_db()
    assert usuario_admin.last_login is not None

    me = client.get("/api/auth/me")
    assert me.json()["data"]["user"]["email"] == "admin@igreja.org"

    assert _post(client, "/api/auth/logout").status_code == 200
    assert client.get("/api/auth/me").status_code == 401


@pytest.mark.django_db
def test_login_invalido_e_conta_inativa(client, usuario_admin):
    resp = _post(client, "/api/auth/login", {"email": "admin@igreja.org", "password": "errada"})
    assert resp.status_code == 401
    assert resp.json()["error"] == "Credenciais inválidas"

    usuario_admin.is_active = False
    usuario_admin.save()
    resp = _post(client, "/api/auth/login", {"email": "admin@igreja.org", "password": "senha123"})
    assert resp.status_code == 403


@pytest.mark.django_db
def test_admin_comum_nao_gerencia_usuarios(cliente_admin):
    assert cliente_admin.get("/api/admin/users").status_code == 403


@pytest.mark.django_db
def test_crud_de_usuarios(cliente_super):
    resp = _post(cliente_super, "/api/admin/users", {
        "name": "Novo Admin", "email": "Novo@Igreja.org", "password": "segredo1", "role": "ADMIN",
    })
    assert resp.status_code == 201
    novo = resp.json()["data"]
    assert novo["email"] == "novo@igreja.org"
    assert novo["isActive"] is True

    assert _post(cliente_super, "/api/admin/users", {
        "name": "Outro", "email": "novo@igreja.org", "password": "segredo1",
    }).status_code == 409

    lista = cliente_super.get("/api/admin/users", {"role": "ADMIN"}).json()["data"]
    assert [u["email"] for u in lista["items"]] == ["novo@igreja.org"]

    resp = cliente_super.put(f"/api/admin/users/{novo['id']}", json.dumps({"name": "Renomeado", "role": "SUPER_ADMIN"}),
                             content_type="application/json")
    assert resp.status_code == 200
    assert User.objects.get(pk=novo["id"]).role == Papel.SUPER_ADMIN

    resp = _post(cliente_super, f"/api/admin/users/{novo['id']}/toggle-status")
    assert resp.json()["data"]["isActive"] is False

    resp = _post(cliente_super, f"/api/admin/users/{novo['id']}/change-password",
                 {"newPassword": "nova123", "confirmPassword": "nova123"})
    assert resp.status_code == 200
    assert User.objects.get(pk=novo["id"]).check_password("nova123")

    assert cliente_super.delete(f"/api/admin/users/{novo['id']}").status_code == 200
    assert not User.objects.filter(pk=novo["id"]).exists()


@pytest.mark.django_db
def test_super_admin_nao_desativa_nem_exclui_a_si_mesmo(cliente_super, usuario_super):
    url = f"/api/admin/users/{usuario_super.pk}"

    assert _post(cliente_super, f"{url}/toggle-status").status_code == 400
    assert cliente_super.put(url, json.dumps({"isActive": False}), content_type="application/json").status_code == 400
    assert cliente_super.delete(url).status_code == 400
    usuario_super.refresh_from_db()
    assert usuario_super.is_active


@pytest.mark.django_db
def test_troca_de_senha_com_confirmacao_diferente(cliente_super, usuario_admin):
    resp = _post(cliente_super, f"/api/admin/users/{usuario_admin.pk}/change-password",
                 {"newPassword": "nova123", "confirmPassword": "outra123"})

    assert resp.status_code == 400
    assert "Senhas não conferem" in resp.json()["details"]["confirmPassword"]
