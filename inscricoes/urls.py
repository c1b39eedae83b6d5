from django.urls import path

from . import views

app_name = "inscricoes"

urlpatterns = [
    # ================== EVENTOS ==================
    path("events", views.eventos, name="eventos"),
    path("events/active", views.eventos_ativos, name="eventos_ativos"),
    path("events/<str:chave>", views.evento_detalhe, name="evento_detalhe"),
    path("events/<str:chave>/payment-methods", views.evento_metodos_pagamento, name="evento_metodos_pagamento"),

    # ================== INSCRIÇÕES ==================
    path("registrations", views.inscricoes, name="inscricoes"),
    path("registrations/stats", views.inscricoes_stats, name="inscricoes_stats"),
    path("registrations/export", views.inscricoes_export, name="inscricoes_export"),
    path("registrations/search-by-cpf", views.inscricao_por_cpf, name="inscricao_por_cpf"),
    path("registrations/<uuid:pk>", views.inscricao_detalhe, name="inscricao_detalhe"),
    path("registrations/<uuid:pk>/qrcode.png", views.inscricao_qrcode, name="inscricao_qrcode"),
    path("admin/registrations/manual", views.inscricao_manual, name="inscricao_manual"),

    # ================== CHECK-IN ==================
    path("checkin/search", views.checkin_busca, name="checkin_busca"),
    path("checkin/<uuid:pk>", views.checkin, name="checkin"),

    # ================== FINANCEIRO ==================
    path("admin/financial", views.financeiro, name="financeiro"),

    # ================== AUTH ==================
    path("auth/login", views.auth_login, name="login"),
    path("auth/logout", views.auth_logout, name="logout"),
    path("auth/me", views.auth_me, name="me"),

    # ================== USUÁRIOS ==================
    path("admin/users", views.usuarios, name="usuarios"),
    path("admin/users/<int:pk>", views.usuario_detalhe, name="usuario_detalhe"),
    path("admin/users/<int:pk>/toggle-status", views.usuario_alternar_status, name="usuario_alternar_status"),
    path("admin/users/<int:pk>/change-password", views.usuario_alterar_senha, name="usuario_alterar_senha"),

    # ================== UPLOAD ==================
    path("upload", views.upload_imagem, name="upload"),
]
