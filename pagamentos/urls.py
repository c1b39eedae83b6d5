from django.urls import path

from . import views

app_name = "pagamentos"

urlpatterns = [
    path("create-preference", views.criar_preferencia, name="criar_preferencia"),
    path("update-preference", views.atualizar_preferencia, name="atualizar_preferencia"),
    path("status", views.status_pagamento, name="status"),
    path("webhook", views.webhook, name="webhook"),
]
