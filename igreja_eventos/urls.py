from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path("django-admin/", admin.site.urls),
    path("api/payments/", include("pagamentos.urls")),
    path("api/", include("inscricoes.urls")),
]
