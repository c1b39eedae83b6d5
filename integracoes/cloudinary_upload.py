# integracoes/cloudinary_upload.py
from __future__ import annotations

import logging
from typing import Any, Dict

import cloudinary
import cloudinary.uploader
from django.conf import settings

logger = logging.getLogger(__name__)

TIPOS_PERMITIDOS = ("image/jpeg", "image/jpg", "image/png", "image/webp")
TAMANHO_MAXIMO = 5 * 1024 * 1024  # 5MB


class UploadInvalido(ValueError):
    pass


class CloudinaryNaoConfigurado(RuntimeError):
    pass


# ------------------------------------------------------------------------------
# Config dinâmica (não "congela" credenciais no import)
# ------------------------------------------------------------------------------
def _configurar() -> None:
    nome = getattr(settings, "CLOUDINARY_CLOUD_NAME", "")
    chave = getattr(settings, "CLOUDINARY_API_KEY", "")
    segredo = getattr(settings, "CLOUDINARY_API_SECRET", "")
    if not (nome and chave and segredo):
        raise CloudinaryNaoConfigurado(
            "Config Cloudinary ausente: defina CLOUDINARY_CLOUD_NAME, CLOUDINARY_API_KEY e CLOUDINARY_API_SECRET."
        )
    cloudinary.config(cloud_name=nome, api_key=chave, api_secret=segredo, secure=True)


def validar_arquivo(arquivo) -> None:
    if arquivo is None:
        raise UploadInvalido("Nenhum arquivo foi enviado")
    if (arquivo.content_type or "").lower() not in TIPOS_PERMITIDOS:
        raise UploadInvalido("Tipo de arquivo não permitido. Use: JPEG, PNG ou WebP")
    if arquivo.size > TAMANHO_MAXIMO:
        raise UploadInvalido("Arquivo muito grande. Tamanho máximo: 5MB")


def enviar_imagem(arquivo) -> Dict[str, Any]:
    """
    Valida e envia a imagem (banner de evento) para o Cloudinary, convertida em WebP.
    Retorna ``{"url", "filename", "size", "type"}``.
    """
    validar_arquivo(arquivo)
    _configurar()

    resultado = cloudinary.uploader.upload(
        arquivo,
        folder=getattr(settings, "CLOUDINARY_PASTA", "event-remir/events"),
        resource_type="image",
        format="webp",
        quality="auto:good",
    )
    url = resultado.get("secure_url") or resultado.get("url")
    logger.info("Imagem %s enviada ao Cloudinary: %s", arquivo.name, url)
    return {
        "url": url,
        "filename": arquivo.name,
        "size": arquivo.size,
        "type": arquivo.content_type,
    }
