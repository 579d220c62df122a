import os

import structlog
from django.conf import settings
from django.core.files.storage import default_storage
from django.utils import timezone
from django.utils.text import get_valid_filename

from core.exceptions import EvidenceStorageError, ValidationError

logger = structlog.get_logger(__name__)

ETAPA_CARGA = "carga"
ETAPA_SALIDA = "salida"


def foto_requerida(etapa):
    """Política configurable: {carga: FOTO_REQUERIDA_EN_CARGA, salida: FOTO_REQUERIDA_EN_SALIDA}."""
    if etapa == ETAPA_CARGA:
        return settings.FOTO_REQUERIDA_EN_CARGA
    if etapa == ETAPA_SALIDA:
        return settings.FOTO_REQUERIDA_EN_SALIDA
    return False


def validar_foto(archivo, campo="photoFile"):
    tipo = getattr(archivo, "content_type", None) or ""
    if not tipo.startswith("image/"):
        raise ValidationError("La evidencia debe ser una imagen.", field=campo)
    if archivo.size == 0:
        raise ValidationError("La imagen de evidencia está vacía.", field=campo)
    if archivo.size > settings.EVIDENCIAS_TAMANO_MAXIMO:
        raise ValidationError(
            f"La imagen supera el tamaño máximo de {settings.EVIDENCIAS_TAMANO_MAXIMO} bytes.",
            field=campo
        )


def guardar_evidencia(archivo, id_despacho, etapa):
    """
    Guarda la foto de un punto de control y devuelve la URL opaca que se
    guarda tal cual en el despacho. No interpreta el contenido de la imagen.
    """
    validar_foto(archivo)

    nombre = get_valid_filename(os.path.basename(archivo.name or "foto.jpg"))
    marca = timezone.now().strftime("%Y%m%d%H%M%S%f")
    ruta = f"{settings.EVIDENCIAS_DIRECTORIO}/{id_despacho}/{etapa}_{marca}_{nombre}"

    try:
        guardado = default_storage.save(ruta, archivo)
        url = default_storage.url(guardado)
    except OSError as e:
        logger.error("evidencia_no_guardada", despacho=id_despacho, etapa=etapa, error=str(e))
        raise EvidenceStorageError(f"No se pudo guardar la foto de {etapa}: {e}")

    logger.info("evidencia_guardada", despacho=id_despacho, etapa=etapa, url=url, bytes=archivo.size)
    return url


def eliminar_evidencia(url):
    """Borra una foto ya guardada cuando la transición que la usaba no se confirmó."""
    prefijo = settings.MEDIA_URL
    if not url or not url.startswith(prefijo):
        return
    nombre = url[len(prefijo):]
    try:
        default_storage.delete(nombre)
        logger.info("evidencia_eliminada", url=url)
    except OSError as e:
        logger.warning("evidencia_huerfana", url=url, error=str(e))
