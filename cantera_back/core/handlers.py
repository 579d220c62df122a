import structlog
from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions as drf_exceptions
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler, set_rollback

from .exceptions import CanteraError

logger = structlog.get_logger(__name__)

NO_CAMPO = "non_field_errors"


def _aplanar_errores(detalle, prefijo=""):
    """Convierte los errores anidados de un serializer en {campo: [mensajes]}."""
    if isinstance(detalle, dict):
        salida = {}
        for campo, valor in detalle.items():
            if campo == NO_CAMPO and prefijo:
                nombre = prefijo
            elif isinstance(campo, int):
                # DRF reciente indexa los errores de many=True con un dict {posición: errores}
                nombre = f"{prefijo}[{campo}]"
            else:
                nombre = f"{prefijo}.{campo}" if prefijo else str(campo)
            salida.update(_aplanar_errores(valor, nombre))
        return salida
    if isinstance(detalle, list):
        if all(not isinstance(v, (dict, list)) for v in detalle):
            return {prefijo or NO_CAMPO: [str(v) for v in detalle]}
        salida = {}
        for i, valor in enumerate(detalle):
            salida.update(_aplanar_errores(valor, f"{prefijo}[{i}]"))
        return salida
    return {prefijo or NO_CAMPO: [str(detalle)]}


def exception_handler(exc, context):
    """
    Manejador global de DRF: todo error sale como {"error": ..., "code": ...}
    con un mensaje apto para mostrarse directamente al operador.
    """
    vista = context.get("view").__class__.__name__ if context.get("view") else None

    if isinstance(exc, CanteraError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("error_dominio", vista=vista, codigo=exc.default_code, mensaje=exc.mensaje, **exc.contexto)
        set_rollback()
        return Response(exc.as_dict(), status=exc.status_code)

    if isinstance(exc, Http404):
        exc = drf_exceptions.NotFound()
    elif isinstance(exc, PermissionDenied):
        exc = drf_exceptions.PermissionDenied()

    response = drf_exception_handler(exc, context)
    if response is None:
        # Error inesperado: lo dejamos propagar como 500
        logger.error("error_no_controlado", vista=vista, exc_info=exc)
        return None

    if isinstance(exc, drf_exceptions.ValidationError):
        campos = _aplanar_errores(exc.detail)
        primer_campo, mensajes = next(iter(campos.items()), (NO_CAMPO, ["Datos inválidos."]))
        response.data = {
            "error": mensajes[0] if primer_campo == NO_CAMPO else f"{primer_campo}: {mensajes[0]}",
            "code": "validation_error",
            "field": None if primer_campo == NO_CAMPO else primer_campo,
            "details": campos,
        }
    else:
        codigo = exc.get_codes()
        response.data = {"error": str(exc.detail), "code": codigo if isinstance(codigo, str) else "error"}

    logger.warning("error_api", vista=vista, status=response.status_code, error=response.data["error"])
    return response
