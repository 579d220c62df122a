"""Errores de dominio del flujo pedido -> despacho.

Todos heredan de ``APIException`` para que DRF los traduzca al código HTTP
correspondiente; ``core.handlers.exception_handler`` les da el formato final.
"""

from rest_framework import status
from rest_framework.exceptions import APIException


class CanteraError(APIException):
    """Base de todos los errores del núcleo de despacho."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "error"
    default_detail = "Error en la operación."

    def __init__(self, mensaje=None, **contexto):
        self.mensaje = mensaje or str(self.default_detail)
        self.contexto = {k: v for k, v in contexto.items() if v is not None}
        super().__init__(detail=self.mensaje, code=self.default_code)

    def __str__(self):
        return self.mensaje

    def as_dict(self):
        data = {"error": self.mensaje, "code": self.default_code}
        data.update(self.contexto)
        return data


class ValidationError(CanteraError):
    """Datos de entrada inválidos o faltantes (incluye la foto obligatoria)."""

    default_code = "validation_error"
    default_detail = "Datos inválidos."

    def __init__(self, mensaje, field=None, **contexto):
        self.field = field
        super().__init__(mensaje, field=field, **contexto)


class InvalidStateTransitionError(CanteraError):
    """Transición de despacho fuera de la tabla de estados permitidos."""

    default_code = "invalid_state_transition"
    default_detail = "Transición de estado no permitida."

    def __init__(self, actual, destino, mensaje=None, **contexto):
        self.actual = actual
        self.destino = destino
        mensaje = mensaje or f"No se puede pasar de '{actual}' a '{destino}'."
        super().__init__(mensaje, current_state=actual, target_state=destino, **contexto)


class NotFoundError(CanteraError):
    """Entidad referenciada inexistente o inactiva."""

    status_code = status.HTTP_404_NOT_FOUND
    default_code = "not_found"
    default_detail = "No encontrado."

    def __init__(self, entidad, id_entidad, mensaje=None):
        self.entidad = entidad
        self.id_entidad = id_entidad
        mensaje = mensaje or f"{entidad} #{id_entidad} no existe o está inactivo."
        super().__init__(mensaje, entity=entidad, entity_id=id_entidad)


class ConflictError(CanteraError):
    """Operación válida por sí sola pero que rompe un invariante del agregado."""

    status_code = status.HTTP_409_CONFLICT
    default_code = "conflict"
    default_detail = "Conflicto con el estado actual."

    def __init__(self, mensaje, entidad=None, id_entidad=None, **contexto):
        self.entidad = entidad
        self.id_entidad = id_entidad
        super().__init__(mensaje, entity=entidad, entity_id=id_entidad, **contexto)


class EvidenceStorageError(CanteraError):
    """Falla del almacenamiento de fotos; la transición se revierte completa."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "evidence_storage_error"
    default_detail = "No se pudo guardar la evidencia fotográfica."
