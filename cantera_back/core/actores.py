from .exceptions import ValidationError


def obtener_actor(request, requerido=True):
    """
    Devuelve el id del operador que ejecuta la acción.

    La autenticación vive fuera de este servicio: si el request trae un
    usuario autenticado se usa su pk, si no se toma ``user_id`` del cuerpo
    (igual que el formulario de caja/patio/seguridad lo envía).
    """
    usuario = getattr(request, "user", None)
    if usuario is not None and usuario.is_authenticated:
        return usuario.pk

    valor = request.data.get("user_id") if hasattr(request.data, "get") else None
    if valor in (None, ""):
        if requerido:
            raise ValidationError("El campo 'user_id' es obligatorio.", field="user_id")
        return None

    try:
        actor = int(valor)
    except (TypeError, ValueError):
        raise ValidationError("El campo 'user_id' debe ser un entero.", field="user_id")
    if actor <= 0:
        raise ValidationError("El campo 'user_id' debe ser un entero positivo.", field="user_id")
    return actor
