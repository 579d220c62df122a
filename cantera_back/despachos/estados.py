"""
Máquina de estados de un despacho (viaje).

    ASIGNADA -> EN_CARGA -> CARGADA -> SALIDA_OK
    ASIGNADA | EN_CARGA -> RECHAZADA

Lineal, sin saltos. SALIDA_OK y RECHAZADA son terminales.
"""

from core.exceptions import InvalidStateTransitionError
from .models import EstadoDespacho


TRANSICIONES_VALIDAS = {
    EstadoDespacho.ASIGNADA: {EstadoDespacho.EN_CARGA, EstadoDespacho.RECHAZADA},
    EstadoDespacho.EN_CARGA: {EstadoDespacho.CARGADA, EstadoDespacho.RECHAZADA},
    EstadoDespacho.CARGADA: {EstadoDespacho.SALIDA_OK},
    EstadoDespacho.SALIDA_OK: set(),  # terminal
    EstadoDespacho.RECHAZADA: set(),  # terminal
}

ESTADOS_TERMINALES = frozenset(e for e, destinos in TRANSICIONES_VALIDAS.items() if not destinos)
ESTADOS_ACTIVOS = frozenset(set(EstadoDespacho) - ESTADOS_TERMINALES)

# Con carga física en el camión: el pedido ya no se puede cancelar
ESTADOS_CON_CARGA = frozenset({EstadoDespacho.CARGADA, EstadoDespacho.SALIDA_OK})


def es_terminal(estado):
    return EstadoDespacho(estado) in ESTADOS_TERMINALES


def siguientes_estados(estado):
    """Acciones que la UI puede ofrecer para un despacho en ``estado``."""
    return sorted(TRANSICIONES_VALIDAS[EstadoDespacho(estado)])


def validar_transicion(actual, destino):
    try:
        actual = EstadoDespacho(actual)
        destino = EstadoDespacho(destino)
    except ValueError:
        raise InvalidStateTransitionError(actual, destino, mensaje=f"Estado de despacho desconocido: '{destino}'.")

    if destino not in TRANSICIONES_VALIDAS[actual]:
        if actual in ESTADOS_TERMINALES:
            mensaje = f"El despacho está en '{actual}' (estado final) y no admite más cambios."
        else:
            mensaje = f"No se puede pasar de '{actual}' a '{destino}'."
        raise InvalidStateTransitionError(actual.value, destino.value, mensaje=mensaje)
