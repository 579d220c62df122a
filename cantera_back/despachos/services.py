from decimal import Decimal

import structlog
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from catalogo.models import Camion, Chofer
from core.exceptions import ConflictError, NotFoundError, ValidationError
from evidencias.services import (
    ETAPA_CARGA,
    ETAPA_SALIDA,
    eliminar_evidencia,
    foto_requerida,
    guardar_evidencia,
)
from pedidos.models import EstadoPedido, Pedido, PedidoItem
from pedidos.services import recalcular_estado_pedido
from .estados import ESTADOS_ACTIVOS, validar_transicion
from .models import Despacho, DespachoItem, EstadoDespacho

logger = structlog.get_logger(__name__)

CERO = Decimal("0")

PEDIDOS_CERRADOS = {EstadoPedido.CANCELLED, EstadoPedido.DISPATCHED_COMPLETE}


def _cantidades_despachadas(ids_items):
    """{id_pedido_item: total despachado} para los ítems dados."""
    filas = (
        DespachoItem.objects.filter(id_pedido_item_id__in=ids_items)
        .values('id_pedido_item_id')
        .annotate(total=Sum('cantidad_despachada'))
    )
    return {fila['id_pedido_item_id']: fila['total'] for fila in filas}


def _pendientes(items):
    despachado = _cantidades_despachadas([i.pk for i in items])
    return {i.pk: i.cantidad - despachado.get(i.pk, CERO) for i in items}


@transaction.atomic
def asignar_despacho(id_pedido, id_camion, id_chofer, id_pedido_item=None, actor=None):
    """
    Crea un viaje en ASIGNADA para el pedido.

    Un camión o chofer no puede tener dos viajes abiertos a la vez; sus filas
    quedan bloqueadas mientras se verifica.
    """
    pedido = Pedido.objects.select_for_update().filter(pk=id_pedido).first()
    if pedido is None:
        raise NotFoundError("Pedido", id_pedido)

    if pedido.estado in PEDIDOS_CERRADOS:
        raise ConflictError(
            f"El pedido {pedido.numero_pedido} está {pedido.estado} y no admite nuevos despachos.",
            entidad="Pedido",
            id_entidad=pedido.pk,
        )

    items = list(pedido.items.all())
    pendientes = _pendientes(items)

    item = None
    if id_pedido_item is not None:
        item = next((i for i in items if i.pk == id_pedido_item), None)
        if item is None:
            raise ValidationError(
                f"El ítem #{id_pedido_item} no pertenece al pedido {pedido.numero_pedido}.",
                field="order_item_id"
            )
        if pendientes[item.pk] <= 0:
            raise ConflictError(
                f"El ítem #{item.pk} ya fue despachado por completo.", entidad="PedidoItem", id_entidad=item.pk
            )
    elif not any(p > 0 for p in pendientes.values()):
        raise ConflictError(
            f"El pedido {pedido.numero_pedido} no tiene cantidades pendientes.",
            entidad="Pedido",
            id_entidad=pedido.pk,
        )

    camion = Camion.objects.select_for_update().filter(pk=id_camion, activo=True).first()
    if camion is None:
        raise NotFoundError("Camion", id_camion)
    chofer = Chofer.objects.select_for_update().filter(pk=id_chofer, activo=True).first()
    if chofer is None:
        raise NotFoundError("Chofer", id_chofer)

    ocupado = Despacho.objects.filter(id_camion=camion, estado__in=ESTADOS_ACTIVOS).first()
    if ocupado is not None:
        raise ConflictError(
            f"El camión {camion.placa} ya tiene el despacho #{ocupado.pk} en curso.",
            entidad="Camion",
            id_entidad=camion.pk,
            delivery_id=ocupado.pk,
        )
    ocupado = Despacho.objects.filter(id_chofer=chofer, estado__in=ESTADOS_ACTIVOS).first()
    if ocupado is not None:
        raise ConflictError(
            f"El chofer {chofer.nombre} ya tiene el despacho #{ocupado.pk} en curso.",
            entidad="Chofer",
            id_entidad=chofer.pk,
            delivery_id=ocupado.pk,
        )

    despacho = Despacho.objects.create(
        id_pedido=pedido,
        id_camion=camion,
        id_chofer=chofer,
        id_pedido_item=item,
        estado=EstadoDespacho.ASIGNADA,
    )
    logger.info(
        "despacho_asignado",
        despacho=despacho.pk,
        pedido=pedido.pk,
        camion=camion.pk,
        chofer=chofer.pk,
        item=item.pk if item else None,
        actor=actor,
    )
    return despacho


def asignar_cantidades(despacho, cantidad, items=None):
    """
    Reparte la cantidad cargada entre los ítems del pedido y crea los
    DespachoItem.

    - despacho limitado a un ítem: todo va a ese ítem
    - ``items`` explícitos ([{"id_pedido_item", "cantidad"}]): se usan tal cual
    - si no: se llena en orden de ítem hasta cubrir la cantidad

    Nunca se asigna más de lo pendiente de un ítem (ConflictError).
    """
    # Bloquea los ítems para que dos viajes del mismo pedido no repartan a la vez
    items_pedido = list(
        PedidoItem.objects.select_for_update().filter(id_pedido_id=despacho.id_pedido_id).order_by('id_pedido_item')
    )
    pendientes = _pendientes(items_pedido)
    por_id = {i.pk: i for i in items_pedido}

    if despacho.id_pedido_item_id is not None:
        if items:
            raise ValidationError(
                "El despacho está limitado a un solo ítem; no se admite 'items'.", field="items"
            )
        plan = [(por_id[despacho.id_pedido_item_id], cantidad)]

    elif items:
        plan = []
        vistos = set()
        for i, asignacion in enumerate(items):
            item = por_id.get(asignacion["id_pedido_item"])
            if item is None:
                raise ValidationError(
                    f"El ítem #{asignacion['id_pedido_item']} no pertenece al pedido.",
                    field=f"items[{i}].order_item_id"
                )
            if item.pk in vistos:
                raise ValidationError(f"El ítem #{item.pk} está repetido.", field=f"items[{i}].order_item_id")
            if asignacion["cantidad"] <= 0:
                raise ValidationError(
                    "La cantidad despachada debe ser positiva.", field=f"items[{i}].dispatched_quantity"
                )
            vistos.add(item.pk)
            plan.append((item, asignacion["cantidad"]))

    else:
        total_pendiente = sum(pendientes.values(), CERO)
        if cantidad > total_pendiente:
            raise ConflictError(
                f"La cantidad cargada ({cantidad}) supera lo pendiente del pedido ({total_pendiente}).",
                entidad="Pedido",
                id_entidad=despacho.id_pedido_id,
                pending_quantity=str(total_pendiente),
            )
        plan = []
        restante = cantidad
        for item in items_pedido:
            if restante <= 0:
                break
            porcion = min(restante, pendientes[item.pk])
            if porcion > 0:
                plan.append((item, porcion))
                restante -= porcion

    for item, porcion in plan:
        if porcion > pendientes[item.pk]:
            raise ConflictError(
                f"La cantidad para el ítem #{item.pk} ({porcion}) supera lo pendiente ({pendientes[item.pk]}).",
                entidad="PedidoItem",
                id_entidad=item.pk,
                pending_quantity=str(pendientes[item.pk]),
            )

    creados = [
        DespachoItem.objects.create(id_despacho=despacho, id_pedido_item=item, cantidad_despachada=porcion)
        for item, porcion in plan
    ]
    logger.info(
        "cantidades_asignadas",
        despacho=despacho.pk,
        reparto={item.pk: str(porcion) for item, porcion in plan},
    )
    return creados


def _agregar_nota(despacho, estado, texto):
    if not texto:
        return
    linea = f"[{estado}] {texto}"
    despacho.notas = f"{despacho.notas}\n{linea}" if despacho.notas else linea


def _foto(despacho, etapa, foto, foto_url, guardadas):
    """Guarda la foto subida (o acepta la URL ya subida) y aplica la política."""
    if foto is not None:
        url = guardar_evidencia(foto, despacho.pk, etapa)
        guardadas.append(url)
        return url
    if foto_url:
        return foto_url
    if foto_requerida(etapa):
        raise ValidationError(f"La foto de {etapa} es obligatoria.", field="photoFile")
    return None


def _aplicar(despacho, pedido, destino, actor, datos, guardadas):
    ahora = timezone.now()

    if destino == EstadoDespacho.EN_CARGA:
        if pedido.estado == EstadoPedido.AWAITING_PAYMENT:
            raise ConflictError(
                f"El pedido {pedido.numero_pedido} está pendiente de pago; no se puede iniciar la carga.",
                entidad="Pedido",
                id_entidad=pedido.pk,
            )
        despacho.inicio_carga_por = actor
        despacho.fecha_inicio_carga = ahora

    elif destino == EstadoDespacho.CARGADA:
        cantidad = datos.get("cantidad_cargada")
        items = datos.get("items") or None
        if items:
            suma = sum((i["cantidad"] for i in items), CERO)
            if cantidad is None:
                cantidad = suma
            elif cantidad != suma:
                raise ValidationError(
                    f"La suma de 'items' ({suma}) no coincide con 'loaded_quantity' ({cantidad}).",
                    field="loaded_quantity"
                )
        if cantidad is None or cantidad <= 0:
            raise ValidationError("La cantidad cargada debe ser mayor a cero.", field="loaded_quantity")

        url = _foto(despacho, ETAPA_CARGA, datos.get("foto"), datos.get("foto_url"), guardadas)
        if url:
            despacho.foto_carga_url = url
        asignar_cantidades(despacho, cantidad, items)
        despacho.cantidad_cargada = cantidad
        despacho.cargado_por = actor
        despacho.fecha_carga = ahora

    elif destino == EstadoDespacho.SALIDA_OK:
        url = _foto(despacho, ETAPA_SALIDA, datos.get("foto"), datos.get("foto_url"), guardadas)
        if url:
            despacho.foto_salida_url = url
        despacho.salida_por = actor
        despacho.fecha_salida = ahora

    elif destino == EstadoDespacho.RECHAZADA:
        despacho.rechazado_por = actor
        despacho.fecha_rechazo = ahora
        despacho.motivo_rechazo = datos.get("motivo") or None

    _agregar_nota(despacho, destino, datos.get("notas"))
    despacho.estado = destino


def transicionar_despacho(id_despacho, estado, actor, **datos):
    """
    Avanza un despacho al ``estado`` pedido y recalcula su pedido, todo en una
    transacción.

    ``datos`` según el destino: ``cantidad_cargada``, ``items``, ``foto``
    (archivo subido), ``foto_url``, ``notas``, ``motivo``.
    Si algo falla después de guardar una foto, la foto se borra.
    """
    guardadas = []
    try:
        with transaction.atomic():
            despacho = Despacho.objects.select_for_update().filter(pk=id_despacho).first()
            if despacho is None:
                raise NotFoundError("Despacho", id_despacho)

            anterior = despacho.estado
            validar_transicion(anterior, estado)
            destino = EstadoDespacho(estado)

            pedido = Pedido.objects.get(pk=despacho.id_pedido_id)
            # Un viaje abierto de un pedido cancelado solo puede cerrarse
            if pedido.estado == EstadoPedido.CANCELLED and destino != EstadoDespacho.RECHAZADA:
                raise ConflictError(
                    f"El pedido {pedido.numero_pedido} fue cancelado; el despacho no puede avanzar.",
                    entidad="Pedido",
                    id_entidad=pedido.pk,
                )

            _aplicar(despacho, pedido, destino, actor, datos, guardadas)
            despacho.save()

            despacho.id_pedido = recalcular_estado_pedido(pedido.pk)
    except Exception:
        for url in guardadas:
            eliminar_evidencia(url)
        raise

    logger.info(
        "despacho_transicionado",
        despacho=despacho.pk,
        pedido=despacho.id_pedido_id,
        anterior=anterior,
        nuevo=despacho.estado,
        estado_pedido=despacho.id_pedido.estado,
        actor=actor,
    )
    return despacho
