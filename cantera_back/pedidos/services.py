import random
from decimal import Decimal, InvalidOperation

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from catalogo.models import Cliente, Destino, Producto
from core.exceptions import ConflictError, NotFoundError, ValidationError
from despachos.estados import ESTADOS_ACTIVOS, ESTADOS_CON_CARGA
from despachos.models import Despacho, EstadoDespacho
from .models import EstadoPedido, Pedido, PedidoItem

logger = structlog.get_logger(__name__)

# Orden de avance del pedido; CANCELLED queda fuera porque es pegajoso
RANGO_ESTADO = {
    EstadoPedido.AWAITING_PAYMENT: 0,
    EstadoPedido.PAID: 1,
    EstadoPedido.PARTIALLY_DISPATCHED: 2,
    EstadoPedido.DISPATCHED_COMPLETE: 3,
}


def generar_numero_pedido(fecha=None):
    """ORD-YYMMDD-### : prefijo por fecha + sufijo aleatorio (la unicidad la garantiza la BD)."""
    fecha = fecha or timezone.localdate()
    digitos = settings.PEDIDOS_DIGITOS_SUFIJO
    sufijo = random.randint(0, 10 ** digitos - 1)
    return f"{settings.PEDIDOS_PREFIJO_NUMERO}-{fecha:%y%m%d}-{sufijo:0{digitos}d}"


def _decimal(valor, campo):
    try:
        return Decimal(str(valor))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"'{campo}' debe ser un número.", field=campo)


def _validar_items(items):
    if not items:
        raise ValidationError("El pedido debe tener al menos un producto.", field="items")

    validados = []
    for i, item in enumerate(items):
        campo = f"items[{i}]"
        id_producto = item.get("id_producto")
        producto = Producto.objects.filter(pk=id_producto, activo=True).first() if id_producto else None
        if producto is None:
            raise ValidationError(
                f"El producto #{id_producto} no existe o está inactivo.", field=f"{campo}.product_id"
            )

        cantidad = _decimal(item.get("cantidad"), f"{campo}.quantity")
        if cantidad <= 0:
            raise ValidationError("La cantidad debe ser un número positivo.", field=f"{campo}.quantity")

        precio = item.get("precio_unitario")
        precio = producto.precio_unitario if precio is None else _decimal(precio, f"{campo}.price_per_unit")
        if precio < 0:
            raise ValidationError("El precio unitario no puede ser negativo.", field=f"{campo}.price_per_unit")

        validados.append({
            "producto": producto,
            "cantidad": cantidad,
            "precio_unitario": precio,
            "unidad": item.get("unidad") or producto.unidad,
        })
    return validados


def _insertar_pedido(**datos):
    """Crea la cabecera reintentando si el número aleatorio ya existe."""
    reintentos = settings.PEDIDOS_REINTENTOS_NUMERO
    for intento in range(1, reintentos + 1):
        numero = generar_numero_pedido()
        try:
            with transaction.atomic():
                return Pedido.objects.create(numero_pedido=numero, **datos)
        except IntegrityError:
            if not Pedido.objects.filter(numero_pedido=numero).exists():
                raise
            logger.warning("numero_pedido_repetido", numero=numero, intento=intento)

    raise ConflictError(
        f"No se pudo generar un número de pedido único tras {reintentos} intentos.",
        entidad="Pedido"
    )


@transaction.atomic
def crear_pedido(id_cliente, items, actor, id_destino=None, pagado=True, notas=None, despachos=None):
    """
    Registra la venta de caja: cabecera + ítems (+ viajes iniciales opcionales)
    en una sola transacción.

    ``items``: [{"id_producto", "cantidad", "precio_unitario"?, "unidad"?}]
    ``despachos``: [{"id_camion", "id_chofer", "indice_item"?}] donde
    ``indice_item`` es la posición en ``items`` a la que se limita el viaje.
    """
    cliente = Cliente.objects.filter(pk=id_cliente, activo=True).first() if id_cliente else None
    if cliente is None:
        raise ValidationError(f"El cliente #{id_cliente} no existe o está inactivo.", field="customer_id")

    destino = None
    if id_destino is not None:
        destino = Destino.objects.filter(pk=id_destino, activo=True).first()
        if destino is None:
            raise ValidationError(f"El destino #{id_destino} no existe o está inactivo.", field="destination_id")
        if destino.id_cliente_id is not None and destino.id_cliente_id != cliente.pk:
            raise ValidationError("El destino no pertenece al cliente del pedido.", field="destination_id")

    items_validados = _validar_items(items)

    pedido = _insertar_pedido(
        id_cliente=cliente,
        id_destino=destino,
        estado=EstadoPedido.PAID if pagado else EstadoPedido.AWAITING_PAYMENT,
        notas=notas or None,
        creado_por=actor,
        fecha_pago=timezone.now() if pagado else None,
    )

    items_creados = [
        PedidoItem.objects.create(
            id_pedido=pedido,
            id_producto=item["producto"],
            cantidad=item["cantidad"],
            precio_unitario=item["precio_unitario"],
            unidad=item["unidad"],
        )
        for item in items_validados
    ]

    logger.info(
        "pedido_creado",
        pedido=pedido.pk,
        numero=pedido.numero_pedido,
        cliente=cliente.pk,
        estado=pedido.estado,
        items=len(items_creados),
        actor=actor,
    )

    if despachos:
        from despachos.services import asignar_despacho

        for i, asignacion in enumerate(despachos):
            indice = asignacion.get("indice_item")
            id_item = None
            if indice is not None:
                if not 0 <= indice < len(items_creados):
                    raise ValidationError(
                        f"El ítem {indice} no existe en el pedido.", field=f"deliveries[{i}].item_index"
                    )
                id_item = items_creados[indice].pk
            asignar_despacho(
                pedido.pk,
                asignacion.get("id_camion"),
                asignacion.get("id_chofer"),
                id_pedido_item=id_item,
                actor=actor,
            )

    return pedido


def calcular_estado(estado_actual, cantidades, estados_despachos):
    """
    Función pura: deriva el estado del pedido.

    ``cantidades``: [(solicitada, despachada)] por ítem.
    ``estados_despachos``: estados de todos los despachos del pedido.
    """
    estado_actual = EstadoPedido(estado_actual)
    if estado_actual == EstadoPedido.CANCELLED:
        return estado_actual

    completo = bool(cantidades) and all(despachada >= solicitada for solicitada, despachada in cantidades)
    hubo_salida = EstadoDespacho.SALIDA_OK in set(estados_despachos)

    if completo and hubo_salida:
        nuevo = EstadoPedido.DISPATCHED_COMPLETE
    elif any(despachada > 0 for _, despachada in cantidades):
        nuevo = EstadoPedido.PARTIALLY_DISPATCHED
    else:
        nuevo = estado_actual

    # Nunca retrocede
    if RANGO_ESTADO[nuevo] < RANGO_ESTADO[estado_actual]:
        return estado_actual
    return nuevo


@transaction.atomic
def recalcular_estado_pedido(id_pedido):
    """Relee ítems y despachos del pedido y guarda el estado derivado."""
    pedido = Pedido.objects.select_for_update().get(pk=id_pedido)

    cantidades = [
        (item.cantidad, item.total_despachado)
        for item in PedidoItem.objects.filter(id_pedido=pedido).con_despachado()
    ]
    estados = Despacho.objects.filter(id_pedido=pedido).values_list('estado', flat=True)

    nuevo = calcular_estado(pedido.estado, cantidades, estados)
    if nuevo != pedido.estado:
        anterior = pedido.estado
        pedido.estado = nuevo
        pedido.save(update_fields=['estado', 'fecha_actualizacion'])
        logger.info("pedido_estado_actualizado", pedido=pedido.pk, anterior=anterior, nuevo=nuevo)

    return pedido


@transaction.atomic
def cancelar_pedido(id_pedido, actor, motivo=None):
    """
    Cancela el pedido y rechaza sus viajes abiertos. Acción compensatoria:
    no interrumpe una transición en curso, solo impide nuevos avances.
    """
    if not Pedido.objects.filter(pk=id_pedido).exists():
        raise NotFoundError("Pedido", id_pedido)

    # Mismo orden de bloqueo que una transición: despachos y luego pedido
    list(Despacho.objects.select_for_update().filter(id_pedido_id=id_pedido).order_by('id_despacho'))
    pedido = Pedido.objects.select_for_update().get(pk=id_pedido)
    # Con el pedido tomado ya no entran viajes nuevos; se relee la lista
    despachos = list(Despacho.objects.select_for_update().filter(id_pedido_id=id_pedido).order_by('id_despacho'))

    if pedido.estado == EstadoPedido.CANCELLED:
        logger.info("pedido_ya_cancelado", pedido=pedido.pk)
        return pedido

    cargados = [d.pk for d in despachos if d.estado in ESTADOS_CON_CARGA]
    if cargados:
        raise ConflictError(
            f"El pedido {pedido.numero_pedido} tiene despachos cargados o despachados y no se puede cancelar.",
            entidad="Pedido",
            id_entidad=pedido.pk,
            deliveries=cargados,
        )

    ahora = timezone.now()
    for despacho in despachos:
        if despacho.estado not in ESTADOS_ACTIVOS:
            continue
        despacho.estado = EstadoDespacho.RECHAZADA
        despacho.rechazado_por = actor
        despacho.fecha_rechazo = ahora
        despacho.motivo_rechazo = motivo or "Pedido cancelado"
        despacho.save()
        logger.info("despacho_rechazado_por_cancelacion", despacho=despacho.pk, pedido=pedido.pk)

    pedido.estado = EstadoPedido.CANCELLED
    pedido.cancelado_por = actor
    pedido.fecha_cancelacion = ahora
    if motivo:
        pedido.notas = f"{pedido.notas}\n[CANCELADO] {motivo}" if pedido.notas else f"[CANCELADO] {motivo}"
    pedido.save()

    logger.info("pedido_cancelado", pedido=pedido.pk, actor=actor)
    return pedido


@transaction.atomic
def registrar_pago(id_pedido, actor, referencia=None):
    pedido = Pedido.objects.select_for_update().filter(pk=id_pedido).first()
    if pedido is None:
        raise NotFoundError("Pedido", id_pedido)

    if pedido.estado != EstadoPedido.AWAITING_PAYMENT:
        raise ConflictError(
            f"El pedido {pedido.numero_pedido} no está pendiente de pago (estado: {pedido.estado}).",
            entidad="Pedido",
            id_entidad=pedido.pk,
        )

    pedido.estado = EstadoPedido.PAID
    pedido.fecha_pago = timezone.now()
    if referencia:
        pedido.notas = f"{pedido.notas}\n[PAGO] {referencia}" if pedido.notas else f"[PAGO] {referencia}"
    pedido.save()

    logger.info("pedido_pagado", pedido=pedido.pk, actor=actor)
    return pedido
