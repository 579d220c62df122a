from rest_framework import serializers

from catalogo.models import Producto
from despachos.estados import siguientes_estados
from .models import Pedido, PedidoItem


class PedidoItemSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_pedido_item', read_only=True)
    product_id = serializers.IntegerField(source='id_producto_id', read_only=True)
    product_name = serializers.CharField(source='id_producto.nombre', read_only=True)
    quantity = serializers.DecimalField(source='cantidad', max_digits=18, decimal_places=2, read_only=True)
    price_per_unit = serializers.DecimalField(source='precio_unitario', max_digits=18, decimal_places=2, read_only=True)
    unit = serializers.CharField(source='unidad', read_only=True)
    subtotal = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    dispatched_quantity = serializers.DecimalField(
        source='cantidad_despachada', max_digits=18, decimal_places=2, read_only=True
    )
    pending_quantity = serializers.DecimalField(
        source='cantidad_pendiente', max_digits=18, decimal_places=2, read_only=True
    )

    class Meta:
        model = PedidoItem
        fields = [
            'id', 'product_id', 'product_name', 'quantity', 'price_per_unit', 'unit',
            'subtotal', 'dispatched_quantity', 'pending_quantity'
        ]


class DespachoResumenSerializer(serializers.Serializer):
    # Vista corta del viaje dentro del pedido
    id = serializers.IntegerField(source='id_despacho')
    estado = serializers.CharField()
    truck_id = serializers.IntegerField(source='id_camion_id')
    truck_plate = serializers.CharField(source='id_camion.placa')
    driver_id = serializers.IntegerField(source='id_chofer_id')
    driver_name = serializers.CharField(source='id_chofer.nombre')
    order_item_id = serializers.IntegerField(source='id_pedido_item_id', allow_null=True)
    loaded_quantity = serializers.DecimalField(
        source='cantidad_cargada', max_digits=18, decimal_places=2, allow_null=True
    )
    next_states = serializers.SerializerMethodField()

    def get_next_states(self, obj):
        return siguientes_estados(obj.estado)


class PedidoSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_pedido', read_only=True)
    order_number = serializers.CharField(source='numero_pedido', read_only=True)
    customer_id = serializers.IntegerField(source='id_cliente_id', read_only=True)
    customer_name = serializers.CharField(source='id_cliente.nombre', read_only=True)
    destination_id = serializers.IntegerField(source='id_destino_id', read_only=True)
    destination_name = serializers.CharField(source='id_destino.nombre', read_only=True, default=None)
    status = serializers.CharField(source='estado', read_only=True)
    status_display = serializers.CharField(source='get_estado_display', read_only=True)
    notes = serializers.CharField(source='notas', read_only=True)
    created_by = serializers.IntegerField(source='creado_por', read_only=True)
    created_at = serializers.DateTimeField(source='fecha_creacion', read_only=True)
    updated_at = serializers.DateTimeField(source='fecha_actualizacion', read_only=True)
    paid_at = serializers.DateTimeField(source='fecha_pago', read_only=True)
    cancelled_at = serializers.DateTimeField(source='fecha_cancelacion', read_only=True)
    total = serializers.DecimalField(max_digits=20, decimal_places=2, read_only=True)
    items = PedidoItemSerializer(many=True, read_only=True)
    deliveries = DespachoResumenSerializer(source='despachos', many=True, read_only=True)

    class Meta:
        model = Pedido
        fields = [
            'id', 'order_number', 'customer_id', 'customer_name', 'destination_id', 'destination_name',
            'status', 'status_display', 'notes', 'total', 'items', 'deliveries',
            'created_by', 'created_at', 'updated_at', 'paid_at', 'cancelled_at'
        ]


class ItemPedidoEntradaSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(max_digits=18, decimal_places=2)
    price_per_unit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, allow_null=True)
    unit = serializers.ChoiceField(choices=Producto.Unidad.choices, required=False, allow_null=True)

    @staticmethod
    def a_servicio(data):
        return {
            "id_producto": data["product_id"],
            "cantidad": data["quantity"],
            "precio_unitario": data.get("price_per_unit"),
            "unidad": data.get("unit"),
        }


class DespachoInicialSerializer(serializers.Serializer):
    truck_id = serializers.IntegerField(min_value=1)
    driver_id = serializers.IntegerField(min_value=1)
    # Posición del ítem en 'items' cuando el viaje lleva un solo producto
    item_index = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class CrearPedidoSerializer(serializers.Serializer):
    customer_id = serializers.IntegerField(min_value=1)
    destination_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    items = ItemPedidoEntradaSerializer(many=True, allow_empty=False)
    paid = serializers.BooleanField(required=False, default=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    deliveries = DespachoInicialSerializer(many=True, required=False)

    def datos_servicio(self):
        """Traduce el cuerpo validado a los argumentos de ``crear_pedido``."""
        data = self.validated_data
        return {
            "id_cliente": data["customer_id"],
            "id_destino": data.get("destination_id"),
            "items": [ItemPedidoEntradaSerializer.a_servicio(i) for i in data["items"]],
            "pagado": data.get("paid", True),
            "notas": data.get("notes"),
            "despachos": [
                {"id_camion": d["truck_id"], "id_chofer": d["driver_id"], "indice_item": d.get("item_index")}
                for d in data.get("deliveries", [])
            ],
        }


class PagoSerializer(serializers.Serializer):
    reference = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)


class CancelacionSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)


class HistoricalPedidoSerializer(serializers.ModelSerializer):
    history_user_nombre = serializers.CharField(source='history_user.username', read_only=True, default=None)
    cliente_nombre = serializers.CharField(source='id_cliente.nombre', read_only=True)

    class Meta:
        model = Pedido.history.model
        fields = [
            'history_id', 'history_date', 'history_type', 'history_user_nombre',
            'id_pedido', 'numero_pedido', 'estado', 'id_cliente', 'cliente_nombre',
            'creado_por', 'cancelado_por'
        ]
