import json

from rest_framework import serializers

from core.exceptions import ValidationError
from .estados import siguientes_estados
from .models import Despacho, DespachoItem, EstadoDespacho


class DespachoItemSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_despacho_item', read_only=True)
    order_item_id = serializers.IntegerField(source='id_pedido_item_id', read_only=True)
    product_name = serializers.CharField(source='id_pedido_item.id_producto.nombre', read_only=True)
    unit = serializers.CharField(source='id_pedido_item.unidad', read_only=True)
    dispatched_quantity = serializers.DecimalField(
        source='cantidad_despachada', max_digits=18, decimal_places=2, read_only=True
    )

    class Meta:
        model = DespachoItem
        fields = ['id', 'order_item_id', 'product_name', 'unit', 'dispatched_quantity']


class DespachoSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_despacho', read_only=True)
    order_id = serializers.IntegerField(source='id_pedido_id', read_only=True)
    order_number = serializers.CharField(source='id_pedido.numero_pedido', read_only=True)
    # El estado del pedido viaja con cada despacho para que la UI no tenga que pedirlo aparte
    order_status = serializers.CharField(source='id_pedido.estado', read_only=True)
    truck_id = serializers.IntegerField(source='id_camion_id', read_only=True)
    truck_plate = serializers.CharField(source='id_camion.placa', read_only=True)
    driver_id = serializers.IntegerField(source='id_chofer_id', read_only=True)
    driver_name = serializers.CharField(source='id_chofer.nombre', read_only=True)
    order_item_id = serializers.IntegerField(source='id_pedido_item_id', read_only=True)
    estado_display = serializers.CharField(source='get_estado_display', read_only=True)
    next_states = serializers.SerializerMethodField()
    loaded_quantity = serializers.DecimalField(
        source='cantidad_cargada', max_digits=18, decimal_places=2, read_only=True
    )
    load_photo_url = serializers.CharField(source='foto_carga_url', read_only=True)
    exit_photo_url = serializers.CharField(source='foto_salida_url', read_only=True)
    notes = serializers.CharField(source='notas', read_only=True)
    loading_started_by = serializers.IntegerField(source='inicio_carga_por', read_only=True)
    loading_started_at = serializers.DateTimeField(source='fecha_inicio_carga', read_only=True)
    loaded_by = serializers.IntegerField(source='cargado_por', read_only=True)
    loaded_at = serializers.DateTimeField(source='fecha_carga', read_only=True)
    exited_by = serializers.IntegerField(source='salida_por', read_only=True)
    exited_at = serializers.DateTimeField(source='fecha_salida', read_only=True)
    rejected_by = serializers.IntegerField(source='rechazado_por', read_only=True)
    rejected_at = serializers.DateTimeField(source='fecha_rechazo', read_only=True)
    rejection_reason = serializers.CharField(source='motivo_rechazo', read_only=True)
    created_at = serializers.DateTimeField(source='fecha_creacion', read_only=True)
    items = DespachoItemSerializer(many=True, read_only=True)

    class Meta:
        model = Despacho
        fields = [
            'id', 'order_id', 'order_number', 'order_status',
            'truck_id', 'truck_plate', 'driver_id', 'driver_name', 'order_item_id',
            'estado', 'estado_display', 'next_states',
            'loaded_quantity', 'load_photo_url', 'exit_photo_url', 'notes', 'items',
            'loading_started_by', 'loading_started_at', 'loaded_by', 'loaded_at',
            'exited_by', 'exited_at', 'rejected_by', 'rejected_at', 'rejection_reason',
            'created_at'
        ]

    def get_next_states(self, obj):
        return siguientes_estados(obj.estado)


class AsignarDespachoSerializer(serializers.Serializer):
    order_id = serializers.IntegerField(min_value=1)
    truck_id = serializers.IntegerField(min_value=1)
    driver_id = serializers.IntegerField(min_value=1)
    order_item_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)


# --- Transiciones: un serializer por estado destino ---

class ItemCargadoSerializer(serializers.Serializer):
    order_item_id = serializers.IntegerField(min_value=1)
    dispatched_quantity = serializers.DecimalField(max_digits=18, decimal_places=2)


class ItemsCargadosField(serializers.ListField):
    """Lista de ítems; en multipart llega como texto JSON (``items``)."""

    child = ItemCargadoSerializer()

    def to_internal_value(self, data):
        if isinstance(data, (list, tuple)) and len(data) == 1 and isinstance(data[0], str):
            data = data[0]
        if isinstance(data, str):
            try:
                data = json.loads(data)
            except ValueError:
                raise serializers.ValidationError("'items' no es un JSON válido.")
        return super().to_internal_value(data)


class TransicionSerializer(serializers.Serializer):
    """
    Base de la unión discriminada por ``estado``. Cada subclase declara solo
    los campos que su destino admite; cualquier otro campo se rechaza.
    """

    estado = serializers.ChoiceField(choices=EstadoDespacho.choices)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    CAMPOS_AJENOS_PERMITIDOS = {"user_id"}

    def validate(self, attrs):
        ajenos = set(self.initial_data.keys()) - set(self.fields) - self.CAMPOS_AJENOS_PERMITIDOS
        if ajenos:
            raise serializers.ValidationError({
                campo: f"Campo no admitido para el estado '{attrs['estado']}'." for campo in sorted(ajenos)
            })
        return attrs

    def datos_servicio(self):
        data = self.validated_data
        return {"notas": data.get("notes")}


class InicioCargaSerializer(TransicionSerializer):
    pass


class CargaSerializer(TransicionSerializer):
    loaded_quantity = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    items = ItemsCargadosField(required=False)
    photoFile = serializers.FileField(required=False)
    photo_url = serializers.CharField(required=False, max_length=500)

    def datos_servicio(self):
        data = self.validated_data
        datos = super().datos_servicio()
        datos.update({
            "cantidad_cargada": data.get("loaded_quantity"),
            "items": [
                {"id_pedido_item": i["order_item_id"], "cantidad": i["dispatched_quantity"]}
                for i in data.get("items", [])
            ],
            "foto": data.get("photoFile"),
            "foto_url": data.get("photo_url"),
        })
        return datos


class SalidaSerializer(TransicionSerializer):
    photoFile = serializers.FileField(required=False)
    photo_url = serializers.CharField(required=False, max_length=500)

    def datos_servicio(self):
        data = self.validated_data
        datos = super().datos_servicio()
        datos.update({"foto": data.get("photoFile"), "foto_url": data.get("photo_url")})
        return datos


class RechazoSerializer(TransicionSerializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=255)

    def datos_servicio(self):
        datos = super().datos_servicio()
        datos["motivo"] = self.validated_data.get("reason")
        return datos


SERIALIZERS_TRANSICION = {
    EstadoDespacho.ASIGNADA: TransicionSerializer,
    EstadoDespacho.EN_CARGA: InicioCargaSerializer,
    EstadoDespacho.CARGADA: CargaSerializer,
    EstadoDespacho.SALIDA_OK: SalidaSerializer,
    EstadoDespacho.RECHAZADA: RechazoSerializer,
}


def serializer_transicion(data):
    """Elige el serializer según el ``estado`` pedido en el cuerpo."""
    estado = data.get("estado") if hasattr(data, "get") else None
    if not estado:
        raise ValidationError("El campo 'estado' es obligatorio.", field="estado")
    try:
        clase = SERIALIZERS_TRANSICION[EstadoDespacho(estado)]
    except ValueError:
        raise ValidationError(f"Estado de despacho desconocido: '{estado}'.", field="estado")
    return clase(data=data)


class HistoricalDespachoSerializer(serializers.ModelSerializer):
    history_user_nombre = serializers.CharField(source='history_user.username', read_only=True, default=None)
    camion_placa = serializers.CharField(source='id_camion.placa', read_only=True)
    chofer_nombre = serializers.CharField(source='id_chofer.nombre', read_only=True)

    class Meta:
        model = Despacho.history.model
        fields = [
            'history_id', 'history_date', 'history_type', 'history_user_nombre',
            'id_despacho', 'id_pedido', 'estado',
            'id_camion', 'camion_placa', 'id_chofer', 'chofer_nombre',
            'cantidad_cargada', 'foto_carga_url', 'foto_salida_url'
        ]
