import django_filters
from .models import Despacho, EstadoDespacho


class DespachoFilter(django_filters.FilterSet):
    # Rango de fechas sobre la fecha de asignación
    fecha_desde = django_filters.DateTimeFilter(field_name="fecha_creacion", lookup_expr="gte")
    fecha_hasta = django_filters.DateTimeFilter(field_name="fecha_creacion", lookup_expr="lte")

    estado = django_filters.MultipleChoiceFilter(field_name="estado", choices=EstadoDespacho.choices)
    pedido = django_filters.NumberFilter(field_name="id_pedido__id_pedido")
    camion = django_filters.NumberFilter(field_name="id_camion__id_camion")
    chofer = django_filters.NumberFilter(field_name="id_chofer__id_chofer")
    placa = django_filters.CharFilter(field_name="id_camion__placa", lookup_expr="icontains")

    class Meta:
        model = Despacho
        fields = ["fecha_desde", "fecha_hasta", "estado", "pedido", "camion", "chofer", "placa"]
