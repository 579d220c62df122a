import django_filters
from .models import EstadoPedido, Pedido


class PedidoFilter(django_filters.FilterSet):
    # Rango de fechas sobre la fecha de creación
    fecha_desde = django_filters.DateTimeFilter(field_name="fecha_creacion", lookup_expr="gte")
    fecha_hasta = django_filters.DateTimeFilter(field_name="fecha_creacion", lookup_expr="lte")

    cliente = django_filters.NumberFilter(field_name="id_cliente__id_cliente")
    cliente_nombre = django_filters.CharFilter(field_name="id_cliente__nombre", lookup_expr="icontains")
    estado = django_filters.MultipleChoiceFilter(field_name="estado", choices=EstadoPedido.choices)
    numero = django_filters.CharFilter(field_name="numero_pedido", lookup_expr="icontains")

    class Meta:
        model = Pedido
        fields = ["fecha_desde", "fecha_hasta", "cliente", "cliente_nombre", "estado", "numero"]
