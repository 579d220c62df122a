from django.db.models import Prefetch
from rest_framework import viewsets, mixins, filters, status
from rest_framework.decorators import action
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.actores import obtener_actor
from despachos.models import Despacho
from .filters import PedidoFilter
from .models import Pedido, PedidoItem
from .serializers import (
    CancelacionSerializer,
    CrearPedidoSerializer,
    HistoricalPedidoSerializer,
    PagoSerializer,
    PedidoSerializer,
)
from . import services


class PedidoViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    viewsets.GenericViewSet):
    """
    Pedidos de caja.

    - POST crea el pedido (y sus viajes iniciales si vienen en ``deliveries``)
    - DELETE no borra: cancela el pedido
    - POST {id}/pay/ registra el pago de un pedido pendiente
    """

    queryset = (
        Pedido.objects.select_related('id_cliente', 'id_destino')
        .prefetch_related(
            Prefetch('items', queryset=PedidoItem.objects.select_related('id_producto').con_despachado()),
            Prefetch('despachos', queryset=Despacho.objects.select_related('id_camion', 'id_chofer')),
        )
    )
    serializer_class = PedidoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = PedidoFilter
    search_fields = ["numero_pedido", "id_cliente__nombre"]
    ordering_fields = ["fecha_creacion", "numero_pedido"]
    ordering = ["-fecha_creacion"]
    lookup_value_regex = r"\d+"

    def get_serializer_class(self):
        if self.action == 'create':
            return CrearPedidoSerializer
        return PedidoSerializer

    def _respuesta(self, pedido, codigo=status.HTTP_200_OK):
        pedido = self.get_queryset().get(pk=pedido.pk)
        return Response(PedidoSerializer(pedido).data, status=codigo)

    def create(self, request):
        actor = obtener_actor(request)
        serializer = CrearPedidoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pedido = services.crear_pedido(actor=actor, **serializer.datos_servicio())
        return self._respuesta(pedido, status.HTTP_201_CREATED)

    def destroy(self, request, pk=None):
        actor = obtener_actor(request, requerido=False)
        serializer = CancelacionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pedido = services.cancelar_pedido(pk, actor, motivo=serializer.validated_data.get('reason'))
        return self._respuesta(pedido)

    @action(detail=True, methods=['post'], serializer_class=PagoSerializer)
    def pay(self, request, pk=None):
        actor = obtener_actor(request)
        serializer = PagoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pedido = services.registrar_pago(pk, actor, referencia=serializer.validated_data.get('reference'))
        return self._respuesta(pedido)


class HistorialPedidoViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint para ver el historial de cambios de los Pedidos.
    """
    queryset = Pedido.history.model.objects.select_related('id_cliente', 'history_user').order_by('-history_date')
    serializer_class = HistoricalPedidoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['history_type', 'estado', 'id_pedido']
    search_fields = ['numero_pedido']
