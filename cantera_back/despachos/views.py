from rest_framework import viewsets, mixins, filters, status
from rest_framework.response import Response
from django_filters.rest_framework import DjangoFilterBackend

from core.actores import obtener_actor
from .filters import DespachoFilter
from .models import Despacho
from .serializers import (
    AsignarDespachoSerializer,
    DespachoSerializer,
    HistoricalDespachoSerializer,
    serializer_transicion,
)
from . import services


class DespachoViewSet(mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      viewsets.GenericViewSet):
    """
    Viajes (despachos) de patio y seguridad.

    PATCH no edita campos libres: cambia el estado del viaje. El cuerpo se
    valida según el ``estado`` destino y la respuesta trae el estado del
    pedido ya recalculado.
    """

    queryset = Despacho.objects.select_related(
        'id_pedido', 'id_camion', 'id_chofer'
    ).prefetch_related('items__id_pedido_item__id_producto')
    serializer_class = DespachoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = DespachoFilter
    search_fields = ["id_pedido__numero_pedido", "id_camion__placa", "id_chofer__nombre"]
    ordering_fields = ["fecha_creacion", "estado"]
    ordering = ["-fecha_creacion"]
    http_method_names = ['get', 'post', 'patch', 'head', 'options']
    lookup_value_regex = r"\d+"

    def _respuesta(self, despacho, codigo=status.HTTP_200_OK):
        despacho = self.get_queryset().get(pk=despacho.pk)
        return Response(DespachoSerializer(despacho).data, status=codigo)

    def create(self, request):
        actor = obtener_actor(request, requerido=False)
        serializer = AsignarDespachoSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        despacho = services.asignar_despacho(
            data['order_id'],
            data['truck_id'],
            data['driver_id'],
            id_pedido_item=data.get('order_item_id'),
            actor=actor,
        )
        return self._respuesta(despacho, status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        actor = obtener_actor(request)
        serializer = serializer_transicion(request.data)
        serializer.is_valid(raise_exception=True)
        despacho = services.transicionar_despacho(
            pk,
            serializer.validated_data['estado'],
            actor,
            **serializer.datos_servicio()
        )
        return self._respuesta(despacho)


class HistorialDespachoViewSet(viewsets.ReadOnlyModelViewSet):
    """
    API endpoint para ver el historial de cambios de los Despachos.
    """
    queryset = Despacho.history.model.objects.select_related(
        'id_camion', 'id_chofer', 'history_user'
    ).order_by('-history_date')
    serializer_class = HistoricalDespachoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['history_type', 'estado', 'id_despacho', 'id_pedido']
    search_fields = ['id_camion__placa', 'id_chofer__nombre']
