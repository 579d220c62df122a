from rest_framework import viewsets, filters
from django_filters.rest_framework import DjangoFilterBackend

from .models import Cliente, Destino, Producto, Camion, Chofer
from .serializers import (
    ClienteSerializer,
    DestinoSerializer,
    ProductoSerializer,
    CamionSerializer,
    ChoferSerializer,
)

# El catálogo es un almacén simple: el núcleo de despachos solo lo consulta.


class ClienteViewSet(viewsets.ModelViewSet):
    queryset = Cliente.objects.all()
    serializer_class = ClienteSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['activo']
    search_fields = ['nombre', 'rif']


class DestinoViewSet(viewsets.ModelViewSet):
    queryset = Destino.objects.select_related('id_cliente').all()
    serializer_class = DestinoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['activo', 'id_cliente']
    search_fields = ['nombre']


class ProductoViewSet(viewsets.ModelViewSet):
    queryset = Producto.objects.all()
    serializer_class = ProductoSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['activo', 'unidad']
    search_fields = ['nombre']


class CamionViewSet(viewsets.ModelViewSet):
    queryset = Camion.objects.all()
    serializer_class = CamionSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['activo']
    search_fields = ['placa', 'marca']


class ChoferViewSet(viewsets.ModelViewSet):
    queryset = Chofer.objects.all()
    serializer_class = ChoferSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['activo']
    search_fields = ['nombre', 'documento']
