from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import PedidoViewSet, HistorialPedidoViewSet

router = DefaultRouter()
router.register(r'orders', PedidoViewSet, basename='pedido')
router.register(r'orders-history', HistorialPedidoViewSet, basename='historial-pedido')

urlpatterns = [
    path('', include(router.urls)),
]
