from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import DespachoViewSet, HistorialDespachoViewSet

router = DefaultRouter()
router.register(r'deliveries', DespachoViewSet, basename='despacho')
router.register(r'deliveries-history', HistorialDespachoViewSet, basename='historial-despacho')

urlpatterns = [
    path('', include(router.urls)),
]
