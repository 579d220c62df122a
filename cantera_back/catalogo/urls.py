from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ClienteViewSet, DestinoViewSet, ProductoViewSet, CamionViewSet, ChoferViewSet

router = DefaultRouter()
router.register(r'customers', ClienteViewSet)
router.register(r'destinations', DestinoViewSet)
router.register(r'products', ProductoViewSet)
router.register(r'trucks', CamionViewSet)
router.register(r'drivers', ChoferViewSet)

urlpatterns = [
    path('', include(router.urls)),
]
