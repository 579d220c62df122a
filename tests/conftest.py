"""Pytest fixtures for cantera_back tests."""

from decimal import Decimal

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from rest_framework.test import APIClient

from catalogo.models import Camion, Chofer, Cliente, Destino, Producto
from despachos import services as despachos_services
from pedidos import services as pedidos_services

ACTOR = 7

# Cabecera JPEG mínima; el contenido no se interpreta
JPEG = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


@pytest.fixture(autouse=True)
def media_temporal(settings, tmp_path):
    """Fotos de evidencia en un directorio temporal."""
    settings.MEDIA_ROOT = str(tmp_path / "uploads")
    settings.FOTO_REQUERIDA_EN_CARGA = False
    settings.FOTO_REQUERIDA_EN_SALIDA = True
    return tmp_path / "uploads"


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def cliente(db):
    return Cliente.objects.create(nombre="Constructora Los Andes", rif="J-30123456-7")


@pytest.fixture
def otro_cliente(db):
    return Cliente.objects.create(nombre="Inversiones Orinoco", rif="J-40987654-1")


@pytest.fixture
def destino(cliente):
    return Destino.objects.create(id_cliente=cliente, nombre="Obra Av. Bolívar", direccion="Av. Bolívar km 3")


@pytest.fixture
def arena(db):
    return Producto.objects.create(nombre="Arena lavada", unidad=Producto.Unidad.M3, precio_unitario=Decimal("25.00"))


@pytest.fixture
def piedra(db):
    return Producto.objects.create(nombre="Piedra picada", unidad=Producto.Unidad.TON, precio_unitario=Decimal("30.00"))


@pytest.fixture
def camion(db):
    return Camion.objects.create(placa="A12BC3D", marca="Mack", capacidad=Decimal("15.00"))


@pytest.fixture
def camion_2(db):
    return Camion.objects.create(placa="B45EF6G", marca="Iveco", capacidad=Decimal("12.00"))


@pytest.fixture
def chofer(db):
    return Chofer.objects.create(nombre="José Pérez", documento="V-12345678")


@pytest.fixture
def chofer_2(db):
    return Chofer.objects.create(nombre="María Rojas", documento="V-23456789")


@pytest.fixture
def crear_pedido(cliente, arena):
    """Fábrica de pedidos; por defecto 10 m³ de arena, pagado."""

    def _crear(items=None, pagado=True, **kwargs):
        if items is None:
            items = [{"id_producto": arena.pk, "cantidad": Decimal("10")}]
        return pedidos_services.crear_pedido(cliente.pk, items, actor=ACTOR, pagado=pagado, **kwargs)

    return _crear


@pytest.fixture
def pedido(crear_pedido):
    return crear_pedido()


@pytest.fixture
def despacho(pedido, camion, chofer):
    return despachos_services.asignar_despacho(pedido.pk, camion.pk, chofer.pk, actor=ACTOR)


@pytest.fixture
def foto():
    """Crea una foto subida nueva en cada llamada."""

    def _foto(nombre="evidencia.jpg", contenido=JPEG, tipo="image/jpeg"):
        return SimpleUploadedFile(nombre, contenido, content_type=tipo)

    return _foto


@pytest.fixture
def llevar_a():
    """Avanza un despacho por la tabla de estados hasta ``destino``."""
    orden = ["ASIGNADA", "EN_CARGA", "CARGADA", "SALIDA_OK"]

    def _llevar(despacho, destino, cantidad=Decimal("10")):
        actual = despacho
        while actual.estado != destino:
            siguiente = orden[orden.index(actual.estado) + 1]
            datos = {}
            if siguiente == "CARGADA":
                datos["cantidad_cargada"] = cantidad
            if siguiente == "SALIDA_OK":
                datos["foto_url"] = "/uploads/despachos/salida.jpg"
            actual = despachos_services.transicionar_despacho(actual.pk, siguiente, ACTOR, **datos)
        return actual

    return _llevar
