"""Tests for the REST API and the error envelope."""

import json
import re
from decimal import Decimal

import pytest
from django.db import connection
from django.test.utils import CaptureQueriesContext

from despachos.models import Despacho

from .conftest import ACTOR


@pytest.fixture
def cuerpo_pedido(cliente, arena):
    return {
        "customer_id": cliente.pk,
        "items": [{"product_id": arena.pk, "quantity": "10"}],
        "user_id": ACTOR,
    }


class TestOrdersApi:
    def test_create_order(self, api_client, cuerpo_pedido):
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 201
        data = response.json()
        assert re.fullmatch(r"ORD-\d{6}-\d{3}", data["order_number"])
        assert data["status"] == "PAID"
        assert data["total"] == "250.00"
        assert data["created_by"] == ACTOR
        assert data["items"][0]["pending_quantity"] == "10.00"
        assert data["deliveries"] == []

    def test_create_with_deliveries(self, api_client, cuerpo_pedido, camion, chofer):
        cuerpo_pedido["deliveries"] = [{"truck_id": camion.pk, "driver_id": chofer.pk, "item_index": 0}]
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 201
        entrega = response.json()["deliveries"][0]
        assert entrega["estado"] == "ASIGNADA"
        assert entrega["truck_plate"] == camion.placa
        assert entrega["next_states"] == ["EN_CARGA", "RECHAZADA"]

    def test_create_unpaid(self, api_client, cuerpo_pedido):
        cuerpo_pedido["paid"] = False
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")
        assert response.json()["status"] == "AWAITING_PAYMENT"

    def test_empty_items(self, api_client, cuerpo_pedido):
        cuerpo_pedido["items"] = []
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "validation_error"
        assert data["field"] == "items"

    def test_missing_user(self, api_client, cuerpo_pedido):
        del cuerpo_pedido["user_id"]
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 400
        assert response.json()["field"] == "user_id"

    def test_inactive_customer(self, api_client, cuerpo_pedido, cliente):
        cliente.activo = False
        cliente.save()
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 400
        assert response.json()["field"] == "customer_id"

    def test_nested_serializer_error_is_flattened(self, api_client, cuerpo_pedido):
        cuerpo_pedido["items"][0]["quantity"] = "mucho"
        response = api_client.post("/api/orders/", cuerpo_pedido, format="json")

        assert response.status_code == 400
        data = response.json()
        assert data["field"] == "items[0].quantity"
        assert "items[0].quantity" in data["details"]

    def test_list_and_filter(self, api_client, crear_pedido):
        crear_pedido()
        crear_pedido(pagado=False)

        todos = api_client.get("/api/orders/").json()
        pendientes = api_client.get("/api/orders/", {"estado": "AWAITING_PAYMENT"}).json()

        assert len(todos) == 2
        assert [p["status"] for p in pendientes] == ["AWAITING_PAYMENT"]

    def test_list_query_count_does_not_grow_with_items(self, api_client, crear_pedido, arena, piedra, despacho, llevar_a):
        llevar_a(despacho, "CARGADA", cantidad=Decimal("4"))
        with CaptureQueriesContext(connection) as uno:
            api_client.get("/api/orders/")

        for _ in range(3):
            crear_pedido(items=[
                {"id_producto": arena.pk, "cantidad": 2},
                {"id_producto": piedra.pk, "cantidad": 3},
            ])
        with CaptureQueriesContext(connection) as varios:
            data = api_client.get("/api/orders/").json()

        assert len(varios) == len(uno)
        cargado = next(p for p in data if p["id"] == despacho.id_pedido_id)
        assert cargado["items"][0]["dispatched_quantity"] == "4.00"
        assert cargado["items"][0]["pending_quantity"] == "6.00"

    def test_retrieve_missing(self, api_client, db):
        response = api_client.get("/api/orders/999/")
        assert response.status_code == 404
        assert response.json()["code"] == "not_found"

    def test_pay(self, api_client, crear_pedido):
        pedido = crear_pedido(pagado=False)
        url = f"/api/orders/{pedido.pk}/pay/"

        response = api_client.post(url, {"user_id": ACTOR, "reference": "TRF-1"}, format="json")
        assert response.status_code == 200
        assert response.json()["status"] == "PAID"

        again = api_client.post(url, {"user_id": ACTOR}, format="json")
        assert again.status_code == 409
        assert again.json()["code"] == "conflict"
        assert again.json()["entity"] == "Pedido"

    def test_cancel(self, api_client, despacho):
        response = api_client.delete(
            f"/api/orders/{despacho.id_pedido_id}/", {"user_id": ACTOR, "reason": "Error de caja"}, format="json"
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "CANCELLED"
        assert data["deliveries"][0]["estado"] == "RECHAZADA"

    def test_cancel_loaded_conflicts(self, api_client, despacho, llevar_a):
        llevar_a(despacho, "CARGADA")
        response = api_client.delete(f"/api/orders/{despacho.id_pedido_id}/", format="json")

        assert response.status_code == 409
        assert response.json()["deliveries"] == [despacho.pk]

    def test_history(self, api_client, pedido):
        response = api_client.get("/api/orders-history/")
        assert response.status_code == 200
        assert response.json()[0]["numero_pedido"] == pedido.numero_pedido


class TestDeliveriesApi:
    def test_assign(self, api_client, pedido, camion, chofer):
        response = api_client.post(
            "/api/deliveries/",
            {"order_id": pedido.pk, "truck_id": camion.pk, "driver_id": chofer.pk, "user_id": ACTOR},
            format="json",
        )

        assert response.status_code == 201
        data = response.json()
        assert data["estado"] == "ASIGNADA"
        assert data["order_status"] == "PAID"
        assert data["order_number"] == pedido.numero_pedido

    def test_assign_missing_truck(self, api_client, pedido, chofer):
        response = api_client.post(
            "/api/deliveries/", {"order_id": pedido.pk, "truck_id": 999, "driver_id": chofer.pk}, format="json"
        )
        assert response.status_code == 404
        assert response.json()["entity"] == "Camion"

    def test_assign_double_booking(self, api_client, despacho, crear_pedido, camion, chofer_2):
        otro = crear_pedido()
        response = api_client.post(
            "/api/deliveries/", {"order_id": otro.pk, "truck_id": camion.pk, "driver_id": chofer_2.pk}, format="json"
        )
        assert response.status_code == 409

    def test_full_checkpoint_flow(self, api_client, despacho, foto):
        url = f"/api/deliveries/{despacho.pk}/"

        response = api_client.patch(url, {"estado": "EN_CARGA", "user_id": ACTOR}, format="json")
        assert response.status_code == 200
        assert response.json()["loading_started_by"] == ACTOR

        response = api_client.patch(
            url, {"estado": "CARGADA", "user_id": ACTOR, "loaded_quantity": "10"}, format="json"
        )
        data = response.json()
        assert data["estado"] == "CARGADA"
        assert data["order_status"] == "PARTIALLY_DISPATCHED"
        assert data["items"][0]["dispatched_quantity"] == "10.00"

        response = api_client.patch(
            url, {"estado": "SALIDA_OK", "user_id": ACTOR, "photoFile": foto("salida.jpg")}, format="multipart"
        )
        data = response.json()
        assert response.status_code == 200
        assert data["estado"] == "SALIDA_OK"
        assert data["order_status"] == "DISPATCHED_COMPLETE"
        assert data["exit_photo_url"].startswith(f"/uploads/despachos/{despacho.pk}/salida_")
        assert data["next_states"] == []

    def test_multipart_items_as_json_text(self, api_client, crear_pedido, arena, piedra, camion, chofer, llevar_a):
        from despachos.services import asignar_despacho

        pedido = crear_pedido(items=[
            {"id_producto": arena.pk, "cantidad": 6},
            {"id_producto": piedra.pk, "cantidad": 4},
        ])
        piedra_item = pedido.items.get(id_producto=piedra)
        despacho = llevar_a(asignar_despacho(pedido.pk, camion.pk, chofer.pk), "EN_CARGA")

        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/",
            {
                "estado": "CARGADA",
                "user_id": str(ACTOR),
                "items": json.dumps([{"order_item_id": piedra_item.pk, "dispatched_quantity": "2.5"}]),
            },
            format="multipart",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["loaded_quantity"] == "2.50"
        assert data["items"][0]["order_item_id"] == piedra_item.pk

    def test_skip_returns_state_error(self, api_client, despacho):
        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/", {"estado": "SALIDA_OK", "user_id": ACTOR}, format="json"
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "invalid_state_transition"
        assert data["current_state"] == "ASIGNADA"
        assert data["target_state"] == "SALIDA_OK"
        assert Despacho.objects.get(pk=despacho.pk).estado == "ASIGNADA"

    def test_exit_without_photo(self, api_client, despacho, llevar_a):
        llevar_a(despacho, "CARGADA")
        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/", {"estado": "SALIDA_OK", "user_id": ACTOR}, format="json"
        )

        assert response.status_code == 400
        assert response.json()["field"] == "photoFile"

    def test_foreign_field_rejected(self, api_client, despacho):
        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/",
            {"estado": "EN_CARGA", "user_id": ACTOR, "loaded_quantity": "5"},
            format="json",
        )

        assert response.status_code == 400
        assert response.json()["field"] == "loaded_quantity"

    def test_missing_estado(self, api_client, despacho):
        response = api_client.patch(f"/api/deliveries/{despacho.pk}/", {"user_id": ACTOR}, format="json")
        assert response.status_code == 400
        assert response.json()["field"] == "estado"

    def test_unknown_estado(self, api_client, despacho):
        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/", {"estado": "EN_VIAJE", "user_id": ACTOR}, format="json"
        )
        assert response.status_code == 400
        assert response.json()["field"] == "estado"

    def test_missing_delivery(self, api_client, db):
        response = api_client.patch("/api/deliveries/999/", {"estado": "EN_CARGA", "user_id": ACTOR}, format="json")
        assert response.status_code == 404
        assert response.json()["entity"] == "Despacho"

    def test_over_allocation_conflict(self, api_client, despacho, llevar_a):
        llevar_a(despacho, "EN_CARGA")
        response = api_client.patch(
            f"/api/deliveries/{despacho.pk}/",
            {"estado": "CARGADA", "user_id": ACTOR, "loaded_quantity": "12"},
            format="json",
        )
        assert response.status_code == 409
        assert response.json()["pending_quantity"] == "10.00"

    def test_list_filter_by_estado(self, api_client, despacho, llevar_a):
        llevar_a(despacho, "EN_CARGA")
        assert len(api_client.get("/api/deliveries/", {"estado": "EN_CARGA"}).json()) == 1
        assert api_client.get("/api/deliveries/", {"estado": "ASIGNADA"}).json() == []

    def test_history(self, api_client, despacho, llevar_a):
        llevar_a(despacho, "EN_CARGA")
        response = api_client.get("/api/deliveries-history/", {"id_despacho": despacho.pk})

        assert response.status_code == 200
        assert [h["estado"] for h in response.json()] == ["EN_CARGA", "ASIGNADA"]

    def test_put_not_allowed(self, api_client, despacho):
        response = api_client.put(f"/api/deliveries/{despacho.pk}/", {"estado": "EN_CARGA"}, format="json")
        assert response.status_code == 405


class TestCatalogApi:
    def test_create_and_list_customers(self, api_client, db):
        response = api_client.post(
            "/api/catalog/customers/", {"name": "Agregados del Sur", "rif": "J-1"}, format="json"
        )
        assert response.status_code == 201
        assert response.json()["is_active"] is True

        nombres = [c["name"] for c in api_client.get("/api/catalog/customers/").json()]
        assert nombres == ["Agregados del Sur"]

    def test_products_filter_by_unit(self, api_client, arena, piedra):
        response = api_client.get("/api/catalog/products/", {"unidad": "TON"})
        assert [p["name"] for p in response.json()] == [piedra.nombre]
        assert response.json()[0]["price_per_unit"] == "30.00"


class TestExceptionHandler:
    def test_unexpected_errors_are_not_swallowed(self):
        from core.handlers import exception_handler

        assert exception_handler(RuntimeError("boom"), {"view": None}) is None

    def test_domain_error_shape(self):
        from core.exceptions import ConflictError
        from core.handlers import exception_handler

        response = exception_handler(ConflictError("Ocupado", entidad="Camion", id_entidad=3), {"view": None})
        assert response.status_code == 409
        assert response.data == {"error": "Ocupado", "code": "conflict", "entity": "Camion", "entity_id": 3}

    @pytest.mark.parametrize("detalle", [
        {"items": [{}, {"quantity": ["Número inválido."]}]},
        {"items": {1: {"quantity": ["Número inválido."]}}},
    ])
    def test_list_positions_use_brackets(self, detalle):
        from core.handlers import _aplanar_errores

        assert _aplanar_errores(detalle) == {"items[1].quantity": ["Número inválido."]}
