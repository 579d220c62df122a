from django.db import models
from simple_history.models import HistoricalRecords

from catalogo.models import Camion, Chofer


class EstadoDespacho(models.TextChoices):
    ASIGNADA = 'ASIGNADA', ('Asignada')
    EN_CARGA = 'EN_CARGA', ('En carga')
    CARGADA = 'CARGADA', ('Cargada')
    SALIDA_OK = 'SALIDA_OK', ('Salida autorizada')
    RECHAZADA = 'RECHAZADA', ('Rechazada')


class Despacho(models.Model):
    """Un viaje: un camión + chofer llevando parte de un pedido."""

    id_despacho = models.AutoField(primary_key=True, db_column="id")
    id_pedido = models.ForeignKey('pedidos.Pedido', on_delete=models.CASCADE, db_column="order_id", related_name="despachos")
    id_camion = models.ForeignKey(Camion, on_delete=models.PROTECT, db_column="truck_id", related_name="despachos")
    id_chofer = models.ForeignKey(Chofer, on_delete=models.PROTECT, db_column="driver_id", related_name="despachos")
    # Si el viaje se asignó a un solo producto del pedido, toda la carga va a ese ítem
    id_pedido_item = models.ForeignKey(
        'pedidos.PedidoItem',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="order_item_id",
        related_name="despachos_asignados"
    )
    estado = models.CharField(
        max_length=15,
        choices=EstadoDespacho.choices,
        default=EstadoDespacho.ASIGNADA,
        db_column="status"
    )
    cantidad_cargada = models.DecimalField(max_digits=18, decimal_places=2, null=True, blank=True, db_column="loaded_quantity")
    foto_carga_url = models.CharField(max_length=500, null=True, blank=True, db_column="load_photo_url")
    foto_salida_url = models.CharField(max_length=500, null=True, blank=True, db_column="exit_photo_url")
    notas = models.TextField(null=True, blank=True, db_column="notes")

    inicio_carga_por = models.IntegerField(null=True, blank=True, db_column="loading_started_by")
    fecha_inicio_carga = models.DateTimeField(null=True, blank=True, db_column="loading_started_at")
    cargado_por = models.IntegerField(null=True, blank=True, db_column="loaded_by")
    fecha_carga = models.DateTimeField(null=True, blank=True, db_column="loaded_at")
    salida_por = models.IntegerField(null=True, blank=True, db_column="exited_by")
    fecha_salida = models.DateTimeField(null=True, blank=True, db_column="exited_at")
    rechazado_por = models.IntegerField(null=True, blank=True, db_column="rejected_by")
    fecha_rechazo = models.DateTimeField(null=True, blank=True, db_column="rejected_at")
    motivo_rechazo = models.CharField(max_length=255, null=True, blank=True, db_column="rejection_reason")

    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    history = HistoricalRecords()

    class Meta:
        db_table = "despachos"
        ordering = ["-id_despacho"]
        indexes = [
            models.Index(fields=["estado"], name="despacho_estado_idx"),
        ]

    def __str__(self):
        return f"Despacho #{self.id_despacho} ({self.estado})"


class DespachoItem(models.Model):
    id_despacho_item = models.AutoField(primary_key=True, db_column="id")
    id_despacho = models.ForeignKey(Despacho, on_delete=models.CASCADE, db_column="despacho_id", related_name="items")
    id_pedido_item = models.ForeignKey(
        'pedidos.PedidoItem',
        on_delete=models.CASCADE,
        db_column="pedido_item_id",
        related_name="despachos_items"
    )
    cantidad_despachada = models.DecimalField(max_digits=18, decimal_places=2, db_column="dispatched_quantity")

    class Meta:
        db_table = "despachos_items"
        ordering = ["id_despacho_item"]
        constraints = [
            models.UniqueConstraint(fields=["id_despacho", "id_pedido_item"], name="despacho_item_unico"),
            models.CheckConstraint(condition=models.Q(cantidad_despachada__gt=0), name="despacho_item_cantidad_positiva"),
        ]
