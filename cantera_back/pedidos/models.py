from decimal import Decimal

from django.db import models
from django.db.models import Sum, Value
from django.db.models.functions import Coalesce
from simple_history.models import HistoricalRecords

from catalogo.models import Cliente, Destino, Producto


class EstadoPedido(models.TextChoices):
    AWAITING_PAYMENT = 'AWAITING_PAYMENT', ('Pendiente de pago')
    PAID = 'PAID', ('Pagado')
    PARTIALLY_DISPATCHED = 'PARTIALLY_DISPATCHED', ('Despachado parcialmente')
    DISPATCHED_COMPLETE = 'DISPATCHED_COMPLETE', ('Despachado completo')
    CANCELLED = 'CANCELLED', ('Cancelado')


class Pedido(models.Model):
    id_pedido = models.AutoField(primary_key=True, db_column="id")
    numero_pedido = models.CharField(max_length=30, unique=True, db_column="order_number")
    id_cliente = models.ForeignKey(Cliente, on_delete=models.PROTECT, db_column="customer_id", related_name="pedidos")
    id_destino = models.ForeignKey(
        Destino,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        db_column="destination_id",
        related_name="pedidos"
    )
    estado = models.CharField(
        max_length=25,
        choices=EstadoPedido.choices,
        default=EstadoPedido.PAID,
        db_column="status"
    )
    notas = models.TextField(null=True, blank=True, db_column="notes")
    creado_por = models.IntegerField(db_column="created_by")
    fecha_pago = models.DateTimeField(null=True, blank=True, db_column="paid_at")
    fecha_cancelacion = models.DateTimeField(null=True, blank=True, db_column="cancelled_at")
    cancelado_por = models.IntegerField(null=True, blank=True, db_column="cancelled_by")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    history = HistoricalRecords()

    class Meta:
        db_table = "pedidos"
        ordering = ["-fecha_creacion"]

    def __str__(self):
        return self.numero_pedido

    @property
    def total(self):
        return sum((item.subtotal for item in self.items.all()), Decimal("0"))


class PedidoItemQuerySet(models.QuerySet):
    def con_despachado(self):
        return self.annotate(
            total_despachado=Coalesce(
                Sum('despachos_items__cantidad_despachada'),
                Value(Decimal("0")),
                output_field=models.DecimalField(max_digits=18, decimal_places=2)
            )
        )


class PedidoItem(models.Model):
    id_pedido_item = models.AutoField(primary_key=True, db_column="id")
    id_pedido = models.ForeignKey(Pedido, on_delete=models.CASCADE, db_column="order_id", related_name="items")
    id_producto = models.ForeignKey(Producto, on_delete=models.PROTECT, db_column="product_id")
    cantidad = models.DecimalField(max_digits=18, decimal_places=2, db_column="quantity")
    precio_unitario = models.DecimalField(max_digits=18, decimal_places=2, db_column="price_per_unit")
    unidad = models.CharField(max_length=10, db_column="unit")

    objects = PedidoItemQuerySet.as_manager()

    class Meta:
        db_table = "pedidos_items"
        ordering = ["id_pedido_item"]
        constraints = [
            models.CheckConstraint(condition=models.Q(cantidad__gt=0), name="pedido_item_cantidad_positiva"),
            models.CheckConstraint(condition=models.Q(precio_unitario__gte=0), name="pedido_item_precio_no_negativo"),
        ]

    @property
    def subtotal(self):
        return self.cantidad * self.precio_unitario

    @property
    def cantidad_despachada(self):
        """Suma de lo cargado contra este ítem en todos los despachos."""
        # Los listados la traen anotada con PedidoItem.objects.con_despachado()
        if hasattr(self, "total_despachado"):
            return self.total_despachado
        total = self.despachos_items.aggregate(total=Sum('cantidad_despachada'))['total']
        return total or Decimal("0")

    @property
    def cantidad_pendiente(self):
        return self.cantidad - self.cantidad_despachada
