from django.db import models


class Cliente(models.Model):
    id_cliente = models.AutoField(primary_key=True, db_column="id")
    nombre = models.CharField(max_length=150, db_column="name")
    rif = models.CharField(max_length=30, null=True, blank=True)
    direccion = models.CharField(max_length=255, null=True, blank=True, db_column="address")
    telefono = models.CharField(max_length=30, null=True, blank=True, db_column="phone")
    email = models.CharField(max_length=100, null=True, blank=True)
    activo = models.BooleanField(default=True, db_column="is_active")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    class Meta:
        db_table = "clientes"
        ordering = ["nombre"]

    def __str__(self):
        return self.nombre


class Destino(models.Model):
    id_destino = models.AutoField(primary_key=True, db_column="id")
    # Un destino puede ser de un cliente concreto o de uso general (obra pública, acopio)
    id_cliente = models.ForeignKey(
        Cliente,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        db_column="customer_id",
        related_name="destinos"
    )
    nombre = models.CharField(max_length=150, db_column="name")
    direccion = models.CharField(max_length=255, null=True, blank=True, db_column="direccion")
    activo = models.BooleanField(default=True, db_column="is_active")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    class Meta:
        db_table = "destinos"

    def __str__(self):
        return self.nombre


class Producto(models.Model):

    class Unidad(models.TextChoices):
        M3 = 'M3', ('m³')
        TON = 'TON', ('Toneladas')
        SACO = 'SACO', ('Sacos')
        UNIDAD = 'UNIDAD', ('Unidades')

    id_producto = models.AutoField(primary_key=True, db_column="id")
    nombre = models.CharField(max_length=150, db_column="name")
    descripcion = models.TextField(null=True, blank=True, db_column="description")
    unidad = models.CharField(max_length=10, choices=Unidad.choices, default=Unidad.M3, db_column="unit")
    precio_unitario = models.DecimalField(max_digits=18, decimal_places=2, default=0, db_column="price_per_unit")
    ref_proveedor = models.CharField(max_length=50, null=True, blank=True, db_column="ref_proveedor")
    activo = models.BooleanField(default=True, db_column="is_active")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    class Meta:
        db_table = "productos"
        constraints = [
            models.CheckConstraint(condition=models.Q(precio_unitario__gte=0), name="producto_precio_no_negativo"),
        ]

    def __str__(self):
        return f"{self.nombre} ({self.unidad})"


class Camion(models.Model):
    id_camion = models.AutoField(primary_key=True, db_column="id")
    placa = models.CharField(max_length=20, unique=True)
    marca = models.CharField(max_length=50, null=True, blank=True, db_column="brand")
    modelo = models.CharField(max_length=50, null=True, blank=True, db_column="model")
    capacidad = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        db_column="capacity",
        help_text="Capacidad nominal de carga (m³ o toneladas)"
    )
    activo = models.BooleanField(default=True, db_column="is_active")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    class Meta:
        db_table = "camiones"

    def __str__(self):
        return self.placa


class Chofer(models.Model):
    id_chofer = models.AutoField(primary_key=True, db_column="id")
    nombre = models.CharField(max_length=100, db_column="name")
    documento = models.CharField(max_length=30, null=True, blank=True, db_column="docId")
    telefono = models.CharField(max_length=30, null=True, blank=True, db_column="phone")
    activo = models.BooleanField(default=True, db_column="is_active")
    fecha_creacion = models.DateTimeField(auto_now_add=True, db_column="created_at")
    fecha_actualizacion = models.DateTimeField(auto_now=True, db_column="updated_at")

    class Meta:
        db_table = "choferes"

    def __str__(self):
        return self.nombre
