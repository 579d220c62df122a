from rest_framework import serializers
from .models import Cliente, Destino, Producto, Camion, Chofer


class ClienteSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_cliente', read_only=True)
    name = serializers.CharField(source='nombre', max_length=150)
    address = serializers.CharField(source='direccion', required=False, allow_null=True, allow_blank=True)
    phone = serializers.CharField(source='telefono', required=False, allow_null=True, allow_blank=True)
    is_active = serializers.BooleanField(source='activo', required=False)

    class Meta:
        model = Cliente
        fields = ['id', 'name', 'rif', 'address', 'phone', 'email', 'is_active']


class DestinoSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_destino', read_only=True)
    customer_id = serializers.PrimaryKeyRelatedField(
        source='id_cliente',
        queryset=Cliente.objects.all(),
        required=False,
        allow_null=True
    )
    name = serializers.CharField(source='nombre', max_length=150)
    client_name = serializers.CharField(source='id_cliente.nombre', read_only=True)
    is_active = serializers.BooleanField(source='activo', required=False)

    class Meta:
        model = Destino
        fields = ['id', 'customer_id', 'client_name', 'name', 'direccion', 'is_active']


class ProductoSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_producto', read_only=True)
    name = serializers.CharField(source='nombre', max_length=150)
    description = serializers.CharField(source='descripcion', required=False, allow_null=True, allow_blank=True)
    unit = serializers.ChoiceField(source='unidad', choices=Producto.Unidad.choices, required=False)
    price_per_unit = serializers.DecimalField(
        source='precio_unitario', max_digits=18, decimal_places=2, min_value=0, required=False
    )
    refProveedor = serializers.CharField(source='ref_proveedor', required=False, allow_null=True, allow_blank=True)
    is_active = serializers.BooleanField(source='activo', required=False)

    class Meta:
        model = Producto
        fields = ['id', 'name', 'description', 'unit', 'price_per_unit', 'refProveedor', 'is_active']


class CamionSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_camion', read_only=True)
    brand = serializers.CharField(source='marca', required=False, allow_null=True, allow_blank=True)
    model = serializers.CharField(source='modelo', required=False, allow_null=True, allow_blank=True)
    capacity = serializers.DecimalField(
        source='capacidad', max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    is_active = serializers.BooleanField(source='activo', required=False)

    class Meta:
        model = Camion
        fields = ['id', 'placa', 'brand', 'model', 'capacity', 'is_active']


class ChoferSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source='id_chofer', read_only=True)
    name = serializers.CharField(source='nombre', max_length=100)
    docId = serializers.CharField(source='documento', required=False, allow_null=True, allow_blank=True)
    phone = serializers.CharField(source='telefono', required=False, allow_null=True, allow_blank=True)
    is_active = serializers.BooleanField(source='activo', required=False)

    class Meta:
        model = Chofer
        fields = ['id', 'name', 'docId', 'phone', 'is_active']
