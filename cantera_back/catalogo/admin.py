from django.contrib import admin
from .models import Cliente, Destino, Producto, Camion, Chofer

admin.site.register(Cliente)
admin.site.register(Destino)
admin.site.register(Producto)
admin.site.register(Camion)
admin.site.register(Chofer)
