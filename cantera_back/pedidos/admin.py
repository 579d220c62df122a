from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin
from .models import Pedido, PedidoItem


class PedidoItemInline(admin.TabularInline):
    model = PedidoItem
    extra = 0


@admin.register(Pedido)
class PedidoAdmin(SimpleHistoryAdmin):
    list_display = ["numero_pedido", "id_cliente", "estado", "fecha_creacion"]
    list_filter = ["estado"]
    search_fields = ["numero_pedido", "id_cliente__nombre"]
    inlines = [PedidoItemInline]
