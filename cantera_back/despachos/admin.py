from django.contrib import admin
from simple_history.admin import SimpleHistoryAdmin
from .models import Despacho, DespachoItem


class DespachoItemInline(admin.TabularInline):
    model = DespachoItem
    extra = 0


@admin.register(Despacho)
class DespachoAdmin(SimpleHistoryAdmin):
    list_display = ["id_despacho", "id_pedido", "id_camion", "id_chofer", "estado"]
    list_filter = ["estado"]
    inlines = [DespachoItemInline]
