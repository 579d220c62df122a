from django.apps import AppConfig


class DespachosConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "despachos"
