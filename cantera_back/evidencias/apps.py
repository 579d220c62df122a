from django.apps import AppConfig


class EvidenciasConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "evidencias"
