from django.apps import AppConfig


class ChaletsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.chalets"
    verbose_name = "Chalets"
