from django.apps import AppConfig


class PointsmanConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pointsman"
    verbose_name = "Pointsman - Butchery Loyalty"
