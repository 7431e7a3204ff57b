from django.apps import AppConfig


class JdeConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'uxone.jde'
    verbose_name = 'JDE'
