from django.apps import AppConfig


class NotificationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'labops.notifications'

    def ready(self):
        """Connect task event receivers"""
        import labops.notifications.signals  # noqa: F401
