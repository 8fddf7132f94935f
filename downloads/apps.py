from django.apps import AppConfig


class DownloadsConfig(AppConfig):
    name = 'downloads'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        """Register the huey task and its queue signal handlers"""
        from downloads import tasks  # noqa: F401
