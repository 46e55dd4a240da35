from django.apps import AppConfig


class GalleryConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'gallery'

    def ready(self):
        """Import signal handlers when app is ready."""
        import gallery.signals  # noqa: F401 - Register collection signal handlers
