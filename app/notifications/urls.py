"""
URL configuration for notification API.

URL Structure:
    /                     - List notifications (GET)
    /{id}/                - Delete notification (DELETE)
    /{id}/read/           - Mark as read (PUT)
    /read-all/            - Mark all as read (PUT)

All URLs are prefixed with /api/v1/notifications/ in the main URL configuration.
"""

from rest_framework.routers import DefaultRouter

from notifications.views import NotificationViewSet

router = DefaultRouter()
router.register(r"", NotificationViewSet, basename="notification")

app_name = "notifications"
urlpatterns = router.urls
