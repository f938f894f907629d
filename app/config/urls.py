"""
Root URL configuration for the chat service.

URL Structure:
    /                              - ReDoc API documentation
    /admin/                        - Django admin interface
    /health/                       - Health check endpoint (load balancers, Docker)
    /schema/                       - OpenAPI schema (YAML)
    /api/v1/auth/                  - JWT issuance
        token/                     - Obtain access/refresh pair
        token/refresh/             - Refresh access token
        token/verify/              - Verify token
    /api/v1/chat/                  - Chat endpoints
        conversations/             - Find-or-create, list
        conversations/{id}/        - Detail, delete
        conversations/{id}/messages/ - Message history
        conversations/{id}/archive/  - Archive
        conversations/{id}/block/    - Block (admin)
        conversations/{id}/unblock/  - Unblock (admin)
        messages/{id}/             - Soft delete message
        messages/upload/           - Attachment upload
        stats/                     - Admin statistics
    /api/v1/notifications/         - Chat notification inbox
        {id}/read/                 - Mark one read
        read-all/                  - Mark all read
    ws/chat/                       - WebSocket (see chat.routing)

For more information, see:
https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
# All routes here are prefixed with /api/v1/ automatically
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("chat/", include("chat.urls")),
    path("notifications/", include("notifications.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, Kubernetes, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "Marketplace Chat Admin"
admin.site.site_title = "Chat Admin"
admin.site.index_title = "Conversations and notifications"
