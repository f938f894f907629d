"""
URL configuration for chat API.

URL Structure:
    Conversations:
        /conversations/                  GET, POST
        /conversations/{id}/             GET, DELETE
        /conversations/{id}/messages/    GET
        /conversations/{id}/archive/     PUT
        /conversations/{id}/block/       PUT (admin)
        /conversations/{id}/unblock/     PUT (admin)

    Messages:
        /messages/{id}/                  DELETE
        /messages/upload/                POST (multipart)

    Stats:
        /stats/                          GET (admin)

All URLs are prefixed with /api/v1/chat/ in the main URL configuration.
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from chat.views import ChatStatsView, ConversationViewSet, MessageViewSet

router = DefaultRouter()
router.register(r"conversations", ConversationViewSet, basename="conversation")
router.register(r"messages", MessageViewSet, basename="message")

app_name = "chat"

urlpatterns = [
    path("", include(router.urls)),
    path("stats/", ChatStatsView.as_view(), name="stats"),
]
