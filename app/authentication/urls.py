"""
URL configuration for token issuance.

Routes:
    /token/          - Obtain access/refresh pair (POST email, password)
    /token/refresh/  - Refresh an access token (POST refresh)
    /token/verify/   - Verify a token (POST token)

Access tokens are accepted both as ``Authorization: Bearer <token>`` on the
REST API and as ``?token=<token>`` on the chat WebSocket.
"""

from django.urls import path
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
    TokenVerifyView,
)

app_name = "authentication"
urlpatterns = [
    path("token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("token/verify/", TokenVerifyView.as_view(), name="token-verify"),
]
