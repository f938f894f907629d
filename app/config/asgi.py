"""
ASGI config for the chat service.

This file exposes the ASGI callable as a module-level variable named
`application`. Uvicorn serves it in every environment.

Protocols:
    http       Django views (REST façade, admin, health, schema)
    websocket  Chat WebSocket at ws/chat/, authenticated by JWTAuthMiddleware

The presence registry is process-local and owned by ChatConfig; the
routing module injects it into every ChatConsumer instance, so all
connections served by one worker share one registry.

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/howto/deployment/asgi/
"""

import os

from django.core.asgi import get_asgi_application

# Set the default Django settings module for the ASGI application
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django ASGI application early to ensure settings are loaded
# before importing any models or other Django components
django_asgi_app = get_asgi_application()

# Import Channels components after Django is initialized
from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # Origin check, then token -> scope["user"], then path -> consumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
