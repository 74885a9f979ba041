"""
Server Module - Request-time integration.

Serves built dependency artifacts directly from their output directory
and pushes live-reload notifications after development rebuilds.
"""

from .interceptor import ArtifactInterceptor, ArtifactMiddleware, ArtifactResponse
from .reload import ReloadHub, RELOAD_MESSAGE
from .app import create_app

__all__ = [
    "ArtifactInterceptor",
    "ArtifactMiddleware",
    "ArtifactResponse",
    "ReloadHub",
    "RELOAD_MESSAGE",
    "create_app",
]
