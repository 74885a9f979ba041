"""
Artifact Interceptor - Serves built dependency files ahead of the compiler.

For every request:
- strip the public base path
- if the remainder names a file under the artifact output directory,
  answer with its bytes directly
- otherwise pass through untouched

The remote entry keeps a fixed name while its contents change, so it
is always revalidated. Every other artifact file is content-hashed by
the engine and cached forever.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
import logging
import mimetypes

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..builder.entry import REMOTE_ENTRY

logger = logging.getLogger(__name__)

IMMUTABLE_CACHE_CONTROL = "max-age=31536000,immutable"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ArtifactResponse:
    """A file served straight from the artifact directory."""
    body: bytes
    content_type: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ArtifactInterceptor:
    """
    Framework-agnostic artifact lookup.

    The interceptor only reads the output directory; the orchestrator
    is its sole writer.
    """
    output_dir: Path
    public_path: str = "/"
    enabled: bool = True

    def relative_path(self, request_path: str) -> str:
        """Request path with the public base path removed."""
        if self.public_path != "/" and request_path.startswith(self.public_path):
            request_path = "/" + request_path[len(self.public_path):]
        return request_path.lstrip("/")

    def lookup(self, request_path: str) -> ArtifactResponse | None:
        """
        Find the artifact file for a request path.

        Returns None to pass through.
        """
        if not self.enabled or request_path == "/":
            return None

        relative = self.relative_path(request_path)
        if not relative:
            return None

        root = self.output_dir.resolve()
        candidate = (root / relative).resolve()
        if not candidate.is_relative_to(root) or not candidate.is_file():
            return None

        try:
            body = candidate.read_bytes()
        except OSError as e:
            # Replaced or removed by a concurrent build
            logger.debug("artifact %s vanished: %s", candidate, e)
            return None

        content_type, _ = mimetypes.guess_type(candidate.name)
        headers = {}
        if candidate.name != REMOTE_ENTRY:
            headers["cache-control"] = IMMUTABLE_CACHE_CONTROL
        return ArtifactResponse(
            body=body,
            content_type=content_type or DEFAULT_CONTENT_TYPE,
            headers=headers,
        )


class ArtifactMiddleware(BaseHTTPMiddleware):
    """Starlette middleware answering artifact requests before any route."""

    def __init__(self, app, interceptor: ArtifactInterceptor):
        super().__init__(app)
        self.interceptor = interceptor

    async def dispatch(self, request: Request, call_next):
        artifact = await run_in_threadpool(self.interceptor.lookup, request.url.path)
        if artifact is None:
            return await call_next(request)
        return Response(
            content=artifact.body,
            media_type=artifact.content_type,
            headers=artifact.headers,
        )
