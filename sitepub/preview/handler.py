"""
Preview request handling.

Each request goes through:

    RESOLVE_HOST -> RESOLVE_PATH -> SERVE | REJECT

and ends in exactly one of 200 (file), 400 (bad host), 403 (path escapes
the site root), 404 (no such file, or no tree), 405 (method) or 500.
The handler knows nothing about sockets; ``server.py`` adapts it to
``http.server``.
"""

import logging
import mimetypes
import os
import posixpath
from dataclasses import dataclass, field
from typing import Dict, Optional
from urllib.parse import unquote

from ..errors import InvalidHostError, PathTraversalError
from .resolver import SiteResolver
from .tree import TreeRegistry

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"
ALLOWED_METHODS = ("GET", "HEAD")

_REASONS = {
    400: "Bad Request",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    500: "Internal Server Error",
}


@dataclass
class PreviewResponse:
    """
    Outcome of one preview request.

    ``file_path`` is set for 200 responses; error responses carry a short
    plain-text ``body`` instead.
    """
    status: int
    content_type: str = "text/plain; charset=utf-8"
    body: bytes = b""
    file_path: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == 200

    @classmethod
    def error(cls, status: int, **headers: str) -> "PreviewResponse":
        reason = _REASONS.get(status, "Error")
        return cls(status=status, body=f"{status} {reason}\n".encode(), headers=dict(headers))


def resolve_safe_path(root: str, url_path: str) -> str:
    """
    Map a request path to a path under ``root``.

    Purely lexical: the query string is dropped, the path is
    percent-decoded, backslashes count as separators and ``.``/``..``
    segments are collapsed. Nothing is read from disk.

    Raises:
        PathTraversalError: if the result would leave ``root`` or the path
            contains a NUL byte
    """
    raw = url_path.split("?", 1)[0].split("#", 1)[0]
    decoded = unquote(raw)
    if "\x00" in decoded:
        raise PathTraversalError(url_path)

    relative = decoded.replace("\\", "/").lstrip("/")
    normalized = posixpath.normpath(relative) if relative else "."
    if normalized == ".." or normalized.startswith("../") or posixpath.isabs(normalized):
        raise PathTraversalError(url_path)

    if normalized == ".":
        return root
    return os.path.join(root, *normalized.split("/"))


class PreviewHandler:
    """
    Serves materialized site trees by Host header.

    Example:
        handler = PreviewHandler(SiteResolver(), TreeRegistry("_workspace/sites"))
        response = handler.handle("GET", "blog.localhost:8080", "/posts/")
    """

    def __init__(self, resolver: SiteResolver, trees: TreeRegistry):
        self.resolver = resolver
        self.trees = trees

    def handle(self, method: str, host: str, path: str) -> PreviewResponse:
        try:
            return self._handle(method, host, path)
        except Exception:
            logger.exception(f"Unexpected error serving {host!r} {path!r}")
            return PreviewResponse.error(500)

    def _handle(self, method: str, host: str, path: str) -> PreviewResponse:
        # RESOLVE_HOST
        try:
            site = self.resolver.resolve(host)
        except InvalidHostError as e:
            logger.info(f"Rejected host: {e}")
            return PreviewResponse.error(400)

        if method.upper() not in ALLOWED_METHODS:
            return PreviewResponse.error(405, Allow=", ".join(ALLOWED_METHODS))

        # RESOLVE_PATH, before touching the filesystem
        try:
            resolve_safe_path(self.trees.root_for(site.slug), path)
        except PathTraversalError:
            logger.warning(f"Security: path traversal attempt for site {site.slug}: {path!r}")
            return PreviewResponse.error(403)

        root = self.trees.lookup(site.slug)
        if root is None:
            logger.debug(f"No materialized tree for site {site.slug}")
            return PreviewResponse.error(404)
        target = resolve_safe_path(root, path)

        # SERVE
        if os.path.isdir(target):
            target = os.path.join(target, INDEX_FILE)
        if not os.path.isfile(target):
            return PreviewResponse.error(404)

        content_type = mimetypes.guess_type(target)[0] or "application/octet-stream"
        return PreviewResponse(status=200, content_type=content_type, file_path=target)
