"""
Local preview of materialized site trees, addressed by Host header.
"""

from .resolver import ResolvedHost, SiteResolver
from .tree import ReadWriteLock, TreeRegistry
from .handler import PreviewHandler, PreviewResponse, resolve_safe_path
from .server import create_preview_server, run_preview_server

__all__ = [
    'ResolvedHost',
    'SiteResolver',
    'ReadWriteLock',
    'TreeRegistry',
    'PreviewHandler',
    'PreviewResponse',
    'resolve_safe_path',
    'create_preview_server',
    'run_preview_server',
]
