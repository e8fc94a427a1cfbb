"""
Service layer for sitepub.

- Publisher: validate, plan and publish a directory to a git branch
- ParamManager: resolve per-site publish settings
- PublishService: render, preview and publish a site
"""

from .publisher import Publisher, SiteLocks
from .params import ConfigParamSource, ParamManager, ParamSource
from .publish_service import PublishService, Renderer

__all__ = [
    'Publisher',
    'SiteLocks',
    'ConfigParamSource',
    'ParamManager',
    'ParamSource',
    'PublishService',
    'Renderer',
]
