"""
Domain layer for sitepub.

Contains pure domain objects with no I/O or side effects:
- Site: A tenant of the platform
- Param: Site-scoped setting addressable by name or reference key
- PublisherConfig, GitAuth, GitCommit: Inputs to a publish
- PlanReport, PublishResult: Outputs of plan and publish
"""

from .site import Site, is_valid_slug, MODE_BLOG, MODE_STRUCTURED
from .param import Param, ParamKey
from .publish import (
    AuthMethod,
    GitAuth,
    GitCommit,
    PublisherConfig,
    PlanReport,
    PublishResult,
    Stage,
)

__all__ = [
    'Site',
    'is_valid_slug',
    'MODE_BLOG',
    'MODE_STRUCTURED',
    'Param',
    'ParamKey',
    'AuthMethod',
    'GitAuth',
    'GitCommit',
    'PublisherConfig',
    'PlanReport',
    'PublishResult',
    'Stage',
]
