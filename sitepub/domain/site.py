"""
Site domain object for sitepub.

A Site is a tenant of the platform. Its slug doubles as the preview
subdomain (``<slug>.localhost``) and as the directory name of its
materialized tree, so it must be a valid DNS label.
"""

import re
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Dict, Any

SLUG_PATTERN = re.compile(r'^[a-z0-9]([a-z0-9-]{0,61}[a-z0-9])?$')

MODE_BLOG = "blog"
MODE_STRUCTURED = "structured"
SITE_MODES = (MODE_BLOG, MODE_STRUCTURED)


def is_valid_slug(slug: str) -> bool:
    """Check whether ``slug`` is URL-safe and usable as a subdomain label."""
    return bool(slug) and SLUG_PATTERN.match(slug) is not None


@dataclass(frozen=True)
class Site:
    """
    A tenant site.

    Example:
        site = Site.new("My Blog", "my-blog", mode="blog")
        assert site.active
    """
    name: str
    slug: str
    mode: str = MODE_STRUCTURED
    active: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_by: Optional[uuid.UUID] = None
    updated_by: Optional[uuid.UUID] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not is_valid_slug(self.slug):
            raise ValueError(f"invalid site slug: {self.slug!r}")
        if self.mode not in SITE_MODES:
            raise ValueError(f"invalid site mode: {self.mode!r}")

    @classmethod
    def new(cls, name: str, slug: str, mode: str = MODE_STRUCTURED,
            created_by: Optional[uuid.UUID] = None) -> 'Site':
        """Create an active site with audit timestamps set to now."""
        now = datetime.now(timezone.utc)
        return cls(
            name=name,
            slug=slug,
            mode=mode,
            created_by=created_by,
            updated_by=created_by,
            created_at=now,
            updated_at=now,
        )

    def deactivate(self, by: Optional[uuid.UUID] = None) -> 'Site':
        """Return a copy marked inactive."""
        return replace(self, active=False, updated_by=by,
                       updated_at=datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': str(self.id),
            'name': self.name,
            'slug': self.slug,
            'mode': self.mode,
            'active': self.active,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }

    def __str__(self) -> str:
        return f"{self.name} ({self.slug})"
