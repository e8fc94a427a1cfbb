"""
Host header to site resolution for the preview server.

Accepted shapes, case-insensitive, with an optional port:

    localhost          -> the default site
    <slug>.localhost   -> <slug>

Everything else is rejected so the preview server never answers for a
public domain.
"""

from dataclasses import dataclass

from ..domain.site import is_valid_slug
from ..errors import InvalidHostError

DEFAULT_LOCAL_HOST = "localhost"
DEFAULT_SITE_SLUG = "default"


@dataclass(frozen=True)
class ResolvedHost:
    """A Host header mapped to a site."""
    slug: str
    host: str


class SiteResolver:
    """
    Maps a Host header to a site slug. Stateless and thread-safe.

    Example:
        resolver = SiteResolver()
        resolver.resolve("blog.localhost:8080").slug  # "blog"
        resolver.resolve("example.com")               # raises InvalidHostError
    """

    def __init__(self, local_host: str = DEFAULT_LOCAL_HOST,
                 default_slug: str = DEFAULT_SITE_SLUG):
        self.local_host = local_host.lower().rstrip(".")
        self.default_slug = default_slug

    def resolve(self, host: str) -> ResolvedHost:
        name = normalize_host(host)
        if not name:
            raise InvalidHostError(host or "", "empty host")

        if name == self.local_host:
            return ResolvedHost(slug=self.default_slug, host=name)

        suffix = "." + self.local_host
        if not name.endswith(suffix):
            raise InvalidHostError(host, f"not under {self.local_host}")

        label = name[:-len(suffix)]
        if "." in label:
            raise InvalidHostError(host, "nested subdomains are not served")
        if not is_valid_slug(label):
            raise InvalidHostError(host, f"invalid site label {label!r}")
        return ResolvedHost(slug=label, host=name)


def normalize_host(host: str) -> str:
    """
    Lowercase ``host`` and strip its port and trailing dot.

    IPv6 literals and anything with stray colons come back as "", which
    the resolver rejects.
    """
    name = (host or "").strip().lower()
    if name.startswith("["):
        return ""
    if ":" in name:
        name, _, port = name.partition(":")
        if not port.isdigit():
            return ""
    return name.rstrip(".")
