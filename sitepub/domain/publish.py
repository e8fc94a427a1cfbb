"""
Publish domain objects for sitepub.

Value objects handed to and returned by the Publisher. They carry no
behaviour beyond serialization and a few derived properties.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional
from urllib.parse import quote, urlsplit, urlunsplit

DEFAULT_BRANCH = "gh-pages"
DEFAULT_REMOTE = "origin"
DEFAULT_COMMIT_MESSAGE = "Publish site"


class AuthMethod(Enum):
    """How the publisher authenticates against the remote."""
    TOKEN = "token"
    SSH = "ssh"
    NONE = "none"

    @classmethod
    def parse(cls, value: str) -> 'AuthMethod':
        """Parse a method name; empty means ``none``."""
        value = (value or "none").strip().lower()
        for method in cls:
            if method.value == value:
                return method
        raise ValueError(f"unknown auth method: {value!r}")


class Stage(Enum):
    """Publish pipeline stages, in execution order."""
    VALIDATE = "validate"
    CLONE = "clone"
    CHECKOUT = "checkout"
    SYNC = "sync"
    ADD = "add"
    COMMIT = "commit"
    PUSH = "push"

    @property
    def retryable(self) -> bool:
        """Network-class stages are safe to retry."""
        return self in (Stage.CLONE, Stage.PUSH)


@dataclass(frozen=True)
class GitAuth:
    """Authentication method plus its secret material."""
    method: AuthMethod = AuthMethod.NONE
    token: str = field(default="", repr=False)
    ssh_key_path: str = ""

    def to_dict(self) -> Dict[str, Any]:
        # Secrets are never serialized
        return {
            'method': self.method.value,
            'has_token': bool(self.token),
            'ssh_key_path': self.ssh_key_path or None,
        }


@dataclass(frozen=True)
class GitCommit:
    """Commit message plus the identity to commit as."""
    message: str = DEFAULT_COMMIT_MESSAGE
    user_name: str = ""
    user_email: str = ""


@dataclass(frozen=True)
class PublisherConfig:
    """
    Everything the Publisher needs for one invocation.

    Immutable: build a new one per publish.
    """
    repo_url: str = ""
    branch: str = DEFAULT_BRANCH
    auth: GitAuth = field(default_factory=GitAuth)
    commit: GitCommit = field(default_factory=GitCommit)
    remote: str = DEFAULT_REMOTE
    site_slug: str = ""

    @property
    def target_branch(self) -> str:
        return self.branch or DEFAULT_BRANCH

    def to_dict(self) -> Dict[str, Any]:
        return {
            'repo_url': redact_url(self.repo_url),
            'branch': self.target_branch,
            'remote': self.remote,
            'site': self.site_slug or None,
            'auth': self.auth.to_dict(),
            'commit_user_name': self.commit.user_name,
            'commit_user_email': self.commit.user_email,
        }


@dataclass
class PlanReport:
    """
    What a publish would change, computed without touching the remote.

    File lists hold POSIX paths relative to the tree root.
    """
    summary: str = ""
    added: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    unchanged: int = 0
    baseline: str = "none"  # "working-clone" or "none"
    branch: str = DEFAULT_BRANCH
    repo_url: str = ""

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.modified or self.removed)

    @property
    def total_changes(self) -> int:
        return len(self.added) + len(self.modified) + len(self.removed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'plan',
            'summary': self.summary,
            'branch': self.branch,
            'repo_url': self.repo_url,
            'baseline': self.baseline,
            'added': list(self.added),
            'modified': list(self.modified),
            'removed': list(self.removed),
            'unchanged': self.unchanged,
            'has_changes': self.has_changes,
        }


@dataclass(frozen=True)
class PublishResult:
    """Outcome of a successful publish."""
    branch: str
    commit_hash: str = ""
    commit_url: str = ""
    new_commit: bool = False
    pushed: bool = False

    @property
    def reference(self) -> str:
        """Commit URL when the remote has a web form, otherwise the hash."""
        return self.commit_url or self.commit_hash

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': 'publish',
            'branch': self.branch,
            'commit': self.commit_hash or None,
            'url': self.commit_url or None,
            'new_commit': self.new_commit,
            'pushed': self.pushed,
        }


def is_http_url(url: str) -> bool:
    return urlsplit(url).scheme in ('http', 'https')


def redact_url(url: str) -> str:
    """Strip userinfo (tokens, passwords) from an http(s) URL."""
    if not url or not is_http_url(url):
        return url
    parts = urlsplit(url)
    if not parts.username and not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"***@{host}", parts.path, parts.query, parts.fragment))


def with_token(url: str, token: str) -> str:
    """Return ``url`` with ``oauth2:<token>`` userinfo."""
    parts = urlsplit(url)
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit((parts.scheme, f"oauth2:{quote(token, safe='')}@{host}", parts.path, parts.query, parts.fragment))


def commit_url(repo_url: str, commit_hash: str) -> str:
    """Web URL of a commit for ``https://host/owner/repo`` style remotes."""
    if not commit_hash or not is_http_url(repo_url):
        return ""
    parts = urlsplit(redact_url(repo_url))
    path = parts.path.rstrip('/')
    if path.endswith('.git'):
        path = path[:-4]
    if path.count('/') < 2:
        return ""
    return f"{parts.scheme}://{parts.hostname}{path}/commit/{commit_hash}"
