"""
Infrastructure layer for sitepub.

Contains abstractions for external systems:
- GitClient: Git command execution (implements VCSClient)
- FakeGitClient, FakePublisher, FakeRenderer: recording test doubles

These provide clean interfaces that can be swapped for testing.
"""

from .git_client import GitClient, VCSClient, git_env
from .fake import FakeGitClient, FakePublisher, FakeRenderer

__all__ = [
    'GitClient',
    'VCSClient',
    'git_env',
    'FakeGitClient',
    'FakePublisher',
    'FakeRenderer',
]
