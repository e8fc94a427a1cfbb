"""
Param domain object for sitepub.

Params are site-scoped settings exposed to templates and to the publisher.
Each one is addressable by a human name and by a stable reference key.
"""

from dataclasses import dataclass
from typing import Dict, Any


@dataclass(frozen=True)
class Param:
    """A site-scoped key/value setting."""
    name: str
    value: str
    ref_key: str = ""
    description: str = ""
    system: bool = False

    @property
    def is_zero(self) -> bool:
        return not self.name and not self.ref_key

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'ref_key': self.ref_key,
            'value': self.value,
            'description': self.description,
            'system': self.system,
        }


class ParamKey:
    """Reference keys read by the publisher."""
    PUBLISH_REPO_URL = "ssg.publish.repo.url"
    PUBLISH_BRANCH = "ssg.publish.branch"
    PUBLISH_REMOTE = "ssg.publish.remote"
    PUBLISH_AUTH_METHOD = "ssg.publish.auth.method"
    PUBLISH_AUTH_TOKEN = "ssg.publish.auth.token"
    PUBLISH_AUTH_SSH_KEY = "ssg.publish.auth.ssh.key"
    PUBLISH_COMMIT_USER_NAME = "ssg.publish.commit.user.name"
    PUBLISH_COMMIT_USER_EMAIL = "ssg.publish.commit.user.email"
    PUBLISH_COMMIT_MESSAGE = "ssg.publish.commit.message"


# Ref key -> key in the config file's ``publish`` section
CONFIG_FALLBACKS = {
    ParamKey.PUBLISH_REPO_URL: "repo_url",
    ParamKey.PUBLISH_BRANCH: "branch",
    ParamKey.PUBLISH_REMOTE: "remote",
    ParamKey.PUBLISH_AUTH_METHOD: "auth_method",
    ParamKey.PUBLISH_AUTH_TOKEN: "auth_token",
    ParamKey.PUBLISH_AUTH_SSH_KEY: "auth_ssh_key",
    ParamKey.PUBLISH_COMMIT_USER_NAME: "commit_user_name",
    ParamKey.PUBLISH_COMMIT_USER_EMAIL: "commit_user_email",
    ParamKey.PUBLISH_COMMIT_MESSAGE: "commit_message",
}
