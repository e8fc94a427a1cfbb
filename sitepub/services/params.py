"""
Param manager for sitepub.

Resolves publish settings for a site: the site's own params win, then the
``publish`` section of the configuration, then the caller's default.
"""

import logging
from typing import Any, Dict, Optional, Protocol

from ..domain.param import CONFIG_FALLBACKS, Param, ParamKey
from ..domain.publish import (
    AuthMethod,
    DEFAULT_BRANCH,
    DEFAULT_REMOTE,
    GitAuth,
    GitCommit,
    PublisherConfig,
)
from ..errors import ConfigValidationError

logger = logging.getLogger(__name__)


class ParamSource(Protocol):
    """Where site params come from (the content repository in production)."""

    def get_param_by_ref(self, site_slug: str, ref_key: str) -> Optional[Param]: ...

    def get_param_by_name(self, site_slug: str, name: str) -> Optional[Param]: ...


class ConfigParamSource:
    """
    Serves params from the ``sites`` section of the configuration.

    Example config (YAML):

        sites:
          my-blog:
            params:
              ssg.publish.repo.url: https://github.com/me/blog.git
              ssg.publish.branch: gh-pages
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config

    def _params(self, site_slug: str) -> Dict[str, Any]:
        site = self.config.get("sites", {}).get(site_slug) or {}
        return site.get("params") or {}

    def get_param_by_ref(self, site_slug: str, ref_key: str) -> Optional[Param]:
        params = self._params(site_slug)
        if ref_key not in params:
            return None
        return Param(name=ref_key, ref_key=ref_key, value=str(params[ref_key]))

    def get_param_by_name(self, site_slug: str, name: str) -> Optional[Param]:
        return self.get_param_by_ref(site_slug, name)


class ParamManager:
    """
    Looks up site settings with configuration fallback.

    Example:
        pm = ParamManager(ConfigParamSource(config), config)
        cfg = pm.publisher_config("my-blog", commit_message="Fix typo")
    """

    def __init__(self, source: ParamSource, config: Optional[Dict[str, Any]] = None):
        self.source = source
        self.config = config or {}

    def find(self, site_slug: str, name: str) -> Optional[Param]:
        """Find a param by its human name."""
        return self.source.get_param_by_name(site_slug, name)

    def find_by_ref(self, site_slug: str, ref_key: str) -> Optional[Param]:
        return self.source.get_param_by_ref(site_slug, ref_key)

    def get(self, site_slug: str, ref_key: str, default: str = "") -> str:
        """Param value, else the configured fallback, else ``default``."""
        param = self.source.get_param_by_ref(site_slug, ref_key)
        if param is not None and not param.is_zero and param.value:
            return param.value

        config_key = CONFIG_FALLBACKS.get(ref_key)
        if config_key:
            value = self.config.get("publish", {}).get(config_key)
            if value not in (None, ""):
                return str(value)
        return default

    def publisher_config(self, site_slug: str, commit_message: Optional[str] = None) -> PublisherConfig:
        """
        Build the publish configuration for a site.

        A non-empty ``commit_message`` overrides the stored one.
        """
        method_name = self.get(site_slug, ParamKey.PUBLISH_AUTH_METHOD, "none")
        try:
            method = AuthMethod.parse(method_name)
        except ValueError as e:
            raise ConfigValidationError("auth.method", str(e)) from e

        token = ssh_key = ""
        if method == AuthMethod.TOKEN:
            token = self.get(site_slug, ParamKey.PUBLISH_AUTH_TOKEN)
        elif method == AuthMethod.SSH:
            ssh_key = self.get(site_slug, ParamKey.PUBLISH_AUTH_SSH_KEY)

        message = commit_message or self.get(site_slug, ParamKey.PUBLISH_COMMIT_MESSAGE)
        return PublisherConfig(
            repo_url=self.get(site_slug, ParamKey.PUBLISH_REPO_URL),
            branch=self.get(site_slug, ParamKey.PUBLISH_BRANCH, DEFAULT_BRANCH),
            remote=self.get(site_slug, ParamKey.PUBLISH_REMOTE, DEFAULT_REMOTE),
            auth=GitAuth(method=method, token=token, ssh_key_path=ssh_key),
            commit=GitCommit(
                message=message,
                user_name=self.get(site_slug, ParamKey.PUBLISH_COMMIT_USER_NAME),
                user_email=self.get(site_slug, ParamKey.PUBLISH_COMMIT_USER_EMAIL),
            ),
            site_slug=site_slug,
        )
