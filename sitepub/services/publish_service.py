"""
Site-level publish orchestration.

Ties the pieces together for one site: render its HTML tree, expose it to
the preview server, and plan or publish it with the site's settings.
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Protocol

from ..domain.publish import PlanReport, PublishResult
from ..domain.site import is_valid_slug
from ..errors import ConfigValidationError
from ..preview.tree import TreeRegistry
from .params import ParamManager
from .publisher import Publisher

logger = logging.getLogger(__name__)


class Renderer(Protocol):
    """Writes a site's static HTML into ``output_dir``."""

    def render(self, site_slug: str, output_dir: str) -> None: ...


class PublishService:
    """
    Render, preview and publish sites.

    Example:
        service = PublishService(publisher, params, trees, renderer=renderer)
        service.materialize("blog")       # now served at blog.localhost
        report = service.plan("blog")
        result = service.publish("blog", message="New post")
    """

    def __init__(
        self,
        publisher: Publisher,
        params: ParamManager,
        trees: TreeRegistry,
        renderer: Optional[Renderer] = None,
    ):
        self.publisher = publisher
        self.params = params
        self.trees = trees
        self.renderer = renderer

    def html_dir(self, slug: str) -> str:
        if not is_valid_slug(slug):
            raise ConfigValidationError("site", f"invalid site slug: {slug!r}")
        return self.trees.root_for(slug)

    def materialize(self, slug: str) -> str:
        """
        Refresh the site's HTML tree and make it previewable.

        Without a renderer the existing tree is registered as is.

        Returns:
            The tree root
        """
        root = self.html_dir(slug)
        if self.renderer is not None:
            Path(root).mkdir(parents=True, exist_ok=True)
            logger.info(f"Rendering site {slug} into {root}")
            self.renderer.render(slug, root)

        if Path(root).is_dir():
            self.trees.register(slug, root)
        else:
            logger.warning(f"Site {slug} has no materialized tree at {root}")
            self.trees.invalidate(slug)
        return root

    def validate(self, slug: str, message: Optional[str] = None) -> None:
        config = self.params.publisher_config(slug, commit_message=message)
        self.publisher.validate(config)

    def plan(self, slug: str, cancel: Optional[threading.Event] = None) -> PlanReport:
        config = self.params.publisher_config(slug)
        return self.publisher.plan(config, self.html_dir(slug), cancel=cancel)

    def publish(
        self,
        slug: str,
        message: Optional[str] = None,
        cancel: Optional[threading.Event] = None,
    ) -> PublishResult:
        """Publish the site's current HTML tree."""
        config = self.params.publisher_config(slug, commit_message=message)
        result = self.publisher.publish(config, self.html_dir(slug), cancel=cancel)
        logger.info(f"Site {slug} published to {result.branch}: {result.reference or 'no commit'}")
        return result
