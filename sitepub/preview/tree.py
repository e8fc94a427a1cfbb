"""
Registry of materialized site trees.

The preview server reads it on every request; renders and publishes
update it. Reads vastly outnumber writes, hence the read-write lock.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from ..paths import site_html_path

logger = logging.getLogger(__name__)


class ReadWriteLock:
    """Many concurrent readers or one writer."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._readers:
                self._cond.wait()
            yield


class TreeRegistry:
    """
    Maps site slug -> root directory of its materialized tree.

    Example:
        trees = TreeRegistry("_workspace/sites")
        trees.lookup("blog")   # None until the site has been rendered
    """

    def __init__(self, sites_base: str):
        self.sites_base = sites_base
        self._roots: Dict[str, str] = {}
        self._lock = ReadWriteLock()

    def root_for(self, slug: str) -> str:
        """Where the site's tree lives, whether or not it exists. No I/O."""
        return site_html_path(self.sites_base, slug)

    def lookup(self, slug: str) -> Optional[str]:
        """
        Root of the site's tree, or None if it has not been materialized.

        Only found roots are cached; a missing tree is looked for again on
        the next request.
        """
        with self._lock.read():
            root = self._roots.get(slug)
        if root is not None:
            return root

        candidate = self.root_for(slug)
        if not os.path.isdir(candidate):
            return None
        self.register(slug, candidate)
        return candidate

    def register(self, slug: str, root: str) -> None:
        with self._lock.write():
            self._roots[slug] = root
        logger.debug(f"Registered tree for {slug}: {root}")

    def invalidate(self, slug: str) -> None:
        with self._lock.write():
            self._roots.pop(slug, None)
        logger.debug(f"Invalidated tree for {slug}")
