"""
Publisher service for sitepub.

Turns a materialized tree into a commit on a remote git branch:

    clone -> checkout -> sync -> add -> commit -> push

Each stage failure is raised as a ``StageError`` naming the stage, so the
caller can retry network stages (clone, push) and abort on the rest.
Publishes against the same working clone are serialized; different sites
run independently.
"""

import hashlib
import logging
import os
import shutil
import threading
from contextlib import contextmanager
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from ..domain.publish import (
    AuthMethod,
    DEFAULT_COMMIT_MESSAGE,
    PlanReport,
    PublisherConfig,
    PublishResult,
    Stage,
    commit_url,
    is_http_url,
    redact_url,
)
from ..errors import (
    ConfigValidationError,
    GitCommandError,
    OperationCancelled,
    PublishCancelledError,
    StageError,
)
from ..infra.git_client import GitClient, VCSClient, git_env
from ..paths import site_publish_path

logger = logging.getLogger(__name__)

GIT_DIR = ".git"
# Written inside GIT_DIR once a clone has finished
CLONE_MARKER = "sitepub-clone-complete"
INDEX_LOCK = "index.lock"


class SiteLocks:
    """
    One lock per working clone.

    Concurrent git operations on the same working directory corrupt its
    index, so everything that touches a clone holds its lock. An entry
    lives only while some thread holds or waits for it, so a long-running
    service does not keep one lock per clone it ever published.
    """

    def __init__(self):
        # path -> [lock, threads holding or waiting]
        self._locks: Dict[str, list] = {}
        self._guard = threading.Lock()

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        key = os.path.abspath(key)
        with self._guard:
            entry = self._locks.setdefault(key, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]


class Publisher:
    """
    Publishes a directory to a git branch.

    Example:
        publisher = Publisher(work_root="_workspace/sites")
        publisher.validate(config)
        report = publisher.plan(config, "_workspace/sites/blog/documents/html")
        result = publisher.publish(config, "_workspace/sites/blog/documents/html")
        print(result.reference)
    """

    def __init__(
        self,
        work_root: str,
        git_client: Optional[VCSClient] = None,
        locks: Optional[SiteLocks] = None,
        base_env: Optional[Dict[str, str]] = None,
    ):
        """
        Initialize Publisher.

        Args:
            work_root: Directory under which working clones are kept
            git_client: VCS client (creates a GitClient if None)
            locks: Lock registry, share one between publishers of one workspace
            base_env: Environment git children start from (process env if None)
        """
        self.work_root = work_root
        self.git = git_client or GitClient()
        self.locks = locks or SiteLocks()
        self.base_env = base_env

    def validate(self, config: PublisherConfig) -> None:
        """
        Check that ``config`` is usable. Performs no I/O.

        Raises:
            ConfigValidationError: naming the offending field
        """
        repo_url = (config.repo_url or "").strip()
        if not repo_url:
            raise ConfigValidationError("repo_url", "remote repository URL is required")

        auth = config.auth
        if auth.method == AuthMethod.TOKEN:
            if not auth.token:
                raise ConfigValidationError("auth.token", "token auth requires a token")
            if not is_http_url(repo_url):
                raise ConfigValidationError("repo_url", "token auth requires an http(s) URL")
        elif auth.method == AuthMethod.SSH:
            if not auth.ssh_key_path:
                raise ConfigValidationError("auth.ssh_key_path", "ssh auth requires a key path")
            if is_http_url(repo_url):
                raise ConfigValidationError("repo_url", "ssh auth requires an ssh remote, not http(s)")
        else:
            if auth.token:
                raise ConfigValidationError("auth.token", "token given but auth method is none")
            if auth.ssh_key_path:
                raise ConfigValidationError("auth.ssh_key_path", "ssh key given but auth method is none")

    def working_clone_path(self, config: PublisherConfig) -> str:
        """Working clone for ``config``: one per site and remote."""
        digest = hashlib.sha1(redact_url(config.repo_url).encode()).hexdigest()[:12]
        if config.site_slug:
            return os.path.join(site_publish_path(self.work_root, config.site_slug), digest)
        return os.path.join(self.work_root, "_publish", digest)

    def plan(
        self,
        config: PublisherConfig,
        source_dir: str,
        cancel: Optional[threading.Event] = None,
    ) -> PlanReport:
        """
        Report what ``publish`` would change, without contacting the remote.

        Compares ``source_dir`` with the working clone left by the last
        publish. Without a working clone every file counts as added.
        """
        self.validate(config)
        source = self._check_source(source_dir)
        clone = self.working_clone_path(config)

        with self.locks.hold(clone):
            if cancel is not None and cancel.is_set():
                raise PublishCancelledError(Stage.VALIDATE)

            wanted = _digest_tree(source)
            if self._has_clone(clone):
                current = _digest_tree(Path(clone))
                baseline = "working-clone"
            else:
                current = {}
                baseline = "none"

        added = sorted(set(wanted) - set(current))
        removed = sorted(set(current) - set(wanted))
        common = set(wanted) & set(current)
        modified = sorted(p for p in common if wanted[p] != current[p])

        report = PlanReport(
            added=added,
            modified=modified,
            removed=removed,
            unchanged=len(common) - len(modified),
            baseline=baseline,
            branch=config.target_branch,
            repo_url=redact_url(config.repo_url),
        )
        report.summary = _plan_summary(report)
        logger.info(f"Plan for {report.repo_url} ({report.branch}): {report.summary}")
        return report

    def publish(
        self,
        config: PublisherConfig,
        source_dir: str,
        cancel: Optional[threading.Event] = None,
    ) -> PublishResult:
        """
        Publish ``source_dir`` to the configured branch.

        Nothing to commit is not an error: the result has
        ``new_commit=False`` and the existing head is pushed again, which
        also completes a previous run that failed at push.

        Raises:
            ConfigValidationError: before any git call, for unusable input
            StageError: naming the stage that failed
            PublishCancelledError: when ``cancel`` was set
        """
        self.validate(config)
        source = self._check_source(source_dir)
        clone = self.working_clone_path(config)
        branch = config.target_branch
        commit = config.commit
        if not commit.message:
            commit = replace(commit, message=DEFAULT_COMMIT_MESSAGE)
        env = git_env(commit, config.auth, base=self.base_env)

        logger.info(
            f"Publishing {source} to {redact_url(config.repo_url)} "
            f"({branch}, auth: {config.auth.method.value})"
        )

        with self.locks.hold(clone):
            with self._stage(Stage.CLONE, cancel):
                if not self._has_clone(clone):
                    self._fresh_clone(config, clone, env, cancel)

            with self._stage(Stage.CHECKOUT, cancel):
                _remove_stale_index_lock(clone)
                exists = self.git.branch_exists(clone, branch, config.remote, env=env, cancel=cancel)
                self.git.checkout(clone, branch, create=not exists, env=env, cancel=cancel)

            with self._stage(Stage.SYNC, cancel):
                _sync_tree(source, Path(clone))

            with self._stage(Stage.ADD, cancel):
                self.git.add(clone, ".", env=env, cancel=cancel)

            with self._stage(Stage.COMMIT, cancel):
                commit_hash = self.git.commit(clone, commit, env=env, cancel=cancel)
                new_commit = bool(commit_hash)
                if not new_commit:
                    commit_hash = self._head(clone, env, cancel)

            pushed = False
            if commit_hash:
                with self._stage(Stage.PUSH, cancel):
                    self.git.push(clone, config.auth, config.remote, branch, env=env, cancel=cancel)
                pushed = True
            else:
                logger.info(f"Branch {branch} has no commits; nothing to push")

        result = PublishResult(
            branch=branch,
            commit_hash=commit_hash,
            commit_url=commit_url(config.repo_url, commit_hash),
            new_commit=new_commit,
            pushed=pushed,
        )
        if new_commit:
            logger.info(f"Published {result.reference}")
        else:
            logger.info(f"No changes to publish; {branch} is at {commit_hash or 'no commit'}")
        return result

    @contextmanager
    def _stage(self, stage: Stage, cancel: Optional[threading.Event]) -> Iterator[None]:
        """Attribute any failure inside the block to ``stage``."""
        if cancel is not None and cancel.is_set():
            logger.info(f"Publish cancelled before {stage.value}")
            raise PublishCancelledError(stage)
        logger.debug(f"Stage {stage.value} started")
        try:
            yield
        except OperationCancelled as e:
            logger.info(f"Publish cancelled during {stage.value}")
            raise PublishCancelledError(stage, e) from e
        except StageError:
            raise
        except (GitCommandError, OSError) as e:
            logger.error(f"Publish failed at {stage.value}: {e}")
            raise StageError(stage, e) from e
        logger.debug(f"Stage {stage.value} finished")

    def _has_clone(self, clone: str) -> bool:
        """True for a repo at ``clone`` whose clone ran to completion."""
        return self.git.is_repo(clone) and os.path.exists(os.path.join(clone, GIT_DIR, CLONE_MARKER))

    def _fresh_clone(self, config: PublisherConfig, clone: str, env, cancel) -> None:
        if os.path.exists(clone):
            logger.warning(f"Removing incomplete working clone {clone}")
            shutil.rmtree(clone)
        try:
            self.git.clone(config.repo_url, clone, config.auth, env=env, cancel=cancel)
        except BaseException:
            # Never reuse a clone that did not finish
            shutil.rmtree(clone, ignore_errors=True)
            raise
        git_dir = Path(clone, GIT_DIR)
        if git_dir.is_dir():
            (git_dir / CLONE_MARKER).touch()

    def _head(self, clone: str, env, cancel) -> str:
        """Current commit hash, or "" on an unborn branch."""
        try:
            return self.git.log(clone, ["-1", "--format=%H"], env=env, cancel=cancel).strip()
        except GitCommandError as e:
            logger.debug(f"No HEAD commit in {clone}: {e}")
            return ""

    @staticmethod
    def _check_source(source_dir: str) -> Path:
        if not source_dir:
            raise ConfigValidationError("source_dir", "source directory is required")
        source = Path(source_dir)
        if not source.is_dir():
            raise ConfigValidationError("source_dir", f"not a directory: {source_dir}")
        return source


def _remove_stale_index_lock(clone: str) -> None:
    """
    Delete an ``index.lock`` left by a git child that was killed.

    Only called under the clone's site lock, when no git command of ours
    is running in it.
    """
    lock = Path(clone, GIT_DIR, INDEX_LOCK)
    if lock.exists():
        logger.warning(f"Removing stale {lock}")
        lock.unlink()


def _iter_files(root: Path) -> Iterator[Path]:
    for dirpath, dirnames, filenames in os.walk(root):
        if GIT_DIR in dirnames:
            dirnames.remove(GIT_DIR)
        for name in filenames:
            yield Path(dirpath) / name


def _digest_tree(root: Path) -> Dict[str, str]:
    """Map POSIX relative path -> SHA-256 of every file under ``root``."""
    digests = {}
    for path in _iter_files(root):
        h = hashlib.sha256()
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(65536), b''):
                h.update(chunk)
        digests[path.relative_to(root).as_posix()] = h.hexdigest()
    return digests


def _sync_tree(source: Path, dest: Path) -> None:
    """Make ``dest`` mirror ``source``, leaving ``dest/.git`` alone."""
    for entry in dest.iterdir():
        if entry.name == GIT_DIR:
            continue
        if entry.is_dir() and not entry.is_symlink():
            shutil.rmtree(entry)
        else:
            entry.unlink()

    shutil.copytree(
        source,
        dest,
        ignore=shutil.ignore_patterns(GIT_DIR),
        dirs_exist_ok=True,
    )


def _plan_summary(report: PlanReport) -> str:
    if not report.has_changes:
        return f"No changes ({report.unchanged} files up to date)"
    parts: List[str] = []
    if report.added:
        parts.append(f"{len(report.added)} added")
    if report.modified:
        parts.append(f"{len(report.modified)} modified")
    if report.removed:
        parts.append(f"{len(report.removed)} removed")
    return f"Would publish {report.total_changes} changes: " + ", ".join(parts)
