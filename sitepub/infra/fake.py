"""
Recording test doubles for sitepub's collaborators.

Each fake satisfies the same interface as the real implementation,
records every call, and lets a test override any single operation by
assigning a function to its ``<name>_fn`` attribute:

    def reject(**kwargs):
        raise GitCommandError("git push", 1, "rejected")

    git = FakeGitClient()
    git.push_fn = reject
    ...
    assert git.calls_for("push")[0]["branch"] == "gh-pages"
"""

import itertools
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..domain.publish import GitAuth, GitCommit, PlanReport, PublisherConfig, PublishResult


@dataclass
class Call:
    """One recorded invocation."""
    name: str
    kwargs: Dict[str, Any] = field(default_factory=dict)

    def __getitem__(self, key: str) -> Any:
        return self.kwargs[key]


class _Recorder:
    def __init__(self):
        self.calls: List[Call] = []
        self._lock = threading.Lock()

    def _record(self, name: str, **kwargs) -> Optional[Callable]:
        with self._lock:
            self.calls.append(Call(name, kwargs))
        return getattr(self, f"{name}_fn", None)

    def calls_for(self, name: str) -> List[Call]:
        return [c for c in self.calls if c.name == name]

    @property
    def call_names(self) -> List[str]:
        return [c.name for c in self.calls]


class FakeGitClient(_Recorder):
    """
    In-memory ``VCSClient``.

    ``clone`` creates the target directory (with an empty ``.git``) so the
    publisher has somewhere to sync files; everything else only updates
    in-memory state.
    """

    def __init__(self):
        super().__init__()
        self.repos: set = set()
        self.branches: Dict[str, set] = {}
        self.current_branch: Dict[str, str] = {}
        self.status_output = ""
        self.log_output = ""
        self._hashes = (f"{n:040x}" for n in itertools.count(0xabc0001))

        self.is_repo_fn: Optional[Callable] = None
        self.clone_fn: Optional[Callable] = None
        self.checkout_fn: Optional[Callable] = None
        self.branch_exists_fn: Optional[Callable] = None
        self.add_fn: Optional[Callable] = None
        self.commit_fn: Optional[Callable] = None
        self.push_fn: Optional[Callable] = None
        self.status_fn: Optional[Callable] = None
        self.log_fn: Optional[Callable] = None

    def is_repo(self, path: str) -> bool:
        fn = self._record("is_repo", path=path)
        if fn:
            return fn(path=path)
        return path in self.repos

    def clone(self, remote_url: str, local_path: str, auth: GitAuth,
              env=None, cancel: Optional[threading.Event] = None) -> None:
        fn = self._record("clone", remote_url=remote_url, local_path=local_path,
                          auth=auth, env=env)
        if fn:
            return fn(remote_url=remote_url, local_path=local_path, auth=auth, env=env)
        Path(local_path, ".git").mkdir(parents=True, exist_ok=True)
        self.repos.add(local_path)

    def checkout(self, local_path: str, branch: str, create: bool = False,
                 env=None, cancel: Optional[threading.Event] = None) -> None:
        fn = self._record("checkout", local_path=local_path, branch=branch,
                          create=create, env=env)
        if fn:
            return fn(local_path=local_path, branch=branch, create=create, env=env)
        self.branches.setdefault(local_path, set()).add(branch)
        self.current_branch[local_path] = branch

    def branch_exists(self, local_path: str, branch: str, remote: str = "origin",
                      env=None, cancel: Optional[threading.Event] = None) -> bool:
        fn = self._record("branch_exists", local_path=local_path, branch=branch,
                          remote=remote, env=env)
        if fn:
            return fn(local_path=local_path, branch=branch, remote=remote, env=env)
        return branch in self.branches.get(local_path, set())

    def add(self, local_path: str, pathspec: str = ".",
            env=None, cancel: Optional[threading.Event] = None) -> None:
        fn = self._record("add", local_path=local_path, pathspec=pathspec, env=env)
        if fn:
            return fn(local_path=local_path, pathspec=pathspec, env=env)

    def commit(self, local_path: str, commit: GitCommit,
               env=None, cancel: Optional[threading.Event] = None) -> str:
        fn = self._record("commit", local_path=local_path, commit=commit, env=env)
        if fn:
            return fn(local_path=local_path, commit=commit, env=env)
        return next(self._hashes)

    def push(self, local_path: str, auth: GitAuth, remote: str, branch: str,
             env=None, cancel: Optional[threading.Event] = None) -> None:
        fn = self._record("push", local_path=local_path, auth=auth, remote=remote,
                          branch=branch, env=env)
        if fn:
            return fn(local_path=local_path, auth=auth, remote=remote, branch=branch, env=env)

    def status(self, local_path: str, env=None,
               cancel: Optional[threading.Event] = None) -> str:
        fn = self._record("status", local_path=local_path, env=env)
        if fn:
            return fn(local_path=local_path, env=env)
        return self.status_output

    def log(self, local_path: str, args: Sequence[str] = (), env=None,
            cancel: Optional[threading.Event] = None) -> str:
        fn = self._record("log", local_path=local_path, args=list(args), env=env)
        if fn:
            return fn(local_path=local_path, args=list(args), env=env)
        return self.log_output


class FakePublisher(_Recorder):
    """Stands in for ``Publisher`` in service and CLI tests."""

    def __init__(self):
        super().__init__()
        self.validate_fn: Optional[Callable] = None
        self.plan_fn: Optional[Callable] = None
        self.publish_fn: Optional[Callable] = None

    def validate(self, config: PublisherConfig) -> None:
        fn = self._record("validate", config=config)
        if fn:
            return fn(config=config)

    def plan(self, config: PublisherConfig, source_dir: str,
             cancel: Optional[threading.Event] = None) -> PlanReport:
        fn = self._record("plan", config=config, source_dir=source_dir)
        if fn:
            return fn(config=config, source_dir=source_dir)
        return PlanReport(summary="fake plan", branch=config.target_branch)

    def publish(self, config: PublisherConfig, source_dir: str,
                cancel: Optional[threading.Event] = None) -> PublishResult:
        fn = self._record("publish", config=config, source_dir=source_dir)
        if fn:
            return fn(config=config, source_dir=source_dir)
        return PublishResult(branch=config.target_branch, commit_url="fake-commit-url",
                             new_commit=True, pushed=True)


class FakeRenderer(_Recorder):
    """Renderer that writes a fixed set of files into the output directory."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        super().__init__()
        self.files = files if files is not None else {"index.html": "<h1>Home</h1>"}
        self.render_fn: Optional[Callable] = None

    def render(self, site_slug: str, output_dir: str) -> None:
        fn = self._record("render", site_slug=site_slug, output_dir=output_dir)
        if fn:
            return fn(site_slug=site_slug, output_dir=output_dir)
        for rel_path, content in self.files.items():
            target = Path(output_dir) / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
