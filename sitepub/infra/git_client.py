"""
Git client infrastructure for sitepub.

Provides a narrow abstraction over git command execution.
All publisher git operations go through this client, making them:
- Easy to replace with a fake for testing
- Consistent in error handling
- Isolated from business logic

Credentials never reach the logs: URLs are redacted before any command
is logged or attached to an exception.
"""

import os
import re
import subprocess
import threading
import time
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence, Tuple
import logging

from ..domain.publish import AuthMethod, GitAuth, GitCommit, is_http_url, redact_url, with_token
from ..errors import GitCommandError, OperationCancelled

logger = logging.getLogger(__name__)

Env = Optional[Dict[str, str]]


class VCSClient(Protocol):
    """Capabilities the Publisher needs from a version control client."""

    def is_repo(self, path: str) -> bool: ...

    def clone(self, remote_url: str, local_path: str, auth: GitAuth,
              env: Env = None, cancel: Optional[threading.Event] = None) -> None: ...

    def checkout(self, local_path: str, branch: str, create: bool = False,
                 env: Env = None, cancel: Optional[threading.Event] = None) -> None: ...

    def branch_exists(self, local_path: str, branch: str, remote: str = "origin",
                      env: Env = None, cancel: Optional[threading.Event] = None) -> bool: ...

    def add(self, local_path: str, pathspec: str = ".",
            env: Env = None, cancel: Optional[threading.Event] = None) -> None: ...

    def commit(self, local_path: str, commit: GitCommit,
               env: Env = None, cancel: Optional[threading.Event] = None) -> str: ...

    def push(self, local_path: str, auth: GitAuth, remote: str, branch: str,
             env: Env = None, cancel: Optional[threading.Event] = None) -> None: ...

    def status(self, local_path: str,
               env: Env = None, cancel: Optional[threading.Event] = None) -> str: ...

    def log(self, local_path: str, args: Sequence[str] = (),
            env: Env = None, cancel: Optional[threading.Event] = None) -> str: ...


class GitClient:
    """
    Command-line git implementation of ``VCSClient``.

    Every operation is a synchronous child process. ``env`` replaces the
    child's environment for that call only, so concurrent publishes for
    different sites never share credentials. ``cancel`` stops the child
    when set.

    Example:
        client = GitClient(timeout=60)
        client.clone("https://github.com/me/site.git", "/tmp/site", auth)
        client.checkout("/tmp/site", "gh-pages", create=True)
    """

    def __init__(self, binary: str = "git", timeout: Optional[float] = 120,
                 poll_interval: float = 0.1, grace_period: float = 5.0):
        """
        Initialize GitClient.

        Args:
            binary: git executable
            timeout: Per-command timeout in seconds (None disables it)
            poll_interval: How often a running command checks its cancel event
            grace_period: How long a stopped command may take to exit after
                SIGTERM before it is killed
        """
        self.binary = binary
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.grace_period = grace_period

    @staticmethod
    def _display(args: Sequence[str]) -> str:
        return "git " + " ".join(redact_url(a) for a in args)

    def _run(
        self,
        args: Sequence[str],
        cwd: Optional[str] = None,
        env: Env = None,
        cancel: Optional[threading.Event] = None,
        check: bool = True,
    ) -> Tuple[str, int]:
        """
        Run a git command.

        Args:
            args: Arguments after the git executable
            cwd: Working directory
            env: Full environment for the child (inherits when None)
            cancel: Event that aborts the command when set
            check: Raise GitCommandError on non-zero exit

        Returns:
            Tuple of (stdout, returncode)
        """
        display = self._display(args)
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(display)

        logger.debug(f"Running: {display} (cwd={cwd})")
        try:
            proc = subprocess.Popen(
                [self.binary, *args],
                cwd=cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except FileNotFoundError as e:
            raise GitCommandError(display, 127, stderr=str(e)) from e

        deadline = time.monotonic() + self.timeout if self.timeout else None
        while True:
            try:
                stdout, stderr = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                if cancel is not None and cancel.is_set():
                    self._stop(proc)
                    logger.info(f"Cancelled: {display}")
                    raise OperationCancelled(display)
                if deadline is not None and time.monotonic() >= deadline:
                    self._stop(proc)
                    logger.warning(f"Git command timed out: {display}")
                    raise GitCommandError(display, -1, timed_out=True)

        if check and proc.returncode != 0:
            raise GitCommandError(display, proc.returncode, stderr=_scrub(stderr))
        return stdout or "", proc.returncode

    def _stop(self, proc: subprocess.Popen):
        """
        Stop a running git child.

        SIGTERM first: git's signal handler then removes its lock files
        (``index.lock``) and a half-written clone directory. SIGKILL only
        when it has not exited within ``grace_period``.
        """
        proc.terminate()
        try:
            proc.communicate(timeout=self.grace_period)
        except subprocess.TimeoutExpired:
            logger.warning(f"git pid {proc.pid} ignored SIGTERM; killing it")
            proc.kill()
            proc.communicate()

    def is_repo(self, path: str) -> bool:
        """Check if path is a git working tree."""
        return (Path(path) / ".git").exists()

    def clone(self, remote_url: str, local_path: str, auth: GitAuth,
              env: Env = None, cancel: Optional[threading.Event] = None) -> None:
        """
        Clone ``remote_url`` into ``local_path``.

        With token auth the token is only used for the clone itself; the
        stored remote URL is reset to the bare URL afterwards.
        """
        url = remote_url
        if auth.method == AuthMethod.TOKEN and auth.token and is_http_url(remote_url):
            url = with_token(remote_url, auth.token)

        Path(local_path).parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Cloning {redact_url(remote_url)} (auth: {auth.method.value})")
        self._run(["clone", url, local_path], env=env, cancel=cancel)

        if url != remote_url:
            self._run(["remote", "set-url", "origin", remote_url],
                      cwd=local_path, env=env, cancel=cancel)

    def checkout(self, local_path: str, branch: str, create: bool = False,
                 env: Env = None, cancel: Optional[threading.Event] = None) -> None:
        args = ["checkout"]
        if create:
            args.append("-b")
        args.append(branch)
        self._run(args, cwd=local_path, env=env, cancel=cancel)

    def branch_exists(self, local_path: str, branch: str, remote: str = "origin",
                      env: Env = None, cancel: Optional[threading.Event] = None) -> bool:
        """True if ``branch`` exists locally or as a remote-tracking branch."""
        for ref in (f"refs/heads/{branch}", f"refs/remotes/{remote}/{branch}"):
            _, code = self._run(["rev-parse", "--verify", "--quiet", ref],
                                cwd=local_path, env=env, cancel=cancel, check=False)
            if code == 0:
                return True
        return False

    def add(self, local_path: str, pathspec: str = ".",
            env: Env = None, cancel: Optional[threading.Event] = None) -> None:
        """Stage ``pathspec`` including deletions."""
        self._run(["add", "-A", "--", pathspec], cwd=local_path, env=env, cancel=cancel)

    def commit(self, local_path: str, commit: GitCommit,
               env: Env = None, cancel: Optional[threading.Event] = None) -> str:
        """
        Commit staged changes.

        Returns:
            The new commit hash, or "" when there was nothing to commit
        """
        if not self.status(local_path, env=env, cancel=cancel).strip():
            logger.info(f"No changes to commit in {local_path}")
            return ""

        args: List[str] = []
        if commit.user_name:
            args += ["-c", f"user.name={commit.user_name}"]
        if commit.user_email:
            args += ["-c", f"user.email={commit.user_email}"]
        args += ["commit", "-m", commit.message]
        self._run(args, cwd=local_path, env=env, cancel=cancel)

        output, _ = self._run(["rev-parse", "HEAD"], cwd=local_path, env=env, cancel=cancel)
        return output.strip()

    def push(self, local_path: str, auth: GitAuth, remote: str, branch: str,
             env: Env = None, cancel: Optional[threading.Event] = None) -> None:
        """Force-push ``branch`` to ``remote``."""
        target = remote
        if auth.method == AuthMethod.TOKEN and auth.token:
            output, _ = self._run(["remote", "get-url", remote],
                                  cwd=local_path, env=env, cancel=cancel)
            base_url = output.strip()
            if is_http_url(base_url):
                target = with_token(base_url, auth.token)

        logger.info(f"Pushing {branch} to {remote} (auth: {auth.method.value})")
        self._run(["push", "--force", target, f"{branch}:{branch}"],
                  cwd=local_path, env=env, cancel=cancel)

    def status(self, local_path: str,
               env: Env = None, cancel: Optional[threading.Event] = None) -> str:
        """Porcelain status output ("" when clean)."""
        output, _ = self._run(["status", "--porcelain"], cwd=local_path, env=env, cancel=cancel)
        return output

    def log(self, local_path: str, args: Sequence[str] = (),
            env: Env = None, cancel: Optional[threading.Event] = None) -> str:
        output, _ = self._run(["log", *args], cwd=local_path, env=env, cancel=cancel)
        return output


_CREDENTIALS = re.compile(r'(https?://)[^/@\s]+@')


def _scrub(text: str) -> str:
    """Redact URLs with credentials that git echoes back on stderr."""
    return _CREDENTIALS.sub(r'\1***@', text or "")


def git_env(commit: GitCommit, auth: GitAuth, base: Env = None) -> Dict[str, str]:
    """
    Build a child environment for one publish.

    Starts from ``base`` (or the current process environment), disables
    interactive prompts, sets the commit identity and, for SSH auth, the
    key to use. The current process environment is never modified.
    """
    env = dict(os.environ if base is None else base)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if commit.user_name:
        env["GIT_AUTHOR_NAME"] = commit.user_name
        env["GIT_COMMITTER_NAME"] = commit.user_name
    if commit.user_email:
        env["GIT_AUTHOR_EMAIL"] = commit.user_email
        env["GIT_COMMITTER_EMAIL"] = commit.user_email
    if auth.method == AuthMethod.SSH and auth.ssh_key_path:
        key = os.path.expanduser(auth.ssh_key_path)
        env["GIT_SSH_COMMAND"] = (
            f"ssh -i '{key}' -o IdentitiesOnly=yes -o StrictHostKeyChecking=accept-new"
        )
    return env
