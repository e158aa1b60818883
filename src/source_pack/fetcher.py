"""
Source acquisition module.

Resolves a source descriptor (a local directory or a remote git repository URL) into a
locally readable root directory. Remote sources are shallow-cloned into a temporary
directory that is removed when the acquisition context exits.
"""

from __future__ import annotations

import os
import re
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import git
from rich.console import Console

from .config import DEFAULT_CLONE_TIMEOUT
from .errors import AcquisitionError

console = Console(stderr=True)

REMOTE_SCHEMES = ("http", "https", "ssh", "git", "file")

# user@host:path/to/repo(.git)
_SCP_LIKE = re.compile(r"^(?P<user>[\w.-]+)@(?P<host>[\w.-]+):(?P<path>[^/].*)$")

_TEMP_PREFIX = "source-pack-"


@dataclass(frozen=True)
class AcquiredSource:
    """A source resolved to a local directory.

    Attributes:
        root: Directory to walk.
        name: Display name derived from the descriptor.
        is_temp: Whether `root` lives in a temporary clone directory.
    """

    root: Path
    name: str
    is_temp: bool = False


@dataclass(frozen=True)
class RemoteRepo:
    """A parsed remote repository reference.

    Attributes:
        clone_url: URL handed to git.
        name: Repository name without `.git`.
        ref: Branch/tag encoded in the URL, if any.
    """

    clone_url: str
    name: str
    ref: str | None = None


def derive_display_name(descriptor: str) -> str:
    """Derive a display name from a source descriptor.

    Strips surrounding whitespace, trailing separators and a trailing `.git`, then takes
    the last path segment. This is a pure string operation.

    Args:
        descriptor: Local path or repository URL.

    Returns:
        The final segment (e.g. `repo` for `https://github.com/owner/repo.git/`), or an
        empty string when nothing usable remains.
    """
    name = descriptor.strip().rstrip("/\\").removesuffix(".git").rstrip("/\\")
    name = name.replace("\\", "/").rsplit("/", 1)[-1]
    if "://" in name or name.endswith(":"):
        return ""
    # scp-like descriptors without a slash: git@host:repo
    if ":" in name and "@" in name:
        name = name.rsplit(":", 1)[-1]
    return name


def is_remote_descriptor(descriptor: str) -> bool:
    """Check whether a descriptor should be fetched rather than read from disk.

    Args:
        descriptor: Local path or repository URL.

    Returns:
        True for URLs with a known remote scheme or scp-like `user@host:path` syntax.
    """
    descriptor = descriptor.strip()
    if _SCP_LIKE.match(descriptor):
        return True
    if "://" not in descriptor:
        return False
    return urlparse(descriptor).scheme.lower() in REMOTE_SCHEMES


def parse_remote_url(url: str) -> RemoteRepo:
    """Parse a remote repository reference.

    Supports common formats:
    - `https://host/owner/repo` and `https://host/owner/repo.git`
    - `https://github.com/owner/repo/tree/<ref>` (ref extracted)
    - `ssh://git@host/owner/repo.git`, `git://host/owner/repo`
    - `git@host:owner/repo.git`
    - `file:///path/to/repo`

    Args:
        url: Repository URL.

    Returns:
        The parsed `RemoteRepo`.

    Raises:
        AcquisitionError: If the URL is malformed or uses an unsupported scheme.
    """
    url = url.strip()

    match = _SCP_LIKE.match(url)
    if match:
        name = derive_display_name(match.group("path"))
        if not name:
            raise AcquisitionError(f"Invalid repository URL (missing repository): {url}")
        return RemoteRepo(clone_url=url, name=name)

    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if scheme not in REMOTE_SCHEMES:
        raise AcquisitionError(f"Unsupported repository URL: {url}")

    path_parts = [p for p in parsed.path.split("/") if p]

    if scheme == "file":
        if not path_parts:
            raise AcquisitionError(f"Invalid repository URL (missing path): {url}")
        return RemoteRepo(clone_url=url, name=path_parts[-1].removesuffix(".git"))

    if not parsed.hostname:
        raise AcquisitionError(f"Invalid repository URL (missing host): {url}")
    if not path_parts:
        raise AcquisitionError(f"Invalid repository URL (missing repository): {url}")

    if parsed.hostname in ("github.com", "www.github.com"):
        return _parse_github_parts(url, parsed.scheme, path_parts)

    name = path_parts[-1].removesuffix(".git")
    if not name:
        raise AcquisitionError(f"Invalid repository URL (missing repository): {url}")
    return RemoteRepo(clone_url=url, name=name)


def _parse_github_parts(url: str, scheme: str, path_parts: list[str]) -> RemoteRepo:
    if len(path_parts) < 2:
        raise AcquisitionError(f"Invalid GitHub URL (missing owner/repo): {url}")

    owner = path_parts[0]
    repo = path_parts[1].removesuffix(".git")
    if not repo:
        raise AcquisitionError(f"Invalid GitHub URL (missing owner/repo): {url}")

    ref = None
    if len(path_parts) >= 4 and path_parts[2] in ("tree", "blob", "commit"):
        ref = path_parts[3]

    if scheme in ("http", "https"):
        clone_url = f"https://github.com/{owner}/{repo}.git"
    else:
        clone_url = url
    return RemoteRepo(clone_url=clone_url, name=repo, ref=ref)


def validate_local_path(path: Path) -> Path:
    """Validate and resolve a local source directory.

    Args:
        path: Local path to validate.

    Returns:
        Resolved absolute path to a readable directory.

    Raises:
        AcquisitionError: If the path does not exist, is not a directory, or is not readable.
    """
    resolved = path.expanduser().resolve()

    if not resolved.exists():
        raise AcquisitionError(f"Path does not exist: {resolved}")

    if not resolved.is_dir():
        raise AcquisitionError(f"Path is not a directory: {resolved}")

    if not os.access(resolved, os.R_OK | os.X_OK):
        raise AcquisitionError(f"Path is not readable: {resolved}")

    return resolved


def _clone_env(timeout: int) -> dict[str, str]:
    # Never block on a credential prompt; abort transfers slower than 1 KB/s for `timeout`s
    return {
        "GIT_TERMINAL_PROMPT": "0",
        "GIT_HTTP_LOW_SPEED_LIMIT": "1000",
        "GIT_HTTP_LOW_SPEED_TIME": str(timeout),
    }


def clone_repository(
    remote: RemoteRepo,
    target_dir: Path,
    ref: str | None = None,
    timeout: int = DEFAULT_CLONE_TIMEOUT,
) -> Path:
    """Shallow-clone a remote repository into `target_dir`.

    Args:
        remote: Parsed remote reference.
        target_dir: Existing parent directory; the clone lands in `target_dir/<name>`.
        ref: Optional branch/tag to check out; defaults to the ref encoded in the URL.
        timeout: Seconds a transfer may stall before git aborts it.

    Returns:
        Path to the cloned repository root directory.

    Raises:
        AcquisitionError: If the clone or checkout fails.
    """
    ref = ref or remote.ref
    repo_path = target_dir / remote.name
    env = _clone_env(timeout)

    console.print(f"[cyan]Cloning {remote.clone_url}...[/cyan]")

    clone_kwargs: dict[str, Any] = {"depth": 1, "single_branch": True}
    try:
        if ref:
            try:
                git.Repo.clone_from(
                    remote.clone_url, repo_path, env=env, branch=ref, **clone_kwargs
                )
            except git.GitCommandError:
                # Refs that are not branch/tag names (e.g. SHAs) need a full clone
                shutil.rmtree(repo_path, ignore_errors=True)
                repo = git.Repo.clone_from(remote.clone_url, repo_path, env=env)
                repo.git.checkout(ref)
        else:
            git.Repo.clone_from(remote.clone_url, repo_path, env=env, **clone_kwargs)
    except git.GitCommandError as e:
        raise AcquisitionError(f"Failed to clone repository {remote.clone_url}: {e}") from e

    console.print(f"[green]✓ Cloned to {repo_path}[/green]")
    return repo_path


def cleanup_temp_dir(path: Path) -> None:
    """Delete a temporary clone directory.

    Args:
        path: Path to the temporary directory to remove.
    """
    try:
        if path.exists():
            shutil.rmtree(path)
    except OSError as e:
        console.print(f"[yellow]Warning: Failed to clean up temp directory {path}: {e}[/yellow]")


@contextmanager
def acquire(
    descriptor: str,
    *,
    ref: str | None = None,
    timeout: int = DEFAULT_CLONE_TIMEOUT,
) -> Iterator[AcquiredSource]:
    """Resolve a source descriptor for the duration of a `with` block.

    Any temporary clone directory is removed on every exit path.

    Args:
        descriptor: Existing local directory or remote repository URL.
        ref: Optional branch/tag for remote sources.
        timeout: Seconds a remote transfer may stall before it is aborted.

    Yields:
        The acquired source.

    Raises:
        AcquisitionError: If the descriptor cannot be resolved.
    """
    descriptor = descriptor.strip()
    if not descriptor:
        raise AcquisitionError("Source descriptor is empty")

    if not is_remote_descriptor(descriptor):
        root = validate_local_path(Path(descriptor))
        yield AcquiredSource(root=root, name=root.name or derive_display_name(descriptor))
        return

    remote = parse_remote_url(descriptor)

    try:
        temp_dir = Path(tempfile.mkdtemp(prefix=_TEMP_PREFIX))
    except OSError as e:
        raise AcquisitionError(f"Cannot create temporary directory: {e}") from e

    try:
        repo_path = clone_repository(remote, temp_dir, ref=ref, timeout=timeout)
        yield AcquiredSource(root=repo_path, name=remote.name, is_temp=True)
    finally:
        cleanup_temp_dir(temp_dir)
