"""
Pack run orchestration for source-pack.

Chains acquisition, walking, processing and emission for one run and turns fatal
errors into a failed `PackResult`, so callers never have to catch pack errors.
"""

from __future__ import annotations

import os
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path

from .config import FALLBACK_OUTPUT_NAME, OutputFormat, PackConfig, PackResult, WalkIssue
from .emitter import open_emitter
from .errors import ConfigError, PackError
from .fetcher import acquire, derive_display_name, is_remote_descriptor
from .ignore import IgnoreFilter
from .processor import process
from .walker import TreeWalker

ProgressCallback = Callable[[str], None]
IssueCallback = Callable[[WalkIssue], None]


def default_output_path(
    source: str,
    output_format: OutputFormat,
    current_output: str | Path | None = None,
) -> Path:
    """Suggest an output path for a source.

    The file is named `<derived-name>.md` or `<derived-name>.xml`. It is placed in the
    directory of `current_output` when that directory exists, otherwise next to an
    existing local source, otherwise relative to the working directory.

    Args:
        source: Source descriptor (local path or repository URL).
        output_format: Selected output format.
        current_output: Output path previously chosen by the user, if any.

    Returns:
        The suggested output path.
    """
    name = derive_display_name(source) or FALLBACK_OUTPUT_NAME
    filename = f"{name}{output_format.suffix}"

    if current_output:
        parent = Path(current_output).expanduser().parent
        if parent.parts and parent.is_dir():
            return parent.resolve() / filename

    source = source.strip()
    if source and not is_remote_descriptor(source):
        local = Path(source).expanduser()
        if local.exists():
            return local.resolve().parent / filename

    return Path(filename)


def _validate(source: str, destination: str | Path) -> Path:
    if not source or not str(source).strip():
        raise ConfigError("Source path or URL is required")
    if not destination or not str(destination).strip():
        raise ConfigError("Destination path is required")
    return Path(destination).expanduser()


def pack(
    source: str,
    destination: str | Path,
    config: PackConfig | None = None,
    *,
    on_progress: ProgressCallback | None = None,
    on_issue: IssueCallback | None = None,
    ref: str | None = None,
    cancel_event: threading.Event | None = None,
) -> PackResult:
    """Pack a source tree into a single document.

    Args:
        source: Existing local directory or remote repository URL.
        destination: Output document path.
        config: Run configuration (defaults to `PackConfig()`).
        on_progress: Called with each file's relative path right after it is written.
        on_issue: Called for each skipped entry.
        ref: Branch or tag to check out for remote sources.
        cancel_event: When set, the run stops before the next file.

    Returns:
        The run's result. Fatal errors are reported through `ok`, `error_kind` and
        `message` instead of being raised.
    """
    started = time.monotonic()
    config = config or PackConfig()
    result = PackResult(destination=Path(destination) if destination else Path())

    try:
        dest = _validate(source, destination)
        result.destination = dest
        with acquire(source, ref=ref, timeout=config.clone_timeout) as acquired:
            result.source_name = acquired.name
            _run(acquired.root, dest, config, result, on_progress, on_issue, cancel_event)
    except PackError as e:
        result.ok = False
        result.error_kind = e.kind
        result.message = str(e)
    finally:
        result.elapsed_seconds = time.monotonic() - started

    return result


def _run(
    root: Path,
    destination: Path,
    config: PackConfig,
    result: PackResult,
    on_progress: ProgressCallback | None,
    on_issue: IssueCallback | None,
    cancel_event: threading.Event | None,
) -> None:
    def record(issue: WalkIssue) -> None:
        result.issues.append(issue)
        if on_issue is not None:
            on_issue(issue)

    walker = TreeWalker(root, IgnoreFilter(config), on_issue=record)
    # The output document may live inside the tree being packed
    own_output = os.path.realpath(destination)

    with open_emitter(destination, config, result.source_name) as emitter:
        for entry in walker.walk():
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                break
            if os.path.realpath(entry.path) == own_output:
                continue

            try:
                content = process(entry, config)
            except OSError as e:
                reason = "permission denied" if isinstance(e, PermissionError) else str(e)
                record(WalkIssue(relative_path=entry.relative_path, reason=reason))
                continue

            emitter.write(entry, content)
            result.files_included += 1
            result.bytes_included += entry.size_bytes
            if on_progress is not None:
                on_progress(entry.relative_path)


class PackRunner:
    """
    Runs pack operations on a single background worker thread.

    Runs are executed one after another in submission order. Submitting a second run
    for a destination that already has one pending or in flight is refused.
    """

    def __init__(self) -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="source-pack")
        self._lock = threading.Lock()
        self._active: dict[Path, threading.Event] = {}

    def submit(
        self,
        source: str,
        destination: str | Path,
        config: PackConfig | None = None,
        *,
        on_progress: ProgressCallback | None = None,
        on_issue: IssueCallback | None = None,
        ref: str | None = None,
    ) -> Future[PackResult]:
        """
        Schedule a pack run.

        Returns:
            A future resolving to the run's PackResult

        Raises:
            ConfigError: If a run for the same destination is already active
        """
        key = _destination_key(destination)
        cancel_event = threading.Event()
        with self._lock:
            if key in self._active:
                raise ConfigError(f"A pack run is already active for {key}")
            self._active[key] = cancel_event

        def task() -> PackResult:
            try:
                return pack(
                    source,
                    destination,
                    config,
                    on_progress=on_progress,
                    on_issue=on_issue,
                    ref=ref,
                    cancel_event=cancel_event,
                )
            finally:
                with self._lock:
                    self._active.pop(key, None)

        try:
            return self._executor.submit(task)
        except RuntimeError:
            with self._lock:
                self._active.pop(key, None)
            raise

    def cancel(self, destination: str | Path) -> bool:
        """Ask the run for `destination` to stop before its next file.

        Returns:
            True if a run was active for the destination
        """
        with self._lock:
            event = self._active.get(_destination_key(destination))
        if event is None:
            return False
        event.set()
        return True

    def is_active(self, destination: str | Path) -> bool:
        with self._lock:
            return _destination_key(destination) in self._active

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> PackRunner:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def _destination_key(destination: str | Path) -> Path:
    return Path(destination).expanduser().absolute()
