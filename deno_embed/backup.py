"""Snapshot and restore of the workspace files the pipeline mutates.

A :class:`BackupGuard` snapshots the files on entry and restores them on exit,
whether the block completed, raised, or the process is being terminated. The
process-level hooks (``atexit`` and termination signals) are installed once
per process and restore every snapshot whose guard has not exited yet.
"""

from dataclasses import dataclass
import atexit
import logging
import pathlib
import signal
import threading
import types

from deno_embed.errors import IncompleteWorkspaceError
from deno_embed.workspace import WorkspacePaths

_LOGGER_NAME: str = "deno_embed"

_EXIT_HOOK_INSTALLED: bool = False
_ACTIVE_SNAPSHOTS: list["BackupSnapshot"] = []


@dataclass(frozen=True, slots=True)
class BackupSnapshot:
    """Immutable capture of the mutable workspace files.

    :ivar paths: Workspace the snapshot was taken from.
    :ivar manifest_text: Full text of the build manifest.
    :ivar entry_point_text: Full text of the entry-point source.
    :ivar locale_text: Full text of the locale-data source, if it existed.
    :ivar icon_bytes: Raw icon bytes, if the icon existed.
    """

    paths: WorkspacePaths
    manifest_text: str
    entry_point_text: str
    locale_text: str | None
    icon_bytes: bytes | None


def _read_text(path: pathlib.Path) -> str:
    # newline="" keeps CRLF sources byte-identical across a round trip.
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()


def _write_text(path: pathlib.Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def snapshot(paths: WorkspacePaths) -> BackupSnapshot:
    """Capture the current content of the files the pipeline mutates.

    :param paths: Workspace paths.
    :returns: Snapshot.
    :raises IncompleteWorkspaceError: If the manifest or entry point is missing.
    """

    locale_text: str | None = None
    if paths.locale_source.is_file() is True:
        locale_text = _read_text(paths.locale_source)

    icon_bytes: bytes | None = None
    if paths.icon.is_file() is True:
        icon_bytes = paths.icon.read_bytes()

    try:
        manifest_text: str = _read_text(paths.manifest)
        entry_point_text: str = _read_text(paths.entry_point)
    except OSError as e:
        raise IncompleteWorkspaceError(
            f"Cannot snapshot {e.filename}: {e.strerror}. "
            f"Delete {paths.root} to force a fresh clone."
        ) from e

    return BackupSnapshot(
        paths=paths,
        manifest_text=manifest_text,
        entry_point_text=entry_point_text,
        locale_text=locale_text,
        icon_bytes=icon_bytes,
    )


def restore(snap: BackupSnapshot) -> None:
    """Write every captured file back. Safe to call more than once.

    :param snap: Snapshot to restore.
    """

    _write_text(snap.paths.manifest, snap.manifest_text)
    _write_text(snap.paths.entry_point, snap.entry_point_text)
    if snap.locale_text is not None:
        _write_text(snap.paths.locale_source, snap.locale_text)
    if snap.icon_bytes is not None:
        snap.paths.icon.write_bytes(snap.icon_bytes)


def _restore_active() -> None:
    """Restore every snapshot whose guard is still open."""

    logger: logging.Logger = logging.getLogger(_LOGGER_NAME)
    for snap in list(_ACTIVE_SNAPSHOTS):
        logger.warning(f"deno-embed: restoring {snap.paths.root} on process exit")
        restore(snap)
        _ACTIVE_SNAPSHOTS.remove(snap)


def _on_termination_signal(signum: int, frame: types.FrameType | None) -> None:
    # Unwinds through any open guard; the guard restores in __exit__.
    raise SystemExit(128 + signum)


def _install_exit_hook() -> None:
    """Register the process-exit restore hook (once per process)."""

    global _EXIT_HOOK_INSTALLED
    if _EXIT_HOOK_INSTALLED is True:
        return
    _EXIT_HOOK_INSTALLED = True

    atexit.register(_restore_active)

    # signal.signal() is only allowed from the main thread.
    if threading.current_thread() is not threading.main_thread():
        return
    for name in ("SIGTERM", "SIGHUP"):
        signum: signal.Signals | None = getattr(signal, name, None)
        if signum is None:
            continue
        if signal.getsignal(signum) is signal.SIG_DFL:
            signal.signal(signum, _on_termination_signal)


class BackupGuard:
    """Scoped snapshot of a workspace with guaranteed restore.

    Usage::

        with BackupGuard(paths) as snap:
            ...  # mutate the workspace
    """

    def __init__(self, paths: WorkspacePaths, *, logger: logging.Logger | None = None) -> None:
        """Initialize the guard.

        :param paths: Workspace paths to protect.
        :param logger: Optional logger.
        """

        self._paths: WorkspacePaths = paths
        self._logger: logging.Logger = logger if logger is not None else logging.getLogger(_LOGGER_NAME)
        self._snapshot: BackupSnapshot | None = None

    def __enter__(self) -> BackupSnapshot:
        """Take the snapshot and register it with the exit hook.

        :returns: The snapshot.
        """

        _install_exit_hook()
        snap: BackupSnapshot = snapshot(self._paths)
        self._snapshot = snap
        _ACTIVE_SNAPSHOTS.append(snap)
        if self._logger.isEnabledFor(logging.DEBUG) is True:
            self._logger.debug(f"deno-embed: snapshot taken for {self._paths.root}")
        return snap

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> bool:
        """Restore the snapshot.

        :param exc_type: Exception type (unused).
        :param exc: Exception instance (unused).
        :param tb: Traceback (unused).
        :returns: ``False`` to propagate exceptions.
        """

        snap: BackupSnapshot | None = self._snapshot
        if snap is None:
            return False
        restore(snap)
        if snap in _ACTIVE_SNAPSHOTS:
            _ACTIVE_SNAPSHOTS.remove(snap)
        self._logger.info(f"deno-embed: restored workspace sources in {self._paths.root}")
        return False
