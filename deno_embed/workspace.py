"""Workspace layout and initialization.

The workspace is a local clone of the Deno source tree. Every path the
pipeline touches is derived from the workspace root.
"""

from dataclasses import dataclass
import logging
import os
import pathlib
import sys
import time

from deno_embed.errors import WorkspaceError
from deno_embed.process import run_tool

DENO_REPO_URL: str = "https://github.com/denoland/deno"
DEFAULT_WORKSPACE_ROOT: str = ".deno"


@dataclass(frozen=True, slots=True)
class WorkspacePaths:
    """Fixed set of paths inside a workspace.

    :ivar root: Workspace root (the clone destination).
    :ivar manifest: Build manifest (``cli/Cargo.toml``).
    :ivar entry_point: Entry-point source (``cli/main.rs``).
    :ivar locale_source: Source file embedding ICU data (``core/runtime.rs``).
    :ivar bundle: Intermediate bundled script (``cli/$bundle.js``).
    :ivar icon: Windows resource icon (``cli/deno.ico``).
    :ivar release_binary: Binary produced by a release build.
    """

    root: pathlib.Path
    manifest: pathlib.Path
    entry_point: pathlib.Path
    locale_source: pathlib.Path
    bundle: pathlib.Path
    icon: pathlib.Path
    release_binary: pathlib.Path

    @classmethod
    def from_root(cls, root: pathlib.Path | str) -> "WorkspacePaths":
        """Derive every workspace path from ``root``.

        :param root: Workspace root directory.
        :returns: Workspace paths.
        """

        r: pathlib.Path = pathlib.Path(root)
        exe_name: str = "deno.exe" if sys.platform == "win32" else "deno"
        return cls(
            root=r,
            manifest=r / "cli" / "Cargo.toml",
            entry_point=r / "cli" / "main.rs",
            locale_source=r / "core" / "runtime.rs",
            bundle=r / "cli" / "$bundle.js",
            icon=r / "cli" / "deno.ico",
            release_binary=r / "target" / "release" / exe_name,
        )


def ensure_workspace(
    root: pathlib.Path,
    *,
    repo_url: str = DENO_REPO_URL,
    ref: str | None = None,
    logger: logging.Logger | None = None,
) -> bool:
    """Clone the interpreter source into ``root`` unless it already exists.

    Existence of ``root`` is the only gate: a partial directory left behind by
    an interrupted clone is treated as initialized.

    :param root: Workspace root directory.
    :param repo_url: Repository to clone.
    :param ref: Optional branch or tag to check out.
    :param logger: Optional logger for progress output.
    :returns: ``True`` if a clone was performed.
    :raises WorkspaceError: If the clone fails.
    """

    if logger is None:
        logger = logging.getLogger("deno_embed")

    if root.exists() is True:
        logger.info(f"deno-embed: using existing workspace {root}")
        if (root / "cli" / "Cargo.toml").is_file() is False:
            logger.warning(
                f"deno-embed: {root} exists but has no cli/Cargo.toml; "
                "delete it to force a fresh clone"
            )
        return False

    cmd: list[str] = ["git", "clone"]
    if ref is not None:
        cmd.extend(["--branch", ref])
    cmd.extend([repo_url, os.fspath(root)])

    logger.info(f"deno-embed: cloning {repo_url} into {root}")
    t0: float = time.perf_counter()
    run_tool(cmd, error_type=WorkspaceError, logger=logger)
    t1: float = time.perf_counter()
    logger.info(f"deno-embed: clone complete in {t1 - t0:.2f}s")
    return True
