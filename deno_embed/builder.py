"""Binary builder.

This module drives the whole embed pipeline:

- It clones the Deno source tree into the workspace (once).
- It bundles the entry script into a single JavaScript file.
- Inside a :class:`~deno_embed.backup.BackupGuard`, it patches the workspace
  sources, runs ``cargo build --release`` and moves the binary out.
- It optionally strips and compresses the result.

The workspace sources are restored whatever happens after the snapshot.
"""

import logging
import os
import pathlib
import shutil
import sys
import time

from deno_embed.assets import bundle_assets
from deno_embed.backup import BackupGuard
from deno_embed.config import BuildOptions, EmbedConfig
from deno_embed.errors import BundleError, CompileError, ToolInvocationError
from deno_embed.metadata import apply_metadata
from deno_embed.patcher import patch_workspace
from deno_embed.process import require_tools, run_tool, tools_available
from deno_embed.workspace import WorkspacePaths, ensure_workspace

POST_PROCESS_TOOLS: list[str] = ["strip", "upx"]


def build_command(options: BuildOptions) -> list[str]:
    """Build the cargo command line.

    :param options: Build options.
    :returns: Command line (without working directory).
    """

    cmd: list[str] = ["cargo", "build", "--release"]
    if options.opt_level is not None:
        level: str = options.opt_level
        if level in ("s", "z"):
            level = f'"{level}"'
        cmd.append(f"--config=profile.release.opt-level={level}")
    return cmd


def bundle_script(
    *,
    source: pathlib.Path,
    paths: WorkspacePaths,
    logger: logging.Logger,
) -> str:
    """Bundle ``source`` into the workspace bundle file and return its text.

    :param source: Entry script.
    :param paths: Workspace paths.
    :param logger: Logger for progress output.
    :returns: Bundled script text.
    :raises BundleError: If ``deno bundle`` fails.
    """

    logger.info(f"deno-embed: bundling {source}")
    t0: float = time.perf_counter()
    # --no-check: type checking would dominate the bundling time.
    run_tool(
        ["deno", "bundle", "--no-check", os.fspath(source), os.fspath(paths.bundle)],
        error_type=BundleError,
        logger=logger,
    )
    with open(paths.bundle, "r", encoding="utf-8", newline="") as f:
        text: str = f.read()
    t1: float = time.perf_counter()
    logger.info(f"deno-embed: bundled {len(text)} chars in {t1 - t0:.2f}s")
    return text


def compile_workspace(
    paths: WorkspacePaths,
    options: BuildOptions,
    *,
    logger: logging.Logger,
) -> pathlib.Path:
    """Run the release build in the workspace.

    :param paths: Workspace paths.
    :param options: Build options.
    :param logger: Logger for progress output.
    :returns: Path to the release binary.
    :raises CompileError: If cargo fails or produces no binary.
    """

    cmd: list[str] = build_command(options)
    logger.info("deno-embed: building Deno from source; this can take a few minutes")
    t0: float = time.perf_counter()
    run_tool(cmd, error_type=CompileError, logger=logger, cwd=os.fspath(paths.root))
    t1: float = time.perf_counter()

    if paths.release_binary.is_file() is False:
        raise CompileError(
            f"Build succeeded but {paths.release_binary} was not produced.",
            returncode=0,
            output="",
        )
    logger.info(f"deno-embed: build complete in {t1 - t0:.2f}s")
    return paths.release_binary


def relocate(release_binary: pathlib.Path, destination: pathlib.Path) -> None:
    """Move the release binary to ``destination``.

    :param release_binary: Binary produced by the build.
    :param destination: Final location (overwritten if present).
    """

    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(os.fspath(release_binary), os.fspath(destination))


def post_process(destination: pathlib.Path, *, logger: logging.Logger) -> bool:
    """Strip debug symbols and compress the binary in place.

    Runs only when both ``strip`` and ``upx`` are on ``PATH`` (never on Windows).

    :param destination: Binary to process.
    :param logger: Logger for progress output.
    :returns: ``True`` if post-processing ran.
    :raises ToolInvocationError: If either tool fails.
    """

    if sys.platform == "win32" or tools_available(POST_PROCESS_TOOLS) is False:
        logger.warning("deno-embed: skipping post-processing (strip and upx are both required)")
        return False

    size0: int = destination.stat().st_size
    run_tool(["strip", os.fspath(destination)], error_type=ToolInvocationError, logger=logger)
    run_tool(["upx", "--best", os.fspath(destination)], error_type=ToolInvocationError, logger=logger)
    size1: int = destination.stat().st_size
    logger.info(
        f"deno-embed: post-processed {destination} "
        f"({size0 / (1024 * 1024):.1f} MiB -> {size1 / (1024 * 1024):.1f} MiB)"
    )
    return True


def build_binary(config: EmbedConfig, *, logger: logging.Logger | None = None) -> pathlib.Path:
    """Build a Deno binary with ``config.source`` embedded.

    :param config: Build configuration.
    :param logger: Optional logger for realtime build progress output.
    :returns: Path to the finished binary.
    :raises EmbedError: If any stage fails.
    """

    if logger is None:
        logger = logging.getLogger("deno_embed")

    t_total0: float = time.perf_counter()
    logger.info(f"deno-embed: source={config.source}")
    logger.info(f"deno-embed: output={config.destination}")
    logger.info(f"deno-embed: workspace={config.workspace_root}")
    logger.info(
        "deno-embed: "
        f"icu={config.patch.embed_icu} inline={config.patch.inline_script} "
        f"opt-level={config.build.opt_level or 'default'}"
    )

    tools: list[str] = ["deno", "cargo"]
    if config.workspace_root.exists() is False:
        tools.append("git")
    require_tools(tools)

    # Read assets before anything touches the workspace.
    manifest_statement: str | None = None
    if config.patch.assets is not None:
        manifest_statement = bundle_assets(list(config.patch.assets))
        logger.info(f"deno-embed: embedding {len(config.patch.assets)} asset(s)")

    ensure_workspace(config.workspace_root, repo_url=config.repo_url, ref=config.ref, logger=logger)
    paths: WorkspacePaths = WorkspacePaths.from_root(config.workspace_root)

    script_text: str = bundle_script(source=config.source, paths=paths, logger=logger)

    with BackupGuard(paths, logger=logger) as snap:
        if config.metadata.is_empty() is False:
            with open(paths.manifest, "w", encoding="utf-8", newline="") as f:
                f.write(apply_metadata(snap.manifest_text, config.metadata))
            logger.info("deno-embed: applied Windows metadata to Cargo.toml")
        if config.icon is not None:
            shutil.copyfile(config.icon, paths.icon)
            logger.info(f"deno-embed: using icon {config.icon}")

        patch_workspace(
            paths,
            script_text,
            config.patch,
            manifest_statement=manifest_statement,
            logger=logger,
        )
        release_binary: pathlib.Path = compile_workspace(paths, config.build, logger=logger)
        relocate(release_binary, config.destination)

    if config.post_process is True:
        post_process(config.destination, logger=logger)

    out_size: int = config.destination.stat().st_size
    t_total1: float = time.perf_counter()
    logger.info(
        f"deno-embed: wrote {config.destination} ({out_size / (1024 * 1024):.1f} MiB) "
        f"in {t_total1 - t_total0:.2f}s"
    )
    return config.destination
