"""Command line interface for deno-embed."""

import argparse
import logging
import pathlib
import sys

from deno_embed.builder import build_binary
from deno_embed.config import OPT_LEVELS, EmbedConfig, resolve_embed_config
from deno_embed.errors import ConfigError, EmbedError
from deno_embed.workspace import DEFAULT_WORKSPACE_ROOT, DENO_REPO_URL


_QUIET_LEVELS: tuple[int, ...] = (logging.INFO, logging.WARNING, logging.ERROR)

# Tool output is only logged at DEBUG; timestamps make long cargo runs readable.
_DEBUG_FORMAT: str = "%(asctime)s %(message)s"
_DEFAULT_FORMAT: str = "%(message)s"


def _log_level(*, verbose: int, quiet: int) -> int:
    """Map ``-v``/``-q`` counts to a logging level. ``-q`` wins over ``-v``.

    :param verbose: Verbosity count (0+).
    :param quiet: Quietness count (0+).
    :returns: Logging level.
    """

    if quiet > 0:
        return _QUIET_LEVELS[min(quiet, len(_QUIET_LEVELS) - 1)]
    if verbose > 0:
        return logging.DEBUG
    return logging.INFO


def _configure_logging(level: int) -> logging.Logger:
    """Attach a single stderr handler to the ``deno_embed`` logger.

    :param level: Logging level.
    :returns: Configured logger.
    """

    logger: logging.Logger = logging.getLogger("deno_embed")
    logger.setLevel(level)
    logger.propagate = False

    fmt: str = _DEBUG_FORMAT if level <= logging.DEBUG else _DEFAULT_FORMAT
    handler: logging.Handler = logging.StreamHandler(stream=sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%H:%M:%S"))

    logger.handlers.clear()
    logger.addHandler(handler)
    return logger


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser.

    :returns: Parser.
    """

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="deno-embed",
        description="Compile a Deno binary with a script permanently embedded in it.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_build = subparsers.add_parser(
        "build",
        help="Build a binary that runs SOURCE on startup.",
    )
    p_build.add_argument(
        "source",
        type=pathlib.Path,
        help="Entry script to bundle and embed.",
    )
    p_build.add_argument(
        "destination",
        type=pathlib.Path,
        nargs="?",
        default=None,
        help="Output path for the binary (default: ./deno).",
    )
    p_build.add_argument(
        "--assets",
        type=str,
        default=None,
        help="Comma-separated text files exposed to the script as globalThis.Assets.",
    )
    p_build.add_argument(
        "--opt-level",
        "--opt",
        dest="opt_level",
        type=str,
        default=None,
        choices=OPT_LEVELS,
        help="Release profile optimization level.",
    )
    p_build.add_argument(
        "--icu",
        action="store_true",
        help="Keep the embedded ICU data (~10 MiB). Without it, Intl APIs may crash.",
    )
    p_build.add_argument(
        "--inline",
        action="store_true",
        help="Embed the script as a string literal instead of include_str!().",
    )
    p_build.add_argument(
        "--icon",
        type=pathlib.Path,
        default=None,
        help="Windows .ico file for the executable.",
    )
    p_build.add_argument(
        "--name",
        type=str,
        default=None,
        help="Executable/product name in the Windows metadata.",
    )
    p_build.add_argument(
        "--copyright",
        type=str,
        default=None,
        help="Copyright line in the Windows metadata.",
    )
    p_build.add_argument(
        "--description",
        "--desc",
        dest="description",
        type=str,
        default=None,
        help="File description in the Windows metadata.",
    )
    p_build.add_argument(
        "--post-process",
        action="store_true",
        help="Strip and compress the binary with strip and upx when both are installed.",
    )
    p_build.add_argument(
        "--workspace",
        type=pathlib.Path,
        default=pathlib.Path(DEFAULT_WORKSPACE_ROOT),
        help=f"Deno source checkout, cloned on first use (default: {DEFAULT_WORKSPACE_ROOT}).",
    )
    p_build.add_argument(
        "--repo-url",
        type=str,
        default=DENO_REPO_URL,
        help="Repository to clone when the workspace is absent.",
    )
    p_build.add_argument(
        "--ref",
        type=str,
        default=None,
        help="Branch or tag to clone, pinning the upstream source layout.",
    )
    p_build.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Enable verbose logging (shows tool output).",
    )
    p_build.add_argument(
        "-q",
        "--quiet",
        action="count",
        default=0,
        help="Reduce logging. Pass multiple times to suppress more output.",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the deno-embed CLI.

    :param argv: Optional argv list (excluding program name).
    :returns: Exit code.
    """

    parser: argparse.ArgumentParser = _build_parser()
    ns = parser.parse_args(argv)
    if ns.command == "build":
        logger: logging.Logger = _configure_logging(_log_level(verbose=ns.verbose, quiet=ns.quiet))
        try:
            config: EmbedConfig = resolve_embed_config(
                source=ns.source,
                destination=ns.destination,
                workspace_root=ns.workspace,
                repo_url=ns.repo_url,
                ref=ns.ref,
                assets=ns.assets,
                opt_level=ns.opt_level,
                icu=ns.icu,
                inline_script=ns.inline,
                icon=ns.icon,
                name=ns.name,
                copyright=ns.copyright,
                description=ns.description,
                post_process=ns.post_process,
            )
        except ConfigError as e:
            parser.error(str(e))

        try:
            build_binary(config, logger=logger)
        except EmbedError as e:
            logger.error(f"deno-embed: error: {e}")
            return 1
        return 0

    raise AssertionError(f"Unhandled command: {ns.command}")

