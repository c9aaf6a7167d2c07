"""Build configuration resolution.

This module turns raw CLI values into one immutable :class:`EmbedConfig` that
is passed explicitly to every pipeline stage.
"""

from dataclasses import dataclass
import pathlib

from deno_embed.errors import ConfigError
from deno_embed.metadata import WindowsMetadata
from deno_embed.patcher import PatchOptions
from deno_embed.workspace import DEFAULT_WORKSPACE_ROOT, DENO_REPO_URL

OPT_LEVELS: tuple[str, ...] = ("0", "1", "2", "3", "s", "z")
DEFAULT_DESTINATION: str = "deno"


@dataclass(frozen=True, slots=True)
class BuildOptions:
    """Native build options.

    :ivar opt_level: Release profile ``opt-level``; ``None`` keeps the default.
    """

    opt_level: str | None = None


@dataclass(frozen=True, slots=True)
class EmbedConfig:
    """Everything one build needs.

    :ivar source: Entry script to bundle and embed.
    :ivar destination: Where the finished binary is moved.
    :ivar workspace_root: Local clone of the Deno source tree.
    :ivar repo_url: Repository cloned when the workspace is absent.
    :ivar ref: Optional branch or tag to clone.
    :ivar patch: Source patch options.
    :ivar build: Native build options.
    :ivar metadata: Windows resource metadata overrides.
    :ivar icon: Optional ``.ico`` file replacing the upstream icon.
    :ivar post_process: Strip and compress the binary when the tools exist.
    """

    source: pathlib.Path
    destination: pathlib.Path
    workspace_root: pathlib.Path
    repo_url: str
    ref: str | None
    patch: PatchOptions
    build: BuildOptions
    metadata: WindowsMetadata
    icon: pathlib.Path | None
    post_process: bool


def resolve_embed_config(
    *,
    source: str | pathlib.Path,
    destination: str | pathlib.Path | None = None,
    workspace_root: str | pathlib.Path = DEFAULT_WORKSPACE_ROOT,
    repo_url: str = DENO_REPO_URL,
    ref: str | None = None,
    assets: str | None = None,
    opt_level: str | None = None,
    icu: bool = False,
    inline_script: bool = False,
    icon: str | pathlib.Path | None = None,
    name: str | None = None,
    copyright: str | None = None,
    description: str | None = None,
    post_process: bool = False,
) -> EmbedConfig:
    """Resolve raw option values into an :class:`EmbedConfig`.

    :param source: Entry script path.
    :param destination: Output binary path (defaults to ``deno``).
    :param workspace_root: Workspace root.
    :param repo_url: Repository URL.
    :param ref: Optional branch or tag.
    :param assets: Comma-separated asset paths.
    :param opt_level: Optimization level.
    :param icu: Keep the embedded ICU data.
    :param inline_script: Embed the script as a string literal.
    :param icon: Optional icon path.
    :param name: Executable name for Windows metadata (also the product name).
    :param copyright: Copyright line for Windows metadata.
    :param description: File description for Windows metadata.
    :param post_process: Strip and compress the output binary.
    :returns: Resolved config.
    :raises ConfigError: If a value is invalid.
    """

    source_path: pathlib.Path = pathlib.Path(source)
    if source_path.is_file() is False:
        raise ConfigError(f"Source script does not exist: {source_path}")

    dest: pathlib.Path = pathlib.Path(destination) if destination else pathlib.Path(DEFAULT_DESTINATION)

    icon_path: pathlib.Path | None = None
    if icon is not None:
        icon_path = pathlib.Path(icon)
        if icon_path.is_file() is False:
            raise ConfigError(f"Icon does not exist: {icon_path}")

    return EmbedConfig(
        source=source_path,
        destination=dest,
        workspace_root=pathlib.Path(workspace_root),
        repo_url=repo_url,
        ref=ref,
        patch=PatchOptions(
            assets=_parse_assets(assets),
            embed_icu=icu,
            inline_script=inline_script,
        ),
        build=BuildOptions(opt_level=_resolve_opt_level(opt_level)),
        metadata=WindowsMetadata(
            exe_name=name,
            copyright=copyright,
            product_name=name,
            description=description,
        ),
        icon=icon_path,
        post_process=post_process,
    )


def _parse_assets(assets: str | None) -> tuple[str, ...] | None:
    """Split a comma-separated asset list.

    :param assets: Raw ``--assets`` value.
    :returns: Trimmed, non-empty paths in order, or ``None``.
    """

    if assets is None:
        return None
    parts: list[str] = [a.strip() for a in assets.split(",")]
    kept: tuple[str, ...] = tuple(p for p in parts if len(p) > 0)
    if len(kept) == 0:
        return None
    return kept


def _resolve_opt_level(opt_level: str | None) -> str | None:
    """Validate an optimization level.

    :param opt_level: Raw value.
    :returns: Normalized level, or ``None``.
    :raises ConfigError: If the level is not one of :data:`OPT_LEVELS`.
    """

    if opt_level is None:
        return None
    v: str = opt_level.strip().lower()
    if v not in OPT_LEVELS:
        raise ConfigError(f"Invalid --opt-level {opt_level!r}; expected one of {', '.join(OPT_LEVELS)}.")
    return v
