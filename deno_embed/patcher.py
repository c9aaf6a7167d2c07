"""Entry-point source patching.

The Deno CLI entry point (``cli/main.rs``) is cut at the line declaring
``fn main()`` and a replacement ``main`` is appended that evaluates the
embedded script instead of dispatching CLI subcommands.

Preconditions on the upstream source:

- ``fn main()`` must first appear on the line declaring the entry function.
  An earlier mention (e.g. in a comment) moves the cut point.
- Patching an already patched workspace is not idempotent: the cut lands on
  the generated ``main`` and the ICU block is already gone. Always restore
  between runs.
"""

from dataclasses import dataclass
import logging
import pathlib
import re
import time

from deno_embed.errors import IcuBlockNotFoundError, IncompleteWorkspaceError, MarkerNotFoundError
from deno_embed.workspace import WorkspacePaths

ENTRY_POINT_MARKER: str = "fn main()"
DENY_WARNINGS_DIRECTIVE: str = "#![deny(warnings)]"

# Statically embeds ~10 MiB of ICU data. Without it, Intl APIs may segfault.
ICU_DATA_BLOCK: str = """#[repr(C, align(16))]
      struct IcuData([u8; 10413584]);
      static ICU_DATA: IcuData = IcuData(*include_bytes!("icudtl.dat"));
      v8::icu::set_common_data(&ICU_DATA.0).unwrap();"""

_RAW_STRING_HASHES_RE: re.Pattern[str] = re.compile(r'"(#*)')


@dataclass(frozen=True, slots=True)
class PatchOptions:
    """Source patch options.

    :ivar assets: Optional asset paths exposed as ``globalThis.Assets``.
    :ivar embed_icu: Keep the statically embedded ICU data.
    :ivar inline_script: Embed the script as a string literal instead of
        ``include_str!`` of the bundle file.
    """

    assets: tuple[str, ...] | None = None
    embed_icu: bool = False
    inline_script: bool = False


def find_entry_point_boundary(source_lines: list[str]) -> int:
    """Find the index of the first line containing the entry-function marker.

    :param source_lines: Entry-point source split into lines.
    :returns: Index of the marker line.
    :raises MarkerNotFoundError: If no line contains the marker.
    """

    for i, line in enumerate(source_lines):
        if ENTRY_POINT_MARKER in line:
            return i
    raise MarkerNotFoundError(
        f"Entry-point marker {ENTRY_POINT_MARKER!r} not found; the upstream source layout has changed."
    )


def strip_deny_warnings(source_text: str) -> str:
    """Remove the first ``#![deny(warnings)]`` directive, if present.

    The generated ``main`` leaves unused imports behind, which would otherwise
    fail the build.

    :param source_text: Rust source.
    :returns: Source without the directive.
    """

    return source_text.replace(DENY_WARNINGS_DIRECTIVE, "", 1)


def strip_icu_data(locale_source_text: str) -> str:
    """Remove the statically embedded ICU data block.

    :param locale_source_text: Content of ``core/runtime.rs``.
    :returns: The same content with the block deleted.
    :raises IcuBlockNotFoundError: If the block is not present.
    """

    if ICU_DATA_BLOCK not in locale_source_text:
        raise IcuBlockNotFoundError(
            "ICU data block not found in the locale source; the upstream source layout has changed."
        )
    return locale_source_text.replace(ICU_DATA_BLOCK, "", 1)


def compose_script(script_text: str, manifest_statement: str | None) -> str:
    """Prepend the asset manifest statement (if any) to the script.

    :param script_text: Bundled script.
    :param manifest_statement: Output of :func:`deno_embed.assets.serialize_manifest`.
    :returns: Script text to embed.
    """

    if manifest_statement is None:
        return script_text
    return manifest_statement + script_text


def _rust_raw_string(text: str) -> str:
    """Quote ``text`` as a Rust raw string literal that cannot terminate early.

    :param text: Arbitrary text.
    :returns: ``r#..."..."#...`` literal.
    """

    longest: int = 0
    for m in _RAW_STRING_HASHES_RE.finditer(text):
        longest = max(longest, len(m.group(1)))
    hashes: str = "#" * (longest + 1)
    return f'r{hashes}"{text}"{hashes}'


def render_entry_point(*, script_text: str | None = None, bundle_name: str = "$bundle.js") -> str:
    """Render the replacement ``main`` function.

    :param script_text: Script to inline as a literal. ``None`` includes
        ``bundle_name`` at compile time instead.
    :param bundle_name: Bundle file name relative to ``cli/main.rs``.
    :returns: Rust source, starting with a newline.
    """

    code_expr: str
    if script_text is None:
        code_expr = f'include_str!("{bundle_name}")'
    else:
        code_expr = _rust_raw_string(script_text)

    return (
        "\n"
        "pub fn main() {\n"
        "    #[cfg(windows)]\n"
        "    colors::enable_ansi(); // For Windows 10\n"
        "\n"
        f"    let code = {code_expr};\n"
        "    unwrap_or_exit(tokio_util::run_basic(eval_command(\n"
        "        Default::default(),\n"
        "        code.to_string(),\n"
        '        "js".to_string(),\n'
        "        false,\n"
        "    )));\n"
        "}\n"
    )


def patch_entry_point(
    entry_point_source_text: str,
    *,
    script_text: str | None,
    bundle_name: str = "$bundle.js",
) -> str:
    """Cut the source at the entry function and append the embedded ``main``.

    :param entry_point_source_text: Current ``cli/main.rs`` content.
    :param script_text: Script to inline, or ``None`` to include the bundle file.
    :param bundle_name: Bundle file name for the include form.
    :returns: Patched source.
    :raises MarkerNotFoundError: If the entry function cannot be located.
    """

    lines: list[str] = entry_point_source_text.split("\n")
    boundary: int = find_entry_point_boundary(lines)
    kept: str = "\n".join(lines[0:boundary])
    kept = strip_deny_warnings(kept)
    return kept + render_entry_point(script_text=script_text, bundle_name=bundle_name)


def embed(
    script_text: str,
    entry_point_source_text: str,
    options: PatchOptions,
    *,
    manifest_statement: str | None = None,
    bundle_name: str = "$bundle.js",
) -> str:
    """Produce the patched entry-point source.

    In include mode the caller is responsible for writing
    ``compose_script(script_text, manifest_statement)`` to the bundle file.

    :param script_text: Bundled script.
    :param entry_point_source_text: Current ``cli/main.rs`` content.
    :param options: Patch options.
    :param manifest_statement: Asset manifest statement built from
        ``options.assets`` by :func:`deno_embed.assets.bundle_assets`.
    :param bundle_name: Bundle file name for the include form.
    :returns: Patched source.
    :raises MarkerNotFoundError: If the entry function cannot be located.
    """

    inline: str | None = None
    if options.inline_script is True:
        inline = compose_script(script_text, manifest_statement)

    return patch_entry_point(entry_point_source_text, script_text=inline, bundle_name=bundle_name)


def _read_text(path: pathlib.Path) -> str:
    try:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()
    except OSError as e:
        raise IncompleteWorkspaceError(f"Cannot read {path}: {e.strerror}") from e


def _write_text(path: pathlib.Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


def patch_workspace(
    paths: WorkspacePaths,
    script_text: str,
    options: PatchOptions,
    *,
    manifest_statement: str | None = None,
    logger: logging.Logger | None = None,
) -> None:
    """Patch the on-disk workspace to boot into ``script_text``.

    Every patched text is computed before the first write, so a structural
    error leaves the workspace untouched.

    :param paths: Workspace paths.
    :param script_text: Bundled script.
    :param options: Patch options.
    :param manifest_statement: Asset manifest statement, if assets were requested.
    :param logger: Optional logger for progress output.
    :raises PatchError: If the upstream source is missing or does not have the
        expected layout.
    """

    if logger is None:
        logger = logging.getLogger("deno_embed")

    t0: float = time.perf_counter()
    full_script: str = compose_script(script_text, manifest_statement)

    patched_entry: str = embed(
        script_text,
        _read_text(paths.entry_point),
        options,
        manifest_statement=manifest_statement,
        bundle_name=paths.bundle.name,
    )

    patched_locale: str | None = None
    if options.embed_icu is False:
        patched_locale = strip_icu_data(_read_text(paths.locale_source))

    if options.inline_script is False:
        _write_text(paths.bundle, full_script)
    _write_text(paths.entry_point, patched_entry)
    if patched_locale is not None:
        _write_text(paths.locale_source, patched_locale)
        logger.info("deno-embed: removed embedded ICU data (Intl APIs will be unavailable)")

    t1: float = time.perf_counter()
    mode: str = "inline literal" if options.inline_script is True else f"include_str!({paths.bundle.name})"
    logger.info(f"deno-embed: patched {paths.entry_point} ({mode}) in {t1 - t0:.2f}s")
    if logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(f"deno-embed: embedded script is {len(full_script)} chars")
