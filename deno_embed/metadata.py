"""Windows resource metadata rewriting for ``cli/Cargo.toml``.

The manifest's ``[package.metadata.winres]`` table carries the strings baked
into the Windows executable. They are rewritten by plain string replacement
against the values upstream ships.
"""

from dataclasses import dataclass

UPSTREAM_EXE_NAME: str = "deno.exe"
UPSTREAM_COPYRIGHT: str = "© Deno contributors & Deno Land Inc. MIT licensed."
UPSTREAM_PRODUCT_NAME: str = 'ProductName = "Deno"'
UPSTREAM_DESCRIPTION: str = 'FileDescription = "Deno: A secure runtime for JavaScript and TypeScript"'


@dataclass(frozen=True, slots=True)
class WindowsMetadata:
    """Executable resource strings. ``None`` keeps the upstream value.

    :ivar exe_name: Original file name (``.exe`` is appended when missing).
    :ivar copyright: Legal copyright line.
    :ivar product_name: Product name.
    :ivar description: File description.
    """

    exe_name: str | None = None
    copyright: str | None = None
    product_name: str | None = None
    description: str | None = None

    def is_empty(self) -> bool:
        """Check whether no field overrides the upstream value.

        :returns: ``True`` if every field is ``None``.
        """

        return (
            self.exe_name is None
            and self.copyright is None
            and self.product_name is None
            and self.description is None
        )


def _toml_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def apply_metadata(manifest_text: str, meta: WindowsMetadata) -> str:
    """Rewrite the Windows resource strings in the build manifest.

    :param manifest_text: Content of ``cli/Cargo.toml``.
    :param meta: Metadata overrides.
    :returns: Rewritten manifest.
    """

    text: str = manifest_text
    if meta.exe_name is not None:
        exe_name: str = meta.exe_name
        if exe_name.lower().endswith(".exe") is False:
            exe_name = f"{exe_name}.exe"
        text = text.replace(UPSTREAM_EXE_NAME, _toml_escape(exe_name))
    if meta.copyright is not None:
        text = text.replace(UPSTREAM_COPYRIGHT, _toml_escape(meta.copyright), 1)
    if meta.product_name is not None:
        text = text.replace(UPSTREAM_PRODUCT_NAME, f'ProductName = "{_toml_escape(meta.product_name)}"', 1)
    if meta.description is not None:
        text = text.replace(UPSTREAM_DESCRIPTION, f'FileDescription = "{_toml_escape(meta.description)}"', 1)
    return text
