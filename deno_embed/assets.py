"""Asset manifest construction.

Assets are text files exposed to the embedded script as ``globalThis.Assets``,
a plain object keyed by the path strings exactly as the caller supplied them.
"""

import json
import pathlib

from deno_embed.errors import AssetError

ASSETS_GLOBAL: str = "globalThis.Assets"


def read_assets(asset_paths: list[str]) -> dict[str, str]:
    """Read every asset into a name -> content mapping.

    A path listed twice keeps its first position but takes the content of its
    last occurrence.

    :param asset_paths: Asset paths in caller order.
    :returns: Asset manifest.
    :raises AssetError: If an asset is missing or is not UTF-8 text.
    """

    manifest: dict[str, str] = {}
    for name in asset_paths:
        path: pathlib.Path = pathlib.Path(name)
        try:
            # newline="" keeps CRLF assets byte-identical.
            with open(path, "r", encoding="utf-8", newline="") as f:
                manifest[name] = f.read()
        except FileNotFoundError as e:
            raise AssetError(f"Asset not found: {name}") from e
        except IsADirectoryError as e:
            raise AssetError(f"Asset is a directory: {name}") from e
        except UnicodeDecodeError as e:
            raise AssetError(f"Asset is not UTF-8 text (binary assets are unsupported): {name}") from e
        except OSError as e:
            raise AssetError(f"Cannot read asset {name}: {e}") from e
    return manifest


def serialize_manifest(manifest: dict[str, str]) -> str:
    """Render the assignment statement that installs the manifest.

    :param manifest: Asset manifest.
    :returns: A single JavaScript statement terminated by a newline.
    """

    payload: str = json.dumps(manifest, ensure_ascii=False, separators=(",", ":"))
    return f"{ASSETS_GLOBAL} = {payload};\n"


def bundle_assets(asset_paths: list[str]) -> str:
    """Read ``asset_paths`` and render their manifest statement.

    :param asset_paths: Asset paths in caller order.
    :returns: Manifest assignment statement.
    :raises AssetError: If any asset cannot be read.
    """

    return serialize_manifest(read_assets(asset_paths))
