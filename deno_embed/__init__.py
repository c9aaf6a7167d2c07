"""deno-embed.

A small build utility that compiles a custom Deno binary with a single script
(and optional text assets) permanently embedded in it.
"""

__all__: list[str] = ["__version__"]

__version__: str = "0.1.0"
