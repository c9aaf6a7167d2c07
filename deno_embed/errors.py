"""Exception hierarchy for deno-embed."""


class EmbedError(RuntimeError):
    """Base class for every failure raised by the embed pipeline."""


class ToolNotFoundError(EmbedError):
    """Raised when a required external tool is not on ``PATH``."""


class ToolInvocationError(EmbedError):
    """Raised when an external tool exits with a non-zero status.

    :ivar returncode: Exit status reported by the tool.
    :ivar output: Captured stdout/stderr text (may be empty).
    """

    def __init__(self, message: str, *, returncode: int, output: str) -> None:
        super().__init__(message)
        self.returncode: int = returncode
        self.output: str = output


class WorkspaceError(ToolInvocationError):
    """Raised when the interpreter source tree cannot be cloned."""


class BundleError(ToolInvocationError):
    """Raised when the entry script cannot be bundled."""


class CompileError(ToolInvocationError):
    """Raised when the native build fails."""


class PatchError(EmbedError):
    """Raised when the source tree does not have the expected structure."""


class MarkerNotFoundError(PatchError):
    """Raised when the entry-function marker is absent from the entry-point source."""


class IcuBlockNotFoundError(PatchError):
    """Raised when the locale-data embedding block is absent from its source file."""


class IncompleteWorkspaceError(PatchError):
    """Raised when a source file the pipeline needs is missing from the workspace."""


class AssetError(EmbedError):
    """Raised when an asset file cannot be read as text."""


class ConfigError(ValueError):
    """Raised when user-supplied options cannot be resolved into a config."""
