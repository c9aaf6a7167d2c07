"""External tool invocation helpers."""

import logging
import shutil
import subprocess

from deno_embed.errors import ToolInvocationError, ToolNotFoundError

# Keep error messages readable when cargo dumps thousands of lines.
_OUTPUT_TAIL_LINES: int = 40


def require_tools(names: list[str]) -> None:
    """Fail fast if any of the given tools is missing from ``PATH``.

    :param names: Executable names.
    :raises ToolNotFoundError: If at least one tool is missing.
    """

    missing: list[str] = [n for n in names if shutil.which(n) is None]
    if len(missing) > 0:
        raise ToolNotFoundError(f"Required tool(s) not found on PATH: {', '.join(missing)}")


def tools_available(names: list[str]) -> bool:
    """Check whether every tool in ``names`` is on ``PATH``.

    :param names: Executable names.
    :returns: ``True`` if all are present.
    """

    for n in names:
        if shutil.which(n) is None:
            return False
    return True


def run_tool(
    cmd: list[str],
    *,
    error_type: type[ToolInvocationError],
    logger: logging.Logger,
    cwd: str | None = None,
) -> subprocess.CompletedProcess[str]:
    """Run an external tool to completion and capture its output.

    There is no timeout: a hung tool hangs the pipeline.

    :param cmd: Command line.
    :param error_type: Exception type raised on a non-zero exit.
    :param logger: Logger for debug output.
    :param cwd: Optional working directory.
    :returns: The completed process.
    :raises ToolInvocationError: (as ``error_type``) if the tool fails.
    """

    if logger.isEnabledFor(logging.DEBUG) is True:
        where: str = f" (cwd={cwd})" if cwd is not None else ""
        logger.debug(f"deno-embed: running: {' '.join(cmd)}{where}")

    proc = subprocess.run(
        cmd,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        check=False,
    )
    output: str = proc.stdout or ""
    if proc.returncode != 0:
        tail: str = "\n".join(output.splitlines()[-_OUTPUT_TAIL_LINES:])
        message: str = f"{cmd[0]} failed (exit={proc.returncode}): {' '.join(cmd)}"
        if len(tail) > 0:
            message = f"{message}\n{tail}"
        raise error_type(message, returncode=proc.returncode, output=output)

    if len(output) > 0 and logger.isEnabledFor(logging.DEBUG) is True:
        logger.debug(output.rstrip("\n"))
    return proc
