"""External command runner.

Runs a command to completion, streaming every output line to the log as it
arrives, and fails loudly on a non-zero exit status.
"""

from __future__ import annotations

import subprocess
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import IO, cast

import structlog

from openshift_testkit.integrations.openshift.exceptions import ExternalProcessError

logger = structlog.get_logger()

# Number of trailing output lines kept on the error for context
ERROR_OUTPUT_LINES = 50


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a finished command."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner:
    """Runs external executables and blocks until they finish.

    Output (stdout and stderr merged) is logged line by line while the
    process runs, so long builds show progress.
    """

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize the runner.

        Args:
            timeout: Default timeout in seconds for every command, or None
                to wait indefinitely.
        """
        self._timeout = timeout
        self._log = logger.bind(entity="command")

    def run(
        self,
        args: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run a command and wait for it.

        Args:
            args: Command line, program first.
            cwd: Working directory.
            timeout: Overrides the runner's default timeout.
            check: Raise on non-zero exit status.

        Returns:
            The command result with the captured output.

        Raises:
            ExternalProcessError: If the program is missing, times out, or
                exits non-zero while ``check`` is set.
        """
        args = [str(arg) for arg in args]
        limit = timeout if timeout is not None else self._timeout
        self._log.info("running_command", command=" ".join(args))

        lines: list[str] = []
        try:
            process = subprocess.Popen(
                args,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                bufsize=1,
            )
        except FileNotFoundError as e:
            raise ExternalProcessError(
                args,
                None,
                message=f"Executable '{args[0]}' not found",
            ) from e

        with process:
            # stdout is a pipe, so never None
            stdout = cast(IO[str], process.stdout)
            reader = threading.Thread(target=self._pump, args=(stdout, lines), daemon=True)
            reader.start()
            try:
                returncode = process.wait(timeout=limit)
            except subprocess.TimeoutExpired as e:
                process.kill()
                process.wait()
                reader.join()
                raise ExternalProcessError(
                    args,
                    None,
                    output="\n".join(lines[-ERROR_OUTPUT_LINES:]),
                    message=f"Command '{' '.join(args)}' timed out after {limit}s",
                ) from e
            reader.join()

        result = CommandResult(args=tuple(args), returncode=returncode, output="\n".join(lines))
        if check and not result.ok:
            self._log.error("command_failed", command=" ".join(args), returncode=returncode)
            raise ExternalProcessError(
                args,
                returncode,
                output="\n".join(lines[-ERROR_OUTPUT_LINES:]),
            )
        self._log.debug("command_finished", command=" ".join(args), returncode=returncode)
        return result

    def _pump(self, stream: IO[str], lines: list[str]) -> None:
        """Forward process output to the log until the stream closes."""
        for line in stream:
            line = line.rstrip("\n")
            lines.append(line)
            self._log.info("command_output", line=line)
