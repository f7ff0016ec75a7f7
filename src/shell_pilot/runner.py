# runner.py
# CommandRunner — runs one shell command and always returns an ExecutionResult.
#
# Process faults (spawn failure, timeout) are encoded in the result, never
# raised. One child process per call; on timeout the whole process group is
# killed so nothing is left running.

import os
import signal
import subprocess
import time

from shell_pilot import display
from shell_pilot.models import ExecutionResult

SHELL = "bash"


def activation_prefix(activate_venv: str) -> str:
    """Build the ``source ... &&`` prefix for a virtualenv path or activate script."""
    if activate_venv.endswith("activate") or "/bin/activate" in activate_venv:
        script = activate_venv
    else:
        sep = "" if activate_venv.endswith("/") else "/"
        script = f"{activate_venv}{sep}bin/activate"
    return f"source {script} 2>/dev/null && "


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


def _kill_group(process: subprocess.Popen) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except (ProcessLookupError, PermissionError):
        process.kill()


class CommandRunner:
    """
    Executes shell commands with a working directory, a timeout and an
    optional virtualenv activation step.

    Example:
        runner = CommandRunner(working_dir="/srv/app", timeout=30)
        result = runner.run("ls -la")
    """

    def __init__(
        self,
        working_dir: str | None = None,
        timeout: float = 120,
        activate_venv: str | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.working_dir = working_dir or "."
        self.timeout = timeout
        self.activate_venv = activate_venv

    def build(self, command: str) -> str:
        """The command line actually handed to the shell."""
        if self.activate_venv:
            return activation_prefix(self.activate_venv) + command
        return command

    def run(self, command: str) -> ExecutionResult:
        if not command or not command.strip():
            raise ValueError("command must be a non-empty string")

        run_cmd = self.build(command)
        display.log("CMD", f"exec: {display.truncate(run_cmd, 200)}")
        display.log("CMD", f"cwd: {self.working_dir}  timeout: {self.timeout}s")

        start = time.monotonic()
        try:
            process = subprocess.Popen(
                [SHELL, "-c", run_cmd],
                cwd=self.working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as exc:
            display.log("CMD", f"spawn failed: {exc}")
            return ExecutionResult(
                command=command,
                success=False,
                exit_code=None,
                stderr=f"Failed to start command: {exc}",
            )

        try:
            out, err = process.communicate(timeout=self.timeout)
        except subprocess.TimeoutExpired:
            _kill_group(process)
            out, err = process.communicate()
            display.log("CMD", f"timed out after {self.timeout}s, process killed")
            stderr = _decode(err)
            note = f"Command timed out after {self.timeout} seconds and was terminated."
            return ExecutionResult(
                command=command,
                success=False,
                exit_code=None,
                stdout=_decode(out),
                stderr=f"{stderr}\n{note}" if stderr else note,
            )

        elapsed = time.monotonic() - start
        result = ExecutionResult(
            command=command,
            success=process.returncode == 0,
            exit_code=process.returncode,
            stdout=_decode(out),
            stderr=_decode(err),
        )

        status = "ok" if result.success else "failed"
        display.log("CMD", f"{status} (exit={result.exit_code}, {elapsed:.2f}s)")
        if result.stdout:
            display.log("CMD", f"stdout ({len(result.stdout)} chars):\n{display.truncate(result.stdout, 1000)}")
        if result.stderr:
            display.log("CMD", f"stderr ({len(result.stderr)} chars):\n{display.truncate(result.stderr, 500)}")
        return result
