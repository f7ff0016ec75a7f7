# repair.py
# RepairLoop — sequential plan execution with advisory self-repair.
#
# Control flow per action:
#   slide bypass? → run → failed? → (hint → ask_fix → extract → re-run) × budget
#   → append final result → halt the plan on an unrepaired failure
#
# The returned results are always a prefix of the plan: nothing after the
# first unrepaired failure is attempted. A device probe is recorded but
# never halts the plan.

import re

from shell_pilot import display
from shell_pilot.advisory import AdvisoryError, AdvisoryService
from shell_pilot.devices import DeviceIndexResolver
from shell_pilot.models import Action, ExecutionResult, Plan
from shell_pilot.runner import CommandRunner
from shell_pilot.skills import SkillRegistry
from shell_pilot.slides import SlideDeckBypass

KNOWN_PREFIXES = (
    "ffmpeg",
    "python3",
    "python",
    "/usr/bin/python",
    "/usr/local/bin/python",
    "pip",
    "source",
)

_FENCED_BLOCK = re.compile(r"```[^\n]*\n(.*?)(?:```|\Z)", re.DOTALL)
_BACKTICK_SPAN = re.compile(r"`([^`\n]+)`")


# ---------------------------------------------------------------------------
# Suggestion parsing
# ---------------------------------------------------------------------------


def _from_fenced_block(suggestion: str) -> str | None:
    block = _FENCED_BLOCK.search(suggestion)
    if not block:
        return None
    for line in block.group(1).splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            return line
    return None


def _from_backticks(suggestion: str) -> str | None:
    prose = _FENCED_BLOCK.sub("", suggestion)
    for match in _BACKTICK_SPAN.finditer(prose):
        span = match.group(1).strip()
        if " " in span or span.startswith("/") or span.startswith("echo"):
            return span
    return None


def _from_known_prefix(suggestion: str) -> str | None:
    for line in suggestion.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.startswith(KNOWN_PREFIXES):
            return line
        if line.startswith("/") and "python" in line.split()[0]:
            return line
    return None


def extract_fix_command(suggestion: str) -> str | None:
    """
    Pull one executable command line out of a free-text fix suggestion.

    Rules apply in fixed order; a later rule only runs when every earlier
    one found nothing:
      1. first non-empty, non-comment line of a fenced code block
      2. first `backticked` span containing a space or starting with / or echo
      3. first line starting with a known interpreter or path prefix
    """
    for rule in (_from_fenced_block, _from_backticks, _from_known_prefix):
        command = rule(suggestion)
        if command:
            return command
    return None


# ---------------------------------------------------------------------------
# RepairLoop
# ---------------------------------------------------------------------------


class RepairLoop:
    """
    Executes a plan action by action, repairing failures via the advisory
    service within `budget` attempts per action.

    Example:
        loop = RepairLoop(runner, advisory, registry, budget=3)
        results = loop.execute(plan)
    """

    def __init__(
        self,
        runner: CommandRunner,
        advisory: AdvisoryService,
        skills: SkillRegistry,
        budget: int,
        slides: SlideDeckBypass | None = None,
        devices: DeviceIndexResolver | None = None,
    ) -> None:
        if budget < 0:
            raise ValueError(f"repair budget must be non-negative, got {budget}")
        self._runner = runner
        self._advisory = advisory
        self._skills = skills
        self._budget = budget
        self._slides = slides
        self._devices = devices

    # ------------------------------------------------------------------
    # Repair
    # ------------------------------------------------------------------

    def repair(self, failed: ExecutionResult) -> ExecutionResult:
        """Retry a failed result with advisory fixes; returns the last result."""
        current = failed
        for attempt in range(1, self._budget + 1):
            display.repair_attempt(attempt, self._budget, current.command)
            hint = self._skills.relevant_hints(current.command)
            try:
                suggestion = self._advisory.ask_fix(
                    current.command, current.exit_code, current.stderr, hint
                )
            except AdvisoryError as exc:
                display.repair_aborted(str(exc))
                return current

            command = extract_fix_command(suggestion)
            if command is None:
                display.repair_unparseable(suggestion)
                return current

            display.repair_suggestion(command)
            current = self._runner.run(command)
            if current.success:
                display.repair_succeeded(attempt)
                return current

        return current

    def _run_action(self, action: Action) -> ExecutionResult:
        if self._slides is not None:
            bypassed = self._slides.try_run(action)
            if bypassed is not None:
                return bypassed

        result = self._runner.run(action.command)
        if not result.success and self._budget > 0:
            result = self.repair(result)
        return result

    # ------------------------------------------------------------------
    # Plan execution
    # ------------------------------------------------------------------

    def execute(self, plan: Plan) -> list[ExecutionResult]:
        """
        Run `plan` in order and return one result per attempted action.

        The results are a prefix of the plan, ending at the first action that
        is still failing after repair. The device probe is the one exception:
        its result is recorded whatever its exit status, because listing
        capture devices exits non-zero, and execution continues with the
        rewritten recording action.
        """
        results: list[ExecutionResult] = []
        actions = list(plan.actions)
        total = len(actions)
        display.execution_start(total)

        # the device probe's exit status is ignored: listing devices exits non-zero
        if self._devices is not None:
            probe_result, actions = self._devices.resolve(plan)
            if probe_result is not None:
                display.result_line(probe_result)
                results.append(probe_result)

        for offset, action in enumerate(actions):
            index = len(results)
            display.action_start(index, total, action.description or action.command)
            result = self._run_action(action)
            display.result_line(result)
            results.append(result)
            if not result.success:
                display.action_halted(index, len(actions) - offset - 1)
                break

        return results
