# harness.py
# Per-message unit of work.
#
# The Harness owns control flow for one instruction; the advisory service is
# a passive responder and the delivery sink only receives finished results.
#
# Control flow:
#   instruction → skill query? → classify → Question → answer
#                                         → Command  → RepairLoop → report
#   → artifact scan → delivery sink
#
# handle() is safe to call from many threads at once. Nothing mutable is
# shared between calls except the task counter.

import itertools
import re
import threading
from pathlib import Path
from typing import Protocol

from shell_pilot import artifacts, display
from shell_pilot.advisory import AdvisoryError, AdvisoryService
from shell_pilot.config import AppConfig
from shell_pilot.devices import DeviceIndexResolver
from shell_pilot.models import ExecutionResult, Plan, Question, Report
from shell_pilot.repair import RepairLoop
from shell_pilot.runner import CommandRunner
from shell_pilot.skills import SkillRegistry
from shell_pilot.slides import SlideDeckBypass

_LIST_SKILLS = re.compile(r"^\s*(?:list skills|skills|what skills\b.*|有哪些\s*skills?.*)\s*[?？]?\s*$", re.IGNORECASE)
_INSTALL_SKILL = re.compile(r"^\s*(?:how (?:do i |to )install|怎么安装)\s*(.+?)\s*[?？]?\s*$", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------


class DeliverySink(Protocol):
    """Receives finished results and artifact paths; returns per-path failures."""

    def deliver(
        self,
        results: list[ExecutionResult],
        images: list[str],
        videos: list[str],
        documents: list[str],
    ) -> list[str]: ...


class ConsoleSink:
    """Delivers artifacts to the terminal, skipping paths that don't exist."""

    def deliver(
        self,
        results: list[ExecutionResult],
        images: list[str],
        videos: list[str],
        documents: list[str],
    ) -> list[str]:
        failures = []
        for kind, paths in (("image", images), ("video", videos), ("document", documents)):
            for path in paths:
                if not Path(path).exists():
                    display.artifact_missing(kind, path)
                    failures.append(f"{kind} not found: {path}")
                    continue
                display.artifact_delivered(kind, path)
        return failures


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_results(plan: Plan, results: list[ExecutionResult]) -> str:
    """Plain-text execution report, one block per executed action."""
    lines = ["Execution report", ""]
    for index, result in enumerate(results):
        description = plan.actions[index].description if index < len(plan.actions) else "unknown"
        status = "OK  " if result.success else "FAIL"
        lines.append(f"[{status}] {description}")
        lines.append(f"  command: {result.command}")
        if result.stdout:
            lines.append(f"  output:\n{display.truncate(result.stdout, 500)}")
        if result.stderr:
            lines.append(f"  error:\n{display.truncate(result.stderr, 300)}")
        lines.append("")
    skipped = len(plan.actions) - len(results)
    if skipped > 0:
        lines.append(f"{skipped} action(s) not attempted after the failure above.")
    return "\n".join(lines).rstrip() + "\n"


# ---------------------------------------------------------------------------
# Harness
# ---------------------------------------------------------------------------


class Harness:
    """
    Handles one instruction end to end.

    Collaborators default to real implementations built from `config`;
    pass them in to substitute (tests, alternative transports).

    Example:
        harness = Harness(AppConfig.load("config.toml"), sink=ConsoleSink())
        report = harness.handle("take a screenshot")
    """

    def __init__(
        self,
        config: AppConfig,
        advisory: AdvisoryService | None = None,
        runner: CommandRunner | None = None,
        skills: SkillRegistry | None = None,
        sink: DeliverySink | None = None,
    ) -> None:
        executor = config.executor
        self._config = config
        self._advisory = advisory or AdvisoryService(config.llm)
        self._runner = runner or CommandRunner(
            working_dir=executor.working_dir,
            timeout=executor.timeout_secs,
            activate_venv=executor.activate_venv,
        )
        self._skills = skills if skills is not None else SkillRegistry.from_dir(config.skills_dir)
        self._sink = sink
        self._loop = RepairLoop(
            self._runner,
            self._advisory,
            self._skills,
            budget=executor.max_fix_retries,
            slides=SlideDeckBypass(self._advisory, executor.slides_path),
            devices=DeviceIndexResolver(self._runner),
        )
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()

    @property
    def skills(self) -> SkillRegistry:
        return self._skills

    def next_task_id(self) -> int:
        with self._counter_lock:
            return next(self._counter)

    # ------------------------------------------------------------------
    # Skill queries answered locally
    # ------------------------------------------------------------------

    def answer_skill_query(self, text: str) -> str | None:
        if _LIST_SKILLS.match(text):
            return self._skills.summary()
        install = _INSTALL_SKILL.match(text)
        if install:
            return self._skills.install_instructions(install.group(1))
        return None

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def handle(self, text: str) -> Report:
        """
        Full pipeline for one instruction.

        Always returns a Report — classification failures are carried in
        `Report.error`, command failures in the results.
        """
        task_id = self.next_task_id()
        tag = f"#{task_id}"
        display.prompt_received(task_id, text)

        local = self.answer_skill_query(text)
        if local is not None:
            display.log(tag, "answered from skill registry")
            display.final_result(local)
            return Report(task_id=task_id, answer=local)

        # ── Classify ─────────────────────────────────────────────────
        try:
            intent = self._advisory.classify(text, self._skills.prompt_section())
        except AdvisoryError as exc:
            display.classification_failed(task_id, str(exc))
            return Report(task_id=task_id, error=f"Advisory service call failed: {exc}")

        if isinstance(intent, Question):
            display.final_result(intent.content)
            return Report(task_id=task_id, answer=intent.content)

        plan = intent.to_plan()
        if not plan.actions:
            answer = "This message does not require running any commands."
            display.final_result(answer)
            return Report(task_id=task_id, answer=answer, plan=plan)

        # ── Execute ──────────────────────────────────────────────────
        display.plan_parsed(plan)
        results = self._loop.execute(plan)
        display.log(tag, f"executed {len(results)}/{len(plan.actions)} action(s)")
        display.execution_summary(plan, results)

        report_text = format_results(plan, results) if self._config.executor.echo_result else None
        if report_text:
            display.final_result(report_text)

        # ── Deliver ──────────────────────────────────────────────────
        images, videos = artifacts.scan(results)
        documents = artifacts.scan_documents(results)
        if self._sink is not None:
            failures = self._sink.deliver(results, images, videos, documents)
            for failure in failures:
                display.log(tag, f"delivery: {failure}")

        return Report(
            task_id=task_id,
            plan=plan,
            results=results,
            images=images,
            videos=videos,
            documents=documents,
            report_text=report_text,
        )
