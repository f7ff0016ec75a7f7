# slides.py
# Slide deck generation without running a shell command.
#
# `ppt-generator "<title>" "<content>"` names a tool that usually isn't
# installed; instead the advisory service writes the deck as Marp markdown
# and the file is saved to a fixed path.

import re
from pathlib import Path

from shell_pilot import display
from shell_pilot.advisory import AdvisoryError, AdvisoryService
from shell_pilot.config import DEFAULT_SLIDES_PATH
from shell_pilot.models import Action, ExecutionResult

GENERATOR = "ppt-generator"

_QUOTED = r'"((?:\\.|[^"\\])*)"'
_SLIDE_COMMAND = re.compile(rf"\s*{re.escape(GENERATOR)}\s+{_QUOTED}\s+{_QUOTED}\s*")


def _unescape(value: str) -> str:
    return re.sub(r'\\(["\\])', r"\1", value)


def parse_slide_command(command: str) -> tuple[str, str] | None:
    """Return ``(title, content)`` for ``ppt-generator "<title>" "<content>"``, else None."""
    match = _SLIDE_COMMAND.fullmatch(command)
    if not match:
        return None
    return _unescape(match.group(1)), _unescape(match.group(2))


class SlideDeckBypass:
    """Replaces a recognized slide command with direct markup generation."""

    def __init__(self, advisory: AdvisoryService, output_path: str = DEFAULT_SLIDES_PATH) -> None:
        self._advisory = advisory
        self.output_path = output_path

    def try_run(self, action: Action) -> ExecutionResult | None:
        """Synthetic result for a slide command; None when the action is not one."""
        parsed = parse_slide_command(action.command)
        if parsed is None:
            return None

        title, content = parsed
        label = f"{GENERATOR}: {title}"
        display.log("SLIDES", f"generating deck {title!r} ({len(content)} chars of content)")
        try:
            markup = self._advisory.generate_slides(content, title)
            path = Path(self.output_path)
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(markup, encoding="utf-8")
        except (AdvisoryError, OSError) as exc:
            display.log("SLIDES", f"failed: {exc}")
            return ExecutionResult(
                command=label,
                success=False,
                exit_code=None,
                stderr=f"Slide generation failed: {exc}",
            )

        display.slides_generated(self.output_path)
        return ExecutionResult(
            command=label,
            success=True,
            exit_code=0,
            stdout=f"Slides saved to {self.output_path}",
            documents=[self.output_path],
        )
