# devices.py
# Screen-capture device discovery for avfoundation recordings.
#
# A plan that lists capture devices and then records the screen usually
# guesses the device index. The probe is run first, the index of the
# "Capture screen" device is read from its output, and the recording
# command is rewritten to use it before the normal repair loop takes over.

import re

from shell_pilot import display
from shell_pilot.models import Action, ExecutionResult, Plan
from shell_pilot.runner import CommandRunner

DEVICE_KEYWORD = "avfoundation"
LIST_KEYWORD = "list_devices"
SCREEN_MARKER = "Capture screen"
RECORD_KEYWORDS = ("record", "录")

_INPUT_FLAG = re.compile(r"(?:^|\s)-i(?:\s|$)")
_DURATION_FLAG = re.compile(r"(?:^|\s)-t\s")
# -i "1:0"  /  -i '1:0'  /  -i 1:0  — digits right before ":0" in the -i value
_DEVICE_VALUE = re.compile(r"""(-i\s+["']?)(\d+)(:0)""")


def is_device_probe(command: str) -> bool:
    return DEVICE_KEYWORD in command and LIST_KEYWORD in command and bool(_INPUT_FLAG.search(command))


def is_screen_recording(command: str) -> bool:
    if DEVICE_KEYWORD not in command or LIST_KEYWORD in command:
        return False
    if not _INPUT_FLAG.search(command):
        return False
    lower = command.lower()
    return (
        bool(_DURATION_FLAG.search(command))
        or ".mp4" in lower
        or any(keyword in lower for keyword in RECORD_KEYWORDS)
    )


def matches(plan: Plan) -> bool:
    """True when the plan opens with a device probe followed by a screen recording."""
    if len(plan.actions) < 2:
        return False
    return is_device_probe(plan.actions[0].command) and is_screen_recording(plan.actions[1].command)


def parse_screen_index(output: str) -> int | None:
    """
    Find the device index of the first "Capture screen" line.

    ffmpeg prints e.g. ``[AVFoundation indev @ 0x7f] [2] Capture screen 0``;
    the bracket groups right before the marker are walked backwards and the
    first all-digit group is the index.
    """
    for line in output.splitlines():
        position = line.find(SCREEN_MARKER)
        if position < 0:
            continue
        prefix = line[:position].rstrip()
        while prefix.endswith("]"):
            start = prefix.rfind("[")
            if start < 0:
                break
            group = prefix[start + 1:-1]
            if group.isdigit():
                return int(group)
            prefix = prefix[:start].rstrip()
        return None
    return None


def rewrite_device_index(command: str, index: int) -> str:
    """Replace the video device number in the ``-i "<n>:0"`` value with `index`."""
    return _DEVICE_VALUE.sub(lambda m: f"{m.group(1)}{index}{m.group(3)}", command, count=1)


class DeviceIndexResolver:
    """Runs the device probe and rewrites the following recording action."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    def resolve(self, plan: Plan) -> tuple[ExecutionResult | None, list[Action]]:
        """
        Returns ``(probe_result, remaining_actions)``.

        When the plan does not match, nothing is run and all actions remain.
        """
        if not matches(plan):
            return None, list(plan.actions)

        probe, record, *rest = plan.actions
        display.log("DEVICE", f"probing capture devices: {probe.command}")
        probe_result = self._runner.run(probe.command)

        # avfoundation prints the device list on stderr
        index = parse_screen_index(probe_result.stdout)
        if index is None:
            index = parse_screen_index(probe_result.stderr)

        if index is not None:
            record = record.model_copy(update={"command": rewrite_device_index(record.command, index)})
        display.device_index_resolved(index, record.command)

        return probe_result, [record, *rest]
