from unittest.mock import MagicMock

from shell_pilot.devices import (
    DeviceIndexResolver,
    is_device_probe,
    is_screen_recording,
    matches,
    parse_screen_index,
    rewrite_device_index,
)
from shell_pilot.models import Action, ExecutionResult, Plan
from shell_pilot.runner import CommandRunner

PROBE = 'ffmpeg -f avfoundation -list_devices true -i ""'
RECORD = 'ffmpeg -f avfoundation -i "1:0" -t 10 /tmp/screen.mp4'

FFMPEG_LISTING = """\
[AVFoundation indev @ 0x7f9] AVFoundation video devices:
[AVFoundation indev @ 0x7f9] [0] FaceTime HD Camera
[AVFoundation indev @ 0x7f9] [2] Capture screen 0
[AVFoundation indev @ 0x7f9] [3] Capture screen 1
[AVFoundation indev @ 0x7f9] AVFoundation audio devices:
[AVFoundation indev @ 0x7f9] [0] MacBook Pro Microphone
"""

# ---------------------------------------------------------------------------
# Recognition
# ---------------------------------------------------------------------------

def test_probe_and_recording_recognition():
    assert is_device_probe(PROBE)
    assert not is_device_probe(RECORD)
    assert is_screen_recording(RECORD)
    assert not is_screen_recording(PROBE)

def test_recording_needs_duration_target_or_keyword():
    assert not is_screen_recording('ffmpeg -f avfoundation -i "1:0" out.gif')
    assert is_screen_recording('ffmpeg -f avfoundation -i "1:0" /tmp/out.MP4')

def test_matches_requires_probe_then_recording():
    plan = Plan(actions=[Action(command=PROBE), Action(command=RECORD)])
    assert matches(plan)
    assert not matches(Plan(actions=[Action(command=RECORD), Action(command=PROBE)]))
    assert not matches(Plan(actions=[Action(command=PROBE)]))

# ---------------------------------------------------------------------------
# Index parsing and rewrite
# ---------------------------------------------------------------------------

def test_parse_screen_index_simple():
    assert parse_screen_index("[0] Capture screen 0") == 0

def test_parse_screen_index_skips_non_numeric_groups():
    assert parse_screen_index(FFMPEG_LISTING) == 2

def test_parse_screen_index_without_marker():
    assert parse_screen_index("[0] FaceTime HD Camera\n") is None

def test_rewrite_replaces_only_digits_before_colon_zero():
    assert rewrite_device_index('ffmpeg -f avfoundation -i "1:0" -t 5 /tmp/a.mp4', 0) == (
        'ffmpeg -f avfoundation -i "0:0" -t 5 /tmp/a.mp4'
    )

def test_rewrite_unquoted_value_and_leaves_other_numbers():
    command = "ffmpeg -r 30 -f avfoundation -i 12:0 -t 10 /tmp/1.mp4"
    assert rewrite_device_index(command, 3) == "ffmpeg -r 30 -f avfoundation -i 3:0 -t 10 /tmp/1.mp4"

def test_rewrite_without_device_value_is_unchanged():
    assert rewrite_device_index("ffmpeg -i input.mov out.mp4", 4) == "ffmpeg -i input.mov out.mp4"

# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------

def _runner_returning(stdout="", stderr=""):
    runner = MagicMock(spec=CommandRunner)
    runner.run.return_value = ExecutionResult(
        command=PROBE, success=False, exit_code=1, stdout=stdout, stderr=stderr
    )
    return runner

def test_resolver_rewrites_recording_action():
    runner = _runner_returning(stdout="[0] Capture screen 0")
    plan = Plan(actions=[Action(command=PROBE), Action(command=RECORD, description="rec"), Action(command="ls")])

    probe_result, remaining = DeviceIndexResolver(runner).resolve(plan)

    runner.run.assert_called_once_with(PROBE)
    assert probe_result.command == PROBE
    assert [a.command for a in remaining] == [RECORD.replace('"1:0"', '"0:0"'), "ls"]
    assert remaining[0].description == "rec"

def test_resolver_reads_device_list_from_stderr():
    runner = _runner_returning(stderr=FFMPEG_LISTING)
    plan = Plan(actions=[Action(command=PROBE), Action(command=RECORD)])

    _, remaining = DeviceIndexResolver(runner).resolve(plan)

    assert remaining[0].command == 'ffmpeg -f avfoundation -i "2:0" -t 10 /tmp/screen.mp4'

def test_resolver_without_marker_leaves_action_unchanged():
    runner = _runner_returning(stdout="nothing useful")
    plan = Plan(actions=[Action(command=PROBE), Action(command=RECORD)])

    _, remaining = DeviceIndexResolver(runner).resolve(plan)

    assert remaining == [Action(command=RECORD)]

def test_resolver_ignores_other_plans():
    runner = _runner_returning()
    plan = Plan(actions=[Action(command="ls"), Action(command=RECORD)])

    probe_result, remaining = DeviceIndexResolver(runner).resolve(plan)

    assert probe_result is None
    assert remaining == plan.actions
    runner.run.assert_not_called()
