# run.py
# Entry point. Config and wiring only — no logic lives here.
#
#   python -m shell_pilot.run config.toml "disk usage of /var" "take a screenshot"
#   echo "what is my uptime" | python -m shell_pilot.run config.toml
#
# Each message is an independent unit of work; several run concurrently.

import sys
from concurrent.futures import ThreadPoolExecutor

from shell_pilot import display
from shell_pilot.config import AppConfig, ConfigError
from shell_pilot.harness import ConsoleSink, Harness

DEFAULT_CONFIG = "config.toml"
MAX_CONCURRENT_MESSAGES = 4


def _messages(args: list[str]):
    if args:
        yield from args
        return
    for line in sys.stdin:
        line = line.strip()
        if line:
            yield line


def main(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    config_path = args.pop(0) if args else DEFAULT_CONFIG

    try:
        config = AppConfig.load(config_path)
    except ConfigError as exc:
        display.halt(str(exc))
        return 1

    harness = Harness(config, sink=ConsoleSink())
    display.banner(
        config.llm.model,
        config.executor.working_dir or ".",
        config.executor.max_fix_retries,
        [skill.id for skill in harness.skills.skills],
    )

    with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_MESSAGES) as pool:
        for report in pool.map(harness.handle, _messages(args)):
            if report.error:
                display.log(f"#{report.task_id}", report.error)
    return 0


if __name__ == "__main__":
    sys.exit(main())
