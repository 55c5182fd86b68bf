"""Options of the log counter command."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass
class LogCounterOptions:
    """What logs to count and the threshold that marks a problem."""

    journald_source: str = ""
    log_path: str = ""
    lookback: str = ""
    delay: str = ""
    pattern: str = ""
    revert_pattern: str = ""
    count: int = 1


def parse_log_counter_options(argv: Sequence[str] | None = None) -> LogCounterOptions:
    """Parse the log counter's command line."""
    parser = argparse.ArgumentParser(prog="log-counter", allow_abbrev=False)
    parser.add_argument(
        "--journald-source", dest="journald_source", default="",
        help="The source configuration of journald, e.g., kernel, kubelet, dockerd, etc",
    )
    parser.add_argument(
        "--log-path", dest="log_path", default="",
        help="The log path that log watcher looks up",
    )
    parser.add_argument(
        "--lookback", dest="lookback", default="",
        help="The time log watcher looks up",
    )
    parser.add_argument(
        "--delay", dest="delay", default="",
        help="The time duration log watcher delays after node boot time.",
    )
    parser.add_argument(
        "--pattern", dest="pattern", default="",
        help="The regular expression to match the problem in log. "
        "The pattern must match to the end of the line.",
    )
    parser.add_argument(
        "--revert-pattern", dest="revert_pattern", default="",
        help="Similar to --pattern but conversely it decreases count value for every match.",
    )
    parser.add_argument(
        "--count", dest="count", type=int, default=1,
        help="The number of times the pattern must be found to trigger the condition",
    )
    namespace = parser.parse_args(argv)
    return LogCounterOptions(**vars(namespace))