"""Command-line entry point: replay a recorded typing session and report its stats."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from keytutor.core.metrics import accuracy_level, format_duration, speed_level
from keytutor.core.models import ErrorRecord
from keytutor.core.replay import load_recording, replay


def configure_logging(verbose: bool = False) -> None:
    """Configure application-wide logging with a standard format."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="keytutor-replay",
        description="Replay a YAML keystroke recording through the typing engine.",
    )
    parser.add_argument("recording", type=Path, help="path to a recording .yaml file")
    parser.add_argument("-v", "--verbose", action="store_true", help="log every engine event")
    return parser


def summarize(result) -> List[str]:
    session = result.session
    stats = session.current_stats()
    lines = [
        f"status:     {session.status.value}",
        f"progress:   {session.position}/{len(session.target_text)}",
        f"time:       {format_duration(stats.total_time_ms)}",
        f"wpm:        {stats.wpm} ({speed_level(stats.wpm)})",
        f"accuracy:   {stats.accuracy:.1f}% ({accuracy_level(stats.accuracy)})",
        f"keystrokes: {stats.characters_typed} ({stats.incorrect_characters} wrong)",
        f"trend:      {session.accuracy.accuracy_trend()}",
    ]
    common = session.accuracy.most_common_errors(3)
    if common:
        lines.append("common errors: " + ", ".join(f"{e.key} x{e.count}" for e in common))
    weakest = session.characters.weakest_characters(3)
    if weakest:
        lines.append("weakest keys:  " + ", ".join(f"{w.char!r} {w.accuracy:.0f}%" for w in weakest))
    criteria = session.criteria_result
    if criteria.unmet_criteria:
        lines.append("unmet criteria: " + ", ".join(criteria.unmet_criteria))
    return lines


def run(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, replay the recording and print a summary."""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    log = logging.getLogger("keytutor")

    try:
        recording = load_recording(args.recording)
    except (FileNotFoundError, ValueError) as e:
        log.error("%s", e)
        return 2

    def on_error(error: ErrorRecord) -> None:
        log.debug("Error at %d: expected %r, got %r", error.position, error.expected, error.received)

    def on_limit() -> None:
        log.warning("Backspace limit reached")

    result = replay(recording, on_error=on_error, on_backspace_limit_reached=on_limit)
    log.info("Replayed %d events, %d ignored", result.applied, result.ignored)
    for line in summarize(result):
        print(line)
    return 0


def main() -> None:
    sys.exit(run())
