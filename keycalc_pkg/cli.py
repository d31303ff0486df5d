from __future__ import annotations

import argparse
import json
import logging
from typing import Any

from . import config
from .api import evaluate
from .config import VERSION
from .engine import ExpressionEngine
from .history import InMemoryHistoryStore, JsonHistoryStore
from .keys import parse_key_sequence, run_events
from .types import EvalResult, ValidationError

logger = logging.getLogger(__name__)

REPL_COMMANDS = ("help", "history", "state", "clear history", "quit", "exit")


def print_state(engine: ExpressionEngine, output_format: str = "human") -> None:
    """Print the calculator screen in the specified format.

    Args:
        engine: Engine whose state is shown
        output_format: "json" for JSON output, "human" for human-readable
    """
    if output_format == "json":
        print(json.dumps(engine.snapshot(), indent=2, ensure_ascii=False))
        return
    secondary = engine.input_formula or engine.formula_history_line
    if secondary:
        print(secondary)
    print(engine.display_value)


def print_result_pretty(result: EvalResult, output_format: str = "human") -> None:
    if output_format == "json":
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return
    if not result.ok:
        print("Error:", result.message or result.error.value)
        return
    print(result.message)


def print_history(engine: ExpressionEngine, output_format: str = "human") -> None:
    entries = engine.load_history()
    if output_format == "json":
        print(
            json.dumps(
                [entry.to_dict() for entry in entries], indent=2, ensure_ascii=False
            )
        )
        return
    if not entries:
        print("No history.")
        return
    for entry in entries:
        print(f"{entry.expression} = {entry.result}")


def print_help_text() -> None:
    """Print help text for REPL commands."""
    help_text = f"""Keycalc version {VERSION}

Type keys separated by spaces, one sequence per line:
  7 + 8 =              → 15
  ( 2 + 3 ) × 4 =      → 20   (glued form "(2+3)×4=" works too)
  5 x!                 → 120
  Deg 90 sin           → 1

Keys:
  0-9 .                digits and decimal point
  + - × ÷ (* /)        operators
  = AC +/- %           equals, clear, sign, percent
  ( ) ()               open, close, toggle parenthesis
  sin cos tan ln log √ ∛ 1/x eˣ x² x³ 10ˣ xʸ x!
  mc m+ m- mr          memory
  Rad Deg              toggle angle mode
  π e Ans              constants and last result
  digit:7 op:+ sciFn:sin memOp:m+ parenToggle ...   named events

Commands:
  help                 show this text
  state                show the full calculator state
  history              list past calculations, newest first
  clear history        delete all history entries
  quit, exit           leave
"""
    print(help_text)


def repl_loop(engine: ExpressionEngine, output_format: str = "human") -> None:
    """Interactive REPL loop: one key sequence per line on a persistent engine."""
    try:
        import readline  # noqa: F401
    except ImportError:
        # readline not available on Windows - that's fine
        pass

    print("Keycalc - type 'help' for keys and commands, 'quit' to exit.")
    while True:
        try:
            raw = input(">>> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye.")
            break
        if not raw:
            continue
        command = raw.lower()
        if command in ("quit", "exit"):
            print("Goodbye.")
            break
        if command == "help":
            print_help_text()
            continue
        if command == "history":
            print_history(engine, output_format)
            continue
        if command == "clear history":
            engine.clear_history()
            print("History cleared.")
            continue
        if command == "state":
            print(json.dumps(engine.snapshot(), indent=2, ensure_ascii=False))
            continue
        try:
            run_events(engine, parse_key_sequence(raw))
        except ValidationError as e:
            print("Error:", e.message)
            continue
        print_state(engine, output_format)


def _apply_overrides(args: Any) -> None:
    """Apply CLI configuration overrides to the config module."""
    if args.angle:
        config.DEFAULT_ANGLE_MODE = args.angle
    if args.history_file:
        config.HISTORY_FILE = args.history_file
    if args.decimal_separator:
        config.DECIMAL_SEPARATOR = args.decimal_separator


def main_entry(argv: list[str] | None = None) -> int:
    """
    Main entry point for Keycalc CLI.

    Args:
        argv: Optional command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    parser = argparse.ArgumentParser(prog="keycalc")
    parser.add_argument(
        "-k",
        "--keys",
        type=str,
        help='Run a key sequence (e.g. "7 + 8 =") and print the display',
    )
    parser.add_argument(
        "-e",
        "--eval",
        type=str,
        help="Evaluate one bracketed expression and exit (non-interactive)",
        dest="eval_expr",
    )
    parser.add_argument(
        "--format",
        type=str,
        choices=["json", "human"],
        default="human",
        help="Output format: json (machine-readable) or human (human-readable)",
    )
    parser.add_argument(
        "--angle", type=str, choices=["deg", "rad"], help="Initial angle mode"
    )
    parser.add_argument(
        "--decimal-separator",
        type=str,
        help='Decimal separator for the display ("locale" uses the host locale)',
    )
    parser.add_argument("--history", action="store_true", help="Show history and exit")
    parser.add_argument(
        "--clear-history", action="store_true", help="Delete all history entries"
    )
    parser.add_argument("--history-file", type=str, help="History file location")
    parser.add_argument(
        "--no-history",
        action="store_true",
        help="Keep history in memory only for this run",
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="Show program version"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging level (default: KEYCALC_LOG_LEVEL or WARNING)",
    )
    parser.add_argument("--log-file", type=str, help="Write logs to file")
    args = parser.parse_args(argv)

    from .logging_config import setup_logging

    setup_logging(level=args.log_level, log_file=args.log_file)
    _apply_overrides(args)

    if args.version:
        print(VERSION)
        return 0

    if args.eval_expr is not None:
        expr = args.eval_expr.strip()
        if expr.endswith("="):
            expr = expr[:-1].strip()
        if not expr:
            print("Error: Empty input. Please enter an expression.")
            return 1
        result = evaluate(expr)
        print_result_pretty(result, output_format=args.format)
        return 0 if result.ok else 1

    store = (
        InMemoryHistoryStore()
        if args.no_history
        else JsonHistoryStore(config.HISTORY_FILE)
    )
    engine = ExpressionEngine(history_store=store)

    if args.clear_history:
        engine.clear_history()
        print("History cleared.")
        return 0
    if args.history:
        print_history(engine, output_format=args.format)
        return 0

    if args.keys is not None:
        try:
            events = parse_key_sequence(args.keys)
        except ValidationError as e:
            print("Error:", e.message)
            return 1
        run_events(engine, events)
        print_state(engine, output_format=args.format)
        return 0

    repl_loop(engine, output_format=args.format)
    return 0


if __name__ == "__main__":
    """Allow running the CLI module directly with python -m keycalc_pkg.cli"""
    import sys

    sys.exit(main_entry())
