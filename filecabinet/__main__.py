"""
filecabinet/__main__.py
Interactive REPL for the file cabinet.

Usage:
    python -m filecabinet                                  # ./cabinet.db, default rules
    python -m filecabinet --storage-file people.db -v custom
    python -m filecabinet --use-logger --log-file cabinet.log --use-stopwatch

Type 'help' for the list of commands, 'exit' to quit.
"""

from __future__ import annotations
import argparse
import logging
import sys
from decimal import Decimal

from filecabinet.commands import CommandError, CommandProcessor, Selection
from filecabinet.config import ValidationRules
from filecabinet.errors import FileCabinetError
from filecabinet.instrumentation import ServiceLogger, ServiceMeter
from filecabinet.record import Field, Record
from filecabinet.store import RecordStore

logger = logging.getLogger("filecabinet")

_HEADERS = {
    Field.ID: "Id",
    Field.FIRST_NAME: "FirstName",
    Field.LAST_NAME: "LastName",
    Field.DATE_OF_BIRTH: "DateOfBirth",
    Field.GENDER: "Gender",
    Field.OFFICE: "Office",
    Field.SALARY: "Salary",
}
_NUMERIC = (Field.ID, Field.OFFICE, Field.SALARY)


# ── ASCII table formatter ─────────────────────────────────────────────

def _cell(record: Record, field: Field) -> str:
    value = field.value_of(record)
    if isinstance(value, Decimal):
        return f"{value:f}"
    if field is Field.DATE_OF_BIRTH:
        return value.isoformat()
    return str(value)


def _fmt_table(records: list[Record], columns: tuple[Field, ...] = tuple(Field)) -> str:
    if not records:
        return "(0 records)"
    rows = [[_cell(r, field) for field in columns] for r in records]
    headers = [_HEADERS[field] for field in columns]
    widths = [max(len(h), *(len(row[i]) for row in rows)) for i, h in enumerate(headers)]

    sep = "+" + "+".join("-" * (w + 2) for w in widths) + "+"
    header = "|" + "|".join(f" {h:<{w}} " for h, w in zip(headers, widths)) + "|"
    lines = [sep, header, sep]
    for row in rows:
        # numbers right-aligned, text left-aligned
        cells = [
            f" {cell:>{w}} " if field in _NUMERIC else f" {cell:<{w}} "
            for field, cell, w in zip(columns, row, widths)
        ]
        lines.append("|" + "|".join(cells) + "|")
    lines.append(sep)
    lines.append(f"({len(records)} record{'s' if len(records) != 1 else ''})")
    return "\n".join(lines)


# ── REPL ─────────────────────────────────────────────────────────────

def run_repl(processor: CommandProcessor, banner: str) -> None:
    print(banner)
    print("Enter your command, or enter 'help' to get help.")
    print()

    while True:
        try:
            line = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("exit", "quit"):
            print("Exiting an application...")
            break

        try:
            result = processor.execute(stripped)
        except CommandError as e:
            print(f"Error: {e}")
            continue
        except Exception as e:  # noqa: BLE001
            logger.exception("command %r failed", stripped)
            print(f"Unexpected error: {e}")
            continue
        _print_result(result)


def _ask(question: str) -> bool:
    try:
        answer = input(question)
    except EOFError:
        return False
    return answer.strip().lower() in ("", "y", "yes")


def _print_result(result: list[Record] | Selection | str) -> None:
    if isinstance(result, Selection):
        print(_fmt_table(result.records, result.columns))
    elif isinstance(result, list):
        print(_fmt_table(result))
    else:
        print(result)


# ── Entry point ───────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m filecabinet", description="File cabinet REPL")
    parser.add_argument("-s", "--storage-file", metavar="PATH", default="cabinet.db",
                        help="Binary data file (created if missing, default: cabinet.db)")
    parser.add_argument("-v", "--validation-rules", metavar="NAME", default="default",
                        help="Validation rule set: default, custom, or one from --rules-file")
    parser.add_argument("--rules-file", metavar="PATH", default=None,
                        help="JSON file with additional or overriding rule sets")
    parser.add_argument("--use-logger", action="store_true",
                        help="Log every store operation")
    parser.add_argument("--use-stopwatch", action="store_true",
                        help="Print the execution time of every store operation")
    parser.add_argument("--log-file", metavar="PATH", default=None,
                        help="Write log output to PATH instead of stderr")
    parser.add_argument("--log-level", metavar="LEVEL", default=None,
                        help="Logging level (default: INFO with --use-logger, else WARNING)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    level = args.log_level or ("INFO" if args.use_logger else "WARNING")
    logging.basicConfig(
        level=level.upper(),
        filename=args.log_file,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%m/%d/%Y %H:%M",
    )

    try:
        validator = ValidationRules(args.rules_file).create_validator(args.validation_rules)
        store = RecordStore(args.storage_file, validator)
    except FileCabinetError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    service = store
    if args.use_stopwatch:
        service = ServiceMeter(service)
    if args.use_logger:
        service = ServiceLogger(service)

    banner = (
        "File Cabinet Application\n"
        f"Using {args.validation_rules.lower()} validation rules.\n"
        f"Storage file: {store.filepath}"
    )
    try:
        run_repl(CommandProcessor(service, confirm=_ask), banner)
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
