"""
filecabinet/commands.py
CommandProcessor: turns one command line into a call on the record store.

Arguments are key=value tokens (shell-style quoting, trailing commas
ignored); field names are case-insensitive:

  create firstname=John lastname=Smith dateofbirth=1990-05-01 gender=M office=12 salary=500.00
  insert id=7 firstname=Ann ...
  update set firstname=Ann, office=20 where id=1
  delete where lastname=Smith
  find firstname=John and lastname=Smith      (or: find a=b or c=d)
  select id, firstname where lastname=Smith   (no columns: all of them)
  list | stat | purge
  export csv|xml PATH
  import csv|xml PATH

Returns:
  - find / list            -> list[Record]
  - select                 -> Selection(columns, records)
  - everything else        -> str message

An unknown command name fails with the closest known names suggested.
"""

from __future__ import annotations
import shlex
from pathlib import Path
from typing import Any, Callable, NamedTuple

from filecabinet.errors import FileCabinetError
from filecabinet.record import Field, Record, parameters_from, parse_value
from filecabinet.snapshot import Snapshot

FORMATS = ("csv", "xml")

HELP = {
    "help": ("help [command]", "prints the help screen"),
    "exit": ("exit", "exits the application"),
    "stat": ("stat", "shows statistics by records"),
    "create": ("create firstname=.. lastname=.. dateofbirth=.. gender=.. office=.. salary=..",
               "creates a new record"),
    "insert": ("insert id=.. firstname=.. lastname=.. dateofbirth=.. gender=.. office=.. salary=..",
               "inserts a new record with the given id"),
    "update": ("update set <field>=<value>, ... where <field>=<value> [and ...]", "updates one record"),
    "delete": ("delete where <field>=<value>", "deletes every record matching the value"),
    "find": ("find <field>=<value> [and|or <field>=<value> ...]", "finds records by field values"),
    "select": ("select [<field>, ...] [where <field>=<value> [and|or ...]]",
               "prints the chosen fields of matching records"),
    "list": ("list", "lists all records"),
    "export": ("export csv|xml <path>", "exports records to a CSV or XML file"),
    "import": ("import csv|xml <path>", "imports records from a CSV or XML file"),
    "purge": ("purge", "defragments the data file"),
}


class CommandError(Exception):
    """A command could not be parsed or executed."""


class Selection(NamedTuple):
    columns: tuple[Field, ...]
    records: list[Record]


class CommandProcessor:
    """
    Executes command lines against a record store (or a decorated store,
    see instrumentation.py).

    confirm, when given, is asked before export overwrites an existing
    file; a false answer cancels the export.
    """

    def __init__(self, service: Any, confirm: Callable[[str], bool] | None = None) -> None:
        self._service = service
        self._confirm = confirm

    def execute(self, line: str) -> list[Record] | Selection | str:
        command, _, args = line.strip().partition(" ")
        command = command.lower()
        if not command:
            raise CommandError("Empty command")
        handler = getattr(self, f"_exec_{command}", None)
        if handler is None:
            raise CommandError(_unknown_command(command))
        try:
            return handler(args.strip())
        except FileCabinetError as e:
            raise CommandError(str(e)) from e

    # ── Mutations ─────────────────────────────────────────────────────

    def _exec_create(self, args: str) -> str:
        values = _assignments(_tokens(args))
        if Field.ID in values:
            raise CommandError("create assigns the id itself; use insert to choose one")
        record_id = self._service.create(parameters_from(values))
        return f"Record #{record_id} is created."

    def _exec_insert(self, args: str) -> str:
        values = _assignments(_tokens(args))
        if Field.ID not in values:
            raise CommandError("insert requires an id=<value> argument")
        self._service.insert(parameters_from(values), values[Field.ID])
        return f"Record #{values[Field.ID]} is inserted."

    def _exec_update(self, args: str) -> str:
        tokens = _tokens(args)
        lowered = [t.lower() for t in tokens]
        if not tokens or lowered[0] != "set" or "where" not in lowered:
            raise CommandError(
                "Request is not valid. Example: update set firstname=John, lastname=Doe where id=1"
            )
        where = lowered.index("where")
        changes = _assignments(tokens[1:where])
        if Field.ID in changes:
            raise CommandError("The id of a record cannot be changed")
        criteria, any_of = _conditions(tokens[where + 1:])
        if any_of:
            raise CommandError("update accepts only 'and' between conditions")
        record_id = self._service.update(parameters_from(changes), criteria)
        return f"Record #{record_id} is updated."

    def _exec_delete(self, args: str) -> str:
        tokens = _tokens(args)
        if len(tokens) != 2 or tokens[0].lower() != "where":
            raise CommandError("Request is not valid. Example: delete where id=1")
        (field, value), = _assignments(tokens[1:]).items()
        ids = self._service.delete(field, value)
        if not ids:
            return f"No records match {field.value} = '{value}'."
        numbers = ", ".join(f"#{record_id}" for record_id in ids)
        if len(ids) == 1:
            return f"Record {numbers} is deleted."
        return f"Records {numbers} are deleted."

    def _exec_purge(self, args: str) -> str:
        deleted, total = self._service.purge()
        return f"Data file processing is completed: {deleted} of {total} records were purged."

    def _exec_import(self, args: str) -> str:
        fmt, path = _format_and_path(args)
        if not path.is_file():
            raise CommandError(f"Import error: file {path} is not exist.")
        try:
            with open(path, encoding="utf-8", newline="") as f:
                if fmt == "csv":
                    snapshot, errors = Snapshot.load_csv(f)
                else:
                    snapshot, errors = Snapshot.load_xml(f)
        except OSError as e:
            raise CommandError(f"Import error: {e}") from e
        failures = self._service.restore(snapshot)
        lines = list(errors)
        lines += [f"Record #{record_id} wasn't imported: {reason}" for record_id, reason in failures.items()]
        lines.append(f"{len(snapshot) - len(failures)} records were imported from {path}.")
        return "\n".join(lines)

    # ── Queries ───────────────────────────────────────────────────────

    def _exec_find(self, args: str) -> list[Record]:
        criteria, any_of = _conditions(_tokens(args))
        return self._service.select(criteria, any_of)

    def _exec_select(self, args: str) -> Selection:
        tokens = _tokens(args)
        lowered = [t.lower() for t in tokens]
        where = lowered.index("where") if "where" in lowered else len(tokens)
        names = [name for token in tokens[:where] for name in token.split(",") if name]
        columns = tuple(Field.parse(name) for name in names) or tuple(Field)
        if where == len(tokens):
            return Selection(columns, list(self._service.get_records()))
        criteria, any_of = _conditions(tokens[where + 1:])
        return Selection(columns, self._service.select(criteria, any_of))

    def _exec_list(self, args: str) -> list[Record]:
        return list(self._service.get_records())

    def _exec_stat(self, args: str) -> str:
        total, deleted = self._service.get_stat()
        return f"{total} record(s). Number of deleted records: {deleted}."

    def _exec_export(self, args: str) -> str:
        fmt, path = _format_and_path(args)
        if path.exists() and self._confirm is not None:
            if not self._confirm(f"File is exist - rewrite {path}? [Y/n] "):
                return "Export is canceled."
        snapshot = self._service.make_snapshot()
        try:
            with open(path, "w", encoding="utf-8", newline="") as f:
                if fmt == "csv":
                    snapshot.save_csv(f)
                else:
                    snapshot.save_xml(f)
        except OSError as e:
            raise CommandError(f"Export failed: can't open file {path}. {e}") from e
        return f"All records are exported to file {path}."

    def _exec_help(self, args: str) -> str:
        if args:
            entry = HELP.get(args.lower())
            if entry is None:
                return f"There is no explanation for '{args}' command."
            usage, description = entry
            return f"{usage}\n    {description}"
        width = max(len(name) for name in HELP)
        lines = ["Available commands:"]
        lines += [f"  {name:<{width}} - {description}" for name, (_, description) in HELP.items()]
        return "\n".join(lines)


# ── Unknown commands ─────────────────────────────────────────────────

def _edit_distance(a: str, b: str) -> int:
    """Damerau-Levenshtein distance (adjacent transpositions cost 1)."""
    before: list[int] = []
    previous = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        row = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            row[j] = min(row[j - 1] + 1, previous[j] + 1, previous[j - 1] + cost)
            if i > 1 and j > 1 and a[i - 1] == b[j - 2] and a[i - 2] == b[j - 1]:
                row[j] = min(row[j], before[j - 2] + 1)
        before, previous = previous, row
    return previous[len(b)]


def similar_commands(command: str, limit: int = 3) -> list[str]:
    """Known commands closer than limit edits to command, closest first."""
    scored = sorted((_edit_distance(command, name), name) for name in HELP if name != command)
    return [name for distance, name in scored if distance < limit]


def _unknown_command(command: str) -> str:
    message = f"There is no '{command}' command. Enter 'help' to get help."
    similar = similar_commands(command)
    if len(similar) == 1:
        message += f" The most similar command is '{similar[0]}'."
    elif similar:
        message += " The most similar commands are " + ", ".join(f"'{name}'" for name in similar) + "."
    return message


# ── Argument parsing ─────────────────────────────────────────────────

def _tokens(args: str) -> list[str]:
    try:
        raw = shlex.split(args)
    except ValueError as e:
        raise CommandError(f"Cannot parse arguments: {e}") from e
    return [t.rstrip(",") for t in raw if t.rstrip(",")]


def _pairs(tokens: list[str]) -> list[tuple[Field, Any]]:
    pairs = []
    for token in tokens:
        key, sep, text = token.partition("=")
        if not sep or not key:
            raise CommandError(f"Expected <field>=<value>, got '{token}'")
        try:
            field = Field.parse(key)
            pairs.append((field, parse_value(field, text)))
        except FileCabinetError as e:
            raise CommandError(str(e)) from e
    return pairs


def _assignments(tokens: list[str]) -> dict[Field, Any]:
    values: dict[Field, Any] = {}
    for field, value in _pairs(tokens):
        if field in values:
            raise CommandError(f"Field '{field.value}' is given more than once")
        values[field] = value
    return values


def _conditions(tokens: list[str]) -> tuple[dict[Field, Any] | list[tuple[Field, Any]], bool]:
    """
    Split 'a=b and c=d' / 'a=b or c=d' into (criteria, any_of). OR criteria
    stay a list of pairs so one field may be given several values.
    """
    joiners = {t.lower() for t in tokens if t.lower() in ("and", "or")}
    if len(joiners) > 1:
        raise CommandError("Mixing 'and' and 'or' is not supported")
    conditions = [t for t in tokens if t.lower() not in ("and", "or")]
    if not conditions:
        raise CommandError("At least one <field>=<value> condition is required")
    if joiners == {"or"}:
        return _pairs(conditions), True
    return _assignments(conditions), False


def _format_and_path(args: str) -> tuple[str, Path]:
    tokens = _tokens(args)
    if len(tokens) != 2 or tokens[0].lower() not in FORMATS:
        raise CommandError("Wrong command format. Example: export csv records.csv")
    return tokens[0].lower(), Path(tokens[1])
