"""
filecabinet/record.py
Record value types and field addressing.

  Record            one persisted person record (immutable)
  RecordParameters  the six editable fields; None / sentinels mean "unchanged"
  Field             tagged enum naming every addressable field
"""

from __future__ import annotations
import datetime
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from filecabinet.errors import InvalidArgument

# Values meaning "not supplied" in a partial update.
UNCHANGED_NUMBER = -1
UNCHANGED_DATE = datetime.date.min
UNCHANGED_GENDER = "\0"

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y")


@dataclass(frozen=True)
class Record:
    id: int
    first_name: str
    last_name: str
    date_of_birth: datetime.date
    gender: str
    office: int
    salary: Decimal

    def parameters(self) -> "RecordParameters":
        """Return the editable fields of this record."""
        return RecordParameters(
            first_name=self.first_name,
            last_name=self.last_name,
            date_of_birth=self.date_of_birth,
            gender=self.gender,
            office=self.office,
            salary=self.salary,
        )

    def with_parameters(self, params: "RecordParameters") -> "Record":
        """Return a copy with every supplied (non-sentinel) field replaced."""
        return replace(self, **params.supplied())

    def as_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class RecordParameters:
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: datetime.date | None = None
    gender: str | None = None
    office: int | None = None
    salary: Decimal | None = None

    def supplied(self) -> dict[str, Any]:
        """Fields that carry a real value (sentinels filtered out)."""
        result: dict[str, Any] = {}
        if self.first_name is not None:
            result["first_name"] = self.first_name
        if self.last_name is not None:
            result["last_name"] = self.last_name
        if self.date_of_birth is not None and self.date_of_birth != UNCHANGED_DATE:
            result["date_of_birth"] = self.date_of_birth
        if self.gender is not None and self.gender != UNCHANGED_GENDER:
            result["gender"] = self.gender
        if self.office is not None and self.office != UNCHANGED_NUMBER:
            result["office"] = self.office
        if self.salary is not None and self.salary != UNCHANGED_NUMBER:
            result["salary"] = self.salary
        return result

    def is_complete(self) -> bool:
        return len(self.supplied()) == 6


class Field(Enum):
    ID = "id"
    FIRST_NAME = "firstname"
    LAST_NAME = "lastname"
    DATE_OF_BIRTH = "dateofbirth"
    GENDER = "gender"
    OFFICE = "office"
    SALARY = "salary"

    @classmethod
    def parse(cls, name: str) -> "Field":
        """Map a command-line field name (case-insensitive) to a Field."""
        key = name.strip().lower().replace("_", "")
        for member in cls:
            if member.value == key:
                return member
        raise InvalidArgument(f"Unknown field '{name}'")

    @property
    def attribute(self) -> str:
        return _ATTRIBUTES[self]

    @property
    def is_indexed(self) -> bool:
        return self in INDEXED_FIELDS

    def value_of(self, record: Record) -> Any:
        return getattr(record, self.attribute)


_ATTRIBUTES = {
    Field.ID: "id",
    Field.FIRST_NAME: "first_name",
    Field.LAST_NAME: "last_name",
    Field.DATE_OF_BIRTH: "date_of_birth",
    Field.GENDER: "gender",
    Field.OFFICE: "office",
    Field.SALARY: "salary",
}

INDEXED_FIELDS = (Field.FIRST_NAME, Field.LAST_NAME, Field.DATE_OF_BIRTH)


# ── Text → typed value ───────────────────────────────────────────────

def parse_date(text: str) -> datetime.date:
    text = text.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise InvalidArgument(f"'{text}' is not a valid date (expected YYYY-MM-DD or M/D/YYYY)")


def parse_int(text: str, what: str) -> int:
    try:
        return int(text.strip().lstrip("#"))
    except ValueError:
        raise InvalidArgument(f"'{text}' is not a valid {what}") from None


def parse_decimal(text: str) -> Decimal:
    try:
        value = Decimal(text.strip())
    except InvalidOperation:
        raise InvalidArgument(f"'{text}' is not a valid decimal") from None
    if not value.is_finite():
        raise InvalidArgument(f"'{text}' is not a finite decimal")
    return value


def parse_gender(text: str) -> str:
    text = text.strip()
    if len(text) != 1:
        raise InvalidArgument(f"'{text}' is not a single gender character")
    return text.upper()


def parse_name(text: str) -> str:
    """Names are kept title-cased: " jOHN o'brien" -> "John O'Brien"."""
    return text.strip().title()


def parse_value(field: Field, text: str) -> Any:
    """Convert command / CSV text into the Python type stored for field."""
    if field is Field.ID:
        return parse_int(text, "id")
    if field is Field.OFFICE:
        return parse_int(text, "office")
    if field is Field.SALARY:
        return parse_decimal(text)
    if field is Field.DATE_OF_BIRTH:
        return parse_date(text)
    if field is Field.GENDER:
        return parse_gender(text)
    return parse_name(text)


def parameters_from(values: dict[Field, Any]) -> RecordParameters:
    """Build RecordParameters from a Field-keyed mapping (id is ignored)."""
    params = RecordParameters()
    for field, value in values.items():
        if field is Field.ID:
            continue
        setattr(params, field.attribute, value)
    return params
