"""
filecabinet/validators.py
Record validation rules.

A validator is any object with validate(params) that raises
ValidationError(reason) when a field breaks a rule. Field validators check
one field each; CompositeValidator chains them; ValidatorBuilder assembles a
composite from bounds (usually taken from a rule set, see config.py).
"""

from __future__ import annotations
import datetime
from decimal import Decimal
from typing import Any, Iterable, Protocol

from filecabinet.errors import ValidationError
from filecabinet.record import RecordParameters

_NAME_PUNCTUATION = " '.-"


class RecordValidator(Protocol):
    def validate(self, params: RecordParameters) -> None: ...


def _require(value: Any, label: str) -> Any:
    if value is None:
        raise ValidationError(f"The {label} cannot be empty.", label)
    return value


def _utf16_length(text: str) -> int:
    return len(text.encode("utf-16-le")) // 2


class _NameValidator:
    label = "name"
    attribute = ""

    def __init__(self, min_length: int, max_length: int) -> None:
        self.min_length = min_length
        self.max_length = max_length

    def validate(self, params: RecordParameters) -> None:
        name = _require(getattr(params, self.attribute), self.label)
        if not name.strip():
            raise ValidationError(f"The {self.label} cannot be blank.", self.label)
        # stored as UTF-16, so astral characters count twice
        if not self.min_length <= _utf16_length(name) <= self.max_length:
            raise ValidationError(
                f"The {self.label} length must be between {self.min_length} "
                f"and {self.max_length} characters.",
                self.label,
            )
        if not all(ch.isalpha() or ch in _NAME_PUNCTUATION for ch in name):
            raise ValidationError(
                f"The {self.label} may contain only letters, spaces, apostrophes, dots and hyphens.",
                self.label,
            )


class FirstNameValidator(_NameValidator):
    label = "first name"
    attribute = "first_name"


class LastNameValidator(_NameValidator):
    label = "last name"
    attribute = "last_name"


class DateOfBirthValidator:
    def __init__(self, date_from: datetime.date, date_to: datetime.date) -> None:
        if date_from > date_to:
            raise ValueError("date_from must not be later than date_to")
        self.date_from = date_from
        self.date_to = date_to

    def validate(self, params: RecordParameters) -> None:
        dob = _require(params.date_of_birth, "date of birth")
        if not self.date_from <= dob <= self.date_to:
            raise ValidationError(
                f"The date of birth can't be less than {self.date_from.isoformat()} "
                f"and larger than {self.date_to.isoformat()}.",
                "date of birth",
            )


class GenderValidator:
    def __init__(self, allowed: Iterable[str]) -> None:
        self.allowed = tuple(allowed)
        if not self.allowed:
            raise ValueError("allowed genders cannot be empty")

    def validate(self, params: RecordParameters) -> None:
        gender = _require(params.gender, "gender")
        if gender not in self.allowed:
            raise ValidationError(
                f"The gender can be only {' '.join(self.allowed)}.", "gender"
            )


class _RangeValidator:
    label = ""
    attribute = ""

    def __init__(self, minimum: int | Decimal, maximum: int | Decimal) -> None:
        self.minimum = minimum
        self.maximum = maximum

    def validate(self, params: RecordParameters) -> None:
        value = _require(getattr(params, self.attribute), self.label)
        if not self.minimum <= value <= self.maximum:
            raise ValidationError(
                f"The {self.label} can't be less than {self.minimum} or larger than {self.maximum}.",
                self.label,
            )


class OfficeValidator(_RangeValidator):
    label = "office"
    attribute = "office"


class SalaryValidator(_RangeValidator):
    label = "salary"
    attribute = "salary"


class CompositeValidator:
    """Runs validators in order; the first failure propagates."""

    def __init__(self, validators: Iterable[RecordValidator]) -> None:
        self.validators = list(validators)

    def validate(self, params: RecordParameters) -> None:
        for validator in self.validators:
            validator.validate(params)


class ValidatorBuilder:
    """
    Fluent construction of a CompositeValidator:

        ValidatorBuilder().first_name(2, 60).office(0, 500).create()
    """

    def __init__(self) -> None:
        self._validators: list[RecordValidator] = []

    def first_name(self, min_length: int, max_length: int) -> "ValidatorBuilder":
        self._validators.append(FirstNameValidator(min_length, max_length))
        return self

    def last_name(self, min_length: int, max_length: int) -> "ValidatorBuilder":
        self._validators.append(LastNameValidator(min_length, max_length))
        return self

    def date_of_birth(self, date_from: datetime.date, date_to: datetime.date) -> "ValidatorBuilder":
        self._validators.append(DateOfBirthValidator(date_from, date_to))
        return self

    def gender(self, allowed: Iterable[str]) -> "ValidatorBuilder":
        self._validators.append(GenderValidator(allowed))
        return self

    def office(self, minimum: int, maximum: int) -> "ValidatorBuilder":
        self._validators.append(OfficeValidator(minimum, maximum))
        return self

    def salary(self, minimum: int | Decimal, maximum: int | Decimal) -> "ValidatorBuilder":
        self._validators.append(SalaryValidator(minimum, maximum))
        return self

    def create(self) -> CompositeValidator:
        return CompositeValidator(self._validators)
