"""
filecabinet/config.py
ValidationRules: named validation rule sets, optionally loaded from JSON.

Format:
{
  "default": {
    "firstName":   {"min": 2, "max": 60},
    "lastName":    {"min": 2, "max": 60},
    "dateOfBirth": {"from": "1950-01-01", "to": "2010-01-01"},
    "gender":      "MFOU",
    "office":      {"min": 0, "max": 500},
    "salary":      {"min": 0, "max": 10000}
  },
  "custom": { ... }
}

Rule sets found in the file replace the built-in ones with the same name;
other names are added.
"""

from __future__ import annotations
import copy
import datetime
import json
from decimal import Decimal
from pathlib import Path
from typing import Any

from filecabinet.errors import ConfigError
from filecabinet.validators import CompositeValidator, ValidatorBuilder

BUILTIN_RULES: dict[str, dict[str, Any]] = {
    "default": {
        "firstName": {"min": 2, "max": 60},
        "lastName": {"min": 2, "max": 60},
        "dateOfBirth": {"from": "1950-01-01", "to": "2010-01-01"},
        "gender": "MFOU",
        "office": {"min": 0, "max": 500},
        "salary": {"min": 0, "max": 10000},
    },
    "custom": {
        "firstName": {"min": 2, "max": 30},
        "lastName": {"min": 2, "max": 30},
        "dateOfBirth": {"from": "1930-01-01", "to": "2000-01-01"},
        "gender": "MF",
        "office": {"min": 100, "max": 300},
        "salary": {"min": 100, "max": 7000},
    },
}


class ValidationRules:
    """
    Reads validation rule sets from a JSON file layered over the built-ins.
    """

    DEFAULT_NAME = "default"

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path is not None else None
        self._data: dict[str, dict[str, Any]] = copy.deepcopy(BUILTIN_RULES)
        if self._path is not None:
            self._data.update(self._load())

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """Return a sorted list of available rule set names."""
        return sorted(self._data.keys())

    def rule_set(self, name: str) -> dict[str, Any]:
        """Return a copy of the named rule set. Raises ConfigError if unknown."""
        key = name.lower()
        if key not in self._data:
            raise ConfigError(
                f"Unknown validation rules '{name}'. Available: {', '.join(self.names())}"
            )
        return copy.deepcopy(self._data[key])

    def create_validator(self, name: str = DEFAULT_NAME) -> CompositeValidator:
        return build_validator(self.rule_set(name), name)

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, dict[str, Any]]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Validation rules file {self._path} does not exist") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Validation rules file {self._path} is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not all(isinstance(v, dict) for v in data.values()):
            raise ConfigError(f"{self._path}: expected an object of rule set objects")
        return {name.lower(): rules for name, rules in data.items()}


def build_validator(rules: dict[str, Any], name: str = "rules") -> CompositeValidator:
    """Turn one rule set dictionary into a CompositeValidator."""
    try:
        return (
            ValidatorBuilder()
            .first_name(int(rules["firstName"]["min"]), int(rules["firstName"]["max"]))
            .last_name(int(rules["lastName"]["min"]), int(rules["lastName"]["max"]))
            .date_of_birth(
                datetime.date.fromisoformat(rules["dateOfBirth"]["from"]),
                datetime.date.fromisoformat(rules["dateOfBirth"]["to"]),
            )
            .gender(str(rules["gender"]))
            .office(int(rules["office"]["min"]), int(rules["office"]["max"]))
            .salary(Decimal(str(rules["salary"]["min"])), Decimal(str(rules["salary"]["max"])))
            .create()
        )
    except KeyError as e:
        raise ConfigError(f"Rule set '{name}' is missing {e}") from e
    except (TypeError, ValueError, ArithmeticError) as e:
        raise ConfigError(f"Rule set '{name}' is malformed: {e}") from e
