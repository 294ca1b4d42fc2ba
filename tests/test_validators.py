"""tests/test_validators.py - Unit tests for record validators."""

import datetime
from decimal import Decimal

import pytest

from filecabinet.errors import ValidationError
from filecabinet.validators import (
    CompositeValidator,
    DateOfBirthValidator,
    FirstNameValidator,
    GenderValidator,
    LastNameValidator,
    OfficeValidator,
    SalaryValidator,
    ValidatorBuilder,
)


class TestNames:
    @pytest.mark.parametrize("name", ["Jo", "Mary Ann", "O'Brien", "Jean-Luc", "St. John", "Zoë", "A" * 60])
    def test_accepts(self, params, name):
        FirstNameValidator(2, 60).validate(params(first_name=name))

    @pytest.mark.parametrize("name", ["J", "A" * 61, "   ", "", "R2D2", "john_doe"])
    def test_rejects(self, params, name):
        with pytest.raises(ValidationError) as exc:
            FirstNameValidator(2, 60).validate(params(first_name=name))
        assert exc.value.field == "first name"

    def test_bounds_are_inclusive(self, params):
        validator = LastNameValidator(3, 5)
        validator.validate(params(last_name="Kim"))
        validator.validate(params(last_name="Smith"))
        with pytest.raises(ValidationError):
            validator.validate(params(last_name="Li"))

    def test_length_counts_utf16_units(self, params):
        bold_a = "\U0001D400"
        validator = FirstNameValidator(2, 60)
        validator.validate(params(first_name=bold_a * 30))
        with pytest.raises(ValidationError) as exc:
            validator.validate(params(first_name=bold_a * 40))
        assert exc.value.field == "first name"

    def test_missing(self, params):
        with pytest.raises(ValidationError) as exc:
            LastNameValidator(2, 60).validate(params(last_name=None))
        assert "last name" in exc.value.reason


class TestDateOfBirth:
    validator = DateOfBirthValidator(datetime.date(1950, 1, 1), datetime.date(2010, 1, 1))

    @pytest.mark.parametrize("dob", [datetime.date(1950, 1, 1), datetime.date(1990, 5, 1), datetime.date(2010, 1, 1)])
    def test_accepts(self, params, dob):
        self.validator.validate(params(date_of_birth=dob))

    @pytest.mark.parametrize("dob", [datetime.date(1949, 12, 31), datetime.date(2010, 1, 2)])
    def test_rejects(self, params, dob):
        with pytest.raises(ValidationError):
            self.validator.validate(params(date_of_birth=dob))

    def test_inverted_range(self):
        with pytest.raises(ValueError):
            DateOfBirthValidator(datetime.date(2000, 1, 1), datetime.date(1999, 1, 1))


class TestGender:
    def test_allowed(self, params):
        GenderValidator("MF").validate(params(gender="F"))

    def test_not_allowed(self, params):
        with pytest.raises(ValidationError) as exc:
            GenderValidator("MF").validate(params(gender="U"))
        assert exc.value.reason == "The gender can be only M F."

    def test_empty_allowed_set(self):
        with pytest.raises(ValueError):
            GenderValidator("")


class TestRanges:
    @pytest.mark.parametrize("office,ok", [(0, True), (500, True), (-1, False), (501, False)])
    def test_office(self, params, office, ok):
        validator = OfficeValidator(0, 500)
        if ok:
            validator.validate(params(office=office))
        else:
            with pytest.raises(ValidationError):
                validator.validate(params(office=office))

    @pytest.mark.parametrize("salary,ok", [("0", True), ("10000.00", True), ("10000.01", False), ("-0.01", False)])
    def test_salary(self, params, salary, ok):
        validator = SalaryValidator(Decimal(0), Decimal(10000))
        if ok:
            validator.validate(params(salary=Decimal(salary)))
        else:
            with pytest.raises(ValidationError):
                validator.validate(params(salary=Decimal(salary)))


class TestComposite:
    def test_first_failure_wins(self, params):
        validator = CompositeValidator([FirstNameValidator(2, 60), GenderValidator("M")])
        with pytest.raises(ValidationError) as exc:
            validator.validate(params(first_name="J", gender="F"))
        assert exc.value.field == "first name"

    def test_empty_composite_accepts_anything(self, params):
        CompositeValidator([]).validate(params(first_name=""))

    def test_builder(self, params):
        validator = (
            ValidatorBuilder()
            .first_name(2, 10)
            .last_name(2, 10)
            .date_of_birth(datetime.date(1950, 1, 1), datetime.date(2000, 1, 1))
            .gender("MF")
            .office(1, 100)
            .salary(Decimal(1), Decimal(1000))
            .create()
        )
        assert len(validator.validators) == 6
        validator.validate(params())
        with pytest.raises(ValidationError):
            validator.validate(params(office=101))
