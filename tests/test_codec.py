"""tests/test_codec.py - Unit tests for the binary record codec."""

import datetime
import struct
from decimal import Decimal

import pytest

from filecabinet import codec
from filecabinet.errors import CorruptFile, FormatError, InvalidArgument
from filecabinet.record import Record


def make_record(**overrides) -> Record:
    values = dict(
        id=7,
        first_name="John",
        last_name="Smith",
        date_of_birth=datetime.date(1990, 5, 1),
        gender="M",
        office=12,
        salary=Decimal("500.00"),
    )
    values.update(overrides)
    return Record(**values)


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

class TestLayout:
    def test_slot_size(self):
        assert codec.SLOT_SIZE == 278
        assert len(codec.encode(make_record())) == 278

    def test_fields_region_size(self):
        assert len(codec.encode_fields(make_record())) == 272

    def test_header(self):
        data = codec.encode(make_record(id=7))
        assert data[0] == codec.STATUS_ALIVE
        assert data[1] == 0
        assert struct.unpack_from("<i", data, 2) == (7,)

    def test_names_are_utf16_and_space_padded(self):
        data = codec.encode(make_record())
        first = data[6:126]
        last = data[126:246]
        assert first[:8] == "John".encode("utf-16-le")
        assert first[8:] == " ".encode("utf-16-le") * 56
        assert last.decode("utf-16-le").rstrip(" ") == "Smith"

    def test_date_gender_office(self):
        data = codec.encode(make_record())
        assert struct.unpack_from("<3i", data, 246) == (1990, 5, 1)
        assert data[258:260] == "M".encode("utf-16-le")
        assert struct.unpack_from("<h", data, 260) == (12,)

    def test_salary_bits(self):
        data = codec.encode(make_record(salary=Decimal("500.00")))
        lo, mid, hi, flags = struct.unpack_from("<4I", data, 262)
        assert (lo, mid, hi) == (50000, 0, 0)
        assert flags == 2 << 16

    def test_read_id_and_status(self):
        data = codec.encode(make_record(id=42))
        assert codec.read_id(data) == 42
        assert not codec.is_deleted(data)
        deleted = bytes([codec.STATUS_DELETED]) + data[1:]
        assert codec.is_deleted(deleted)

    def test_decode_at_offset(self):
        data = codec.encode(make_record(id=1)) + codec.encode(make_record(id=2, first_name="Anna"))
        second = codec.decode(data, codec.SLOT_SIZE)
        assert second.id == 2
        assert second.first_name == "Anna"


# ---------------------------------------------------------------------------
# Round trip
# ---------------------------------------------------------------------------

class TestRoundTrip:
    def test_record_round_trip(self):
        record = make_record()
        assert codec.decode(codec.encode(record)) == record

    def test_non_ascii_names(self):
        record = make_record(first_name="Zoë", last_name="Łukasz-Ødegård")
        assert codec.decode(codec.encode(record)) == record

    def test_sixty_character_name(self):
        record = make_record(first_name="A" * 60)
        assert codec.decode(codec.encode(record)).first_name == "A" * 60

    def test_trailing_spaces_are_trimmed(self):
        decoded = codec.decode(codec.encode(make_record(first_name="Ann  ")))
        assert decoded.first_name == "Ann"

    def test_leading_spaces_survive(self):
        decoded = codec.decode(codec.encode(make_record(last_name="  Lee")))
        assert decoded.last_name == "  Lee"

    def test_salary_scale_is_preserved(self):
        decoded = codec.decode(codec.encode(make_record(salary=Decimal("500.00"))))
        assert str(decoded.salary) == "500.00"

    def test_negative_office(self):
        decoded = codec.decode(codec.encode(make_record(office=-5)))
        assert decoded.office == -5


# ---------------------------------------------------------------------------
# Decimal
# ---------------------------------------------------------------------------

class TestDecimal:
    @pytest.mark.parametrize("text", [
        "0", "1", "-1", "0.01", "-1.5", "123456.789", "7922816251426433759354395033.5",
        "79228162514264337593543950335", "-79228162514264337593543950335", "0.0000000000000000000000000001",
    ])
    def test_round_trip(self, text):
        value = Decimal(text)
        decoded = codec.decode_decimal(codec.encode_decimal(value))
        assert decoded == value
        assert str(decoded) == str(value)

    def test_sign_bit(self):
        lo, _, _, flags = struct.unpack("<4I", codec.encode_decimal(Decimal("-1.5")))
        assert lo == 15
        assert flags == 0x80010000

    def test_positive_exponent_is_expanded(self):
        decoded = codec.decode_decimal(codec.encode_decimal(Decimal("1E+3")))
        assert decoded == 1000
        assert str(decoded) == "1000"

    def test_excess_trailing_zeros_are_dropped(self):
        value = Decimal("1." + "0" * 30)
        decoded = codec.decode_decimal(codec.encode_decimal(value))
        assert decoded == 1
        assert -decoded.as_tuple().exponent == 28

    def test_too_large_raises(self):
        with pytest.raises(InvalidArgument):
            codec.encode_decimal(Decimal(2) ** 96)

    def test_too_precise_raises(self):
        with pytest.raises(InvalidArgument):
            codec.encode_decimal(Decimal("1E-29"))

    @pytest.mark.parametrize("text", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_raises(self, text):
        with pytest.raises(InvalidArgument):
            codec.encode_decimal(Decimal(text))

    @pytest.mark.parametrize("length", [0, 8, 15, 17, 32])
    def test_wrong_length_raises(self, length):
        with pytest.raises(FormatError):
            codec.decode_decimal(b"\x00" * length)

    def test_format_error_is_invalid_argument(self):
        with pytest.raises(InvalidArgument):
            codec.decode_decimal(b"\x00" * 15)

    def test_reserved_flag_bits_raise(self):
        with pytest.raises(FormatError):
            codec.decode_decimal(struct.pack("<4I", 1, 0, 0, 1))

    def test_scale_over_28_raises(self):
        with pytest.raises(FormatError):
            codec.decode_decimal(struct.pack("<4I", 1, 0, 0, 29 << 16))


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class TestErrors:
    def test_name_too_long(self):
        with pytest.raises(InvalidArgument):
            codec.encode(make_record(first_name="A" * 61))

    def test_office_out_of_int16(self):
        with pytest.raises(InvalidArgument):
            codec.encode(make_record(office=40000))

    def test_id_out_of_int32(self):
        with pytest.raises(InvalidArgument):
            codec.encode(make_record(id=2 ** 31))

    def test_gender_must_be_one_char(self):
        with pytest.raises(InvalidArgument):
            codec.encode(make_record(gender="MF"))

    def test_short_buffer(self):
        with pytest.raises(FormatError):
            codec.decode(b"\x00" * (codec.SLOT_SIZE - 1))

    def test_invalid_date_is_corrupt(self):
        data = bytearray(codec.encode(make_record()))
        struct.pack_into("<i", data, 250, 13)       # month
        with pytest.raises(CorruptFile):
            codec.decode(bytes(data))

    def test_invalid_decimal_is_format_error(self):
        data = bytearray(codec.encode(make_record()))
        struct.pack_into("<I", data, 274, 0x7F)     # flags word
        with pytest.raises(FormatError):
            codec.decode(bytes(data))
