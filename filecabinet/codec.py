"""
filecabinet/codec.py
Binary record codec: Record <-> 278-byte slot.

Slot layout (little-endian, offsets from slot start):
  [0]       status     uint8, 0 = alive, 1 = deleted
  [1]       reserved   uint8, always 0
  [2:6]     id         int32
  [6:126]   firstName  UTF-16LE, 60 code units, space padded
  [126:246] lastName   UTF-16LE, 60 code units, space padded
  [246:258] year, month, day  3 x int32
  [258:260] gender     one UTF-16LE code unit
  [260:262] office     int16
  [262:278] salary     decimal bits: lo, mid, hi, flags (4 x int32)

The decimal flags word keeps the scale (0..28) in bits 16-23 and the sign in
bit 31; every other bit must be zero.
"""

from __future__ import annotations
import datetime
import struct
from decimal import Decimal

from filecabinet.errors import CorruptFile, FormatError, InvalidArgument
from filecabinet.record import Record

NAME_LENGTH = 60                    # UTF-16 code units
NAME_BYTES = NAME_LENGTH * 2        # 120
DECIMAL_BYTES = 16

STATUS_ALIVE = 0
STATUS_DELETED = 1

# Struct formats (little-endian, no alignment padding)
_FIELDS = struct.Struct(f"<{NAME_BYTES}s{NAME_BYTES}s3i2sh{DECIMAL_BYTES}s")
_HEADER = struct.Struct("<BBi")     # status, reserved, id
_DECIMAL = struct.Struct("<4I")

HEADER_SIZE = _HEADER.size          # 6
FIELDS_OFFSET = HEADER_SIZE         # field region starts right after the id
SLOT_SIZE = HEADER_SIZE + _FIELDS.size   # 278

_MAX_SCALE = 28
_MAX_MANTISSA = (1 << 96) - 1
_SIGN_BIT = 0x80000000
_SCALE_MASK = 0x00FF0000
_SPACE = " ".encode("utf-16-le")


# ------------------------------------------------------------------
# Decimal
# ------------------------------------------------------------------

def encode_decimal(value: Decimal) -> bytes:
    """Pack value into 16 bytes using the 96-bit mantissa + flags layout."""
    value = Decimal(value)
    if not value.is_finite():
        raise InvalidArgument(f"Cannot store non-finite decimal {value}")
    sign, digits, exponent = value.as_tuple()
    mantissa = int("".join(map(str, digits)) or "0")
    if exponent > 0:
        mantissa *= 10 ** exponent
        scale = 0
    else:
        scale = -exponent
    # Drop trailing zeros only when the value would not fit otherwise.
    while (scale > _MAX_SCALE or mantissa > _MAX_MANTISSA) and scale > 0 and mantissa % 10 == 0:
        mantissa //= 10
        scale -= 1
    if scale > _MAX_SCALE or mantissa > _MAX_MANTISSA:
        raise InvalidArgument(f"Decimal {value} is out of the storable range")
    flags = (scale << 16) | (_SIGN_BIT if sign else 0)
    return _DECIMAL.pack(
        mantissa & 0xFFFFFFFF,
        (mantissa >> 32) & 0xFFFFFFFF,
        (mantissa >> 64) & 0xFFFFFFFF,
        flags,
    )


def decode_decimal(data: bytes) -> Decimal:
    """Inverse of encode_decimal. Requires exactly 16 bytes."""
    if len(data) != DECIMAL_BYTES:
        raise FormatError(
            f"A decimal must be created from exactly {DECIMAL_BYTES} bytes, got {len(data)}"
        )
    lo, mid, hi, flags = _DECIMAL.unpack(data)
    if flags & ~(_SIGN_BIT | _SCALE_MASK):
        raise FormatError(f"Invalid decimal flags word 0x{flags:08x}")
    scale = (flags & _SCALE_MASK) >> 16
    if scale > _MAX_SCALE:
        raise FormatError(f"Decimal scale {scale} exceeds {_MAX_SCALE}")
    mantissa = (hi << 64) | (mid << 32) | lo
    digits = tuple(int(d) for d in str(mantissa))
    return Decimal((1 if flags & _SIGN_BIT else 0, digits, -scale))


# ------------------------------------------------------------------
# Fixed-width text
# ------------------------------------------------------------------

def _encode_name(text: str, what: str) -> bytes:
    raw = text.encode("utf-16-le")
    if len(raw) > NAME_BYTES:
        raise InvalidArgument(f"{what} is longer than {NAME_LENGTH} characters")
    return raw + _SPACE * ((NAME_BYTES - len(raw)) // 2)


def _decode_name(raw: bytes) -> str:
    try:
        return raw.decode("utf-16-le").rstrip(" ")
    except UnicodeDecodeError as e:
        raise CorruptFile(f"Name field is not valid UTF-16: {e}") from e


def _encode_gender(gender: str) -> bytes:
    raw = gender.encode("utf-16-le")
    if len(raw) != 2:
        raise InvalidArgument(f"Gender must be a single character, got {gender!r}")
    return raw


# ------------------------------------------------------------------
# Record
# ------------------------------------------------------------------

def encode_fields(record: Record) -> bytes:
    """Serialise the field region (everything after the id): 272 bytes."""
    dob = record.date_of_birth
    try:
        return _FIELDS.pack(
            _encode_name(record.first_name, "First name"),
            _encode_name(record.last_name, "Last name"),
            dob.year,
            dob.month,
            dob.day,
            _encode_gender(record.gender),
            record.office,
            encode_decimal(record.salary),
        )
    except struct.error as e:
        raise InvalidArgument(f"Record #{record.id} cannot be encoded: {e}") from e


def encode(record: Record) -> bytes:
    """Serialise record into a full alive slot (SLOT_SIZE bytes)."""
    try:
        header = _HEADER.pack(STATUS_ALIVE, 0, record.id)
    except struct.error as e:
        raise InvalidArgument(f"Record id {record.id} does not fit in 32 bits") from e
    return header + encode_fields(record)


def decode(data: bytes, offset: int = 0) -> Record:
    """Deserialise the slot starting at data[offset]. Status is not checked."""
    if len(data) - offset < SLOT_SIZE:
        raise FormatError(f"Slot needs {SLOT_SIZE} bytes, got {len(data) - offset}")
    _, _, record_id = _HEADER.unpack_from(data, offset)
    first, last, year, month, day, gender, office, salary = _FIELDS.unpack_from(
        data, offset + FIELDS_OFFSET
    )
    try:
        dob = datetime.date(year, month, day)
    except ValueError as e:
        raise CorruptFile(f"Record #{record_id} has an invalid date {year}-{month}-{day}") from e
    try:
        gender_char = gender.decode("utf-16-le")
    except UnicodeDecodeError as e:
        raise CorruptFile(f"Record #{record_id} has an invalid gender field") from e
    return Record(
        id=record_id,
        first_name=_decode_name(first),
        last_name=_decode_name(last),
        date_of_birth=dob,
        gender=gender_char,
        office=office,
        salary=decode_decimal(salary),
    )


def is_deleted(data: bytes, offset: int = 0) -> bool:
    return data[offset] == STATUS_DELETED


def read_id(data: bytes, offset: int = 0) -> int:
    return _HEADER.unpack_from(data, offset)[2]
