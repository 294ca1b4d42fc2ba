"""
filecabinet/snapshot.py
Snapshot: an ordered, immutable copy of records for export and restore.

CSV layout (header row first, ISO dates):
  Id,First Name,Last Name,Date of Birth,Gender,Office,Salary
  1,John,Smith,1990-05-01,M,12,500.00

XML layout:
  <records>
    <record id="1">
      <name first="John" last="Smith" />
      <dateOfBirth>1990-05-01</dateOfBirth>
      <gender>M</gender>
      <office>12</office>
      <salary>500.00</salary>
    </record>
  </records>

Readers never abort on a bad row: they return (snapshot, errors) where
errors describe every row that was skipped.
"""

from __future__ import annotations
import csv
import xml.etree.ElementTree as ET
from typing import Iterable, Iterator, TextIO

from filecabinet.errors import FileCabinetError, FormatError
from filecabinet.record import Field, Record, parse_value

CSV_HEADER = ["Id", "First Name", "Last Name", "Date of Birth", "Gender", "Office", "Salary"]
_CSV_FIELDS = (
    Field.ID, Field.FIRST_NAME, Field.LAST_NAME, Field.DATE_OF_BIRTH,
    Field.GENDER, Field.OFFICE, Field.SALARY,
)


def _record_from_texts(texts: dict[Field, str]) -> Record:
    values = {field.attribute: parse_value(field, texts[field]) for field in _CSV_FIELDS}
    return Record(**values)


class Snapshot:
    def __init__(self, records: Iterable[Record]) -> None:
        self._records = tuple(records)

    @property
    def records(self) -> tuple[Record, ...]:
        return self._records

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    # ── CSV ───────────────────────────────────────────────────────────

    def save_csv(self, stream: TextIO) -> None:
        writer = csv.writer(stream, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for r in self._records:
            writer.writerow([
                r.id, r.first_name, r.last_name, r.date_of_birth.isoformat(),
                r.gender, r.office, str(r.salary),
            ])

    @classmethod
    def load_csv(cls, stream: TextIO) -> tuple["Snapshot", list[str]]:
        records: list[Record] = []
        errors: list[str] = []
        reader = csv.reader(stream)
        header = next(reader, None)
        if header is None:
            return cls(records), errors
        for row in reader:
            if not any(cell.strip() for cell in row):
                continue
            if len(row) != len(_CSV_FIELDS):
                errors.append(
                    f"Line {reader.line_num} is not valid: expected {len(_CSV_FIELDS)} values, got {len(row)}."
                )
                continue
            try:
                records.append(_record_from_texts(dict(zip(_CSV_FIELDS, row))))
            except FileCabinetError as e:
                errors.append(f"Line {reader.line_num} is not valid: {e}")
        return cls(records), errors

    # ── XML ───────────────────────────────────────────────────────────

    def save_xml(self, stream: TextIO) -> None:
        root = ET.Element("records")
        for r in self._records:
            node = ET.SubElement(root, "record", id=str(r.id))
            ET.SubElement(node, "name", first=r.first_name, last=r.last_name)
            ET.SubElement(node, "dateOfBirth").text = r.date_of_birth.isoformat()
            ET.SubElement(node, "gender").text = r.gender
            ET.SubElement(node, "office").text = str(r.office)
            ET.SubElement(node, "salary").text = str(r.salary)
        tree = ET.ElementTree(root)
        ET.indent(tree)
        tree.write(stream, encoding="unicode", xml_declaration=True)
        stream.write("\n")

    @classmethod
    def load_xml(cls, stream: TextIO) -> tuple["Snapshot", list[str]]:
        try:
            root = ET.parse(stream).getroot()
        except ET.ParseError as e:
            raise FormatError(f"Not a valid XML document: {e}") from e
        if root.tag != "records":
            raise FormatError(f"Expected <records> root element, got <{root.tag}>")

        records: list[Record] = []
        errors: list[str] = []
        for number, node in enumerate(root.iter("record"), start=1):
            name = node.find("name")
            texts = {
                Field.ID: node.get("id"),
                Field.FIRST_NAME: name.get("first") if name is not None else None,
                Field.LAST_NAME: name.get("last") if name is not None else None,
                Field.DATE_OF_BIRTH: node.findtext("dateOfBirth"),
                Field.GENDER: node.findtext("gender"),
                Field.OFFICE: node.findtext("office"),
                Field.SALARY: node.findtext("salary"),
            }
            missing = [field.value for field, text in texts.items() if text is None]
            if missing:
                errors.append(f"Record {number} is not valid: missing {', '.join(missing)}.")
                continue
            try:
                records.append(_record_from_texts(texts))
            except FileCabinetError as e:
                errors.append(f"Record {number} is not valid: {e}")
        return cls(records), errors
