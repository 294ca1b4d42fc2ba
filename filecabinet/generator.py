"""
filecabinet/generator.py
Random record generator for filling CSV / XML import files.

Usage:
    python -m filecabinet.generator -t csv -o records.csv -a 5000 -i 10000
    python -m filecabinet.generator --output-type xml --output r.xml --seed 42

Generated records satisfy the built-in "default" validation rules.
"""

from __future__ import annotations
import argparse
import datetime
import random
import sys
from decimal import Decimal
from typing import Iterator

from filecabinet.record import Record
from filecabinet.snapshot import Snapshot

FIRST_NAMES = (
    "Anna", "Boris", "Clara", "Daniel", "Elena", "Felix", "Greta", "Hugo",
    "Irina", "John", "Karl", "Lena", "Marta", "Nikolai", "Olga", "Pavel",
)
LAST_NAMES = (
    "Smith", "Ivanova", "Kowalski", "Miller", "Petrov", "Novak", "Fischer",
    "O'Brien", "Larsen", "Dubois", "Rossi", "Horvat", "Jansen", "Kim",
)
GENDERS = "MFOU"
DATE_FROM = datetime.date(1950, 1, 1)
DATE_TO = datetime.date(2010, 1, 1)


def generate_records(count: int, start_id: int = 1, rng: random.Random | None = None) -> Iterator[Record]:
    """Yield count records with consecutive ids starting at start_id."""
    if count < 0:
        raise ValueError("count must be >= 0")
    if start_id < 1:
        raise ValueError("start_id must be >= 1")
    rng = rng or random.Random()
    span = (DATE_TO - DATE_FROM).days
    for record_id in range(start_id, start_id + count):
        yield Record(
            id=record_id,
            first_name=rng.choice(FIRST_NAMES),
            last_name=rng.choice(LAST_NAMES),
            date_of_birth=DATE_FROM + datetime.timedelta(days=rng.randint(0, span)),
            gender=rng.choice(GENDERS),
            office=rng.randint(0, 500),
            salary=Decimal(rng.randint(0, 1_000_000)).scaleb(-2),
        )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m filecabinet.generator",
                                     description="Generate random file cabinet records")
    parser.add_argument("-t", "--output-type", choices=("csv", "xml"), default="csv")
    parser.add_argument("-o", "--output", metavar="PATH", default="records.csv")
    parser.add_argument("-a", "--records-amount", metavar="N", type=int, default=5000)
    parser.add_argument("-i", "--start-id", metavar="ID", type=int, default=10000)
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args(argv)

    if args.records_amount < 0 or args.start_id < 1:
        parser.error("--records-amount must be >= 0 and --start-id >= 1")

    snapshot = Snapshot(generate_records(args.records_amount, args.start_id, random.Random(args.seed)))
    with open(args.output, "w", encoding="utf-8", newline="") as f:
        if args.output_type == "csv":
            snapshot.save_csv(f)
        else:
            snapshot.save_xml(f)
    print(f"{len(snapshot)} records were written to {args.output}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
