"""CSV boundary for the ledger.

Input rows look like ``type, client, tx, amount``; whitespace around any
field is ignored and the amount column may be missing for dispute,
resolve and chargeback rows. Rows that cannot be parsed are logged and
skipped. Output is one ``client,available,held,total,locked`` row per
account.
"""
import csv
from typing import Iterable, Iterator, TextIO

import structlog
from pydantic import ValidationError

from amount import format_amount
from models import AccountSnapshot, Transaction

logger = structlog.get_logger()

INPUT_FIELDS = ("type", "client", "tx", "amount")
OUTPUT_FIELDS = ("client", "available", "held", "total", "locked")


def read_transactions(stream: TextIO) -> Iterator[Transaction]:
    reader = csv.reader(stream)

    header = next(reader, None)
    if header is None:
        return
    columns = [name.strip().lstrip("\ufeff").lower() for name in header]
    missing = [name for name in INPUT_FIELDS[:3] if name not in columns]
    if missing:
        raise ValueError(f"CSV header is missing columns: {', '.join(missing)}")

    for row in reader:
        if not any(field.strip() for field in row):
            continue

        record = {
            name: value.strip()
            for name, value in zip(columns, row)
            if name in INPUT_FIELDS
        }
        try:
            yield Transaction.model_validate(record)
        except ValidationError as e:
            logger.warning(
                "Skipping malformed row",
                line=reader.line_num,
                errors=e.error_count(),
                detail=str(e.errors(include_url=False)[0]["msg"])
            )


def write_accounts(accounts: Iterable[AccountSnapshot], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDS)
    for account in accounts:
        writer.writerow([
            account.client,
            format_amount(account.available),
            format_amount(account.held),
            format_amount(account.total),
            "true" if account.locked else "false",
        ])
