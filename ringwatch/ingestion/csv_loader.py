import io
import math
from datetime import datetime, timezone
from typing import List
import pandas as pd
from loguru import logger

from ringwatch.models import Transaction


REQUIRED_COLUMNS = ['transaction_id', 'sender_id', 'receiver_id', 'amount', 'timestamp']


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO-8601 timestamp; a space may separate date and time.
    Offset-aware values are normalized to naive UTC.
    """
    parsed = datetime.fromisoformat(value.strip().replace(" ", "T"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_amount(value: str) -> float:
    amount = float(value)
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        raise ValueError(f"invalid amount {value!r}")
    return amount


def parse_transactions_csv(content: bytes) -> List[Transaction]:
    """
    Parse an uploaded transactions CSV into Transaction records.

    Malformed rows, including rows with more fields than the header, are
    skipped with a warning.

    Args:
        content: Raw CSV bytes with a header row

    Returns:
        Transactions in file order

    Raises:
        ValueError: If the file is empty or a required column is missing
    """
    bad_lines = []

    def skip_bad_line(fields: List[str]):
        bad_lines.append(fields)
        logger.warning(f"Skipping malformed row with {len(fields)} fields")
        return None

    try:
        df = pd.read_csv(
            io.BytesIO(content),
            dtype=str,
            keep_default_na=False,
            engine="python",
            on_bad_lines=skip_bad_line,
        )
    except pd.errors.EmptyDataError:
        raise ValueError("CSV file is empty")

    df.columns = [str(column).strip() for column in df.columns]
    missing_columns = [column for column in REQUIRED_COLUMNS if column not in df.columns]
    if missing_columns:
        raise ValueError(f"Missing required columns: {', '.join(missing_columns)}")

    # Short rows are padded with NaN
    df = df.fillna("")

    transactions = []
    skipped = len(bad_lines)

    for idx, row in enumerate(df[REQUIRED_COLUMNS].itertuples(index=False), start=1):
        try:
            transaction_id = row.transaction_id.strip()
            sender_id = row.sender_id.strip()
            receiver_id = row.receiver_id.strip()
            if not transaction_id or not sender_id or not receiver_id:
                raise ValueError("empty identifier")

            transactions.append(Transaction(
                transaction_id=transaction_id,
                sender_id=sender_id,
                receiver_id=receiver_id,
                amount=parse_amount(row.amount),
                timestamp=parse_timestamp(row.timestamp),
            ))
        except ValueError as e:
            skipped += 1
            logger.warning(f"Skipping malformed row {idx}: {e}")

    logger.info(f"Parsed {len(transactions)} transactions ({skipped} rows skipped)")
    return transactions
