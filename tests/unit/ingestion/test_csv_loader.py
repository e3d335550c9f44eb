"""
Unit tests for CSV transaction ingestion.
"""

from datetime import datetime
import pytest

from ringwatch.ingestion import parse_transactions_csv

HEADER = "transaction_id,sender_id,receiver_id,amount,timestamp\n"


class TestParseTransactionsCsv:

    def test_valid_rows(self):
        content = (
            HEADER
            + "T1,A,B,100.50,2024-01-10 12:00:00\n"
            + "T2,B,C,99,2024-01-10T13:30:00\n"
        ).encode("utf-8")

        transactions = parse_transactions_csv(content)

        assert [tx.transaction_id for tx in transactions] == ["T1", "T2"]
        assert transactions[0].amount == 100.5
        assert transactions[0].timestamp == datetime(2024, 1, 10, 12, 0, 0)
        assert transactions[1].sender_id == "B"
        assert transactions[1].timestamp == datetime(2024, 1, 10, 13, 30, 0)

    def test_identifiers_kept_as_strings(self):
        content = (HEADER + "001,0042,0043,10,2024-01-10 12:00:00\n").encode("utf-8")

        tx = parse_transactions_csv(content)[0]

        assert tx.transaction_id == "001"
        assert tx.sender_id == "0042"

    def test_malformed_rows_skipped(self):
        content = (
            HEADER
            + "T1,A,B,100,2024-01-10 12:00:00\n"
            + "T2,A,B,not-a-number,2024-01-10 12:00:00\n"
            + "T3,A,B,-5,2024-01-10 12:00:00\n"
            + "T4,,B,10,2024-01-10 12:00:00\n"
            + "T5,A,B,10,yesterday\n"
            + "T6,C,D,20,2024-01-11 08:00:00\n"
        ).encode("utf-8")

        transactions = parse_transactions_csv(content)

        assert [tx.transaction_id for tx in transactions] == ["T1", "T6"]

    def test_row_with_extra_fields_skipped(self):
        content = (
            HEADER
            + "T1,A,B,100,2024-01-10 12:00:00\n"
            + "T2,B,C,10,2024-01-10 12:05:00,EXTRA\n"
            + "T3,C,D,50,2024-01-10 12:10:00\n"
        ).encode("utf-8")

        transactions = parse_transactions_csv(content)

        assert [tx.transaction_id for tx in transactions] == ["T1", "T3"]

    def test_row_with_missing_fields_skipped(self):
        content = (
            HEADER
            + "T1,A,B,100,2024-01-10 12:00:00\n"
            + "T2,B,C\n"
            + "T3,C,D,50,2024-01-10 12:10:00\n"
        ).encode("utf-8")

        transactions = parse_transactions_csv(content)

        assert [tx.transaction_id for tx in transactions] == ["T1", "T3"]

    def test_offset_timestamps_normalized_to_utc(self):
        content = (HEADER + "T1,A,B,10,2024-01-10T14:00:00+02:00\n").encode("utf-8")

        tx = parse_transactions_csv(content)[0]

        assert tx.timestamp == datetime(2024, 1, 10, 12, 0, 0)
        assert tx.timestamp.tzinfo is None

    def test_extra_columns_ignored(self):
        content = (
            "timestamp,amount,receiver_id,sender_id,transaction_id,channel\n"
            "2024-01-10 12:00:00,10,B,A,T1,web\n"
        ).encode("utf-8")

        tx = parse_transactions_csv(content)[0]

        assert (tx.sender_id, tx.receiver_id, tx.amount) == ("A", "B", 10.0)

    def test_missing_column_raises(self):
        content = "transaction_id,sender_id,amount,timestamp\nT1,A,10,2024-01-10 12:00:00\n".encode("utf-8")

        with pytest.raises(ValueError, match="receiver_id"):
            parse_transactions_csv(content)

    def test_empty_file_raises(self):
        with pytest.raises(ValueError):
            parse_transactions_csv(b"")

    def test_header_only(self):
        assert parse_transactions_csv(HEADER.encode("utf-8")) == []
