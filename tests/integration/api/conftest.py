"""
Pytest configuration and fixtures for API integration tests.

This module provides:
- A fresh application per test so stored results and alert history do not leak
- CSV payload builders
"""

import pytest
from fastapi.testclient import TestClient

from ringwatch.api.main import create_app

CSV_HEADER = "transaction_id,sender_id,receiver_id,amount,timestamp\n"


def build_csv(rows) -> bytes:
    lines = [
        f"T{idx},{sender},{receiver},{amount},{timestamp}\n"
        for idx, (sender, receiver, amount, timestamp) in enumerate(rows, start=1)
    ]
    return (CSV_HEADER + "".join(lines)).encode("utf-8")


@pytest.fixture
def client():
    with TestClient(create_app()) as test_client:
        yield test_client


@pytest.fixture
def triangle_csv():
    return build_csv([
        ("A", "B", 100, "2024-01-10 12:00:00"),
        ("B", "C", 100, "2024-01-10 13:00:00"),
        ("C", "A", 100, "2024-01-10 14:00:00"),
    ])


@pytest.fixture
def upload(client):
    def _upload(content: bytes, filename: str = "transactions.csv"):
        return client.post("/api/upload", files={"file": (filename, content, "text/csv")})

    return _upload
