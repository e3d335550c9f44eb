"""
Pytest configuration for ringwatch unit tests.

Fixtures build synthetic transaction batches in memory; no external
services are involved.
"""

from datetime import datetime, timedelta
import pytest

from ringwatch.analyzers.detection_config_loader import load_detection_config
from ringwatch.analyzers.graph_builder import build_account_graph
from ringwatch.models import Transaction

# Wednesday noon: neither night nor weekend
BASE_TIME = datetime(2024, 1, 10, 12, 0, 0)


@pytest.fixture(scope="session")
def detection_config():
    return load_detection_config()


@pytest.fixture
def base_time():
    return BASE_TIME


@pytest.fixture
def make_transactions():
    """
    Factory turning (sender, receiver, amount, minutes_after_base) tuples into
    Transactions with sequential ids.
    """

    def _make(rows, start: datetime = BASE_TIME):
        return [
            Transaction(
                transaction_id=f"TX_{idx:05d}",
                sender_id=sender,
                receiver_id=receiver,
                amount=float(amount),
                timestamp=start + timedelta(minutes=minutes),
            )
            for idx, (sender, receiver, amount, minutes) in enumerate(rows, start=1)
        ]

    return _make


@pytest.fixture
def make_result(make_transactions):
    """Factory building a fresh DetectionResult from transaction tuples."""

    def _make(rows, start: datetime = BASE_TIME):
        return build_account_graph(make_transactions(rows, start))

    return _make
