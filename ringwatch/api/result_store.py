import threading
from typing import Optional

from ringwatch.models import DetectionResult


class LatestResultStore:
    """Holds the most recent completed detection result for read endpoints."""

    def __init__(self):
        self._result: Optional[DetectionResult] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[DetectionResult]:
        with self._lock:
            return self._result

    def set(self, result: DetectionResult) -> None:
        with self._lock:
            self._result = result

    @property
    def has_result(self) -> bool:
        return self.get() is not None
