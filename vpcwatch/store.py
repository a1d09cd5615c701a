"""
Holds the most recently published topology for readers such as the API.
"""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from .models import PollResult


@dataclass(frozen=True)
class PublishedTopology:
    result: PollResult
    published_at: float


class TopologyStore:
    """Thread-safe holder of the last published PollResult."""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest: Optional[PublishedTopology] = None

    def publish(self, result: PollResult) -> None:
        """Replace the current topology. Safe to call repeatedly with the same result."""
        with self._lock:
            self._latest = PublishedTopology(result=result, published_at=time.time())

    def latest(self) -> Optional[PublishedTopology]:
        with self._lock:
            return self._latest

    def clear(self) -> None:
        with self._lock:
            self._latest = None
