"""
Observability hooks for poll cycles.
"""

import json
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)


def log_event(event_type: str, data: Dict[str, Any]) -> None:
    """Default event callback: write the event to the log."""
    logger.info(f"{event_type} {json.dumps(data, sort_keys=True, default=str)}")


def log_error(context: str, error: Exception) -> None:
    """Default error sink: log the failure without raising."""
    logger.error(f"{context}: {error}")


class EventTypes:
    SCHEDULER_START = "SCHEDULER_START"
    SCHEDULER_STOP = "SCHEDULER_STOP"
    POLL_START = "POLL_START"
    POLL_OK = "POLL_OK"
    POLL_FAILED = "POLL_FAILED"
    POLL_DISCARDED = "POLL_DISCARDED"
