"""Out-of-band delivery seam for one-time codes.

The core never formats or sends messages; it hands each issued code to a
``CodeNotifier``. Mail/SMS transports implement ``deliver``.
"""

import logging
import threading
from dataclasses import dataclass
from typing import List, Optional

from .otp import CodePurpose, OneTimeCode

logger = logging.getLogger(__name__)


class CodeNotifier:
    """Receives issued codes for delivery to the account owner."""

    def deliver(self, recipient: str, code: OneTimeCode) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Delivery:
    recipient: str
    code: OneTimeCode


class OutboxNotifier(CodeNotifier):
    """
    Keeps deliveries in memory.

    Used when no transport is configured (local development) and by tests
    to read back the code that was "sent". Only the most recent
    ``max_entries`` deliveries are kept.
    """

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self._deliveries: List[Delivery] = []
        self._lock = threading.Lock()

    def deliver(self, recipient: str, code: OneTimeCode) -> None:
        with self._lock:
            self._deliveries.append(Delivery(recipient=recipient, code=code))
            del self._deliveries[:-self.max_entries]
        logger.info(
            "Queued %s code for %s (expires %s)",
            code.purpose.value, recipient, code.expiry.isoformat(),
        )

    @property
    def deliveries(self) -> List[Delivery]:
        with self._lock:
            return list(self._deliveries)

    def latest(self, recipient: str, purpose: CodePurpose) -> Optional[OneTimeCode]:
        """Most recent code of ``purpose`` delivered to ``recipient``."""
        with self._lock:
            for delivery in reversed(self._deliveries):
                if delivery.recipient == recipient and delivery.code.purpose is purpose:
                    return delivery.code
        return None
