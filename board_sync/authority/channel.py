"""
Authority channel — outbound intents to the server.

Behavioral Contract:
- Fire-and-forget: send() never blocks waiting for acknowledgement.
- Correctness relies on the Suppression Ledger's bounded staleness,
  not on acknowledgements.
"""

import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Protocol

from board_sync.models.intents import AuthorityIntent

logger = logging.getLogger(__name__)

SENT_HISTORY = 100


class AuthorityChannel(Protocol):
    """Protocol for the transport — opaque to the core."""

    def send(self, intent: AuthorityIntent) -> None: ...


class IntentOutbox:
    """
    Records the most recent intents sent, optionally forwarding each one to a
    transport callable (e.g., a websocket writer). Transport failures are
    logged, never raised: a lost intent self-heals like a rejected one.
    """

    def __init__(
        self,
        transport: Optional[Callable[[dict], None]] = None,
        history: int = SENT_HISTORY,
    ):
        self._transport = transport
        self._sent: Deque[AuthorityIntent] = deque(maxlen=history)

    @property
    def sent(self) -> List[AuthorityIntent]:
        """The last `history` intents sent, oldest first."""
        return list(self._sent)

    def send(self, intent: AuthorityIntent) -> None:
        self._sent.append(intent)
        logger.info("Sending %s intent: %s", intent.type, intent.model_dump(mode="json"))
        if self._transport is None:
            return
        try:
            self._transport(intent.model_dump(mode="json"))
        except Exception as e:
            logger.warning("Transport failed for %s intent: %s", intent.type, e)
