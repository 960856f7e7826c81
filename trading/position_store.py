"""
Position Store
Single-slot holder for the one open position. Owned by the state machine
and passed by reference to the scheduler.
"""

import logging
from typing import Optional

from core.errors import PositionSlotOccupiedError
from core.models import Position

logger = logging.getLogger(__name__)


class PositionStore:
    def __init__(self):
        self._position: Optional[Position] = None

    @property
    def position(self) -> Optional[Position]:
        return self._position

    @property
    def is_empty(self) -> bool:
        return self._position is None

    def open(self, position: Position) -> Position:
        if self._position is not None:
            raise PositionSlotOccupiedError(
                f"slot already holds {self._position.symbol} ({self._position.token_address})")
        self._position = position
        logger.info(f"📥 Tracking position {position.symbol} @ ${position.entry_price:.8f}")
        return position

    def clear(self) -> Optional[Position]:
        """Empty the slot and return what was in it."""
        position, self._position = self._position, None
        if position is not None:
            logger.info(f"📤 Stopped tracking {position.symbol}")
        return position
