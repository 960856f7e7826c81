"""
Token blacklist: addresses that discovery must never surface.

In-memory only; seeded from config (``discovery.blacklist``) and the
BLACKLIST environment variable.
"""

import logging
from typing import Iterable, List

logger = logging.getLogger(__name__)


class Blacklist:
    def __init__(self, addresses: Iterable[str] = ()):
        self._addresses = {a.strip() for a in addresses if a and a.strip()}

    def is_blacklisted(self, address: str) -> bool:
        return bool(address) and address in self._addresses

    def add(self, address: str) -> bool:
        """Returns False if the address was already listed."""
        address = address.strip()
        if not address or address in self._addresses:
            return False
        self._addresses.add(address)
        logger.info(f"⛔ Blacklisted {address}")
        return True

    def remove(self, address: str) -> bool:
        if address not in self._addresses:
            return False
        self._addresses.discard(address)
        logger.info(f"Removed {address} from blacklist")
        return True

    def list(self) -> List[str]:
        return sorted(self._addresses)

    def __contains__(self, address: str) -> bool:
        return self.is_blacklisted(address)

    def __len__(self) -> int:
        return len(self._addresses)
