"""
Core entity schemas shared by discovery, scoring and trading.

Candles and indicator sets are immutable snapshots. Candidates live for one
discovery cycle. A Position lives in the single-slot store until it is
fully sold.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterator, List, Optional, Sequence
import time

from safe_math import safe_div_percentage

from .errors import TierAlreadyExecutedError

HORIZONS = ("m5", "h1", "h6", "h24")


@dataclass(frozen=True)
class Candle:
    """One OHLCV bucket."""
    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    @classmethod
    def from_row(cls, row: Sequence) -> "Candle":
        """Build from a ``[ts, o, h, l, c, v]`` row as returned by GeckoTerminal."""
        ts, o, h, l, c, v = row[:6]
        return cls(int(ts), float(o), float(h), float(l), float(c), float(v or 0))


def sort_candles(candles: Sequence[Candle]) -> List[Candle]:
    """Ascending by time, one candle per timestamp (last one wins)."""
    by_ts = {c.timestamp: c for c in candles}
    return [by_ts[ts] for ts in sorted(by_ts)]


class IndicatorSet(Mapping):
    """
    Read-only snapshot of indicator name -> value.

    Structured indicators (MACD, bands, Ichimoku...) are NamedTuples, so the
    whole set is immutable. ``tiers`` records which tiers were actually
    computed; keys of tiers that were not computed hold neutral defaults.
    """

    def __init__(self, values: Dict[str, Any], tiers: FrozenSet[str] = frozenset(),
                 candle_count: int = 0):
        self._values = dict(values)
        self.tiers = frozenset(tiers)
        self.candle_count = candle_count

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def has_tier(self, tier: str) -> bool:
        return tier in self.tiers

    def to_dict(self) -> Dict[str, Any]:
        out = {}
        for key, value in self._values.items():
            out[key] = value._asdict() if hasattr(value, "_asdict") else value
        return out

    def __repr__(self) -> str:
        return f"IndicatorSet(tiers={sorted(self.tiers)}, candles={self.candle_count})"


@dataclass(frozen=True)
class TxnCounts:
    buys: int = 0
    sells: int = 0

    @property
    def total(self) -> int:
        return self.buys + self.sells


@dataclass(frozen=True)
class Score:
    raw: float = 0.0
    normalized: float = 0.0


@dataclass
class CandidateToken:
    """A token under evaluation during one discovery cycle."""
    address: str
    pool_address: str = ""
    symbol: str = "UNKNOWN"
    name: str = ""
    price_usd: float = 0.0
    volume: Dict[str, float] = field(default_factory=dict)
    liquidity: float = 0.0
    market_cap: float = 0.0
    price_change: Dict[str, float] = field(default_factory=dict)
    txns: Dict[str, TxnCounts] = field(default_factory=dict)
    holder_change_pct: Optional[float] = None
    sniper_count: int = 0
    sniper_profit_usd: float = 0.0
    age_days: float = 0.0
    boosted: bool = False
    source: str = ""
    ohlcv: List[Candle] = field(default_factory=list)
    indicators: Optional[IndicatorSet] = None
    score: Score = field(default_factory=Score)
    uptrend_score: Optional[Score] = None

    def change(self, horizon: str) -> float:
        return self.price_change.get(horizon, 0.0) or 0.0

    def vol(self, horizon: str) -> float:
        return self.volume.get(horizon, 0.0) or 0.0

    def txn(self, horizon: str) -> TxnCounts:
        return self.txns.get(horizon) or TxnCounts()

    def validate(self) -> "CandidateToken":
        """Reject records that would poison scoring. Returns self."""
        if not self.address:
            raise ValueError("candidate has no token address")
        if self.price_usd is None or self.price_usd < 0:
            raise ValueError(f"{self.address}: invalid price {self.price_usd!r}")
        if self.liquidity < 0:
            raise ValueError(f"{self.address}: negative liquidity")
        for horizon in self.volume:
            if horizon not in HORIZONS:
                raise ValueError(f"{self.address}: unknown volume horizon {horizon}")
        return self

    def to_dict(self) -> Dict:
        return {
            "address": self.address,
            "pool_address": self.pool_address,
            "symbol": self.symbol,
            "price_usd": self.price_usd,
            "liquidity": self.liquidity,
            "market_cap": self.market_cap,
            "volume": dict(self.volume),
            "price_change": dict(self.price_change),
            "txns": {h: {"buys": t.buys, "sells": t.sells} for h, t in self.txns.items()},
            "holder_change_pct": self.holder_change_pct,
            "sniper_count": self.sniper_count,
            "boosted": self.boosted,
            "source": self.source,
            "score": {"raw": self.score.raw, "normalized": self.score.normalized},
            "uptrend_score": self.uptrend_score.normalized if self.uptrend_score else None,
        }


@dataclass
class Tier:
    """Partial take-profit level. ``executed`` is set once per tier."""
    profit_threshold_pct: float
    position_fraction_pct: float
    executed: bool = False

    def mark_executed(self):
        if self.executed:
            raise TierAlreadyExecutedError(
                f"tier {self.profit_threshold_pct}% already executed")
        self.executed = True

    def rollback(self):
        self.executed = False


class PositionStatus(Enum):
    OPEN = "OPEN"
    PARTIALLY_CLOSED = "PARTIALLY_CLOSED"
    CLOSED = "CLOSED"


@dataclass
class Position:
    token_address: str
    pool_address: str
    symbol: str
    entry_price: float
    original_amount: float
    amount_remaining: float
    tiers: List[Tier] = field(default_factory=list)
    entry_time: float = field(default_factory=time.time)
    highest_price: float = 0.0
    status: PositionStatus = PositionStatus.OPEN
    entry_signature: str = ""
    decimals: int = 0

    def __post_init__(self):
        if self.highest_price < self.entry_price:
            self.highest_price = self.entry_price

    def profit_pct(self, price: float) -> float:
        if self.entry_price <= 0:
            return 0.0
        return safe_div_percentage(price, self.entry_price)

    def update_highest(self, price: float) -> float:
        if price > self.highest_price:
            self.highest_price = price
        return self.highest_price

    @property
    def executed_fraction_pct(self) -> float:
        return sum(t.position_fraction_pct for t in self.tiers if t.executed)

    @property
    def remaining_fraction_pct(self) -> float:
        if self.original_amount <= 0:
            return 0.0
        return self.amount_remaining / self.original_amount * 100

    @property
    def hold_seconds(self) -> float:
        return time.time() - self.entry_time

    def to_dict(self) -> Dict:
        return {
            "token_address": self.token_address,
            "pool_address": self.pool_address,
            "symbol": self.symbol,
            "entry_price": self.entry_price,
            "entry_time": self.entry_time,
            "highest_price": self.highest_price,
            "original_amount": self.original_amount,
            "amount_remaining": self.amount_remaining,
            "status": self.status.value,
            "tiers": [
                {"threshold": t.profit_threshold_pct,
                 "fraction": t.position_fraction_pct,
                 "executed": t.executed}
                for t in self.tiers
            ],
        }


class TickAction(Enum):
    NONE = "NONE"
    PARTIAL_SELL = "PARTIAL_SELL"
    FULL_SELL = "FULL_SELL"


@dataclass
class TickResult:
    action: TickAction
    reason: str = ""
    position: Optional[Position] = None
    price: float = 0.0
    profit_pct: float = 0.0
    sold_amount: float = 0.0
    signature: str = ""
