"""
Trading Bot orchestrator.

Two schedules share one event loop:
- discovery: every ``analysis_interval_minutes``, skipped while a position is open
- monitoring: every ``position_check_interval_seconds``, only while a position exists

Stopping cancels both schedules and leaves any open position untouched.
"""

import asyncio
import logging
from typing import Dict, List, Optional

from colorama import Fore, Style

from core.models import CandidateToken, TickAction, TickResult
from discovery.funnel import DiscoveryFunnel
from discovery.ohlcv_cache import OHLCVCache
from indicators.engine import IndicatorEngine
from trading.market_snapshot import MarketSnapshotProvider
from trading.paper_swap import PaperSwapService
from trading.swap_service import SwapService
from trading.trade_executor import TradeExecutor
from trading.trading_state_machine import TradingStateMachine

logger = logging.getLogger(__name__)

MODES = ('trading', 'monitoring')


def print_candidates(candidates: List[CandidateToken]):
    """Ranked candidate table, coloured by score."""
    print(f"\n{Fore.CYAN}{'=' * 60}")
    print(f"{Fore.CYAN}🔍 DISCOVERY: {len(candidates)} candidate(s)")
    print(f"{Fore.CYAN}{'=' * 60}")
    for rank, token in enumerate(candidates, start=1):
        score = token.score.normalized
        score_color = Fore.GREEN if score >= 60 else (Fore.YELLOW if score >= 40 else Fore.RED)
        boosted = f" {Fore.MAGENTA}[BOOSTED]" if token.boosted else ""
        holders = "n/a" if token.holder_change_pct is None else f"{token.holder_change_pct:+.2f}%"
        print(f"{Fore.YELLOW}#{rank} {Fore.WHITE}{token.symbol} ({token.address}){boosted}")
        print(f"   {Fore.YELLOW}Score: {score_color}{score:.1f}/100{Style.RESET_ALL}  "
              f"{Fore.YELLOW}Price: {Fore.WHITE}${token.price_usd:.8f}  "
              f"{Fore.YELLOW}Liq: {Fore.WHITE}${token.liquidity:,.0f}")
        print(f"   {Fore.YELLOW}5m: {Fore.WHITE}{token.change('m5'):+.2f}%  "
              f"{Fore.YELLOW}1h: {Fore.WHITE}{token.change('h1'):+.2f}%  "
              f"{Fore.YELLOW}Holders: {Fore.WHITE}{holders}  "
              f"{Fore.YELLOW}Snipers: {Fore.WHITE}{token.sniper_count}")
    print(f"{Fore.CYAN}{'=' * 60}\n")


def print_tick(result: TickResult):
    position = result.position
    if position is None:
        return
    if result.action == TickAction.NONE:
        color = Fore.GREEN if result.profit_pct >= 0 else Fore.RED
        print(f"{Fore.CYAN}📊 {position.symbol}: ${result.price:.8f} "
              f"{color}{result.profit_pct:+.2f}%{Style.RESET_ALL} "
              f"(peak ${position.highest_price:.8f}, {position.remaining_fraction_pct:.0f}% left)")
    else:
        print(f"{Fore.MAGENTA}💰 {result.action.value} {position.symbol}: {result.reason} "
              f"({result.sold_amount:.4f} sold, {result.signature})")


class TradingBot:
    def __init__(self, config: Dict, funnel: Optional[DiscoveryFunnel] = None,
                 swap_service: Optional[SwapService] = None,
                 snapshot_provider: Optional[MarketSnapshotProvider] = None):
        self.config = config
        self.bot_config = config.get('bot', {})
        self.trading_config = config.get('trading', {})
        self.discovery_config = config.get('discovery', {})

        self.mode = self.bot_config.get('mode', 'trading')
        if self.mode not in MODES:
            raise ValueError(f"Unknown mode: {self.mode} (expected one of {MODES})")

        self.cache = OHLCVCache(self.discovery_config.get('ohlcv_cache', {}))
        self.funnel = funnel or DiscoveryFunnel.from_config(self.discovery_config, self.cache)
        self._pool_by_mint: Dict[str, str] = {}
        self.swap_service = swap_service or self._build_swap_service()

        gecko = self.discovery_config.get('geckoterminal', {})
        self.snapshot_provider = snapshot_provider or MarketSnapshotProvider(
            self.funnel.pair_source, self.funnel.ohlcv_source, self.funnel.holder_source,
            IndicatorEngine(self.discovery_config.get('indicators', {})),
            timeframe=gecko.get('ohlcv_timeframe', 'hour'),
            aggregate=gecko.get('ohlcv_aggregate', 1))
        self.executor = TradeExecutor(self.swap_service, self.trading_config)
        self.state_machine = TradingStateMachine(self.trading_config, self.executor,
                                                 self.snapshot_provider)

        self.discovery_interval = self.trading_config.get('analysis_interval_minutes', 3) * 60
        self.monitor_interval = self.trading_config.get('position_check_interval_seconds', 5)
        self._discovery_task: Optional[asyncio.Task] = None
        self._monitor_task: Optional[asyncio.Task] = None
        self._running = False
        self.cycles = 0

    def _build_swap_service(self) -> SwapService:
        if self.mode == 'trading' and not self.bot_config.get('paper_trading', True):
            raise ValueError("Live trading needs a SwapService implementation; "
                             "pass one to TradingBot or run with --paper")
        return PaperSwapService(self.trading_config.get('paper', {}),
                                price_lookup=self._lookup_price,
                                sol_price_usd=self.trading_config.get('sol_price_usd_fallback', 150.0))

    async def _lookup_price(self, mint: str) -> Optional[float]:
        pool = self._pool_by_mint.get(mint)
        if not pool or self.funnel.pair_source is None:
            return None
        detail = await self.funnel.pair_source.fetch_pair_detail(pool)
        return (detail or {}).get('price_usd')

    @property
    def has_position(self) -> bool:
        return not self.state_machine.store.is_empty

    # ================================================================
    # DISCOVERY SCHEDULE
    # ================================================================

    async def run_discovery_cycle(self) -> List[CandidateToken]:
        """One discovery pass; in trading mode, try to open a position from it."""
        if self.has_position:
            logger.info(f"⏸️ Position open ({self.state_machine.position.symbol}), skipping discovery")
            return []

        self.cycles += 1
        logger.info(f"🔄 Discovery cycle #{self.cycles}")
        candidates = await self.funnel.run_discovery_cycle()
        for token in candidates:
            if token.pool_address:
                self._pool_by_mint[token.address] = token.pool_address
        print_candidates(candidates)

        if self.mode == 'trading' and candidates:
            position = await self.state_machine.admit_if_eligible(candidates)
            if position is not None:
                self._start_monitoring()
        return candidates

    async def _discovery_loop(self):
        while self._running:
            try:
                await self.run_discovery_cycle()
            except Exception as e:
                logger.error(f"❌ Discovery cycle failed: {e}", exc_info=True)
            self.cache.cleanup_expired()
            await asyncio.sleep(self.discovery_interval)

    # ================================================================
    # MONITORING SCHEDULE
    # ================================================================

    def _start_monitoring(self):
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        logger.info(f"👀 Monitoring every {self.monitor_interval}s")
        self._monitor_task = asyncio.create_task(self._monitor_loop(), name="position-monitor")

    async def _monitor_loop(self):
        while self.has_position:
            result = await self.state_machine.monitor_tick()
            print_tick(result)
            if not self.has_position:
                break
            await asyncio.sleep(self.monitor_interval)
        logger.info("👋 Slot empty, monitoring stopped")
        if isinstance(self.swap_service, PaperSwapService):
            logger.info(f"🧪 Paper stats: {self.swap_service.get_stats()}")

    # ================================================================
    # LIFECYCLE
    # ================================================================

    async def start(self):
        """Run until cancelled."""
        self._running = True
        print(f"{Fore.GREEN}🚀 Memecoin bot started in {self.mode.upper()} mode"
              f"{' (paper)' if isinstance(self.swap_service, PaperSwapService) else ''}")
        print(f"{Fore.CYAN}📡 Discovery every {self.discovery_interval / 60:g} min, "
              f"position checks every {self.monitor_interval}s (Ctrl+C to stop)\n")
        if self.has_position:
            self._start_monitoring()
        self._discovery_task = asyncio.create_task(self._discovery_loop(), name="discovery")
        await self._discovery_task

    async def run_once(self) -> List[CandidateToken]:
        """Single discovery pass without trading."""
        candidates = await self.funnel.run_discovery_cycle()
        print_candidates(candidates)
        return candidates

    async def stop(self):
        """Cancel both schedules. An open position is NOT sold."""
        self._running = False
        for task in (self._discovery_task, self._monitor_task):
            if task is not None and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        self._discovery_task = None
        self._monitor_task = None

        position = self.state_machine.position
        if position is not None:
            logger.warning(f"⚠️ Stopping with an open position: {position.amount_remaining:.4f} "
                           f"{position.symbol} ({position.token_address}), manage it manually")

        await self.funnel.close()
        await self.swap_service.close()

    def get_stats(self) -> Dict:
        stats = {
            'mode': self.mode,
            'cycles': self.cycles,
            'lifecycle': self.state_machine.get_status(),
            'executor': self.executor.get_stats(),
            'discovery': self.funnel.get_stats(),
            'ohlcv_cache': self.cache.get_stats(),
        }
        if isinstance(self.swap_service, PaperSwapService):
            stats['paper'] = self.swap_service.get_stats()
        return stats
