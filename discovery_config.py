"""
DISCOVERY FUNNEL CONFIGURATION

Endpoints, rate limits, and the thresholds and caps of every funnel stage.
Override from YAML under the top-level ``discovery`` key.
"""
import copy

DISCOVERY_CONFIG = {
    'network': 'solana',

    # ================================================================
    # SOURCES
    # ================================================================
    'dexscreener': {
        'base_url': 'https://api.dexscreener.com',
        'min_request_interval': 1.0,  # 60 req/min
        'max_retries': 5,
        'timeout': 10,
    },
    'geckoterminal': {
        'base_url': 'https://api.geckoterminal.com/api/v2',
        'min_request_interval': 3.0,
        'max_retries': 5,
        'timeout': 15,
        'trending_durations': ['1h', '6h'],
        'trending_pages': 1,
        'ohlcv_timeframe': 'hour',
        'ohlcv_aggregate': 1,
        'ohlcv_limit': 100,
    },
    'moralis': {
        'base_url': 'https://solana-gateway.moralis.io',
        'min_request_interval': 0.5,
        'max_retries': 3,
        'timeout': 15,
        'history_days': 1,
        'sniper_blocks_after_creation': 1000,
    },
    'ohlcv_cache': {
        'ttl_seconds': 60,
        'max_size': 500,
    },

    # ================================================================
    # STAGE 1 FILTERS
    # ================================================================
    'boosted_filter': {
        'min_price_change_24h': -20,
        'min_liquidity': 20000,
        'min_volume_24h': 20000,
        'max_count': 50,
    },
    'trending_filter': {
        'min_liquidity': 5000,
        'min_volume_6h': 1000,
    },
    'max_unique_candidates': 30,

    # ================================================================
    # STAGE 4 UPTREND
    # ================================================================
    'uptrend': {
        'max_score': 60,
        'min_normalized_score': 50,
        'min_volume_1h': 1000,
        'min_volume_24h': 10000,
        'min_buy_sell_ratio_5m': 1.0,
        'min_buy_sell_ratio_1h': 1.2,
        'max_count': 15,
    },

    # ================================================================
    # STAGE 5 / 6 SCORING AND VALIDATION
    # ================================================================
    'min_normalized_score': 15,
    'max_scored_candidates': 7,
    'onchain_validation_enabled': True,
    'max_snipers': 50,
    'fallback_count': 3,
    'max_results': 5,
    'max_concurrent_fetches': 4,

    'scoring': {
        'score_ceiling': 200,
        'uptrend_weight': 0.2,
    },

    'indicators': {},  # overrides for IndicatorEngine defaults

    'blacklist': [],
}


def get_discovery_config():
    """Get a private copy of the discovery configuration."""
    return copy.deepcopy(DISCOVERY_CONFIG)
