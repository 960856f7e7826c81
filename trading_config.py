"""
AUTO-TRADING CONFIGURATION

Defaults for admission, position sizing, exits and swap execution.
Any key can be overridden from the YAML file passed with --config
(top-level key: ``trading``).
"""
import copy

TRADING_CONFIG = {
    'enabled': True,  # Master switch (False = monitoring only)

    # SCHEDULING
    'analysis_interval_minutes': 3,
    'position_check_interval_seconds': 5,

    # POSITION SIZING
    'buy_amount_sol': 0.01,
    'minimum_sol_balance': 0.001,  # Kept back for fees
    'slippage_bps': 500,
    'sol_mint': 'So11111111111111111111111111111111111111112',
    'sol_price_usd_fallback': 150.0,  # Only used by the last-resort fill estimate

    # ================================================================
    # BUY ADMISSION
    # ================================================================
    'buy_criteria': {
        'mode': 'all',  # 'all' = every check must pass, 'points' = weighted partial credit
        'min_score': 60,
        'min_price_change_5m': 2,
        'min_price_change_1h': 0,
        'max_rsi': 70,
        'min_buy_sell_ratio_5m': 1.2,
        'min_holder_change_24h': 0,

        # Points mode
        'score_weights': {
            'token_score': 20,
            'price_momentum': 15,
            'macd': 15,
            'rsi': 10,
            'price_breakout': 15,
            'buy_sell_ratio': 15,
            'holder_growth': 10,
        },
        'bonus': {
            'strong_momentum_5m': 5,  # 5m change above this earns bonus_points
            'high_buy_sell_ratio': 2.0,
            'bonus_points': 5,
        },
        'strong_histogram': 0.00001,
        'strong_holder_growth': 5,
        'min_total_score': 65,
    },

    # ================================================================
    # EXITS
    # ================================================================
    # (profit threshold %, fraction % of the ORIGINAL size)
    'profit_tiers': [
        (15, 25),
        (30, 25),
        (50, 25),
    ],
    'profit_target_pct': 100,
    'stop_loss_pct': 7,
    'rsi_overbought': 80,
    'min_holder_change_exit': -5,

    'trailing_stop': {
        # (min profit %, ATR multiplier), tighter as profit grows
        'atr_multiplier_table': [
            (50, 1.5),
            (30, 2.0),
            (15, 2.5),
        ],
        'default_atr_multiplier': 3.0,
        'trail_pct': 3.0,
        'use_max': True,  # active stop = max(ATR stop, percent stop)
    },

    # ================================================================
    # EXECUTION
    # ================================================================
    'retry': {
        'attempts': 2,
        'amount_factor': 0.95,  # each retry trades 95% of the previous amount
        'slippage_bps_steps': [500, 1000],
    },
    'confirmation_timeout_seconds': 60,
    'extended_confirmation_wait_seconds': 30,
    'balance_settle_seconds': 2,
    'suspicious_amount_limit': 1e9,
    'rollback_tier_on_failure': True,

    # Paper trading
    'paper': {
        'starting_sol': 1.0,
        'simulated_slippage_pct': 0.5,
        'fail_rate': 0.0,
    },
}


def get_trading_config():
    """Get a private copy of the trading configuration."""
    return copy.deepcopy(TRADING_CONFIG)
