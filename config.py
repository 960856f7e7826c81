import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Optional
from dotenv import load_dotenv

from discovery_config import get_discovery_config
from trading_config import get_trading_config

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# API keys
MORALIS_API_KEY = os.getenv("MORALIS_API_KEY", "")

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "")

# Extra config file (YAML)
BOT_CONFIG_FILE = os.getenv("BOT_CONFIG_FILE", "")

BOT_CONFIG = {
    'mode': os.getenv("BOT_MODE", "trading"),  # trading | monitoring
    'trading_enabled': _env_flag("TRADING_ENABLED", True),
    'paper_trading': _env_flag("PAPER_TRADING", True),
    'log_level': LOG_LEVEL,
    'log_file': LOG_FILE,
    'moralis_api_key': MORALIS_API_KEY,
    'blacklist': [a.strip() for a in os.getenv("BLACKLIST", "").split(",") if a.strip()],
}


def deep_merge(base: Dict, override: Dict) -> Dict:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_yaml_overrides(path: Optional[str]) -> Dict:
    """Load overrides from a YAML file; missing path means no overrides."""
    if not path:
        return {}
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{config_path}: top level must be a mapping")
    return data


def load_config(path: Optional[str] = None) -> Dict:
    """
    Build the full runtime configuration.

    Returns:
        Dict with 'bot', 'trading' and 'discovery' sections
    """
    overrides = load_yaml_overrides(path or BOT_CONFIG_FILE)
    config = {
        'bot': deep_merge(BOT_CONFIG, overrides.get('bot', {})),
        'trading': deep_merge(get_trading_config(), overrides.get('trading', {})),
        'discovery': deep_merge(get_discovery_config(), overrides.get('discovery', {})),
    }
    if not config['bot']['trading_enabled']:
        config['trading']['enabled'] = False
    config['discovery']['blacklist'] = (
        list(config['discovery'].get('blacklist', [])) + list(config['bot'].get('blacklist', []))
    )
    config['discovery']['moralis'].setdefault('api_key', config['bot'].get('moralis_api_key', ''))
    return config
