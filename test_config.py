import os
import tempfile
import unittest

from config import deep_merge, load_config, load_yaml_overrides
import discovery_config
from discovery_config import get_discovery_config
from trading_config import TRADING_CONFIG, get_trading_config


class TestConfig(unittest.TestCase):

    def write_yaml(self, text):
        handle = tempfile.NamedTemporaryFile('w', suffix='.yaml', delete=False)
        handle.write(text)
        handle.close()
        self.addCleanup(os.remove, handle.name)
        return handle.name

    def test_deep_merge(self):
        base = {'a': 1, 'nested': {'x': 1, 'y': 2}}
        merged = deep_merge(base, {'nested': {'y': 3}, 'b': [1]})
        self.assertEqual(merged, {'a': 1, 'nested': {'x': 1, 'y': 3}, 'b': [1]})
        self.assertEqual(base['nested']['y'], 2)

    def test_getter_returns_private_copy(self):
        config = get_trading_config()
        config['trailing_stop']['trail_pct'] = 99
        self.assertEqual(TRADING_CONFIG['trailing_stop']['trail_pct'], 3.0)

    def test_only_trading_has_a_master_switch(self):
        self.assertNotIn('enabled', get_discovery_config())
        self.assertFalse(hasattr(discovery_config, 'is_discovery_enabled'))
        self.assertNotIn('max_positions', get_trading_config())
        self.assertTrue(get_trading_config()['enabled'])

    def test_yaml_overrides(self):
        print("\nTesting YAML overrides...")
        path = self.write_yaml(
            "trading:\n"
            "  stop_loss_pct: 10\n"
            "  trailing_stop:\n"
            "    trail_pct: 5\n"
            "discovery:\n"
            "  blacklist: [BADMINT]\n"
        )
        config = load_config(path)
        self.assertEqual(config['trading']['stop_loss_pct'], 10)
        self.assertEqual(config['trading']['trailing_stop']['trail_pct'], 5)
        self.assertTrue(config['trading']['trailing_stop']['use_max'])
        self.assertIn('BADMINT', config['discovery']['blacklist'])
        self.assertIn('api_key', config['discovery']['moralis'])

    def test_trading_switch(self):
        path = self.write_yaml("bot:\n  trading_enabled: false\n")
        self.assertFalse(load_config(path)['trading']['enabled'])

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_yaml_overrides("/nonexistent/bot.yaml")

    def test_non_mapping_file(self):
        with self.assertRaises(ValueError):
            load_yaml_overrides(self.write_yaml("- just\n- a list\n"))

    def test_no_path_means_no_overrides(self):
        self.assertEqual(load_yaml_overrides(None), {})


if __name__ == '__main__':
    unittest.main()
