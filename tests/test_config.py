"""
Tests for bottle configuration loading
"""
import yaml

from bottle_manager.config import BottleConfig, ConfigManager, DEFAULT_REMOTE_BASE


class TestBottleConfig:
    def test_defaults(self):
        config = BottleConfig()
        assert config.remote_base_url == DEFAULT_REMOTE_BASE
        assert config.curated_bottles == ['stable', 'edge', 'minimal']
        assert config.install_retry_on_failure == 1

    def test_from_dict(self):
        config = BottleConfig.from_dict({
            'home': '/srv/bottle',
            'remote': {'base_url': 'https://mirror.test/bottle/', 'timeout': 5, 'curated': ['stable']},
            'install': {'retry_on_failure': 3, 'quiet_mode': True},
            'plugins': {'marketplace': 'acme/market'},
            'tools_dir': './tools',
        })

        assert config.home == '/srv/bottle'
        assert config.remote_base_url == 'https://mirror.test/bottle'
        assert config.remote_timeout == 5
        assert config.curated_bottles == ['stable']
        assert config.install_retry_on_failure == 3
        assert config.install_quiet_mode
        assert config.plugin_marketplace == 'acme/market'
        assert config.tools_dir == './tools'

    def test_bad_numbers_fall_back(self):
        config = BottleConfig.from_dict({'remote': {'timeout': 'soon'}, 'install': {'retry_on_failure': 'x'}})
        assert config.remote_timeout == 20
        assert config.install_retry_on_failure == 1

    def test_env_home_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv('BOTTLE_HOME', str(tmp_path))
        assert BottleConfig(home='/elsewhere').home_path == tmp_path

    def test_to_dict_round_trip(self):
        config = BottleConfig(install_retry_on_failure=2, manifest_override='m.json')
        assert BottleConfig.from_dict(config.to_dict()) == config


class TestConfigManager:
    def test_find_walks_up(self, tmp_path, monkeypatch):
        monkeypatch.setenv('HOME', str(tmp_path / 'nohome'))
        (tmp_path / '.bottle.yml').write_text('home: /x\n')
        nested = tmp_path / 'a' / 'b'
        nested.mkdir(parents=True)

        assert ConfigManager.find_config(nested) == tmp_path / '.bottle.yml'

    def test_load_missing_is_defaults(self, tmp_path):
        assert ConfigManager.load_config(tmp_path / 'absent.yml') == BottleConfig()

    def test_load_broken_yaml_is_defaults(self, tmp_path, capsys):
        path = tmp_path / '.bottle.yml'
        path.write_text('remote: [unclosed\n')

        assert ConfigManager.load_config(path) == BottleConfig()
        assert 'Warning' in capsys.readouterr().out

    def test_save_and_load(self, tmp_path):
        path = tmp_path / 'nested' / 'config.yml'
        config = BottleConfig(remote_timeout=7)

        assert ConfigManager.save_config(config, path)

        assert yaml.safe_load(path.read_text())['remote']['timeout'] == 7
        assert ConfigManager.load_config(path) == config
