# tests/configs/test_config_loader.py
import pytest

from protoroute.configs.config_loader import ConfigLoader, load_router_config
from protoroute.configs.config_utils import ConfigMerger
from protoroute.configs.router_config import VIEW_ROUTER_REGISTER_COMPLETE, RouterConfig
from protoroute.core.exceptions import ConfigurationError


def write_config(root, env, text):
    env_dir = root / env
    env_dir.mkdir(parents=True, exist_ok=True)
    (env_dir / 'router_config.yaml').write_text(text, encoding='utf-8')


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv('PROTOROUTE_STRICT_MODE', raising=False)
    monkeypatch.delenv('REQUIRE_COMPLETION', raising=False)


class TestConfigLoader:
    @pytest.mark.asyncio
    async def test_packaged_defaults(self):
        config = await ConfigLoader().load_router_config()
        assert config == RouterConfig()
        assert config.view_complete_signal == VIEW_ROUTER_REGISTER_COMPLETE

    @pytest.mark.asyncio
    async def test_env_interpolation(self, monkeypatch):
        monkeypatch.setenv('PROTOROUTE_STRICT_MODE', 'false')
        config = await ConfigLoader().load_router_config()
        assert config.strict_mode is False

    @pytest.mark.asyncio
    async def test_layers_apply_in_order(self, tmp_path):
        write_config(tmp_path, 'default', 'router:\n  require_completion: true\n  event_history_size: 10\n')
        write_config(tmp_path, 'staging', 'router:\n  event_history_size: 50\n')

        loader = ConfigLoader(tmp_path)
        default = await loader.load_router_config()
        staging = await loader.load_router_config('staging')

        assert default.require_completion is True
        assert default.event_history_size == 10
        assert staging.require_completion is True
        assert staging.event_history_size == 50

    @pytest.mark.asyncio
    async def test_missing_env_overlay_falls_back_to_defaults(self, tmp_path):
        config = await ConfigLoader(tmp_path).load_router_config('production')
        assert config == RouterConfig()

    @pytest.mark.asyncio
    async def test_explicit_overrides_win(self, tmp_path):
        write_config(tmp_path, 'default', 'router:\n  validate_on_complete: false\n')
        config = await ConfigLoader(tmp_path).load_router_config(overrides={'validate_on_complete': True})
        assert config.validate_on_complete is True

    @pytest.mark.asyncio
    async def test_unknown_key_rejected(self, tmp_path):
        write_config(tmp_path, 'default', 'router:\n  bogus_option: 1\n')
        with pytest.raises(ConfigurationError):
            await ConfigLoader(tmp_path).load_router_config()

    @pytest.mark.asyncio
    async def test_invalid_value_rejected(self, tmp_path):
        write_config(tmp_path, 'default', 'router:\n  event_history_size: -5\n')
        with pytest.raises(ConfigurationError):
            await ConfigLoader(tmp_path).load_router_config()

    @pytest.mark.asyncio
    async def test_malformed_yaml_rejected(self, tmp_path):
        write_config(tmp_path, 'default', 'router: [unclosed\n')
        with pytest.raises(ConfigurationError):
            await ConfigLoader(tmp_path).load_router_config()

    def test_sync_wrapper(self, tmp_path, monkeypatch):
        monkeypatch.setenv('PROTOROUTE_STRICT_MODE', 'false')
        write_config(tmp_path, 'default', 'router:\n  require_completion: ${REQUIRE_COMPLETION:-true}\n')
        config = load_router_config(config_root=tmp_path)
        assert config.strict_mode is False
        assert config.require_completion is True


class TestConfigMerger:
    def test_nested_merge(self):
        merged = ConfigMerger.merge({'a': {'b': 1, 'c': 2}}, {'a': {'c': 3}, 'd': 4})
        assert merged == {'a': {'b': 1, 'c': 3}, 'd': 4}

    def test_strict_keys(self):
        with pytest.raises(ValueError):
            ConfigMerger.merge({'a': 1}, {'b': 2}, strict_keys=True)

    def test_inputs_not_mutated(self):
        base = {'a': {'b': 1}}
        ConfigMerger.merge(base, {'a': {'b': 2}})
        assert base == {'a': {'b': 1}}
