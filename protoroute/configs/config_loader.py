from __future__ import annotations
import asyncio
import copy
import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Final, Optional, Sequence

import yaml
from pydantic import ValidationError

from protoroute.configs.config_utils import ConfigMerger
from protoroute.configs.router_config import RouterConfig
from protoroute.core.exceptions import ConfigurationError

__all__: Sequence[str] = ('ConfigLoader', 'DEFAULT_CONFIG', 'load_router_config')
logger = logging.getLogger(__name__)

_ENV_DEFAULT: Final[str] = 'default'
_CONFIG_FILENAME: Final[str] = 'router_config.yaml'

DEFAULT_CONFIG: Dict[str, Any] = {
    'env': _ENV_DEFAULT,
    'router': RouterConfig().model_dump(),
}

_RE_ENV_DEFAULT: Final[re.Pattern[str]] = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-|-)(.*?)\}')


def _interpolate_env(value: str) -> str:
    if not isinstance(value, str):
        return value

    def _repl(match: re.Match[str]) -> str:
        var, default = (match.group(1), match.group(2))
        return os.getenv(var, default)

    before = value
    value = _RE_ENV_DEFAULT.sub(_repl, value)
    value = os.path.expandvars(value)

    if before != value:
        logger.debug("Env expand: '%s' → '%s'", before, value)
    elif '${' in before:
        logger.warning("Unresolved env var in '%s'", before)

    return value


def _expand_tree(node: Any) -> Any:
    if isinstance(node, dict):
        return {k: _expand_tree(v) for k, v in node.items()}
    if isinstance(node, list):
        return [_expand_tree(v) for v in node]
    if isinstance(node, str):
        return _interpolate_env(node)
    return node


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding='utf-8')
    except FileNotFoundError:
        logger.debug('Config file not found: %s', path)
        return {}

    try:
        if path.suffix.lower() == '.json':
            data = json.loads(text) or {}
        else:
            data = yaml.safe_load(text) or {}
    except (yaml.YAMLError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f'Failed to parse {path}: {exc}') from exc

    if not isinstance(data, dict):
        logger.warning('%s does not contain a top‑level mapping – ignored', path)
        return {}
    return data


class ConfigLoader:
    """
    Layers router configuration: packaged defaults, then
    ``<config_root>/default``, then ``<config_root>/<env>``, then explicit
    overrides. ``${VAR:-default}`` references are expanded before validation.
    """

    def __init__(self, config_root: Optional[Path] = None) -> None:
        self._package_configs: Path = Path(__file__).resolve().parent
        self._config_root: Optional[Path] = Path(config_root) if config_root is not None else None

    async def load_global_config(self, env: Optional[str] = None,
                                 overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        env = env or _ENV_DEFAULT
        logger.info('Loading router configuration for env=%s', env)
        cfg: Dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        cfg['env'] = env

        for label, path in self._layers(env):
            data = _load_yaml(path)
            if data:
                cfg = ConfigMerger.merge(cfg, data, label)
                logger.info('Merged %s: %s', label, path)
            elif label.startswith('ENV_'):
                logger.warning('%s not found: %s', label, path)
            await asyncio.sleep(0)

        if overrides:
            cfg = ConfigMerger.merge(cfg, {'router': overrides}, 'explicit_overrides')

        cfg = _expand_tree(cfg)
        logger.debug('Resolved router config keys: %s', list(cfg.get('router', {})))
        return cfg

    async def load_router_config(self, env: Optional[str] = None,
                                 overrides: Optional[Dict[str, Any]] = None) -> RouterConfig:
        cfg = await self.load_global_config(env, overrides)
        try:
            config = RouterConfig.from_mapping(cfg)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid router configuration for env='{cfg.get('env')}': {exc}") from exc
        logger.info("✓ Router configuration loaded for env='%s' (strict_mode=%s)", cfg.get('env'), config.strict_mode)
        return config

    def _layers(self, env: str) -> list[tuple[str, Path]]:
        layers = [('PACKAGED_ROUTER_CONFIG', self._package_configs / 'default' / _CONFIG_FILENAME)]
        if self._config_root is not None:
            layers.append(('DEFAULT_ROUTER_CONFIG', self._config_root / 'default' / _CONFIG_FILENAME))
            if env != _ENV_DEFAULT:
                layers.append((f'ENV_ROUTER_CONFIG ({env})', self._config_root / env / _CONFIG_FILENAME))
        elif env != _ENV_DEFAULT:
            layers.append((f'ENV_ROUTER_CONFIG ({env})', self._package_configs / env / _CONFIG_FILENAME))
        return layers


def load_router_config(env: Optional[str] = None, config_root: Optional[Path] = None,
                       overrides: Optional[Dict[str, Any]] = None) -> RouterConfig:
    """Synchronous convenience wrapper around :class:`ConfigLoader`."""
    return asyncio.run(ConfigLoader(config_root).load_router_config(env, overrides))
