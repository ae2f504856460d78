"""
Project Configuration Loader

Loads ``[tool.modhook]`` from pyproject.toml and overrides it with
dev.pyproject.toml when running locally. Environment variables win over both.
"""
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from .base import HookOptions

if sys.version_info >= (3, 11):
    import tomllib
else:
    try:
        import tomli as tomllib
    except ImportError as e:
        raise ImportError(
            "modhook requires Python 3.11+ or the 'tomli' package "
            "to parse pyproject.toml on Python 3.10. "
            f"Install tomli: pip install tomli"
        ) from e

logger = logging.getLogger(__name__)

TOOL_NAME = "modhook"
ENV_INTERNALS = "MODHOOK_INTERNALS"
ENV_LOG_LEVEL = "MODHOOK_LOG_LEVEL"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _parse_bool(raw: str) -> Optional[bool]:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    return None


class LocalConfigLoader:
    """Config loader with dev overrides and environment variables on top."""

    def __init__(self, project_root: Optional[Path] = None, environ: Optional[Dict[str, str]] = None):
        self.project_root = project_root or self._find_project_root()
        self.prod_config_path = self.project_root / 'pyproject.toml'
        self.dev_config_path = self.project_root / 'dev.pyproject.toml'
        self.environ = os.environ if environ is None else environ
        self.config = self._load_merged_config()

    def _find_project_root(self) -> Path:
        """Find project root (where pyproject.toml exists)."""
        current = Path.cwd()
        while current.parent != current:
            if (current / 'pyproject.toml').exists():
                return current
            current = current.parent
        return Path.cwd()

    def _read(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, 'rb') as f:
                return tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("ignoring unreadable config %s: %s", path, e)
            return {}

    def _load_merged_config(self) -> Dict[str, Any]:
        """Load production config and merge dev overrides over it."""
        prod_config = self._read(self.prod_config_path)
        dev_config = self._read(self.dev_config_path)
        if dev_config:
            logger.debug("using local development overrides from %s", self.dev_config_path.name)
        return self._deep_merge(prod_config, dev_config)

    def _deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries, ``override`` winning."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_tool_config(self, tool: str = TOOL_NAME) -> Dict[str, Any]:
        """Get the ``[tool.<tool>]`` table."""
        return self.config.get('tool', {}).get(tool, {})

    def default_options(self) -> HookOptions:
        """Hook options used when a hook is registered without explicit ones."""
        values: Dict[str, Any] = {}
        tool_config = self.get_tool_config()
        if 'internals' in tool_config:
            values['internals'] = tool_config['internals']

        raw = self.environ.get(ENV_INTERNALS)
        if raw is not None:
            parsed = _parse_bool(raw)
            if parsed is None:
                logger.warning("ignoring %s=%r, expected a boolean", ENV_INTERNALS, raw)
            else:
                values['internals'] = parsed

        return HookOptions(**values)

    @property
    def log_level(self) -> str:
        level = self.environ.get(ENV_LOG_LEVEL) or self.get_tool_config().get('log_level', 'WARNING')
        return str(level).upper()


# Global instance for easy access
_config_loader = None

def get_local_config() -> LocalConfigLoader:
    """Get the global local config loader instance."""
    global _config_loader
    if _config_loader is None:
        _config_loader = LocalConfigLoader()
    return _config_loader


def reset_local_config() -> None:
    """Forget the cached loader so the next lookup re-reads files and env."""
    global _config_loader
    _config_loader = None
