"""
配置加载器：将 YAML 配置文件解析为 Pydantic 模型。
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field

from dashboard_core.history import DEFAULT_HISTORY_LIMIT

logger = logging.getLogger(__name__)

ROOT_ENV = "DASHBOARD_BUILDER_ROOT"


# ── 模型 ──────────────────────────────────────────────

class ServerConfig(BaseModel):
    host: str = "127.0.0.1"
    port: int = 8400


class AppConfig(BaseModel):
    history_limit: int = Field(default=DEFAULT_HISTORY_LIMIT, ge=1, description="Undo stack bound")
    query_cache_ttl: float = Field(default=30.0, ge=0, description="Seconds a resolved query stays fresh")
    agent_step_delay: float = Field(default=0.0, ge=0, description="Pause before each batch step")
    data_dir: str = Field(default="data", description="Directory holding the dashboard database")
    datasets_file: Optional[str] = Field(default=None, description="YAML file with extra local datasets")
    server: ServerConfig = Field(default_factory=ServerConfig)

    def resolve_path(self, value: str) -> Path:
        """Relative paths are taken from the project root."""
        path = Path(value)
        return path if path.is_absolute() else project_root() / path

    @property
    def db_path(self) -> Path:
        return self.resolve_path(self.data_dir) / "dashboards.json"


# ── Loading ───────────────────────────────────────────

_CONFIG_SEARCH_PATHS = [
    "config/config.yaml",
    "config.yaml",
]


def project_root() -> Path:
    return Path(os.getenv(ROOT_ENV, "."))


def find_config_root() -> Optional[Path]:
    """Find the config file, or None when the project has none."""
    base = project_root()
    for p in _CONFIG_SEARCH_PATHS:
        path = base / p
        if path.exists():
            return path
    return None


def deep_merge_dict(base: dict, update: dict) -> dict:
    """Deep merge two dictionaries; ``update`` wins on conflicts."""
    for k, v in update.items():
        if isinstance(v, dict) and k in base and isinstance(base[k], dict):
            base[k] = deep_merge_dict(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: Path) -> Any:
    with open(path, "r", encoding="utf-8") as fp:
        return yaml.safe_load(fp)


def load_config(path: Optional[str | Path] = None) -> AppConfig:
    """
    Load the service configuration. A directory merges every ``*.yaml`` in
    name order; a missing file yields the defaults.
    """
    if path is None:
        path = find_config_root()
    if path is None:
        logger.info("No config file found, using defaults")
        return AppConfig()
    path = Path(path)

    files: List[Path] = []
    if path.is_file():
        files.append(path)
    elif path.is_dir():
        files.extend(sorted(path.glob("*.yaml")) + sorted(path.glob("*.yml")))

    combined: Dict[str, Any] = {}
    for f in files:
        content = _read_yaml(f)
        if not content:
            continue
        if not isinstance(content, dict):
            raise ValueError(f"{f}: expected a mapping at the top level")
        deep_merge_dict(combined, content)
        logger.debug(f"Loaded config from {f}")

    return AppConfig.model_validate(combined)


def load_datasets(path: str | Path) -> List[Dict[str, Any]]:
    """Read extra datasets (``datasets:`` list, or a bare list) for the local provider."""
    path = Path(path)
    if not path.exists():
        logger.warning(f"Datasets file {path} not found, skipping")
        return []
    content = _read_yaml(path) or []
    if isinstance(content, dict):
        content = content.get("datasets", [])
    if not isinstance(content, list):
        raise ValueError(f"{path}: expected a list of datasets")
    return content
