"""
Configuration for the Retrieval Engine

Settings are plain dataclasses loaded from a YAML file, with a handful of
environment overrides for deployment. A ``.env`` file in the working
directory is honoured.

Lookup order for the config file:
    1. explicit ``path`` argument
    2. ``$DOCRETRIEVAL_CONFIG``
    3. ``~/.docretrieval/config.yaml`` (optional; defaults if missing)

Usage:
    from core.config import load_config

    config = load_config()
    service = SearchService.from_config(config.search)
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Union

import yaml
from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "DOCRETRIEVAL_"
DEFAULT_HOME = Path.home() / ".docretrieval"
DEFAULT_CONFIG_PATH = DEFAULT_HOME / "config.yaml"

DEFAULT_STOPWORDS: FrozenSet[str] = frozenset({
    "a", "an", "the", "and", "or", "is", "in", "at",
    "to", "for", "of", "on", "with", "by", "from",
})


# =============================================================================
# Config Sections
# =============================================================================

@dataclass
class SearchConfig:
    """Lexical and semantic search settings."""
    bm25_k1: float = 1.5
    bm25_b: float = 0.75
    stopwords: FrozenSet[str] = DEFAULT_STOPWORDS
    min_token_length: int = 3
    max_results: int = 10
    snippet_chars: int = 200

    # Semantic search
    use_vector_search: bool = False
    embedding_model: str = "all-MiniLM-L6-v2"

    # Reciprocal rank fusion
    bm25_weight: float = 0.5
    semantic_weight: float = 0.5
    rrf_k: int = 60

    def validate(self):
        if self.bm25_k1 <= 0:
            raise ConfigError(f"search.bm25_k1 must be positive, got {self.bm25_k1}")
        if not 0.0 <= self.bm25_b <= 1.0:
            raise ConfigError(f"search.bm25_b must be within [0, 1], got {self.bm25_b}")
        if self.max_results <= 0:
            raise ConfigError(f"search.max_results must be positive, got {self.max_results}")
        if self.snippet_chars < 0:
            raise ConfigError(f"search.snippet_chars must not be negative, got {self.snippet_chars}")
        if self.rrf_k < 0:
            raise ConfigError(f"search.rrf_k must not be negative, got {self.rrf_k}")


@dataclass
class CacheConfig:
    """Embedding cache settings."""
    cache_dir: Path = DEFAULT_HOME / "embeddings"
    max_memory_entries: int = 1000
    max_age_days: int = 30

    def validate(self):
        if self.max_memory_entries <= 0:
            raise ConfigError(
                f"cache.max_memory_entries must be positive, got {self.max_memory_entries}"
            )
        if self.max_age_days < 0:
            raise ConfigError(f"cache.max_age_days must not be negative, got {self.max_age_days}")


@dataclass
class LoggingConfig:
    """Logging settings."""
    level: str = "INFO"
    json_format: bool = False

    def validate(self):
        if not isinstance(logging.getLevelName(self.level.upper()), int):
            raise ConfigError(f"logging.level is not a known level: {self.level}")


@dataclass
class RetrievalConfig:
    """Top-level configuration."""
    search: SearchConfig = field(default_factory=SearchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "RetrievalConfig":
        """
        Build a config from a parsed YAML mapping.

        Unknown keys are ignored with a warning. Values of the wrong type
        raise ConfigError.
        """
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping, got {type(data).__name__}")

        sections = {
            "search": SearchConfig,
            "cache": CacheConfig,
            "logging": LoggingConfig,
        }
        for key in data:
            if key not in sections:
                logger.warning(f"Ignoring unknown config section: {key}")

        built = {
            name: _build_section(name, section_cls, data.get(name))
            for name, section_cls in sections.items()
        }
        config = cls(**built)
        config.validate()
        return config

    def validate(self):
        self.search.validate()
        self.cache.validate()
        self.logging.validate()


# =============================================================================
# Loading
# =============================================================================

def _coerce(name: str, value: Any, default: Any) -> Any:
    """Coerce a YAML/env value to the type of the field default."""
    try:
        if isinstance(default, bool):
            if isinstance(value, bool):
                return value
            if isinstance(value, str):
                lowered = value.strip().lower()
                if lowered in ("1", "true", "yes", "on"):
                    return True
                if lowered in ("0", "false", "no", "off"):
                    return False
            raise ValueError(f"not a boolean: {value!r}")
        if isinstance(default, frozenset):
            if isinstance(value, str) or not hasattr(value, "__iter__"):
                raise ValueError(f"expected a list, got {value!r}")
            return frozenset(str(v).lower() for v in value)
        if isinstance(default, Path):
            return Path(os.path.expanduser(str(value)))
        if isinstance(default, int):
            if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
                raise ValueError(f"expected an integer, got {value!r}")
            return int(value)
        if isinstance(default, float):
            if isinstance(value, bool):
                raise ValueError(f"expected a number, got {value!r}")
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {e}") from e


def _build_section(name: str, section_cls, data: Optional[Dict[str, Any]]):
    section = section_cls()
    if data is None:
        return section
    if not isinstance(data, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")

    known = {f.name for f in fields(section_cls)}
    for key, value in data.items():
        if key not in known:
            logger.warning(f"Ignoring unknown config key: {name}.{key}")
            continue
        default = getattr(section, key)
        setattr(section, key, _coerce(f"{name}.{key}", value, default))
    return section


def _apply_env_overrides(config: RetrievalConfig) -> RetrievalConfig:
    overrides = {
        "CACHE_DIR": (config.cache, "cache_dir"),
        "EMBEDDING_MODEL": (config.search, "embedding_model"),
        "USE_VECTOR_SEARCH": (config.search, "use_vector_search"),
        "LOG_LEVEL": (config.logging, "level"),
    }
    for suffix, (section, attr) in overrides.items():
        value = os.getenv(ENV_PREFIX + suffix)
        if value is None:
            continue
        logger.debug(f"Config override from environment: {ENV_PREFIX + suffix}")
        setattr(section, attr, _coerce(attr, value, getattr(section, attr)))
    return config


def load_config(path: Optional[Union[str, Path]] = None) -> RetrievalConfig:
    """
    Load configuration from YAML plus environment overrides.

    Args:
        path: Config file path. If omitted, ``$DOCRETRIEVAL_CONFIG`` or the
              default location is used.

    Returns:
        Validated RetrievalConfig

    Raises:
        ConfigError: If an explicitly requested file is missing, cannot be
                     parsed, or contains invalid values
    """
    load_dotenv(find_dotenv(usecwd=True))

    explicit = path is not None or os.getenv(ENV_PREFIX + "CONFIG") is not None
    config_path = Path(path or os.getenv(ENV_PREFIX + "CONFIG") or DEFAULT_CONFIG_PATH)

    data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse config file {config_path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Could not read config file {config_path}: {e}") from e
        logger.debug(f"Loaded config from {config_path}")
    elif explicit:
        raise ConfigError(f"Config file not found: {config_path}")

    config = RetrievalConfig.from_dict(data)
    config = _apply_env_overrides(config)
    config.validate()
    return config
