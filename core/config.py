"""
Configuration Management - YAML-based configuration with environment overrides
=============================================================================

Configuration is resolved in this order:
1. Default values from the dataclasses below
2. Values from ``config.yaml``
3. Environment variable overrides (``TRAVEL_BUDDY_*`` and a few legacy names)

The loaded object is validated before it is returned.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional, List
from dataclasses import dataclass, field, asdict

from .exceptions import ConfigError


@dataclass
class RulesConfig:
    """
    Intent rule source settings.

    ``rules_file`` pins an exact CSV path. When it is empty the loader
    probes ``file_name`` in ``search_dirs`` followed by the built-in
    well-known locations.
    """
    rules_file: str = ""
    file_name: str = "intents.csv"
    search_dirs: List[str] = field(default_factory=list)

    def validate(self) -> None:
        """Validate rule source settings."""
        if not self.rules_file and not self.file_name:
            raise ConfigError("Either rules.rules_file or rules.file_name must be set")

        if self.file_name and Path(self.file_name).name != self.file_name:
            raise ConfigError(
                f"rules.file_name must be a bare file name, got {self.file_name}",
                {"hint": "Use rules.rules_file for a full path"}
            )


@dataclass
class LLMConfig:
    """
    Language-model fallback settings.

    The fallback is only consulted when no intent matches.
    """
    provider: str = "gemini"
    model: str = ""
    model_candidates: List[str] = field(default_factory=lambda: [
        "gemini-2.0-flash",
        "gemini-2.0-pro",
        "gemini-1.5-flash",
        "gemini-1.5-pro",
    ])
    api_key: str = ""
    api_base: str = "https://generativelanguage.googleapis.com/v1beta"

    temperature: float = 0.7
    max_tokens: int = 400
    timeout: int = 30

    fallback_enabled: bool = True

    def validate(self) -> None:
        """Validate LLM configuration parameters."""
        if self.provider not in ["gemini"]:
            raise ConfigError(f"Invalid LLM provider: {self.provider}")

        if not 0 <= self.temperature <= 2:
            raise ConfigError(f"Temperature must be between 0 and 2, got {self.temperature}")

        if self.max_tokens < 1 or self.max_tokens > 8192:
            raise ConfigError(f"max_tokens must be between 1 and 8192, got {self.max_tokens}")

        if self.timeout < 1:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    def models_to_try(self) -> List[str]:
        """Explicit model first, then the candidates, without duplicates."""
        models = []
        for name in [self.model] + list(self.model_candidates):
            name = (name or "").strip()
            if name and name not in models:
                models.append(name)
        return models


@dataclass
class ChatConfig:
    """
    Conversation handling settings.

    ``trigger_intents`` are answered with a structured trigger instead of
    a plain canned reply, so the client can start its booking flow.
    """
    history_size: int = 10
    max_users: int = 1000
    trigger_intents: List[str] = field(default_factory=lambda: ["book_hotel", "book_taxi"])
    default_lang: str = "en"

    def validate(self) -> None:
        """Validate chat configuration."""
        if self.history_size < 1:
            raise ConfigError(f"history_size must be at least 1, got {self.history_size}")

        if self.max_users < 1:
            raise ConfigError(f"max_users must be at least 1, got {self.max_users}")


@dataclass
class WebConfig:
    """HTTP server settings."""
    host: str = "127.0.0.1"
    port: int = 5000
    debug: bool = False
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    def validate(self) -> None:
        """Validate web configuration."""
        if self.port < 1 or self.port > 65535:
            raise ConfigError(f"Invalid web port: {self.port}")


@dataclass
class Config:
    """
    Main configuration container.

    Aggregates all configuration sections into a single object.
    """
    app_name: str = "Travel Buddy"
    version: str = "1.0.0"
    debug: bool = False

    rules: RulesConfig = field(default_factory=RulesConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    web: WebConfig = field(default_factory=WebConfig)

    # Paths (set at runtime)
    config_dir: str = ""
    data_dir: str = ""
    log_dir: str = ""

    def validate(self) -> None:
        """
        Validate all configuration sections.

        Raises:
            ConfigError: If any configuration section is invalid
        """
        self.rules.validate()
        self.llm.validate()
        self.chat.validate()
        self.web.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "app_name": self.app_name,
            "version": self.version,
            "debug": self.debug,
            "rules": asdict(self.rules),
            "llm": asdict(self.llm),
            "chat": asdict(self.chat),
            "web": asdict(self.web),
        }


_SECTIONS = ("rules", "llm", "chat", "web")


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory path.

    Returns:
        Path to the configuration directory
    """
    if "TRAVEL_BUDDY_CONFIG_DIR" in os.environ:
        return Path(os.environ["TRAVEL_BUDDY_CONFIG_DIR"])

    if "XDG_CONFIG_HOME" in os.environ:
        return Path(os.environ["XDG_CONFIG_HOME"]) / "travel-buddy"

    return Path.home() / ".config" / "travel-buddy"


def get_default_data_dir() -> Path:
    """
    Get the default data directory path.

    Returns:
        Path to the data directory
    """
    if "TRAVEL_BUDDY_DATA_DIR" in os.environ:
        return Path(os.environ["TRAVEL_BUDDY_DATA_DIR"])

    if "XDG_DATA_HOME" in os.environ:
        return Path(os.environ["XDG_DATA_HOME"]) / "travel-buddy"

    return Path.home() / ".local" / "share" / "travel-buddy"


def load_config(config_path: Optional[str] = None, load_env: bool = True) -> Config:
    """
    Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to configuration file (optional)
        load_env: Whether to load ``.env`` and environment variable overrides

    Returns:
        Config object with loaded values

    Raises:
        ConfigError: If configuration is invalid or cannot be loaded
    """
    config = Config()

    config.config_dir = str(get_default_config_dir())
    config.data_dir = str(get_default_data_dir())
    config.log_dir = str(Path(config.data_dir) / "logs")

    if load_env:
        _load_env_file(Path(config.config_dir) / ".env")

    if config_path:
        yaml_path = Path(config_path)
        if not yaml_path.exists():
            raise ConfigError("Config file not found", {"path": str(yaml_path)})
    else:
        yaml_path = Path(config.config_dir) / "config.yaml"

    if yaml_path.exists():
        try:
            with open(yaml_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}", {"path": str(yaml_path)})
        except IOError as e:
            raise ConfigError(f"Failed to read config file: {e}", {"path": str(yaml_path)})

        if not isinstance(yaml_config, dict):
            raise ConfigError("Config file must contain a mapping", {"path": str(yaml_path)})

        _apply_yaml_config(config, yaml_config)

    if load_env:
        _apply_env_overrides(config)

    config.validate()

    return config


def _load_env_file(env_file: Path) -> None:
    """Export KEY=VALUE lines from a .env file without overriding the environment."""
    if not env_file.exists():
        return

    try:
        with open(env_file, "r", encoding="utf-8") as f:
            lines = f.readlines()
    except IOError as e:
        raise ConfigError(f"Failed to read .env file: {e}", {"path": str(env_file)})

    for line in lines:
        line = line.strip()
        if line and not line.startswith("#") and "=" in line:
            key, value = line.split("=", 1)
            key = key.strip()
            value = value.strip().strip('"').strip("'")
            if key and value and key not in os.environ:
                os.environ[key] = value


def _apply_yaml_config(config: Config, yaml_config: Dict[str, Any]) -> None:
    """
    Apply YAML configuration values to Config object.

    Unknown keys are ignored.
    """
    for key in ("app_name", "version", "debug"):
        if key in yaml_config:
            setattr(config, key, yaml_config[key])

    for section in _SECTIONS:
        section_cfg = yaml_config.get(section)
        if not section_cfg:
            continue
        if not isinstance(section_cfg, dict):
            raise ConfigError(f"Config section '{section}' must be a mapping")

        section_obj = getattr(config, section)
        for key, value in section_cfg.items():
            if hasattr(section_obj, key):
                setattr(section_obj, key, value)


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _apply_env_overrides(config: Config) -> None:
    """
    Apply environment variable overrides to Config object.

    Environment variables follow the pattern TRAVEL_BUDDY_SECTION_KEY,
    e.g. TRAVEL_BUDDY_LLM_API_KEY or TRAVEL_BUDDY_RULES_FILE.
    """
    env_mappings = {
        # Legacy names, applied first so the namespaced variables win
        "GEMINI_API_KEY": ("llm", "api_key"),
        "GEMINI_MODEL": ("llm", "model"),
        "PORT": ("web", "port", int),

        # Rules
        "TRAVEL_BUDDY_RULES_FILE": ("rules", "rules_file"),
        "TRAVEL_BUDDY_RULES_SEARCH_DIRS": ("rules", "search_dirs", _split_list),

        # LLM
        "TRAVEL_BUDDY_LLM_MODEL": ("llm", "model"),
        "TRAVEL_BUDDY_LLM_API_KEY": ("llm", "api_key"),
        "TRAVEL_BUDDY_LLM_API_BASE": ("llm", "api_base"),
        "TRAVEL_BUDDY_LLM_TEMPERATURE": ("llm", "temperature", float),
        "TRAVEL_BUDDY_LLM_MAX_TOKENS": ("llm", "max_tokens", int),
        "TRAVEL_BUDDY_LLM_FALLBACK_ENABLED": ("llm", "fallback_enabled", bool),

        # Chat
        "TRAVEL_BUDDY_CHAT_HISTORY_SIZE": ("chat", "history_size", int),
        "TRAVEL_BUDDY_CHAT_MAX_USERS": ("chat", "max_users", int),

        # Web
        "TRAVEL_BUDDY_WEB_HOST": ("web", "host"),
        "TRAVEL_BUDDY_WEB_PORT": ("web", "port", int),
        "TRAVEL_BUDDY_WEB_DEBUG": ("web", "debug", bool),
    }

    for env_var, mapping in env_mappings.items():
        value = os.environ.get(env_var)
        if value is None or value == "":
            continue

        section, key = mapping[0], mapping[1]
        converter = mapping[2] if len(mapping) > 2 else str
        section_obj = getattr(config, section)

        try:
            if converter is bool:
                converted = value.lower() in ("true", "1", "yes", "on")
            else:
                converted = converter(value)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_var}: {e}", {"value": value})

        setattr(section_obj, key, converted)


def save_config(config: Config, config_path: Optional[str] = None) -> None:
    """
    Save configuration to YAML file.

    Raises:
        ConfigError: If configuration cannot be saved
    """
    if config_path:
        yaml_path = Path(config_path)
    else:
        yaml_path = Path(config.config_dir) / "config.yaml"

    yaml_path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(yaml_path, "w", encoding="utf-8") as f:
            yaml.dump(config.to_dict(), f, default_flow_style=False, sort_keys=False,
                      allow_unicode=True)
    except IOError as e:
        raise ConfigError(f"Failed to save config file: {e}", {"path": str(yaml_path)})
