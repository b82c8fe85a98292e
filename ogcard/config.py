"""
Configuration management for ogcard.

Scraper limits are fixed in ogcard.constants; this module covers the
operator-facing settings: server binding, logging, output and card
rendering. Supports a global (~/.config/ogcard/config.toml) and a local
(ogcard.toml) file plus OGCARD_* environment variables.
"""
import os
import tomli
import tomli_w
from pathlib import Path
from typing import Dict, Any, List, Optional
from dataclasses import dataclass, field, fields, asdict

from ogcard.constants import CARD_SIZE, EXPORT_SCALE


@dataclass
class OgcardConfig:
    """
    ogcard configuration with sensible defaults.

    Configuration hierarchy (highest to lowest priority):
    1. Command-line arguments
    2. Environment variables (OGCARD_*)
    3. Explicit config file (--config)
    4. Local config file (./ogcard.toml or ./.ogcardrc)
    5. User config file (~/.config/ogcard/config.toml)
    6. System defaults
    """

    # Server settings
    host: str = field(default="127.0.0.1")
    port: int = field(default=8000)
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ])

    # Network settings
    verify_ssl: bool = field(default=True)

    # Display settings
    output_format: str = field(default="table")  # table, json
    color_output: bool = field(default=True)

    # Card rendering
    card_size: int = field(default=CARD_SIZE)
    export_scale: int = field(default=EXPORT_SCALE)
    title_font: Optional[str] = field(default=None)  # Path to a TrueType font
    subtitle_font: Optional[str] = field(default=None)

    # Advanced
    log_level: str = field(default="INFO")

    @classmethod
    def load(cls, config_file: Optional[Path] = None) -> "OgcardConfig":
        """
        Load configuration from files and environment.

        Args:
            config_file: Specific config file to load (overrides search)

        Returns:
            Merged configuration object
        """
        config = cls()

        user_config_path = Path.home() / ".config" / "ogcard" / "config.toml"
        if user_config_path.exists():
            config._merge(cls._load_toml(user_config_path))

        local_paths = [
            Path.cwd() / "ogcard.toml",
            Path.cwd() / ".ogcardrc",
        ]

        for path in local_paths:
            if path.exists():
                config._merge(cls._load_toml(path))
                break

        if config_file and config_file.exists():
            config._merge(cls._load_toml(config_file))

        config._apply_env_vars()
        config._expand_paths()

        return config

    @staticmethod
    def _load_toml(path: Path) -> Dict[str, Any]:
        """Load TOML configuration file."""
        with open(path, "rb") as f:
            return tomli.load(f)

    def _merge(self, data: Dict[str, Any]):
        """Merge configuration data into this instance."""
        for key, value in data.items():
            if hasattr(self, key):
                setattr(self, key, value)

    @classmethod
    def _field_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    @staticmethod
    def _coerce(current_value: Any, value: str) -> Any:
        """Convert a string to the type of the current setting."""
        if isinstance(current_value, bool):
            return value.lower() in ("true", "1", "yes")
        if isinstance(current_value, int):
            return int(value)
        if isinstance(current_value, list):
            return [v.strip() for v in value.split(",") if v.strip()]
        return value

    def set_value(self, key: str, value: str):
        """
        Set a setting from its string form.

        Raises:
            KeyError: Unknown setting
            ValueError: Value does not convert to the setting's type
        """
        if key not in self._field_names():
            raise KeyError(key)
        setattr(self, key, self._coerce(getattr(self, key), value))

    def _apply_env_vars(self):
        """Apply environment variables with OGCARD_ prefix."""
        prefix = "OGCARD_"
        for key, value in os.environ.items():
            if key.startswith(prefix):
                config_key = key[len(prefix):].lower()
                if config_key in self._field_names():
                    self.set_value(config_key, value)

    def _expand_paths(self):
        """Expand ~ and environment variables in font paths."""
        for field_name in ("title_font", "subtitle_font"):
            value = getattr(self, field_name)
            if isinstance(value, str):
                setattr(self, field_name, os.path.expanduser(os.path.expandvars(value)))

    def save(self, path: Optional[Path] = None):
        """
        Save current configuration to TOML file.

        Args:
            path: Path to save to (defaults to user config)
        """
        if path is None:
            path = Path.home() / ".config" / "ogcard" / "config.toml"

        path.parent.mkdir(parents=True, exist_ok=True)

        # TOML has no null, so unset optional values are left out
        data = {k: v for k, v in asdict(self).items() if v is not None}
        with open(path, "wb") as f:
            tomli_w.dump(data, f)


# Global configuration instance
_config: Optional[OgcardConfig] = None


def get_config(reload: bool = False, config_file: Optional[Path] = None) -> OgcardConfig:
    """
    Get the global configuration instance.

    Args:
        reload: Force reload configuration from files
        config_file: Specific config file to load

    Returns:
        Global configuration instance
    """
    global _config
    if _config is None or reload:
        _config = OgcardConfig.load(config_file)
    return _config


def init_config(config_file: Optional[Path] = None, **kwargs) -> OgcardConfig:
    """
    Initialize configuration with command-line overrides.

    Args:
        config_file: Config file to load before applying overrides
        **kwargs: Configuration overrides; None values are ignored

    Returns:
        Configured instance
    """
    config = get_config(reload=config_file is not None, config_file=config_file)

    for key, value in kwargs.items():
        if hasattr(config, key) and value is not None:
            setattr(config, key, value)

    return config
