"""
Configuration Management System
===============================

Provides dataclass-based configuration with YAML file loading support.
Command-line options are layered on top of these values by the CLI.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Any, Dict
import yaml

from parmove.utils.exceptions import ConfigurationError
from parmove.utils.logging_config import LoggingConfig, get_logger
from parmove.utils.notifications import NotificationConfig

logger = get_logger(__name__)


def default_settings_path() -> Path:
    """Location of the per-user settings file."""
    return Path.home() / ".parmove" / "config.yaml"


MODES = ("copy", "move")
POLICIES = ("other", "skip")


def _optional_path(value: Any) -> Optional[Path]:
    if value in (None, ""):
        return None
    return Path(str(value)).expanduser()


@dataclass
class SortingConfig:
    """Sorting run configuration.

    Attributes:
        output_directory: Directory the category folders are created in.
        mode: "copy" leaves sources in place, "move" relocates them.
        threads: Worker thread count. None means host parallelism.
        max_depth: Deepest nesting level to collect. None is unlimited.
        treat_no_extension_as: "other" or "skip" for extensionless files.
        treat_unmatched_as: "other" or "skip" for unknown extensions.
        categories_file: Optional TOML category file.
        blacklist: Extensions never sorted.
        blacklist_file: Optional file with one extension per line.
    """
    output_directory: Path = field(default_factory=lambda: Path("sorted"))
    mode: str = "copy"
    threads: Optional[int] = None
    max_depth: Optional[int] = None
    treat_no_extension_as: str = "other"
    treat_unmatched_as: str = "other"
    categories_file: Optional[Path] = None
    blacklist: List[str] = field(default_factory=list)
    blacklist_file: Optional[Path] = None

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        """Check value ranges and enumerations.

        Raises:
            ConfigurationError: If any value is out of range.
        """
        if self.mode not in MODES:
            raise ConfigurationError(
                f"Invalid mode {self.mode!r}, expected one of {MODES}",
                config_key="sorting.mode",
            )
        for key in ("treat_no_extension_as", "treat_unmatched_as"):
            if getattr(self, key) not in POLICIES:
                raise ConfigurationError(
                    f"Invalid {key} {getattr(self, key)!r}, expected one of {POLICIES}",
                    config_key=f"sorting.{key}",
                )
        if self.threads is not None and self.threads < 1:
            raise ConfigurationError(
                "Thread count must be greater than 0", config_key="sorting.threads"
            )
        if self.max_depth is not None and self.max_depth < 0:
            raise ConfigurationError(
                "Maximum depth cannot be negative", config_key="sorting.max_depth"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SortingConfig":
        """Create SortingConfig from dictionary."""
        if not data:
            return cls()

        blacklist = data.get("blacklist", [])
        if isinstance(blacklist, str):
            blacklist = [blacklist]
        if not isinstance(blacklist, list):
            raise ConfigurationError(
                "blacklist must be a list of extensions", config_key="sorting.blacklist"
            )

        threads = data.get("threads")
        max_depth = data.get("max_depth")

        return cls(
            output_directory=_optional_path(data.get("output_directory")) or Path("sorted"),
            mode=str(data.get("mode", cls.mode)).lower(),
            threads=int(threads) if threads is not None else None,
            max_depth=int(max_depth) if max_depth is not None else None,
            treat_no_extension_as=str(
                data.get("treat_no_extension_as", cls.treat_no_extension_as)
            ).lower(),
            treat_unmatched_as=str(
                data.get("treat_unmatched_as", cls.treat_unmatched_as)
            ).lower(),
            categories_file=_optional_path(data.get("categories_file")),
            blacklist=list(blacklist),
            blacklist_file=_optional_path(data.get("blacklist_file")),
        )


@dataclass
class IndexConfig:
    """HTML index settings.

    Attributes:
        enabled: Write an index after the run.
        filename: Index file name inside the output directory.
    """
    enabled: bool = False
    filename: str = "index.html"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexConfig":
        """Create IndexConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get("enabled", cls.enabled)),
            filename=str(data.get("filename", cls.filename)),
        )


@dataclass
class Config:
    """Main configuration container.

    Aggregates all configuration sections and provides loading from YAML.
    """
    sorting: SortingConfig = field(default_factory=SortingConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    index: IndexConfig = field(default_factory=IndexConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the settings file. If None, looks for
                        ~/.parmove/config.yaml and silently falls back
                        to defaults when it is absent.

        Returns:
            Config instance with loaded settings.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds
                values of the wrong type.
        """
        explicit = config_path is not None
        config_path = Path(config_path).expanduser() if explicit else default_settings_path()

        if not config_path.exists():
            if explicit:
                logger.warning(f"Settings file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse settings file: {e}", source=str(config_path), cause=e
            )
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read settings file: {e}", source=str(config_path), cause=e
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                "Settings file must contain a mapping", source=str(config_path)
            )

        try:
            config = cls._from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(
                f"Invalid value in settings file: {e}", source=str(config_path), cause=e
            )

        logger.info(f"Loaded settings from {config_path}")
        return config

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        return cls(
            sorting=SortingConfig.from_dict(data.get("sorting", {})),
            notifications=NotificationConfig.from_dict(data.get("notifications", {})),
            index=IndexConfig.from_dict(data.get("index", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        sorting = self.sorting
        data = {
            "sorting": {
                "output_directory": str(sorting.output_directory),
                "mode": sorting.mode,
                "threads": sorting.threads,
                "max_depth": sorting.max_depth,
                "treat_no_extension_as": sorting.treat_no_extension_as,
                "treat_unmatched_as": sorting.treat_unmatched_as,
                "categories_file": str(sorting.categories_file) if sorting.categories_file else None,
                "blacklist": list(sorting.blacklist),
                "blacklist_file": str(sorting.blacklist_file) if sorting.blacklist_file else None,
            },
            "notifications": {
                "enabled": self.notifications.enabled,
                "timeout_ms": self.notifications.timeout_ms,
            },
            "index": {
                "enabled": self.index.enabled,
                "filename": self.index.filename,
            },
            "logging": {
                "level": self.logging.level,
                "log_dir": str(self.logging.log_dir),
                "console_output": self.logging.console_output,
                "file_output": self.logging.file_output,
                "json_format": self.logging.json_format,
            },
        }

        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved settings to {config_path}")
