"""
JSON-based project configuration for stl_quote.

Allows overriding operational defaults through a `.stlquote.json` file.

Search order (first match wins):
1. Explicit config file path (CLI --config)
2. .stlquote.json in the part file's directory
3. .stlquote.json in the current working directory
4. ~/.stlquote.json

Pricing constants are fixed in config.py and are not configurable.

Example .stlquote.json:
{
    "upload": {
        "upload_dir": "uploads",
        "max_bytes": 10485760,
        "allowed_extensions": [".stl", ".step"]
    },
    "analysis": {
        "timeout_seconds": 30.0,
        "max_workers": 4
    },
    "output": {
        "precision": 2,
        "format": "text"
    },
    "logging": {
        "level": "INFO",
        "json_file": ""
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from stl_quote.config import DISPLAY_DECIMALS, MAX_UPLOAD_BYTES, UPLOAD_EXTENSIONS

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".stlquote.json"

OUTPUT_FORMATS = ("text", "json")


@dataclass
class UploadConfig:
    """Upload boundary settings."""
    upload_dir: str = "uploads"
    max_bytes: int = MAX_UPLOAD_BYTES
    allowed_extensions: List[str] = field(default_factory=lambda: list(UPLOAD_EXTENSIONS))


@dataclass
class AnalysisConfig:
    """Worker pool and timeout for mesh parsing + analysis."""
    timeout_seconds: Optional[float] = 30.0  # None = wait forever
    max_workers: Optional[int] = None  # None = ThreadPoolExecutor default


@dataclass
class OutputConfig:
    """Presentation settings."""
    precision: int = DISPLAY_DECIMALS
    format: str = "text"  # "text" or "json"


@dataclass
class LoggingConfig:
    """Logging settings applied by the CLI."""
    level: str = "INFO"
    json_file: str = ""


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    upload: UploadConfig = field(default_factory=UploadConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Check value ranges.

        Raises:
            ValueError: on the first out-of-range setting
        """
        if self.upload.max_bytes <= 0:
            raise ValueError(f"upload.max_bytes must be positive, got {self.upload.max_bytes}")
        timeout = self.analysis.timeout_seconds
        if timeout is not None and timeout <= 0:
            raise ValueError(f"analysis.timeout_seconds must be positive, got {timeout}")
        workers = self.analysis.max_workers
        if workers is not None and workers < 1:
            raise ValueError(f"analysis.max_workers must be at least 1, got {workers}")
        if self.output.format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output.format must be one of {OUTPUT_FORMATS}, got {self.output.format!r}"
            )
        if self.output.precision < 0:
            raise ValueError(f"output.precision must be >= 0, got {self.output.precision}")
        if not isinstance(logging.getLevelName(self.logging.level.upper()), int):
            raise ValueError(f"logging.level is not a log level: {self.logging.level!r}")

    @property
    def log_level(self) -> int:
        return logging.getLevelName(self.logging.level.upper())

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        """Convert configuration to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Create configuration from dictionary.

        Unknown sections and keys (including "_comment") are ignored.
        """
        config = cls()

        for section in fields(cls):
            values = data.get(section.name)
            if not isinstance(values, dict):
                continue
            target = getattr(config, section.name)
            for key, value in values.items():
                if key.startswith('_'):
                    continue
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning("Unknown config key %s.%s ignored", section.name, key)

        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        """Create configuration from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    part_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find configuration file using the search order in the module docstring.

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    candidates = []
    if part_path:
        candidates.append(Path(part_path).parent / CONFIG_FILENAME)
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(Path.home() / CONFIG_FILENAME)

    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def load_config(
    part_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration with fallback to defaults.

    A config file that cannot be read or parsed is logged and skipped.
    """
    config_path = find_config_file(part_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, OSError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def merge_configs(base: ProjectConfig, override: ProjectConfig) -> ProjectConfig:
    """Merge two configurations; non-default values in override win."""
    merged = ProjectConfig.from_dict(base.to_dict())
    defaults = ProjectConfig()

    for section in fields(ProjectConfig):
        override_section = getattr(override, section.name)
        default_section = getattr(defaults, section.name)
        merged_section = getattr(merged, section.name)
        for key, value in asdict(override_section).items():
            if value != getattr(default_section, key):
                setattr(merged_section, key, value)

    return merged


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> None:
    """Create a sample configuration file with documentation."""
    sample = {
        "_comment": "stl_quote configuration",
        "_version": "1.0",
        "upload": {
            "_comment": "Upload boundary: storage directory and limits",
            **asdict(UploadConfig()),
        },
        "analysis": {
            "_comment": "Parse + analysis worker pool; timeout null = no limit",
            **asdict(AnalysisConfig()),
        },
        "output": {
            "_comment": "Display precision and CLI output format (text|json)",
            **asdict(OutputConfig()),
        },
        "logging": {
            "_comment": "Log level and optional JSON-lines log file",
            **asdict(LoggingConfig()),
        },
    }

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
