"""Configuration management for Moneybook.

Reads configuration from ~/.config/moneybook.toml and creates default config if needed.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Optional
import tomllib
import tomli_w


@dataclass
class Config:
    """Application configuration."""

    base_dir: Path
    db_data_dir: Path
    db_filename: str
    log_level: str
    log_dir: Path
    default_organization_id: Optional[int] = None

    @property
    def db_path(self) -> Path:
        """Get the full database path (data_dir/filename)."""
        return self.db_data_dir / self.db_filename

    @classmethod
    def default(cls) -> "Config":
        """Create a Config with default values."""
        home = Path.home()
        base_dir = home / "data" / "moneybook"
        return cls(
            base_dir=base_dir,
            db_data_dir=base_dir / "db",
            db_filename="moneybook.db",
            log_level="INFO",
            log_dir=base_dir / "logs",
            default_organization_id=None,
        )


def get_config_path() -> Path:
    """Get the path to the config file."""
    return Path.home() / ".config" / "moneybook.toml"


def get_migrations_dir() -> Path:
    """Get the path to the migrations directory.

    This is always relative to the code location, not configurable.
    """
    return Path(__file__).parent / "db" / "migrations"


def get_seed_dir() -> Path:
    """Get the path to the bundled seed data directory."""
    return Path(__file__).parent / "db" / "seed"


def load_config() -> Config:
    """Load configuration from file, creating default if it doesn't exist.

    Returns:
        Config object with loaded or default values.
    """
    config_path = get_config_path()

    # If config doesn't exist, create it with defaults
    if not config_path.exists():
        config = Config.default()
        _write_config(config)
        return config

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    # Parse with defaults for any missing values
    base_dir = Path(data.get("base_dir", Path.home() / "data" / "moneybook"))

    db_config = data.get("database", {})
    db_data_dir = Path(db_config.get("data_dir", base_dir / "db"))
    db_filename = db_config.get("filename", "moneybook.db")

    log_config = data.get("logging", {})
    log_level = log_config.get("level", "INFO")
    log_dir = Path(log_config.get("log_dir", base_dir / "logs"))

    org_config = data.get("organization", {})
    default_organization_id = org_config.get("default_id")

    return Config(
        base_dir=base_dir,
        db_data_dir=db_data_dir,
        db_filename=db_filename,
        log_level=log_level,
        log_dir=log_dir,
        default_organization_id=default_organization_id,
    )


def _write_config(config: Config) -> None:
    """Write config to the config file.

    Args:
        config: Config object to write.
    """
    config_path = get_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "base_dir": str(config.base_dir),
        "database": {
            "data_dir": str(config.db_data_dir),
            "filename": config.db_filename,
        },
        "logging": {
            "level": config.log_level,
            "log_dir": str(config.log_dir),
        },
    }

    # TOML has no null, so an unset default organization is simply omitted
    if config.default_organization_id is not None:
        data["organization"] = {"default_id": config.default_organization_id}

    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)
