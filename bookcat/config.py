"""
Configuration management for bookcat.

Handles loading and saving user configuration from:
- XDG config directory: ~/.config/bookcat/config.json
- Fallback: ~/.bookcat/config.json

Environment variables override the file:
- BOOKCAT_DATABASE_URL: database backend for signed-in users
- BOOKCAT_LOCAL_PATH: directory of the guest-mode store
- GOOGLE_BOOKS_API_KEY: Google Books API key
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional
from dataclasses import dataclass, asdict, field

logger = logging.getLogger(__name__)


@dataclass
class StorageConfig:
    """Storage backends."""
    database_url: Optional[str] = None  # None: guest mode only
    local_path: Optional[str] = None  # None: ~/.local/share/bookcat
    echo_sql: bool = False

    def resolved_local_path(self) -> Path:
        if self.local_path:
            return Path(self.local_path).expanduser()
        return Path.home() / ".local" / "share" / "bookcat"


@dataclass
class EnrichmentConfig:
    """Metadata enrichment settings."""
    enabled: bool = True
    api_key: Optional[str] = None
    base_url: str = "https://www.googleapis.com/books/v1/volumes"
    timeout: float = 10.0
    rate_limit: int = 100  # requests per minute


@dataclass
class ServerConfig:
    """Web server configuration."""
    host: str = "127.0.0.1"
    port: int = 8000


@dataclass
class CLIConfig:
    """CLI default options."""
    verbose: bool = False
    color: bool = True


@dataclass
class BookcatConfig:
    """Main bookcat configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    enrichment: EnrichmentConfig = field(default_factory=EnrichmentConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    cli: CLIConfig = field(default_factory=CLIConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "storage": asdict(self.storage),
            "enrichment": asdict(self.enrichment),
            "server": asdict(self.server),
            "cli": asdict(self.cli),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BookcatConfig':
        """Create from dictionary."""
        return cls(
            storage=StorageConfig(**data.get("storage", {})),
            enrichment=EnrichmentConfig(**data.get("enrichment", {})),
            server=ServerConfig(**data.get("server", {})),
            cli=CLIConfig(**data.get("cli", {})),
        )


def get_config_path() -> Path:
    """
    Get configuration file path.

    Follows XDG Base Directory specification:
    1. ~/.config/bookcat/config.json
    2. Fallback: ~/.bookcat/config.json

    Returns:
        Path to config file
    """
    xdg_config_home = Path.home() / ".config"
    if xdg_config_home.exists():
        config_dir = xdg_config_home / "bookcat"
    else:
        config_dir = Path.home() / ".bookcat"

    return config_dir / "config.json"


def apply_env_overrides(config: BookcatConfig) -> BookcatConfig:
    """Apply environment variable overrides in place."""
    database_url = os.environ.get("BOOKCAT_DATABASE_URL")
    if database_url:
        config.storage.database_url = database_url

    local_path = os.environ.get("BOOKCAT_LOCAL_PATH")
    if local_path:
        config.storage.local_path = local_path

    api_key = os.environ.get("GOOGLE_BOOKS_API_KEY")
    if api_key:
        config.enrichment.api_key = api_key

    return config


def load_config(path: Optional[Path] = None) -> BookcatConfig:
    """
    Load configuration from file and environment.

    Args:
        path: Config file to read (defaults to get_config_path())

    Returns:
        BookcatConfig instance with loaded values or defaults
    """
    config_path = Path(path) if path else get_config_path()

    config = BookcatConfig()
    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config = BookcatConfig.from_dict(json.load(f))
        except (json.JSONDecodeError, OSError, TypeError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}; using defaults")
            config = BookcatConfig()

    return apply_env_overrides(config)


def save_config(config: BookcatConfig, path: Optional[Path] = None) -> Path:
    """
    Save configuration to file.

    Args:
        config: Configuration to save
        path: Destination (defaults to get_config_path())

    Returns:
        Path written
    """
    config_path = Path(path) if path else get_config_path()

    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)

    logger.info(f"Configuration saved to {config_path}")
    return config_path


def update_config(
    path: Optional[Path] = None,
    # Storage settings
    database_url: Optional[str] = None,
    local_path: Optional[str] = None,
    # Enrichment settings
    enrichment_enabled: Optional[bool] = None,
    enrichment_api_key: Optional[str] = None,
    enrichment_timeout: Optional[float] = None,
    # Server settings
    server_host: Optional[str] = None,
    server_port: Optional[int] = None,
    # CLI settings
    cli_verbose: Optional[bool] = None,
    cli_color: Optional[bool] = None,
) -> BookcatConfig:
    """
    Update configuration.

    Only updates provided values, leaving others unchanged.
    """
    config_path = Path(path) if path else get_config_path()
    config = BookcatConfig()
    if config_path.exists():
        with open(config_path, 'r') as f:
            config = BookcatConfig.from_dict(json.load(f))

    if database_url is not None:
        config.storage.database_url = database_url
    if local_path is not None:
        config.storage.local_path = local_path

    if enrichment_enabled is not None:
        config.enrichment.enabled = enrichment_enabled
    if enrichment_api_key is not None:
        config.enrichment.api_key = enrichment_api_key
    if enrichment_timeout is not None:
        config.enrichment.timeout = enrichment_timeout

    if server_host is not None:
        config.server.host = server_host
    if server_port is not None:
        config.server.port = server_port

    if cli_verbose is not None:
        config.cli.verbose = cli_verbose
    if cli_color is not None:
        config.cli.color = cli_color

    save_config(config, config_path)
    return config
