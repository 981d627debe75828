"""
Control Room configuration loader.

Configuration is static and read once from config.yaml:
- server: bind address for the API server
- database: SQLAlchemy URL
- auth: JWT signing settings
- logging: log level
- policies: allowed categories and organizations
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


DEFAULT_CATEGORIES = [
    "HR",
    "Culture",
    "Documentation",
    "Process",
    "Safety",
    "Quality",
    "Other",
]

DEFAULT_ORGANIZATIONS = [
    "mertzcrew",
    "mertz_production",
]


@dataclass
class ServerConfig:
    port: int = 8000
    host: str = "0.0.0.0"


@dataclass
class DatabaseConfig:
    url: str = "sqlite+aiosqlite:///./data/controlroom.db"


@dataclass
class AuthConfig:
    jwt_secret: str = ""
    jwt_expire_hours: int = 24


@dataclass
class LoggingConfig:
    level: str = "INFO"


@dataclass
class PolicyRulesConfig:
    """Allowed values for policy category and organization."""
    categories: list[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    organizations: list[str] = field(default_factory=lambda: list(DEFAULT_ORGANIZATIONS))


@dataclass
class Config:
    """Static configuration loaded from config.yaml."""
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    policies: PolicyRulesConfig = field(default_factory=PolicyRulesConfig)


def load_config(config_path: str | Path) -> Config:
    """Load configuration from a YAML file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    config = Config()

    # Server
    if "server" in data:
        server_data = data["server"]
        config.server = ServerConfig(
            port=server_data.get("port", 8000),
            host=server_data.get("host", "0.0.0.0"),
        )

    # Database
    if "database" in data:
        db_data = data["database"]
        config.database = DatabaseConfig(
            url=db_data.get("url", "sqlite+aiosqlite:///./data/controlroom.db"),
        )

    # Auth
    if "auth" in data:
        auth_data = data["auth"]
        config.auth = AuthConfig(
            jwt_secret=auth_data.get("jwt_secret", ""),
            jwt_expire_hours=auth_data.get("jwt_expire_hours", 24),
        )

    # Logging
    if "logging" in data:
        logging_data = data["logging"]
        config.logging = LoggingConfig(
            level=logging_data.get("level", "INFO"),
        )

    # Policy rules
    if "policies" in data:
        rules_data = data["policies"] or {}
        config.policies = PolicyRulesConfig(
            categories=list(rules_data.get("categories") or DEFAULT_CATEGORIES),
            organizations=list(rules_data.get("organizations") or DEFAULT_ORGANIZATIONS),
        )

    return config
