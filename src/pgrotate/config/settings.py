"""
Rotation settings for pgrotate.

Provides configuration for password generation, database connections
and the rotation orchestrator. Settings are read from environment
variables when running inside the rotation function, or from a JSON /
YAML file when driven from the CLI.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any

from pgrotate.exceptions import ConfigurationError

# Characters never allowed in generated passwords, regardless of config
ALWAYS_EXCLUDED = "\"@/\\'"

DEFAULT_PASSWORD_LENGTH = 32
DEFAULT_SYMBOLS = "!#$%&()*+,-.:;<=>?[]^_`{|}~"

SSL_MODES = ("disable", "allow", "prefer", "require", "verify-ca", "verify-full")

TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


@dataclass
class PasswordPolicy:
    """
    Constraints on generated passwords.

    Attributes:
        length: Password length
        exclude_characters: Extra characters to leave out; the characters
            in ALWAYS_EXCLUDED are left out in any case
        symbols: Symbol alphabet before exclusions
        require_each_type: Require one uppercase, lowercase, digit and symbol
    """

    length: int = DEFAULT_PASSWORD_LENGTH
    exclude_characters: str = ALWAYS_EXCLUDED
    symbols: str = DEFAULT_SYMBOLS
    require_each_type: bool = True

    def __post_init__(self) -> None:
        self.exclude_characters = "".join(
            sorted(set(self.exclude_characters) | set(ALWAYS_EXCLUDED))
        )
        if self.length < 4:
            raise ConfigurationError(
                f"Password length must be at least 4, got {self.length}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "length": self.length,
            "exclude_characters": self.exclude_characters,
            "symbols": self.symbols,
            "require_each_type": self.require_each_type,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PasswordPolicy:
        """Create from dictionary."""
        return cls(
            length=data.get("length", DEFAULT_PASSWORD_LENGTH),
            exclude_characters=data.get("exclude_characters", ALWAYS_EXCLUDED),
            symbols=data.get("symbols", DEFAULT_SYMBOLS),
            require_each_type=data.get("require_each_type", True),
        )


@dataclass
class DatabaseSettings:
    """
    Settings for the transient database connections.

    Attributes:
        ssl_mode: libpq sslmode. "require" encrypts without checking the
            server certificate; only use it on trusted private networks.
        ssl_root_cert: Path to the CA bundle used by verify-ca/verify-full
        connect_timeout: Connection timeout in seconds
        statement_timeout_ms: Server-side statement timeout
    """

    ssl_mode: str = "verify-full"
    ssl_root_cert: str | None = None
    connect_timeout: int = 5
    statement_timeout_ms: int = 10000

    def __post_init__(self) -> None:
        if self.ssl_mode not in SSL_MODES:
            raise ConfigurationError(
                f"Unknown ssl_mode {self.ssl_mode!r}. Valid: {', '.join(SSL_MODES)}"
            )
        if self.connect_timeout <= 0:
            raise ConfigurationError("connect_timeout must be positive")
        if self.statement_timeout_ms < 0:
            raise ConfigurationError("statement_timeout_ms must not be negative")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "ssl_mode": self.ssl_mode,
            "ssl_root_cert": self.ssl_root_cert,
            "connect_timeout": self.connect_timeout,
            "statement_timeout_ms": self.statement_timeout_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DatabaseSettings:
        """Create from dictionary."""
        return cls(
            ssl_mode=data.get("ssl_mode", "verify-full"),
            ssl_root_cert=data.get("ssl_root_cert"),
            connect_timeout=data.get("connect_timeout", 5),
            statement_timeout_ms=data.get("statement_timeout_ms", 10000),
        )


@dataclass
class RotationSettings:
    """
    Complete rotation configuration.

    Attributes:
        password: Password generation policy
        database: Database connection settings
        verify_before_finish: Re-verify pending credentials before promotion
        require_rotation_enabled: Refuse to run on secrets without rotation enabled
        region: AWS region for the Secrets Manager client
        endpoint_url: Optional Secrets Manager endpoint (VPC endpoint, localstack)
    """

    password: PasswordPolicy = field(default_factory=PasswordPolicy)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    verify_before_finish: bool = True
    require_rotation_enabled: bool = True
    region: str | None = None
    endpoint_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "password": self.password.to_dict(),
            "database": self.database.to_dict(),
            "verify_before_finish": self.verify_before_finish,
            "require_rotation_enabled": self.require_rotation_enabled,
            "region": self.region,
            "endpoint_url": self.endpoint_url,
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RotationSettings:
        """Create from dictionary."""
        return cls(
            password=PasswordPolicy.from_dict(data.get("password", {})),
            database=DatabaseSettings.from_dict(data.get("database", {})),
            verify_before_finish=data.get("verify_before_finish", True),
            require_rotation_enabled=data.get("require_rotation_enabled", True),
            region=data.get("region"),
            endpoint_url=data.get("endpoint_url"),
        )

    @classmethod
    def from_file(cls, path: str) -> RotationSettings:
        """Load settings from a JSON or YAML file."""
        path = os.path.expanduser(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                data = json.load(f)
            else:
                import yaml

                data = yaml.safe_load(f)
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Settings file {path} must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_env(cls) -> RotationSettings:
        """
        Load settings from environment variables.

        Environment variables:
            PGROTATE_CONFIG_FILE: Path to a settings file (takes precedence)
            PASSWORD_LENGTH: Generated password length
            EXCLUDE_CHARACTERS: Extra characters to exclude from passwords
            DB_SSL_MODE: libpq sslmode for database connections
            DB_CA_BUNDLE_PATH: CA bundle for certificate verification
            DB_CONNECT_TIMEOUT: Connection timeout in seconds
            DB_STATEMENT_TIMEOUT_MS: Statement timeout in milliseconds
            VERIFY_BEFORE_FINISH: Re-verify before promotion (default true)
            REQUIRE_ROTATION_ENABLED: Require rotation enabled (default true)
            SECRETS_MANAGER_ENDPOINT: Secrets Manager endpoint override
            AWS_REGION: AWS region

        Returns:
            RotationSettings instance
        """
        config_file = os.getenv("PGROTATE_CONFIG_FILE")
        if config_file and os.path.exists(config_file):
            return cls.from_file(config_file)

        password = PasswordPolicy(
            length=_env_int("PASSWORD_LENGTH", DEFAULT_PASSWORD_LENGTH),
            exclude_characters=os.getenv("EXCLUDE_CHARACTERS", ALWAYS_EXCLUDED),
        )
        database = DatabaseSettings(
            ssl_mode=os.getenv("DB_SSL_MODE", "verify-full"),
            ssl_root_cert=os.getenv("DB_CA_BUNDLE_PATH") or None,
            connect_timeout=_env_int("DB_CONNECT_TIMEOUT", 5),
            statement_timeout_ms=_env_int("DB_STATEMENT_TIMEOUT_MS", 10000),
        )

        return cls(
            password=password,
            database=database,
            verify_before_finish=_env_bool("VERIFY_BEFORE_FINISH", True),
            require_rotation_enabled=_env_bool("REQUIRE_ROTATION_ENABLED", True),
            region=os.getenv("AWS_REGION") or None,
            endpoint_url=os.getenv("SECRETS_MANAGER_ENDPOINT") or None,
        )
