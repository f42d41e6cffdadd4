"""
Configuration management for dbseed.

Loads defaults for the orchestrator from ``dbseed.toml`` files and
``DBSEED_``-prefixed environment variables using Pydantic.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CONFIG_FILENAME = "dbseed.toml"


class EngineConfig(BaseModel):
    """Embedded engine configuration."""

    kind: Optional[str] = Field(
        default="in_memory",
        description="Engine kind: 'in_memory' (fresh store per build) or 'sqlite'",
    )
    path: Optional[str] = Field(
        default=None,
        description="Database file for the 'sqlite' kind (in-memory when unset)",
    )
    echo: bool = Field(default=False, description="Log all SQL statements")
    foreign_keys: bool = Field(
        default=False,
        description="Enforce foreign keys in SQLite (random seeds rarely satisfy them)",
    )


class DialectConfig(BaseModel):
    """Dialect adapter configuration."""

    preset: str = Field(
        default="sqlite",
        description="Adapter preset: 'sqlite' (generic) or 'mssql' (SQL Server models)",
    )
    default_schema: str = Field(
        default="dbo", description="Schema used for table prefixes when a table has none"
    )
    unmapped_defaults: Optional[str] = Field(
        default=None,
        description="'passthrough' or 'null'; unset keeps the preset's policy",
    )


class GeneratorConfig(BaseModel):
    """Random record generator configuration."""

    locale: Optional[str] = Field(default=None, description="Faker locale (e.g. 'en_US')")
    seed: Optional[int] = Field(default=None, description="Seed for reproducible records")


class Settings(BaseSettings):
    """Main configuration for dbseed."""

    model_config = SettingsConfigDict(env_prefix="DBSEED_", env_nested_delimiter="__")

    engine: EngineConfig = Field(default_factory=EngineConfig)
    dialect: DialectConfig = Field(default_factory=DialectConfig)
    generator: GeneratorConfig = Field(default_factory=GeneratorConfig)

    @classmethod
    def from_toml(cls, path: Path | str) -> Settings:
        """
        Load configuration from TOML file.

        Args:
            path: Path to dbseed.toml file

        Returns:
            Settings instance

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If config file is invalid
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_path, "rb") as f:
            data = tomllib.load(f)

        return cls(**data)

    @classmethod
    def find_and_load(cls, start_dir: Optional[Path] = None) -> Settings:
        """
        Find and load configuration from dbseed.toml.

        Searches for dbseed.toml starting from start_dir and walking up
        parent directories. Falls back to environment variables and defaults
        when no file is found.

        Args:
            start_dir: Directory to start search (defaults to current directory)

        Returns:
            Settings instance
        """
        if start_dir is None:
            start_dir = Path.cwd()

        current = Path(start_dir).resolve()

        # Walk up directory tree
        while True:
            config_path = current / CONFIG_FILENAME
            if config_path.exists():
                return cls.from_toml(config_path)

            parent = current.parent
            if parent == current:
                break
            current = parent

        return cls()

    def to_toml(self, path: Path | str) -> None:
        """
        Write configuration to TOML file.

        Args:
            path: Path to write dbseed.toml
        """
        lines = ["# dbseed configuration", "", "[engine]"]
        if self.engine.kind is not None:
            lines.append(f'kind = "{self.engine.kind}"')
        if self.engine.path is not None:
            lines.append(f'path = "{self.engine.path}"')
        lines.append(f"echo = {str(self.engine.echo).lower()}")
        lines.append(f"foreign_keys = {str(self.engine.foreign_keys).lower()}")

        lines += ["", "[dialect]", f'preset = "{self.dialect.preset}"']
        lines.append(f'default_schema = "{self.dialect.default_schema}"')
        if self.dialect.unmapped_defaults is not None:
            lines.append(f'unmapped_defaults = "{self.dialect.unmapped_defaults}"')

        lines += ["", "[generator]"]
        if self.generator.locale is not None:
            lines.append(f'locale = "{self.generator.locale}"')
        if self.generator.seed is not None:
            lines.append(f"seed = {self.generator.seed}")

        Path(path).write_text("\n".join(lines) + "\n")
