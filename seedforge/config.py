"""
Batch seeding configuration.

Lists every app-managed directory an init container should reconcile,
so a single ``seedforge run`` replaces a hand-written seed script.

Example:
```yaml
backup_prefix: pre_upgrade
targets:
  - name: emqx-etc
    source: /opt/emqx/etc
    target: /humming_dir/emqx/etc
    release_file: /opt/emqx/releases/emqx_vars
    release_key: REL_VSN
    version_prefix: "emqx-"
  - name: gateway-conf
    source: /home/gateway/conf
    target: /humming_dir/gateway/conf
    version: "2.1.0"
    required: false
```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from seedforge.core.version import DEFAULT_RELEASE_KEY, ResolvedVersion, resolve_version
from seedforge.reconcile.backup import DEFAULT_BACKUP_PREFIX


class ConfigError(ValueError):
    """Raised when a seeding config cannot be loaded or validated."""

    pass


class SeedTarget(BaseModel):
    """One vendor source to reconcile into one persistent target."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Label used in logs and reports")
    source: Path = Field(description="Vendor source directory inside the image")
    target: Path = Field(description="Persistent (bind-mounted) target directory")

    # Version resolution
    version: str | None = Field(default=None, description="Explicit vendor version")
    release_file: Path | None = Field(
        default=None, description="KEY=value release file to read the version from"
    )
    release_key: str = Field(
        default=DEFAULT_RELEASE_KEY, description="Release file variable holding the version"
    )
    version_prefix: str = Field(
        default="", description="Prefix for versions read from the release file"
    )

    # Failure policy
    required: bool = Field(
        default=True, description="Whether a failure of this target fails the batch"
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be blank")
        return value.strip()

    def resolve_version(self) -> ResolvedVersion:
        """Resolve this target's vendor version."""
        return resolve_version(
            self.source,
            explicit=self.version,
            release_file=self.release_file,
            release_key=self.release_key,
            prefix=self.version_prefix,
        )

    def relative_to(self, base: Path) -> SeedTarget:
        """Return a copy with relative paths resolved against ``base``."""
        updates: dict[str, Any] = {}
        for field_name in ("source", "target", "release_file"):
            value = getattr(self, field_name)
            if value is not None and not value.is_absolute():
                updates[field_name] = base / value
        return self.model_copy(update=updates) if updates else self


class SeedConfig(BaseModel):
    """Top-level batch configuration."""

    model_config = ConfigDict(frozen=True)

    backup_prefix: str = Field(
        default=DEFAULT_BACKUP_PREFIX, description="Prefix of pre-refresh snapshot names"
    )
    targets: list[SeedTarget] = Field(default_factory=list, description="Targets in order")

    @field_validator("backup_prefix")
    @classmethod
    def _prefix_is_simple(cls, value: str) -> str:
        if not value or "/" in value or value in (".", ".."):
            raise ValueError(f"invalid backup prefix {value!r}")
        return value

    @field_validator("targets")
    @classmethod
    def _unique_names(cls, value: list[SeedTarget]) -> list[SeedTarget]:
        names = [t.name for t in value]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate target names: {', '.join(duplicates)}")
        return value

    def get_target(self, name: str) -> SeedTarget | None:
        """Get a target by name."""
        for target in self.targets:
            if target.name == name:
                return target
        return None

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> SeedConfig:
        """
        Build a config from parsed data.

        Args:
            data: Parsed mapping.
            base_dir: Directory that relative paths are resolved against.

        Returns:
            Validated SeedConfig.

        Raises:
            ConfigError: If validation fails.
        """
        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(str(e)) from e

        if base_dir is None:
            return config
        return config.model_copy(
            update={"targets": [t.relative_to(base_dir) for t in config.targets]}
        )

    @classmethod
    def from_yaml(cls, path: Path) -> SeedConfig:
        """
        Load config from a YAML file.

        Relative paths inside the file are resolved against the file's
        directory.

        Args:
            path: Path to YAML file.

        Returns:
            Loaded SeedConfig.

        Raises:
            ConfigError: If the file is unreadable, not YAML, or invalid.
        """
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"cannot read config {path}: {e}") from e

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ConfigError(f"cannot parse config {path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(f"config {path} must be a mapping")

        return cls.from_dict(data, base_dir=path.parent)
