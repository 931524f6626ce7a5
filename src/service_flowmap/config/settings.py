"""Project configuration loaded from ``flowmap.yaml`` and the environment."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, model_validator

from ..core.exceptions import ConfigError
from .defaults import (
    BASE_RADIUS,
    CHILD_BASE_RADIUS,
    CHILD_MAX_RADIUS,
    CHILD_SPACING,
    DEFAULT_HOST,
    DEFAULT_PORT,
    FALLBACK_GAP,
    MAX_SESSIONS,
    NODE_SIZE,
    SESSION_TTL_SECONDS,
    SPACING_FACTOR,
    VIEWPORT_HEIGHT,
    VIEWPORT_WIDTH,
    get_default_database_path,
)

# Environment variable -> dotted config key
ENV_OVERRIDES = {
    "FLOWMAP_DATABASE_PATH": "database_path",
    "FLOWMAP_REMOTE_URL": "remote_url",
    "FLOWMAP_HOST": "server.host",
    "FLOWMAP_PORT": "server.port",
}


class LayoutConfig(BaseModel):
    """Radial layout parameters."""

    base_radius: float = Field(default=BASE_RADIUS, gt=0)
    spacing_factor: float = Field(default=SPACING_FACTOR, ge=0)
    child_base_radius: float = Field(default=CHILD_BASE_RADIUS, gt=0)
    child_spacing: float = Field(default=CHILD_SPACING, ge=0)
    child_max_radius: float = Field(default=CHILD_MAX_RADIUS, gt=0)
    fallback_gap: float = Field(default=FALLBACK_GAP, gt=0)
    viewport_width: float = Field(default=VIEWPORT_WIDTH, gt=0)
    viewport_height: float = Field(default=VIEWPORT_HEIGHT, gt=0)
    node_size: float = Field(default=NODE_SIZE, gt=0)

    @model_validator(mode="after")
    def _child_ring_inside_first_ring(self) -> LayoutConfig:
        if self.child_max_radius >= self.base_radius:
            raise ValueError("child_max_radius must be smaller than base_radius")
        if self.child_base_radius > self.child_max_radius:
            raise ValueError("child_base_radius must not exceed child_max_radius")
        return self


class ServerConfig(BaseModel):
    host: str = DEFAULT_HOST
    port: int = Field(default=DEFAULT_PORT, ge=1, le=65535)
    max_sessions: int = Field(default=MAX_SESSIONS, ge=1)
    session_ttl_seconds: float = Field(default=SESSION_TTL_SECONDS, gt=0)


class FlowMapConfig(BaseModel):
    """Complete service-flowmap configuration."""

    database_path: Path = Field(default_factory=get_default_database_path)
    remote_url: str | None = None
    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def load(cls, path: Path | None = None, use_env: bool = True) -> FlowMapConfig:
        """Load configuration from a YAML file, then apply env overrides.

        A missing file yields the defaults.

        Raises:
            ConfigError: If the file cannot be parsed or values are invalid
        """
        data: dict[str, Any] = {}
        if path is not None and path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(
                    f"Invalid YAML in {path}: {e}", {"path": str(path)}
                ) from e
            if not isinstance(data, dict):
                raise ConfigError(
                    f"Configuration root must be a mapping: {path}",
                    {"path": str(path)},
                )
            logger.debug(f"Loaded configuration from {path}")

        if use_env:
            data = _apply_env_overrides(data, os.environ)

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlowMapConfig:
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", {"errors": e.errors()}) from e


def _apply_env_overrides(
    data: dict[str, Any], environ: os._Environ[str] | dict[str, str]
) -> dict[str, Any]:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in data.items()}
    for env_name, dotted in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if not value:
            continue
        target = merged
        *parents, leaf = dotted.split(".")
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = value
        logger.debug(f"Config override from {env_name}: {dotted}")
    return merged
