"""Client configuration for pymuseum."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pymuseum._constants import (
    DEFAULT_LAT,
    DEFAULT_LNG,
    GEOLOCATION_TIMEOUT_SECONDS,
    LOCATION_UPDATE_INTERVAL_SECONDS,
)
from pymuseum.exceptions import MuseumConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class MuseumConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        Museum backend base URL (e.g. ``"https://museum.example/api"``).
    user_id : int
        Authenticated visitor id used in user-scoped endpoints.
    token : str or None
        Session token sent as ``Authorization: Basic <token>``.
    request_timeout : float
        Total timeout in seconds for a single HTTP request.  A request that
        times out counts as a connectivity failure.
    tracking_interval : float
        Seconds between navigation tracking ticks.
    geolocation_timeout : float
        Seconds to wait for a single fresh position fix.
    high_accuracy : bool
        Ask position providers for their most accurate fix.
    storage_dir : str or None
        Directory for the durable cache and pending queue.  ``None`` keeps
        everything in memory for the lifetime of the client.
    default_lat : float
        Latitude used as the seed for simulated positions.
    default_lng : float
        Longitude used as the seed for simulated positions.
    api_trace_enabled : bool
        Log (redacted) request and response bodies at DEBUG level.
    """

    base_url: str
    user_id: int = 1
    token: str | None = None
    request_timeout: float = 10.0
    tracking_interval: float = LOCATION_UPDATE_INTERVAL_SECONDS
    geolocation_timeout: float = GEOLOCATION_TIMEOUT_SECONDS
    high_accuracy: bool = True
    storage_dir: str | None = None
    default_lat: float = DEFAULT_LAT
    default_lng: float = DEFAULT_LNG
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.base_url or not self.base_url.strip():
            raise MuseumConfigError("base_url must be non-empty")
        if self.user_id <= 0:
            raise MuseumConfigError(f"user_id must be a positive integer, got {self.user_id}")
        if self.tracking_interval <= 0:
            raise MuseumConfigError("tracking_interval must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> MuseumConfig:
        """Create configuration from environment variables.

        Reads ``MUSEUM_BASE_URL`` and optional ``MUSEUM_*`` variables.
        Explicit keyword arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        MuseumConfig
            Populated configuration.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "MUSEUM_BASE_URL": "base_url",
            "MUSEUM_TOKEN": "token",
            "MUSEUM_STORAGE_DIR": "storage_dir",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP = {
            "MUSEUM_REQUEST_TIMEOUT": ("request_timeout", float),
            "MUSEUM_TRACKING_INTERVAL": ("tracking_interval", float),
            "MUSEUM_GEOLOCATION_TIMEOUT": ("geolocation_timeout", float),
            "MUSEUM_DEFAULT_LAT": ("default_lat", float),
            "MUSEUM_DEFAULT_LNG": ("default_lng", float),
            "MUSEUM_USER_ID": ("user_id", int),
        }
        for env_key, (field_name, cast) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = cast(val)
            except ValueError as exc:
                raise MuseumConfigError(f"{env_key} is not a valid number: {val!r}") from exc

        if "high_accuracy" not in overrides:
            config_kwargs["high_accuracy"] = _env_bool(env.get("MUSEUM_HIGH_ACCURACY"), True)

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(
                env.get("MUSEUM_API_TRACE_ENABLED"),
                False,
            )

        config_kwargs.update(overrides)
        if "base_url" not in config_kwargs:
            raise MuseumConfigError("MUSEUM_BASE_URL is not set")

        return cls(**config_kwargs)
