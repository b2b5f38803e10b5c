"""Client configuration for pyequip."""

from __future__ import annotations

import dataclasses
import os
import re
from typing import Any

from pyequip._constants import DEFAULT_CLOSE_COMMENT, DEFAULT_ID_PREFIX, DEFAULT_REMOVED_CONDITION
from pyequip.exceptions import EquipConfigError

# Domain-scoped deployment links only work for signed-in users of that domain.
_DOMAIN_MACRO_RE = re.compile(r"/a/macros/[^/]+/s/")


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def normalize_script_url(url: str) -> str:
    """Rewrite ``/a/macros/<domain>/s/`` deployment URLs to the public form."""
    url = url.strip()
    if "/a/macros/" in url:
        url = _DOMAIN_MACRO_RE.sub("/macros/s/", url)
    return url


@dataclasses.dataclass(frozen=True)
class EquipConfig:
    """Client configuration.

    Parameters
    ----------
    script_url : str
        URL of the published spreadsheet script serving the feed.
    api_key : str
        Shared static key sent with every read and write.
    poll_interval : float
        Seconds between background syncs started by
        :meth:`pyequip.client.InventoryClient.start_polling`.
    request_timeout : float
        Total timeout in seconds for a single HTTP call.
    pending_ttl : float
        Seconds a locally applied write is kept on top of remote data
        while the backend has not caught up. ``0`` keeps pending writes
        until they become visible.
    id_prefix : str
        Prefix for synthesized equipment ids (e.g. ``"GEN-"``).
    close_comment : str
        Condition written to items when a session is closed without a
        comment.
    removed_condition : str
        Condition written to an item removed from an active session.
    api_trace_enabled : bool
        Log (redacted) request and response payloads at DEBUG level.
    """

    script_url: str
    api_key: str
    poll_interval: float = 60.0
    request_timeout: float = 30.0
    pending_ttl: float = 600.0
    id_prefix: str = DEFAULT_ID_PREFIX
    close_comment: str = DEFAULT_CLOSE_COMMENT
    removed_condition: str = DEFAULT_REMOVED_CONDITION
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if not self.script_url.strip():
            raise EquipConfigError("script_url must be non-empty")
        if self.poll_interval <= 0:
            raise EquipConfigError(f"poll_interval must be positive, got {self.poll_interval}")
        if self.pending_ttl < 0:
            raise EquipConfigError(f"pending_ttl must be >= 0, got {self.pending_ttl}")

    @property
    def resolved_script_url(self) -> str:
        return normalize_script_url(self.script_url)

    @classmethod
    def from_env(cls, **overrides: Any) -> EquipConfig:
        """Create configuration from environment variables.

        Reads ``EQUIP_SCRIPT_URL``, ``EQUIP_API_KEY`` and the optional
        ``EQUIP_*`` tuning variables. Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "EQUIP_SCRIPT_URL": "script_url",
            "EQUIP_API_KEY": "api_key",
            "EQUIP_ID_PREFIX": "id_prefix",
            "EQUIP_CLOSE_COMMENT": "close_comment",
            "EQUIP_REMOVED_CONDITION": "removed_condition",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        # numeric settings
        for env_key, field_name in (
            ("EQUIP_POLL_INTERVAL", "poll_interval"),
            ("EQUIP_REQUEST_TIMEOUT", "request_timeout"),
            ("EQUIP_PENDING_TTL", "pending_ttl"),
        ):
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                try:
                    config_kwargs[field_name] = float(val)
                except ValueError as exc:
                    raise EquipConfigError(f"{env_key} must be a number, got {val!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("EQUIP_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)

        missing = [name for name in ("script_url", "api_key") if name not in config_kwargs]
        if missing:
            raise EquipConfigError(f"Missing configuration: {', '.join(missing)}")

        return cls(**config_kwargs)
