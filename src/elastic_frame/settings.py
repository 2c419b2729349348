"""Runtime settings for transport, scrolling and bulk chunking."""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict, Field

_ENV_PREFIX = "ELASTIC_FRAME_"
_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off"})
_logger = logging.getLogger(__name__)


def env_flag(suffix: str, *, default_value: bool) -> bool:
    """Read an ``ELASTIC_FRAME_<suffix>`` switch such as ``ELASTIC_FRAME_VERIFY_CERTS``.

    Unrecognized values are logged and ignored.

    Args:
        suffix (str): Variable name without the ``ELASTIC_FRAME_`` prefix.
        default_value (bool): Value used when the variable is unset or unrecognized.

    Returns:
        bool: Parsed switch value.

    """
    name = f"{_ENV_PREFIX}{suffix}"
    raw = os.getenv(name)
    if raw is None:
        return default_value
    normalized = raw.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    _logger.warning("Ignoring %s=%r: expected one of %s.", name, raw, sorted(_TRUTHY | _FALSY))
    return default_value


class ElasticFrameSettings(BaseModel):
    """Represent tunables shared by every cluster operation.

    Args:
        timeout_s (float): HTTP request timeout in seconds.
        verify_certs (bool): Whether TLS certificates are verified.
        proxy_url (str | None): Optional HTTP proxy URL.
        scroll_keep_alive (str): Server-side lifetime of a scroll context between pages.
        scroll_window_size (int): Hits per scroll page, also used when a query asks for all hits.
        bulk_chunk_size_mb (float): Upper bound of the estimated payload size per bulk request.

    """

    model_config = ConfigDict(frozen=True)

    timeout_s: float = Field(default=60.0, gt=0)
    verify_certs: bool = True
    proxy_url: str | None = None
    scroll_keep_alive: str = "1m"
    scroll_window_size: int = Field(default=10_000, gt=0)
    bulk_chunk_size_mb: float = Field(default=10.0, gt=0)

    @classmethod
    def from_env(cls) -> ElasticFrameSettings:
        """Build settings from ``ELASTIC_FRAME_*`` environment variables.

        Returns:
            ElasticFrameSettings: Settings with environment overrides applied.

        """
        defaults = cls()
        return cls(
            timeout_s=float(os.getenv(f"{_ENV_PREFIX}TIMEOUT_S", str(defaults.timeout_s))),
            verify_certs=env_flag("VERIFY_CERTS", default_value=defaults.verify_certs),
            proxy_url=os.getenv(f"{_ENV_PREFIX}PROXY_URL") or None,
            scroll_keep_alive=os.getenv(f"{_ENV_PREFIX}SCROLL_KEEP_ALIVE", defaults.scroll_keep_alive),
            scroll_window_size=int(
                os.getenv(f"{_ENV_PREFIX}SCROLL_WINDOW_SIZE", str(defaults.scroll_window_size)),
            ),
            bulk_chunk_size_mb=float(
                os.getenv(f"{_ENV_PREFIX}BULK_CHUNK_SIZE_MB", str(defaults.bulk_chunk_size_mb)),
            ),
        )
