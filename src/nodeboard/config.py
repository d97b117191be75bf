"""Dashboard configuration.

Values are read once at startup and injected into the client and the
orchestrator; nothing reads the environment at call time.
"""

import logging
import os
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, Field

DEFAULT_PLUGIN_NAME = "keepix-polygon-plugin"
ENV_PREFIX = "NODEBOARD_"


def api_url_for(protocol: str, host: str) -> str:
    """Derive the Keepix API base URL from the page protocol and host.

    Plain http pages talk to port 2000, everything else to port 9000.

    Args:
        protocol: Page protocol, with or without trailing colon ("http:")
        host: Page hostname
    """
    scheme = protocol.rstrip(":")
    port = 2000 if scheme == "http" else 9000
    return f"{scheme}://{host}:{port}"


class DashboardConfig(BaseModel):
    """Runtime configuration for nodeboard."""

    api_url: str = Field(
        default="http://localhost:2000",
        pattern=r"^https?://.+",
        description="Keepix API base URL",
    )
    plugin_name: str = Field(default=DEFAULT_PLUGIN_NAME, min_length=1)
    request_timeout: float = Field(default=30.0, gt=0, description="Seconds per backend call")
    execution_client: str = Field(default="execution", description="Sync-state key prefix")
    consensus_client: str = Field(default="consensus", description="Sync-state key prefix")
    pool_mode: Literal["minipools", "staking"] = "minipools"

    status_interval: float = Field(default=2.0, gt=0)
    wallet_interval: float = Field(default=10.0, gt=0)
    sync_interval: float = Field(default=5.0, gt=0)
    node_info_interval: float = Field(default=10.0, gt=0)
    minipools_interval: float = Field(default=10.0, gt=0)
    staking_pools_interval: float = Field(default=60.0, gt=0)

    log_file: str = "./logs/nodeboard.log"
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = Field(default=12316, gt=0, lt=65536)

    @property
    def plugin_base_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/plugins/{self.plugin_name}"

    @property
    def log_level_value(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        return level if isinstance(level, int) else logging.INFO

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "DashboardConfig":
        """Build config from NODEBOARD_* environment variables.

        NODEBOARD_API_URL wins over NODEBOARD_PAGE_PROTOCOL/NODEBOARD_PAGE_HOST,
        which are combined with ``api_url_for``.
        """
        env = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = env.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw

        if "api_url" not in values:
            host = env.get(f"{ENV_PREFIX}PAGE_HOST")
            if host:
                protocol = env.get(f"{ENV_PREFIX}PAGE_PROTOCOL", "http:")
                values["api_url"] = api_url_for(protocol, host)

        return cls(**values)
