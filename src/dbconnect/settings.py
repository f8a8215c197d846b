"""Engine settings resolved from the environment."""

from dataclasses import dataclass
from typing import Optional

from dbconnect.util.env import get_env_bool, get_env_int, get_env_str

DEFAULT_CHARSET = "utf8mb4"
DEFAULT_CONNECT_TIMEOUT = 10


@dataclass(frozen=True)
class EngineSettings:
    """Connection and diagnostics options shared by every server in a pool.

    Credentials are not part of the settings; they travel with each
    ``ServerDescriptor``.
    """

    load_balance: bool = False
    persistent: bool = False
    charset: str = DEFAULT_CHARSET
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    read_timeout: Optional[int] = None
    write_timeout: Optional[int] = None
    trace_queries: bool = False

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from ``DBCONNECT_*`` environment variables."""
        return cls(
            load_balance=get_env_bool("DBCONNECT_LOAD_BALANCE", False),
            persistent=get_env_bool("DBCONNECT_PERSISTENT", False),
            charset=get_env_str("DBCONNECT_CHARSET", DEFAULT_CHARSET),
            connect_timeout=get_env_int("DBCONNECT_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT),
            read_timeout=get_env_int("DBCONNECT_READ_TIMEOUT"),
            write_timeout=get_env_int("DBCONNECT_WRITE_TIMEOUT"),
            trace_queries=get_env_bool("DBCONNECT_TRACE_QUERIES", False),
        )
