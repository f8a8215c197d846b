import logging
import random
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List, Mapping, Optional

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("host", "username", "password", "database")
DEFAULT_PORT = 3306


@dataclass(frozen=True)
class ServerDescriptor:
    """Credentials for one interchangeable database server."""

    host: str
    username: str
    password: str = field(repr=False)
    database: str
    port: int = DEFAULT_PORT

    @classmethod
    def from_mapping(cls, entry: Any) -> Optional["ServerDescriptor"]:
        """Admit a config entry, or return None when a required field is missing or blank."""
        if not isinstance(entry, Mapping):
            return None
        values = {}
        for name in REQUIRED_FIELDS:
            raw = entry.get(name)
            if not isinstance(raw, str) or not raw.strip():
                return None
            values[name] = raw
        port = entry.get("port", DEFAULT_PORT)
        if isinstance(port, bool) or not isinstance(port, int) or port <= 0:
            return None
        return cls(port=port, **values)


class ServerPool:
    """Ordered list of candidate servers; only ``randomize`` reorders it."""

    def __init__(self, servers: Iterable[ServerDescriptor] = ()) -> None:
        self._servers: List[ServerDescriptor] = list(servers)

    @classmethod
    def from_config(cls, entries: Any) -> "ServerPool":
        """Build a pool, silently dropping malformed entries."""
        admitted: List[ServerDescriptor] = []
        if isinstance(entries, (list, tuple)):
            for position, entry in enumerate(entries):
                server = (
                    entry
                    if isinstance(entry, ServerDescriptor)
                    else ServerDescriptor.from_mapping(entry)
                )
                if server is None:
                    logger.debug("server_pool_skip_entry position=%d", position)
                    continue
                admitted.append(server)
        return cls(admitted)

    def randomize(self, rng: Optional[random.Random] = None) -> None:
        """Shuffle the server order for naive load distribution."""
        (rng or random).shuffle(self._servers)

    def __len__(self) -> int:
        return len(self._servers)

    def __iter__(self) -> Iterator[ServerDescriptor]:
        return iter(list(self._servers))

    def __getitem__(self, index: int) -> ServerDescriptor:
        return self._servers[index]
