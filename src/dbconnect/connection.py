import logging
import random
from typing import Optional

from dbconnect.driver import ConnectOptions, Driver, DriverError, DriverSession
from dbconnect.servers import ServerDescriptor, ServerPool
from dbconnect.settings import EngineSettings
from dbconnect.tracing import trace_operation

logger = logging.getLogger(__name__)

NO_CONNECTION_HOST = "No Connection"


class ConnectionManager:
    """Owns at most one live session and fails over across the server pool.

    A failed connection attempt is logged and skipped; only exhausting the
    whole pool is reported, as a False return from ``ensure_connected``.
    """

    def __init__(
        self,
        pool: ServerPool,
        driver: Driver,
        settings: EngineSettings,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._pool = pool
        self._driver = driver
        self._settings = settings
        self._rng = rng
        self._persistent = settings.persistent
        self._session: Optional[DriverSession] = None
        self._active_index: Optional[int] = None
        self._active_server: Optional[ServerDescriptor] = None

    @property
    def pool(self) -> ServerPool:
        return self._pool

    @property
    def session(self) -> Optional[DriverSession]:
        return self._session

    @property
    def active_server_index(self) -> Optional[int]:
        return self._active_index

    @property
    def active_server(self) -> Optional[ServerDescriptor]:
        return self._active_server

    @property
    def host(self) -> str:
        server = self.active_server
        return server.host if server is not None else NO_CONNECTION_HOST

    @property
    def persistent(self) -> bool:
        return self._persistent

    def connection_exists(self) -> bool:
        return self._session is not None

    def ensure_connected(self) -> bool:
        """Return True when a session exists or one could be opened."""
        if self._session is not None:
            return True
        return trace_operation(
            "dbconnect.connect",
            self._connect_first_available,
            enabled=self._settings.trace_queries,
            attributes={"db.pool_size": len(self._pool)},
        )

    def _connect_first_available(self) -> bool:
        for index, server in enumerate(self._pool):
            session = self._try_connect(index, server)
            if session is None:
                continue
            self._session = session
            self._active_index = index
            self._active_server = server
            logger.info(
                "dbconnect_connected host=%s database=%s index=%d persistent=%s",
                server.host,
                server.database,
                index,
                self._persistent,
            )
            return True

        logger.warning("dbconnect_pool_exhausted servers=%d", len(self._pool))
        return False

    def _try_connect(self, index: int, server: ServerDescriptor) -> Optional[DriverSession]:
        options = ConnectOptions(
            port=server.port,
            persistent=self._persistent,
            charset=self._settings.charset,
            connect_timeout=self._settings.connect_timeout,
            read_timeout=self._settings.read_timeout,
            write_timeout=self._settings.write_timeout,
        )
        try:
            session = self._driver.connect(
                server.host,
                server.database,
                server.username,
                server.password,
                options=options,
            )
        except DriverError as exc:
            logger.warning(
                "dbconnect_connect_failed host=%s index=%d code=%s error=%s",
                server.host,
                index,
                exc.code,
                exc.message,
            )
            return None
        return session

    def close(self) -> None:
        """Release the session; the pool and audit counters are untouched."""
        session = self._session
        self._session = None
        self._active_index = None
        self._active_server = None
        if session is not None:
            self._release(session)

    def reconnect(self) -> bool:
        self.close()
        return self.ensure_connected()

    def set_persistent(self, persistent: bool) -> bool:
        """Change the persistence mode, recreating the session when it changes."""
        if persistent == self._persistent:
            return self.connection_exists()
        self._persistent = persistent
        return self.reconnect()

    def database_name(self) -> str:
        """Name of the connected database, connecting if needed; '' without a connection."""
        if not self.ensure_connected():
            return ""
        return self.active_server.database

    def load_balance(self) -> None:
        self._pool.randomize(self._rng)

    @staticmethod
    def _release(session: DriverSession) -> None:
        try:
            session.close()
        except DriverError as exc:
            logger.warning("dbconnect_close_failed code=%s error=%s", exc.code, exc.message)
