import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

Connection = sqlite3.Connection

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# seconds a writer waits on a locked database before sqlite3 gives up
DEFAULT_BUSY_TIMEOUT = 5.0

class DatabaseConfig:
    """Where the ledger database lives and how long writers wait for a lock."""

    def __init__(
        self,
        db_path: Path | str = "data/ledger.db",
        busy_timeout: float = DEFAULT_BUSY_TIMEOUT,
    ):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.busy_timeout = busy_timeout

    @property
    def connection_string(self) -> str:
        return str(self.db_path.absolute())

def configure_connection(conn: Connection) -> None:
    """
    Apply the ledger's settings to a fresh connection.

    Tables carry no foreign keys (deleting an account or a category leaves
    its transactions in place), so the foreign_keys pragma stays off.
    """
    conn.row_factory = sqlite3.Row

class DatabaseManager:
    """
    Owns the single SQLite connection shared by the ledger repositories.

    Two CLI processes may write the same file; account rows are guarded by
    their version column, and a writer waits busy_timeout seconds for the
    other one's lock instead of failing straight away.
    """

    def __init__(self, config: DatabaseConfig):
        self.config = config
        self._connection: Connection | None = None

    def get_connection(self) -> Connection:
        """Open the connection on first use and reuse it afterwards"""
        if self._connection is None:
            self._connection = self._create_connection()
        return self._connection

    def _create_connection(self) -> Connection:
        conn = sqlite3.connect(
            self.config.connection_string,
            timeout=self.config.busy_timeout,
            check_same_thread=False, # the event loop may hop threads
        )
        configure_connection(conn)
        return conn

    def close(self) -> None:
        if self._connection:
            self._connection.close()
            self._connection = None

    @contextmanager
    def transaction(self) -> Generator[Connection, None, None]:
        """
        Run a block of writes atomically.

        Commits when the block finishes, rolls back and re-raises on error.

        Usage:
            with db_manager.transaction() as conn:
                conn.execute("UPDATE accounts ...")
        """
        conn = self.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise

    def initialize(self, schema_path: Path = SCHEMA_PATH) -> None:
        """Create the ledger tables if they do not exist yet"""
        execute_schema(self.get_connection(), schema_path)

    def schema_version(self) -> Optional[sqlite3.Row]:
        """The latest applied schema_version row, or None before initialize()"""
        try:
            return self.get_connection().execute(
                "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
            ).fetchone()
        except sqlite3.OperationalError:
            return None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

def execute_schema(conn: Connection, schema_path: Path) -> None:
    """Run every statement of a .sql file and commit"""
    conn.executescript(schema_path.read_text())
    conn.commit()
