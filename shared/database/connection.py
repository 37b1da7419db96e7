"""PyDAL connection factory for NonprofitSuite."""

# flake8: noqa: E501


import logging
import os
import time

from pydal import DAL

logger = logging.getLogger(__name__)


def normalize_database_url(database_url: str | None = None) -> str:
    """
    Normalize a database URL for PyDAL.

    Falls back to building a URL from DB_* environment variables when no
    URL is given.

    Environment Variables:
        DB_TYPE: Database type (postgresql, mysql, mariadb, sqlite) - default: sqlite
        DB_HOST: Database host - default: localhost
        DB_PORT: Database port - default: 5432 (PostgreSQL) or 3306 (MySQL/MariaDB)
        DB_NAME: Database name - default: nonprofitsuite
        DB_USER: Database username - default: nonprofitsuite
        DB_PASSWORD: Database password - default: nonprofitsuite
    """
    if not database_url:
        db_type = os.getenv("DB_TYPE", "sqlite").lower()
        db_host = os.getenv("DB_HOST", "localhost")
        db_port = os.getenv("DB_PORT", "")
        db_name = os.getenv("DB_NAME", "nonprofitsuite")
        db_user = os.getenv("DB_USER", "nonprofitsuite")
        db_password = os.getenv("DB_PASSWORD", "nonprofitsuite")

        if db_type == "sqlite":
            database_url = f"sqlite://{db_name}.sqlite"
        elif db_type in ["mysql", "mariadb", "mariadb-galera"]:
            database_url = f"mysql://{db_user}:{db_password}@{db_host}:{db_port or '3306'}/{db_name}?set_encoding=utf8mb4"
        elif db_type in ["postgresql", "postgres"]:
            database_url = f"postgres://{db_user}:{db_password}@{db_host}:{db_port or '5432'}/{db_name}"
        else:
            database_url = f"{db_type}://{db_user}:{db_password}@{db_host}/{db_name}"

    # PyDAL uses postgres:// not postgresql://
    if database_url.startswith("postgresql://"):
        database_url = database_url.replace("postgresql://", "postgres://", 1)

    return database_url


def create_db_connection(
    database_url: str | None = None,
    pool_size: int = 10,
    migrate: bool = False,
    folder: str = "/tmp/pydal",
    max_retries: int = 30,
    retry_delay: float = 1.0,
) -> DAL:
    """
    Open a PyDAL connection, waiting for the database to come up.

    Args:
        database_url: Database URL (built from DB_* env vars if omitted)
        pool_size: Connection pool size
        migrate: Whether PyDAL may create/alter tables
        folder: PyDAL metadata folder
        max_retries: Connection attempts before giving up
        retry_delay: Seconds between attempts

    Returns:
        Connected DAL instance

    Raises:
        RuntimeError: If the database never became reachable
    """
    database_url = normalize_database_url(database_url)
    scheme = database_url.split("://")[0]

    if folder and not database_url.startswith("sqlite:memory"):
        os.makedirs(folder, exist_ok=True)

    last_error: Exception | None = None
    for attempt in range(max_retries):
        try:
            db = DAL(
                database_url,
                folder=folder,
                migrate=migrate,
                fake_migrate_all=False,
                lazy_tables=False,
                pool_size=pool_size,
                adapter_args={"attempts": 1},
            )
            db.executesql("SELECT 1")
            logger.info(f"Database connection established ({scheme}://***)")
            return db
        except Exception as e:
            last_error = e
            if attempt < max_retries - 1:
                logger.warning(
                    f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}"
                )
                time.sleep(retry_delay)

    raise RuntimeError(
        f"Could not connect to database after {max_retries} attempts: {last_error}"
    )
