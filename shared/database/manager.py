"""Primary/replica connection pair for NonprofitSuite.

Writes and job bookkeeping always use the primary. Read-only reporting
(status counts) may go to a replica when one is configured.
"""

# flake8: noqa: E501

import logging
import os
from typing import Dict

from pydal import DAL

from shared.database.connection import create_db_connection
from shared.models.pydal_models import define_all_tables

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the worker's database connections.

    Usage:
        manager = DatabaseManager(primary_url="postgres://ns:ns@db:5432/nonprofitsuite")
        documents = DocumentsModule(manager.write, cache)
        total = manager.read(manager.read.ns_documents).count()
    """

    def __init__(
        self,
        primary_url: str | None = None,
        replica_url: str | None = None,
        pool_size: int = 10,
        migrate: bool = False,
        folder: str = "/tmp/pydal",
    ):
        self._primary = create_db_connection(primary_url, pool_size=pool_size, migrate=migrate, folder=folder)
        define_all_tables(self._primary, migrate=migrate)

        # Replica is read-only: never migrate it, keep its metadata apart
        self._replica = self._primary
        if replica_url and replica_url != primary_url:
            self._replica = create_db_connection(
                replica_url,
                pool_size=pool_size,
                migrate=False,
                folder=os.path.join(folder, "replica"),
            )
            define_all_tables(self._replica, migrate=False)
            logger.info("Read replica configured")

    @property
    def read(self) -> DAL:
        return self._replica

    @property
    def write(self) -> DAL:
        return self._primary

    @property
    def has_replica(self) -> bool:
        return self._replica is not self._primary

    def ping(self) -> Dict[str, bool]:
        """Run ``SELECT 1`` on each connection; used by the health endpoint."""
        result = {}
        for name, db in (("primary", self._primary), ("replica", self._replica)):
            if name == "replica" and not self.has_replica:
                continue
            try:
                db.executesql("SELECT 1")
                result[name] = True
            except Exception as e:
                logger.warning(f"Database ping on {name} failed: {e}")
                result[name] = False
        return result

    def close(self) -> None:
        for db in {id(self._primary): self._primary, id(self._replica): self._replica}.values():
            try:
                db.close()
            except Exception as e:
                logger.error(f"Error closing database connection: {e}")
        logger.info("Database connections closed")
