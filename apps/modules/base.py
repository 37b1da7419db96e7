"""
Generic CRUD base for NonprofitSuite modules.

A module is a thin subclass naming a table, its writable fields, their types
and defaults. The base provides create/get/get_all/update/delete/count/exists
with field whitelisting, type-based sanitization, pagination and caching.

Every operation returns ``(value, error)``; ``error`` is a ``ModuleError`` or
``None``:

    documents = DocumentsModule(db, cache)
    doc_id, error = documents.create({"title": "Bylaws", "category": "board"})
    if error:
        logger.warning(error.message)
"""

# flake8: noqa: E501


import logging
from typing import Any, Dict, List, Optional, Tuple

from apps.modules.pagination import MAX_PER_PAGE, PaginationParams
from apps.modules.query_optimizer import QueryOptimizer
from shared.cache import CacheManager
from shared.errors import (
    DB_DELETE_ERROR,
    DB_INSERT_ERROR,
    DB_QUERY_ERROR,
    DB_UPDATE_ERROR,
    NO_DATA,
    PRO_REQUIRED,
    ModuleError,
    not_found,
)
from shared.utils.dates import isoformat
from shared.utils.sanitize import absint, sanitize_field

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300  # seconds


class ModuleBase:
    """
    Parametrized CRUD operations over a single PyDAL table.

    Attributes:
        table_name: PyDAL table name
        module_name: Human readable label used in error messages
        requires_pro: Whether a Pro license is required
        fields: Writable column whitelist
        field_types: Column type map (integer, float, string, boolean, json, datetime)
        defaults: Values merged under caller data on create
        filter_fields: Columns usable as equality filters in get_all/count
        readonly_fields: Columns returned by reads but never written through the module
    """

    table_name: str = ""
    module_name: str = "Record"
    requires_pro: bool = False
    fields: Tuple[str, ...] = ()
    field_types: Dict[str, str] = {}
    defaults: Dict[str, Any] = {}
    filter_fields: Tuple[str, ...] = ()
    readonly_fields: Tuple[str, ...] = ()

    def __init__(
        self,
        db,
        cache: CacheManager,
        license_gate=None,
        optimizer: Optional[QueryOptimizer] = None,
        cache_ttl: int = DEFAULT_CACHE_TTL,
        max_per_page: int = MAX_PER_PAGE,
    ):
        """
        Initialize module with its collaborators.

        Args:
            db: PyDAL database instance
            cache: Cache manager for records and list queries
            license_gate: Object with ``is_pro_active()``; required for Pro modules
            optimizer: Query limit helper (defaults to a stock QueryOptimizer)
            cache_ttl: Seconds to keep records and lists cached
            max_per_page: Upper bound for the page size
        """
        if not self.table_name:
            raise ValueError(f"{type(self).__name__} must define table_name")
        self.db = db
        self.cache = cache
        self.license_gate = license_gate
        self.optimizer = optimizer or QueryOptimizer()
        self.cache_ttl = cache_ttl
        self.max_per_page = max_per_page

    @property
    def table(self):
        return self.db[self.table_name]

    @property
    def slug(self) -> str:
        """Cache namespace for this module, e.g. ``documents``."""
        if self.table_name.startswith("ns_"):
            return self.table_name[3:]
        return self.table_name

    # ==================== Helpers ====================

    def check_pro(self) -> Optional[ModuleError]:
        if not self.requires_pro:
            return None
        if self.license_gate is not None and self.license_gate.is_pro_active():
            return None
        return ModuleError(PRO_REQUIRED, f"{self.module_name} requires Pro license.")

    def sanitize_data(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Sanitize whitelisted keys by declared type; drop everything else."""
        return {
            name: sanitize_field(name, self.field_types.get(name, "string"), value)
            for name, value in data.items()
            if name in self.fields
        }

    def _column_names(self) -> List[str]:
        names = ["id", *self.fields, *self.readonly_fields]
        for stamp in ("created_at", "updated_at"):
            if stamp in self.table.fields and stamp not in names:
                names.append(stamp)
        return names

    def _select_columns(self) -> List[Any]:
        return [self.table[name] for name in self._column_names()]

    def _row_to_dict(self, row) -> Dict[str, Any]:
        return {name: isoformat(row[name]) for name in self._column_names()}

    def order_fields(self) -> Tuple[str, ...]:
        extra = tuple(f for f in ("created_at", "updated_at") if f in self.table.fields)
        return ("id", *self.fields, *self.readonly_fields, *extra)

    def build_query(self, args: Dict[str, Any]):
        """Build the WHERE clause for list queries; override per module."""
        query = self.table.id > 0
        for name in self.filter_fields:
            value = args.get(name)
            if value is None or value == "":
                continue
            field_type = self.field_types.get(name, "string")
            query &= self.table[name] == sanitize_field(name, field_type, value)
        return query

    def paginate(self, args: Optional[Dict[str, Any]] = None) -> PaginationParams:
        """Normalize pagination and clamp the page size to the module maximum."""
        args = args or {}
        pagination = PaginationParams.from_args(
            args, allowed_orderby=self.order_fields(), max_per_page=self.max_per_page
        )
        if args.get("limit") is not None:
            return pagination.with_per_page(
                self.optimizer.apply_safe_limit(args["limit"], self.slug)
            )
        safe_max = self.optimizer.get_max_records(self.slug)
        if pagination.per_page > safe_max:
            return pagination.with_per_page(safe_max)
        return pagination

    def get_pagination_meta(self, total: int, args: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.paginate(args).meta(total)

    # ==================== CRUD ====================

    def create(self, data: Dict[str, Any]) -> Tuple[Optional[int], Optional[ModuleError]]:
        """Insert a record built from defaults plus sanitized caller data."""
        error = self.check_pro()
        if error:
            return None, error

        values = self.sanitize_data({**self.defaults, **(data or {})})

        try:
            record_id = self.table.insert(**values)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to create {self.slug} record: {e}", exc_info=True)
            return None, ModuleError(
                DB_INSERT_ERROR, f"Failed to create {self.module_name.lower()} record."
            )

        self.cache.invalidate_related(self.slug)
        logger.info(f"Created {self.slug} record {record_id}")
        return int(record_id), None

    def get(self, record_id: Any) -> Tuple[Optional[Dict[str, Any]], Optional[ModuleError]]:
        """Fetch one record, served from cache when possible."""
        error = self.check_pro()
        if error:
            return None, error

        record_id = absint(record_id)
        cache_key = self.cache.item_key(self.slug, record_id)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached, None

        row = self.db(self.table.id == record_id).select(*self._select_columns()).first()
        if row is None:
            return None, not_found(self.module_name, {"id": record_id})

        record = self._row_to_dict(row)
        self.cache.set(cache_key, record, self.cache_ttl)
        return record, None

    def get_all(self, args: Optional[Dict[str, Any]] = None) -> Tuple[Optional[List[Dict[str, Any]]], Optional[ModuleError]]:
        """List records for the given filters and pagination arguments."""
        error = self.check_pro()
        if error:
            return None, error

        args = dict(args or {})
        cache_key = self.cache.list_key(self.slug, args)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached, None

        pagination = self.paginate(args)
        column = self.table[pagination.orderby]
        orderby = ~column if pagination.order == "DESC" else column

        try:
            with self.optimizer.timed(self.slug, query_args=args):
                rows = self.db(self.build_query(args)).select(
                    *self._select_columns(),
                    orderby=orderby,
                    limitby=pagination.limitby,
                )
        except Exception as e:
            logger.error(f"List query failed for {self.slug}: {e}", exc_info=True)
            return None, ModuleError(
                DB_QUERY_ERROR, f"Failed to load {self.module_name.lower()} records."
            )

        records = [self._row_to_dict(row) for row in rows]
        self.cache.set(cache_key, records, self.cache_ttl)
        return records, None

    def update(self, record_id: Any, data: Dict[str, Any]) -> Tuple[Optional[bool], Optional[ModuleError]]:
        """Update whitelisted fields present in ``data``."""
        error = self.check_pro()
        if error:
            return None, error

        values = self.sanitize_data(data or {})
        if not values:
            return None, ModuleError(NO_DATA, "No valid fields to update.")

        record_id = absint(record_id)
        try:
            updated = self.db(self.table.id == record_id).update(**values)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to update {self.slug} record {record_id}: {e}", exc_info=True)
            return None, ModuleError(
                DB_UPDATE_ERROR, f"Failed to update {self.module_name.lower()} record."
            )

        self.cache.invalidate_related(self.slug, record_id)
        if not updated:
            return None, not_found(self.module_name, {"id": record_id})
        return True, None

    def delete(self, record_id: Any) -> Tuple[Optional[bool], Optional[ModuleError]]:
        error = self.check_pro()
        if error:
            return None, error

        record_id = absint(record_id)
        try:
            deleted = self.db(self.table.id == record_id).delete()
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to delete {self.slug} record {record_id}: {e}", exc_info=True)
            return None, ModuleError(
                DB_DELETE_ERROR, f"Failed to delete {self.module_name.lower()} record."
            )

        self.cache.invalidate_related(self.slug, record_id)
        if not deleted:
            return None, not_found(self.module_name, {"id": record_id})
        return True, None

    def count(self, args: Optional[Dict[str, Any]] = None) -> Tuple[Optional[int], Optional[ModuleError]]:
        error = self.check_pro()
        if error:
            return None, error
        return self.db(self.build_query(dict(args or {}))).count(), None

    def exists(self, record_id: Any) -> bool:
        return self.db(self.table.id == absint(record_id)).count() > 0
