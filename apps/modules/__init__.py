"""CRUD modules built on the shared module base."""

# flake8: noqa: E501

from apps.modules.base import ModuleBase
from apps.modules.calendar_events import CalendarEventsModule
from apps.modules.documents import DocumentsModule
from apps.modules.pagination import PaginationParams
from apps.modules.query_optimizer import QueryOptimizer
from apps.modules.retention_policies import RetentionPoliciesModule

__all__ = [
    "CalendarEventsModule",
    "DocumentsModule",
    "ModuleBase",
    "PaginationParams",
    "QueryOptimizer",
    "RetentionPoliciesModule",
]
