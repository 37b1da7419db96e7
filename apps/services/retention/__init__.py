"""Document retention policies."""

from apps.services.retention.service import RetentionService

__all__ = ["RetentionService"]
