"""Document Retention Service.

Applies retention policies to documents:
- Policy lookup by key or by document category (falling back to "notes")
- Manual archive / unarchive / expire
- Automatic archival of documents older than a policy's archive window
- Expiration of archived documents once their retention period has passed
"""

import datetime
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.errors import ModuleError, not_found
from shared.utils.dates import add_years, isoformat, utcnow

logger = logging.getLogger(__name__)


class RetentionService:
    """Service for document retention policies and the archival passes."""

    FALLBACK_POLICY = "notes"
    UNASSIGNED_POLICY = "standard"

    DEFAULT_POLICIES = [
        {
            "policy_name": "Published Documents",
            "policy_key": "published",
            "document_categories": ["board", "financial", "policies", "legal"],
            "retention_years": 0,
            "auto_archive_after_days": 365,
            "description": "Board minutes, financial statements, policies and legal documents. Kept permanently.",
        },
        {
            "policy_name": "Work Products",
            "policy_key": "work_products",
            "document_categories": ["committee", "programs", "grants"],
            "retention_years": 7,
            "auto_archive_after_days": 365,
            "description": "Committee, program and grant work products. Kept for 7 years.",
        },
        {
            "policy_name": "Notes & Drafts",
            "policy_key": "notes",
            "document_categories": ["other"],
            "retention_years": 3,
            "auto_archive_after_days": 180,
            "description": "Working notes and drafts. Kept for 3 years.",
        },
    ]

    def __init__(self, db, clock: Callable[[], datetime.datetime] = utcnow):
        """Initialize service with database connection."""
        self.db = db
        self.clock = clock

    @staticmethod
    def expiration_from(
        start: Optional[datetime.datetime], retention_years: Optional[int]
    ) -> Optional[datetime.datetime]:
        """Expiration date for a retention period; None means keep forever."""
        if start is None or not retention_years or retention_years <= 0:
            return None
        return add_years(start, int(retention_years))

    # ==================== Policies ====================

    def get_policy(self, policy_key: Optional[str]):
        if not policy_key:
            return None
        return (
            self.db(self.db.ns_retention_policies.policy_key == policy_key)
            .select()
            .first()
        )

    def get_active_policies(self):
        policies = self.db.ns_retention_policies
        return self.db(policies.is_active == True).select(  # noqa: E712
            orderby=policies.id
        )

    def get_policy_for_category(self, category: Optional[str]):
        """Find the active policy covering a category, else the fallback."""
        for policy in self.get_active_policies():
            if category and category in (policy.document_categories or []):
                return policy
        return self.get_policy(self.FALLBACK_POLICY)

    def install_default_policies(self) -> int:
        """Create the stock policies that do not exist yet."""
        created = 0
        for policy in self.DEFAULT_POLICIES:
            if self.get_policy(policy["policy_key"]):
                continue
            self.db.ns_retention_policies.insert(is_active=True, **policy)
            created += 1
        if created:
            self.db.commit()
            logger.info(f"Installed {created} default retention policies")
        return created

    def _resolve_policy(self, document):
        policy = None
        if document.retention_policy and document.retention_policy != self.UNASSIGNED_POLICY:
            policy = self.get_policy(document.retention_policy)
        return policy or self.get_policy_for_category(document.category)

    # ==================== Single document ====================

    def apply_policy(
        self, document_id: int, policy_key: Optional[str] = None
    ) -> Tuple[Optional[Dict[str, Any]], Optional[ModuleError]]:
        """Assign a policy to a document and compute its expiration date.

        Without ``policy_key`` the policy is chosen by document category.
        Expiration counts from the document's creation date.
        """
        document = self.db.ns_documents[document_id]
        if not document:
            return None, not_found("Document", {"id": document_id})

        if policy_key:
            policy = self.get_policy(policy_key)
        else:
            policy = self.get_policy_for_category(document.category)
        if not policy:
            return None, not_found("Retention policy", {"policy_key": policy_key})

        expiration = self.expiration_from(document.created_at, policy.retention_years)
        self.db(self.db.ns_documents.id == document_id).update(
            retention_policy=policy.policy_key,
            expiration_date=expiration,
        )
        self.db.commit()

        return {
            "document_id": document_id,
            "policy_key": policy.policy_key,
            "expiration_date": isoformat(expiration),
        }, None

    def archive_document(self, document_id: int) -> Tuple[Optional[bool], Optional[ModuleError]]:
        document = self.db.ns_documents[document_id]
        if not document:
            return None, not_found("Document", {"id": document_id})

        policy = self._resolve_policy(document)
        now = self.clock()
        self.db(self.db.ns_documents.id == document_id).update(
            is_archived=True,
            archived_at=now,
            retention_policy=policy.policy_key if policy else document.retention_policy,
            expiration_date=self.expiration_from(now, policy.retention_years if policy else 0),
        )
        self.db.commit()
        logger.info(f"Archived document {document_id}")
        return True, None

    def unarchive_document(self, document_id: int) -> Tuple[Optional[bool], Optional[ModuleError]]:
        if not self.db.ns_documents[document_id]:
            return None, not_found("Document", {"id": document_id})
        self.db(self.db.ns_documents.id == document_id).update(
            is_archived=False, archived_at=None
        )
        self.db.commit()
        return True, None

    def expire_document(self, document_id: int) -> Tuple[Optional[bool], Optional[ModuleError]]:
        if not self.db.ns_documents[document_id]:
            return None, not_found("Document", {"id": document_id})
        self.db(self.db.ns_documents.id == document_id).update(is_expired=True)
        self.db.commit()
        return True, None

    # ==================== Queries ====================

    def _archival_query(self, policy, cutoff: datetime.datetime, covered: List[str]):
        docs = self.db.ns_documents
        query = (docs.is_archived == False) & (docs.created_at <= cutoff)  # noqa: E712

        matched = docs.retention_policy == policy.policy_key
        unassigned = (docs.retention_policy == None) | (  # noqa: E711
            docs.retention_policy == self.UNASSIGNED_POLICY
        )
        categories = policy.document_categories or []
        if categories:
            matched |= unassigned & docs.category.belongs(categories)
        if policy.policy_key == self.FALLBACK_POLICY:
            uncovered = docs.category == None  # noqa: E711
            if covered:
                uncovered |= ~docs.category.belongs(covered)
            matched |= unassigned & uncovered
        return query & matched

    def _covered_categories(self, policies) -> List[str]:
        covered: List[str] = []
        for policy in policies:
            covered.extend(policy.document_categories or [])
        return covered

    def _expiration_query(self, now: datetime.datetime):
        docs = self.db.ns_documents
        return (
            (docs.is_expired == False)  # noqa: E712
            & (docs.expiration_date != None)  # noqa: E711
            & (docs.expiration_date <= now)
        )

    def get_eligible_for_archival(self, limit: int = 100) -> List[Dict[str, Any]]:
        now = self.clock()
        policies = list(self.get_active_policies())
        covered = self._covered_categories(policies)
        eligible: List[Dict[str, Any]] = []
        seen = set()
        for policy in policies:
            days = policy.auto_archive_after_days or 0
            if days <= 0:
                continue
            cutoff = now - datetime.timedelta(days=days)
            rows = self.db(self._archival_query(policy, cutoff, covered)).select(
                self.db.ns_documents.id,
                self.db.ns_documents.title,
                self.db.ns_documents.created_at,
                limitby=(0, limit),
            )
            for row in rows:
                if row.id in seen:
                    continue
                seen.add(row.id)
                eligible.append(
                    {
                        "document_id": row.id,
                        "title": row.title,
                        "policy_key": policy.policy_key,
                        "created_at": isoformat(row.created_at),
                    }
                )
        return eligible[:limit]

    def get_eligible_for_expiration(self, limit: int = 100) -> List[Dict[str, Any]]:
        docs = self.db.ns_documents
        rows = self.db(self._expiration_query(self.clock())).select(
            docs.id, docs.title, docs.expiration_date, limitby=(0, limit)
        )
        return [
            {
                "document_id": row.id,
                "title": row.title,
                "expiration_date": isoformat(row.expiration_date),
            }
            for row in rows
        ]

    # ==================== Job passes ====================

    def process_auto_archival(self) -> Dict[str, Any]:
        """Archive documents older than their policy's archive window.

        One UPDATE per active policy with a positive archive window.
        """
        result: Dict[str, Any] = {"archived_count": 0, "errors": []}
        now = self.clock()
        policies = list(self.get_active_policies())
        covered = self._covered_categories(policies)

        for policy in policies:
            days = policy.auto_archive_after_days or 0
            if days <= 0:
                continue

            cutoff = now - datetime.timedelta(days=days)
            try:
                archived = self.db(self._archival_query(policy, cutoff, covered)).update(
                    is_archived=True,
                    archived_at=now,
                    retention_policy=policy.policy_key,
                    expiration_date=self.expiration_from(now, policy.retention_years),
                )
                self.db.commit()
                result["archived_count"] += archived or 0
            except Exception as e:
                self.db.rollback()
                logger.error(
                    f"Auto-archival failed for policy {policy.policy_key}: {e}",
                    exc_info=True,
                )
                result["errors"].append(
                    {"policy_key": policy.policy_key, "error": str(e)}
                )

        return result

    def process_expiration(self) -> Dict[str, Any]:
        """Flag documents whose expiration date has passed."""
        result: Dict[str, Any] = {"expired_count": 0, "errors": []}
        try:
            expired = self.db(self._expiration_query(self.clock())).update(is_expired=True)
            self.db.commit()
            result["expired_count"] = expired or 0
        except Exception as e:
            self.db.rollback()
            logger.error(f"Document expiration pass failed: {e}", exc_info=True)
            result["errors"].append({"error": str(e)})
        return result

    def bulk_apply_policies(self) -> Dict[str, Any]:
        """Assign category policies to documents that have none yet."""
        docs = self.db.ns_documents
        rows = self.db(
            (docs.retention_policy == None)  # noqa: E711
            | (docs.retention_policy == self.UNASSIGNED_POLICY)
        ).select(docs.id)

        result: Dict[str, Any] = {"updated_count": 0, "errors": []}
        for row in rows:
            applied, error = self.apply_policy(row.id)
            if error:
                result["errors"].append({"document_id": row.id, "error": error.message})
            else:
                result["updated_count"] += 1
        return result

    def get_statistics(self) -> Dict[str, Any]:
        docs = self.db.ns_documents
        count = docs.id.count()
        by_policy = {
            row.ns_documents.retention_policy or self.UNASSIGNED_POLICY: row[count]
            for row in self.db(docs.id > 0).select(
                docs.retention_policy, count, groupby=docs.retention_policy
            )
        }
        return {
            "total": self.db(docs.id > 0).count(),
            "archived": self.db(docs.is_archived == True).count(),  # noqa: E712
            "expired": self.db(docs.is_expired == True).count(),  # noqa: E712
            "active": self.db(
                (docs.is_archived == False) & (docs.is_expired == False)  # noqa: E712
            ).count(),
            "by_policy": by_policy,
            "eligible_for_archival": len(self.get_eligible_for_archival(limit=1000)),
            "eligible_for_expiration": len(self.get_eligible_for_expiration(limit=1000)),
        }
