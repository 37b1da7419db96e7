"""Beta Application Service.

Admission control for the beta program:
- Application validation (required fields, state/territory, email, duplicates)
- Slot allocation: 501(c)(3) slots are capped globally, pre-nonprofit slots
  are capped per state
- Approved applications receive a BETA-XXXX-XXXX-XXXX-XXXX license key
- Activity log for every application event
"""

# flake8: noqa: E501


import datetime
import logging
import secrets
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from shared.errors import (
    DB_INSERT_ERROR,
    DUPLICATE_EMAIL,
    INVALID_EMAIL,
    INVALID_LICENSE,
    INVALID_STATE,
    INVALID_TYPE,
    MISSING_FIELD,
    NOT_APPROVED,
    ModuleError,
    not_found,
)
from shared.utils.dates import isoformat, utcnow
from shared.utils.sanitize import is_valid_email, sanitize_email, sanitize_text, to_bool

logger = logging.getLogger(__name__)

SETTINGS_OPTION = "beta_program_settings"
DEFAULT_PROGRAM_SETTINGS = {"max_501c3_slots": 500, "max_prenp_per_state": 10}

# 50 states plus DC and the inhabited territories
STATES_TERRITORIES = frozenset(
    [
        "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
        "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
        "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
        "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
        "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
        "DC", "PR", "VI", "GU", "AS", "MP",
    ]
)

REQUIRED_FIELDS = ("organization_name", "contact_name", "contact_email", "state")

APPROVED_MESSAGE = "Congratulations! Your application has been approved. Check your email for your license key."
WAITLIST_MESSAGE = "Your application has been received and placed on the waitlist. We will notify you if a slot becomes available."


@dataclass(slots=True)
class BetaSubmissionResult:
    """Outcome of an accepted beta application."""

    success: bool
    application_id: int
    status: str
    license_key: Optional[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class BetaApplicationService:
    """Service for beta program applications and slot allocation."""

    STATUS_APPROVED = "approved"
    STATUS_WAITLIST = "waitlist"
    STATUS_PENDING = "pending"
    STATUS_REJECTED = "rejected"

    SLOT_501C3 = "501c3"
    SLOT_PRE_NONPROFIT = "pre_nonprofit"

    # Statuses that hold a slot
    OCCUPYING_STATUSES = (STATUS_APPROVED, STATUS_PENDING)

    def __init__(self, db, options, clock: Callable[[], datetime.datetime] = utcnow):
        """Initialize service with database connection and options store."""
        self.db = db
        self.options = options
        self.clock = clock

    @property
    def settings(self) -> Dict[str, Any]:
        return self.options.get_dict(SETTINGS_OPTION, DEFAULT_PROGRAM_SETTINGS)

    def _application_to_dict(self, row) -> Dict[str, Any]:
        table = self.db.ns_beta_applications
        return {name: isoformat(row[name]) for name in table.fields}

    # ==================== Submission ====================

    def _validate(self, data: Dict[str, Any]) -> Optional[ModuleError]:
        for name in REQUIRED_FIELDS:
            if not sanitize_text(data.get(name)):
                return ModuleError(MISSING_FIELD, f"Required field missing: {name}", {"field": name})

        if sanitize_text(data["state"]).upper() not in STATES_TERRITORIES:
            return ModuleError(INVALID_STATE, "Invalid state or territory code")

        email = sanitize_email(data["contact_email"])
        if not is_valid_email(email):
            return ModuleError(INVALID_EMAIL, "Invalid email address")

        applications = self.db.ns_beta_applications
        if self.db(applications.contact_email == email).count():
            return ModuleError(DUPLICATE_EMAIL, "An application with this email already exists")

        return None

    def check_slot_availability(self, slot_type: str, state: Optional[str] = None) -> bool:
        """Whether a new application of ``slot_type`` still fits.

        501(c)(3) slots are counted program-wide. Pre-nonprofit slots are
        counted per state.
        """
        applications = self.db.ns_beta_applications
        settings = self.settings
        query = (applications.slot_type == slot_type) & applications.status.belongs(
            self.OCCUPYING_STATUSES
        )

        if slot_type == self.SLOT_501C3:
            return self.db(query).count() < int(settings["max_501c3_slots"])

        query &= applications.state == (state or "").upper()
        return self.db(query).count() < int(settings["max_prenp_per_state"])

    @staticmethod
    def generate_license_key() -> str:
        segments = [secrets.token_hex(2).upper() for _ in range(4)]
        return "BETA-" + "-".join(segments)

    def submit_application(
        self, data: Dict[str, Any]
    ) -> Tuple[Optional[BetaSubmissionResult], Optional[ModuleError]]:
        """Validate an application and approve it or place it on the waitlist."""
        error = self._validate(data)
        if error:
            return None, error

        is_501c3 = to_bool(data.get("is_501c3"))
        slot_type = self.SLOT_501C3 if is_501c3 else self.SLOT_PRE_NONPROFIT
        state = sanitize_text(data["state"]).upper()

        approved = self.check_slot_availability(slot_type, state)
        status = self.STATUS_APPROVED if approved else self.STATUS_WAITLIST

        record = {
            "organization_name": sanitize_text(data["organization_name"]),
            "ein": sanitize_text(data.get("ein")),
            "contact_name": sanitize_text(data["contact_name"]),
            "contact_email": sanitize_email(data["contact_email"]),
            "contact_phone": sanitize_text(data.get("contact_phone")),
            "state": state,
            "city": sanitize_text(data.get("city")),
            "is_501c3": is_501c3,
            "has_determination_letter": to_bool(data.get("has_determination_letter")),
            "slot_type": slot_type,
            "status": status,
            "application_date": self.clock(),
        }
        if approved:
            record.update(
                license_key=self.generate_license_key(),
                approved_date=self.clock(),
                approved_by="auto",
            )

        try:
            application_id = self.db.ns_beta_applications.insert(**record)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save beta application: {e}", exc_info=True)
            return None, ModuleError(DB_INSERT_ERROR, "Failed to save application")

        self.log_activity(
            application_id, "application_submitted", {"status": status, "slot_type": slot_type}
        )
        logger.info(f"Beta application {application_id} {status} ({slot_type}, {state})")

        return BetaSubmissionResult(
            success=True,
            application_id=int(application_id),
            status=status,
            license_key=record.get("license_key"),
            message=APPROVED_MESSAGE if approved else WAITLIST_MESSAGE,
        ), None

    # ==================== License lifecycle ====================

    def activate_license(
        self, license_key: str, site_data: Optional[Dict[str, Any]] = None
    ) -> Tuple[Optional[bool], Optional[ModuleError]]:
        application = self._get_by_license(license_key)
        if not application:
            return None, ModuleError(INVALID_LICENSE, "Invalid license key")
        if application.status != self.STATUS_APPROVED:
            return None, ModuleError(NOT_APPROVED, "Application not approved")

        application.update_record(license_activated=True, license_activated_date=self.clock())
        self.db.commit()
        self.log_activity(application.id, "license_activated", site_data or {})
        return True, None

    def mark_forming_module_completed(
        self, application_id: int
    ) -> Tuple[Optional[bool], Optional[ModuleError]]:
        application = self.db.ns_beta_applications[application_id]
        if not application:
            return None, not_found("Beta application", {"id": application_id})

        application.update_record(
            forming_module_completed=True, forming_module_completed_date=self.clock()
        )
        self.db.commit()
        self.log_activity(application_id, "forming_module_completed")
        return True, None

    def promote_waitlist(
        self, slot_type: str, state: Optional[str] = None
    ) -> Tuple[Optional[List[int]], Optional[ModuleError]]:
        """Approve the oldest waitlisted applications while capacity remains.

        Only runs when called; nothing promotes the waitlist automatically.
        """
        if slot_type not in (self.SLOT_501C3, self.SLOT_PRE_NONPROFIT):
            return None, ModuleError(INVALID_TYPE, f"Invalid slot type: {slot_type}")

        applications = self.db.ns_beta_applications
        query = (applications.slot_type == slot_type) & (
            applications.status == self.STATUS_WAITLIST
        )
        if state:
            query &= applications.state == state.upper()

        promoted: List[int] = []
        for application in self.db(query).select(
            orderby=applications.application_date | applications.id
        ):
            if not self.check_slot_availability(slot_type, application.state):
                if slot_type == self.SLOT_501C3:
                    break
                continue
            application.update_record(
                status=self.STATUS_APPROVED,
                license_key=self.generate_license_key(),
                approved_date=self.clock(),
                approved_by="waitlist",
            )
            self.db.commit()
            self.log_activity(application.id, "waitlist_promoted", {"slot_type": slot_type})
            promoted.append(application.id)

        if promoted:
            logger.info(f"Promoted {len(promoted)} waitlisted {slot_type} applications")
        return promoted, None

    # ==================== Lookups ====================

    def _get_by_license(self, license_key: Optional[str]):
        if not license_key:
            return None
        applications = self.db.ns_beta_applications
        return self.db(applications.license_key == license_key.strip().upper()).select().first()

    def get_application(self, application_id: int) -> Tuple[Optional[Dict[str, Any]], Optional[ModuleError]]:
        application = self.db.ns_beta_applications[application_id]
        if not application:
            return None, not_found("Beta application", {"id": application_id})
        return self._application_to_dict(application), None

    def get_application_by_license(self, license_key: str) -> Tuple[Optional[Dict[str, Any]], Optional[ModuleError]]:
        application = self._get_by_license(license_key)
        if not application:
            return None, ModuleError(INVALID_LICENSE, "Invalid license key")
        return self._application_to_dict(application), None

    def get_statistics(self) -> Dict[str, Any]:
        applications = self.db.ns_beta_applications
        count = applications.id.count()

        def _count(query) -> int:
            return self.db(query).count()

        by_state = [
            {
                "state": row.ns_beta_applications.state,
                "slot_type": row.ns_beta_applications.slot_type,
                "count": row[count],
            }
            for row in self.db(
                (applications.slot_type == self.SLOT_PRE_NONPROFIT)
                & applications.status.belongs(self.OCCUPYING_STATUSES)
            ).select(
                applications.state,
                applications.slot_type,
                count,
                groupby=applications.state | applications.slot_type,
            )
        ]
        by_status = {
            row.ns_beta_applications.status: row[count]
            for row in self.db(applications.id > 0).select(
                applications.status, count, groupby=applications.status
            )
        }

        return {
            "total": _count(applications.id > 0),
            "501c3_total": _count(applications.slot_type == self.SLOT_501C3),
            "501c3_approved": _count(
                (applications.slot_type == self.SLOT_501C3)
                & (applications.status == self.STATUS_APPROVED)
            ),
            "prenp_total": _count(applications.slot_type == self.SLOT_PRE_NONPROFIT),
            "prenp_approved": _count(
                (applications.slot_type == self.SLOT_PRE_NONPROFIT)
                & (applications.status == self.STATUS_APPROVED)
            ),
            "by_state": by_state,
            "by_status": by_status,
            "activated": _count(applications.license_activated == True),  # noqa: E712
        }

    def log_activity(
        self, application_id: int, activity_type: str, activity_data: Optional[Dict[str, Any]] = None
    ) -> int:
        activity_id = self.db.ns_beta_activity.insert(
            application_id=application_id,
            activity_type=activity_type,
            activity_data=activity_data or {},
            occurred_at=self.clock(),
        )
        self.db.commit()
        return int(activity_id)
