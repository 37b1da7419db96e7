"""Local license tier gate.

Pro-only modules ask the gate whether a Pro license is active. The gate reads
the status last recorded in the options store; it never calls a license
server itself.
"""

import datetime
import logging
from typing import Any, Callable, Dict, Optional

from shared.utils.dates import isoformat, parse_datetime, utcnow

logger = logging.getLogger(__name__)

LICENSE_OPTION = "license_status"
GRACE_PERIOD_DAYS = 30


class LicenseGate:
    """Answers "is Pro active?" from the recorded license status."""

    STATUS_ACTIVE = "active"
    STATUS_EXPIRED = "expired"
    STATUS_INVALID = "invalid"
    STATUS_INACTIVE = "inactive"

    def __init__(
        self,
        options,
        dev_mode: bool = False,
        clock: Callable[[], datetime.datetime] = utcnow,
    ):
        self.options = options
        self.dev_mode = dev_mode
        self.clock = clock

    def get_status(self) -> Dict[str, Any]:
        return self.options.get_dict(
            LICENSE_OPTION, {"status": self.STATUS_INACTIVE, "expires_at": None}
        )

    def record_status(
        self, status: str, expires_at: Optional[datetime.datetime] = None
    ) -> None:
        """Store the outcome of an external license validation."""
        self.options.set(
            LICENSE_OPTION,
            {
                "status": status,
                "expires_at": isoformat(expires_at),
                "checked_at": isoformat(self.clock()),
            },
        )
        logger.info(f"License status recorded: {status}")

    def is_in_grace_period(self) -> bool:
        status = self.get_status()
        if status.get("status") != self.STATUS_EXPIRED:
            return False
        expires_at = parse_datetime(status.get("expires_at"))
        if expires_at is None:
            return False
        return self.clock() <= expires_at + datetime.timedelta(days=GRACE_PERIOD_DAYS)

    def is_pro_active(self) -> bool:
        if self.dev_mode:
            return True
        if self.get_status().get("status") == self.STATUS_ACTIVE:
            return True
        return self.is_in_grace_period()
