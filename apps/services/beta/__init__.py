"""Beta program admission control."""

from apps.services.beta.service import (
    STATES_TERRITORIES,
    BetaApplicationService,
    BetaSubmissionResult,
)

__all__ = ["BetaApplicationService", "BetaSubmissionResult", "STATES_TERRITORIES"]
