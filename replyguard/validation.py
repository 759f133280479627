"""
Input validation for replyguard.

Rejects malformed caller input before it reaches the ledger or the pipeline.
"""

import math
from typing import Optional

from replyguard.models import PlanLimits


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


MAX_USER_ID_LENGTH = 256
MAX_MESSAGE_LENGTH = 20_000
MAX_TRUST_SCORE = 100
MAX_INTENSITY = 5


def validate_user_id(user_id: str) -> None:
    """
    Validate a user identifier.

    Args:
        user_id: Ledger key for the user

    Raises:
        ValidationError: If user_id is invalid
    """
    if not isinstance(user_id, str):
        raise ValidationError(f"user_id must be a string, got {type(user_id).__name__}")

    if not user_id.strip():
        raise ValidationError("user_id cannot be empty or whitespace-only")

    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError(
            f"user_id too long: {len(user_id)} characters (max: {MAX_USER_ID_LENGTH})"
        )


def validate_message(text: str) -> None:
    """
    Validate an inbound chat message.

    Raises:
        ValidationError: If text is invalid
    """
    if not isinstance(text, str):
        raise ValidationError(f"Message must be a string, got {type(text).__name__}")

    if not text.strip():
        raise ValidationError("Message cannot be empty or whitespace-only")

    if len(text) > MAX_MESSAGE_LENGTH:
        raise ValidationError(
            f"Message too long: {len(text):,} characters (max: {MAX_MESSAGE_LENGTH:,})"
        )


def validate_plan_limits(plan: PlanLimits) -> None:
    """Limits must be integers; zero or negative means unlimited."""
    if not isinstance(plan, PlanLimits):
        raise ValidationError(f"plan must be PlanLimits, got {type(plan).__name__}")

    for name in ("daily_limit", "monthly_limit"):
        value = getattr(plan, name)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {type(value).__name__}")


def validate_trust_score(trust_score: Optional[float]) -> None:
    """
    Validate a trust score from the context service.

    Missing and non-finite scores pass; they count as no trust (tier 1).
    """
    if trust_score is None:
        return

    if isinstance(trust_score, bool) or not isinstance(trust_score, (int, float)):
        raise ValidationError(
            f"trust_score must be a number, got {type(trust_score).__name__}"
        )

    if not math.isfinite(trust_score):
        return

    if trust_score < 0 or trust_score > MAX_TRUST_SCORE:
        raise ValidationError(
            f"trust_score must be between 0 and {MAX_TRUST_SCORE}, got {trust_score}"
        )


def validate_intensity(intensity: int) -> None:
    if isinstance(intensity, bool) or not isinstance(intensity, int):
        raise ValidationError(
            f"intensity must be an integer, got {type(intensity).__name__}"
        )

    if intensity < 0 or intensity > MAX_INTENSITY:
        raise ValidationError(
            f"intensity must be between 0 and {MAX_INTENSITY}, got {intensity}"
        )
