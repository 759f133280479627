"""
Tone profile selection.

Maps severity, conversation state and persona style to an empathy, length
and disclaimer policy, then lets trust open the companion up. The crisis path
(HIGH_RISK) is never relaxed by trust.
"""

import dataclasses
import math
from typing import Optional

from replyguard.config import get_tuning
from replyguard.schemas import (
    ConversationState,
    EmpathyLevel,
    MessageLength,
    PersonaStyle,
    SeverityLevel,
    StateKind,
    SUPPORT_STATES,
    ToneProfile,
    TrustSnapshot,
)


# Severity -> (empathy, length, soft disclaimer, full footer)
BASE_PROFILES: dict[SeverityLevel, tuple[EmpathyLevel, MessageLength, bool, bool]] = {
    SeverityLevel.HIGH_RISK: (EmpathyLevel.HIGH, MessageLength.NORMAL, False, True),
    SeverityLevel.SUPPORT: (EmpathyLevel.HIGH, MessageLength.NORMAL, True, False),
    SeverityLevel.VENTING: (EmpathyLevel.MEDIUM, MessageLength.NORMAL, True, False),
    SeverityLevel.CASUAL: (EmpathyLevel.LOW, MessageLength.SHORT, False, False),
}

HUMOR_STYLES = frozenset({"medium", "high"})


def compute_trust_tier(trust: Optional[TrustSnapshot]) -> int:
    """
    Bucket a trust score (0-100) into a tier from 1 to 5.

    Missing, non-finite or non-positive scores are tier 1.
    """
    if trust is None:
        return 1
    try:
        score = float(trust.trust_score or 0)
    except (TypeError, ValueError):
        return 1
    if not math.isfinite(score) or score <= 0:
        return 1

    tier = 1
    for threshold in get_tuning().trust_tier_thresholds:
        if score >= threshold:
            tier += 1
    return tier


def _allows_humor(
    severity: SeverityLevel,
    state: StateKind,
    persona_style: Optional[PersonaStyle],
) -> bool:
    if severity != SeverityLevel.CASUAL:
        return False
    if state in SUPPORT_STATES:
        return False
    humor = (persona_style.humor if persona_style else "low") or "low"
    return humor.lower() in HUMOR_STYLES


def _escalate_by_trust(tone: ToneProfile, trust_tier: int) -> ToneProfile:
    """Trust tier 3 lifts empathy; 4 and 5 each allow one more length step."""
    if trust_tier >= 3 and tone.empathy_level == EmpathyLevel.LOW:
        tone = dataclasses.replace(tone, empathy_level=EmpathyLevel.MEDIUM)

    if trust_tier >= 4 and tone.message_length == MessageLength.SHORT:
        tone = dataclasses.replace(tone, message_length=MessageLength.NORMAL)
    elif trust_tier >= 5 and tone.message_length == MessageLength.NORMAL:
        tone = dataclasses.replace(tone, message_length=MessageLength.EXTENDED)
    return tone


def select_tone(
    severity: SeverityLevel,
    conversation_state: Optional[ConversationState] = None,
    persona_style: Optional[PersonaStyle] = None,
    trust_tier: int = 1,
) -> ToneProfile:
    """
    Decide the tone profile for one reply.

    Args:
        severity: Classifier severity for the user's message.
        conversation_state: Current state-machine state (NEUTRAL if None).
        persona_style: Persona style hints; only humor is consulted.
        trust_tier: 1-5, see compute_trust_tier().

    Returns:
        ToneProfile. HIGH_RISK always yields the full-footer profile.
    """
    severity = SeverityLevel(severity)
    state = conversation_state.current_state if conversation_state else StateKind.NEUTRAL

    empathy, length, soft, full = BASE_PROFILES[severity]
    tone = ToneProfile(
        empathy_level=empathy,
        message_length=length,
        include_soft_disclaimer=soft,
        include_full_safety_footer=full,
        allow_light_humor=_allows_humor(severity, state, persona_style),
    )

    if severity == SeverityLevel.HIGH_RISK:
        return tone
    return _escalate_by_trust(tone, trust_tier)
