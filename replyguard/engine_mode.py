"""
Engine-mode selection.

Picks the cost/verbosity tier for a reply. The mode only feeds the
orchestrator's length caps and the provider's model choice.

Precedence (first match wins):
1. Caller asked for "lite"                 -> CORE_FAST
2. Caller asked for "deep"                 -> PREMIUM_DEEP (premium) / CORE_DEEP
3. Free user                               -> CORE_FAST
4. HIGH_RISK                               -> PREMIUM_DEEP
5. SUPPORT                                 -> PREMIUM_DEEP if a strong negative
                                              emotion, else CORE_DEEP
6. Long conversation, or trusted VENTING   -> CORE_DEEP
7. Otherwise                               -> CORE_FAST
"""

from typing import Optional

from replyguard.config import get_tuning
from replyguard.schemas import (
    EmotionSnapshot,
    EngineMode,
    PrimaryEmotion,
    RequestedMode,
    SeverityLevel,
)

NEGATIVE_EMOTIONS = frozenset({
    PrimaryEmotion.SAD,
    PrimaryEmotion.ANXIOUS,
    PrimaryEmotion.ANGRY,
    PrimaryEmotion.LONELY,
    PrimaryEmotion.STRESSED,
})


def _is_strong_negative(emotion: Optional[EmotionSnapshot]) -> bool:
    if emotion is None:
        return False
    return (
        emotion.primary_emotion in NEGATIVE_EMOTIONS
        and emotion.intensity >= get_tuning().premium_deep_intensity
    )


def select_mode(
    severity: SeverityLevel,
    trust_tier: int,
    is_premium_or_tester: bool,
    requested_mode: Optional[RequestedMode] = None,
    conversation_length: int = 0,
    emotion: Optional[EmotionSnapshot] = None,
) -> EngineMode:
    """
    Select the engine mode for a reply.

    Args:
        severity: Classifier severity.
        trust_tier: 1-5.
        is_premium_or_tester: Paying users and testers may go deep.
        requested_mode: Optional caller hint ("lite", "deep", ...).
        conversation_length: Messages so far in the conversation.
        emotion: Optional snapshot; strong negative emotion deepens SUPPORT.

    Returns:
        EngineMode.
    """
    requested = RequestedMode(requested_mode) if requested_mode else RequestedMode.AUTO
    severity = SeverityLevel(severity)

    if requested == RequestedMode.LITE:
        return EngineMode.CORE_FAST
    if requested == RequestedMode.DEEP:
        return EngineMode.PREMIUM_DEEP if is_premium_or_tester else EngineMode.CORE_DEEP

    if not is_premium_or_tester:
        return EngineMode.CORE_FAST

    if severity == SeverityLevel.HIGH_RISK:
        return EngineMode.PREMIUM_DEEP
    if severity == SeverityLevel.SUPPORT:
        return EngineMode.PREMIUM_DEEP if _is_strong_negative(emotion) else EngineMode.CORE_DEEP

    if conversation_length > get_tuning().deep_conversation_length:
        return EngineMode.CORE_DEEP
    if severity == SeverityLevel.VENTING and trust_tier >= 4:
        return EngineMode.CORE_DEEP
    return EngineMode.CORE_FAST
