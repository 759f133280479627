"""
Data schemas for replyguard.

Per-request inputs and outputs: emotion, conversation state, trust, tone,
engine modes, and limiter results. Everything here is computed fresh per
request and discarded afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union

from replyguard.models import UsageRecord


class PrimaryEmotion(str, Enum):
    """Primary emotion labels produced by the external classifier."""
    SAD = "SAD"
    ANXIOUS = "ANXIOUS"
    ANGRY = "ANGRY"
    LONELY = "LONELY"
    HOPEFUL = "HOPEFUL"
    GRATEFUL = "GRATEFUL"
    STRESSED = "STRESSED"
    NEUTRAL = "NEUTRAL"


class StateKind(str, Enum):
    """Conversation state-machine states."""
    NEUTRAL = "NEUTRAL"
    SAD_SUPPORT = "SAD_SUPPORT"
    ANXIETY_CALMING = "ANXIETY_CALMING"
    ANGER_DEESCALATE = "ANGER_DEESCALATE"
    LONELY_COMPANIONSHIP = "LONELY_COMPANIONSHIP"
    HOPE_GUIDANCE = "HOPE_GUIDANCE"


SUPPORT_STATES = frozenset({
    StateKind.SAD_SUPPORT,
    StateKind.ANXIETY_CALMING,
    StateKind.ANGER_DEESCALATE,
    StateKind.LONELY_COMPANIONSHIP,
})


class SeverityLevel(str, Enum):
    """Urgency/risk of the user's message."""
    CASUAL = "CASUAL"
    VENTING = "VENTING"
    SUPPORT = "SUPPORT"
    HIGH_RISK = "HIGH_RISK"


class EngineMode(str, Enum):
    """Cost/verbosity tier for a reply."""
    CORE_FAST = "CORE_FAST"
    CORE_DEEP = "CORE_DEEP"
    PREMIUM_DEEP = "PREMIUM_DEEP"


class RequestedMode(str, Enum):
    """Mode hint supplied by the caller."""
    AUTO = "auto"
    LITE = "lite"
    BALANCED = "balanced"  # Same as AUTO
    DEEP = "deep"


class VerbosityMode(str, Enum):
    NORMAL = "normal"
    SHORT = "short"


class Language(str, Enum):
    EN = "en"
    AR = "ar"
    MIXED = "mixed"  # Uses English phrasing


class EmpathyLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class MessageLength(str, Enum):
    SHORT = "short"
    NORMAL = "normal"
    EXTENDED = "extended"


@dataclass(frozen=True)
class EmotionSnapshot:
    """Classifier output. Read-only input to the core."""
    primary_emotion: PrimaryEmotion = PrimaryEmotion.NEUTRAL
    intensity: int = 0  # 0-5
    confidence: float = 0.0
    secondary_emotion: Optional[PrimaryEmotion] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class ConversationState:
    current_state: StateKind = StateKind.NEUTRAL


@dataclass(frozen=True)
class TrustSnapshot:
    """Relationship trust for a user/persona pair."""
    trust_score: float = 0  # 0-100
    trust_level: int = 0


@dataclass(frozen=True)
class Trigger:
    """A known sensitive topic for this user."""
    topic: str
    emotion: str = ""
    score: float = 0.0


@dataclass(frozen=True)
class PersonaStyle:
    """Coarse style hints from the persona library (low|medium|high)."""
    warmth: str = "medium"
    humor: str = "low"
    directness: str = "medium"
    energy: str = "medium"


@dataclass(frozen=True)
class ToneProfile:
    """Derived empathy/length/disclaimer policy for a single reply."""
    empathy_level: EmpathyLevel
    message_length: MessageLength
    include_soft_disclaimer: bool
    include_full_safety_footer: bool
    allow_light_humor: bool


@dataclass
class OrchestrationRequest:
    """Everything the orchestrator needs to rewrite one raw reply."""
    raw_reply: str
    emotion: Optional[EmotionSnapshot] = None
    conversation_state: Optional[ConversationState] = None
    triggers: list[Trigger] = field(default_factory=list)
    language: Language = Language.EN
    severity_level: SeverityLevel = SeverityLevel.CASUAL
    persona_style: Optional[PersonaStyle] = None
    engine_mode: Optional[EngineMode] = None
    is_premium_user: bool = False
    trust_snapshot: Optional[TrustSnapshot] = None
    verbosity_mode: VerbosityMode = VerbosityMode.NORMAL


@dataclass
class ConsumeAllowed:
    """The request fits in the user's quota; one unit was consumed."""
    usage: UsageRecord
    scope: str  # "daily", "monthly", or "tester"
    limit_reached: bool = False  # This request used the last slot
    reset_at: Optional[datetime] = None
    reset_in_seconds: Optional[int] = None
    ok: bool = field(default=True, init=False)

    def to_dict(self) -> dict:
        return {
            "ok": True,
            "scope": self.scope,
            "usage": self.usage.to_dict(),
            "limit_reached": self.limit_reached,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "reset_in_seconds": self.reset_in_seconds,
        }


@dataclass
class ConsumeRejected:
    """The user's quota is exhausted. Not an error."""
    scope: str
    used: int
    limit: int
    remaining: int
    reset_at: Optional[datetime] = None
    reset_in_seconds: Optional[int] = None
    ok: bool = field(default=False, init=False)

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "scope": self.scope,
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "reset_at": self.reset_at.isoformat() if self.reset_at else None,
            "reset_in_seconds": self.reset_in_seconds,
        }


ConsumeResult = Union[ConsumeAllowed, ConsumeRejected]
