"""
Interfaces to the services around the core.

Emotion classification, conversation context (state, severity, trust,
triggers) and post-reply bookkeeping are owned by other systems. The core only
sees these protocols. The static implementations return fixed answers and are
used by the CLI, the API defaults and the tests.
"""

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Callable, Optional, Protocol

from replyguard.schemas import (
    ConversationState,
    EmotionSnapshot,
    EngineMode,
    Language,
    SeverityLevel,
    Trigger,
    TrustSnapshot,
)


@dataclass
class ConversationContext:
    """What the context service knows about this user and conversation."""
    state: ConversationState = field(default_factory=ConversationState)
    severity: SeverityLevel = SeverityLevel.CASUAL
    trust: Optional[TrustSnapshot] = None
    triggers: list[Trigger] = field(default_factory=list)


@dataclass
class BookkeepingEvent:
    """Handed to every bookkeeping job after a reply is produced."""
    user_id: str
    message: str
    reply: str
    emotion: EmotionSnapshot
    engine_mode: EngineMode
    language: Language
    conversation_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


BookkeepingJob = Callable[[BookkeepingEvent], None]


class EmotionClassifier(Protocol):
    def classify(
        self,
        text: str,
        recent_messages: list[str],
        language: Language,
    ) -> EmotionSnapshot:
        ...


class ContextProvider(Protocol):
    def assess(
        self,
        user_id: str,
        text: str,
        emotion: EmotionSnapshot,
    ) -> ConversationContext:
        ...


class StaticEmotionClassifier:
    """Always returns the same snapshot."""

    def __init__(self, snapshot: Optional[EmotionSnapshot] = None):
        self.snapshot = snapshot or EmotionSnapshot()

    def classify(self, text: str, recent_messages: list[str], language: Language) -> EmotionSnapshot:
        return self.snapshot


class StaticContextProvider:
    """Always returns the same context."""

    def __init__(self, context: Optional[ConversationContext] = None):
        self.context = context or ConversationContext()

    def assess(self, user_id: str, text: str, emotion: EmotionSnapshot) -> ConversationContext:
        return self.context
