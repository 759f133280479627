"""
Chat request flow.

    limiter -> classifier + context -> engine mode + tone -> completion
    -> orchestrator -> background bookkeeping

The limiter runs first so that a rejected request costs nothing downstream.
Bookkeeping is queued after the reply is built and cannot change it.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from replyguard.background import BackgroundQueue
from replyguard.collaborators import (
    BookkeepingEvent,
    BookkeepingJob,
    ContextProvider,
    EmotionClassifier,
    StaticContextProvider,
    StaticEmotionClassifier,
)
from replyguard.config import get_plan_limits, is_premium_plan
from replyguard.engine_mode import select_mode
from replyguard.limiter import UsageLimiter
from replyguard.orchestrator import ResponseOrchestrator
from replyguard.providers import CompletionProvider, EchoProvider, model_tier_for
from replyguard.schemas import (
    ConsumeAllowed,
    ConsumeRejected,
    EmotionSnapshot,
    EngineMode,
    Language,
    OrchestrationRequest,
    PersonaStyle,
    RequestedMode,
    ToneProfile,
    VerbosityMode,
)
from replyguard.tone import compute_trust_tier, select_tone
from replyguard.validation import (
    ValidationError,
    validate_intensity,
    validate_message,
    validate_trust_score,
    validate_user_id,
)

logger = logging.getLogger("replyguard.pipeline")

DEFAULT_SYSTEM_PROMPT = "You are a warm, supportive companion. Keep replies kind and grounded."
HISTORY_ROLES = ("user", "assistant")


def history_message(entry: Union[str, dict[str, Any]]) -> dict[str, str]:
    """Plain strings are earlier user turns; dicts carry their own role."""
    if isinstance(entry, dict):
        role = entry.get("role", "user")
        if role not in HISTORY_ROLES:
            raise ValidationError(f"history role must be one of {HISTORY_ROLES}, got {role!r}")
        return {"role": role, "content": str(entry.get("content") or "")}
    return {"role": "user", "content": str(entry)}


@dataclass
class ChatRequest:
    user_id: str
    message: str
    plan: str = "free"
    is_tester: bool = False
    language: Language = Language.EN
    requested_mode: RequestedMode = RequestedMode.AUTO
    verbosity_mode: VerbosityMode = VerbosityMode.NORMAL
    persona_style: Optional[PersonaStyle] = None
    # Earlier turns, oldest first: strings (user turns) or {"role", "content"} dicts
    recent_messages: list[Union[str, dict[str, Any]]] = field(default_factory=list)
    conversation_id: Optional[str] = None
    system_prompt: Optional[str] = None


@dataclass
class ChatReply:
    reply: str
    raw_reply: str
    engine_mode: EngineMode
    tone: ToneProfile
    emotion: EmotionSnapshot
    trust_tier: int
    usage: ConsumeAllowed

    def to_dict(self) -> dict:
        return {
            "reply": self.reply,
            "engine_mode": self.engine_mode.value,
            "trust_tier": self.trust_tier,
            "tone": {
                "empathy_level": self.tone.empathy_level.value,
                "message_length": self.tone.message_length.value,
                "include_soft_disclaimer": self.tone.include_soft_disclaimer,
                "include_full_safety_footer": self.tone.include_full_safety_footer,
                "allow_light_humor": self.tone.allow_light_humor,
            },
            "emotion": {
                "primary_emotion": self.emotion.primary_emotion.value,
                "intensity": self.emotion.intensity,
            },
            "usage": self.usage.to_dict(),
        }


class ChatGate:
    """
    Runs one chat turn end to end.

    Example:
        ```python
        gate = ChatGate(limiter=UsageLimiter(SQLiteLedger()), completion=OpenAIProvider())
        result = gate.handle(ChatRequest(user_id="u1", message="rough day"))
        if isinstance(result, ConsumeRejected):
            ...
        ```
    """

    def __init__(
        self,
        limiter: Optional[UsageLimiter] = None,
        classifier: Optional[EmotionClassifier] = None,
        context_provider: Optional[ContextProvider] = None,
        completion: Optional[CompletionProvider] = None,
        orchestrator: Optional[ResponseOrchestrator] = None,
        background: Optional[BackgroundQueue] = None,
        bookkeepers: Optional[list[tuple[str, BookkeepingJob]]] = None,
    ):
        self.limiter = limiter or UsageLimiter()
        self.classifier = classifier or StaticEmotionClassifier()
        self.context_provider = context_provider or StaticContextProvider()
        self.completion = completion or EchoProvider()
        self.orchestrator = orchestrator or ResponseOrchestrator(metrics=self.limiter.metrics)
        self.background = background
        self.bookkeepers = list(bookkeepers or [])

    def handle(self, request: ChatRequest) -> Union[ChatReply, ConsumeRejected]:
        """
        Handle one message.

        Returns:
            ChatReply, or the ConsumeRejected value when the quota is spent.

        Raises:
            ValidationError: For an empty user id or message, a bad history
                role, or an out-of-range trust score or intensity from the
                collaborators.
            ProviderError: If the completion call fails.
        """
        validate_user_id(request.user_id)
        validate_message(request.message)
        history = [history_message(entry) for entry in request.recent_messages]

        is_premium = is_premium_plan(request.plan)
        plan = get_plan_limits(request.plan, is_tester=request.is_tester)
        usage = self.limiter.consume(request.user_id, plan, is_premium, request.is_tester)
        if isinstance(usage, ConsumeRejected):
            return usage

        language = Language(request.language)
        emotion = self.classifier.classify(request.message, [m["content"] for m in history], language)
        context = self.context_provider.assess(request.user_id, request.message, emotion)
        validate_intensity(emotion.intensity)
        if context.trust is not None:
            validate_trust_score(context.trust.trust_score)
        trust_tier = compute_trust_tier(context.trust)

        engine_mode = select_mode(
            context.severity,
            trust_tier,
            is_premium or request.is_tester,
            requested_mode=request.requested_mode,
            conversation_length=len(history),
            emotion=emotion,
        )
        self.limiter.metrics.record_engine_mode(request.user_id, engine_mode.value)
        tone = select_tone(context.severity, context.state, request.persona_style, trust_tier)

        messages = list(history)
        messages.append({"role": "user", "content": request.message})
        raw_reply = self.completion.complete(
            request.system_prompt or DEFAULT_SYSTEM_PROMPT,
            messages,
            model_tier_for(engine_mode, is_premium),
        )

        reply = self.orchestrator.orchestrate(OrchestrationRequest(
            raw_reply=raw_reply,
            emotion=emotion,
            conversation_state=context.state,
            triggers=context.triggers,
            language=language,
            severity_level=context.severity,
            persona_style=request.persona_style,
            engine_mode=engine_mode,
            is_premium_user=is_premium,
            trust_snapshot=context.trust,
            verbosity_mode=request.verbosity_mode,
        ))

        self._schedule_bookkeeping(BookkeepingEvent(
            user_id=request.user_id,
            message=request.message,
            reply=reply,
            emotion=emotion,
            engine_mode=engine_mode,
            language=language,
            conversation_id=request.conversation_id,
        ))

        return ChatReply(
            reply=reply,
            raw_reply=raw_reply,
            engine_mode=engine_mode,
            tone=tone,
            emotion=emotion,
            trust_tier=trust_tier,
            usage=usage,
        )

    def _schedule_bookkeeping(self, event: BookkeepingEvent) -> None:
        if not self.bookkeepers:
            return
        if self.background is None:
            logger.debug("no background queue, skipping %d bookkeeping jobs", len(self.bookkeepers))
            return
        self.background.submit_all(self.bookkeepers, event)
