"""
replyguard - Quota gate and reply shaping for companion chat.

Quota:
    from replyguard import UsageLimiter, SQLiteLedger, get_plan_limits

    limiter = UsageLimiter(SQLiteLedger("replyguard.db"))
    result = limiter.consume("user_123", get_plan_limits("free"), is_premium=False)
    if not result.ok:
        print(result.reset_at)   # when the daily lock lifts

Reply shaping:
    from replyguard import OrchestrationRequest, SeverityLevel, orchestrate_response

    final = orchestrate_response(OrchestrationRequest(
        raw_reply="You must get some rest.",
        severity_level=SeverityLevel.SUPPORT,
    ))

Full turn:
    from replyguard import ChatGate, ChatRequest

    gate = ChatGate(completion=OpenAIProvider())
    reply = gate.handle(ChatRequest(user_id="user_123", message="rough day"))
"""

from replyguard.background import BackgroundQueue
from replyguard.collaborators import (
    BookkeepingEvent,
    ConversationContext,
    StaticContextProvider,
    StaticEmotionClassifier,
)
from replyguard.config import (
    Tuning,
    get_tuning,
    set_tuning,
    reset_tuning,
    get_plan_limits,
    set_plan_limits,
    is_premium_plan,
    get_models,
    set_models,
)
from replyguard.engine_mode import select_mode
from replyguard.limiter import UsageLimiter
from replyguard.metrics import MetricsCollector, get_metrics
from replyguard.models import PlanLimits, UsageRecord
from replyguard.orchestrator import ResponseOrchestrator, orchestrate_response
from replyguard.pipeline import ChatGate, ChatReply, ChatRequest
from replyguard.providers import AnthropicProvider, EchoProvider, OpenAIProvider, ProviderError
from replyguard.schemas import (
    ConsumeAllowed,
    ConsumeRejected,
    ConsumeResult,
    ConversationState,
    EmotionSnapshot,
    EngineMode,
    Language,
    OrchestrationRequest,
    PersonaStyle,
    PrimaryEmotion,
    RequestedMode,
    SeverityLevel,
    StateKind,
    ToneProfile,
    Trigger,
    TrustSnapshot,
    VerbosityMode,
)
from replyguard.storage import InMemoryLedger, SQLiteLedger
from replyguard.tone import compute_trust_tier, select_tone
from replyguard.validation import ValidationError


__version__ = "0.3.0"
__all__ = [
    # Quota
    "UsageLimiter",
    "InMemoryLedger",
    "SQLiteLedger",
    "UsageRecord",
    "PlanLimits",
    "ConsumeAllowed",
    "ConsumeRejected",
    "ConsumeResult",
    # Decisions
    "select_mode",
    "select_tone",
    "compute_trust_tier",
    # Orchestration
    "ResponseOrchestrator",
    "orchestrate_response",
    "OrchestrationRequest",
    # Pipeline
    "ChatGate",
    "ChatRequest",
    "ChatReply",
    "BackgroundQueue",
    "BookkeepingEvent",
    "ConversationContext",
    "StaticContextProvider",
    "StaticEmotionClassifier",
    "OpenAIProvider",
    "AnthropicProvider",
    "EchoProvider",
    "ProviderError",
    # Types
    "ConversationState",
    "EmotionSnapshot",
    "EngineMode",
    "Language",
    "PersonaStyle",
    "PrimaryEmotion",
    "RequestedMode",
    "SeverityLevel",
    "StateKind",
    "ToneProfile",
    "Trigger",
    "TrustSnapshot",
    "VerbosityMode",
    # Config
    "Tuning",
    "get_tuning",
    "set_tuning",
    "reset_tuning",
    "get_plan_limits",
    "set_plan_limits",
    "is_premium_plan",
    "get_models",
    "set_models",
    "MetricsCollector",
    "get_metrics",
    "ValidationError",
]
