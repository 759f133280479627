"""FastAPI server for replyguard."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional, Dict, Any, List, Union

from fastapi import FastAPI, HTTPException, Header, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from replyguard import (
    __version__,
    BackgroundQueue,
    ChatGate,
    ChatRequest,
    ConsumeRejected,
    ConversationContext,
    ConversationState,
    EmotionSnapshot,
    EngineMode,
    Language,
    OrchestrationRequest,
    PersonaStyle,
    PrimaryEmotion,
    RequestedMode,
    SeverityLevel,
    SQLiteLedger,
    StateKind,
    StaticContextProvider,
    StaticEmotionClassifier,
    Trigger,
    TrustSnapshot,
    UsageLimiter,
    ValidationError,
    VerbosityMode,
    compute_trust_tier,
    get_plan_limits,
    is_premium_plan,
    orchestrate_response,
    select_mode,
    select_tone,
)
from replyguard.collaborators import BookkeepingEvent
from replyguard.providers import ProviderError, provider_from_env

logger = logging.getLogger("replyguard.api")


def _get_api_key() -> Optional[str]:
    return os.getenv("REPLYGUARD_API_KEY")


def _require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key = _get_api_key()
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


@lru_cache(maxsize=None)
def _limiter_for(db_path: str) -> UsageLimiter:
    return UsageLimiter(SQLiteLedger(db_path=db_path))


def _limiter() -> UsageLimiter:
    return _limiter_for(os.getenv("REPLYGUARD_DB_PATH", "replyguard.db"))


@lru_cache(maxsize=1)
def _background() -> BackgroundQueue:
    return BackgroundQueue(max_workers=2)


def _log_turn(event: BookkeepingEvent) -> None:
    logger.info(
        "turn user=%s mode=%s emotion=%s reply_chars=%d",
        event.user_id, event.engine_mode.value, event.emotion.primary_emotion.value, len(event.reply),
    )


app = FastAPI(title="replyguard API", version=__version__)


class EmotionModel(BaseModel):
    primary_emotion: PrimaryEmotion = PrimaryEmotion.NEUTRAL
    intensity: int = Field(0, ge=0, le=5)
    confidence: float = Field(0.0, ge=0.0, le=1.0)
    secondary_emotion: Optional[PrimaryEmotion] = None
    notes: Optional[str] = None

    def to_snapshot(self) -> EmotionSnapshot:
        return EmotionSnapshot(
            primary_emotion=self.primary_emotion,
            intensity=self.intensity,
            confidence=self.confidence,
            secondary_emotion=self.secondary_emotion,
            notes=self.notes,
        )


class PersonaModel(BaseModel):
    warmth: str = Field("medium", pattern="^(low|medium|high)$")
    humor: str = Field("low", pattern="^(low|medium|high)$")
    directness: str = Field("medium", pattern="^(low|medium|high)$")
    energy: str = Field("medium", pattern="^(low|medium|high)$")

    def to_style(self) -> PersonaStyle:
        return PersonaStyle(self.warmth, self.humor, self.directness, self.energy)


class TriggerModel(BaseModel):
    topic: str
    emotion: str = ""
    score: float = 0.0


class HistoryMessage(BaseModel):
    role: str = Field("user", pattern="^(user|assistant)$")
    content: str


class ConsumeRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    plan: str = "free"
    is_tester: bool = False


class EngineModeRequest(BaseModel):
    severity: SeverityLevel
    trust_score: Optional[float] = Field(None, ge=0, le=100)
    is_premium_or_tester: bool = False
    requested_mode: RequestedMode = RequestedMode.AUTO
    conversation_length: int = Field(0, ge=0)
    emotion: Optional[EmotionModel] = None


class ToneRequest(BaseModel):
    severity: SeverityLevel
    state: StateKind = StateKind.NEUTRAL
    persona: Optional[PersonaModel] = None
    trust_score: Optional[float] = Field(None, ge=0, le=100)


class OrchestrateRequest(BaseModel):
    raw_reply: str
    emotion: Optional[EmotionModel] = None
    state: StateKind = StateKind.NEUTRAL
    triggers: List[TriggerModel] = Field(default_factory=list)
    language: Language = Language.EN
    severity: SeverityLevel = SeverityLevel.CASUAL
    persona: Optional[PersonaModel] = None
    engine_mode: EngineMode = EngineMode.CORE_FAST
    is_premium_user: bool = False
    trust_score: Optional[float] = Field(None, ge=0, le=100)
    verbosity_mode: VerbosityMode = VerbosityMode.NORMAL


class ChatBody(BaseModel):
    user_id: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    plan: str = "free"
    is_tester: bool = False
    language: Language = Language.EN
    requested_mode: RequestedMode = RequestedMode.AUTO
    verbosity_mode: VerbosityMode = VerbosityMode.NORMAL
    recent_messages: List[Union[str, HistoryMessage]] = Field(default_factory=list)
    conversation_id: Optional[str] = None
    # Classifier and context service outputs, supplied by the caller
    emotion: Optional[EmotionModel] = None
    severity: SeverityLevel = SeverityLevel.CASUAL
    state: StateKind = StateKind.NEUTRAL
    trust_score: Optional[float] = Field(None, ge=0, le=100)
    triggers: List[TriggerModel] = Field(default_factory=list)
    persona: Optional[PersonaModel] = None


def _trust(score: Optional[float]) -> Optional[TrustSnapshot]:
    return TrustSnapshot(trust_score=score) if score is not None else None


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok", "version": __version__}


@app.post("/usage/consume", dependencies=[Depends(_require_api_key)])
def consume(req: ConsumeRequest):
    limiter = _limiter()
    plan = get_plan_limits(req.plan, is_tester=req.is_tester)
    try:
        result = limiter.consume(req.user_id, plan, is_premium_plan(req.plan), req.is_tester)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if isinstance(result, ConsumeRejected):
        return JSONResponse(status_code=429, content=result.to_dict())
    return result.to_dict()


@app.get("/usage/{user_id}", dependencies=[Depends(_require_api_key)])
def usage(user_id: str, plan: str = "free") -> Dict[str, Any]:
    try:
        return _limiter().usage_summary(user_id, get_plan_limits(plan))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


@app.post("/engine-mode", dependencies=[Depends(_require_api_key)])
def engine_mode(req: EngineModeRequest) -> Dict[str, Any]:
    tier = compute_trust_tier(_trust(req.trust_score))
    mode = select_mode(
        req.severity,
        tier,
        req.is_premium_or_tester,
        requested_mode=req.requested_mode,
        conversation_length=req.conversation_length,
        emotion=req.emotion.to_snapshot() if req.emotion else None,
    )
    return {"engine_mode": mode.value, "trust_tier": tier}


@app.post("/tone", dependencies=[Depends(_require_api_key)])
def tone(req: ToneRequest) -> Dict[str, Any]:
    tier = compute_trust_tier(_trust(req.trust_score))
    profile = select_tone(
        req.severity,
        ConversationState(req.state),
        req.persona.to_style() if req.persona else None,
        tier,
    )
    return {
        "trust_tier": tier,
        "empathy_level": profile.empathy_level.value,
        "message_length": profile.message_length.value,
        "include_soft_disclaimer": profile.include_soft_disclaimer,
        "include_full_safety_footer": profile.include_full_safety_footer,
        "allow_light_humor": profile.allow_light_humor,
    }


@app.post("/orchestrate", dependencies=[Depends(_require_api_key)])
def orchestrate(req: OrchestrateRequest) -> Dict[str, Any]:
    reply = orchestrate_response(OrchestrationRequest(
        raw_reply=req.raw_reply,
        emotion=req.emotion.to_snapshot() if req.emotion else None,
        conversation_state=ConversationState(req.state),
        triggers=[Trigger(t.topic, t.emotion, t.score) for t in req.triggers],
        language=req.language,
        severity_level=req.severity,
        persona_style=req.persona.to_style() if req.persona else None,
        engine_mode=req.engine_mode,
        is_premium_user=req.is_premium_user,
        trust_snapshot=_trust(req.trust_score),
        verbosity_mode=req.verbosity_mode,
    ))
    return {"reply": reply}


@app.post("/chat", dependencies=[Depends(_require_api_key)])
def chat(req: ChatBody):
    context = ConversationContext(
        state=ConversationState(req.state),
        severity=req.severity,
        trust=_trust(req.trust_score),
        triggers=[Trigger(t.topic, t.emotion, t.score) for t in req.triggers],
    )
    gate = ChatGate(
        limiter=_limiter(),
        classifier=StaticEmotionClassifier(req.emotion.to_snapshot() if req.emotion else None),
        context_provider=StaticContextProvider(context),
        completion=provider_from_env(),
        background=_background(),
        bookkeepers=[("log_turn", _log_turn)],
    )
    try:
        result = gate.handle(ChatRequest(
            user_id=req.user_id,
            message=req.message,
            plan=req.plan,
            is_tester=req.is_tester,
            language=req.language,
            requested_mode=req.requested_mode,
            verbosity_mode=req.verbosity_mode,
            persona_style=req.persona.to_style() if req.persona else None,
            recent_messages=[
                m if isinstance(m, str) else {"role": m.role, "content": m.content}
                for m in req.recent_messages
            ],
            conversation_id=req.conversation_id,
        ))
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    if isinstance(result, ConsumeRejected):
        return JSONResponse(status_code=429, content=result.to_dict())
    return result.to_dict()
