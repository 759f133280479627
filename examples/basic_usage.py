"""
Basic usage examples for replyguard.

Demonstrates common use cases: quota gating, mode and tone decisions,
reply shaping, and a full chat turn.
"""

import tempfile

from replyguard import (
    BackgroundQueue,
    ChatGate,
    ChatRequest,
    ConsumeRejected,
    ConversationContext,
    ConversationState,
    EchoProvider,
    EmotionSnapshot,
    EngineMode,
    OrchestrationRequest,
    PrimaryEmotion,
    SeverityLevel,
    SQLiteLedger,
    StateKind,
    StaticContextProvider,
    StaticEmotionClassifier,
    TrustSnapshot,
    UsageLimiter,
    compute_trust_tier,
    get_plan_limits,
    orchestrate_response,
    select_mode,
    select_tone,
)


def example_quota(limiter: UsageLimiter):
    """Free plan: five messages, then a 24h lock."""
    print("=" * 60)
    print("Example 1: Quota Gate")
    print("=" * 60)

    plan = get_plan_limits("free")
    for i in range(6):
        result = limiter.consume("demo_user", plan, is_premium=False)
        if result.ok:
            note = " (last one today)" if result.limit_reached else ""
            print(f"Message {i + 1}: allowed{note}")
        else:
            print(f"Message {i + 1}: rejected, unlocks at {result.reset_at:%Y-%m-%d %H:%M} UTC")
    print()


def example_decisions():
    """Engine mode and tone for an anxious premium user."""
    print("=" * 60)
    print("Example 2: Engine Mode and Tone")
    print("=" * 60)

    emotion = EmotionSnapshot(primary_emotion=PrimaryEmotion.ANXIOUS, intensity=4)
    tier = compute_trust_tier(TrustSnapshot(trust_score=65))
    mode = select_mode(SeverityLevel.SUPPORT, tier, is_premium_or_tester=True, emotion=emotion)
    tone = select_tone(SeverityLevel.SUPPORT, ConversationState(StateKind.ANXIETY_CALMING), trust_tier=tier)

    print(f"Trust tier: {tier}")
    print(f"Engine mode: {mode.value}")
    print(f"Empathy: {tone.empathy_level.value}, length: {tone.message_length.value}")
    print()


def example_orchestrate():
    """Shape a raw reply: soften, add empathy, one footer."""
    print("=" * 60)
    print("Example 3: Reply Shaping")
    print("=" * 60)

    raw = (
        "You need to breathe slowly. I'm not a doctor, but this helps.\n"
        "Try counting to four on each breath.\n"
        "This is not medical advice."
    )
    final = orchestrate_response(OrchestrationRequest(
        raw_reply=raw,
        emotion=EmotionSnapshot(primary_emotion=PrimaryEmotion.ANXIOUS, intensity=4),
        conversation_state=ConversationState(StateKind.ANXIETY_CALMING),
        severity_level=SeverityLevel.SUPPORT,
        engine_mode=EngineMode.CORE_DEEP,
        is_premium_user=True,
    ))
    print(final)
    print()


def example_chat_turn(limiter: UsageLimiter):
    """Full turn with a canned provider and one bookkeeping job."""
    print("=" * 60)
    print("Example 4: Full Chat Turn")
    print("=" * 60)

    remembered = []
    with BackgroundQueue(max_workers=2) as queue:
        gate = ChatGate(
            limiter=limiter,
            classifier=StaticEmotionClassifier(EmotionSnapshot(PrimaryEmotion.LONELY, 3)),
            context_provider=StaticContextProvider(ConversationContext(
                state=ConversationState(StateKind.LONELY_COMPANIONSHIP),
                severity=SeverityLevel.VENTING,
            )),
            completion=EchoProvider(reply="It makes sense to miss them. What do you miss most?"),
            background=queue,
            bookkeepers=[("remember", remembered.append)],
        )
        reply = gate.handle(ChatRequest(user_id="premium_user", message="I miss my friends", plan="premium"))
        queue.drain(timeout=5)

    if isinstance(reply, ConsumeRejected):
        print(f"Rejected: {reply.to_dict()}")
    else:
        print(f"Mode: {reply.engine_mode.value}")
        print(f"Reply:\n{reply.reply}")
        print(f"Bookkeeping jobs run: {len(remembered)}")
    print()


if __name__ == "__main__":
    with tempfile.TemporaryDirectory() as tmpdir:
        store = SQLiteLedger(db_path=f"{tmpdir}/replyguard.db")
        limiter = UsageLimiter(store)

        example_quota(limiter)
        example_decisions()
        example_orchestrate()
        example_chat_turn(limiter)

        store.close()
