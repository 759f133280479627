"""
Command-line interface for replyguard.

Provides commands for:
- Consuming and inspecting a user's quota
- Previewing tone and engine-mode decisions
- Running the orchestrator over a raw reply
"""

import argparse
import json
import sys
from typing import Optional

from replyguard.config import get_plan_limits, is_premium_plan
from replyguard.engine_mode import select_mode
from replyguard.limiter import UsageLimiter
from replyguard.orchestrator import orchestrate_response
from replyguard.schemas import (
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
    Trigger,
    TrustSnapshot,
    VerbosityMode,
)
from replyguard.storage import SQLiteLedger
from replyguard.tone import compute_trust_tier, select_tone
from replyguard.validation import ValidationError

SEVERITIES = [s.value for s in SeverityLevel]
STATES = [s.value for s in StateKind]
EMOTIONS = [e.value for e in PrimaryEmotion]


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _trust(score: Optional[float]) -> Optional[TrustSnapshot]:
    return TrustSnapshot(trust_score=score) if score is not None else None


def cmd_consume(args) -> int:
    """Consume one unit of quota for a user."""
    store = SQLiteLedger(args.db)
    try:
        limiter = UsageLimiter(store)
        plan = get_plan_limits(args.plan, is_tester=args.tester)
        result = limiter.consume(args.user_id, plan, is_premium_plan(args.plan), args.tester)
    finally:
        store.close()
    _print_json(result.to_dict())
    return 0 if result.ok else 2


def cmd_usage(args) -> int:
    """Show usage without consuming."""
    store = SQLiteLedger(args.db)
    try:
        summary = UsageLimiter(store).usage_summary(args.user_id, get_plan_limits(args.plan))
    finally:
        store.close()
    _print_json(summary)
    return 0


def cmd_tone(args) -> int:
    tier = compute_trust_tier(_trust(args.trust))
    tone = select_tone(
        SeverityLevel(args.severity),
        ConversationState(StateKind(args.state)),
        PersonaStyle(humor=args.humor),
        tier,
    )
    _print_json({
        "trust_tier": tier,
        "empathy_level": tone.empathy_level.value,
        "message_length": tone.message_length.value,
        "include_soft_disclaimer": tone.include_soft_disclaimer,
        "include_full_safety_footer": tone.include_full_safety_footer,
        "allow_light_humor": tone.allow_light_humor,
    })
    return 0


def cmd_mode(args) -> int:
    tier = compute_trust_tier(_trust(args.trust))
    mode = select_mode(
        SeverityLevel(args.severity),
        tier,
        args.premium,
        requested_mode=RequestedMode(args.requested),
        conversation_length=args.length,
        emotion=EmotionSnapshot(PrimaryEmotion(args.emotion), args.intensity),
    )
    _print_json({"trust_tier": tier, "engine_mode": mode.value})
    return 0


def cmd_orchestrate(args) -> int:
    """Shape a raw reply and print the result."""
    request = OrchestrationRequest(
        raw_reply=args.text,
        emotion=EmotionSnapshot(PrimaryEmotion(args.emotion), args.intensity, notes=args.notes),
        conversation_state=ConversationState(StateKind(args.state)),
        triggers=[Trigger(topic=t) for t in args.trigger],
        language=Language(args.language),
        severity_level=SeverityLevel(args.severity),
        engine_mode=EngineMode(args.mode),
        is_premium_user=args.premium,
        trust_snapshot=_trust(args.trust),
        verbosity_mode=VerbosityMode.SHORT if args.short else VerbosityMode.NORMAL,
    )
    print(orchestrate_response(request))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="replyguard",
        description="replyguard: quota gate and reply shaping CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Consume one message for a free user
  replyguard consume user_123 --plan free

  # Inspect usage
  replyguard usage user_123 --plan premium

  # Preview tone for a trusted user venting
  replyguard tone --severity VENTING --trust 85

  # Shape a raw reply
  replyguard orchestrate "You must rest." --severity SUPPORT --emotion SAD --intensity 4
""",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    consume_parser = subparsers.add_parser("consume", help="Consume one unit of quota")
    consume_parser.add_argument("user_id")
    consume_parser.add_argument("--plan", "-p", default="free", help="Plan name (free, premium)")
    consume_parser.add_argument("--tester", action="store_true", help="Bypass limits")
    consume_parser.add_argument("--db", default="replyguard.db", help="SQLite ledger path")

    usage_parser = subparsers.add_parser("usage", help="Show usage for a user")
    usage_parser.add_argument("user_id")
    usage_parser.add_argument("--plan", "-p", default="free")
    usage_parser.add_argument("--db", default="replyguard.db")

    tone_parser = subparsers.add_parser("tone", help="Preview the tone profile")
    tone_parser.add_argument("--severity", "-s", default="CASUAL", choices=SEVERITIES)
    tone_parser.add_argument("--state", default="NEUTRAL", choices=STATES)
    tone_parser.add_argument("--humor", default="low", choices=["low", "medium", "high"])
    tone_parser.add_argument("--trust", type=float, help="Trust score 0-100")

    mode_parser = subparsers.add_parser("mode", help="Preview the engine mode")
    mode_parser.add_argument("--severity", "-s", default="CASUAL", choices=SEVERITIES)
    mode_parser.add_argument("--trust", type=float)
    mode_parser.add_argument("--premium", action="store_true")
    mode_parser.add_argument("--requested", default="auto", choices=[m.value for m in RequestedMode])
    mode_parser.add_argument("--length", type=int, default=0, help="Messages so far")
    mode_parser.add_argument("--emotion", default="NEUTRAL", choices=EMOTIONS)
    mode_parser.add_argument("--intensity", type=int, default=0)

    orch_parser = subparsers.add_parser("orchestrate", help="Shape a raw reply")
    orch_parser.add_argument("text", help="Raw model reply")
    orch_parser.add_argument("--severity", "-s", default="CASUAL", choices=SEVERITIES)
    orch_parser.add_argument("--state", default="NEUTRAL", choices=STATES)
    orch_parser.add_argument("--emotion", default="NEUTRAL", choices=EMOTIONS)
    orch_parser.add_argument("--intensity", type=int, default=0)
    orch_parser.add_argument("--notes", help="Classifier notes")
    orch_parser.add_argument("--language", "-l", default="en", choices=[l.value for l in Language])
    orch_parser.add_argument("--mode", "-m", default="CORE_FAST", choices=[m.value for m in EngineMode])
    orch_parser.add_argument("--premium", action="store_true")
    orch_parser.add_argument("--trust", type=float)
    orch_parser.add_argument("--short", action="store_true", help="Short verbosity")
    orch_parser.add_argument("--trigger", action="append", default=[], help="Sensitive topic (repeatable)")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    commands = {
        "consume": cmd_consume,
        "usage": cmd_usage,
        "tone": cmd_tone,
        "mode": cmd_mode,
        "orchestrate": cmd_orchestrate,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    try:
        return handler(args)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
