"""
Response orchestrator for replyguard.

Rewrites a raw generated reply into the final text the user sees. Every step
is a plain function over a string, applied in a fixed order by
ResponseOrchestrator. Each step is idempotent: running it on its own output
changes nothing.

Order:
 1. Directive softening (skipped for trusted users)
 2. Trigger redaction
 3. Conversation-state rewrite
 4. Empathy opener
 5. Emotion modulation
 6. Free/fast flattening
 7. Disclaimer normalization (one canonical footer)
 8. Line capping (body only)
 9. Short-verbosity enforcement
10. Emoji decoration
"""

import logging
import re
from typing import Optional

from replyguard.config import Tuning, get_tuning
from replyguard.disclaimers import choose_footer, has_safety_disclaimer, phrase_language, strip_disclaimers
from replyguard.metrics import MetricsCollector, get_metrics
from replyguard.schemas import (
    EmotionSnapshot,
    EmpathyLevel,
    EngineMode,
    Language,
    MessageLength,
    OrchestrationRequest,
    PrimaryEmotion,
    SeverityLevel,
    StateKind,
    ToneProfile,
    Trigger,
    VerbosityMode,
)
from replyguard.text import (
    clamp_emojis,
    clip_chars,
    dedupe_sentences,
    ends_with_question,
    has_emoji,
    limit_sentences,
    split_lines,
    split_sentences,
    strip_trailing_emojis,
)
from replyguard.tone import compute_trust_tier, select_tone
from replyguard.validation import validate_intensity, validate_trust_score

logger = logging.getLogger("replyguard.orchestrator")


SOFTENING: dict[Language, tuple[tuple[re.Pattern, str], ...]] = {
    Language.EN: (
        (re.compile(r"\byou must\b", re.IGNORECASE), "you might"),
        (re.compile(r"\byou should\b", re.IGNORECASE), "you could consider"),
        (re.compile(r"\byou need to\b", re.IGNORECASE), "it may help to"),
        (re.compile(r"\bjust do\b", re.IGNORECASE), "you could try"),
    ),
    Language.AR: (
        (re.compile(r"(?<!\w)لا تفعل(?!\w)"), "حاول تتجنب"),
        (re.compile(r"(?<!\w)لازم(?!\w)"), "يمكن"),
        (re.compile(r"(?<!\w)يجب(?!\w)"), "ممكن"),
        (re.compile(r"(?<!\w)افعل(?!\w)"), "ممكن تحاول"),
    ),
}

TRIGGER_PLACEHOLDER = {
    Language.EN: "this area",
    Language.AR: "هذا الموضوع",
}

STATE_PHRASES: dict[StateKind, dict[Language, str]] = {
    StateKind.ANXIETY_CALMING: {
        Language.EN: "Let's slow down for a moment and take a gentle breath.",
        Language.AR: "خلّينا نبطّئ شوي ونأخذ نفساً هادئاً.",
    },
    StateKind.ANGER_DEESCALATE: {
        Language.EN: "Let's bring the pace down and focus on easing the tension.",
        Language.AR: "خلّينا نهدّي الإيقاع ونركّز على تهدئة التوتر.",
    },
    StateKind.LONELY_COMPANIONSHIP: {
        Language.EN: "You're not alone and I'm here with you.",
        Language.AR: "أنت لست وحدك وأنا هنا معك.",
    },
    StateKind.HOPE_GUIDANCE: {
        Language.EN: "Let's lean into that hope with one small helpful step.",
        Language.AR: "خلّينا نستثمر هذا الأمل بخطوة صغيرة نافعة.",
    },
}

EMPATHY_OPENERS: dict[EmpathyLevel, dict[Language, str]] = {
    EmpathyLevel.HIGH: {
        Language.EN: "I hear you. It's understandable to feel this way.",
        Language.AR: "أنا معك، وفاهم شعورك.",
    },
    EmpathyLevel.MEDIUM: {
        Language.EN: "Thanks for sharing that with me. I'm here with you.",
        Language.AR: "شكراً إنك شاركتني. أنا هنا معك.",
    },
}

# A reply that already opens with one of these gets no second opener.
OPENER_STEMS: dict[Language, tuple[str, ...]] = {
    Language.EN: ("I hear you", "Thanks for sharing"),
    Language.AR: ("أنا معك", "شكراً إنك شاركتني"),
}

MODULATION_PHRASES: dict[PrimaryEmotion, dict[Language, str]] = {
    PrimaryEmotion.SAD: {
        Language.EN: "It sounds like you're carrying a lot; let's take it one gentle step at a time.",
        Language.AR: "أحس إنك متعب عاطفياً، خلّينا نمشي خطوة خطوة.",
    },
    PrimaryEmotion.ANXIOUS: {
        Language.EN: "Let's slow things down together so it feels a bit less overwhelming.",
        Language.AR: "خلّينا نبطّئ الإيقاع ونهدّي التوتر شوي.",
    },
    PrimaryEmotion.ANGRY: {
        Language.EN: "I can feel the frustration; we can unpack it calmly here without judgment.",
        Language.AR: "واضح إن في غضب أو انزعاج، وخلّينا نحاول نفهمه بهدوء بدون حكم.",
    },
    PrimaryEmotion.LONELY: {
        Language.EN: "Feeling lonely is heavy; I'm here with you while we talk through it.",
        Language.AR: "أعرف إن الشعور بالوحدة صعب، وأنا هنا معك الآن.",
    },
    PrimaryEmotion.HOPEFUL: {
        Language.EN: "Nice, let's lock that feeling in with one small step.",
        Language.AR: "حلو! خلّينا نثبت هالإحساس بخطوة صغيرة.",
    },
}

EMOJI_SUFFIXES: dict[PrimaryEmotion, str] = {
    PrimaryEmotion.SAD: " 😔💙",
    PrimaryEmotion.ANXIOUS: " 😟✨",
    PrimaryEmotion.STRESSED: " 😟✨",
    PrimaryEmotion.ANGRY: " 😡🔥",
    PrimaryEmotion.LONELY: " 🫂",
    PrimaryEmotion.HOPEFUL: " ✨❤️",
    PrimaryEmotion.GRATEFUL: " ✨❤️",
}
DEFAULT_EMOJI_SUFFIX = " 🙂"

FOLLOW_UP_QUESTIONS = {
    Language.EN: "What made you feel that?",
    Language.AR: "شو اللي خلاك تحس هيك؟",
}

BULLET_RE = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")


def _prepend_once(text: str, phrase: str) -> str:
    if phrase in text:
        return text
    return f"{phrase} {text}".strip()


def _match_case(replacement: str, matched: str) -> str:
    if matched[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def soften_directives(text: str, language: Language, trust_tier: int) -> str:
    """Turn commands into suggestions. Trusted users (tier 4+) get the direct voice."""
    if trust_tier >= 4:
        return text
    for pattern, replacement in SOFTENING[phrase_language(language)]:
        text = pattern.sub(lambda m, r=replacement: _match_case(r, m.group(0)), text)
    return text


def redact_triggers(text: str, triggers: list[Trigger], language: Language, limit: int = 3) -> str:
    """
    Replace known sensitive topics with a neutral phrase, whole words only.

    Placeholders already in the text are left alone, so a topic that is a
    word of the placeholder is not redacted twice.
    """
    placeholder = TRIGGER_PLACEHOLDER[phrase_language(language)]
    # Capturing group: split() keeps placeholder spans at odd indexes.
    placeholder_re = re.compile(rf"((?<!\w){re.escape(placeholder)}(?!\w))", re.IGNORECASE)
    for trigger in (triggers or [])[:limit]:
        topic = str(getattr(trigger, "topic", "") or "").strip()
        if not topic or topic.lower() == placeholder.lower():
            continue
        pattern = re.compile(rf"(?<!\w){re.escape(topic)}(?!\w)", re.IGNORECASE)
        parts = placeholder_re.split(text)
        text = "".join(
            part if i % 2 else pattern.sub(placeholder, part)
            for i, part in enumerate(parts)
        )
    return text


def apply_state_rewrite(text: str, state: StateKind, language: Language, max_sad_sentences: int = 3) -> str:
    if state == StateKind.SAD_SUPPORT:
        return limit_sentences(text, max_sad_sentences)
    phrases = STATE_PHRASES.get(state)
    if phrases is None:
        return text
    return _prepend_once(text, phrases[phrase_language(language)])


def add_empathy_opener(text: str, empathy_level: EmpathyLevel, language: Language) -> str:
    openers = EMPATHY_OPENERS.get(empathy_level)
    if openers is None:
        return text
    language = phrase_language(language)
    if text.lstrip().startswith(OPENER_STEMS[language]):
        return text
    return _prepend_once(text, openers[language])


def modulate_by_emotion(text: str, emotion: Optional[EmotionSnapshot], language: Language) -> str:
    if emotion is None or not text.strip():
        return text
    phrases = MODULATION_PHRASES.get(emotion.primary_emotion)
    if phrases is None:
        return text
    return _prepend_once(text, phrases[phrase_language(language)])


def flatten_free_fast(text: str, max_sentences: int = 4) -> str:
    """Strip list markup, join lines, keep the first few sentences."""
    lines = [BULLET_RE.sub("", line).strip() for line in split_lines(text)]
    joined = " ".join(line for line in lines if line)
    return limit_sentences(joined, max_sentences)


def line_cap(
    engine_mode: EngineMode,
    tone: ToneProfile,
    trust_tier: int,
    intensity: int,
    state: StateKind,
    tuning: Tuning,
) -> int:
    """Maximum body lines for a reply."""
    extended = (
        tone.message_length == MessageLength.EXTENDED
        and trust_tier >= tuning.extended_min_trust_tier
    )

    if engine_mode == EngineMode.PREMIUM_DEEP:
        cap = tuning.premium_deep_default_lines
        if intensity > 0:
            for threshold, lines in tuning.premium_deep_lines_by_intensity:
                if intensity >= threshold:
                    cap = lines
                    break
        if extended:
            cap += tuning.premium_deep_extended_bonus
        elif tone.message_length == MessageLength.SHORT:
            cap = max(tuning.premium_deep_short_floor, cap - 2)
    elif engine_mode == EngineMode.CORE_DEEP:
        if tone.message_length == MessageLength.SHORT:
            cap = tuning.core_deep_short_max_lines
        elif extended:
            cap = tuning.core_deep_extended_max_lines
        else:
            cap = tuning.core_deep_max_lines
    else:
        cap = tuning.core_fast_max_lines

    if state == StateKind.SAD_SUPPORT and engine_mode == EngineMode.CORE_FAST:
        cap = min(cap, tuning.sad_support_max_lines)
    return cap


def cap_lines(text: str, max_lines: int) -> str:
    return "\n".join(split_lines(text)[:max_lines])


def _clip_question(question: str, max_chars: int) -> str:
    if len(question) <= max_chars:
        return question
    mark = question[-1]
    head = clip_chars(question.rstrip("?؟"), max_chars - 1).rstrip(" ,;:.!")
    return f"{head}{mark}"


def enforce_short_verbosity(text: str, language: Language, tuning: Tuning) -> str:
    """
    Make a short-mode reply: at most two distinct sentences, within the
    character budget, ending with a question.
    """
    follow_up = FOLLOW_UP_QUESTIONS[phrase_language(language)]
    sentences = dedupe_sentences(split_sentences(text))[: tuning.short_mode_max_sentences]
    if not sentences:
        return follow_up

    last_question = None
    for index, sentence in enumerate(sentences):
        if ends_with_question(sentence):
            last_question = index

    if last_question is not None:
        out = " ".join(sentences[: last_question + 1])
        if len(out) > tuning.short_mode_max_chars:
            question = strip_trailing_emojis(sentences[last_question])
            out = _clip_question(question, tuning.short_mode_max_chars)
    else:
        budget = tuning.short_mode_max_chars - len(follow_up) - 1
        head = clip_chars(sentences[0], budget)
        out = f"{head} {follow_up}".strip()

    return strip_trailing_emojis(out)


def decorate_with_emojis(
    text: str,
    emotion: Optional[EmotionSnapshot],
    short_mode: bool,
    tuning: Tuning,
) -> str:
    """Short replies keep at most two existing emoji; others get one emotion pair."""
    if not text:
        return text
    if short_mode:
        return clamp_emojis(text, tuning.short_mode_max_emojis)
    if has_emoji(text):
        return clamp_emojis(text, tuning.max_emojis)

    primary = emotion.primary_emotion if emotion else None
    suffix = EMOJI_SUFFIXES.get(primary, DEFAULT_EMOJI_SUFFIX)
    lines = text.split("\n")
    for i, line in enumerate(lines):
        if line.strip() and not has_safety_disclaimer(line):
            lines[i] = line.rstrip() + suffix
            break
    return clamp_emojis("\n".join(lines), tuning.max_emojis)


class ResponseOrchestrator:
    """
    Applies the reply-shaping pipeline.

    Fail-open: any internal error returns the raw reply unchanged.

    Example:
        ```python
        orchestrator = ResponseOrchestrator()
        final = orchestrator.orchestrate(OrchestrationRequest(raw_reply=reply, ...))
        ```
    """

    def __init__(
        self,
        tuning: Optional[Tuning] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self._tuning = tuning
        self.metrics = metrics or get_metrics()

    @property
    def tuning(self) -> Tuning:
        return self._tuning or get_tuning()

    def orchestrate(self, request: OrchestrationRequest) -> str:
        raw = request.raw_reply
        if not isinstance(raw, str) or not raw.strip():
            return ""
        try:
            return self._run(request)
        except Exception as e:
            logger.warning("orchestration failed, returning raw reply: %s", e, exc_info=True)
            self.metrics.record_fallback("orchestrator", str(e))
            return raw

    def _run(self, request: OrchestrationRequest) -> str:
        tuning = self.tuning
        language = Language(request.language or Language.EN)
        severity = SeverityLevel(request.severity_level or SeverityLevel.CASUAL)
        verbosity = VerbosityMode(request.verbosity_mode or VerbosityMode.NORMAL)
        engine_mode = EngineMode(request.engine_mode or EngineMode.CORE_FAST)
        state = (
            request.conversation_state.current_state
            if request.conversation_state
            else StateKind.NEUTRAL
        )
        emotion = request.emotion
        if request.trust_snapshot is not None:
            validate_trust_score(request.trust_snapshot.trust_score)
        if emotion is not None:
            validate_intensity(emotion.intensity)
        short_mode = verbosity == VerbosityMode.SHORT
        trust_tier = compute_trust_tier(request.trust_snapshot)
        tone = select_tone(severity, request.conversation_state, request.persona_style, trust_tier)

        text = request.raw_reply.strip()
        text = soften_directives(text, language, trust_tier)
        text = redact_triggers(text, request.triggers, language, tuning.trigger_limit)
        text = apply_state_rewrite(text, state, language, tuning.sad_support_max_sentences)

        if not (short_mode and severity == SeverityLevel.CASUAL):
            text = add_empathy_opener(text, tone.empathy_level, language)
            text = modulate_by_emotion(text, emotion, language)

        if not request.is_premium_user and engine_mode == EngineMode.CORE_FAST:
            text = flatten_free_fast(text, tuning.free_fast_max_sentences)

        body, removed = strip_disclaimers(text)
        footer = choose_footer(
            severity, tone, emotion, request.conversation_state, language, verbosity,
        )
        if not body and footer is None and removed:
            body = removed[0]

        intensity = emotion.intensity if emotion else 0
        body = cap_lines(body, line_cap(engine_mode, tone, trust_tier, intensity, state, tuning))

        if short_mode and severity != SeverityLevel.HIGH_RISK:
            body = enforce_short_verbosity(body, language, tuning)

        body = decorate_with_emojis(body, emotion, short_mode, tuning)

        parts = [part for part in (body, footer) if part]
        final = "\n\n".join(parts)
        return final or request.raw_reply.strip()


def orchestrate_response(request: OrchestrationRequest, **kwargs) -> str:
    """
    Convenience function to orchestrate a reply.

    Args:
        request: Raw reply plus per-request context.
        **kwargs: Passed to ResponseOrchestrator constructor.

    Returns:
        Final reply text.
    """
    return ResponseOrchestrator(**kwargs).orchestrate(request)
