"""
Safety disclaimer rules and canonical footers.

Model-authored disclaimers are detected with a declarative table of
(language, pattern) rules and one matcher, so a new language or phrasing is a
new row rather than a new branch.
"""

import re
from dataclasses import dataclass
from typing import Optional

from replyguard.config import get_tuning
from replyguard.schemas import (
    ConversationState,
    EmotionSnapshot,
    Language,
    PrimaryEmotion,
    SeverityLevel,
    SUPPORT_STATES,
    ToneProfile,
    VerbosityMode,
)
from replyguard.text import split_lines, split_sentences


@dataclass(frozen=True)
class DisclaimerRule:
    language: Language
    pattern: re.Pattern
    label: str


def _en(pattern: str, label: str) -> DisclaimerRule:
    return DisclaimerRule(Language.EN, re.compile(pattern, re.IGNORECASE), label)


def _ar(pattern: str, label: str) -> DisclaimerRule:
    return DisclaimerRule(Language.AR, re.compile(pattern), label)


DISCLAIMER_RULES: tuple[DisclaimerRule, ...] = (
    _en(r"\b(?:i['’]m\s+|i\s+am\s+)?not\s+(?:a\s+)?(?:doctor|therapist|psychologist|psychiatrist|counselor|professional)\b", "not_a_professional"),
    _en(r"\bnot\s+(?:medical|professional)\s+advice\b", "not_advice"),
    _en(r"\bI\s+can(?:not|['’]t)\s+give\s+(?:you\s+)?(?:a\s+)?diagnosis\b", "no_diagnosis"),
    _en(r"\bfor\s+serious\s+or\s+urgent\s+concerns\b", "urgent_concerns"),
    _en(r"\bif\s+(?:you|u)\s+have\s+thoughts?\s+of\s+(?:self[-\s]?harm|suicide|ending\s+your\s+life)\b", "self_harm_thoughts"),
    _en(r"\bself[-\s]?harm\s+thoughts?\b", "self_harm_thoughts"),
    _en(r"\breach\s+out\s+to\s+(?:a\s+)?(?:professional|therapist|doctor|someone\s+you\s+trust)\b", "reach_out"),
    _en(r"\bseek\s+(?:out\s+)?professional\s+(?:help|support|care)\b", "seek_help"),
    _en(r"\bcan['’]t\s+replace\s+professional\s+care\b", "not_a_replacement"),
    _ar(r"ليس(?:ت)?\s+(?:نصيحة|استشارة)\s+(?:طبية|طبي)", "not_advice"),
    _ar(r"ليس\s+تشخيص(?:اً|ا)?\s+طبي", "no_diagnosis"),
    _ar(r"لست(?:ُ)?\s+(?:طبيباً|طبيب|معالج(?:اً)?(?:\s+نفسي)?)", "not_a_professional"),
    _ar(r"أفكار\s+(?:إيذاء\s+النفس|إيذاءٍ?\s+للنفس|انتحار|انتحارية)", "self_harm_thoughts"),
    _ar(r"تواص(?:ل|لي)\s+مع\s+(?:مختص|أخصائي|شخص\s+تثق\s+به)", "reach_out"),
    _ar(r"لا\s+أستبدل\s+الرعاية\s+المتخص", "not_a_replacement"),
)

FULL_FOOTERS: dict[Language, str] = {
    Language.EN: (
        "Remember: this is supportive guidance, not medical advice, and if self-harm "
        "thoughts appear, please reach out to a professional or someone you trust."
    ),
    Language.AR: (
        "تذكّر: كلامي دعم ومساندة وليس تشخيص طبي، ولو ظهرت أفكار إيذاء للنفس "
        "تواصل مع مختص أو شخص تثق به."
    ),
}

SOFT_FOOTERS: dict[Language, str] = {
    Language.EN: "I'm here to support you, but I can't replace professional care.",
    Language.AR: "أنا هنا للدعم، لكن لا أستبدل الرعاية المتخصّصة.",
}

SELF_HARM_NOTES_RE = re.compile(
    r"(?:self[-\s]?harm|kill myself|suicide|suicidal|end my life|إيذاء\s+النفس|انتحار|قتل\s+نفسي)",
    re.IGNORECASE,
)
HARM_OTHERS_NOTES_RE = re.compile(
    r"(?:harm(?:ing)?\s+(?:someone|others)|kill\s+(?:someone|them)|إيذاء\s+(?:الآخرين|شخص)|قتل\s+(?:شخص|أحد|الناس))",
    re.IGNORECASE,
)

SEVERE_EMOTIONS = frozenset({
    PrimaryEmotion.SAD,
    PrimaryEmotion.ANXIOUS,
    PrimaryEmotion.LONELY,
    PrimaryEmotion.ANGRY,
})


def phrase_language(language: Language) -> Language:
    """Mixed conversations use English phrasing."""
    return Language.AR if language == Language.AR else Language.EN


def find_disclaimer(text: str) -> Optional[DisclaimerRule]:
    """Return the first rule that matches, in any language."""
    text = str(text or "")
    for rule in DISCLAIMER_RULES:
        if rule.pattern.search(text):
            return rule
    return None


def has_safety_disclaimer(text: str) -> bool:
    return find_disclaimer(text) is not None


def count_safety_sentences(text: str) -> int:
    return sum(
        1
        for line in split_lines(text)
        for sentence in split_sentences(line)
        if has_safety_disclaimer(sentence)
    )


def strip_disclaimers(text: str) -> tuple[str, list[str]]:
    """
    Remove every sentence matching a disclaimer rule.

    Line structure is kept; lines left empty are dropped.

    Returns:
        (remaining text, removed sentences in order)
    """
    kept_lines: list[str] = []
    removed: list[str] = []
    for line in str(text or "").split("\n"):
        sentences = split_sentences(line)
        if not sentences:
            kept_lines.append("")
            continue
        kept = []
        for sentence in sentences:
            if has_safety_disclaimer(sentence):
                removed.append(sentence)
            else:
                kept.append(sentence)
        if kept:
            kept_lines.append(" ".join(kept))

    remaining = "\n".join(kept_lines)
    remaining = re.sub(r"\n{3,}", "\n\n", remaining).strip()
    return remaining, removed


def is_sustained_severe(
    emotion: Optional[EmotionSnapshot],
    conversation_state: Optional[ConversationState],
) -> bool:
    """A severe negative emotion held while the conversation is in a support state."""
    if emotion is None or conversation_state is None:
        return False
    return (
        emotion.intensity >= get_tuning().sustained_severity_intensity
        and emotion.primary_emotion in SEVERE_EMOTIONS
        and conversation_state.current_state in SUPPORT_STATES
    )


def notes_mention_harm(emotion: Optional[EmotionSnapshot]) -> bool:
    notes = (emotion.notes or "") if emotion else ""
    if not notes:
        return False
    return bool(SELF_HARM_NOTES_RE.search(notes) or HARM_OTHERS_NOTES_RE.search(notes))


def choose_footer(
    severity: SeverityLevel,
    tone: ToneProfile,
    emotion: Optional[EmotionSnapshot],
    conversation_state: Optional[ConversationState],
    language: Language,
    verbosity_mode: VerbosityMode = VerbosityMode.NORMAL,
) -> Optional[str]:
    """
    Pick the single canonical footer for a reply, or None.

    Short verbosity keeps replies footer-free unless severity is HIGH_RISK.
    """
    lang = phrase_language(language)
    if severity == SeverityLevel.HIGH_RISK or tone.include_full_safety_footer:
        return FULL_FOOTERS[lang]
    if verbosity_mode == VerbosityMode.SHORT:
        return None
    if is_sustained_severe(emotion, conversation_state) or notes_mention_harm(emotion):
        return FULL_FOOTERS[lang]
    if tone.include_soft_disclaimer:
        return SOFT_FOOTERS[lang]
    return None
