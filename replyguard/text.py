"""Sentence, line and emoji helpers for English and Arabic text."""

import re

SENTENCE_BREAK_RE = re.compile(r"(?<=[.!?؟])\s+")
EMOJI_RE = re.compile("[\U0001F300-\U0001FAFF\u2600-\u27BF]\uFE0F?")
TERMINAL_PUNCT_RE = re.compile(r"[.!?؟]+")
WHITESPACE_RE = re.compile(r"\s+")
TRAILING_EMOJI_RE = re.compile("(?:\\s*[\U0001F300-\U0001FAFF\u2600-\u27BF]\uFE0F?)+\\s*$")


def split_sentences(text: str) -> list[str]:
    """Split after . ! ? or the Arabic question mark."""
    return [s.strip() for s in SENTENCE_BREAK_RE.split(str(text or "")) if s.strip()]


def split_lines(text: str) -> list[str]:
    return [line for line in str(text or "").split("\n") if line.strip()]


def limit_sentences(text: str, max_sentences: int) -> str:
    sentences = split_sentences(text)
    return " ".join(sentences[:max_sentences]).strip() or str(text or "").strip()


def ends_with_question(text: str) -> bool:
    stripped = strip_trailing_emojis(text)
    return bool(stripped) and stripped[-1] in "?؟"


def count_emojis(text: str) -> int:
    return len(EMOJI_RE.findall(str(text or "")))


def has_emoji(text: str) -> bool:
    return bool(EMOJI_RE.search(str(text or "")))


def clamp_emojis(text: str, max_emojis: int) -> str:
    """Keep the first ``max_emojis`` emoji and drop the rest."""
    text = str(text or "")
    if max_emojis <= 0:
        return EMOJI_RE.sub("", text)

    seen = 0

    def keep_first(match: re.Match) -> str:
        nonlocal seen
        seen += 1
        return match.group(0) if seen <= max_emojis else ""

    return EMOJI_RE.sub(keep_first, text)


def strip_trailing_emojis(text: str) -> str:
    return TRAILING_EMOJI_RE.sub("", str(text or "")).rstrip()


def normalize_for_dedupe(sentence: str) -> str:
    without_emojis = EMOJI_RE.sub("", sentence)
    without_punct = TERMINAL_PUNCT_RE.sub("", without_emojis)
    return WHITESPACE_RE.sub(" ", without_punct).lower().strip()


def dedupe_sentences(sentences: list[str]) -> list[str]:
    """
    Drop near-identical sentences, keeping the first occurrence.

    Two sentences are duplicates when their normalized forms are equal or one
    contains the other. Sentences that normalize to nothing (emoji only) are
    dropped.
    """
    seen: list[str] = []
    out: list[str] = []
    for sentence in sentences:
        normalized = normalize_for_dedupe(sentence)
        if not normalized:
            continue
        if any(normalized == s or normalized in s or s in normalized for s in seen):
            continue
        seen.append(normalized)
        out.append(sentence.strip())
    return out


def clip_chars(text: str, max_chars: int) -> str:
    """Cut to ``max_chars``, preferring a word boundary."""
    text = str(text or "").strip()
    if len(text) <= max_chars:
        return text
    clipped = text[:max_chars]
    if " " in clipped:
        head = clipped.rsplit(" ", 1)[0].rstrip()
        if head:
            clipped = head
    return clipped.strip()
