"""Tests for text helpers."""

from replyguard.text import (
    clamp_emojis,
    clip_chars,
    count_emojis,
    dedupe_sentences,
    ends_with_question,
    split_sentences,
    strip_trailing_emojis,
)


def test_split_sentences_english_and_arabic():
    assert split_sentences("One. Two! Three?") == ["One.", "Two!", "Three?"]
    assert split_sentences("كيف حالك؟ أنا هنا.") == ["كيف حالك؟", "أنا هنا."]


def test_split_keeps_unbroken_text():
    assert split_sentences("no punctuation here") == ["no punctuation here"]
    assert split_sentences("") == []


def test_clamp_emojis_keeps_first():
    text = "a 😔 b 💙 c 🫂 d ✨"
    clamped = clamp_emojis(text, 2)
    assert count_emojis(clamped) == 2
    assert "😔" in clamped and "💙" in clamped
    assert count_emojis(clamp_emojis(text, 0)) == 0


def test_variation_selector_counts_once():
    assert count_emojis("love ❤️") == 1


def test_dedupe_ignores_case_punctuation_and_emoji():
    sentences = ["I'm here for you.", "i'm here for you! 💙", "Tell me more?"]
    assert dedupe_sentences(sentences) == ["I'm here for you.", "Tell me more?"]


def test_dedupe_containment():
    sentences = ["I'm here.", "I'm here for you always."]
    assert dedupe_sentences(sentences) == ["I'm here."]


def test_dedupe_drops_emoji_only():
    assert dedupe_sentences(["🙂", "Hi."]) == ["Hi."]


def test_question_detection_ignores_trailing_emoji():
    assert ends_with_question("How are you? 🙂")
    assert ends_with_question("كيف حالك؟")
    assert not ends_with_question("Fine.")


def test_strip_trailing_emojis():
    assert strip_trailing_emojis("Okay? 😟✨") == "Okay?"


def test_clip_chars_word_boundary():
    assert clip_chars("hello wonderful world", 12) == "hello"
    assert clip_chars("short", 12) == "short"
