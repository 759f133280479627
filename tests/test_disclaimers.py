"""Tests for disclaimer rules and footer choice."""

import pytest

from replyguard.disclaimers import (
    DISCLAIMER_RULES,
    FULL_FOOTERS,
    SOFT_FOOTERS,
    choose_footer,
    count_safety_sentences,
    find_disclaimer,
    has_safety_disclaimer,
    strip_disclaimers,
)
from replyguard.schemas import (
    ConversationState,
    EmotionSnapshot,
    Language,
    PrimaryEmotion,
    SeverityLevel,
    StateKind,
    VerbosityMode,
)
from replyguard.tone import select_tone


class TestRuleTable:
    @pytest.mark.parametrize("sentence", [
        "I'm not a doctor, but rest helps.",
        "I am not a therapist.",
        "This is not medical advice.",
        "I can't give a diagnosis.",
        "For serious or urgent concerns, call someone.",
        "If you have thoughts of self-harm, please get help.",
        "Please reach out to a professional.",
        "You could seek professional help.",
        "لست طبيباً لكن أسمعك.",
        "هذا ليس نصيحة طبية.",
        "إذا عندك أفكار إيذاء النفس اطلب المساعدة.",
        "تواصل مع مختص إذا احتجت.",
    ])
    def test_detects(self, sentence):
        assert has_safety_disclaimer(sentence)

    @pytest.mark.parametrize("sentence", [
        "Let's take a short walk.",
        "You're not alone and I'm here with you.",
        "أنت لست وحدك وأنا هنا معك.",
    ])
    def test_ignores_ordinary_text(self, sentence):
        assert not has_safety_disclaimer(sentence)

    def test_every_footer_matches_a_rule(self):
        """Canonical footers are recognised, so stripping keeps them unique."""
        for footer in list(FULL_FOOTERS.values()) + list(SOFT_FOOTERS.values()):
            assert find_disclaimer(footer) is not None
            assert count_safety_sentences(footer) == 1

    def test_rules_cover_both_languages(self):
        languages = {rule.language for rule in DISCLAIMER_RULES}
        assert languages == {Language.EN, Language.AR}


class TestStrip:
    def test_strips_only_disclaimer_sentences(self):
        text = "Rest tonight. I'm not a doctor.\nTry some water. Not medical advice."
        body, removed = strip_disclaimers(text)
        assert body == "Rest tonight.\nTry some water."
        assert removed == ["I'm not a doctor.", "Not medical advice."]

    def test_drops_emptied_lines(self):
        body, _ = strip_disclaimers("Hello.\nI'm not a therapist.\nBye.")
        assert body == "Hello.\nBye."


class TestChooseFooter:
    def _footer(self, severity, **kwargs):
        tone = select_tone(severity)
        return choose_footer(
            severity,
            tone,
            kwargs.get("emotion"),
            kwargs.get("state"),
            kwargs.get("language", Language.EN),
            kwargs.get("verbosity", VerbosityMode.NORMAL),
        )

    def test_high_risk_full(self):
        assert self._footer(SeverityLevel.HIGH_RISK) == FULL_FOOTERS[Language.EN]

    def test_high_risk_full_in_short_mode(self):
        assert self._footer(SeverityLevel.HIGH_RISK, verbosity=VerbosityMode.SHORT) == FULL_FOOTERS[Language.EN]

    def test_support_soft(self):
        assert self._footer(SeverityLevel.SUPPORT) == SOFT_FOOTERS[Language.EN]

    def test_casual_none(self):
        assert self._footer(SeverityLevel.CASUAL) is None

    def test_short_mode_suppresses_footer(self):
        assert self._footer(SeverityLevel.SUPPORT, verbosity=VerbosityMode.SHORT) is None

    def test_sustained_severe_is_full(self):
        emotion = EmotionSnapshot(PrimaryEmotion.SAD, 3)
        state = ConversationState(StateKind.SAD_SUPPORT)
        assert self._footer(SeverityLevel.VENTING, emotion=emotion, state=state) == FULL_FOOTERS[Language.EN]

    def test_severe_outside_support_state_is_soft(self):
        emotion = EmotionSnapshot(PrimaryEmotion.SAD, 5)
        state = ConversationState(StateKind.NEUTRAL)
        assert self._footer(SeverityLevel.VENTING, emotion=emotion, state=state) == SOFT_FOOTERS[Language.EN]

    def test_harm_notes_are_full(self):
        emotion = EmotionSnapshot(PrimaryEmotion.NEUTRAL, 1, notes="mentions wanting to end my life")
        assert self._footer(SeverityLevel.CASUAL, emotion=emotion) == FULL_FOOTERS[Language.EN]

    def test_arabic_and_mixed(self):
        assert self._footer(SeverityLevel.HIGH_RISK, language=Language.AR) == FULL_FOOTERS[Language.AR]
        assert self._footer(SeverityLevel.SUPPORT, language=Language.MIXED) == SOFT_FOOTERS[Language.EN]
