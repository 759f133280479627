"""Tests for engine-mode selection."""

from replyguard.config import set_tuning
from replyguard.engine_mode import select_mode
from replyguard.schemas import (
    EmotionSnapshot,
    EngineMode,
    PrimaryEmotion,
    RequestedMode,
    SeverityLevel,
)


def sad(intensity):
    return EmotionSnapshot(primary_emotion=PrimaryEmotion.SAD, intensity=intensity)


class TestRequestedMode:
    """Caller hints win over everything else."""

    def test_lite_forces_fast_even_for_high_risk(self):
        mode = select_mode(SeverityLevel.HIGH_RISK, 5, True, requested_mode=RequestedMode.LITE)
        assert mode == EngineMode.CORE_FAST

    def test_deep_for_premium(self):
        mode = select_mode(SeverityLevel.CASUAL, 1, True, requested_mode=RequestedMode.DEEP)
        assert mode == EngineMode.PREMIUM_DEEP

    def test_deep_for_free_is_core_deep(self):
        mode = select_mode(SeverityLevel.CASUAL, 1, False, requested_mode=RequestedMode.DEEP)
        assert mode == EngineMode.CORE_DEEP

    def test_balanced_is_auto(self):
        auto = select_mode(SeverityLevel.SUPPORT, 2, True)
        balanced = select_mode(SeverityLevel.SUPPORT, 2, True, requested_mode=RequestedMode.BALANCED)
        assert auto == balanced

    def test_string_hint_accepted(self):
        assert select_mode(SeverityLevel.CASUAL, 1, True, requested_mode="lite") == EngineMode.CORE_FAST


class TestFreeUsers:
    def test_free_high_risk_is_fast(self):
        """Free users stay on the fast engine without an explicit hint."""
        assert select_mode(SeverityLevel.HIGH_RISK, 5, False) == EngineMode.CORE_FAST

    def test_free_long_conversation_is_fast(self):
        assert select_mode(SeverityLevel.VENTING, 5, False, conversation_length=40) == EngineMode.CORE_FAST


class TestPremiumUsers:
    def test_high_risk_goes_premium_deep(self):
        assert select_mode(SeverityLevel.HIGH_RISK, 1, True) == EngineMode.PREMIUM_DEEP

    def test_support_with_strong_negative_emotion(self):
        assert select_mode(SeverityLevel.SUPPORT, 1, True, emotion=sad(4)) == EngineMode.PREMIUM_DEEP

    def test_support_with_mild_emotion(self):
        assert select_mode(SeverityLevel.SUPPORT, 1, True, emotion=sad(3)) == EngineMode.CORE_DEEP

    def test_support_with_positive_emotion(self):
        hopeful = EmotionSnapshot(primary_emotion=PrimaryEmotion.HOPEFUL, intensity=5)
        assert select_mode(SeverityLevel.SUPPORT, 1, True, emotion=hopeful) == EngineMode.CORE_DEEP

    def test_long_conversation(self):
        assert select_mode(SeverityLevel.CASUAL, 1, True, conversation_length=17) == EngineMode.CORE_DEEP
        assert select_mode(SeverityLevel.CASUAL, 1, True, conversation_length=16) == EngineMode.CORE_FAST

    def test_trusted_venting(self):
        assert select_mode(SeverityLevel.VENTING, 4, True) == EngineMode.CORE_DEEP
        assert select_mode(SeverityLevel.VENTING, 3, True) == EngineMode.CORE_FAST

    def test_casual_default(self):
        assert select_mode(SeverityLevel.CASUAL, 5, True) == EngineMode.CORE_FAST

    def test_tuned_conversation_length(self):
        set_tuning(deep_conversation_length=4)
        assert select_mode(SeverityLevel.CASUAL, 1, True, conversation_length=5) == EngineMode.CORE_DEEP
