"""Tests for tone selection and trust tiers."""

import math

import pytest

from replyguard.config import set_tuning
from replyguard.schemas import (
    ConversationState,
    EmpathyLevel,
    MessageLength,
    PersonaStyle,
    SeverityLevel,
    StateKind,
    TrustSnapshot,
)
from replyguard.tone import compute_trust_tier, select_tone

FUNNY = PersonaStyle(humor="high")


class TestTrustTier:
    @pytest.mark.parametrize("score,tier", [
        (0, 1), (19, 1), (20, 2), (39.9, 2), (40, 3), (60, 4), (79, 4), (80, 5), (100, 5),
    ])
    def test_thresholds(self, score, tier):
        assert compute_trust_tier(TrustSnapshot(trust_score=score)) == tier

    def test_missing_and_bad_scores(self):
        """Missing, negative and non-finite scores are tier 1."""
        assert compute_trust_tier(None) == 1
        assert compute_trust_tier(TrustSnapshot(trust_score=-5)) == 1
        assert compute_trust_tier(TrustSnapshot(trust_score=math.nan)) == 1
        assert compute_trust_tier(TrustSnapshot(trust_score=math.inf)) == 1

    def test_custom_thresholds(self):
        set_tuning(trust_tier_thresholds=(10, 20, 30, 40))
        assert compute_trust_tier(TrustSnapshot(trust_score=35)) == 4

    def test_thresholds_must_ascend(self):
        with pytest.raises(ValueError):
            set_tuning(trust_tier_thresholds=(50, 20, 30, 40))


class TestBaseProfiles:
    def test_high_risk(self):
        tone = select_tone(SeverityLevel.HIGH_RISK)
        assert tone.empathy_level == EmpathyLevel.HIGH
        assert tone.include_full_safety_footer is True
        assert tone.include_soft_disclaimer is False
        assert tone.allow_light_humor is False

    def test_support(self):
        tone = select_tone(SeverityLevel.SUPPORT)
        assert tone.empathy_level == EmpathyLevel.HIGH
        assert tone.message_length == MessageLength.NORMAL
        assert tone.include_soft_disclaimer is True

    def test_venting(self):
        tone = select_tone(SeverityLevel.VENTING)
        assert tone.empathy_level == EmpathyLevel.MEDIUM
        assert tone.include_soft_disclaimer is True

    def test_casual(self):
        tone = select_tone(SeverityLevel.CASUAL)
        assert tone.empathy_level == EmpathyLevel.LOW
        assert tone.message_length == MessageLength.SHORT
        assert tone.include_soft_disclaimer is False
        assert tone.include_full_safety_footer is False


class TestHumor:
    def test_casual_with_funny_persona(self):
        assert select_tone(SeverityLevel.CASUAL, persona_style=FUNNY).allow_light_humor is True

    def test_low_humor_persona(self):
        assert select_tone(SeverityLevel.CASUAL, persona_style=PersonaStyle()).allow_light_humor is False

    def test_support_state_blocks_humor(self):
        state = ConversationState(StateKind.SAD_SUPPORT)
        assert select_tone(SeverityLevel.CASUAL, state, FUNNY).allow_light_humor is False

    def test_never_for_high_risk(self):
        assert select_tone(SeverityLevel.HIGH_RISK, persona_style=FUNNY, trust_tier=5).allow_light_humor is False


class TestTrustEscalation:
    def test_tier_three_lifts_empathy(self):
        assert select_tone(SeverityLevel.CASUAL, trust_tier=3).empathy_level == EmpathyLevel.MEDIUM
        assert select_tone(SeverityLevel.CASUAL, trust_tier=2).empathy_level == EmpathyLevel.LOW

    def test_tier_four_lengthens_short(self):
        assert select_tone(SeverityLevel.CASUAL, trust_tier=4).message_length == MessageLength.NORMAL

    def test_tier_five_single_step(self):
        """One length step per request: short becomes normal, not extended."""
        assert select_tone(SeverityLevel.CASUAL, trust_tier=5).message_length == MessageLength.NORMAL
        assert select_tone(SeverityLevel.SUPPORT, trust_tier=5).message_length == MessageLength.EXTENDED

    def test_tier_four_keeps_normal(self):
        assert select_tone(SeverityLevel.SUPPORT, trust_tier=4).message_length == MessageLength.NORMAL

    def test_high_risk_not_relaxed_by_trust(self):
        """HIGH_RISK yields the same profile at every tier."""
        base = select_tone(SeverityLevel.HIGH_RISK, trust_tier=1)
        for tier in range(2, 6):
            assert select_tone(SeverityLevel.HIGH_RISK, trust_tier=tier) == base
