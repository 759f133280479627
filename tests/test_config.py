"""Tests for configuration."""

import json

import pytest

from replyguard.config import (
    TESTER_LIMIT,
    get_models,
    get_plan_limits,
    get_tuning,
    is_premium_plan,
    set_models,
    set_plan_limits,
    set_tuning,
)
from replyguard.providers import model_for, model_tier_for
from replyguard.schemas import EngineMode


class TestTuning:
    def test_defaults(self):
        tuning = get_tuning()
        assert tuning.trust_tier_thresholds == (20, 40, 60, 80)
        assert tuning.short_mode_max_chars == 220
        assert tuning.daily_lock_hours == 24

    def test_runtime_override(self):
        set_tuning(max_emojis=1)
        assert get_tuning().max_emojis == 1

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            set_tuning(not_a_knob=3)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("REPLYGUARD_TUNING_JSON", json.dumps({"trigger_limit": 1}))
        assert get_tuning().trigger_limit == 1

    def test_bad_env_ignored(self, monkeypatch):
        monkeypatch.setenv("REPLYGUARD_TUNING_JSON", "{not json")
        assert get_tuning().trigger_limit == 3


class TestPlans:
    def test_defaults(self):
        free = get_plan_limits("free")
        assert (free.daily_limit, free.monthly_limit) == (5, 50)
        premium = get_plan_limits("premium")
        assert (premium.daily_limit, premium.monthly_limit) == (0, 500)

    def test_alias_and_unknown(self):
        assert get_plan_limits("pro") == get_plan_limits("premium")
        assert get_plan_limits("mystery") == get_plan_limits("free")
        assert is_premium_plan("PRO")
        assert not is_premium_plan("free")

    def test_tester(self):
        limits = get_plan_limits("free", is_tester=True)
        assert limits.is_tester is True
        assert limits.daily_limit == TESTER_LIMIT

    def test_set_plan_limits(self):
        set_plan_limits("free", daily=10)
        assert get_plan_limits("free").daily_limit == 10
        assert get_plan_limits("free").monthly_limit == 50

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("REPLYGUARD_PLANS_JSON", json.dumps({"free": {"daily": 1, "monthly": 2}}))
        assert get_plan_limits("free").daily_limit == 1


class TestModels:
    def test_tier_selection(self):
        assert model_tier_for(EngineMode.CORE_FAST, False) == "core"
        assert model_tier_for(EngineMode.PREMIUM_DEEP, False) == "premium"
        assert model_tier_for(EngineMode.CORE_FAST, True) == "premium"

    def test_defaults_and_override(self):
        assert model_for("core") == "gpt-4o-mini"
        set_models(premium="gpt-4.1")
        assert get_models()["premium"] == "gpt-4.1"
        assert model_for("premium") == "gpt-4.1"
