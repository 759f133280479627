"""Global configuration for replyguard."""

from __future__ import annotations

import copy
import dataclasses
import json
import os
from dataclasses import dataclass
from typing import Any, Dict

from replyguard.models import PlanLimits


@dataclass(frozen=True)
class Tuning:
    """Product tuning values. None of these are structural."""
    trust_tier_thresholds: tuple[int, ...] = (20, 40, 60, 80)

    # Orchestrator text budgets
    trigger_limit: int = 3
    sad_support_max_sentences: int = 3
    free_fast_max_sentences: int = 4
    short_mode_max_sentences: int = 2
    short_mode_max_chars: int = 220
    short_mode_max_emojis: int = 2
    max_emojis: int = 3

    # Line caps per engine mode
    core_fast_max_lines: int = 6
    core_deep_max_lines: int = 9
    core_deep_short_max_lines: int = 7
    core_deep_extended_max_lines: int = 11
    premium_deep_lines_by_intensity: tuple[tuple[int, int], ...] = ((5, 14), (3, 10), (1, 8))
    premium_deep_default_lines: int = 10
    premium_deep_extended_bonus: int = 2
    premium_deep_short_floor: int = 6
    sad_support_max_lines: int = 5
    extended_min_trust_tier: int = 4

    # Safety footer
    sustained_severity_intensity: int = 3

    # Engine mode
    deep_conversation_length: int = 16
    premium_deep_intensity: int = 4

    # Limiter
    daily_lock_hours: int = 24


DEFAULT_TUNING = Tuning()

DEFAULT_PLANS: Dict[str, Dict[str, int]] = {
    "free": {"daily": 5, "monthly": 50},
    "premium": {"daily": 0, "monthly": 500},
}
PLAN_ALIASES: Dict[str, str] = {"pro": "premium"}
TESTER_LIMIT = 999_999

DEFAULT_MODELS: Dict[str, str] = {
    "core": "gpt-4o-mini",
    "premium": "gpt-4o",
}

_tuning: Tuning = DEFAULT_TUNING
_plans: Dict[str, Dict[str, int]] = copy.deepcopy(DEFAULT_PLANS)
_models: Dict[str, str] = copy.deepcopy(DEFAULT_MODELS)


def _parse_json_env(var_name: str) -> Dict[str, Any] | None:
    value = os.getenv(var_name)
    if not value:
        return None
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, dict):
        return None
    return parsed


def _coerce(name: str, value: Any) -> Any:
    """JSON has no tuples; convert list values back for tuple fields."""
    default = getattr(DEFAULT_TUNING, name)
    if isinstance(default, tuple) and isinstance(value, list):
        return tuple(tuple(v) if isinstance(v, list) else v for v in value)
    return value


def _apply(base: Tuning, overrides: Dict[str, Any]) -> Tuning:
    known = {f.name for f in dataclasses.fields(Tuning)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown tuning keys: {sorted(unknown)}")
    return dataclasses.replace(base, **{k: _coerce(k, v) for k, v in overrides.items()})


def get_tuning() -> Tuning:
    """Return tuning values, with optional env override."""
    parsed = _parse_json_env("REPLYGUARD_TUNING_JSON")
    if parsed:
        try:
            return _apply(_tuning, parsed)
        except (TypeError, ValueError):
            return _tuning
    return _tuning


def set_tuning(**overrides: Any) -> Tuning:
    """Override tuning values at runtime."""
    global _tuning
    thresholds = overrides.get("trust_tier_thresholds")
    if thresholds is not None and list(thresholds) != sorted(thresholds):
        raise ValueError("trust_tier_thresholds must be ascending")
    _tuning = _apply(_tuning, overrides)
    return _tuning


def reset_tuning() -> None:
    global _tuning
    _tuning = DEFAULT_TUNING


def get_plans() -> Dict[str, Dict[str, int]]:
    """Return plan limit configuration, with optional env override."""
    parsed = _parse_json_env("REPLYGUARD_PLANS_JSON")
    if parsed:
        return parsed
    return _plans


def set_plan_limits(plan: str, *, daily: int | None = None, monthly: int | None = None) -> None:
    """Set limits for a plan at runtime."""
    global _plans
    updated = copy.deepcopy(_plans)
    entry = updated.setdefault(plan, {"daily": 0, "monthly": 0})
    if daily is not None:
        entry["daily"] = int(daily)
    if monthly is not None:
        entry["monthly"] = int(monthly)
    _plans = updated


def reset_plans() -> None:
    global _plans
    _plans = copy.deepcopy(DEFAULT_PLANS)


def get_plan_limits(plan: str | None, is_tester: bool = False) -> PlanLimits:
    """Resolve a plan name to its limits. Unknown plans get the free limits."""
    if is_tester:
        return PlanLimits(daily_limit=TESTER_LIMIT, monthly_limit=TESTER_LIMIT, is_tester=True)

    plans = get_plans()
    key = (plan or "free").lower()
    key = PLAN_ALIASES.get(key, key)
    entry = plans.get(key) or plans.get("free") or DEFAULT_PLANS["free"]
    return PlanLimits(
        daily_limit=int(entry.get("daily", 0)),
        monthly_limit=int(entry.get("monthly", 0)),
    )


def is_premium_plan(plan: str | None) -> bool:
    key = (plan or "").lower()
    return PLAN_ALIASES.get(key, key) == "premium"


def get_models() -> Dict[str, str]:
    """Return model configuration, with optional env override."""
    parsed = _parse_json_env("REPLYGUARD_MODELS_JSON")
    if parsed:
        return parsed
    return _models


def set_models(*, core: str | None = None, premium: str | None = None) -> None:
    """Set model defaults at runtime."""
    global _models
    updated = copy.deepcopy(_models)
    if core:
        updated["core"] = core
    if premium:
        updated["premium"] = premium
    _models = updated


def reset_models() -> None:
    global _models
    _models = copy.deepcopy(DEFAULT_MODELS)
