"""Runtime settings read from the environment."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from gstrecon.domain.entities import MatchStrategy
from gstrecon.domain.errors import ValidationError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Tunables for ingestion and reconciliation runs."""

    db_path: Optional[str] = None
    max_workers: int = 4
    trailing_months: int = 3
    insert_batch_size: int = 500
    match_strategy: MatchStrategy = MatchStrategy.FIRST_MATCH
    allow_date_fallback: bool = False


def _int_setting(env: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{raw}'")
    if value < minimum:
        raise ValidationError(f"{name} must be at least {minimum}, got {value}")
    return value


def _bool_setting(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValidationError(f"{name} must be true or false, got '{raw}'")


def parse_match_strategy(value: str) -> MatchStrategy:
    """Parse a strategy name such as 'first_match' or 'best-score'."""
    try:
        return MatchStrategy(value.strip().lower().replace("-", "_"))
    except ValueError:
        choices = ", ".join(s.value for s in MatchStrategy)
        raise ValidationError(f"Unknown match strategy '{value}' (expected one of: {choices})")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from GSTRECON_* environment variables.

    Args:
        env: Mapping to read instead of os.environ (used by tests)

    Returns:
        Settings instance

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    if env is None:
        env = os.environ

    strategy = env.get("GSTRECON_MATCH_STRATEGY")
    return Settings(
        db_path=env.get("GSTRECON_DB_PATH") or None,
        max_workers=_int_setting(env, "GSTRECON_MAX_WORKERS", 4, minimum=1),
        trailing_months=_int_setting(env, "GSTRECON_TRAILING_MONTHS", 3, minimum=0),
        insert_batch_size=_int_setting(env, "GSTRECON_INSERT_BATCH_SIZE", 500, minimum=1),
        match_strategy=(
            parse_match_strategy(strategy) if strategy else MatchStrategy.FIRST_MATCH
        ),
        allow_date_fallback=_bool_setting(env, "GSTRECON_ALLOW_DATE_FALLBACK", False),
    )
