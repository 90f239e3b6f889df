import json
from dataclasses import dataclass
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from rentdesk.core.errors import ConfigurationError, ValidationError
from rentdesk.models.setting import Setting

LATE_FEE_KEY = "late_fee"
EXTENSION_FEE_KEY = "extension_fee"
ENABLE_REMINDERS_KEY = "enable_return_reminders"
REMINDER_INTERVALS_KEY = "return_reminder_intervals"
REMINDER_HOURS_BEFORE_KEY = "return_reminder_hours_before"
REMINDER_LOOKBACK_KEY = "return_reminder_lookback_hours"

DEFAULT_LATE_FEE = {"amount": 1000, "grace_period_hours": 2}
DEFAULT_EXTENSION_FEE = {"amount": 1000, "threshold_hours": 6}
DEFAULT_REMINDER_INTERVALS = [24, 2]
DEFAULT_REMINDER_LOOKBACK_HOURS = 2


@dataclass(frozen=True)
class FeeSettings:
    late_fee_amount: int
    late_fee_grace_period_hours: float
    extension_fee_amount: int
    extension_fee_threshold_hours: float

    def as_dict(self) -> dict:
        return {
            "lateFee": {"amount": self.late_fee_amount, "gracePeriodHours": self.late_fee_grace_period_hours},
            "extensionFee": {"amount": self.extension_fee_amount, "thresholdHours": self.extension_fee_threshold_hours},
        }


@dataclass(frozen=True)
class ReminderConfig:
    enabled: bool
    intervals: list[float]
    hours_before: float
    lookback_hours: float


_MISSING = object()


def _read(db: Session, key: str):
    s = db.get(Setting, key)
    if not s or s.value_json is None:
        return _MISSING
    try:
        return json.loads(s.value_json)
    except (json.JSONDecodeError, TypeError):
        raise ConfigurationError(f"setting {key} is not valid JSON")


def _write(db: Session, key: str, value) -> None:
    s = db.get(Setting, key)
    if not s:
        db.add(Setting(key=key, value_json=json.dumps(value)))
    else:
        s.value_json = json.dumps(value)
        s.updated_at = datetime.now(timezone.utc)


def _number(key: str, value, *, allow_zero: bool = True) -> float:
    if isinstance(value, bool):
        raise ConfigurationError(f"setting {key} must be a number")
    try:
        n = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"setting {key} must be a number")
    if n < 0 or (n == 0 and not allow_zero):
        raise ConfigurationError(f"setting {key} is out of range: {value}")
    return n


def _fee_block(db: Session, key: str, default: dict, window_field: str) -> tuple[int, float]:
    raw = _read(db, key)
    if raw is _MISSING:
        raw = default
    if not isinstance(raw, dict):
        raise ConfigurationError(f"setting {key} must be an object")
    amount = _number(f"{key}.amount", raw.get("amount", default["amount"]))
    window = _number(f"{key}.{window_field}", raw.get(window_field, default[window_field]))
    return int(amount), window


def get_fee_settings(db: Session) -> FeeSettings:
    late_amount, grace = _fee_block(db, LATE_FEE_KEY, DEFAULT_LATE_FEE, "grace_period_hours")
    ext_amount, threshold = _fee_block(db, EXTENSION_FEE_KEY, DEFAULT_EXTENSION_FEE, "threshold_hours")
    return FeeSettings(
        late_fee_amount=late_amount,
        late_fee_grace_period_hours=grace,
        extension_fee_amount=ext_amount,
        extension_fee_threshold_hours=threshold,
    )


def set_fee_settings(db: Session, late_fee_amount: int, grace_period_hours: float,
                     extension_fee_amount: int, threshold_hours: float) -> FeeSettings:
    for name, v in (("late fee amount", late_fee_amount), ("grace period", grace_period_hours),
                    ("extension fee amount", extension_fee_amount), ("threshold hours", threshold_hours)):
        if v is None or v < 0:
            raise ValidationError(f"{name} must be >= 0")
    _write(db, LATE_FEE_KEY, {"amount": int(late_fee_amount), "grace_period_hours": grace_period_hours})
    _write(db, EXTENSION_FEE_KEY, {"amount": int(extension_fee_amount), "threshold_hours": threshold_hours})
    db.commit()
    return get_fee_settings(db)


def _as_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ConfigurationError(f"setting {key} must be true or false")


def get_reminder_config(db: Session) -> ReminderConfig:
    enabled = _read(db, ENABLE_REMINDERS_KEY)
    enabled = True if enabled is _MISSING else _as_bool(ENABLE_REMINDERS_KEY, enabled)

    raw_hours_before = _read(db, REMINDER_HOURS_BEFORE_KEY)
    hours_before = (
        float(DEFAULT_REMINDER_INTERVALS[0]) if raw_hours_before is _MISSING
        else _number(REMINDER_HOURS_BEFORE_KEY, raw_hours_before, allow_zero=False)
    )

    intervals = _read(db, REMINDER_INTERVALS_KEY)
    if intervals is _MISSING:
        # A lone hours_before setting means a single reminder at that lead time
        intervals = [hours_before] if raw_hours_before is not _MISSING else list(DEFAULT_REMINDER_INTERVALS)
    if not isinstance(intervals, list) or not intervals:
        raise ConfigurationError(f"setting {REMINDER_INTERVALS_KEY} must be a non-empty list of hours")
    intervals = sorted({_number(REMINDER_INTERVALS_KEY, i, allow_zero=False) for i in intervals}, reverse=True)

    lookback = _read(db, REMINDER_LOOKBACK_KEY)
    lookback = (
        float(DEFAULT_REMINDER_LOOKBACK_HOURS) if lookback is _MISSING
        else _number(REMINDER_LOOKBACK_KEY, lookback, allow_zero=False)
    )
    return ReminderConfig(enabled=enabled, intervals=intervals, hours_before=hours_before, lookback_hours=lookback)


def set_reminder_config(db: Session, enabled: bool, intervals: list[float],
                        lookback_hours: float | None = None) -> ReminderConfig:
    if not intervals or any(i is None or i <= 0 for i in intervals):
        raise ValidationError("intervals must be a non-empty list of positive hours")
    if lookback_hours is not None and lookback_hours <= 0:
        raise ValidationError("lookback hours must be > 0")
    _write(db, ENABLE_REMINDERS_KEY, bool(enabled))
    _write(db, REMINDER_INTERVALS_KEY, list(intervals))
    _write(db, REMINDER_HOURS_BEFORE_KEY, max(intervals))
    if lookback_hours is not None:
        _write(db, REMINDER_LOOKBACK_KEY, lookback_hours)
    db.commit()
    return get_reminder_config(db)
