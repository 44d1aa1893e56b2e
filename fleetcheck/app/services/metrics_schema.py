"""
Vehicle metrics collected alongside the daily checklist.

The schema is plain data: each field declares its key, label, input type and,
for ``select``/``status`` fields, its option set. ``sanitize_metrics`` is one
generic pass over that data, so adding a field never needs new code.
"""

import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, Mapping, Optional, Tuple

METRICS_SCHEMA_VERSION = 1

FIELD_TYPES = ("text", "number", "select", "status", "textarea")

LEVEL_OPTIONS = ("empty", "1/4", "1/2", "3/4", "full")
STATUS_OPTIONS = ("ok", "issue", "na")


@dataclass(frozen=True)
class MetricField:
    key: str
    label: str
    type: str
    options: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if self.type not in FIELD_TYPES:
            raise ValueError(f"Unknown metric field type '{self.type}' for '{self.key}'")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["options"] = list(self.options)
        return data


METRICS_SCHEMA: Tuple[MetricField, ...] = (
    MetricField("odometer_km", "Odometer (km)", "number"),
    MetricField("fuel_level", "Fuel level", "select", LEVEL_OPTIONS),
    MetricField("adblue_level", "AdBlue level", "select", LEVEL_OPTIONS),
    MetricField("tyre_pressure", "Tyre pressure check", "status", STATUS_OPTIONS),
    MetricField("load_secured", "Load secured", "status", STATUS_OPTIONS),
    MetricField("trailer_seal_number", "Trailer seal number", "text"),
    MetricField("defects_description", "Defects description", "textarea"),
)

_FIELDS_BY_KEY = {metric.key: metric for metric in METRICS_SCHEMA}


def metrics_schema_payload() -> Dict[str, Any]:
    """Schema as sent to clients."""
    return {
        "version": METRICS_SCHEMA_VERSION,
        "fields": [metric.to_dict() for metric in METRICS_SCHEMA],
    }


def metric_label(key: str) -> str:
    metric = _FIELDS_BY_KEY.get(key)
    return metric.label if metric else key


def parse_number(value: Any) -> Optional[float]:
    """
    Parse a numeric metric; "12,5" and "12.5" are both 12.5.

    Returns None for blanks, unparsable text, booleans and non-finite values.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(" ", "").replace(",", ".")
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    return number if math.isfinite(number) else None


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def sanitize_metrics(raw: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Keep only schema keys and coerce each value to its field type.

    Unknown keys are dropped silently. Idempotent:
    ``sanitize_metrics(sanitize_metrics(x)) == sanitize_metrics(x)``.
    """
    if not isinstance(raw, Mapping):
        return {}

    clean: Dict[str, Any] = {}
    for key, value in raw.items():
        metric = _FIELDS_BY_KEY.get(key)
        if metric is None:
            continue
        if metric.type == "number":
            clean[key] = parse_number(value)
        else:
            clean[key] = _as_text(value)
    return clean
