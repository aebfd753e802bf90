from __future__ import annotations

import math
from typing import Dict, Iterable, Optional

from ..schemas import FieldSource, FieldValue

FieldMap = Dict[str, FieldValue]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_confidence(value: float) -> int:
    return max(0, min(100, round_half_up(value)))


def averaged_confidence(values: Iterable[object]) -> int:
    """Rounded mean of the numeric entries; 0 when nothing numeric remains."""
    filtered = [
        float(value)
        for value in values
        if isinstance(value, (int, float)) and not isinstance(value, bool) and not math.isnan(value)
    ]
    if not filtered:
        return 0
    return round_half_up(sum(filtered) / len(filtered))


def field_key(key: object) -> str:
    return str(getattr(key, "value", key))


def merge_field(existing: Optional[FieldValue], incoming: FieldValue) -> FieldValue:
    # Ties go to the most recent write.
    if existing is None or incoming.confidence >= existing.confidence:
        return incoming
    return existing


def set_field(
    fields: FieldMap,
    key: object,
    value: Optional[str],
    confidence: float,
    source: FieldSource,
) -> None:
    if not value:
        return
    name = field_key(key)
    incoming = FieldValue(label=name, value=value, confidence=clamp_confidence(confidence), source=source)
    fields[name] = merge_field(fields.get(name), incoming)
