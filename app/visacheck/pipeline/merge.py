from __future__ import annotations

import logging
from typing import Optional

from ..schemas import FieldName, ParsedMrz
from .confidence import FieldMap, averaged_confidence, set_field
from .normalize import normalize_name, parse_flexible_date

LOGGER = logging.getLogger(__name__)


DATE_FIELDS = {FieldName.DATE_OF_BIRTH.value, FieldName.EXPIRY_DATE.value}
NAME_FIELDS = (FieldName.SURNAME.value, FieldName.GIVEN_NAMES.value)


def integrate_mrz(fields: FieldMap, mrz: Optional[ParsedMrz]) -> FieldMap:
    """Fold MRZ values into a copy of the text-derived field map.

    Writes go through the same confidence gate as text extraction; MRZ
    confidences sit above the text bands so they take over whenever present.
    """
    merged: FieldMap = dict(fields)
    if mrz is None:
        return merged

    for key, field in mrz.fields.items():
        if not field.value:
            continue
        value: Optional[str] = field.value
        if key in DATE_FIELDS:
            value = parse_flexible_date(field.value)
            if value is None:
                LOGGER.debug("MRZ %s %r is not a calendar date", key, field.raw)
                continue
        set_field(merged, key, value, field.confidence, "mrz")

    name_parts = [mrz.fields[key] for key in NAME_FIELDS if key in mrz.fields and mrz.fields[key].value]
    if name_parts:
        set_field(
            merged,
            FieldName.FULL_NAME,
            normalize_name(" ".join(part.value for part in name_parts if part.value)),
            averaged_confidence([part.confidence for part in name_parts]),
            "mrz",
        )
    return merged
