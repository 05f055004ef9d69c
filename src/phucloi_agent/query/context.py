"""Context assembler: aggregation result → bounded, canonical JSON payload."""
from __future__ import annotations

import logging
from typing import Any

from phucloi_agent.common.utils import json_dumps_canonical
from phucloi_agent.query.types import AggregationResult, ContextPayload, Intent

log = logging.getLogger("phucloi.query.context")

# Sequence fields trimmed (from the tail) when a payload exceeds the byte budget.
_SEQUENCE_FIELDS = ("rows", "by_type")


def _size(data: dict[str, Any]) -> int:
    return len(json_dumps_canonical(data).encode("utf-8"))


def assemble(intent: Intent, result: AggregationResult, max_bytes: int = 16384) -> ContextPayload:
    data = result.to_dict()
    data["intent"] = intent.value
    data["truncated"] = False
    data["rows_omitted"] = 0

    omitted = 0
    while _size(data) > max_bytes:
        seq_name = next((name for name in _SEQUENCE_FIELDS if data.get(name)), None)
        if seq_name is None:
            break
        data[seq_name] = data[seq_name][:-1]
        omitted += 1
        data["truncated"] = True
        data["rows_omitted"] = omitted

    if omitted:
        log.warning("context_truncated", extra={"intent": intent.value, "rows_omitted": omitted})
    return ContextPayload(data=data, text=json_dumps_canonical(data), truncated=bool(omitted))
