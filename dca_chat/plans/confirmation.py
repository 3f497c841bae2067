"""
Confirmation tokens for plans that are ready but not yet created.

Wire format: ``create-plan-<unixMillis>-<base64(JSON(planData))>``. Tokens are
not signed, not bound to a session or wallet and not single-use.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from typing import Optional

from .errors import MalformedToken
from .plan import DcaPlanData

TOKEN_KIND = "create-plan"
_DELIMITER = "-"
_SEGMENT_COUNT = 4


def encode(plan: DcaPlanData, now_ms: Optional[int] = None) -> str:
    timestamp = int(time.time() * 1000) if now_ms is None else int(now_ms)
    payload = json.dumps(plan.to_dict(), separators=(",", ":"), sort_keys=True)
    encoded = base64.b64encode(payload.encode("utf-8")).decode("ascii")
    return _DELIMITER.join((TOKEN_KIND, str(timestamp), encoded))


def decode(token: str) -> DcaPlanData:
    if not isinstance(token, str):
        raise MalformedToken("Confirmation token must be a string")

    segments = token.strip().split(_DELIMITER)
    if len(segments) != _SEGMENT_COUNT:
        raise MalformedToken(
            f"Expected {_SEGMENT_COUNT} segments, got {len(segments)}", token
        )
    kind = _DELIMITER.join(segments[:2])
    timestamp, payload = segments[2], segments[3]
    if kind != TOKEN_KIND:
        raise MalformedToken(f"Unsupported token kind '{kind}'", token)
    if not timestamp.isdigit():
        raise MalformedToken("Token timestamp is not numeric", token)

    try:
        raw = base64.b64decode(payload, validate=True)
        data = json.loads(raw.decode("utf-8"))
    except (binascii.Error, ValueError) as exc:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise MalformedToken(f"Token payload is not valid base64 JSON: {exc}", token) from exc

    if not isinstance(data, dict):
        raise MalformedToken("Token payload must be a JSON object", token)

    plan = DcaPlanData.from_dict(data)
    missing = plan.missing_fields()
    if missing:
        raise MalformedToken(f"Token payload is missing {', '.join(missing)}", token)
    return plan
