"""Best-effort recovery of a JSON value from free-form model output."""

import json
from typing import Any, Optional


def extract_structured(text: Any) -> Optional[Any]:
    """Parse ``text`` as JSON, tolerating prose or code fences around it.

    The whole text is parsed first. If that fails, the greedy span from the
    first ``{`` to the last ``}`` is parsed instead. Returns ``None`` when
    neither works; never raises.
    """
    if not isinstance(text, str):
        return None

    try:
        return json.loads(text)
    except (ValueError, RecursionError):
        pass

    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None

    try:
        return json.loads(text[start:end + 1])
    except (ValueError, RecursionError):
        return None
