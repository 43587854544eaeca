import json
import re
from typing import Any, List, Optional

from ..errors import MalformedUpstreamOutputError

_FENCE = re.compile(r"```[a-zA-Z0-9_+-]*\s*\n(.*?)\n?```", re.DOTALL)


def _loads(s: str) -> Any:
    try:
        return json.loads(s)
    except ValueError:
        # fix common trailing commas / stray control characters
        s2 = re.sub(r",\s*([}\]])", r"\1", s)
        s2 = re.sub(r"[\x00-\x1F]+", " ", s2)
        return json.loads(s2)


def _first_object(s: str) -> Optional[str]:
    """Slice out the first balanced top-level {...}, ignoring braces inside strings."""
    start = s.find("{")
    while start != -1:
        depth = 0
        in_str = False
        escaped = False
        for i in range(start, len(s)):
            ch = s[i]
            if in_str:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_str = False
            elif ch == '"':
                in_str = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return s[start:i + 1]
        start = s.find("{", start + 1)
    return None


def extract_json(raw: Any) -> Any:
    """Parse model output: first fenced block that parses, else the first top-level object."""
    if not isinstance(raw, str):
        return raw
    s = raw.strip()
    for block in _FENCE.findall(s):
        try:
            return _loads(block.strip())
        except ValueError:
            continue
    candidate = _first_object(s)
    if candidate is not None:
        try:
            return _loads(candidate)
        except ValueError:
            pass
    try:
        return _loads(s)
    except ValueError as exc:
        raise MalformedUpstreamOutputError(f"No JSON could be parsed from model output: {exc}", raw)


def ensure_list(value: Any) -> List[str]:
    """Coerce a loosely-typed model field into a list of non-empty strings."""
    if value is None or isinstance(value, bool):
        return []
    if isinstance(value, (list, tuple, set)):
        return [str(v).strip() for v in value if isinstance(v, (str, int, float)) and str(v).strip()]
    if isinstance(value, (str, int, float)):
        text = str(value).strip()
        return [text] if text else []
    if isinstance(value, dict):
        return [str(k).strip() for k, v in value.items() if v]
    return []


def ensure_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()
