"""JSON payload parsing for chat completion responses.

Structured output is requested from the model, but some routes still wrap
the object in a markdown fence or surround it with prose. The helpers here
recover the JSON object in those cases and raise ``json.JSONDecodeError``
when there is none.
"""

from __future__ import annotations

import json
import re
from typing import Any


_FENCE_RE = re.compile(r"```[ \t]*json[^\n]*\n(.*?)```", re.IGNORECASE | re.DOTALL)


def completion_content(envelope: Any) -> str:
    """Return the first choice's message text, or "" when it is absent."""
    try:
        return envelope["choices"][0]["message"]["content"] or ""
    except (KeyError, IndexError, TypeError):
        return ""


def parse_json_payload(content: str) -> Any:
    """Decode ``content``, falling back to a fenced block or the outermost object.

    Raises:
        json.JSONDecodeError: If no JSON object can be recovered
    """
    if not content or not content.strip():
        raise json.JSONDecodeError("Empty content", content or "", 0)
    try:
        return json.loads(content)
    except json.JSONDecodeError:
        return json.loads(_json_candidate(content))


def _json_candidate(content: str) -> str:
    match = _FENCE_RE.search(content)
    if match and match.group(1).strip():
        return match.group(1).strip()
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end <= start:
        raise json.JSONDecodeError("No JSON object found", content, 0)
    return content[start : end + 1]
