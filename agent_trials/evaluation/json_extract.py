"""
Loose JSON extraction from LLM text.

LLM output is untrusted text: the object we asked for may be wrapped in
prose or markdown fences. We take the first balanced ``{...}`` that
parses as a JSON object.
"""

import json
from typing import Any, Dict, Iterator, List, Optional, Tuple


def iter_balanced_objects(text: str) -> Iterator[str]:
    """Yield balanced ``{...}`` substrings in order of their opening brace.

    One forward pass with a stack of open braces, so brace-heavy garbage
    stays linear. Braces inside JSON strings (including escaped quotes) do
    not count. Quotes only open a string inside a brace; a raw newline ends
    a string, since JSON strings cannot contain one.
    """
    spans: List[Tuple[int, int]] = []
    open_braces: List[int] = []
    in_string = False
    escaped = False

    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"' or ch == "\n":
                in_string = False
            continue
        if ch == "{":
            open_braces.append(i)
        elif ch == "}" and open_braces:
            spans.append((open_braces.pop(), i))
        elif ch == '"' and open_braces:
            in_string = True

    spans.sort()
    for start, end in spans:
        yield text[start:end + 1]


def extract_json_object(text: str) -> Optional[Dict[str, Any]]:
    """Return the first balanced JSON object in ``text``, or None."""
    if not text:
        return None
    for candidate in iter_balanced_objects(text):
        try:
            value = json.loads(candidate)
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None
