"""CREATE_CONTENT instruction blocks.

Agents ask for rendered content with a YAML-ish block:

    ===CREATE_CONTENT===
    content_type: reel
    platform: instagram
    hook: "Stop scrolling"
    hashtags: ["wraps", "fleet"]
    overlays:
    - Before / after
    - Call today
    ===END_CREATE_CONTENT===

Supported: ``key: value`` scalars, quoted strings, inline JSON lists/objects,
and ``- item`` bullets appended to the previous key. Every key is kept, known
or not. A list/object literal that is not valid JSON stays a plain string.
Lines with no colon (and no preceding key for a bullet) are dropped; they are
reported in ``dropped_lines`` so callers can log them.
"""
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

BLOCK_START = "===CREATE_CONTENT==="
BLOCK_END = "===END_CREATE_CONTENT==="


class ParsedInstructions(BaseModel):
    fields: Dict[str, Any] = Field(default_factory=dict)
    dropped_lines: List[str] = Field(default_factory=list)


def extract_block(text: str) -> Optional[str]:
    """Return the marked block (markers included), or None if there is no start marker.

    A block with no end marker runs to the end of the text.
    """
    start = text.find(BLOCK_START)
    if start == -1:
        return None
    end = text.find(BLOCK_END, start)
    if end == -1:
        return text[start:].strip()
    return text[start:end + len(BLOCK_END)].strip()


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1]
    return value


def _parse_value(raw: str) -> Any:
    value = _strip_quotes(raw)
    looks_structured = (value.startswith("[") and value.endswith("]")) or (
        value.startswith("{") and value.endswith("}")
    )
    if looks_structured:
        try:
            return json.loads(value)
        except ValueError:
            pass
    return value


def _append_item(current: Any, item: str) -> List[Any]:
    if isinstance(current, list):
        return current + [item]
    if current in (None, ""):
        return [item]
    return [current, item]


def parse_instructions(block: str) -> ParsedInstructions:
    parsed = ParsedInstructions()
    current_key: Optional[str] = None

    for raw_line in block.split("\n"):
        line = raw_line.strip()
        if not line or line.startswith("==="):
            continue

        if line.startswith("- ") and current_key is not None:
            parsed.fields[current_key] = _append_item(
                parsed.fields.get(current_key), line[2:].strip()
            )
            continue

        idx = line.find(":")
        if idx == -1:
            # TODO: confirm with content ops whether colon-less lines should reject the block
            parsed.dropped_lines.append(line)
            continue

        key = line[:idx].strip()
        current_key = key
        parsed.fields[key] = _parse_value(line[idx + 1:].strip())

    return parsed
