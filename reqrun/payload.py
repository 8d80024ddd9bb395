"""reqrun payload - JSON body fragments from a file and an inline string."""

import json
from pathlib import Path
from typing import Any

from reqrun.errors import PayloadParseError, PayloadReadError

INLINE_SOURCE = "inline data"


def _parse_object(text: str, source: str) -> dict[str, Any]:
    """Parse text as a JSON object. Blank text is an empty object."""
    if not text or not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise PayloadParseError(source, str(e)) from e
    if not isinstance(data, dict):
        raise PayloadParseError(
            source,
            f"expected a JSON object, got {type(data).__name__}",
        )
    return data


def load_json_file(path: str | Path | None) -> dict[str, Any]:
    """Load a JSON object from a file. No path means no fragment."""
    if not path:
        return {}
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise PayloadReadError(str(path), e.strerror or str(e)) from e
    return _parse_object(text, f"json-file {path}")


def parse_json_inline(text: str | None) -> dict[str, Any]:
    """Parse the inline --data argument into a JSON object."""
    return _parse_object(text or "", INLINE_SOURCE)


def merge_payloads(
    file_fragment: dict[str, Any] | None,
    inline_fragment: dict[str, Any] | None,
) -> dict[str, Any]:
    """Shallow-merge two fragments; inline keys replace file keys.

    Nested objects are replaced as a whole, never merged.
    """
    merged = dict(file_fragment or {})
    merged.update(inline_fragment or {})
    return merged


def encode_body(merged: dict[str, Any]) -> bytes | None:
    """Serialize a merged payload to compact, key-sorted JSON bytes.

    Returns None for an empty payload so no body is sent at all.
    """
    if not merged:
        return None
    return json.dumps(
        merged,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    ).encode("utf-8")
