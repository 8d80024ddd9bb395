"""reqrun render - response display modes and output file."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from reqrun.errors import OutputError

if TYPE_CHECKING:
    import requests

    from reqrun.builder import Transport
    from reqrun.executor import ResponseResult

JSON_CONTENT_TYPE = "application/json"
REDACTED = "***"


def _get_header(headers: dict[str, str], name: str) -> str:
    lowered = name.lower()
    for k, v in headers.items():
        if k.lower() == lowered:
            return v
    return ""


def is_json_response(headers: dict[str, str]) -> bool:
    """True when Content-Type starts with application/json (any case)."""
    return _get_header(headers, "Content-Type").strip().lower().startswith(JSON_CONTENT_TYPE)


def pretty_json(content: bytes, indent: str = "  ") -> bytes:
    """Re-indent a JSON document. Raises ValueError if invalid.

    Works on the tokens of the original text, so number literals (1.10,
    1e2, big integers) and string escapes come out exactly as received.
    """
    text = content.decode("utf-8")
    json.loads(text)

    out: list[str] = []
    depth = 0
    i, n = 0, len(text)
    while i < n:
        c = text[i]
        if c == '"':
            j = i + 1
            while text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            out.append(text[i : j + 1])
            i = j + 1
            continue
        if c in " \t\r\n":
            pass
        elif c in "{[":
            close = "}" if c == "{" else "]"
            j = i + 1
            while text[j] in " \t\r\n":
                j += 1
            if text[j] == close:
                out.append(c + close)
                i = j + 1
                continue
            depth += 1
            out.append(c + "\n" + indent * depth)
        elif c in "}]":
            depth -= 1
            out.append("\n" + indent * depth + c)
        elif c == ",":
            out.append(",\n" + indent * depth)
        elif c == ":":
            out.append(": ")
        else:
            out.append(c)
        i += 1
    return "".join(out).encode("utf-8")


def select_body(result: ResponseResult, pretty: bool = False) -> bytes:
    """Body bytes to display: pretty-printed when asked and the response is JSON.

    A body that fails to parse is returned unchanged.
    """
    content = result.content or b""
    if pretty and is_json_response(result.headers):
        try:
            return pretty_json(content)
        except (ValueError, UnicodeDecodeError):
            return content
    return content


def _decode(content: bytes) -> str:
    return content.decode("utf-8", errors="replace")


def render_response(
    result: ResponseResult,
    pretty: bool = False,
    raw: bool = False,
    json_only: bool = False,
) -> tuple[str, bytes]:
    """Render the response for display.

    Returns (text, body) where body is the exact byte content chosen for
    display, to be written to --out as is.

    json_only takes precedence over raw; both print only the body. The
    default prints a status line, the headers, a blank line and the body.
    """
    body = select_body(result, pretty=pretty)

    if json_only or raw:
        return _decode(body), body

    lines = ["=== Response ===", f"Status: {result.status_code} {result.reason}".rstrip()]
    for k, v in result.headers.items():
        lines.append(f"{k}: {v}")
    lines.append("")
    lines.append(_decode(body))
    return "\n".join(lines), body


def render_request_preview(
    prepared: requests.PreparedRequest,
    transport: Transport,
    auth_label: str | None = None,
) -> str:
    """Describe the request about to be sent, with credentials redacted.

    auth_label is the strategy description, e.g. "bearer (empty token)".
    """
    lines = ["=== Request ===", f"{prepared.method} {prepared.url}"]
    for k, v in prepared.headers.items():
        if k.lower() == "authorization":
            scheme = v.split(" ", 1)[0]
            v = f"{scheme} {REDACTED}"
        lines.append(f"{k}: {v}")
    if auth_label:
        lines.append(f"Auth: {auth_label}")
    lines.append(f"Timeout: {transport.timeout}s")
    if not transport.verify_tls:
        lines.append("TLS verification: disabled")
    if prepared.body:
        body = prepared.body
        if isinstance(body, bytes):
            body = _decode(body)
        lines.append("")
        lines.append("Body:")
        lines.append(body)
    return "\n".join(lines)


def write_output(path: str | Path, data: bytes) -> Path:
    """Write the displayed body to path. Raises OutputError on failure."""
    target = Path(path)
    try:
        target.write_bytes(data)
    except OSError as e:
        raise OutputError(f"failed to write response to file {target}: {e}") from e
    return target
