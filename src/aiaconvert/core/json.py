"""Fast, type-safe JSON parsing for descriptor payloads."""

from typing import Any, Callable
import json

import msgspec
import orjson
from json_repair import repair_json

SCM_OPEN = "#|"
SCM_CLOSE = "|#"
SCM_JSON_MARKER = "$JSON"


class JSONParseError(Exception):
    """JSON parsing failed."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


def extract_json_boundaries(text: str) -> tuple[str, int, int] | None:
    """
    Locate the JSON object inside a framed descriptor.

    App Inventor wraps the component tree as ``#|\\n$JSON\\n{...}\\n|#``;
    the frame is optional so bare JSON is accepted too.

    Args:
        text: Descriptor text potentially containing a JSON object

    Returns:
        (working_text, start, end) or None if no object is found
    """
    working_text = text
    if working_text.startswith(SCM_OPEN):
        close = working_text.rfind(SCM_CLOSE)
        if close == -1:
            return None
        working_text = working_text[len(SCM_OPEN):close].strip()
        if working_text.startswith(SCM_JSON_MARKER):
            working_text = working_text[len(SCM_JSON_MARKER):].strip()

    start = working_text.find("{")
    end = working_text.rfind("}")

    if start == -1 or end == -1 or end < start:
        return None

    return (working_text, start, end + 1)


def extract_json(
    text: str,
    repair: bool = False,
    on_repair: Callable[[str], None] | None = None,
) -> dict[str, Any]:
    """
    Extract and parse the JSON object of a descriptor.

    Args:
        text: Descriptor text containing JSON
        repair: Attempt to repair invalid JSON with json_repair
        on_repair: Called with the decode error when a repair succeeded

    Returns:
        Parsed JSON dictionary

    Raises:
        JSONParseError: If parsing fails
    """
    text = text.strip()

    boundaries = extract_json_boundaries(text)
    if boundaries is None:
        raise JSONParseError("No JSON object found in descriptor")

    extracted_text, start, end = boundaries
    json_str = extracted_text[start:end]

    # msgspec first (fastest)
    try:
        decoder = msgspec.json.Decoder()
        result = decoder.decode(json_str.encode("utf-8"))
    except msgspec.DecodeError as e:
        if not repair:
            raise JSONParseError(f"Invalid JSON: {e}", e) from e

        try:
            result = json.loads(repair_json(json_str))
        except Exception as repair_error:
            raise JSONParseError(f"JSON repair failed: {repair_error}", repair_error) from repair_error
        if on_repair is not None:
            on_repair(str(e))

    if not isinstance(result, dict):
        raise JSONParseError(f"Expected object, got {type(result).__name__}")
    return result


def safe_json_dumps(obj: Any, **kwargs: Any) -> str:
    """
    Encode object to JSON string.

    Args:
        obj: Object to encode
        **kwargs: Additional arguments (indent)

    Returns:
        JSON string
    """
    indent = kwargs.get("indent", 0)

    if indent == 0:
        try:
            return orjson.dumps(obj).decode("utf-8")
        except (TypeError, ValueError):
            # Fallback for edge cases (e.g., integers outside 64-bit range)
            pass

    if indent == 2:
        return orjson.dumps(obj, option=orjson.OPT_INDENT_2).decode("utf-8")

    return json.dumps(obj, indent=indent if indent > 0 else None)
