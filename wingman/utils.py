import base64
import binascii
import json
from typing import Any, Dict, Optional, Tuple


def extract_json_block(text: str) -> Optional[str]:
    """Purpose: Extract the first JSON object block from an arbitrary string.
    Inputs/Outputs: Input is a raw string; output is JSON substring or None.
    Side Effects / State: None; pure function.
    Dependencies: None beyond built-ins; used by safe_json_loads.
    Failure Modes: Returns None if braces are missing or inverted.
    If Removed: Model outputs wrapped in code fences cannot be parsed.
    Testing Notes: Provide strings with extra text before/after JSON and ensure extraction.
    """
    # Locate the outermost JSON braces to extract a parseable block.
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    return text[start : end + 1]


def safe_json_loads(text: str) -> Optional[Dict[str, Any]]:
    """Purpose: Parse a JSON object from a model output string safely.
    Inputs/Outputs: Input is raw text; output is a dict or None if parsing fails.
    Side Effects / State: None; pure function.
    Dependencies: Uses extract_json_block and json.loads.
    Failure Modes: Returns None on JSONDecodeError, missing block or non-object JSON.
    If Removed: Verdict and reply parsing crash on malformed model output.
    Testing Notes: Validate valid JSON parses and malformed JSON returns None.
    """
    # Parse only the extracted JSON block to avoid non-JSON prefixes/suffixes.
    block = extract_json_block(text)
    if not block:
        return None
    try:
        data = json.loads(block)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def split_data_url(data_url: str) -> Optional[Tuple[str, bytes]]:
    """Purpose: Decode a base64 data URL into (mime_type, bytes).
    Inputs/Outputs: Input is a "data:<mime>;base64,<payload>" string; output is a
        tuple or None when the URL is not a decodable base64 data URL.
    Side Effects / State: None; pure function.
    Dependencies: Uses base64; called by the capture adapter.
    Failure Modes: Returns None for missing header, invalid base64 or empty payload.
    If Removed: Uploads and camera snapshots cannot be turned into image blobs.
    Testing Notes: Check whitespace inside the payload is tolerated.
    """
    if not data_url or not data_url.startswith("data:") or "," not in data_url:
        return None
    header, payload = data_url.split(",", 1)
    if ";base64" not in header:
        return None
    mime_type = header[5:].split(";", 1)[0] or "application/octet-stream"
    payload = "".join(payload.split())
    if not payload:
        return None
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None
    if not data:
        return None
    return mime_type, data
