from __future__ import annotations

import base64
import binascii
from typing import List, Tuple

from causal_lab.errors import ValidationError


def decode_file_data(file_data: str) -> bytes:
    """Base64 payload from the JSON upload endpoint -> raw bytes."""
    try:
        return base64.b64decode("".join(file_data.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"file_data is not valid base64: {e}") from e


def decode_text(content: bytes) -> str:
    # utf-8-sig drops a leading BOM so it does not end up in the first header name
    return content.decode("utf-8-sig", errors="replace")


def non_blank_lines(text: str) -> List[str]:
    return [ln for ln in text.splitlines() if ln.strip()]


def coarse_shape(content: bytes) -> Tuple[int, int]:
    """(columns_count, rows_count) from the header field count and data line count."""
    lines = non_blank_lines(decode_text(content))
    if not lines:
        return 0, 0
    return len(lines[0].split(",")), len(lines) - 1
