# Author: Kemal Sebzeci
# Description: Shared validation and formatting helpers used by the CLI,
# the settings object and the report engine.

import re
import time

MIN_CHUNK_SIZE = 1
MAX_CHUNK_SIZE = 256 * 1024 * 1024

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")


def validate_chunk_size(value) -> tuple[bool, str]:
    """Returns (ok, error_message)."""
    if isinstance(value, bool) or not isinstance(value, int):
        return False, "Chunk size must be an integer number of bytes."
    if not (MIN_CHUNK_SIZE <= value <= MAX_CHUNK_SIZE):
        return False, f"Chunk size must be between {MIN_CHUNK_SIZE} and {MAX_CHUNK_SIZE} bytes."
    return True, ""


def validate_choice(value: str, choices, what: str) -> tuple[bool, str]:
    if value not in choices:
        return False, f"Invalid {what}: {value!r}. Choose one of: {', '.join(choices)}."
    return True, ""


def validate_hex_digest(digest: str) -> tuple[bool, str]:
    """A candidate digest for matching: non-empty, hex only, even length."""
    digest = (digest or "").strip()
    if not digest:
        return False, "Digest to match is required."
    if not _HEX_RE.match(digest):
        return False, "Digest must contain hexadecimal characters only."
    if len(digest) % 2:
        return False, "Digest must have an even number of hex characters."
    return True, ""


def parse_size(text: str) -> int:
    """'524288', '512K', '4M', '1G' -> bytes."""
    m = re.match(r"^\s*(\d+)\s*([KMG]?)i?B?\s*$", str(text), re.IGNORECASE)
    if not m:
        raise ValueError(f"Invalid size: {text!r}")
    factor = {"": 1, "K": 1024, "M": 1024 ** 2, "G": 1024 ** 3}[m.group(2).upper()]
    return int(m.group(1)) * factor


def format_bytes(size_bytes: int) -> str:
    """Format a byte count into a human-readable string (e.g., '500.00 GB')."""
    if size_bytes < 0:
        return "Unknown"
    for unit in ("B", "KB", "MB", "GB", "TB", "PB"):
        if abs(size_bytes) < 1024.0 or unit == "PB":
            if unit == "B":
                return f"{size_bytes} {unit}"
            return f"{size_bytes:.2f} {unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.2f} PB"


def format_eta(processed: int, total: int, elapsed_s: float) -> str:
    if processed <= 0 or elapsed_s <= 0:
        return "Calculating..."
    rate = processed / elapsed_s
    remaining = max(0, total - processed) / rate
    return time.strftime("%H:%M:%S", time.gmtime(remaining))
