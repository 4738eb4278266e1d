"""Writing returned image payloads to disk.

Path resolution is purely syntactic: a target with a suffix is a file, a
target without one is a directory. ``/tmp/output`` is always a directory.
"""

from __future__ import annotations

import base64
import binascii
import logging
import tempfile
import uuid
from pathlib import Path
from typing import Optional

from imagegen_mcp.errors import ValidationError
from imagegen_mcp.capabilities import DEFAULT_OUTPUT_FORMAT

log = logging.getLogger(__name__)

_DATA_URL_MARKER = "base64,"


def strip_data_url(data: str) -> str:
    """Drop a ``data:<mime>;base64,`` prefix if present."""
    if _DATA_URL_MARKER in data:
        return data.split(_DATA_URL_MARKER, 1)[1]
    return data


def decode_image_data(data: str) -> bytes:
    """Decode a (possibly data-URL prefixed) base64 payload."""
    try:
        return base64.b64decode(strip_data_url(data).strip(), validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValidationError(f"Invalid base64 image data: {e}", field="b64_json") from e


def _unique_name(output_format: str) -> str:
    return f"{uuid.uuid4()}.{output_format.lstrip('.') or DEFAULT_OUTPUT_FORMAT}"


def resolve_output_path(
    output_path: Optional[str] = None,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
) -> Path:
    """Resolve the concrete file to write, creating directories as needed.

    Args:
        output_path: Target file (has an extension) or directory (has none).
            When omitted, the system temp directory is used.
        output_format: Extension for generated file names.

    Returns:
        Absolute path of the file to write.
    """
    if not output_path:
        return Path(tempfile.gettempdir()).resolve() / _unique_name(output_format)

    target = Path(output_path).expanduser()
    if target.suffix:
        target.parent.mkdir(parents=True, exist_ok=True)
        return target.resolve()

    target.mkdir(parents=True, exist_ok=True)
    return target.resolve() / _unique_name(output_format)


def save_image_bytes(
    data: bytes,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    output_path: Optional[str] = None,
) -> str:
    """Write raw bytes to the resolved target and return its absolute path."""
    path = resolve_output_path(output_path, output_format)
    path.write_bytes(data)
    log.debug("Wrote %d bytes to %s", len(data), path)
    return str(path)


def save_base64_image(
    data: str,
    output_format: str = DEFAULT_OUTPUT_FORMAT,
    output_path: Optional[str] = None,
) -> str:
    """Decode a base64 image and write it to disk.

    Returns:
        Absolute path of the written file.
    """
    return save_image_bytes(decode_image_data(data), output_format, output_path)


__all__ = [
    "strip_data_url",
    "decode_image_data",
    "resolve_output_path",
    "save_image_bytes",
    "save_base64_image",
]
