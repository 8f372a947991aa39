"""JSON report for a copy bundle (CLI-friendly, testable).

Byte payloads are base64 (standard alphabet) so the document stays valid JSON for
binary files. Empty sections are omitted.
"""

from __future__ import annotations

import base64
import json
import sys
from typing import Any, BinaryIO, Dict, Optional

from podcopy.core.models import ResultBundle
from podcopy.errors import SerializationError
from podcopy.redact import Redactor, identity_redactor

FILES_FIELD = "copy/"
ERRORS_FIELD = "copy-errors/"


def _encode_section(section: Dict[str, bytes]) -> Dict[str, str]:
    return {k: base64.b64encode(v).decode("ascii") for k, v in section.items()}


def bundle_to_json_dict(bundle: ResultBundle, *, redactor: Optional[Redactor] = None) -> Dict[str, Any]:
    """Apply the redaction stage to `files`, then build the output document."""
    if bundle.is_empty:
        return {}
    redactor = redactor or identity_redactor
    try:
        files = redactor(dict(bundle.files))
        out: Dict[str, Any] = {}
        if files:
            out[FILES_FIELD] = _encode_section(files)
        if bundle.errors:
            out[ERRORS_FIELD] = _encode_section(bundle.errors)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode bundle: {e}") from e
    return out


def report(bundle: ResultBundle, *, redactor: Optional[Redactor] = None) -> bytes:
    payload = bundle_to_json_dict(bundle, redactor=redactor)
    try:
        text = json.dumps(payload, indent=2, sort_keys=True)
    except (TypeError, ValueError) as e:
        raise SerializationError(f"Failed to encode bundle: {e}") from e
    return (text + "\n").encode("utf-8")


def write_report(
    bundle: ResultBundle,
    stream: Optional[BinaryIO] = None,
    *,
    redactor: Optional[Redactor] = None,
) -> None:
    """Serialize fully, then write once; nothing is written if encoding fails."""
    data = report(bundle, redactor=redactor)
    out = stream if stream is not None else sys.stdout.buffer
    out.write(data)
    out.flush()


__all__ = ["ERRORS_FIELD", "FILES_FIELD", "bundle_to_json_dict", "report", "write_report"]
