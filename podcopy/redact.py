"""Redaction stage applied to collected file payloads before the report is written.

Stages take the full `files` mapping and return a new one; they never mutate their input.
"""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Protocol, Tuple

REDACTED = b"[REDACTED]"


class Redactor(Protocol):
    def __call__(self, files: Dict[str, bytes]) -> Dict[str, bytes]: ...


def identity_redactor(files: Dict[str, bytes]) -> Dict[str, bytes]:
    return dict(files)


# (pattern, replacement). Group references keep the non-secret part visible.
_DEFAULT_RULES: List[Tuple[re.Pattern[bytes], bytes]] = [
    # key=value secrets; keep the key
    (
        re.compile(rb"(?i)\b(api[_-]?key|token|secret|password)(\s*[:=]\s*)['\"]?[a-zA-Z0-9_\-+=/.]{8,}['\"]?"),
        rb"\1\2" + REDACTED,
    ),
    # Database URLs: keep user and host, redact password
    (re.compile(rb"(?i)\b(postgres|postgresql|mysql|mongodb)://([^:/@\s]+):([^@\s]+)@"), rb"\1://\2:" + REDACTED + rb"@"),
    # AWS credentials
    (re.compile(rb"\bAKIA[0-9A-Z]{16}\b"), REDACTED),
    (re.compile(rb"\bASIA[0-9A-Z]{16}\b"), REDACTED),
    (re.compile(rb"(?i)(aws_secret_access_key\s*[:=]\s*)[a-zA-Z0-9+/]{40}"), rb"\1" + REDACTED),
    # Bearer tokens
    (re.compile(rb"(?i)\b(bearer\s+)[a-zA-Z0-9._\-]{20,}"), rb"\1" + REDACTED),
    # Private keys
    (re.compile(rb"-----BEGIN [A-Z ]*PRIVATE KEY-----.*?-----END [A-Z ]*PRIVATE KEY-----", re.DOTALL), REDACTED),
    # JWTs
    (re.compile(rb"\beyJ[a-zA-Z0-9_-]+\.eyJ[a-zA-Z0-9_-]+\.[a-zA-Z0-9_-]+"), REDACTED),
    # Vendor token prefixes
    (re.compile(rb"\b(sk|pk|ghp|gho|ghu|ghs|glpat|xoxb|xoxp|xapp)-[a-zA-Z0-9_\-]{20,}\b"), REDACTED),
]


class PatternRedactor:
    """Masks common secret shapes in every file payload."""

    def __init__(self, rules: Optional[List[Tuple[re.Pattern[bytes], bytes]]] = None) -> None:
        self.rules = list(rules) if rules is not None else list(_DEFAULT_RULES)

    def redact_bytes(self, data: bytes) -> bytes:
        if not data:
            return data
        out = data
        for pattern, replacement in self.rules:
            out = pattern.sub(replacement, out)
        return out

    def __call__(self, files: Dict[str, bytes]) -> Dict[str, bytes]:
        return {k: self.redact_bytes(v) for k, v in files.items()}


def get_redactor(enabled: bool) -> Redactor:
    return PatternRedactor() if enabled else identity_redactor


__all__ = ["PatternRedactor", "Redactor", "get_redactor", "identity_redactor"]
