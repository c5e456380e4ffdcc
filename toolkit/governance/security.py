# ==============================
# Security & Redaction
# ==============================
"""
Security redaction helpers.

Goals:
- Scrub credentials from anything that might be logged, traced or printed
  (trace events, CLI output, gateway responses).
- Keep it deterministic and testable.
- Configurable patterns via Settings.logging.redact_patterns (and defaults here).

Dry-run results returned to callers are NOT redacted; they must be the exact
request the live path would send.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Iterable, List, Optional, Pattern

from toolkit.config.schema import Settings


DEFAULT_KEY_HINTS: List[str] = [
    "password",
    "passwd",
    "secret",
    "token",
    "api_key",
    "apikey",
    "authorization",
    "cookie",
    "private_key",
]

DEFAULT_PATTERNS: List[str] = [
    r"(?i)\b(basic|bearer)\s+[A-Za-z0-9+/=._\-]{8,}",
    r"(?i)api[_-]?key\s*[:=]\s*\S+",
    r"sk-[A-Za-z0-9]{20,}",
]


def _compile(patterns: Iterable[str]) -> List[Pattern[str]]:
    compiled: List[Pattern[str]] = []
    for p in patterns:
        try:
            compiled.append(re.compile(p))
        except re.error:
            # ignore invalid patterns to avoid runtime failures
            continue
    return compiled


class SecurityRedactor:
    def __init__(
        self,
        *,
        patterns: Optional[List[str]] = None,
        key_hints: Optional[List[str]] = None,
        mask: str = "[REDACTED]",
        enabled: bool = True,
    ) -> None:
        self.mask = mask
        self.enabled = enabled
        self.key_hints = [k.lower() for k in (key_hints or DEFAULT_KEY_HINTS)]
        self.patterns = _compile(patterns or DEFAULT_PATTERNS)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SecurityRedactor":
        patterns = DEFAULT_PATTERNS + list(settings.logging.redact_patterns)
        return cls(patterns=patterns, enabled=settings.logging.redact)

    def redact_text(self, text: str) -> str:
        if not self.enabled:
            return text
        out = text
        for p in self.patterns:
            out = p.sub(self.mask, out)
        return out

    def redact_dict(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        return self._redact_any(obj)  # type: ignore[return-value]

    def redact_any(self, obj: Any) -> Any:
        return self._redact_any(obj)

    def _redact_any(self, x: Any) -> Any:
        if not self.enabled or x is None:
            return x
        if isinstance(x, str):
            return self.redact_text(x)
        if isinstance(x, (bool, int, float)):
            return x
        if isinstance(x, (list, tuple)):
            return [self._redact_any(i) for i in x]
        if isinstance(x, dict):
            out: Dict[str, Any] = {}
            for k, v in x.items():
                ks = str(k).lower()
                if any(h in ks for h in self.key_hints):
                    out[k] = self.mask
                else:
                    out[k] = self._redact_any(v)
            return out
        # fallback: string-ify then redact
        return self.redact_text(str(x))
