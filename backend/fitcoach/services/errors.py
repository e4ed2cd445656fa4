# fitcoach/services/errors.py
# Failure types shared by the planner, the retry wrapper and the plan store.
# Routers translate these to HTTP status codes; services only raise them.

from __future__ import annotations
from typing import Any, Dict, List, Optional


class InvalidInput(Exception):
    # malformed body or out-of-range field (user-correctable)
    def __init__(self, violations: List[Dict[str, str]]):
        super().__init__("invalid plan input")
        self.violations = violations


class GenerationNotReady(Exception):
    # SDK or API key missing
    pass


class UpstreamError(Exception):
    """The generation call came back with something we can't use."""

    error = "Upstream error"

    def __init__(self, message: Optional[str] = None, details: Any = None):
        super().__init__(message or self.error)
        self.details = details


class UpstreamEmpty(UpstreamError):
    error = "Empty response from AI service"


class UpstreamMalformed(UpstreamError):
    error = "AI returned invalid JSON"

    def __init__(self, raw_text: str, reason: str = ""):
        super().__init__(self.error, details={"reason": reason, "raw": raw_text})
        self.raw_text = raw_text


class UpstreamSchemaViolation(UpstreamError):
    error = "AI returned JSON that does not match the expected schema"

    def __init__(self, violations: List[Dict[str, str]]):
        super().__init__(self.error, details=violations)
        self.violations = violations


class UpstreamTimeout(UpstreamError):
    error = "AI service did not answer in time"


class StoreUnavailable(Exception):
    # persistence layer not initialized or unreachable
    pass


class TransientNetwork(Exception):
    pass


class RetryExhausted(TransientNetwork):
    def __init__(self, attempts: int, last_error: Optional[BaseException] = None, last_status: Optional[int] = None):
        msg = f"gave up after {attempts} attempts"
        if last_status is not None:
            msg += f" (last status {last_status})"
        elif last_error is not None:
            msg += f" ({last_error!r})"
        super().__init__(msg)
        self.attempts = attempts
        self.last_error = last_error
        self.last_status = last_status


class NonRetryableHTTPError(Exception):
    # 4xx: caller error, never retried
    def __init__(self, status_code: int, body: Any = None):
        super().__init__(f"request rejected with status {status_code}")
        self.status_code = status_code
        self.body = body
