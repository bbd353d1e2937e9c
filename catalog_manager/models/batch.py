"""
Batch request/response models.

A batch sub-request is one logical call packed into a physical Graph API
batch. Sub-responses map back to sub-requests purely by position.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..common.constants import AUTH_ERROR_CODES, PERMISSION_ERROR_CODE_RANGE

RAW_BODY_PREVIEW = 200


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value)
    return None


@dataclass
class ErrorDescriptor:
    """
    Normalized provider error.

    Graph API errors arrive as {"error": {"message", "type", "code",
    "error_subcode", "error_user_title", "error_user_msg", "fbtrace_id"}}
    with any of those keys missing. When there is no message, one is
    synthesized from the HTTP status and the raw body.
    """
    message: str
    status: Optional[int] = None
    code: Optional[int] = None
    subcode: Optional[int] = None
    type: Optional[str] = None
    user_title: Optional[str] = None
    user_message: Optional[str] = None
    trace_id: Optional[str] = None
    raw_body: Optional[str] = None

    @classmethod
    def from_payload(
        cls,
        status: Optional[int],
        payload: Any,
        raw_body: Optional[str] = None,
    ) -> "ErrorDescriptor":
        """
        Build a descriptor from a decoded error body.

        Args:
            status: HTTP (or sub-response) status code, None for network failures
            payload: Decoded JSON body, or None if it could not be decoded
            raw_body: Undecoded body text, used for the fallback message
        """
        error = payload.get("error") if isinstance(payload, dict) else None
        if isinstance(error, str):
            error = {"message": error}
        if not isinstance(error, dict):
            error = {}

        message = error.get("message")
        if not message:
            message = cls._fallback_message(status, payload, raw_body)

        return cls(
            message=str(message),
            status=status,
            code=_as_int(error.get("code")),
            subcode=_as_int(error.get("error_subcode")),
            type=error.get("type"),
            user_title=error.get("error_user_title"),
            user_message=error.get("error_user_msg"),
            trace_id=error.get("fbtrace_id"),
            raw_body=raw_body,
        )

    @staticmethod
    def _fallback_message(status: Optional[int], payload: Any, raw_body: Optional[str]) -> str:
        raw = raw_body
        if not raw and payload not in (None, "", {}, []):
            raw = json.dumps(payload)
        prefix = f"HTTP {status}" if status is not None else "Request failed"
        if raw:
            return f"{prefix}: {raw[:RAW_BODY_PREVIEW]}"
        return f"{prefix} with empty body"

    @property
    def is_auth_error(self) -> bool:
        """True for invalid/expired tokens and missing permissions."""
        if self.code is None:
            return False
        return self.code in AUTH_ERROR_CODES or self.code in PERMISSION_ERROR_CODE_RANGE

    def describe(self) -> str:
        """One-line summary: message plus whatever codes the provider sent."""
        details = []
        if self.code is not None:
            details.append(f"code {self.code}")
        if self.subcode is not None:
            details.append(f"subcode {self.subcode}")
        if self.type:
            details.append(f"type {self.type}")
        if not details:
            return self.message
        return f"{self.message} [{', '.join(details)}]"


@dataclass
class BatchSubRequest:
    """One logical operation inside a batch: method, relative URL, optional body."""
    method: str
    relative_url: str
    body: Optional[Dict[str, Any]] = None


@dataclass
class BatchSubResponse:
    """
    One element of a batch response, already through the second JSON decode.

    problem is set when the element itself was unusable (null, not an
    object, no status code, undecodable body); such elements are failures
    attributed to their position like any provider error.
    """
    code: Optional[int]
    body: Any = None
    raw_body: Optional[str] = None
    problem: Optional[str] = None
    transport_error: Optional[ErrorDescriptor] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "BatchSubResponse":
        """Decode one raw element of a batch response array."""
        if raw is None:
            return cls(code=None, problem="No response returned for this sub-request")
        if not isinstance(raw, dict):
            return cls(
                code=None,
                problem=f"Malformed sub-response: expected an object, got {type(raw).__name__}",
            )

        code = _as_int(raw.get("code"))
        if code is None:
            return cls(code=None, problem="Malformed sub-response: missing status code")

        body = raw.get("body")
        if body is None or body == "":
            return cls(code=code, body={})
        if not isinstance(body, str):
            # Already decoded (some proxies do the second pass for us)
            return cls(code=code, body=body)

        try:
            decoded = json.loads(body)
        except ValueError:
            return cls(
                code=code,
                raw_body=body,
                problem="Sub-response body is not valid JSON",
            )
        return cls(code=code, body=decoded if decoded is not None else {}, raw_body=body)

    @classmethod
    def missing(cls) -> "BatchSubResponse":
        return cls(code=None, problem="Batch response ended before this sub-request")

    @classmethod
    def failed(cls, error: ErrorDescriptor) -> "BatchSubResponse":
        """Stand-in for a position whose whole physical batch call failed."""
        return cls(code=error.status, transport_error=error)

    @property
    def ok(self) -> bool:
        return (
            self.problem is None
            and self.transport_error is None
            and self.code is not None
            and 200 <= self.code < 300
        )

    def error(self) -> Optional[ErrorDescriptor]:
        """Describe why this position failed, or None if it succeeded."""
        if self.ok:
            return None
        if self.transport_error is not None:
            return self.transport_error
        if self.problem is not None:
            message = self.problem
            if self.raw_body:
                message = f"{message}: {self.raw_body[:RAW_BODY_PREVIEW]}"
            return ErrorDescriptor(message=message, status=self.code, raw_body=self.raw_body)
        return ErrorDescriptor.from_payload(self.code, self.body, self.raw_body)
