"""
audit.py - Deterministic fingerprints of engine outputs.

Allocation shares and settlement transfers end up in audit records and in
explanatory text, so the same inputs must always produce byte-identical
output. A fingerprint is the SHA-256 of the canonical JSON form of an
output (sorted keys, compact separators, integers only); two runs agree
exactly when their fingerprints agree.

Storing fingerprints is left to the caller.

USAGE:

    from kost import split_by_percent, fingerprint_shares, verify_fingerprint

    shares = split_by_percent(245000, rules)
    digest = fingerprint_shares(shares)
    ...
    assert verify_fingerprint([s.to_dict() for s in shares], digest)
"""

from __future__ import annotations
from typing import Any, Iterable
import hashlib
import hmac  # For constant-time comparison
import json

from .models import AllocationShare, Transfer


def canonical_json(payload: Any) -> str:
    """Serialize payload deterministically. Floats are rejected."""
    _reject_floats(payload)
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _reject_floats(payload: Any) -> None:
    if isinstance(payload, float):
        raise TypeError("Floats are not allowed in fingerprinted payloads")
    if isinstance(payload, dict):
        for value in payload.values():
            _reject_floats(value)
    elif isinstance(payload, (list, tuple)):
        for item in payload:
            _reject_floats(item)


def fingerprint(payload: Any) -> str:
    """SHA-256 hex digest of the canonical JSON form of payload."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def fingerprint_shares(shares: Iterable[AllocationShare]) -> str:
    return fingerprint([s.to_dict() for s in shares])


def fingerprint_transfers(transfers: Iterable[Transfer]) -> str:
    return fingerprint([t.to_dict() for t in transfers])


def verify_fingerprint(payload: Any, digest: str) -> bool:
    """Check that payload still matches a previously recorded digest."""
    if not digest:
        return False
    return hmac.compare_digest(fingerprint(payload), digest)
