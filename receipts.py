"""
receipts.py - Foundation Module

Canonical emit_receipt() for the flow simulation. ALL modules import from here.
Receipts are the audit trail of a LobsterSystem: every system-level fact
(iteration, adaptation, WIP limit change, anomaly) is a hashed dict appended
to the owning system's receipt ledger.

Never single hash. Always dual_hash (SHA256:BLAKE3).
"""

import hashlib
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

import blake3

__all__ = [
    "dual_hash",
    "emit_receipt",
    "write_receipt_jsonl",
    "stoprule",
    "StopRule",
    "RECEIPT_SCHEMA",
]

# =============================================================================
# CONSTANTS
# =============================================================================

RECEIPT_SCHEMA = {
    "receipt_type": "str",
    "ts": "ISO8601",
    "system_id": "str",
    "payload_hash": "str (SHA256:BLAKE3)",
}

DEFAULT_SYSTEM_ID = "default"


# =============================================================================
# CORE FUNCTION 1: dual_hash
# =============================================================================

def dual_hash(data: Union[bytes, str]) -> str:
    """
    SHA256:BLAKE3 - ALWAYS use this, never single hash.

    Args:
        data: Bytes or string to hash

    Returns:
        str: "sha256_hex:blake3_hex" format
    """
    if isinstance(data, str):
        data = data.encode()
    sha = hashlib.sha256(data).hexdigest()
    b3 = blake3.blake3(data).hexdigest()
    return f"{sha}:{b3}"


# =============================================================================
# CORE FUNCTION 2: emit_receipt
# =============================================================================

def emit_receipt(receipt_type: str, data: Dict[str, Any],
                 ledger: Optional[List[dict]] = None) -> Dict[str, Any]:
    """
    Every system-level fact goes through this. No exceptions.

    Args:
        receipt_type: Type identifier for this receipt
        data: Receipt payload (system_id defaults to 'default'); values must be
              JSON-serializable
        ledger: Optional receipt ledger the receipt is appended to

    Returns:
        dict: Complete receipt with ts, system_id, payload_hash and data fields
    """
    receipt = {
        "receipt_type": receipt_type,
        "ts": datetime.now(timezone.utc).isoformat(),
        "system_id": data.get("system_id", DEFAULT_SYSTEM_ID),
        "payload_hash": dual_hash(json.dumps(data, sort_keys=True, default=str)),
        **data
    }
    if ledger is not None:
        ledger.append(receipt)
    return receipt


# =============================================================================
# CORE FUNCTION 3: write_receipt_jsonl
# =============================================================================

def write_receipt_jsonl(receipt: Dict[str, Any], fh) -> None:
    """
    Append receipt as single JSON line to file handle.

    Args:
        receipt: Receipt dict to write
        fh: File handle (must be open for writing)
    """
    line = json.dumps(receipt, separators=(",", ":"), default=str)
    fh.write(line + "\n")


# =============================================================================
# STOPRULE EXCEPTION
# =============================================================================

class StopRule(Exception):
    """Raised when stoprule triggers. Never catch silently."""
    pass


def stoprule(metric: str, message: str, ledger: Optional[List[dict]] = None,
             system_id: str = DEFAULT_SYSTEM_ID, **context: Any) -> None:
    """
    Emit an anomaly receipt and halt.

    Args:
        metric: What was violated (e.g. "unknown_metric", "dimension_mismatch")
        message: Human readable reason, becomes the StopRule message
        ledger: Optional receipt ledger of the owning system
        system_id: Owning system
        **context: Extra JSON-serializable payload fields

    Raises:
        StopRule: always
    """
    emit_receipt("anomaly", {
        "system_id": system_id,
        "metric": metric,
        "message": message,
        "action": "halt",
        **context
    }, ledger)
    raise StopRule(message)
