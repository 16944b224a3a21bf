"""
tests/test_receipts.py - Tests for receipts.py

Validates:
- dual_hash returns SHA256:BLAKE3
- emit_receipt fills the standard fields and appends to a ledger
- stoprule emits an anomaly receipt and raises StopRule
- write_receipt_jsonl writes one JSON line per receipt
"""

import io
import json

import pytest

from receipts import StopRule, dual_hash, emit_receipt, stoprule, write_receipt_jsonl


class TestDualHash:
    """dual_hash format and determinism."""

    def test_format(self):
        h = dual_hash("flow")
        sha, b3 = h.split(":")
        assert len(sha) == 64
        assert len(b3) == 64

    def test_str_and_bytes_agree(self):
        assert dual_hash("flow") == dual_hash(b"flow")

    def test_different_input_different_hash(self):
        assert dual_hash("a") != dual_hash("b")


class TestEmitReceipt:
    """emit_receipt fields and ledger."""

    def test_standard_fields(self):
        r = emit_receipt("iteration", {"system_id": "s1", "time": 3})
        assert r["receipt_type"] == "iteration"
        assert r["system_id"] == "s1"
        assert r["time"] == 3
        assert ":" in r["payload_hash"]
        assert "ts" in r

    def test_default_system_id(self):
        assert emit_receipt("iteration", {})["system_id"] == "default"

    def test_appended_to_ledger(self):
        ledger = []
        r = emit_receipt("iteration", {"time": 1}, ledger)
        assert ledger == [r]

    def test_payload_hash_independent_of_key_order(self):
        r1 = emit_receipt("x", {"a": 1, "b": 2})
        r2 = emit_receipt("x", {"b": 2, "a": 1})
        assert r1["payload_hash"] == r2["payload_hash"]


class TestStoprule:
    """stoprule halts with an anomaly receipt."""

    def test_raises(self):
        with pytest.raises(StopRule, match="broken"):
            stoprule("some_metric", "broken")

    def test_anomaly_receipt_in_ledger(self):
        ledger = []
        with pytest.raises(StopRule):
            stoprule("unknown_metric", "bad measure", ledger, "s1", measure="foo")
        assert len(ledger) == 1
        anomaly = ledger[0]
        assert anomaly["receipt_type"] == "anomaly"
        assert anomaly["system_id"] == "s1"
        assert anomaly["metric"] == "unknown_metric"
        assert anomaly["action"] == "halt"
        assert anomaly["measure"] == "foo"


class TestWriteReceiptJsonl:

    def test_one_line_per_receipt(self):
        fh = io.StringIO()
        write_receipt_jsonl(emit_receipt("a", {"n": 1}), fh)
        write_receipt_jsonl(emit_receipt("b", {"n": 2}), fh)
        lines = fh.getvalue().splitlines()
        assert [json.loads(line)["receipt_type"] for line in lines] == ["a", "b"]
