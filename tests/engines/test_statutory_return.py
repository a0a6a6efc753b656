"""
Canonical rendering of a compiled return and the engine trace it emits.
"""

import json
from dataclasses import replace
from datetime import date
from decimal import Decimal

from ledger_engines.statutory import InvoiceRecord, compile_gstr1
from ledger_engines.tracer import compute_input_fingerprint, traced_engine
from ledger_kernel.domain.fiscal_calendar import resolve_month

APRIL = resolve_month("2024-2025", 1)

INVOICES = [
    InvoiceRecord(
        invoice_id="1",
        invoice_number="INV-1",
        invoice_date=date(2024, 4, 5),
        customer_name="Bengaluru Foods",
        customer_gstin="29ABCDE1234F1Z5",
        subtotal=Decimal("1000"),
        cgst_amount=Decimal("90"),
        sgst_amount=Decimal("90"),
        total_amount=Decimal("1180"),
    ),
]


class TestCanonicalRendering:

    def test_to_dict_shape(self):
        payload = compile_gstr1(INVOICES, APRIL).to_dict()

        assert set(payload) == {"form", "period", "from_date", "to_date", "rows"}
        assert payload["period"] == "2024-04"
        row = payload["rows"][0]
        assert row["form"] == "GSTR-1"
        assert row["invoice_date"] == "2024-04-05"
        assert row["taxable_value"] == "1000.00"

    def test_json_is_sorted_and_compact(self):
        text = compile_gstr1(INVOICES, APRIL).to_json()

        assert " " not in text.replace("Bengaluru Foods", "")
        assert json.loads(text)["rows"][0]["total_tax"] == "180.00"
        assert text.index('"form"') < text.index('"from_date"') < text.index('"period"')

    def test_identical_inputs_identical_fingerprint(self):
        first = compile_gstr1(INVOICES, APRIL)
        second = compile_gstr1(list(reversed(INVOICES)), APRIL)
        assert first.fingerprint() == second.fingerprint()

    def test_changed_input_changes_fingerprint(self):
        changed = [replace(INVOICES[0], subtotal=Decimal("1001"))]
        assert compile_gstr1(changed, APRIL).fingerprint() != compile_gstr1(INVOICES, APRIL).fingerprint()


class TestEngineTrace:

    def test_compiler_emits_trace(self, captured_logs):
        compile_gstr1(INVOICES, APRIL)

        traces = [r for r in captured_logs() if r["message"] == "engine_trace"]
        assert len(traces) == 1
        trace = traces[0]
        assert trace["engine_name"] == "gstr1"
        assert trace["engine_version"] == "1.0"
        assert len(trace["input_fingerprint"]) == 16
        assert trace["duration_ms"] >= 0

    def test_fingerprint_binds_positional_and_keyword(self, captured_logs):
        compile_gstr1(INVOICES, APRIL)
        compile_gstr1(invoices=INVOICES, period=APRIL)

        fps = [r["input_fingerprint"] for r in captured_logs() if r["message"] == "engine_trace"]
        assert fps[0] == fps[1]

    def test_decimal_scale_does_not_change_fingerprint(self):
        a = compute_input_fingerprint(("amount",), {"amount": Decimal("10.0")})
        b = compute_input_fingerprint(("amount",), {"amount": Decimal("10.00")})
        assert a == b

    def test_missing_argument_is_null(self):
        assert compute_input_fingerprint(("x",), {}) == compute_input_fingerprint(("x",), {"x": None})

    def test_dict_key_order_is_irrelevant(self):
        a = compute_input_fingerprint(("d",), {"d": {"a": 1, "b": 2}})
        b = compute_input_fingerprint(("d",), {"d": {"b": 2, "a": 1}})
        assert a == b

    def test_wrapper_preserves_name_and_result(self):
        @traced_engine("double", "0.1", fingerprint_fields=("value",))
        def double(value):
            return value * 2

        assert double(21) == 42
        assert double.__name__ == "double"
