"""
GST return compilers: GSTR-1 (outward supplies) and GSTR-3B (summary).

Both are pure range filters over invoice and bill snapshots.  Records
outside ``[period.start, period.end]`` are ignored, so a caller may pass a
superset.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from ledger_config.schema import GstRates
from ledger_engines.statutory.inputs import BillRecord, InvoiceRecord
from ledger_engines.statutory.rows import GSTR1Row, GSTR3BSummary, StatutoryReturn
from ledger_engines.tracer import traced_engine
from ledger_kernel.domain.fiscal_calendar import DateRange
from ledger_kernel.domain.values import ZERO, money_sum, percent_of, to_money


def net_of_itc(payable: Decimal, itc: Decimal) -> Decimal:
    """Net liability for one head; credit never drives it below zero."""
    return to_money(payable - min(payable, itc))


def itc_heads(bill: BillRecord, rates: GstRates) -> tuple[Decimal, Decimal, Decimal]:
    """
    Input tax credit of one bill by head.

    Bills carrying a head split use it.  A bill with only a tax total is
    split between CGST and SGST by the configured share.
    """
    heads = (to_money(bill.cgst_amount), to_money(bill.sgst_amount), to_money(bill.igst_amount))
    if sum(heads) > ZERO or to_money(bill.tax_amount) == ZERO:
        return heads
    cgst = percent_of(bill.tax_amount, rates.itc_cgst_share)
    return cgst, to_money(bill.tax_amount - cgst), ZERO


@traced_engine("gstr1", "1.0", fingerprint_fields=("invoices", "period"))
def compile_gstr1(invoices: Sequence[InvoiceRecord], period: DateRange) -> StatutoryReturn:
    """One row per outward invoice in range; B2B when the customer has a GSTIN."""
    rows = [
        GSTR1Row(
            invoice_number=inv.invoice_number,
            invoice_date=inv.invoice_date,
            customer_name=inv.customer_name or "",
            customer_gstin=inv.customer_gstin or "",
            place_of_supply=inv.place_of_supply or "",
            invoice_type="B2B" if inv.customer_gstin else "B2C",
            taxable_value=to_money(inv.subtotal),
            cgst_amount=to_money(inv.cgst_amount),
            sgst_amount=to_money(inv.sgst_amount),
            igst_amount=to_money(inv.igst_amount),
            total_tax=to_money(inv.tax_amount),
            total_amount=to_money(inv.total_amount),
        )
        for inv in invoices
        if period.contains(inv.invoice_date)
    ]
    rows.sort(key=lambda r: (r.invoice_date, r.invoice_number))
    return StatutoryReturn("GSTR-1", period.label, period.start, period.end, tuple(rows))


@traced_engine("gstr3b", "1.0", fingerprint_fields=("invoices", "bills", "period"))
def compile_gstr3b(
    invoices: Sequence[InvoiceRecord],
    bills: Sequence[BillRecord],
    period: DateRange,
    rates: GstRates,
) -> StatutoryReturn:
    """
    Single summary for the range.

    ITC is claimed only from bills whose vendor has a GSTIN.  Each head nets
    independently: ``net = payable - min(payable, itc)``; unconsumed credit
    is not carried forward in this summary.
    """
    outward = [inv for inv in invoices if period.contains(inv.invoice_date)]
    inward = [bill for bill in bills if period.contains(bill.bill_date)]
    eligible = [bill for bill in inward if bill.vendor_gstin]

    cgst_payable = money_sum(inv.cgst_amount for inv in outward)
    sgst_payable = money_sum(inv.sgst_amount for inv in outward)
    igst_payable = money_sum(inv.igst_amount for inv in outward)

    credits = [itc_heads(bill, rates) for bill in eligible]
    itc_cgst = money_sum(c[0] for c in credits)
    itc_sgst = money_sum(c[1] for c in credits)
    itc_igst = money_sum(c[2] for c in credits)

    net_cgst = net_of_itc(cgst_payable, itc_cgst)
    net_sgst = net_of_itc(sgst_payable, itc_sgst)
    net_igst = net_of_itc(igst_payable, itc_igst)

    summary = GSTR3BSummary(
        outward_taxable=money_sum(inv.subtotal for inv in outward),
        outward_exempt=ZERO,
        inward_taxable=money_sum(bill.subtotal for bill in inward),
        cgst_payable=cgst_payable,
        sgst_payable=sgst_payable,
        igst_payable=igst_payable,
        total_tax_payable=money_sum((cgst_payable, sgst_payable, igst_payable)),
        itc_cgst=itc_cgst,
        itc_sgst=itc_sgst,
        itc_igst=itc_igst,
        total_itc=money_sum((itc_cgst, itc_sgst, itc_igst)),
        net_cgst=net_cgst,
        net_sgst=net_sgst,
        net_igst=net_igst,
        net_payable=money_sum((net_cgst, net_sgst, net_igst)),
    )
    return StatutoryReturn("GSTR-3B", period.label, period.start, period.end, (summary,))
