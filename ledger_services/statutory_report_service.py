"""
ledger_services.statutory_report_service -- statutory returns from live data.

Responsibility:
    Load the posted documents of an organization, freeze them into the
    compiler input records and run the pure statutory compilers over a
    resolved India financial-year period.

Architecture position:
    Services -- the only place statutory compilation touches a session.
    Compilers in ledger_engines.statutory never query.

Invariants enforced:
    - Side-effect free: nothing is written.
    - Only issued invoices, posted bills and processed/paid payroll are
      reportable; drafts and cancellations never appear in a return.
    - Inputs are loaded in a stable order, so the same data compiles to a
      byte-identical return.
"""

from __future__ import annotations

from collections.abc import Callable
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_engines.statutory import (
    BillRecord,
    InvoiceRecord,
    PayrollInput,
    StatutoryReturn,
    compile_24q,
    compile_26q,
    compile_esi,
    compile_gstr1,
    compile_gstr3b,
    compile_pf_ecr,
    compile_professional_tax,
)
from ledger_kernel.domain.fiscal_calendar import DateRange, resolve_period
from ledger_kernel.exceptions import UnknownStatutoryFormError
from ledger_kernel.logging_config import get_logger
from ledger_modules.ap.orm import POSTED_BILL_STATUSES, BillModel
from ledger_modules.ar.orm import ISSUED_INVOICE_STATUSES, InvoiceModel
from ledger_modules.payroll.orm import REPORTABLE_PAYROLL_STATUSES, PayrollRecordModel

logger = get_logger("services.statutory")


class StatutoryReportService:
    """Compiles one form over one period.  Read-only."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
    ):
        self.session = session
        self.organization_id = organization_id
        self.config = config or get_active_config()
        self._compilers: dict[str, Callable[[DateRange], StatutoryReturn]] = {
            "GSTR-1": self._gstr1,
            "GSTR-3B": self._gstr3b,
            "24Q": self._24q,
            "26Q": self._26q,
            "PF-ECR": self._pf_ecr,
            "ESI": self._esi,
            "PT": self._pt,
        }

    # -- loading -----------------------------------------------------------

    def invoices(self, period: DateRange) -> list[InvoiceRecord]:
        rows = self.session.execute(
            select(InvoiceModel)
            .where(
                InvoiceModel.organization_id == self.organization_id,
                InvoiceModel.status.in_(ISSUED_INVOICE_STATUSES),
                InvoiceModel.invoice_date >= period.start,
                InvoiceModel.invoice_date <= period.end,
            )
            .order_by(InvoiceModel.invoice_date, InvoiceModel.invoice_number)
        ).unique().scalars()
        return [
            InvoiceRecord(
                invoice_id=str(inv.id),
                invoice_number=inv.invoice_number,
                invoice_date=inv.invoice_date,
                customer_name=inv.customer.name,
                customer_gstin=inv.customer.gstin or "",
                place_of_supply=inv.place_of_supply or inv.customer.state_code or "",
                subtotal=inv.subtotal,
                cgst_amount=inv.cgst_amount,
                sgst_amount=inv.sgst_amount,
                igst_amount=inv.igst_amount,
                total_amount=inv.total_amount,
            )
            for inv in rows
        ]

    def bills(self, period: DateRange) -> list[BillRecord]:
        rows = self.session.execute(
            select(BillModel)
            .where(
                BillModel.organization_id == self.organization_id,
                BillModel.status.in_(POSTED_BILL_STATUSES),
                BillModel.bill_date >= period.start,
                BillModel.bill_date <= period.end,
            )
            .order_by(BillModel.bill_date, BillModel.bill_number)
        ).unique().scalars()
        return [
            BillRecord(
                bill_id=str(bill.id),
                bill_number=bill.bill_number,
                bill_date=bill.bill_date,
                vendor_name=bill.vendor.name,
                vendor_gstin=bill.vendor.gstin or "",
                vendor_pan=bill.vendor.pan or "",
                subtotal=bill.subtotal,
                cgst_amount=bill.cgst_amount,
                sgst_amount=bill.sgst_amount,
                igst_amount=bill.igst_amount,
                tax_amount=bill.tax_amount,
                total_amount=bill.total_amount,
                tds_section=bill.tds_section or "",
                tds_rate=bill.tds_rate,
                tds_amount=bill.tds_amount,
            )
            for bill in rows
        ]

    def payroll(self, period: DateRange) -> list[PayrollInput]:
        rows = self.session.execute(
            select(PayrollRecordModel)
            .where(
                PayrollRecordModel.organization_id == self.organization_id,
                PayrollRecordModel.status.in_(REPORTABLE_PAYROLL_STATUSES),
                PayrollRecordModel.pay_date >= period.start,
                PayrollRecordModel.pay_date <= period.end,
            )
            .order_by(PayrollRecordModel.pay_period, PayrollRecordModel.pay_date)
        ).unique().scalars()
        return [
            PayrollInput(
                record_id=str(rec.id),
                employee_code=rec.employee.employee_code,
                employee_name=rec.employee.name,
                pay_period=rec.pay_period,
                pay_date=rec.pay_date,
                basic_salary=rec.basic_salary,
                hra=rec.hra,
                transport_allowance=rec.transport_allowance,
                other_allowances=rec.other_allowances,
                tds_amount=rec.tds_amount,
                employee_pan=rec.employee.pan or "",
                uan=rec.employee.uan or "",
                esi_ip_number=rec.employee.esi_ip_number or "",
                days_worked=rec.days_worked,
                ncp_days=rec.ncp_days,
            )
            for rec in rows
        ]

    # -- compilers ---------------------------------------------------------

    def _gstr1(self, period: DateRange) -> StatutoryReturn:
        return compile_gstr1(self.invoices(period), period)

    def _gstr3b(self, period: DateRange) -> StatutoryReturn:
        return compile_gstr3b(
            self.invoices(period), self.bills(period), period, self.config.statutory.gst
        )

    def _24q(self, period: DateRange) -> StatutoryReturn:
        return compile_24q(self.payroll(period), period, self.config.statutory.tds)

    def _26q(self, period: DateRange) -> StatutoryReturn:
        return compile_26q(self.bills(period), period, self.config.statutory.tds)

    def _pf_ecr(self, period: DateRange) -> StatutoryReturn:
        return compile_pf_ecr(self.payroll(period), period, self.config.statutory.pf)

    def _esi(self, period: DateRange) -> StatutoryReturn:
        return compile_esi(self.payroll(period), period, self.config.statutory.esi)

    def _pt(self, period: DateRange) -> StatutoryReturn:
        return compile_professional_tax(
            self.payroll(period), period, self.config.statutory.professional_tax
        )

    # -- public ------------------------------------------------------------

    def compile(
        self,
        form: str,
        financial_year: str,
        month: int | None = None,
        quarter: int | None = None,
    ) -> StatutoryReturn:
        """
        Compile ``form`` for a month, a quarter or (neither) the whole year.

        Raises:
            InvalidFinancialYearError / InvalidPeriodIndexError for a bad
            period, UnknownStatutoryFormError for a form outside FORM_TYPES.
        """
        compiler = self._compilers.get(form)
        if compiler is None:
            raise UnknownStatutoryFormError(form)
        period = resolve_period(financial_year, month, quarter)
        result = compiler(period)
        logger.info(
            "statutory_return_compiled",
            extra={
                "form": form,
                "period": period.label,
                "row_count": len(result),
                "fingerprint": result.fingerprint(),
            },
        )
        return result

    def gstr1(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("GSTR-1", financial_year, month, quarter)

    def gstr3b(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("GSTR-3B", financial_year, month, quarter)

    def tds_24q(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("24Q", financial_year, month, quarter)

    def tds_26q(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("26Q", financial_year, month, quarter)

    def pf_ecr(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("PF-ECR", financial_year, month, quarter)

    def esi(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("ESI", financial_year, month, quarter)

    def professional_tax(self, financial_year, month=None, quarter=None) -> StatutoryReturn:
        return self.compile("PT", financial_year, month, quarter)
