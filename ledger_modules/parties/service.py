"""
Party service (``ledger_modules.parties.service``).

Creates and looks up customers, vendors and employees.  Registration
numbers are stored upper-cased and stripped; format validity is a
compliance check, not an input rule, so malformed GSTINs are accepted here
and flagged by the audit engine.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.exceptions import DocumentNotFoundError, DuplicateDocumentError
from ledger_kernel.logging_config import get_logger
from ledger_kernel.services.base import BaseService
from ledger_modules.parties.orm import CustomerModel, EmployeeModel, VendorModel

logger = get_logger("modules.parties.service")


def _normalize(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip().upper()
    return value or None


class PartyService(BaseService):

    def create_customer(
        self,
        name: str,
        actor_id: UUID,
        gstin: str | None = None,
        state_code: str | None = None,
        email: str | None = None,
    ) -> CustomerModel:
        gstin = _normalize(gstin)
        customer = CustomerModel(
            organization_id=self.organization_id,
            name=name,
            email=email,
            gstin=gstin,
            state_code=state_code or (gstin[:2] if gstin else None),
            created_by_id=actor_id,
        )
        self.session.add(customer)
        self.session.flush()
        logger.info(
            "customer_created",
            extra={"customer_id": str(customer.id), "is_registered": customer.is_registered},
        )
        return customer

    def create_vendor(
        self,
        name: str,
        actor_id: UUID,
        gstin: str | None = None,
        pan: str | None = None,
        default_tds_section: str | None = None,
    ) -> VendorModel:
        vendor = VendorModel(
            organization_id=self.organization_id,
            name=name,
            gstin=_normalize(gstin),
            pan=_normalize(pan),
            default_tds_section=default_tds_section,
            created_by_id=actor_id,
        )
        self.session.add(vendor)
        self.session.flush()
        logger.info(
            "vendor_created",
            extra={"vendor_id": str(vendor.id), "has_pan": vendor.pan is not None},
        )
        return vendor

    def create_employee(
        self,
        employee_code: str,
        name: str,
        actor_id: UUID,
        pan: str | None = None,
        uan: str | None = None,
        esi_ip_number: str | None = None,
    ) -> EmployeeModel:
        existing = self.session.execute(
            select(EmployeeModel).where(
                EmployeeModel.organization_id == self.organization_id,
                EmployeeModel.employee_code == employee_code,
            )
        ).scalar_one_or_none()
        if existing is not None:
            raise DuplicateDocumentError("employee", employee_code)

        employee = EmployeeModel(
            organization_id=self.organization_id,
            employee_code=employee_code,
            name=name,
            pan=_normalize(pan),
            uan=uan,
            esi_ip_number=esi_ip_number,
            created_by_id=actor_id,
        )
        self.session.add(employee)
        self.session.flush()
        logger.info("employee_created", extra={"employee_code": employee_code})
        return employee

    def _get(self, model, entity_type: str, entity_id: UUID):
        obj = self.session.get(model, entity_id)
        if obj is None or obj.organization_id != self.organization_id:
            raise DocumentNotFoundError(entity_type, str(entity_id))
        return obj

    def get_customer(self, customer_id: UUID) -> CustomerModel:
        return self._get(CustomerModel, "customer", customer_id)

    def get_vendor(self, vendor_id: UUID) -> VendorModel:
        return self._get(VendorModel, "vendor", vendor_id)

    def get_employee(self, employee_id: UUID) -> EmployeeModel:
        return self._get(EmployeeModel, "employee", employee_id)

    def list_customers(self) -> list[CustomerModel]:
        return list(
            self.session.execute(
                select(CustomerModel)
                .where(CustomerModel.organization_id == self.organization_id)
                .order_by(CustomerModel.name, CustomerModel.id)
            ).scalars()
        )

    def list_vendors(self) -> list[VendorModel]:
        return list(
            self.session.execute(
                select(VendorModel)
                .where(VendorModel.organization_id == self.organization_id)
                .order_by(VendorModel.name, VendorModel.id)
            ).scalars()
        )

    def list_employees(self) -> list[EmployeeModel]:
        return list(
            self.session.execute(
                select(EmployeeModel)
                .where(EmployeeModel.organization_id == self.organization_id)
                .order_by(EmployeeModel.employee_code)
            ).scalars()
        )
