"""
AccountService -- chart of accounts maintenance.

Structural fields (code, type, normal balance, control link) become
immutable once an account carries posted lines; the ORM listener in
db/immutability.py enforces that on flush.
"""

from uuid import UUID

from sqlalchemy import select

from ledger_kernel.exceptions import (
    AccountInactiveError,
    AccountNotFoundError,
    DuplicateAccountError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import (
    NORMAL_BALANCE_BY_TYPE,
    Account,
    AccountType,
    ControlModule,
)
from ledger_kernel.services.base import BaseService

logger = get_logger("services.account")


class AccountService(BaseService[Account]):

    def create_account(
        self,
        code: str,
        name: str,
        account_type: AccountType | str,
        actor_id: UUID,
        control_module: ControlModule | str | None = None,
        parent_code: str | None = None,
    ) -> Account:
        """
        Create an account.  Normal balance follows the account type.

        A control_module makes this the GL control account for that
        sub-ledger.

        Raises:
            DuplicateAccountError: If the code already exists.
            AccountNotFoundError: If parent_code does not exist.
        """
        account_type = AccountType(account_type)
        if self.find_by_code(code) is not None:
            raise DuplicateAccountError(code)

        parent_id = self.get_by_code(parent_code).id if parent_code else None
        module = ControlModule(control_module).value if control_module else None

        account = Account(
            organization_id=self.organization_id,
            code=code,
            name=name,
            account_type=account_type.value,
            normal_balance=NORMAL_BALANCE_BY_TYPE[account_type].value,
            is_control_account=module is not None,
            control_module=module,
            parent_id=parent_id,
            created_by_id=actor_id,
        )
        self.session.add(account)
        self.session.flush()

        logger.info(
            "account_created",
            extra={
                "account_code": code,
                "account_type": account_type.value,
                "control_module": module,
            },
        )
        return account

    def find_by_code(self, code: str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.organization_id == self.organization_id,
                Account.code == code,
            )
        ).scalar_one_or_none()

    def get_by_code(self, code: str) -> Account:
        account = self.find_by_code(code)
        if account is None:
            raise AccountNotFoundError(code)
        return account

    def get_postable(self, code: str) -> Account:
        account = self.get_by_code(code)
        if not account.is_active:
            raise AccountInactiveError(code)
        return account

    def control_account_for(self, module: ControlModule | str) -> Account | None:
        return self.session.execute(
            select(Account).where(
                Account.organization_id == self.organization_id,
                Account.is_control_account.is_(True),
                Account.control_module == ControlModule(module).value,
            )
        ).scalar_one_or_none()

    def mark_control_account(
        self, code: str, module: ControlModule | str, actor_id: UUID
    ) -> Account:
        """Link an account to a sub-ledger; rejected once the account is in use."""
        account = self.get_by_code(code)
        account.is_control_account = True
        account.control_module = ControlModule(module).value
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "control_account_marked",
            extra={"account_code": code, "control_module": account.control_module},
        )
        return account

    def deactivate(self, code: str, actor_id: UUID) -> Account:
        account = self.get_by_code(code)
        account.is_active = False
        account.updated_by_id = actor_id
        self.session.flush()
        logger.info("account_deactivated", extra={"account_code": code})
        return account

    def list_accounts(self) -> list[Account]:
        return list(
            self.session.execute(
                select(Account)
                .where(Account.organization_id == self.organization_id)
                .order_by(Account.code)
            ).scalars()
        )
