"""
Chart of accounts bootstrap (``ledger_modules.gl.service``).

Creates one account per configured role, marking the reconciliation
control accounts.  Re-running is a no-op for codes that already exist.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from ledger_config import LedgerConfig, get_active_config
from ledger_kernel.domain.clock import Clock
from ledger_kernel.logging_config import get_logger
from ledger_kernel.models.account import Account
from ledger_kernel.services.account_service import AccountService

logger = get_logger("modules.gl.service")


class ChartOfAccountsService:
    """Seeds an organization's chart of accounts from a LedgerConfig."""

    def __init__(
        self,
        session: Session,
        organization_id: UUID,
        config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        self.config = config or get_active_config()
        self._accounts = AccountService(session, organization_id, clock)

    def bootstrap(self, actor_id: UUID) -> list[Account]:
        created = []
        for role in self.config.accounts.roles:
            if self._accounts.find_by_code(role.code) is not None:
                continue
            created.append(
                self._accounts.create_account(
                    role.code,
                    role.name,
                    role.account_type,
                    actor_id,
                    control_module=role.control_module,
                )
            )
        logger.info(
            "chart_of_accounts_bootstrapped",
            extra={
                "created_count": len(created),
                "role_count": len(self.config.accounts.roles),
                "config_id": self.config.config_id,
            },
        )
        return created
