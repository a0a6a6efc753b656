"""
Fixed asset service (``ledger_modules.assets.service``).

Postings:
    register:      Dr fixed_assets / Cr <counter_role> (bank by default)
    depreciation:  Dr depreciation_expense / Cr accumulated_depreciation,
                   one system entry per asset tagged
                   ``(batch_type="depreciation", batch_date, batch_ref=asset_tag)``

The depreciation batch is idempotent per asset and date.  An asset is
skipped when it already carries a tagged entry for the batch date, when it
already has a schedule line in the same calendar month, or when the
journal's batch uniqueness rejects a concurrent duplicate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from ledger_kernel.domain.values import ZERO, to_money
from ledger_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateBatchEntryError,
    DuplicateDocumentError,
    InvalidDocumentStateError,
    InvalidLineError,
)
from ledger_kernel.logging_config import get_logger
from ledger_kernel.selectors.journal_selector import JournalSelector
from ledger_modules._posting import ModuleService
from ledger_modules.assets.orm import (
    AssetStatus,
    DepreciationLineModel,
    DepreciationMethod,
    FixedAssetModel,
)
from ledger_modules.cash.orm import BankTransactionType
from ledger_modules.cash.service import CashService

logger = get_logger("modules.assets.service")

DEPRECIATION_BATCH = "depreciation"


def monthly_straight_line(
    cost: Decimal, salvage_value: Decimal, useful_life_months: int
) -> Decimal:
    """Monthly straight-line charge; zero for a non-positive life."""
    if useful_life_months <= 0:
        return ZERO
    return to_money((cost - salvage_value) / useful_life_months)


@dataclass(frozen=True)
class DepreciationBatchResult:
    as_of_date: date
    posted: tuple[str, ...] = ()
    skipped_existing: tuple[str, ...] = ()
    skipped_fully_depreciated: tuple[str, ...] = ()
    total_amount: Decimal = ZERO
    entry_ids: tuple[UUID, ...] = field(default_factory=tuple)

    @property
    def is_noop(self) -> bool:
        return not self.posted


class AssetService(ModuleService):
    source_module = "assets"

    def register_asset(
        self,
        asset_tag: str,
        name: str,
        purchase_date: date,
        purchase_price: Decimal,
        useful_life_months: int,
        actor_id: UUID,
        *,
        category: str = "",
        salvage_value: Decimal = ZERO,
        depreciation_method: DepreciationMethod | str = DepreciationMethod.STRAIGHT_LINE,
        depreciation_start_date: date | None = None,
        counter_role: str = "bank",
    ) -> FixedAssetModel:
        method = DepreciationMethod(depreciation_method)
        price = to_money(purchase_price)
        salvage = to_money(salvage_value)
        if price <= ZERO:
            raise InvalidLineError(0, "purchase_price must be positive")
        if salvage < ZERO or salvage > price:
            raise InvalidLineError(0, "salvage_value must lie between zero and purchase_price")
        if method is DepreciationMethod.STRAIGHT_LINE and useful_life_months <= 0:
            raise InvalidLineError(0, "useful_life_months must be positive")
        if self._find(asset_tag) is not None:
            raise DuplicateDocumentError("fixed_asset", asset_tag)

        description = f"Acquisition of {asset_tag} {name}"
        entry = self._post(
            purchase_date,
            [("fixed_assets", price)],
            [(counter_role, price)],
            actor_id,
            description=description,
            reference=asset_tag,
            idempotency_key=f"assets:{self.organization_id}:{asset_tag}:register",
        )
        if counter_role == "bank":
            CashService(
                self.session, self.organization_id, self.config, self.clock
            ).record_transaction(
                purchase_date,
                BankTransactionType.DEBIT,
                price,
                description,
                actor_id,
                category="asset_purchase",
                reference=asset_tag,
                source_module=self.source_module,
                journal_entry_id=entry.id,
            )

        asset = FixedAssetModel(
            organization_id=self.organization_id,
            asset_tag=asset_tag,
            name=name,
            category=category,
            purchase_date=purchase_date,
            purchase_price=price,
            salvage_value=salvage,
            useful_life_months=useful_life_months,
            depreciation_method=method.value,
            depreciation_start_date=depreciation_start_date or purchase_date,
            accumulated_depreciation=ZERO,
            status=AssetStatus.ACTIVE.value,
            journal_entry_id=entry.id,
            created_by_id=actor_id,
        )
        self.session.add(asset)
        self.session.flush()
        logger.info(
            "asset_registered",
            extra={"asset_tag": asset_tag, "purchase_price": str(price), "method": method.value},
        )
        return asset

    def dispose_asset(
        self,
        asset_id: UUID,
        disposal_date: date,
        actor_id: UUID,
        disposal_price: Decimal | None = None,
    ) -> FixedAssetModel:
        """Retire an asset from the register; it leaves the depreciation batch."""
        asset = self.get_asset(asset_id)
        if asset.status == AssetStatus.DISPOSED.value:
            raise InvalidDocumentStateError("fixed_asset", str(asset_id), asset.status, "dispose")
        asset.status = AssetStatus.DISPOSED.value
        asset.disposal_date = disposal_date
        asset.disposal_price = to_money(disposal_price) if disposal_price is not None else None
        asset.updated_by_id = actor_id
        self.session.flush()
        logger.info(
            "asset_disposed",
            extra={"asset_tag": asset.asset_tag, "disposal_date": str(disposal_date)},
        )
        return asset

    def run_depreciation_batch(
        self,
        as_of_date: date,
        actor_id: UUID,
        is_close_posting: bool = False,
    ) -> DepreciationBatchResult:
        """
        Post one month of depreciation for every depreciable asset.

        Re-running for the same date posts nothing new.  ``is_close_posting``
        lets the period close post into its own CLOSING period.
        """
        already_tagged = JournalSelector(self.session, self.organization_id).batch_refs(
            DEPRECIATION_BATCH, as_of_date
        )
        posted: list[str] = []
        existing: list[str] = []
        fully: list[str] = []
        entry_ids: list[UUID] = []
        total = ZERO

        for asset in self._depreciable_assets(as_of_date):
            if asset.asset_tag in already_tagged or self._charged_in_month(asset, as_of_date):
                existing.append(asset.asset_tag)
                continue
            amount = min(
                monthly_straight_line(
                    asset.purchase_price, asset.salvage_value, asset.useful_life_months
                ),
                asset.remaining_depreciable,
            )
            if amount <= ZERO:
                self._mark_fully_depreciated(asset, actor_id)
                fully.append(asset.asset_tag)
                continue
            try:
                entry = self._post(
                    as_of_date,
                    [("depreciation_expense", amount)],
                    [("accumulated_depreciation", amount)],
                    actor_id,
                    description=f"Depreciation {as_of_date:%Y-%m} {asset.asset_tag}",
                    reference=asset.asset_tag,
                    batch_type=DEPRECIATION_BATCH,
                    batch_date=as_of_date,
                    batch_ref=asset.asset_tag,
                    is_close_posting=is_close_posting,
                )
            except DuplicateBatchEntryError:
                existing.append(asset.asset_tag)
                continue

            asset.accumulated_depreciation = to_money(asset.accumulated_depreciation + amount)
            asset.depreciation_lines.append(
                DepreciationLineModel(
                    organization_id=self.organization_id,
                    batch_date=as_of_date,
                    amount=amount,
                    accumulated_after=asset.accumulated_depreciation,
                    journal_entry_id=entry.id,
                    created_by_id=actor_id,
                )
            )
            if asset.remaining_depreciable <= ZERO:
                self._mark_fully_depreciated(asset, actor_id)
            posted.append(asset.asset_tag)
            entry_ids.append(entry.id)
            total += amount

        self.session.flush()
        result = DepreciationBatchResult(
            as_of_date=as_of_date,
            posted=tuple(posted),
            skipped_existing=tuple(existing),
            skipped_fully_depreciated=tuple(fully),
            total_amount=to_money(total),
            entry_ids=tuple(entry_ids),
        )
        logger.info(
            "depreciation_batch_completed",
            extra={
                "as_of_date": str(as_of_date),
                "posted_count": len(posted),
                "skipped_existing_count": len(existing),
                "skipped_fully_depreciated_count": len(fully),
                "total_amount": str(result.total_amount),
            },
        )
        return result

    def _depreciable_assets(self, as_of_date: date) -> list[FixedAssetModel]:
        return list(
            self.session.execute(
                select(FixedAssetModel)
                .where(
                    FixedAssetModel.organization_id == self.organization_id,
                    FixedAssetModel.status.in_(
                        (AssetStatus.ACTIVE.value, AssetStatus.FULLY_DEPRECIATED.value)
                    ),
                    FixedAssetModel.depreciation_method == DepreciationMethod.STRAIGHT_LINE.value,
                    FixedAssetModel.depreciation_start_date <= as_of_date,
                )
                .order_by(FixedAssetModel.asset_tag)
            ).scalars()
        )

    @staticmethod
    def _charged_in_month(asset: FixedAssetModel, as_of_date: date) -> bool:
        return any(
            (line.batch_date.year, line.batch_date.month) == (as_of_date.year, as_of_date.month)
            for line in asset.depreciation_lines
        )

    def _mark_fully_depreciated(self, asset: FixedAssetModel, actor_id: UUID) -> None:
        if asset.status != AssetStatus.FULLY_DEPRECIATED.value:
            asset.status = AssetStatus.FULLY_DEPRECIATED.value
            asset.updated_by_id = actor_id

    def get_asset(self, asset_id: UUID) -> FixedAssetModel:
        asset = self.session.get(FixedAssetModel, asset_id)
        if asset is None or asset.organization_id != self.organization_id:
            raise DocumentNotFoundError("fixed_asset", str(asset_id))
        return asset

    def _find(self, asset_tag: str) -> FixedAssetModel | None:
        return self.session.execute(
            select(FixedAssetModel).where(
                FixedAssetModel.organization_id == self.organization_id,
                FixedAssetModel.asset_tag == asset_tag,
            )
        ).scalar_one_or_none()

    def list_assets(self) -> list[FixedAssetModel]:
        return list(
            self.session.execute(
                select(FixedAssetModel)
                .where(FixedAssetModel.organization_id == self.organization_id)
                .order_by(FixedAssetModel.asset_tag)
            ).scalars()
        )
