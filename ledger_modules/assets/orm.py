"""
Fixed Asset ORM Models (``ledger_modules.assets.orm``).

Responsibility
--------------
``FixedAssetModel`` is the asset register; ``DepreciationLineModel`` is the
posted depreciation schedule, one line per asset per batch date, each
pointing at the system journal entry that carried it.

Invariants enforced
-------------------
* ``asset_tag`` is unique per organization and is the depreciation batch
  reference, so the journal's batch uniqueness is per asset per date.
* ``accumulated_depreciation`` never exceeds ``purchase_price -
  salvage_value``; an asset that reaches it becomes ``fully_depreciated``.
* ``(asset_id, batch_date)`` is unique on schedule lines.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ledger_kernel.db.base import OrganizationScoped, TrackedBase, UUIDString
from ledger_kernel.domain.values import to_money


class AssetStatus(str, Enum):
    ACTIVE = "active"
    FULLY_DEPRECIATED = "fully_depreciated"
    DISPOSED = "disposed"


class DepreciationMethod(str, Enum):
    STRAIGHT_LINE = "straight_line"
    NONE = "none"  # land and other non-depreciable assets


class FixedAssetModel(TrackedBase, OrganizationScoped):
    __tablename__ = "assets_fixed_assets"

    asset_tag: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    purchase_price: Mapped[Decimal] = mapped_column(nullable=False)
    salvage_value: Mapped[Decimal] = mapped_column(default=Decimal("0"), nullable=False)
    useful_life_months: Mapped[int] = mapped_column(Integer, nullable=False)
    depreciation_method: Mapped[DepreciationMethod] = mapped_column(String(20), nullable=False)
    depreciation_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    accumulated_depreciation: Mapped[Decimal] = mapped_column(
        default=Decimal("0"), nullable=False
    )
    status: Mapped[AssetStatus] = mapped_column(String(20), nullable=False)
    disposal_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    disposal_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    journal_entry_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=True
    )

    depreciation_lines: Mapped[list["DepreciationLineModel"]] = relationship(
        back_populates="asset",
        order_by="DepreciationLineModel.batch_date",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("organization_id", "asset_tag", name="uq_assets_asset_tag"),
        Index("idx_assets_org_status", "organization_id", "status"),
    )

    @property
    def depreciable_amount(self) -> Decimal:
        return to_money(self.purchase_price - self.salvage_value)

    @property
    def remaining_depreciable(self) -> Decimal:
        return to_money(self.depreciable_amount - self.accumulated_depreciation)

    @property
    def net_book_value(self) -> Decimal:
        return to_money(self.purchase_price - self.accumulated_depreciation)

    def __repr__(self) -> str:
        return f"<FixedAssetModel {self.asset_tag} {self.status} nbv={self.net_book_value}>"


class DepreciationLineModel(TrackedBase, OrganizationScoped):
    __tablename__ = "assets_depreciation_lines"

    asset_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("assets_fixed_assets.id"), nullable=False, index=True
    )
    batch_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    accumulated_after: Mapped[Decimal] = mapped_column(nullable=False)
    journal_entry_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("journal_entries.id"), nullable=False
    )

    asset: Mapped[FixedAssetModel] = relationship(back_populates="depreciation_lines")

    __table_args__ = (
        UniqueConstraint("asset_id", "batch_date", name="uq_assets_depreciation_asset_date"),
    )
