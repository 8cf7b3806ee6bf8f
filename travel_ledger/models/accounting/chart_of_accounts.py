"""Chart of Accounts model."""

from decimal import Decimal
from uuid import uuid4, UUID
from sqlalchemy import String, Boolean, ForeignKey, Index, Uuid
from sqlalchemy.orm import mapped_column, Mapped, relationship

from travel_ledger.models.base import Base, TimestampMixin, enum_column, money_column
from travel_ledger.domain.accounting.enums import AccountType


class ChartOfAccount(TimestampMixin, Base):
    """Chart of Accounts model.

    Balances are maintained by journal posting only: leaf accounts receive
    posting deltas, parent accounts hold the sum of their direct children.
    """

    __tablename__ = "chart_of_accounts"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    account_type: Mapped[AccountType] = mapped_column(enum_column(AccountType), nullable=False)
    parent_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("chart_of_accounts.id"),
        nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    debit_balance: Mapped[Decimal] = money_column()
    credit_balance: Mapped[Decimal] = money_column()
    balance: Mapped[Decimal] = money_column()

    parent: Mapped["ChartOfAccount | None"] = relationship(
        "ChartOfAccount",
        remote_side="ChartOfAccount.id",
        back_populates="children",
    )
    children: Mapped[list["ChartOfAccount"]] = relationship(
        "ChartOfAccount",
        back_populates="parent",
    )

    __table_args__ = (
        Index("idx_chart_of_accounts_parent", "parent_id"),
    )

    def __repr__(self) -> str:
        return f"<ChartOfAccount {self.code} {self.account_type.value} balance={self.balance}>"
