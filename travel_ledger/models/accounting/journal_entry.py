"""Journal Entry model."""

from datetime import datetime, date
from decimal import Decimal
from uuid import uuid4, UUID
from sqlalchemy import String, Date, DateTime, ForeignKey, CheckConstraint, Index, Uuid
from sqlalchemy.orm import mapped_column, Mapped, relationship

from travel_ledger.models.base import Base, TimestampMixin, enum_column, money_column
from travel_ledger.domain.accounting.enums import (
    JournalStatus,
    SourceModule,
    TransactionType,
)


class JournalEntry(TimestampMixin, Base):
    """Paired debit/credit journal entry.

    One amount moves from the credit account to the debit account. Entries are
    never deleted: a superseded entry is linked to the REVERSAL entry that
    compensates it.
    """

    __tablename__ = "journal_entries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    entry_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    debit_account_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("chart_of_accounts.id"),
        nullable=False
    )
    credit_account_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("chart_of_accounts.id"),
        nullable=False
    )
    amount: Mapped[Decimal] = money_column()

    transaction_type: Mapped[TransactionType] = mapped_column(
        enum_column(TransactionType),
        nullable=False
    )
    source_module: Mapped[SourceModule] = mapped_column(enum_column(SourceModule), nullable=False)
    source_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    status: Mapped[JournalStatus] = mapped_column(
        enum_column(JournalStatus),
        default=JournalStatus.DRAFT,
        nullable=False
    )
    posted_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Compensation links
    reverses_entry_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("journal_entries.id"),
        nullable=True
    )
    reversed_by_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("journal_entries.id"),
        nullable=True
    )

    created_by: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)

    debit_account: Mapped["ChartOfAccount"] = relationship(
        "ChartOfAccount", foreign_keys=[debit_account_id]
    )
    credit_account: Mapped["ChartOfAccount"] = relationship(
        "ChartOfAccount", foreign_keys=[credit_account_id]
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="check_amount_non_negative"),
        Index("idx_journal_entries_source", "source_id", "transaction_type"),
    )

    @property
    def is_active(self) -> bool:
        """Posted, not compensated, and not itself a compensation."""
        return (
            self.status == JournalStatus.POSTED
            and self.reversed_by_id is None
            and self.transaction_type != TransactionType.REVERSAL
        )
