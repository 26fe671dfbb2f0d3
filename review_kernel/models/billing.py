"""
Module: review_kernel.models.billing
Responsibility: ORM mapping of the billing records this kernel reads:
    customers, time entries and weekly report periods.

Architecture position: Kernel > Models.  May import from db/ only.

These tables are owned by the surrounding billing system.  The kernel
reads all of them and writes exactly one column: ``time_entries.description``,
through DescriptionReconciler on an explicit clearance.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from review_kernel.db.base import Base
from review_kernel.domain.dtos import (
    CustomerInfo,
    ReportPeriodInfo,
    ReportPeriodStatus,
    TimeEntryInfo,
)


class CustomerModel(Base):
    __tablename__ = "customers"

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(64), nullable=True, unique=True)

    def to_dto(self) -> CustomerInfo:
        return CustomerInfo(
            id=self.id,
            display_name=self.display_name,
            external_id=self.external_id,
        )


class TimeEntryModel(Base):
    """A logged block of labor.

    ``approval_status``, ``is_locked`` and ``billable_status`` belong to the
    billing system; the kernel never writes them.
    """

    __tablename__ = "time_entries"

    __table_args__ = (
        Index("ix_time_entries_customer_date", "customer_id", "txn_date"),
        CheckConstraint("hours >= 0 AND minutes >= 0", name="ck_time_entries_duration"),
    )

    txn_date: Mapped[date] = mapped_column(nullable=False)
    employee_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    cost_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    hours: Mapped[int] = mapped_column(nullable=False, default=0)
    minutes: Mapped[int] = mapped_column(nullable=False, default=0)
    billable_status: Mapped[str] = mapped_column(String(30), nullable=False, default="Billable")
    approval_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    is_locked: Mapped[bool] = mapped_column(nullable=False, default=False)

    def to_dto(self) -> TimeEntryInfo:
        return TimeEntryInfo(
            id=self.id,
            txn_date=self.txn_date,
            employee_name=self.employee_name,
            customer_id=self.customer_id,
            cost_code=self.cost_code,
            description=self.description,
            hours=self.hours,
            minutes=self.minutes,
            billable_status=self.billable_status,
        )


class ReportPeriodModel(Base):
    """One weekly time report per (customer, week).

    ``status`` reaches accepted/disputed only through the review write path
    or the external auto-accept sweep.
    """

    __tablename__ = "report_periods"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'sent', 'supplemental_sent', 'accepted', "
            "'disputed', 'no_time')",
            name="ck_report_periods_status",
        ),
        CheckConstraint("week_start <= week_end", name="ck_report_periods_week"),
        Index("ix_report_periods_customer_week", "customer_id", "week_start", unique=True),
    )

    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    week_start: Mapped[date] = mapped_column(nullable=False)
    week_end: Mapped[date] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    total_hours: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    entry_count: Mapped[int] = mapped_column(nullable=False, default=0)
    report_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self) -> ReportPeriodInfo:
        return ReportPeriodInfo(
            id=self.id,
            customer_id=self.customer_id,
            week_start=self.week_start,
            week_end=self.week_end,
            status=ReportPeriodStatus(self.status),
            total_hours=self.total_hours,
            entry_count=self.entry_count,
            report_number=self.report_number,
            sent_at=self.sent_at,
            accepted_at=self.accepted_at,
        )
