"""
Module: crm_kernel.models.customer
Responsibility: ORM persistence for customers and their pipeline stage.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ value types only.

Invariants enforced:
    - current_status is one of the CustomerStatus values (check constraint).
    - Optimistic concurrency: ``version`` is the mapper's version_id_col, so
      every UPDATE carries ``WHERE version = :loaded``.
    - Soft delete: rows are never removed; ``deleted_at`` hides them from
      workflow loads.

Audit relevance:
    Status changes are made only by CustomerLifecycleService, each paired
    with an audit record.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from crm_kernel.db.base import Base
from crm_kernel.domain.dtos import CustomerInfo
from crm_kernel.domain.states import CustomerStatus


class Customer(Base):
    """
    A tracked customer.

    Contract:
        Created in NEW.  ``certified_at`` is stamped on every entry into
        CERTIFIED, so it holds the most recent conversion time; leaving
        CERTIFIED does not clear it.
    """

    __tablename__ = "customers"

    __table_args__ = (
        CheckConstraint(
            "current_status IN ('new', 'notified', 'aborted', 'submitted', 'certified')",
            name="ck_customers_valid_status",
        ),
        Index("ix_customers_status", "current_status"),
        Index("ix_customers_sales_phone", "sales_phone"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), nullable=False)
    sales_phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    current_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=CustomerStatus.NEW.value,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    certified_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @property
    def status(self) -> CustomerStatus:
        return CustomerStatus(self.current_status)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Customer {self.id} {self.current_status}>"

    def to_dto(self) -> CustomerInfo:
        """Convert ORM model to frozen domain DTO."""
        return CustomerInfo(
            id=self.id,
            name=self.name,
            phone=self.phone,
            sales_phone=self.sales_phone,
            status=self.status,
            created_at=self.created_at,
            status_changed_at=self.status_changed_at,
            certified_at=self.certified_at,
            version=self.version,
        )
