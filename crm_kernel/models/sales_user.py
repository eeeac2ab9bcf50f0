"""
Module: crm_kernel.models.sales_user
Responsibility: ORM persistence for sales user accounts.  One row carries two
    independently governed state columns: ``approval_status`` (USER_APPROVAL
    kind) and ``access_status`` (USER_ACCESS kind).
Architecture position: Kernel > Models.

Invariants enforced:
    - Both state columns are constrained to their enum values.
    - Optimistic concurrency via ``version`` (version_id_col).
    - phone is unique: it is the sign-in identity.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crm_kernel.db.base import Base
from crm_kernel.domain.dtos import SalesUserInfo
from crm_kernel.domain.states import AccessStatus, ApprovalStatus, SalesRole


class SalesUser(Base):
    """A sales user account awaiting or holding admin approval."""

    __tablename__ = "sales_users"

    __table_args__ = (
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected')",
            name="ck_sales_users_approval_status",
        ),
        CheckConstraint(
            "access_status IN ('enabled', 'disabled')",
            name="ck_sales_users_access_status",
        ),
        CheckConstraint(
            "role IN ('admin', 'sales')",
            name="ck_sales_users_role",
        ),
        Index("ix_sales_users_approval_status", "approval_status"),
    )

    phone: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SalesRole.SALES.value,
    )

    approval_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ApprovalStatus.PENDING.value,
    )
    approved_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    access_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccessStatus.ENABLED.value,
    )
    disabled_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    disabled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    disabled_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False)
    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<SalesUser {self.id} {self.phone} "
            f"{self.approval_status}/{self.access_status}>"
        )

    def to_dto(self) -> SalesUserInfo:
        """Convert ORM model to frozen domain DTO."""
        return SalesUserInfo(
            id=self.id,
            phone=self.phone,
            display_name=self.display_name,
            role=SalesRole(self.role),
            approval_status=ApprovalStatus(self.approval_status),
            approved_by=self.approved_by,
            approved_at=self.approved_at,
            rejection_reason=self.rejection_reason,
            access_status=AccessStatus(self.access_status),
            disabled_by=self.disabled_by,
            disabled_at=self.disabled_at,
            disabled_reason=self.disabled_reason,
            created_at=self.created_at,
            status_changed_at=self.status_changed_at,
            version=self.version,
        )
