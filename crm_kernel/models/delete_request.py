"""
Module: crm_kernel.models.delete_request
Responsibility: ORM persistence for customer delete requests raised by sales
    users and reviewed by admins.
Architecture position: Kernel > Models.

Invariants enforced:
    - request_status is one of the DeleteRequestStatus values.
    - customer_name / customer_phone are snapshots taken at creation so the
      request stays readable after the customer is soft-deleted.
    - Optimistic concurrency via ``version`` (version_id_col).
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from crm_kernel.db.base import Base, UUIDString
from crm_kernel.domain.dtos import DeleteRequestInfo
from crm_kernel.domain.states import DeleteRequestStatus


class CustomerDeleteRequest(Base):
    """A request to remove a customer, pending admin review."""

    __tablename__ = "customer_delete_requests"

    __table_args__ = (
        CheckConstraint(
            "request_status IN ('pending', 'approved', 'rejected')",
            name="ck_customer_delete_requests_status",
        ),
        Index(
            "ix_customer_delete_requests_customer_status",
            "customer_id", "request_status",
        ),
    )

    customer_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("customers.id"), nullable=False,
    )
    requested_by: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    customer_name: Mapped[str] = mapped_column(String(200), nullable=False)
    customer_phone: Mapped[str] = mapped_column(String(32), nullable=False)
    request_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeleteRequestStatus.PENDING.value,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    status_changed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<CustomerDeleteRequest {self.id} customer={self.customer_id} "
            f"{self.request_status}>"
        )

    def to_dto(self) -> DeleteRequestInfo:
        """Convert ORM model to frozen domain DTO."""
        return DeleteRequestInfo(
            id=self.id,
            customer_id=self.customer_id,
            customer_name=self.customer_name,
            customer_phone=self.customer_phone,
            requested_by=self.requested_by,
            reason=self.reason,
            status=DeleteRequestStatus(self.request_status),
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            rejection_reason=self.rejection_reason,
            created_at=self.created_at,
            version=self.version,
        )
