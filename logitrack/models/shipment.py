import uuid

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from logitrack.db.base import Base

SHIPMENT_PENDING = "pending"
SHIPMENT_STATUSES = ("pending", "in_transit", "delivered", "cancelled")


class Shipment(Base):
    """
    A tracked consignment owned by exactly one client.
    `tracking_number` is the external identity used by TMS reconciliation.
    """
    __tablename__ = "shipments"

    __table_args__ = (
        UniqueConstraint("tracking_number", name="uq_shipments_tracking_number"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    client_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tracking_number: Mapped[str] = mapped_column(String(100), nullable=False)
    origin: Mapped[str] = mapped_column(String(255), nullable=False)
    destination: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SHIPMENT_PENDING)
    estimated_delivery: Mapped[object | None] = mapped_column(Date, nullable=True)
    actual_delivery: Mapped[object | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[object] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    timeline = relationship(
        "ShipmentTimeline",
        back_populates="shipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ShipmentTimeline.timestamp",
    )
    documents = relationship(
        "Document",
        back_populates="shipment",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Shipment(tracking_number='{self.tracking_number}', status='{self.status}')>"


class ShipmentTimeline(Base):
    """Append-mostly event history. Timestamps are stored as naive UTC."""
    __tablename__ = "shipment_timeline"

    __table_args__ = (
        Index("ix_shipment_timeline_event", "shipment_id", "status", "timestamp"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    shipment_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[str] = mapped_column(String(100), nullable=False)
    timestamp: Mapped[object] = mapped_column(DateTime, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    shipment: Mapped["Shipment"] = relationship("Shipment", back_populates="timeline")
