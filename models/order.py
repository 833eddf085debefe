"""
Order Model

One row per delivery order. After creation only `status`, `driver_id` and
`updated_at` change; the cost is fixed at placement time.

Field naming conventions:
- Price fields: Numeric(12, 2) - 2 decimal places
- All datetime fields: TIMESTAMP with timezone
"""

from sqlalchemy import JSON, Column, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import relationship

from database import DBBaseClass, DBBase


class Order(DBBase, DBBaseClass):

    __tablename__ = "order"

    # ============================================
    # OWNERSHIP
    # ============================================

    service_id = Column(String(36), ForeignKey("service.id"), nullable=False, index=True)
    mitra_id = Column(String(36), nullable=False, index=True)
    driver_id = Column(String(36), ForeignKey("driver.id"), nullable=True, index=True)

    # ============================================
    # STATE
    # ============================================

    status = Column(String(50), nullable=False, default="PENDING")

    # ============================================
    # PARTIES
    # ============================================

    orderer_identifier = Column(String(255), nullable=False)
    receiver_wa_number = Column(String(20), nullable=True)

    # ============================================
    # DETAILS & PRICING
    # ============================================

    details = Column(JSON, nullable=False, default=dict)
    estimated_cost = Column(Numeric(12, 2), nullable=False, default=0)
    cost_breakdown = Column(JSON, nullable=False, default=dict)
    advance_payment_amount = Column(Numeric(12, 2), nullable=True)
    trust_level = Column(String(20), nullable=True)

    events = relationship(
        "OrderEvent",
        back_populates="order",
        order_by="OrderEvent.timestamp",
        lazy="selectin",
    )

    __table_args__ = (
        Index("ix_order_mitra_status", "mitra_id", "status"),
        Index("ix_order_driver_status", "driver_id", "status"),
    )

    @classmethod
    def from_model(cls, order):
        return cls(
            id=order.id,
            service_id=order.service_id,
            mitra_id=order.mitra_id,
            driver_id=order.driver_id,
            status=order.status.value,
            orderer_identifier=order.orderer_identifier,
            receiver_wa_number=order.receiver_wa_number,
            details=order.details,
            estimated_cost=order.estimated_cost,
            cost_breakdown=order.cost_breakdown,
            advance_payment_amount=order.advance_payment_amount,
            trust_level=order.trust_level,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

    def to_model(self):
        from modules.orders.order_schema import OrderModel

        return OrderModel(
            id=self.id,
            service_id=self.service_id,
            mitra_id=self.mitra_id,
            driver_id=self.driver_id,
            status=self.status,
            orderer_identifier=self.orderer_identifier,
            receiver_wa_number=self.receiver_wa_number,
            details=self.details or {},
            estimated_cost=self.estimated_cost or 0,
            cost_breakdown=self.cost_breakdown or {},
            advance_payment_amount=(
                float(self.advance_payment_amount)
                if self.advance_payment_amount is not None
                else None
            ),
            trust_level=self.trust_level,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def __repr__(self):
        return f"<Order(id={self.id}, status={self.status}, driver_id={self.driver_id})>"
