"""
Order Event Model

Append-only history of an order. Rows are inserted by OrderService and never
updated or deleted.
"""

from sqlalchemy import JSON, TIMESTAMP, Column, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from database import DBBaseClass, DBBase


class OrderEvent(DBBase, DBBaseClass):

    __tablename__ = "order_event"

    order_id = Column(
        String(36), ForeignKey("order.id", ondelete="CASCADE"), nullable=False, index=True
    )
    timestamp = Column(TIMESTAMP(timezone=True), nullable=False)
    event_type = Column(String(50), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    actor_type = Column(String(20), nullable=False)
    actor_id = Column(String(255), nullable=False)

    order = relationship("Order", back_populates="events")

    __table_args__ = (Index("ix_order_event_order_timestamp", "order_id", "timestamp"),)

    @classmethod
    def from_model(cls, event):
        return cls(
            id=event.id,
            order_id=event.order_id,
            timestamp=event.timestamp,
            event_type=event.event_type.value,
            data=event.data,
            actor_type=event.actor_type.value,
            actor_id=event.actor_id,
        )

    def to_model(self):
        from modules.orders.order_schema import OrderEventModel

        return OrderEventModel(
            id=self.id,
            order_id=self.order_id,
            timestamp=self.timestamp,
            event_type=self.event_type,
            data=self.data or {},
            actor_type=self.actor_type,
            actor_id=self.actor_id,
        )
