from sqlalchemy import Boolean, Column, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from database import DBBaseClass, DBBase


class Driver(DBBase, DBBaseClass):

    __tablename__ = "driver"

    mitra_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    service_links = relationship(
        "DriverService", back_populates="driver", cascade="all, delete-orphan"
    )

    @property
    def eligible_service_ids(self):
        return [link.service_id for link in self.service_links if not link.is_deleted]

    def to_model(self):
        from modules.orders.order_schema import DriverModel

        return DriverModel(
            id=self.id,
            mitra_id=self.mitra_id,
            name=self.name,
            phone=self.phone,
            is_active=self.is_active,
        )

    def __repr__(self):
        return f"<Driver(id={self.id}, mitra_id={self.mitra_id}, active={self.is_active})>"


class DriverService(DBBase, DBBaseClass):
    """Eligibility: the driver is qualified to run orders for the service"""

    __tablename__ = "driver_service"

    driver_id = Column(
        String(36), ForeignKey("driver.id", ondelete="CASCADE"), nullable=False, index=True
    )
    service_id = Column(
        String(36), ForeignKey("service.id", ondelete="CASCADE"), nullable=False, index=True
    )

    driver = relationship("Driver", back_populates="service_links")

    __table_args__ = (
        UniqueConstraint("driver_id", "service_id", name="uq_driver_service"),
    )
