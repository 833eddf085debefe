"""
Service Model

A delivery service offered by a Mitra. `config` holds the raw configuration
JSON as authored in the admin app; it is validated into a ServiceConfig when
the service is loaded for pricing.
"""

from sqlalchemy import JSON, Boolean, Column, String

from database import DBBaseClass, DBBase


class Service(DBBase, DBBaseClass):

    __tablename__ = "service"

    mitra_id = Column(String(36), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    config = Column(JSON, nullable=False, default=dict)

    def to_model(self):
        from modules.orders.order_schema import ServiceModel

        return ServiceModel(
            id=self.id, mitra_id=self.mitra_id, name=self.name, is_active=self.is_active
        )

    def __repr__(self):
        return f"<Service(id={self.id}, mitra_id={self.mitra_id}, name={self.name})>"
