from sqlalchemy import Column, Integer, Numeric, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from core.db import Base
from models.enums import ChargingType

class VehicleVariant(Base):
    __tablename__ = "vehicle_variants"
    # price_eur is mutable and not part of the natural key
    __table_args__ = (
        UniqueConstraint(
            "model_id", "battery_kwh", "range_km", "charging_type",
            name="uq_vehicle_variants_model_spec",
        ),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    model_id = Column(Integer, ForeignKey("vehicle_models.id", ondelete="RESTRICT"), nullable=False, index=True)
    battery_kwh = Column(Integer, nullable=False)
    range_km = Column(Integer, nullable=False)
    charging_type = Column(Enum(ChargingType, name="charging_type"), nullable=False)
    price_eur = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    model = relationship("VehicleModel", back_populates="variants")
    trips = relationship("Trip", back_populates="vehicle_variant")
