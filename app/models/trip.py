from sqlalchemy import Column, Integer, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from core.db import Base

class Trip(Base):
    __tablename__ = "trips"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    trip_date = Column(DateTime(timezone=True), nullable=False, index=True)  # always UTC midnight
    distance_km = Column(Integer, nullable=False)
    co2_g_per_km = Column(Integer, nullable=False)
    grid_intensity_gco2_per_kwh = Column(Integer, nullable=False)
    vehicle_variant_id = Column(Integer, ForeignKey("vehicle_variants.id", ondelete="RESTRICT"), nullable=False, index=True)
    origin_id = Column(Integer, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    destination_id = Column(Integer, ForeignKey("locations.id", ondelete="RESTRICT"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    vehicle_variant = relationship("VehicleVariant", back_populates="trips")
    origin = relationship("Location", foreign_keys=[origin_id])
    destination = relationship("Location", foreign_keys=[destination_id])
