from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, UniqueConstraint, func
from sqlalchemy.orm import relationship
from core.db import Base
from models.enums import BodyType, Segment

class VehicleModel(Base):
    __tablename__ = "vehicle_models"
    __table_args__ = (
        UniqueConstraint("manufacturer_id", "name", name="uq_vehicle_models_manufacturer_name"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    manufacturer_id = Column(Integer, ForeignKey("manufacturers.id", ondelete="RESTRICT"), nullable=False, index=True)
    name = Column(String, nullable=False)
    body_type = Column(Enum(BodyType, name="body_type"), nullable=False)
    segment = Column(Enum(Segment, name="segment"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    manufacturer = relationship("Manufacturer", back_populates="models")
    variants = relationship("VehicleVariant", back_populates="model")
