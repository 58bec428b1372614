from sqlalchemy import Column, Integer, String, DateTime, func
from sqlalchemy.orm import relationship
from core.db import Base

class Manufacturer(Base):
    __tablename__ = "manufacturers"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)  # exact, case-sensitive
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    models = relationship("VehicleModel", back_populates="manufacturer")
