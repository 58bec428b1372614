from sqlalchemy import Column, Integer, String, DateTime, Index, UniqueConstraint, func
from core.db import Base

class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        UniqueConstraint("city", "country", name="uq_locations_city_country"),
        Index("ix_locations_country_city", "country", "city"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id = Column(Integer, primary_key=True, index=True)
    city = Column(String, nullable=False)  # no case/whitespace folding
    country = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
