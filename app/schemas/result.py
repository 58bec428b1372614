from pydantic import BaseModel


class EntityStatistics(BaseModel):
    manufacturers: int
    models: int
    variants: int
    locations: int
    trips: int
