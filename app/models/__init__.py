# Metadata.create_all will detect models here
from .enums import BodyType, Segment, ChargingType
from .manufacturer import Manufacturer
from .vehicle_model import VehicleModel
from .vehicle_variant import VehicleVariant
from .location import Location
from .trip import Trip
