import enum


class BodyType(str, enum.Enum):
    COMPACT_SUV = "COMPACT_SUV"
    COUPE = "COUPE"
    CROSSOVER = "CROSSOVER"
    HATCHBACK = "HATCHBACK"
    SEDAN = "SEDAN"
    SUV = "SUV"


class Segment(str, enum.Enum):
    COMPACT = "COMPACT"
    LUXURY = "LUXURY"
    MID_SIZE = "MID_SIZE"
    PREMIUM = "PREMIUM"


class ChargingType(str, enum.Enum):
    AC = "AC"
    DC = "DC"
