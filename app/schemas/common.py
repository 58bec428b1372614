from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated

from pydantic import AliasGenerator, BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel


def format_utc(value: datetime) -> str:
    """ISO-8601 with millisecond precision and a Z suffix: 2025-02-10T00:00:00.000Z"""
    if value.tzinfo is None:
        # SQLite hands back naive values; everything is stored in UTC
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_decimal(value: Decimal) -> str:
    """Plain notation without exponent or trailing zeros: 70157.00 -> 70157, 65000.50 -> 65000.5"""
    return format(value.normalize(), "f")


UtcDateTime = Annotated[datetime, PlainSerializer(format_utc, return_type=str)]
Money = Annotated[Decimal, PlainSerializer(format_decimal, return_type=str)]


class CamelModel(BaseModel):
    """Read model built from ORM rows; field names stay snake_case, JSON keys are camelCase."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )
