"""Value kinds and converters from Redfish properties to gauge values."""

from enum import Enum
from typing import Any

from .errors import ConversionFailure, UnknownConverter


HEALTH_VALUES = {
    "OK": 0,
    "Warning": 1,
    "Critical": 2,
}

# Order matters: the position is the exported value.
STATE_VALUES = [
    "Enabled",
    "Disabled",
    "Absent",
    "Deferring",
    "InTest",
    "Quiesced",
    "StandbyOffline",
    "StandbySpare",
    "Starting",
    "UnavailableOffline",
    "Updating",
]


class ValueKind(Enum):
    """Converter selected by the ``Type`` field of a property rule."""

    NUMBER = "number"
    HEALTH = "health"
    STATE = "state"

    @classmethod
    def from_type_name(cls, type_name: str) -> "ValueKind":
        """
        Resolve a rule ``Type`` string.

        Args:
            type_name: Type name as written in the rule document

        Returns:
            ValueKind: Matching value kind

        Raises:
            UnknownConverter: If no converter exists for the name
        """
        try:
            return cls(type_name)
        except ValueError:
            raise UnknownConverter(f"unknown metrics type: {type_name}") from None

    def convert(self, value: Any) -> float:
        """
        Convert a raw JSON value into a gauge value.

        Args:
            value: Decoded JSON value

        Returns:
            float: Gauge value

        Raises:
            ConversionFailure: If the value is not valid for this kind
        """
        return {
            ValueKind.NUMBER: _convert_number,
            ValueKind.HEALTH: _convert_health,
            ValueKind.STATE: _convert_state,
        }[self](value)


def _convert_number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConversionFailure(f"value was not a number: {value!r}")
    return float(value)


def _convert_health(value: Any) -> float:
    if value is None:
        return -1.0
    if not isinstance(value, str):
        raise ConversionFailure(f"health value was not string: {value!r}")
    if value not in HEALTH_VALUES:
        raise ConversionFailure(f"unknown health value: {value}")
    return float(HEALTH_VALUES[value])


def _convert_state(value: Any) -> float:
    if not isinstance(value, str):
        raise ConversionFailure(f"state value was not string: {value!r}")
    try:
        return float(STATE_VALUES.index(value))
    except ValueError:
        raise ConversionFailure(f"unknown state value: {value}") from None
