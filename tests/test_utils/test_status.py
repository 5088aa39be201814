"""Tests for value kinds and converters."""

import pytest

from redfish_monitor.utils.errors import ConversionFailure, UnknownConverter
from redfish_monitor.utils.status import STATE_VALUES, ValueKind


class TestFromTypeName:
    @pytest.mark.parametrize("name,kind", [
        ("number", ValueKind.NUMBER),
        ("health", ValueKind.HEALTH),
        ("state", ValueKind.STATE),
    ])
    def test_known_types(self, name, kind):
        assert ValueKind.from_type_name(name) is kind

    @pytest.mark.parametrize("name", ["Number", "bool", "", "gauge"])
    def test_unknown_type(self, name):
        with pytest.raises(UnknownConverter):
            ValueKind.from_type_name(name)


class TestNumber:
    def test_float(self):
        assert ValueKind.NUMBER.convert(12.5) == 12.5

    def test_int(self):
        value = ValueKind.NUMBER.convert(3000)
        assert value == 3000.0
        assert isinstance(value, float)

    @pytest.mark.parametrize("value", ["12", None, True, [1], {"v": 1}])
    def test_non_numbers_fail(self, value):
        with pytest.raises(ConversionFailure):
            ValueKind.NUMBER.convert(value)


class TestHealth:
    @pytest.mark.parametrize("value,expected", [
        ("OK", 0),
        ("Warning", 1),
        ("Critical", 2),
        (None, -1),
    ])
    def test_mapping(self, value, expected):
        assert ValueKind.HEALTH.convert(value) == expected

    @pytest.mark.parametrize("value", ["ok", "Unknown", "", 0, ["OK"]])
    def test_other_values_fail(self, value):
        with pytest.raises(ConversionFailure):
            ValueKind.HEALTH.convert(value)


class TestState:
    def test_vocabulary_order(self):
        assert STATE_VALUES == [
            "Enabled", "Disabled", "Absent", "Deferring", "InTest", "Quiesced",
            "StandbyOffline", "StandbySpare", "Starting", "UnavailableOffline", "Updating",
        ]

    def test_every_word_maps_to_its_position(self):
        for expected, word in enumerate(STATE_VALUES):
            assert ValueKind.STATE.convert(word) == expected

    @pytest.mark.parametrize("value", ["enabled", "Offline", None, 0])
    def test_other_values_fail(self, value):
        with pytest.raises(ConversionFailure):
            ValueKind.STATE.convert(value)


def test_conversion_failure_is_value_error():
    with pytest.raises(ValueError):
        ValueKind.HEALTH.convert("Bad")
