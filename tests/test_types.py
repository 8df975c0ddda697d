"""Tests for the device model rules and the tagged classification result."""

from ipaddress import ip_address

import pytest

from pys7_scanner.types import (
    PLACEHOLDER_MARKER,
    Classification,
    ClassificationResult,
    DeviceType,
    DiscoveredDevice,
    PlcDetails,
)

ADDR = ip_address("10.0.0.1")


def test_hmi_cannot_carry_details() -> None:
    with pytest.raises(ValueError, match="HMI"):
        DiscoveredDevice(ADDR, DeviceType.HMI, PlcDetails(module="x"))


def test_placeholder_fields() -> None:
    details = PlcDetails.placeholder()
    assert details.to_dict() == {
        "module": PLACEHOLDER_MARKER,
        "basic_hardware": None,
        "version": None,
        "system_name": PLACEHOLDER_MARKER,
        "module_type": None,
        "serial_number": PLACEHOLDER_MARKER,
        "plant_identification": None,
        "copyright": None,
    }
    assert details.is_placeholder
    assert not PlcDetails(module=PLACEHOLDER_MARKER).is_placeholder


def test_devices_are_immutable() -> None:
    device = DiscoveredDevice(ADDR, DeviceType.PLC)
    with pytest.raises(AttributeError):
        device.device_type = DeviceType.HMI  # type: ignore[misc]


@pytest.mark.parametrize(
    ("result", "expected"),
    [
        (ClassificationResult(ADDR, Classification.NOT_FOUND), None),
        (
            ClassificationResult(ADDR, Classification.HMI, hmi_port=2308),
            DiscoveredDevice(ADDR, DeviceType.HMI),
        ),
        (
            ClassificationResult(ADDR, Classification.PLC, details=PlcDetails(module="CPU")),
            DiscoveredDevice(ADDR, DeviceType.PLC, PlcDetails(module="CPU")),
        ),
        (
            ClassificationResult(ADDR, Classification.PLC_PLACEHOLDER, details=PlcDetails.placeholder()),
            DiscoveredDevice(ADDR, DeviceType.PLC, PlcDetails.placeholder()),
        ),
    ],
)
def test_classification_to_device(result: ClassificationResult, expected: DiscoveredDevice | None) -> None:
    assert result.to_device() == expected


def test_device_to_dict() -> None:
    device = DiscoveredDevice(ip_address("fe80::1"), DeviceType.HMI)
    assert device.to_dict() == {"ip_address": "fe80::1", "type": "HMI", "details": None}
