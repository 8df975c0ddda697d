"""Core data model: device type enum, PLC identity details, discovered devices and classification results."""

from dataclasses import asdict, dataclass
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Union

Address = Union[IPv4Address, IPv6Address]

# Marker written into the identity fields of PLCs that refuse the legacy SZL queries.
PLACEHOLDER_MARKER = "Potential S7-1200/-1500"


class DeviceType(str, Enum):
    """Device classes reported by a scan."""

    PLC = "PLC"
    HMI = "HMI"


class Classification(str, Enum):
    """Terminal state of the per-address classification pipeline."""

    NOT_FOUND = "not_found"
    HMI = "hmi"
    PLC = "plc"
    PLC_PLACEHOLDER = "plc_placeholder"


@dataclass(frozen=True)
class PlcDetails:
    """Identity fields read from a PLC's module and component identification lists."""

    module: str | None = None
    basic_hardware: str | None = None
    version: str | None = None
    system_name: str | None = None
    module_type: str | None = None
    serial_number: str | None = None
    plant_identification: str | None = None
    copyright: str | None = None

    @classmethod
    def placeholder(cls) -> "PlcDetails":
        """Details for a confirmed PLC that would not answer the identity queries."""
        return cls(
            module=PLACEHOLDER_MARKER,
            system_name=PLACEHOLDER_MARKER,
            serial_number=PLACEHOLDER_MARKER,
        )

    @property
    def is_placeholder(self) -> bool:
        return self == PlcDetails.placeholder()

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)


@dataclass(frozen=True)
class DiscoveredDevice:
    """A host that answered on the S7 port, with its device type and (PLC only) details."""

    address: Address
    device_type: DeviceType
    details: PlcDetails | None = None

    def __post_init__(self) -> None:
        if self.device_type == DeviceType.HMI and self.details is not None:
            raise ValueError(f"HMI device {self.address} cannot carry PLC details")

    def to_dict(self) -> dict[str, Any]:
        return {
            "ip_address": str(self.address),
            "type": self.device_type.value,
            "details": self.details.to_dict() if self.details is not None else None,
        }


@dataclass(frozen=True)
class ClassificationResult:
    """Outcome of classify_address: the terminal state plus what was learned on the way."""

    address: Address
    classification: Classification
    details: PlcDetails | None = None
    hmi_port: int | None = None

    def to_device(self) -> DiscoveredDevice | None:
        """Return the DiscoveredDevice for this result, or None when nothing answered."""
        if self.classification == Classification.NOT_FOUND:
            return None
        if self.classification == Classification.HMI:
            return DiscoveredDevice(self.address, DeviceType.HMI)
        return DiscoveredDevice(self.address, DeviceType.PLC, self.details)
