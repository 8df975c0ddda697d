"""Decode SZL (System-List-Data) identity telegrams into PLC identity fields."""

from dataclasses import dataclass

from .types import PlcDetails

S7_PROTOCOL_ID = 0x32

# Module identification (SZL-ID 0x0011)
MODULE_MIN_LENGTH = 125
_MODULE_OFFSET = 43
_BASIC_HARDWARE_OFFSET = 71
_VERSION_OFFSET = 122

# Component identification (SZL-ID 0x001C)
COMPONENT_MIN_LENGTH = 40
_COMPONENT_SZL_MARKER_OFFSET = 30
_COMPONENT_SZL_MARKER = 0x1C
_SYSTEM_NAME_OFFSET = 39
_MODULE_TYPE_OFFSET = 73
_PLANT_IDENTIFICATION_OFFSET = 107
_COPYRIGHT_OFFSET = 141
_SERIAL_NUMBER_OFFSET = 175


@dataclass(frozen=True)
class ModuleIdentity:
    """Fields of the module identification telegram; None when the telegram was rejected."""

    module: str | None = None
    basic_hardware: str | None = None
    version: str | None = None


@dataclass(frozen=True)
class ComponentIdentity:
    """Fields of the component identification telegram; None when the telegram was rejected."""

    system_name: str | None = None
    module_type: str | None = None
    plant_identification: str | None = None
    copyright: str | None = None
    serial_number: str | None = None


def _is_s7_telegram(data: bytes | None, min_length: int) -> bool:
    return data is not None and len(data) >= min_length and data[7] == S7_PROTOCOL_ID


def parse_null_terminated_string(data: bytes, offset: int) -> str:
    """
    Read an ASCII string starting at ``offset`` up to the first NUL byte or the end of ``data``.

    Returns the stripped text, or "" if the offset lies outside the buffer or the
    segment is empty.
    """
    if offset < 0 or offset >= len(data):
        return ""
    end = data.find(b"\x00", offset)
    if end == -1:
        end = len(data)
    if end - offset <= 0:
        return ""
    return data[offset:end].decode("ascii", errors="replace").strip()


def parse_first_response(data: bytes | None) -> ModuleIdentity:
    """Parse the module identification telegram (module, basic hardware, firmware version)."""
    if not _is_s7_telegram(data, MODULE_MIN_LENGTH):
        return ModuleIdentity()
    major, minor, patch = data[_VERSION_OFFSET : _VERSION_OFFSET + 3]
    return ModuleIdentity(
        module=parse_null_terminated_string(data, _MODULE_OFFSET),
        basic_hardware=parse_null_terminated_string(data, _BASIC_HARDWARE_OFFSET),
        version=f"{major}.{minor}.{patch}",
    )


def parse_second_response(data: bytes | None) -> ComponentIdentity:
    """
    Parse the component identification telegram.

    Some firmware inserts four extra header bytes; byte 30 carrying the SZL-ID
    low byte (0x1C) marks the short layout. Only 40 bytes are required, so
    later fields of a short telegram come back as "".
    """
    if not _is_s7_telegram(data, COMPONENT_MIN_LENGTH):
        return ComponentIdentity()
    shift = 0 if data[_COMPONENT_SZL_MARKER_OFFSET] == _COMPONENT_SZL_MARKER else 4
    return ComponentIdentity(
        system_name=parse_null_terminated_string(data, _SYSTEM_NAME_OFFSET + shift),
        module_type=parse_null_terminated_string(data, _MODULE_TYPE_OFFSET + shift),
        plant_identification=parse_null_terminated_string(data, _PLANT_IDENTIFICATION_OFFSET + shift),
        copyright=parse_null_terminated_string(data, _COPYRIGHT_OFFSET + shift),
        serial_number=parse_null_terminated_string(data, _SERIAL_NUMBER_OFFSET + shift),
    )


def build_plc_details(first: ModuleIdentity, second: ComponentIdentity) -> PlcDetails | None:
    """Merge both telegrams; None if module, serial number and system name are all empty."""
    if not first.module and not second.serial_number and not second.system_name:
        return None
    return PlcDetails(
        module=first.module,
        basic_hardware=first.basic_hardware,
        version=first.version,
        system_name=second.system_name,
        module_type=second.module_type,
        serial_number=second.serial_number,
        plant_identification=second.plant_identification,
        copyright=second.copyright,
    )
