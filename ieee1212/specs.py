"""
Key formatters for directory entries, leaves and immediate values.

The meaning of a key id depends on the specification that governs the
directory: the same id 0x14 is "logical unit number" under SBP-2 and
"dependent info" under plain CSR architecture. The governing specification is
named by the (Specifier_ID, Version) pair found in the directory or in one of
its ancestors; lookups go specification table -> IEEE 1394 bus table -> CSR
table -> per key type default.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .lines import line_prefix, printable, quadlet_text, raw_lines
from .quadlets import KeyType, decode_directory_entry

# CSR architecture key ids (IEEE 1212 Table 16)
KEY_ID_DESCRIPTOR = 0x01
KEY_ID_BUS_DEP_INFO = 0x02
KEY_ID_VENDOR = 0x03
KEY_ID_HARDWARE_VERSION = 0x04
KEY_ID_MODULE = 0x07
KEY_ID_NODE_CAPABILITIES = 0x0C
KEY_ID_EUI_64 = 0x0D
KEY_ID_UNIT = 0x11
KEY_ID_SPECIFIER_ID = 0x12
KEY_ID_VERSION = 0x13
KEY_ID_DEP_INFO = 0x14
KEY_ID_UNIT_LOCATION = 0x15
KEY_ID_MODEL = 0x17
KEY_ID_INSTANCE = 0x18
KEY_ID_KEYWORD = 0x19
KEY_ID_FEATURE = 0x1A
KEY_ID_MODIFIABLE_DESCRIPTOR = 0x1F
KEY_ID_DIRECTORY_ID = 0x20

UNSPECIFIED_ENTRY_NAME = "(unspecified)"

ImmediateFormat = Callable[[int], str]
LeafFormat = Callable[[int, List[int]], List[str]]


@dataclass(frozen=True)
class SpecIdentifier:
    specifier_id: Optional[int] = None
    version: Optional[int] = None


@dataclass(frozen=True)
class KeyFormatter:
    key_type: KeyType
    key_id: Optional[int]               # None only for the per key type defaults
    name: str
    format_content: Optional[Callable] = None


@dataclass(frozen=True)
class SpecEntry:
    name: str
    formatters: Dict[Tuple[KeyType, int], KeyFormatter]


def _table(*formatters: KeyFormatter) -> Dict[Tuple[KeyType, int], KeyFormatter]:
    return {(f.key_type, f.key_id): f for f in formatters}


def _imm(key_id: int, name: str, fmt: Optional[ImmediateFormat] = None) -> KeyFormatter:
    return KeyFormatter(KeyType.IMMEDIATE, key_id, name, fmt)


def _csr(key_id: int, name: str) -> KeyFormatter:
    return KeyFormatter(KeyType.CSR_OFFSET, key_id, name)


def _leaf(key_id: int, name: str, fmt: LeafFormat) -> KeyFormatter:
    return KeyFormatter(KeyType.LEAF, key_id, name, fmt)


def _dir(key_id: int, name: str) -> KeyFormatter:
    return KeyFormatter(KeyType.DIRECTORY, key_id, name)


# ==============================
# Leaf content
# ==============================

def format_unspecified_leaf(offset: int, quadlets: List[int]) -> List[str]:
    return raw_lines(offset, quadlets)


def format_textual_descriptor(offset: int, quadlets: List[int]) -> List[str]:
    # [width:4][character_set:12][language:16], then the text
    if len(quadlets) < 2:
        return []
    q0 = quadlets[0]
    width = q0 >> 28
    character_set = (q0 >> 16) & 0xFFF
    language = q0 & 0xFFFF
    if character_set == 0:
        lines = [line_prefix(offset, q0) + "minimal ASCII"]
    else:
        lines = [line_prefix(offset, q0) + f"width {width}, character_set {character_set}, language {language}"]
    for i, q in enumerate(quadlets[1:], start=1):
        text = f'"{quadlet_text(q)}"' if q else ""
        lines.append(line_prefix(offset + 4 * i, q) + text)
    return lines


DESCRIPTOR_TYPE_TEXTUAL = 0x00
DESCRIPTOR_TYPE_ICON = 0x01


def format_descriptor_leaf(offset: int, quadlets: List[int]) -> List[str]:
    # [descriptor_type:8][specifier_ID:24]
    if not quadlets:
        return []
    desc_type = quadlets[0] >> 24
    spec_id = quadlets[0] & 0xFFFFFF
    if desc_type == DESCRIPTOR_TYPE_TEXTUAL:
        name, fmt = "textual descriptor", format_textual_descriptor
    elif desc_type == DESCRIPTOR_TYPE_ICON:
        name, fmt = "icon descriptor", format_unspecified_leaf
    else:
        name, fmt = f"descriptor_type {desc_type:02x}, specifier_ID {spec_id:x}", format_unspecified_leaf
    return [line_prefix(offset, quadlets[0]) + name] + fmt(offset + 4, quadlets[1:])


def format_keyword_leaf(offset: int, quadlets: List[int]) -> List[str]:
    """Keywords are NUL separated strings packed back to back."""
    lines = []
    last = len(quadlets) - 1
    for i, q in enumerate(quadlets):
        text = ""
        if q:
            letters = []
            for b in q.to_bytes(4, "big"):
                if b:
                    letters.append(printable(b))
                elif i < last:
                    letters.append('" "')
                else:
                    break
            text = '"' + "".join(letters) + '"'
        lines.append(line_prefix(offset + 4 * i, q) + text)
    return lines


def format_unit_location_leaf(offset: int, quadlets: List[int]) -> List[str]:
    if len(quadlets) < 4:
        return []
    base_address = (quadlets[0] << 32) | quadlets[1]
    upper_bound = (quadlets[2] << 32) | quadlets[3]
    return [
        line_prefix(offset, quadlets[0]) + f"base_address {base_address:016x}",
        line_prefix(offset + 4, quadlets[1], False),
        line_prefix(offset + 8, quadlets[2]) + f"upper_bound {upper_bound:016x}",
        line_prefix(offset + 12, quadlets[3], False),
    ]


def format_eui64(offset: int, hi: int, lo: int) -> List[str]:
    company_id = hi >> 8
    device_id = ((hi & 0xFF) << 32) | lo
    eui64 = (hi << 32) | lo
    return [
        line_prefix(offset, hi) + f"company_id {company_id:06x}     | ",
        line_prefix(offset + 4, lo) + f"device_id {device_id:010x}  | EUI-64 {eui64:016x}",
    ]


def format_eui64_leaf(offset: int, quadlets: List[int]) -> List[str]:
    if len(quadlets) < 2:
        return []
    return format_eui64(offset, quadlets[0], quadlets[1])


def format_iidc_name_leaf(offset: int, quadlets: List[int]) -> List[str]:
    # Two reserved quadlets, then ASCII.
    lines = raw_lines(offset, quadlets[:2])
    for i in range(2, len(quadlets)):
        q = quadlets[i]
        text = f'"{quadlet_text(q)}"' if q else ""
        lines.append(line_prefix(offset + 4 * i, q) + text)
    return lines


# ==============================
# Immediate values
# ==============================

def format_unspecified_immediate(value: int) -> str:
    return "(immediate value)"


def format_node_capabilities(value: int) -> str:
    return "per IEEE 1394"


SBP_DEVICE_TYPES = [
    "Disk", "Tape", "Printer", "Processor", "WORM", "CD/DVD", "Scanner", "MOD",
    "Changer", "Comm", "Prepress", "Prepress", "RAID", "Enclosure", "RBC", "OCRW",
    "Bridge", "OSD", "ADC-2",
]


def format_sbp_logical_unit_number(value: int) -> str:
    extended = (value >> 23) & 0x1
    ordered = (value >> 22) & 0x1
    isoc = (value >> 21) & 0x1
    device_type = (value >> 16) & 0x1F
    lun = value & 0xFFFF

    parts = []
    if extended:
        parts.append("extended_status 1")
    parts.append(f"ordered {ordered}")
    if isoc:
        parts.append("isoch 1")
    if device_type < len(SBP_DEVICE_TYPES):
        parts.append(f"type {SBP_DEVICE_TYPES[device_type]}")
    elif device_type == 0x1E:
        parts.append("type w.k.LUN")
    elif device_type == 0x1F:
        parts.append("type unknown")
    else:
        parts.append(f"type {device_type:02x}?")
    parts.append(f"lun {lun}")
    return ", ".join(parts)


def format_sbp3_revision(value: int) -> str:
    return {0: "0 = SBP-2", 1: "1 = SBP-3"}.get(value, str(value))


def format_sbp3_plug_control_register(value: int) -> str:
    direction = "o" if value & 0x20 else "i"
    return f"{direction}PCR, plug_index {value & 0x1F}"


SBP_COMMAND_SETS = {
    0x0104D8: "SCSI Primary Commands 2 and related standards",
    0x010001: "AV/C",
}


def format_sbp_command_set(value: int) -> str:
    return SBP_COMMAND_SETS.get(value, "")


def format_sbp_unit_characteristic(value: int) -> str:
    distributed_data = (value >> 16) & 0x1     # SBP-3
    mgt_orb_timeout = 0.5 * ((value >> 8) & 0xFF)
    orb_size = value & 0xFF
    text = f"mgt_ORB_timeout {mgt_orb_timeout:g}s, ORB_size {orb_size} quadlets"
    return "distrib. data 1, " + text if distributed_data else text


def format_sbp_firmware_revision(value: int) -> str:
    return f"{value:06x}"


def format_sbp_reconnect_timeout(value: int) -> str:
    return f"max_reconnect_hold {1 + (value & 0xFFFF)}s"


def format_sbp3_fast_start(value: int) -> str:
    max_payload = (value >> 8) & 0xFF
    fast_start_offset = value & 0xFF
    if max_payload:
        return f"max_payload {max_payload << 2} bytes, offset {fast_start_offset}"
    return f"max_payload per max_rec, offset {fast_start_offset}"


def format_iidc_131_unit_sub_sw_version(value: int) -> str:
    return f"v1.3{value >> 4}"


def format_iidc2_unit_sub_sw_version(value: int) -> str:
    return f"v{value >> 16}.{(value >> 8) & 0xFF}.{value & 0xFF}"


def format_dpp_command_set(value: int) -> str:
    return {0xB081F2: "DPC", 0x020000: "FTC"}.get(value, "")


def format_dpp_write_transaction_interval(value: int) -> str:
    return f"{value}ms"


def format_dpp_unit_sw_details(value: int) -> str:
    major = (value >> 20) & 0xF
    minor = (value >> 16) & 0xF
    micro = (value >> 12) & 0xF
    return f"v{major}.{minor}.{micro}, sdu_write_order {value & 1}"


def _bcd_version(value: int) -> str:
    major = ((value >> 20) & 0xF) * 10 + ((value >> 16) & 0xF)
    minor = ((value >> 12) & 0xF) * 10 + ((value >> 8) & 0xF)
    return f"v{major}.{minor}"


def format_iicp_details(value: int) -> str:
    return _bcd_version(value)


def format_iicp_command_set(value: int) -> str:
    return {0x4B661F: "IICP only", 0xC27F10: "IICP488"}.get(value, "")


def format_iicp_command_set_details(value: int) -> str:
    return _bcd_version(value)


def format_iicp_capabilities(value: int) -> str:
    high_proto = (value >> 16) & 0xFF
    iicp = (value >> 6) & 0x3FF
    ccli = (value >> 5) & 0x1
    cmgr = (value >> 4) & 0x1
    exponent = value & 0xF
    text = f"hi proto {high_proto}, IICP {iicp}, ccli {ccli}, cmgr {cmgr}"
    if exponent:
        return text + f"  maxIntLength {2 << exponent} bytes"
    return text + "  maxIntLength -"


# ==============================
# Tables
# ==============================

CSR_KEY_FORMATTERS = _table(
    _leaf(KEY_ID_DESCRIPTOR, "descriptor", format_descriptor_leaf),
    _dir(KEY_ID_DESCRIPTOR, "descriptor"),
    _imm(KEY_ID_BUS_DEP_INFO, "bus dependent info"),
    _leaf(KEY_ID_BUS_DEP_INFO, "bus dependent info", format_unspecified_leaf),
    _dir(KEY_ID_BUS_DEP_INFO, "bus dependent info"),
    _imm(KEY_ID_VENDOR, "vendor"),
    _leaf(KEY_ID_VENDOR, "vendor", format_unspecified_leaf),
    _dir(KEY_ID_VENDOR, "vendor"),
    _imm(KEY_ID_HARDWARE_VERSION, "hardware version"),
    _leaf(KEY_ID_MODULE, "module", format_eui64_leaf),
    _dir(KEY_ID_MODULE, "module"),
    _leaf(KEY_ID_EUI_64, "eui-64", format_eui64_leaf),
    _dir(KEY_ID_UNIT, "unit"),
    _imm(KEY_ID_SPECIFIER_ID, "specifier id"),
    _imm(KEY_ID_VERSION, "version"),
    _imm(KEY_ID_DEP_INFO, "dependent info"),
    _csr(KEY_ID_DEP_INFO, "dependent info"),
    _leaf(KEY_ID_DEP_INFO, "dependent info", format_unspecified_leaf),
    _dir(KEY_ID_DEP_INFO, "dependent info"),
    _leaf(KEY_ID_UNIT_LOCATION, "unit location", format_unit_location_leaf),
    _imm(KEY_ID_MODEL, "model"),
    _dir(KEY_ID_INSTANCE, "instance"),
    _leaf(KEY_ID_KEYWORD, "keyword", format_keyword_leaf),
    _dir(KEY_ID_FEATURE, "feature"),
    _leaf(KEY_ID_MODIFIABLE_DESCRIPTOR, "modifiable descriptor", format_unspecified_leaf),
    _imm(KEY_ID_DIRECTORY_ID, "directory id"),
)

IEEE1394_BUS_KEY_FORMATTERS = _table(
    _imm(KEY_ID_NODE_CAPABILITIES, "node capabilities", format_node_capabilities),
)

SBP_KEY_FORMATTERS = _table(
    _leaf(0x0D, "unit unique id", format_eui64_leaf),
    _imm(0x14, "logical unit number", format_sbp_logical_unit_number),
    _csr(0x14, "management agent CSR"),
    _dir(0x14, "logical unit"),
    _imm(0x21, "revision", format_sbp3_revision),
    _imm(0x32, "plug control register", format_sbp3_plug_control_register),
    _imm(0x38, "command set spec id"),
    _imm(0x39, "command set", format_sbp_command_set),
    _imm(0x3A, "unit char.", format_sbp_unit_characteristic),
    _imm(0x3B, "command set revision"),
    _imm(0x3C, "firmware revision", format_sbp_firmware_revision),
    _imm(0x3D, "reconnect timeout", format_sbp_reconnect_timeout),
    _imm(0x3E, "fast start", format_sbp3_fast_start),
)

_IIDC_COMMON = (
    _leaf(0x01, "vendor name", format_iidc_name_leaf),
    _leaf(0x02, "model name", format_iidc_name_leaf),
)

_IIDC_131_RESERVED = (
    _imm(0x39, "(reserved)"),
    _imm(0x3A, "(reserved)"),
    _imm(0x3B, "(reserved)"),
    _imm(0x3C, "vendor_unique_info_0"),
    _imm(0x3D, "vendor_unique_info_1"),
    _imm(0x3E, "vendor_unique_info_2"),
    _imm(0x3F, "vendor_unique_info_3"),
)

IIDC_104_KEY_FORMATTERS = _table(
    _csr(0x00, "command_regs_base"),
    *_IIDC_COMMON,
)

IIDC_131_KEY_FORMATTERS = _table(
    _csr(0x00, "command_regs_base"),
    *_IIDC_COMMON,
    _imm(0x38, "unit sub sw version", format_iidc_131_unit_sub_sw_version),
    *_IIDC_131_RESERVED,
)

IIDC2_KEY_FORMATTERS = _table(
    _csr(0x00, "IIDC2Entry"),
    *_IIDC_COMMON,
    _imm(0x38, "unit sub sw version", format_iidc2_unit_sub_sw_version),
    *_IIDC_131_RESERVED,
)

DPP_111_KEY_FORMATTERS = _table(
    _dir(0x14, "command set directory"),
    _imm(0x38, "command set spec id"),
    _imm(0x39, "command set", format_dpp_command_set),
    _imm(0x3A, "command set details"),
    _csr(0x3B, "connection CSR"),
    _imm(0x3C, "write transaction interval", format_dpp_write_transaction_interval),
    _imm(0x3D, "unit sw details", format_dpp_unit_sw_details),
)

IICP_KEY_FORMATTERS = _table(
    _imm(0x38, "details", format_iicp_details),
    _imm(0x39, "command set spec id"),
    _imm(0x3A, "command set", format_iicp_command_set),
    _imm(0x3B, "command set details", format_iicp_command_set_details),
    _csr(0x3C, "connection CSR"),
    _imm(0x3D, "capabilities", format_iicp_capabilities),
    _csr(0x3E, "interrupt_enable CSR"),
    _csr(0x3F, "interrupt_handlr CSR"),
)

ISIGHT_AUDIO_KEY_FORMATTERS = _table(_csr(0x00, "register file"))
ISIGHT_IRIS_KEY_FORMATTERS = _table(_csr(0x00, "Iris Status Address register"))

OUI_ICANN_IANA = 0x00005E
OUI_INCITS = 0x00609E
OUI_1394TA = 0x00A02D
OUI_ALESIS = 0x000595
OUI_APPLE = 0x000A27
OUI_LACIE = 0x00D04B

SPEC_REGISTRY: Dict[SpecIdentifier, SpecEntry] = {
    SpecIdentifier(OUI_ICANN_IANA, 0x000001): SpecEntry("IPv4 over 1394 (RFC 2734)", {}),
    SpecIdentifier(OUI_ICANN_IANA, 0x000002): SpecEntry("IPv6 over 1394 (RFC 3146)", {}),
    # SBP-2 and SBP-3 share one identifier.
    SpecIdentifier(OUI_INCITS, 0x010483): SpecEntry("SBP-2", SBP_KEY_FORMATTERS),
    SpecIdentifier(OUI_INCITS, 0x0105BB): SpecEntry("AV/C over SBP-3", SBP_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x010001): SpecEntry("AV/C", {}),
    SpecIdentifier(OUI_1394TA, 0x010002): SpecEntry("CAL", {}),
    SpecIdentifier(OUI_1394TA, 0x010004): SpecEntry("EHS", {}),
    SpecIdentifier(OUI_1394TA, 0x010008): SpecEntry("HAVi", {}),
    SpecIdentifier(OUI_1394TA, 0x014000): SpecEntry("Vendor Unique", {}),
    SpecIdentifier(OUI_1394TA, 0x014001): SpecEntry("Vendor Unique and AV/C", {}),
    SpecIdentifier(OUI_1394TA, 0x000100): SpecEntry("IIDC 1.04", IIDC_104_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x000101): SpecEntry("IIDC 1.20", IIDC_104_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x000102): SpecEntry("IIDC 1.30", IIDC_131_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x000110): SpecEntry("IIDC2", IIDC2_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x0A6BE2): SpecEntry("DPP 1.0", DPP_111_KEY_FORMATTERS),
    SpecIdentifier(OUI_1394TA, 0x4B661F): SpecEntry("IICP 1.0", IICP_KEY_FORMATTERS),
    SpecIdentifier(OUI_ALESIS, 0x000001): SpecEntry("audio", {}),
    SpecIdentifier(OUI_APPLE, 0x000010): SpecEntry("iSight audio unit", ISIGHT_AUDIO_KEY_FORMATTERS),
    SpecIdentifier(OUI_APPLE, 0x000011): SpecEntry("iSight factory unit", {}),
    SpecIdentifier(OUI_APPLE, 0x000012): SpecEntry("iSight iris unit", ISIGHT_IRIS_KEY_FORMATTERS),
    SpecIdentifier(OUI_LACIE, 0x484944): SpecEntry("HID", {}),
}

DEFAULT_KEY_FORMATTERS = {
    KeyType.IMMEDIATE: KeyFormatter(KeyType.IMMEDIATE, None, UNSPECIFIED_ENTRY_NAME, format_unspecified_immediate),
    KeyType.CSR_OFFSET: KeyFormatter(KeyType.CSR_OFFSET, None, UNSPECIFIED_ENTRY_NAME),
    KeyType.LEAF: KeyFormatter(KeyType.LEAF, None, UNSPECIFIED_ENTRY_NAME, format_unspecified_leaf),
    KeyType.DIRECTORY: KeyFormatter(KeyType.DIRECTORY, None, UNSPECIFIED_ENTRY_NAME),
}


def detect_key_formatter(identifier: SpecIdentifier, key_type: KeyType,
                         key_id: int) -> Tuple[KeyFormatter, Optional[str]]:
    """Return the formatter for an entry and the specification name, if one applied."""
    key = (KeyType(key_type), key_id)
    spec = SPEC_REGISTRY.get(identifier)
    if spec is not None and key in spec.formatters:
        return spec.formatters[key], spec.name
    for table in (IEEE1394_BUS_KEY_FORMATTERS, CSR_KEY_FORMATTERS):
        if key in table:
            return table[key], None
    return DEFAULT_KEY_FORMATTERS[KeyType(key_type)], None


def collect_spec_identifier(directories: Iterable) -> SpecIdentifier:
    """
    Scan directories innermost first; the first Specifier_ID and Version
    immediates win, and Vendor stands in for a missing Specifier_ID.
    """
    specifier_id = None
    version = None
    for directory in directories:
        for quadlet in directory.quadlets[1:]:
            key_type, key_id, value = decode_directory_entry(quadlet)
            if key_type != KeyType.IMMEDIATE:
                continue
            if key_id in (KEY_ID_SPECIFIER_ID, KEY_ID_VENDOR) and specifier_id is None:
                specifier_id = value
            elif key_id == KEY_ID_VERSION and version is None:
                version = value
    return SpecIdentifier(specifier_id, version)
