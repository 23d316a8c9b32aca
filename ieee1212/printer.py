"""
Render a decoded configuration ROM as annotated text.

Quadlets are printed in offset order as "<address>  <quadlet>  <meaning>",
grouped by block:

    400  04040a21  bus_info_length 4, crc_length 4, crc 2593
    404  31333934  bus_name "1394"
    ...

A leaf too short for the formatter of its key prints only its header line,
so its payload quadlets do not appear.
"""

import io
from typing import Callable, Dict, List

from .blocks import Block, BlockKind, ConfigROM, iter_directory_entries
from .crc import check_block_crc, check_bus_info_crc
from .lines import (
    CONFIG_ROM_OFFSET,
    HORIZONTAL_LINE,
    LINE_WIDTH,
    blank_prefix,
    line_prefix,
)
from .quadlets import BUS_NAME_1394, DirectoryEntry, KeyType
from .specs import (
    KEY_ID_BUS_DEP_INFO,
    KEY_ID_DEP_INFO,
    KEY_ID_DESCRIPTOR,
    KEY_ID_FEATURE,
    KEY_ID_INSTANCE,
    KEY_ID_MODULE,
    KEY_ID_UNIT,
    KEY_ID_VENDOR,
    KeyFormatter,
    SpecIdentifier,
    collect_spec_identifier,
    detect_key_formatter,
    format_eui64,
    format_unspecified_leaf,
)


def _heading(title: str) -> List[str]:
    return [blank_prefix() + title, blank_prefix() + HORIZONTAL_LINE]


# ==============================
# Bus information block
# ==============================

def format_bus_info_metadata(rom: ConfigROM) -> str:
    header = rom.bus_info.header
    check = check_bus_info_crc(rom.data)
    text = f"bus_info_length {header >> 24}, crc_length {check.length}"
    if check.truncated:
        text += f" (up to {check.effective_length})"
    text += f", crc {check.declared}"
    if not check.ok:
        text += f" (should be {check.computed})"
    return text


def format_ieee1394_bus_options(offset: int, quadlet: int) -> List[str]:
    # IEEE 1394-2008 §8.3.2.5.4
    irmc = (quadlet >> 31) & 0x1
    cmc = (quadlet >> 30) & 0x1
    isc = (quadlet >> 29) & 0x1
    bmc = (quadlet >> 28) & 0x1
    cyc_clk_acc = (quadlet >> 16) & 0xFF
    max_rec = (quadlet >> 12) & 0xF
    generation = (quadlet >> 4) & 0xF

    if generation == 0:
        return [line_prefix(offset, quadlet) +
                f"irmc {irmc}, cmc {cmc}, isc {isc}, bmc {bmc}, cyc_clk_acc {cyc_clk_acc}, "
                f"max_rec {max_rec} ({2 << max_rec})"]

    pmc = (quadlet >> 27) & 0x1
    max_rom = (quadlet >> 8) & 0x3
    spd = quadlet & 0x7
    return [
        line_prefix(offset, quadlet) +
        f"irmc {irmc}, cmc {cmc}, isc {isc}, bmc {bmc}, pmc {pmc}, cyc_clk_acc {cyc_clk_acc},",
        blank_prefix() +
        f"max_rec {max_rec} ({2 << max_rec}), max_rom {max_rom}, gen {generation}, spd {spd} (S{1 << spd}00)",
    ]


def format_unspecified_bus_options(offset: int, quadlet: int) -> List[str]:
    return [line_prefix(offset, quadlet, False)]


BUS_NAMES = {
    BUS_NAME_1394: ("1394", format_ieee1394_bus_options),
}
UNSPECIFIED_BUS = ("unspecified", format_unspecified_bus_options)


def format_bus_info_block(rom: ConfigROM, block: Block) -> List[str]:
    quadlets = block.quadlets
    offset = block.offset

    lines = _heading("ROM header and bus information block")
    lines.append(line_prefix(offset, quadlets[0]) + format_bus_info_metadata(rom))
    if len(quadlets) < 2:
        return lines

    bus_name, format_bus_options = BUS_NAMES.get(quadlets[1], UNSPECIFIED_BUS)
    lines.append(line_prefix(offset + 4, quadlets[1]) + f'bus_name "{bus_name}"')
    if len(quadlets) < 3:
        return lines

    lines += format_bus_options(offset + 8, quadlets[2])
    if len(quadlets) < 5:
        lines += [line_prefix(offset + 4 * i, q, False) for i, q in enumerate(quadlets[3:], start=3)]
        return lines

    lines += format_eui64(offset + 12, quadlets[3], quadlets[4])
    lines += [line_prefix(offset + 4 * i, q, False) for i, q in enumerate(quadlets[5:], start=5)]
    return lines


# ==============================
# Directories and leaves
# ==============================

def format_block_metadata(block: Block, block_name: str) -> str:
    quadlets = block.quadlets
    declared = quadlets[0] >> 16
    check = check_block_crc(block)
    text = f"{block_name}_length {declared}"
    if 1 + declared != len(quadlets):
        text += f" (actual length {len(quadlets) - 1})"
    text += f", crc {check.declared}"
    if not check.ok:
        text += f" (should be {check.computed})"
    return text


def _spec_prefix(spec_name) -> str:
    return f"{spec_name} " if spec_name else ""


def format_immediate_entry(entry: DirectoryEntry, spec_name, formatter: KeyFormatter) -> str:
    text = _spec_prefix(spec_name)
    if formatter.key_id is not None:
        text += formatter.name
    if formatter.format_content is not None:
        if formatter.key_id is not None:
            text += ": "
        text += formatter.format_content(entry.value)
    return text


def format_csr_offset_entry(entry: DirectoryEntry, spec_name, formatter: KeyFormatter) -> str:
    name = f"{formatter.name} " if formatter.key_id is not None else "CSR "
    return f"--> {_spec_prefix(spec_name)}{name}at {entry.csr_address:012x}"


def _reference(entry: DirectoryEntry, spec_name, formatter: KeyFormatter, what: str) -> str:
    name = f"{formatter.name} " if formatter.key_id is not None else ""
    return f"--> {_spec_prefix(spec_name)}{name}{what} at {CONFIG_ROM_OFFSET + entry.target_rom_offset:x}"


def format_leaf_entry(entry: DirectoryEntry, spec_name, formatter: KeyFormatter) -> str:
    return _reference(entry, spec_name, formatter, "leaf")


def format_directory_entry(entry: DirectoryEntry, spec_name, formatter: KeyFormatter) -> str:
    return _reference(entry, spec_name, formatter, "directory")


ENTRY_FORMATTERS: Dict[KeyType, Callable[[DirectoryEntry, object, KeyFormatter], str]] = {
    KeyType.IMMEDIATE: format_immediate_entry,
    KeyType.CSR_OFFSET: format_csr_offset_entry,
    KeyType.LEAF: format_leaf_entry,
    KeyType.DIRECTORY: format_directory_entry,
}


def format_directory_entries(block: Block, identifier: SpecIdentifier) -> List[str]:
    lines = [line_prefix(block.offset, block.header) + format_block_metadata(block, "directory")]
    for entry in iter_directory_entries(block):
        formatter, spec_name = detect_key_formatter(identifier, entry.key_type, entry.key_id)
        lines.append(line_prefix(entry.offset_in_rom, entry.raw) +
                     ENTRY_FORMATTERS[entry.key_type](entry, spec_name, formatter))
    return lines


def format_root_directory_block(rom: ConfigROM, block: Block) -> List[str]:
    vendor = None
    for entry in iter_directory_entries(block):
        if entry.key_type == KeyType.IMMEDIATE and entry.key_id == KEY_ID_VENDOR:
            vendor = entry.value
    return _heading("root directory") + format_directory_entries(block, SpecIdentifier(vendor))


# Directories describing something their parent governs take the parent's
# specification; unit and feature directories carry their own.
INHERITING_DIRECTORY_KEYS = (
    KEY_ID_VENDOR, KEY_ID_MODULE, KEY_ID_DESCRIPTOR, KEY_ID_BUS_DEP_INFO, KEY_ID_DEP_INFO, KEY_ID_INSTANCE,
)
SELF_DESCRIBING_DIRECTORY_KEYS = (KEY_ID_UNIT, KEY_ID_FEATURE)


def format_directory_block(rom: ConfigROM, block: Block) -> List[str]:
    if block.key_id in SELF_DESCRIBING_DIRECTORY_KEYS:
        identifier = collect_spec_identifier([block, *rom.ancestors(block)])
    elif block.key_id in INHERITING_DIRECTORY_KEYS:
        identifier = collect_spec_identifier(rom.ancestors(block))
    else:
        identifier = SpecIdentifier()

    formatter, _ = detect_key_formatter(identifier, KeyType.DIRECTORY, block.key_id)
    title = f"{formatter.name} directory at {CONFIG_ROM_OFFSET + block.offset:x}"
    return _heading(title) + format_directory_entries(block, identifier)


def format_leaf_block(rom: ConfigROM, block: Block) -> List[str]:
    identifier = collect_spec_identifier(rom.ancestors(block))
    formatter, spec_name = detect_key_formatter(identifier, KeyType.LEAF, block.key_id)
    format_content = formatter.format_content or format_unspecified_leaf

    quadlets = block.quadlets
    lines = _heading(f"{_spec_prefix(spec_name)}{formatter.name} leaf at {CONFIG_ROM_OFFSET + block.offset:x}")
    lines.append(line_prefix(block.offset, quadlets[0]) + format_block_metadata(block, "leaf"))
    lines += format_content(block.offset + 4, quadlets[1:])
    return lines


def format_orphan_block(rom: ConfigROM, block: Block) -> List[str]:
    return [line_prefix(block.offset + 4 * i, q) + "(unreferenced data)"
            for i, q in enumerate(block.quadlets)]


BLOCK_FORMATTERS = {
    BlockKind.BUS_INFO: format_bus_info_block,
    BlockKind.ROOT_DIRECTORY: format_root_directory_block,
    BlockKind.LEAF: format_leaf_block,
    BlockKind.DIRECTORY: format_directory_block,
    BlockKind.ORPHAN: format_orphan_block,
}


def format_blocks(rom: ConfigROM) -> List[str]:
    lines: List[str] = []
    for block in rom:
        lines += BLOCK_FORMATTERS[block.kind](rom, block)
        lines.append("")
    return lines


def dump_config_rom(rom: ConfigROM) -> str:
    out = io.StringIO()
    for line in format_blocks(rom):
        print(line[:LINE_WIDTH - 1].rstrip(), file=out)
    return out.getvalue()
