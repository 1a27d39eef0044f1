# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Resolve the stack usage records of object files through their relocations.

Before linking, the address field of a `.stack_sizes` record is only a placeholder.
The assembler emits one relocation per record into the section following
`.stack_sizes`. The n-th relocation belongs to the n-th record and refers to the
symbol of the function.
"""

from elftools.elf.relocation import RelocationSection

from .datastructure import THUMB_BIT
from .errors import InconsistentData, MalformedInput


def get_relocations(elf, index):
    """Return the relocation section following the `.stack_sizes` section.

    Args:
        elf (ELFFile): the ELF file
        index (int):   the section index of `.stack_sizes`

    Raises:
        InconsistentData: there is no relocation section after `.stack_sizes`
        MalformedInput:   the relocation entries or the section have the wrong size

    Returns:
        RelocationSection: the relocation section
    """
    if index + 1 >= elf.num_sections():
        raise InconsistentData("expected a section after .stack_sizes")

    section = elf.get_section(index + 1)

    if not isinstance(section, RelocationSection):
        raise InconsistentData(
            "expected a section with relocation information after .stack_sizes, "
            "found '{}'".format(section.name)
        )

    if section.is_RELA():
        entry_size = elf.structs.Elf_Rela.sizeof()
    else:
        entry_size = elf.structs.Elf_Rel.sizeof()

    if section["sh_entsize"] != entry_size:
        raise MalformedInput(
            "unexpected entry size {} in {} (expected {})".format(
                section["sh_entsize"], section.name, entry_size
            )
        )

    if section["sh_size"] % entry_size:
        raise MalformedInput(
            "size {} of {} is not a multiple of {}".format(
                section["sh_size"], section.name, entry_size
            )
        )

    return section


def resolve_records(elf, index, records, symbols, table=None):
    """Assign the stack usage records of one `.stack_sizes` section to names.

    Args:
        elf (ELFFile):             the ELF file
        index (int):               the section index of `.stack_sizes`
        records (list[(int, int)]): the decoded records of the section
        symbols (ObjectSymbols):   the symbols of the object file
        table (dict[str, int], optional):
            The table to extend. Defaults to None, which creates a new table.

    Raises:
        InconsistentData: the relocations don't match the records or the symbols

    Returns:
        dict[str, int]: the stack usage by function name
    """
    if table is None:
        table = {}

    relocations = get_relocations(elf, index)
    is_rela = relocations.is_RELA()

    if relocations.num_relocations() != len(records):
        raise InconsistentData(
            "{} has {} entries, but .stack_sizes has {} records".format(
                relocations.name, relocations.num_relocations(), len(records)
            )
        )

    for relocation, (address, stack) in zip(relocations.iter_relocations(), records):
        symbol = relocation["r_info_sym"]

        section = symbols.symbol_sections.get(symbol)
        if section is None:
            raise InconsistentData("no section for symbol {}".format(symbol))

        # REL keeps the addend in the record itself
        addend = relocation["r_addend"] if is_rela else address
        offset = (symbols.symbol_values[symbol] + addend) & ~THUMB_BIT

        names = symbols.names(section, offset)
        if not names:
            raise InconsistentData(
                "no symbol at offset {:#x} of section {}".format(offset, section)
            )

        name = names[0]
        if name in table:
            raise InconsistentData("duplicate stack usage record for '{}'".format(name))

        table[name] = stack

    return table
