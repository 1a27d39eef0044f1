# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Read the functions and their aliases from the symbol table of an ELF file."""

import re

from elftools.elf.sections import SymbolTableSection

from .datastructure import THUMB_BIT, Function
from .errors import MalformedInput

# $a, $t, $d, $a.1, $t.42, ...
Tag = r"\$[atd](\.[0-9]+)?"


def is_tag(name):
    """Return if the symbol name is an architecture mapping symbol.

    Mapping symbols like `$t` mark the start of Thumb code or `$d` the start of data.
    They are never aliases of a function.

    Args:
        name (str): the symbol name

    Returns:
        bool: if the name is a mapping symbol
    """
    return re.fullmatch(Tag, name) is not None


class SymbolEntry:
    """A row of the symbol table.

    Attributes:
        index (int):   the position in the symbol table
        kind (str):    the symbol type like STT_FUNC or STT_NOTYPE
        value (int):   the symbol value, for functions the address
        size (int):    the size of the symbol
        section:       the index of the section the symbol is defined in or one of the
                       special indices like SHN_UNDEF
        name (str):    the symbol name
    """

    index = None
    kind = None
    value = None
    size = None
    section = None
    name = None

    def __init__(self, index, kind, value, size, section, name):
        """Create the object."""
        self.index = index
        self.kind = kind
        self.value = value
        self.size = size
        self.section = section
        self.name = name

    @property
    def is_function(self):
        """Return if the symbol is a function."""
        return self.kind == "STT_FUNC"

    @property
    def is_alias_candidate(self):
        """Return if the symbol could be an alias of a function."""
        return (
            self.kind == "STT_NOTYPE"
            and self.section != "SHN_UNDEF"
            and bool(self.name)
            and not is_tag(self.name)
        )


class ObjectSymbols:
    """The symbols of a relocatable object file.

    Attributes:
        sections (dict[int, dict[int, list[str]]]):
            The function names of each section by their offset in the section. The
            Thumb bit is cleared in the offsets. The first name is always a function
            symbol, aliases follow.
        symbol_sections (dict[int, int]):
            The section index of each symbol table row by its index
        symbol_values (dict[int, int]):
            The symbol value with cleared Thumb bit of each symbol table row by its
            index
    """

    sections = None
    symbol_sections = None
    symbol_values = None

    def __init__(self):
        """Create the object."""
        self.sections = {}
        self.symbol_sections = {}
        self.symbol_values = {}

    def names(self, section, offset):
        """Return the names at the offset in the section or None."""
        return self.sections.get(section, {}).get(offset)


def get_symbol_table(elf):
    """Find the symbol table and check its shape.

    Args:
        elf (ELFFile): the ELF file

    Raises:
        MalformedInput: the symbol table is missing or has the wrong shape

    Returns:
        SymbolTableSection: the symbol table
    """
    section = elf.get_section_by_name(".symtab")

    if section is None:
        raise MalformedInput(".symtab section not found")

    if not isinstance(section, SymbolTableSection):
        raise MalformedInput("malformed .symtab section")

    entry_size = elf.structs.Elf_Sym.sizeof()
    if section["sh_entsize"] != entry_size:
        raise MalformedInput(
            "unexpected .symtab entry size {} (expected {})".format(
                section["sh_entsize"], entry_size
            )
        )

    if section["sh_size"] % entry_size:
        raise MalformedInput(
            ".symtab size {} is not a multiple of {}".format(
                section["sh_size"], entry_size
            )
        )

    return section


def iter_symbols(elf):
    """Iterate over the rows of the symbol table.

    Args:
        elf (ELFFile): the ELF file

    Raises:
        MalformedInput: the symbol table is malformed or a name cannot be read

    Yields:
        SymbolEntry: the rows in the order of the symbol table
    """
    symtab = get_symbol_table(elf)
    strtab_size = symtab.stringtable["sh_size"]

    for index in range(symtab.num_symbols()):
        try:
            symbol = symtab.get_symbol(index)
        except UnicodeDecodeError as error:
            raise MalformedInput(
                "name of symbol {} is not valid UTF-8".format(index)
            ) from error

        if symbol["st_name"] and symbol["st_name"] >= strtab_size:
            raise MalformedInput(
                "name of symbol {} is outside of the string table".format(index)
            )

        name = symbol.name
        # pyelftools replaces undecodable bytes
        if "\ufffd" in name:
            raise MalformedInput("name of symbol {} is not valid UTF-8".format(index))

        yield SymbolEntry(
            index,
            symbol["st_info"]["type"],
            symbol["st_value"],
            symbol["st_size"],
            symbol["st_shndx"],
            name,
        )


def read_functions(elf):
    """Read the functions of an executable or a shared library.

    The addresses are stored as they are. The Thumb bit is reconciled when the stack
    usage records are matched.

    Args:
        elf (ELFFile): the ELF file

    Returns:
        (set[str], dict[int, Function]):
            the names of the undefined functions and the defined functions by address
    """
    undefined = set()
    defined = {}
    maybe_aliases = {}

    for entry in iter_symbols(elf):
        if entry.is_function:
            if entry.value == 0 and entry.size == 0:
                undefined.add(entry.name)
                continue

            function = defined.get(entry.value)
            if function is None:
                function = defined[entry.value] = Function(entry.value, size=entry.size)
            function.add_name(entry.name)

        elif entry.is_alias_candidate:
            maybe_aliases.setdefault(entry.value, []).append(entry.name)

    for value, aliases in maybe_aliases.items():
        for address in (value, value | THUMB_BIT, value & ~THUMB_BIT):
            function = defined.get(address)
            if function is not None:
                for alias in aliases:
                    function.add_name(alias)
                break

    for function in defined.values():
        function.names.sort()

    return undefined, defined


def read_object_symbols(elf):
    """Read the functions of a relocatable object file.

    Args:
        elf (ELFFile): the ELF file

    Returns:
        ObjectSymbols: the functions by section and the section of each symbol
    """
    symbols = ObjectSymbols()
    maybe_aliases = []

    for entry in iter_symbols(elf):
        if not isinstance(entry.section, int):
            continue

        offset = entry.value & ~THUMB_BIT
        symbols.symbol_sections[entry.index] = entry.section
        symbols.symbol_values[entry.index] = offset

        if entry.is_function:
            names = symbols.sections.setdefault(entry.section, {}).setdefault(
                offset, []
            )
            if entry.name not in names:
                names.append(entry.name)

        elif entry.is_alias_candidate:
            maybe_aliases.append((entry.section, offset, entry.name))

    for section, offset, name in maybe_aliases:
        names = symbols.names(section, offset)
        if names is not None and name not in names:
            names.append(name)

    return symbols
