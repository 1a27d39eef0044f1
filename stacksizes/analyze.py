# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Analyze the stack usage information LLVM emits into the `.stack_sizes` section.

All functions take the content of an ELF file as bytes. They don't read files, don't
print anything and never return partial results.
"""

import io

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from .datastructure import Functions
from .errors import InconsistentData, MalformedInput, UnsupportedFormat
from .records import decode_records
from .relocations import resolve_records
from .symbols import read_functions, read_object_symbols

STACK_SIZES = ".stack_sizes"


def _open(data):
    try:
        return ELFFile(io.BytesIO(data))
    except ELFError as error:
        raise MalformedInput("not a valid ELF file: {}".format(error)) from error


def _is_relocatable(elf):
    return elf["e_type"] == "ET_REL"


def _section_data(section):
    data = section.data()
    if len(data) != section["sh_size"]:
        raise MalformedInput(
            "{} ends outside of the file ({} of {} bytes)".format(
                section.name, len(data), section["sh_size"]
            )
        )
    return data


def _analyze_executable(elf):
    is_32_bit = elf.elfclass == 32
    functions = Functions(is_32_bit, *read_functions(elf))

    section = elf.get_section_by_name(STACK_SIZES)
    if section is None:
        return functions

    for address, stack in decode_records(_section_data(section), is_32_bit):
        # a function which already got its stack usage cannot be matched again
        function = functions.find(address, without_stack=True)
        if function is None:
            raise InconsistentData(
                "stack usage record at {:#x} doesn't belong to any function".format(
                    address
                )
            )
        function.stack = stack

    return functions


def _analyze_object(elf):
    is_32_bit = elf.elfclass == 32
    symbols = None
    table = {}

    for index, section in enumerate(elf.iter_sections()):
        if section.name != STACK_SIZES:
            continue

        if symbols is None:
            symbols = read_object_symbols(elf)

        records = decode_records(_section_data(section), is_32_bit)
        resolve_records(elf, index, records, symbols, table)

    return table


def analyze_executable(data):
    """Analyze the stack usage of the functions of an executable or shared library.

    Args:
        data (bytes): the content of the ELF file

    Raises:
        UnsupportedFormat: the file is a relocatable object file
        MalformedInput:    the file or one of the required sections is malformed
        InconsistentData:  a stack usage record has no matching function

    Returns:
        Functions: the functions of the binary
    """
    elf = _open(data)

    if _is_relocatable(elf):
        raise UnsupportedFormat("expected an executable, but got an object file")

    try:
        return _analyze_executable(elf)
    except ELFError as error:
        raise MalformedInput(str(error)) from error


def analyze_object(data):
    """Analyze the stack usage of the functions of a relocatable object file.

    Each `.stack_sizes` section of the object file is resolved through the relocation
    section following it. Object files without a `.stack_sizes` section result in an
    empty table.

    Args:
        data (bytes): the content of the ELF file

    Raises:
        UnsupportedFormat: the file is not a relocatable object file
        MalformedInput:    the file or one of the required sections is malformed
        InconsistentData:  the relocations don't match the records or the symbols

    Returns:
        dict[str, int]: the stack usage by function name
    """
    elf = _open(data)

    if not _is_relocatable(elf):
        raise UnsupportedFormat(
            "expected an object file, but got {}".format(elf["e_type"])
        )

    try:
        return _analyze_object(elf)
    except ELFError as error:
        raise MalformedInput(str(error)) from error


def analyze(data):
    """Analyze an object file or an executable depending on the ELF type.

    Args:
        data (bytes): the content of the ELF file

    Returns:
        dict[str, int] | Functions:
            the result of analyze_object() for object files, otherwise the result of
            analyze_executable()
    """
    if _is_relocatable(_open(data)):
        return analyze_object(data)
    return analyze_executable(data)
