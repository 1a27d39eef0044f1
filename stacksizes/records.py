# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Encoding and decoding of the `.stack_sizes` section.

The section is a plain sequence of records without any header or padding:

    +--------------------------------+---------------------------+
    | address (little endian, 4/8 B) | stack size (ULEB128, 1+ B) |
    +--------------------------------+---------------------------+
"""

import struct

from .errors import MalformedInput


def _address_format(is_32_bit):
    return "<I" if is_32_bit else "<Q"


def decode_uleb128(data, offset):
    """Decode an unsigned LEB128 number.

    Args:
        data (bytes): the buffer
        offset (int): the position of the first byte of the number

    Raises:
        MalformedInput: the number isn't terminated before the end of the buffer

    Returns:
        (int, int): the value and the position after the number
    """
    value = 0
    shift = 0

    while True:
        if offset >= len(data):
            raise MalformedInput("unterminated ULEB128 value in .stack_sizes")

        byte = data[offset]
        offset += 1
        value |= (byte & 0x7F) << shift
        shift += 7

        if not byte & 0x80:
            return value, offset


def encode_uleb128(value):
    """Encode an unsigned LEB128 number.

    Args:
        value (int): the non-negative value

    Returns:
        bytes: the encoded value
    """
    if value < 0:
        raise ValueError("ULEB128 cannot encode negative value {}".format(value))

    encoded = bytearray()

    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            encoded.append(byte | 0x80)
        else:
            encoded.append(byte)
            return bytes(encoded)


def decode_records(data, is_32_bit):
    """Decode the content of a `.stack_sizes` section.

    Args:
        data (bytes):     the raw section content
        is_32_bit (bool): if the addresses are 4 bytes wide, otherwise 8 bytes

    Raises:
        MalformedInput: the data ends in the middle of a record

    Returns:
        list[(int, int)]: the address and the stack size of each record in the order
                          of the section
    """
    address_format = _address_format(is_32_bit)
    address_size = struct.calcsize(address_format)
    end = len(data)
    offset = 0
    records = []

    while offset < end:
        if offset + address_size > end:
            raise MalformedInput(
                "truncated address at offset {} of .stack_sizes".format(offset)
            )

        (address,) = struct.unpack_from(address_format, data, offset)
        stack, offset = decode_uleb128(data, offset + address_size)
        records.append((address, stack))

    return records


def encode_records(records, is_32_bit):
    """Encode records in the layout of a `.stack_sizes` section.

    Args:
        records (list[(int, int)]): the address and the stack size of each record
        is_32_bit (bool):           write 4 byte addresses, otherwise 8 bytes

    Returns:
        bytes: the section content
    """
    address_format = _address_format(is_32_bit)
    data = bytearray()

    for address, stack in records:
        data += struct.pack(address_format, address)
        data += encode_uleb128(stack)

    return bytes(data)
