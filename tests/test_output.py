"""Test cases for methods and classes defined in output.py file."""

import itertools

import pytest

from stacksizes.output import Color, Message, MessageType, format_address


@pytest.mark.parametrize(
    "prefix, color",
    itertools.product(
        [None, "prefix", "test", ""],
        [None, Color.YELLOW, Color.RED, Color.BOLD],
    ),
)
def test_message_type__init__(prefix, color):
    """Test MessageType.__init__()."""
    message = MessageType(prefix, color)
    assert message.prefix == prefix
    assert message.color == color


def test_message_types():
    """Test the message types are distinct and only INFO has no prefix."""
    kinds = [Message.DEBUG, Message.ERROR, Message.INFO, Message.WARN]

    assert len(set(map(id, kinds))) == 4
    assert Message.INFO.prefix is None
    assert Message.ERROR.prefix == "Error: "


@pytest.mark.parametrize(
    "address, have_32_bit_addresses, expected",
    [
        # fmt: off
        (0x0,        True,  "0x00000000"),
        (0x101,      True,  "0x00000101"),
        (0xFFFFFFFF, True,  "0xffffffff"),
        (0x0,        False, "0x0000000000000000"),
        (0x401000,   False, "0x0000000000401000"),
        # fmt: on
    ],
)
def test_format_address(address, have_32_bit_addresses, expected):
    """Test format_address() pads the address to the width of the address space."""
    assert format_address(address, have_32_bit_addresses) == expected
