# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""The data structure holding the stack usage of each function of a binary."""

THUMB_BIT = 1


class Function:
    """A function of a binary.

    All symbols sharing the start address of the function are collected as names of
    the same function.

    Attributes:
        address (int):    the start address of the function as found in the symbol
                          table (may carry the Thumb bit). None for the group of
                          undefined functions.
        names (list[str]): the sorted names of the function and its aliases
        size (int):       the code size of the function in bytes
        stack (int):      the stack usage of the function in bytes. None if the
                          compiler didn't emit any stack usage for the function.
    """

    address = None
    names = None
    size = 0
    stack = None

    def __init__(self, address, names=None, size=0, stack=None):
        """Create the object.

        Args:
            address (int):               the start address of the function
            names (list[str], optional): the names of the function. Defaults to None.
            size (int, optional):        the code size of the function. Defaults to 0.
            stack (int, optional):       the stack usage of the function. Defaults
                                         to None.
        """
        self.address = address
        self.names = list(names) if names else []
        self.size = size
        self.stack = stack

    @property
    def name(self):
        """Return the first name of the function or None if it has no name."""
        return self.names[0] if self.names else None

    def add_name(self, name):
        """Add a name if the function doesn't have it yet.

        Args:
            name (str): the symbol name

        Returns:
            bool: if the name was added
        """
        if name in self.names:
            return False
        self.names.append(name)
        return True

    def __eq__(self, other):
        """Return if all attributes of both functions are equal."""
        if not isinstance(other, Function):
            return NotImplemented
        return (
            self.address == other.address
            and self.names == other.names
            and self.size == other.size
            and self.stack == other.stack
        )

    def __ne__(self, other):
        """Return not self.__eq__(other)."""
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __repr__(self):
        """Return a readable representation of the function."""
        address = "None" if self.address is None else hex(self.address)
        return "Function({}, {}, size={}, stack={})".format(
            address, self.names, self.size, self.stack
        )


class Functions:
    """The functions of an executable or a shared library.

    Attributes:
        have_32_bit_addresses (bool): if the binary uses 32 bit addresses
        undefined (set[str]):         names of functions without an address, which are
                                      resolved when the binary is loaded
        defined (dict[int, Function]): the defined functions by their start address in
                                      ascending order
    """

    have_32_bit_addresses = False
    undefined = None
    defined = None

    def __init__(self, have_32_bit_addresses, undefined, defined):
        """Create the object.

        Args:
            have_32_bit_addresses (bool):  if the binary uses 32 bit addresses
            undefined (set[str]):          the names of the undefined functions
            defined (dict[int, Function]): the defined functions by their address
        """
        self.have_32_bit_addresses = have_32_bit_addresses
        self.undefined = set(undefined)
        self.defined = {address: defined[address] for address in sorted(defined)}

    def __contains__(self, address):
        """Return if a function is defined at exactly this address."""
        return address in self.defined

    def __eq__(self, other):
        """Return if both results are structurally identical."""
        if not isinstance(other, Functions):
            return NotImplemented
        return (
            self.have_32_bit_addresses == other.have_32_bit_addresses
            and self.undefined == other.undefined
            and list(self.defined.items()) == list(other.defined.items())
        )

    def __getitem__(self, address):
        """Return the function defined at exactly this address."""
        return self.defined[address]

    def __iter__(self):
        """Iterate over the defined functions in address order."""
        return iter(self.defined.values())

    def __len__(self):
        """Return the number of defined functions."""
        return len(self.defined)

    def __repr__(self):
        """Return repr(list(self.defined.values()))."""
        return repr(list(self.defined.values()))

    @property
    def has_stack_data(self):
        """Return if any defined function carries stack usage information."""
        return any(function.stack is not None for function in self.defined.values())

    def find(self, address, without_stack=False):
        """Search the function at the address.

        The address is tried as it is first and with the Thumb bit toggled second.

        Args:
            address (int):                  the function start address
            without_stack (bool, optional):
                Skip functions which already carry stack usage information. Defaults
                to False.

        Returns:
            Function: the function or None
        """
        for candidate in (address, address ^ THUMB_BIT):
            function = self.defined.get(candidate)
            if function is None:
                continue
            if without_stack and function.stack is not None:
                continue
            return function

        return None

    def limit(self):
        """Return the largest stack usage of all functions.

        Returns:
            int: the largest stack usage or 0 if there is no stack usage information
        """
        limit = 0

        for function in self.defined.values():
            if function.stack is not None:
                limit = max(limit, function.stack)

        return limit

    def ordered(self, include_undefined=True):
        """Return the functions in reporting order.

        Functions with stack usage come first with the largest stack usage first.
        Functions with the same stack usage keep their address order. Functions without
        stack usage follow in address order. The undefined functions are appended as a
        single function without address.

        Args:
            include_undefined (bool, optional):
                Append the group of undefined functions. Defaults to True.

        Returns:
            list[Function]: the functions
        """
        functions = list(self.defined.values())

        with_stack = [function for function in functions if function.stack is not None]
        # sort() is stable, so equal stacks keep the address order
        with_stack.sort(key=lambda function: function.stack, reverse=True)

        without_stack = [function for function in functions if function.stack is None]

        result = with_stack + without_stack

        if include_undefined and self.undefined:
            result.append(Function(address=None, names=sorted(self.undefined)))

        return result
