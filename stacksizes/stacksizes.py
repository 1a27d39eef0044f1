# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Read an ELF file, analyze its stack usage information and print it."""

import subprocess
from os import environ
from os.path import isfile

from .analyze import analyze
from .datastructure import Functions
from .errors import StackSizesError
from .output import Color, Message, format_address

PATH = [path + "/" for path in ["."] + environ.get("PATH", "").split(":") if path]

CXXFILT = "c++filt"


class StackSizes:
    """Infrastructure to print the stack usage of each function of a binary.

    Attributes:
        color (bool):        show messages in color
        debug (bool):        show debug messages
        quiet (bool):        suppress informative messages
        warn (bool):         show warnings
        demangle (bool):     demangle the function names
        cxxfilt_path (str):  the path to the c++filt binary
        binary (str):        the path of the analyzed binary
        functions (Functions):
            the functions of an executable or shared library, None for object files
        table (dict[str, int]):
            the stack usage by name of an object file, None for executables
    """

    color = None
    debug = None
    quiet = None
    warn = None
    demangle = None

    cxxfilt_path = None

    binary = None
    functions = None
    table = None

    def __init__(
        self,
        debug=False,
        warn=True,
        quiet=False,
        color=False,
        demangle=True,
        cxxfilt=None,
    ):
        """Create the object.

        Args:
            debug (bool, optional):
                Show debug messages. Defaults to False.
            warn (bool, optional):
                Show warnings. Defaults to True.
            quiet (bool, optional):
                Suppress informative messages. Error, debug and warn messages are not
                affected by this option. Defaults to False.
            color (bool, optional):
                Show messages in color. Defaults to False.
            demangle (bool, optional):
                Demangle the function names with c++filt. Defaults to True.
            cxxfilt (str, optional):
                the path to or name of c++filt. If not set, the program will search it
                in PATH and print the mangled names if it cannot be found. Defaults to
                None.

        Raises:
            ValueError: the given c++filt couldn't be found
        """
        self.debug = debug
        self.color = color
        self.quiet = quiet
        self.warn = warn
        self.demangle = demangle
        self._demangled = {}

        if demangle:
            self._init_cxxfilt(cxxfilt)

    def _init_cxxfilt(self, cxxfilt):
        if cxxfilt:
            self.cxxfilt_path = self._get_tool_path(cxxfilt)
        else:
            self.cxxfilt_path = self._find_tool(CXXFILT)

        if self.cxxfilt_path:
            self._print(Message.DEBUG, "Using '" + self._bold(self.cxxfilt_path) + "'")
        else:
            self._print(
                Message.WARN,
                "Couldn't find '" + self._bold(CXXFILT) + "'. Names stay mangled.",
            )
            self.demangle = False

    def _bold(self, msg):
        if self.color:
            return Color.BOLD + msg + Color.END
        else:
            return msg

    def _dark(self, msg):
        if self.color:
            return Color.DARK + msg + Color.END
        else:
            return msg

    def _func(self, msg):
        if self.color:
            return Color.CYAN + msg + Color.END
        else:
            return msg

    def _find_tool(self, tool):
        for dir in [""] + PATH:
            path = dir + tool
            if isfile(path):
                return path

        return None

    def _get_tool_path(self, tool):
        path = self._find_tool(tool)
        if path:
            return path

        self._print(Message.ERROR, "Couldn't find '" + self._bold(tool) + "'")
        raise ValueError()

    def _print(self, kind, *objects, sep=" ", end="\n", prefix=True):
        if kind is Message.DEBUG:
            condition = self.debug
        elif kind is Message.ERROR:
            condition = True
        elif kind is Message.WARN:
            condition = self.warn
        else:
            condition = not self.quiet

        if condition:
            if prefix and kind.prefix:
                if self.color and kind.color:
                    text = kind.color + kind.prefix + Color.END
                else:
                    text = kind.prefix
                print(text, end="")
            print(*objects, sep=sep, end=end)

    def _demangle_names(self, names):
        """Demangle the names with a single c++filt call.

        Names which couldn't be demangled are kept.

        Args:
            names (list[str]): the mangled names

        Returns:
            dict[str, str]: the demangled names by the mangled names
        """
        missing = sorted(set(names) - set(self._demangled))

        if self.demangle and missing:
            cmd = [self.cxxfilt_path]
            output = (
                subprocess.Popen(
                    cmd,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                )
                .communicate("\n".join(missing).encode("utf-8"))[0]
                .decode("utf-8")
            )
            lines = output.splitlines()

            if len(lines) == len(missing):
                self._demangled.update(zip(missing, lines))
            else:
                self._print(
                    Message.DEBUG,
                    "Unexpected output of '" + self._bold(self.cxxfilt_path) + "'.",
                )

        return {name: self._demangled.get(name, name) for name in names}

    def parse(self, binary):
        """Analyze the stack usage information of a binary.

        Args:
            binary (str): the path to the ELF file

        Raises:
            ValueError: the file couldn't be read or analyzed
        """
        self.binary = binary
        self.functions = None
        self.table = None

        self._print(Message.DEBUG, "Analyze '" + self._bold(binary) + "'...")

        try:
            with open(binary, "rb") as file:
                data = file.read()
            result = analyze(data)
        except OSError as error:
            self._print(Message.ERROR, "Couldn't read '{}': {}".format(binary, error))
            raise ValueError() from error
        except StackSizesError as error:
            self._print(Message.ERROR, "{}: {}".format(binary, error))
            raise ValueError() from error

        if isinstance(result, Functions):
            self.functions = result
            self._print(
                Message.DEBUG,
                "Found {} defined and {} undefined functions".format(
                    len(result), len(result.undefined)
                ),
            )
        else:
            self.table = result
            self._print(
                Message.DEBUG, "Found {} stack usage records".format(len(result))
            )

    def compile(self, compiler):
        """Run the compiler with the flags enabling the stack usage information.

        Args:
            compiler (Compiler): the compiler invocation

        Raises:
            ValueError: the compiler couldn't be executed

        Returns:
            int: the exit status of the compiler
        """
        self._print(Message.DEBUG, " ".join(compiler.command_line()))

        try:
            returncode = compiler.run()
        except OSError as error:
            self._print(
                Message.ERROR,
                "Couldn't run '{}': {}".format(self._bold(compiler.compiler), error),
            )
            raise ValueError() from error

        if returncode != 0:
            self._print(
                Message.ERROR,
                "'{}' failed with exit status {}".format(
                    self._bold(compiler.compiler), returncode
                ),
            )

        return returncode

    def has_stack_data(self):
        """Return if the binary contains any stack usage information."""
        if self.functions is not None:
            return self.functions.has_stack_data
        return bool(self.table)

    def get_stack_limit(self):
        """Get the largest stack usage of a single function.

        Returns:
            int: the largest stack usage
        """
        if self.functions is not None:
            return self.functions.limit()
        return max(self.table.values(), default=0)

    def check_stack_data(self):
        """Warn if the binary doesn't contain stack usage information.

        Returns:
            bool: if the binary contains stack usage information
        """
        if self.has_stack_data():
            return True

        self._print(
            Message.WARN,
            "'" + self._bold(self.binary) + "' contains no stack usage information.",
        )
        return False

    def print_stack_table(self, show_header=False, show_all=False, show_size=False):
        """Print the functions and their stack usage.

        Args:
            show_header (bool, optional):
                Show the column headers of the table. Defaults to False.
            show_all (bool, optional):
                Show functions without stack usage information and undefined
                functions as well. Defaults to False.
            show_size (bool, optional):
                Show the code size of each function. Only available for executables.
                Defaults to False.
        """
        if self.functions is not None:
            self._print_function_table(show_header, show_all, show_size)
        elif self.table is not None:
            self._print_object_table(show_header)

    def _print_object_table(self, show_header):
        rows = sorted(self.table.items(), key=lambda item: (-item[1], item[0]))
        names = self._demangle_names([name for name, _ in rows])

        stack_len = 5 if show_header else 1
        for _, stack in rows:
            stack_len = max(len(str(stack)), stack_len)

        if show_header:
            self._print(Message.INFO, "{:>{}}  {}".format("stack", stack_len, "name"))

        for name, stack in rows:
            self._print(
                Message.INFO,
                "{}  {}".format(
                    self._bold("{:>{width}}".format(stack, width=stack_len)),
                    self._func(names[name]),
                ),
            )

    def _print_function_table(self, show_header, show_all, show_size):
        have_32_bit = self.functions.have_32_bit_addresses
        functions = [
            function
            for function in self.functions.ordered(include_undefined=show_all)
            if show_all or function.stack is not None
        ]

        names = self._demangle_names(
            [name for function in functions for name in function.names]
        )

        address_len = len(format_address(0, have_32_bit))
        stack_len = 5 if show_header else 1
        size_len = 4 if show_header else 1

        for function in functions:
            if function.stack is not None:
                stack_len = max(len(str(function.stack)), stack_len)
            size_len = max(len(str(function.size)), size_len)

        if show_header:
            size = "{:>{}}  ".format("size", size_len) if show_size else ""
            self._print(
                Message.INFO,
                "{:<{}}  {:>{}}  {}{}".format(
                    "address", address_len, "stack", stack_len, size, "name"
                ),
            )

        for function in functions:
            if function.address is None:
                # all names of the undefined group get their own line
                rows = [("undefined", name) for name in function.names]
            else:
                address = format_address(function.address, have_32_bit)
                rows = [(address, function.name)]

                if len(function.names) > 1:
                    self._print(
                        Message.DEBUG,
                        "Aliases of {}: {}".format(
                            self._func(names[function.name]),
                            ", ".join(names[name] for name in function.names[1:]),
                        ),
                    )

            stack = "-" if function.stack is None else str(function.stack)
            stack = self._bold("{:>{width}}".format(stack, width=stack_len))
            size = ""
            if show_size:
                size = self._dark("{:>{width}}".format(function.size, width=size_len))
                size += "  "

            for address, name in rows:
                self._print(
                    Message.INFO,
                    "{:<{width}}  {}  {}{}".format(
                        address,
                        stack,
                        size,
                        self._func(names[name]),
                        width=address_len,
                    ),
                )
