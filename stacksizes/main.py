#!/bin/python3

# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""The entrance points when executing the tools from a shell."""

import argparse
import sys

from . import __version__
from .build import Cargo, Compiler
from .stacksizes import StackSizes


def print_documentation():
    """Print the tool documentation."""
    # All printed lines are < 83 characters long.
    print(
        "stack-sizes - prints the stack usage of each function of an ELF file\n"
        "\n"
        "DESCRIPTION\n"
        "        LLVM based compilers can emit the stack usage of every function into\n"
        "        the .stack_sizes section of the ELF file:\n"
        "            • clang -fstack-size-section ...\n"
        "            • rustc -Z emit-stack-sizes ...\n"
        "\n"
        "        This tool reads that section and assigns each record to the function\n"
        "        it belongs to. Nothing is computed, the values are printed as the\n"
        "        compiler emitted them. The stack usage of called functions is NOT\n"
        "        included.\n"
        "\n"
        "        Executables and shared libraries are resolved through the addresses\n"
        "        of the symbol table. Object files are resolved through the relocation\n"
        "        section which follows the .stack_sizes section.\n"
        "\n"
        "        The lowest address bit of ARM Thumb functions is handled\n"
        "        transparently. Mapping symbols like $t, $a and $d are ignored.\n"
        "\n"
        "STACK TABLE OF EXECUTABLES\n"
        "         +- the start address of the function\n"
        "         |\n"
        "         |            +- bytes the function itself uses on the stack\n"
        "         |            |\n"
        "         |            |     +- the code size of the function (--show-size)\n"
        "         |            |     |\n"
        "         |            |     |     +- the (demangled) function name\n"
        "         |            |     |     |\n"
        "        address     stack  size  name\n"
        "        0x00008000     16    32  main\n"
        "\n"
        '        With "--all" functions without stack usage information are listed\n'
        '        with "-" and the undefined functions are listed last.\n'
        "\n"
        "STACK TABLE OF OBJECT FILES\n"
        "        Object files are not linked, so there are no addresses yet.\n"
        "\n"
        "        stack  name\n"
        "           48  foo\n"
        "\n"
        "STACK-SIZES-CC\n"
        "        stack-sizes-cc runs a compiler with the flag enabling the .stack_sizes\n"
        "        section and prints the stack table of the resulting file:\n"
        "\n"
        "        stack-sizes-cc -- clang --target=thumbv7m-none-eabi -c foo.c\n"
        "\n"
        "CARGO-STACK-SIZES\n"
        "        cargo stack-sizes builds a binary or an example of a Cargo project\n"
        "        with stack-sizes-rustc as rustc and prints the stack table of it:\n"
        "\n"
        "        cargo stack-sizes --bin app --release --target thumbv7m-none-eabi\n"
        "\n"
        "        The nightly toolchain is required for -Z emit-stack-sizes.\n"
        "\n"
        "EXIT STATUS\n"
        "        •   0 OK\n"
        "        •   1 input error\n"
        "        •   2 no stack usage information\n"
        "        • 130 user abort the program\n"
        "\n"
        "        stack-sizes-cc and cargo stack-sizes exit with the status of the\n"
        "        compiler or cargo if it fails.",
    )


class DocumentationAction(argparse.Action):
    """The action class for printing the documentation."""

    def __init__(self, option_strings, dest=None, default=None, help=None):
        """Create the object."""
        super().__init__(
            option_strings=option_strings,
            dest=dest,
            default=default,
            nargs=0,
            help=help,
        )

    def __call__(self, parser, namespace, values, option_string=None):
        """Execute the action."""
        print_documentation()
        parser.exit()


def add_output_arguments(parser):
    """Add the arguments shared by all tools.

    Args:
        parser (argparse.ArgumentParser): the parser
    """
    parser.add_argument(
        "-D",
        "--documentation",
        action=DocumentationAction,
        help="print the tool documentation",
    )
    parser.add_argument(
        "-a",
        "--all",
        action="store_true",
        help="list functions without stack usage information, too",
    )
    parser.add_argument(
        "-n", "--no-demangle", action="store_true", help="print mangled names"
    )
    parser.add_argument("-f", "--cxxfilt", help="path to or name of the c++filt")
    parser.add_argument("-c", "--no-color", action="store_true", help="suppress color")
    parser.add_argument("--show-header", action="store_true", help="show header line")
    parser.add_argument(
        "-W", "--no-warnings", action="store_true", help="suppress warnings"
    )
    parser.add_argument(
        "-d", "--debug", action="store_true", help="show debug messages"
    )
    parser.add_argument(
        "-q", "--quiet", action="store_true", help="only print warnings and errors"
    )
    parser.add_argument(
        "-v", "--version", action="version", version="%(prog)s " + __version__
    )


def create_stack_sizes(args):
    """Create the StackSizes object from the parsed arguments.

    Raises:
        ValueError: the given c++filt couldn't be found
    """
    return StackSizes(
        debug=args.debug,
        warn=not args.no_warnings,
        quiet=args.quiet,
        color=not args.no_color,
        demangle=not args.no_demangle,
        cxxfilt=args.cxxfilt,
    )


def report(stack_sizes, binary, args, summary=False, show_size=False):
    """Analyze and print the binary.

    Returns:
        int: the exit status
    """
    try:
        stack_sizes.parse(binary)
    except ValueError:
        return 1

    if not stack_sizes.check_stack_data():
        return 2

    if summary:
        print(stack_sizes.get_stack_limit())
    else:
        stack_sizes.print_stack_table(args.show_header, args.all, show_size)

    return 0


def main():
    """Entry point of stack-sizes for the command prompt."""
    parser = argparse.ArgumentParser(
        prog="stack-sizes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Print the stack usage of each function in an ELF file.",
        epilog="Note: The stack usage of called functions is not included!\n",
    )
    add_output_arguments(parser)
    parser.add_argument("binary", help="the ELF file to analyze")
    parser.add_argument(
        "-s", "--summary", action="store_true", help="only print the maximum stack size"
    )
    parser.add_argument(
        "--show-size", action="store_true", help="show the code size column"
    )

    args = parser.parse_args()

    try:
        stack_sizes = create_stack_sizes(args)
        status = report(stack_sizes, args.binary, args, args.summary, args.show_size)
    except ValueError:
        exit(1)
    except KeyboardInterrupt:
        exit(130)

    exit(status)


def main_cc():
    """Entry point of stack-sizes-cc for the command prompt."""
    parser = argparse.ArgumentParser(
        prog="stack-sizes-cc",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Compile with stack usage information and print it.",
        epilog="All arguments after '--' are the compiler and its arguments.\n",
    )
    add_output_arguments(parser)
    parser.add_argument("command", nargs=argparse.REMAINDER, help="the compiler call")

    args = parser.parse_args()

    command = args.command
    if command and command[0] == "--":
        command = command[1:]

    try:
        stack_sizes = create_stack_sizes(args)
        compiler = Compiler(command)
        artifact = compiler.output()
    except ValueError as error:
        if str(error):
            parser.error(str(error))
        exit(1)

    try:
        returncode = stack_sizes.compile(compiler)
        if returncode != 0:
            exit(returncode if returncode > 0 else 101)

        status = report(stack_sizes, artifact, args)
    except ValueError:
        exit(1)
    except KeyboardInterrupt:
        exit(130)

    exit(status)


def main_cargo():
    """Entry point of cargo-stack-sizes for the command prompt.

    Cargo runs the tool as `cargo-stack-sizes stack-sizes ...` for `cargo stack-sizes`.
    """
    parser = argparse.ArgumentParser(
        prog="cargo-stack-sizes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description="Build a Cargo binary with stack usage information and print it.",
        epilog="All arguments after '--' are passed to the top rustc invocation.\n",
    )
    add_output_arguments(parser)
    parser.add_argument("--bin", help="the binary to build")
    parser.add_argument("--example", help="the example to build")
    parser.add_argument("--release", action="store_true", help="build in release mode")
    parser.add_argument("--target", help="the target triple to build for")
    parser.add_argument(
        "-s", "--summary", action="store_true", help="only print the maximum stack size"
    )
    parser.add_argument(
        "--show-size", action="store_true", help="show the code size column"
    )
    parser.add_argument("args", nargs=argparse.REMAINDER, help="the rustc arguments")

    argv = sys.argv[1:]
    if argv and argv[0] == "stack-sizes":
        argv = argv[1:]

    args = parser.parse_args(argv)

    rustc_args = args.args
    if rustc_args and rustc_args[0] == "--":
        rustc_args = rustc_args[1:]

    try:
        stack_sizes = create_stack_sizes(args)
        cargo = Cargo(args.bin, args.example, args.release, args.target, rustc_args)
        artifact = cargo.output()
    except ValueError as error:
        if str(error):
            parser.error(str(error))
        exit(1)

    try:
        returncode = stack_sizes.compile(cargo)
        if returncode != 0:
            exit(returncode if returncode > 0 else 101)

        status = report(stack_sizes, artifact, args, args.summary, args.show_size)
    except ValueError:
        exit(1)
    except KeyboardInterrupt:
        exit(130)

    exit(status)


def main_rustc():
    """Entry point of stack-sizes-rustc, the rustc replacement used by cargo.

    All arguments are passed to rustc together with the flag enabling the stack usage
    information. Nothing is printed besides the output of rustc.
    """
    compiler = Compiler(["rustc"] + sys.argv[1:])

    try:
        returncode = compiler.run()
    except OSError as error:
        print(
            "stack-sizes-rustc: couldn't run rustc: {}".format(error), file=sys.stderr
        )
        exit(101)
    except KeyboardInterrupt:
        exit(130)

    exit(0 if returncode == 0 else 101)


if __name__ == "__main__":
    main()
