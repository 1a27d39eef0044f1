# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Exceptions raised while analyzing an ELF file."""


class StackSizesError(Exception):
    """The base class of all analysis errors.

    An analysis never returns partial results. If one of these exceptions is raised
    the whole input has to be considered unusable.
    """


class MalformedInput(StackSizesError):
    """A required section is missing or has the wrong shape.

    This includes a `.stack_sizes` byte stream which doesn't end exactly at the
    section boundary.
    """


class InconsistentData(StackSizesError):
    """The symbol table, the sections and the relocations don't fit together.

    Usually a sign of a toolchain bug or a version mismatch.
    """


class UnsupportedFormat(StackSizesError):
    """The ELF type doesn't fit the requested analysis."""
