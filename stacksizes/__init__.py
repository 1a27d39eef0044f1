# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Print the stack usage LLVM emits into the `.stack_sizes` section of ELF files."""

from .analyze import analyze, analyze_executable, analyze_object
from .datastructure import Function, Functions
from .errors import (
    InconsistentData,
    MalformedInput,
    StackSizesError,
    UnsupportedFormat,
)
from .records import decode_records, encode_records
from .symbols import is_tag

__version__ = "0.1"
