# SPDX-FileCopyrightText: 2022 CETITEC GmbH <https://www.cetitec.com>
#
# SPDX-License-Identifier: GPL-2.0-or-later

"""Run a compiler with the flag which lets LLVM emit the `.stack_sizes` section."""

import subprocess
from os import environ
from os.path import abspath, basename, dirname, isfile, join, splitext

# rustc needs the unstable flag, clang and compatible drivers the -f option
RUSTC_FLAGS = ["-Z", "emit-stack-sizes"]
CC_FLAGS = ["-fstack-size-section"]

# the rustc replacement cargo runs, see main_rustc()
RUSTC_WRAPPER = "stack-sizes-rustc"

SOURCE_SUFFIXES = [".c", ".cc", ".cpp", ".cxx", ".c++", ".m", ".mm", ".s", ".S", ".rs"]


def is_rustc(compiler):
    """Return if the compiler is rustc (or a rustc wrapper named like it)."""
    name = basename(compiler)
    return name == "rustc" or name.endswith("-rustc")


def get_flags(compiler):
    """Return the flags enabling the `.stack_sizes` section for the compiler.

    Args:
        compiler (str): the path to or name of the compiler

    Returns:
        list[str]: the flags
    """
    if is_rustc(compiler):
        return list(RUSTC_FLAGS)
    return list(CC_FLAGS)


class Compiler:
    """A compiler invocation.

    Attributes:
        compiler (str):   the path to or name of the compiler
        args (list[str]): the arguments given by the user
    """

    compiler = None
    args = None

    def __init__(self, command):
        """Create the object.

        Args:
            command (list[str]): the compiler followed by its arguments

        Raises:
            ValueError: the command is empty
        """
        if not command:
            raise ValueError("no compiler command given")

        self.compiler = command[0]
        self.args = list(command[1:])

    def command_line(self):
        """Return the command line with the stack size flags added.

        Returns:
            list[str]: the command line
        """
        flags = get_flags(self.compiler)
        # already enabled by the user
        if flags[-1] in self.args:
            flags = []
        return [self.compiler] + self.args + flags

    def output(self):
        """Determine the file the compiler will write.

        Raises:
            ValueError: the output cannot be determined

        Returns:
            str: the path of the artifact
        """
        args = self.args

        for position, arg in enumerate(args):
            if arg == "-o":
                if position + 1 >= len(args):
                    raise ValueError("missing file name after '-o'")
                return args[position + 1]
            if arg.startswith("-o") and not is_rustc(self.compiler):
                return arg[2:]

        sources = [
            arg
            for arg in args
            if not arg.startswith("-") and splitext(arg)[1] in SOURCE_SUFFIXES
        ]

        if "-c" in args and len(sources) == 1:
            return splitext(basename(sources[0]))[0] + ".o"

        if is_rustc(self.compiler):
            raise ValueError("cannot determine the output of rustc, use '-o'")

        if "-c" not in args:
            return "a.out"

        raise ValueError("cannot determine the output file, use '-o'")

    def run(self):
        """Run the compiler.

        Returns:
            int: the exit status of the compiler
        """
        return subprocess.call(self.command_line())


def find_cargo_project(path):
    """Find the directory holding the target directory of a Cargo project.

    The nearest `Cargo.toml` above the path belongs to the package. If one of the
    manifests further up declares a workspace, its directory is used instead. All
    members of a workspace share its target directory.

    Args:
        path (str): the directory to start the search in

    Returns:
        str: the project directory or None if there is no `Cargo.toml`
    """
    path = abspath(path)
    project = None

    while True:
        manifest = join(path, "Cargo.toml")
        if isfile(manifest):
            if project is None:
                project = path
            else:
                with open(manifest, encoding="utf-8") as file:
                    if "[workspace]" in file.read():
                        project = path

        parent = dirname(path)
        if parent == path:
            return project
        path = parent


class Cargo:
    """A `cargo rustc` invocation which builds a binary or an example.

    rustc is replaced by a wrapper through the RUSTC environment variable, which adds
    the flags enabling the `.stack_sizes` section.

    Attributes:
        compiler (str):   the name of the cargo binary
        name (str):       the name of the binary or the example
        example (bool):   if an example is built instead of a binary
        release (bool):   build in release mode
        target (str):     the target triple or None for the host
        args (list[str]): the arguments passed to the top rustc invocation
        rustc (str):      the rustc wrapper
    """

    compiler = "cargo"
    name = None
    example = False
    release = False
    target = None
    args = None
    rustc = None

    def __init__(
        self,
        bin=None,
        example=None,
        release=False,
        target=None,
        args=None,
        rustc=RUSTC_WRAPPER,
    ):
        """Create the object.

        Args:
            bin (str, optional):     the binary to build. Defaults to None.
            example (str, optional): the example to build. Defaults to None.
            release (bool, optional): build in release mode. Defaults to False.
            target (str, optional):  the target triple. Defaults to None.
            args (list[str], optional):
                The arguments passed to the top rustc invocation. Defaults to None.
            rustc (str, optional):
                The rustc wrapper. Defaults to RUSTC_WRAPPER.

        Raises:
            ValueError: neither or both of bin and example are given
        """
        if bool(bin) == bool(example):
            raise ValueError("exactly one of '--bin' or '--example' must be given")

        self.name = bin or example
        self.example = bool(example)
        self.release = release
        self.target = target
        self.args = list(args) if args else []
        self.rustc = rustc

    def command_line(self):
        """Return the cargo command line.

        Returns:
            list[str]: the command line
        """
        cmd = [self.compiler, "rustc"]
        if self.target:
            cmd += ["--target", self.target]
        cmd += ["--example" if self.example else "--bin", self.name]
        if self.release:
            cmd.append("--release")
        return cmd + ["--"] + self.args

    def environment(self):
        """Return the environment of cargo with RUSTC set to the wrapper."""
        env = dict(environ)
        env["RUSTC"] = self.rustc
        return env

    def output(self, cwd="."):
        """Determine the artifact cargo will write.

        Args:
            cwd (str, optional): the directory cargo runs in. Defaults to ".".

        Raises:
            ValueError: the directory isn't part of a Cargo project

        Returns:
            str: the path of the artifact
        """
        target_dir = environ.get("CARGO_TARGET_DIR")

        if target_dir:
            target_dir = join(cwd, target_dir)
        else:
            project = find_cargo_project(cwd)
            if project is None:
                raise ValueError("couldn't find 'Cargo.toml' in '{}'".format(cwd))
            target_dir = join(project, "target")

        path = target_dir
        if self.target:
            path = join(path, self.target)
        path = join(path, "release" if self.release else "debug")
        if self.example:
            path = join(path, "examples")

        return join(path, self.name)

    def run(self):
        """Run cargo.

        Returns:
            int: the exit status of cargo
        """
        return subprocess.call(self.command_line(), env=self.environment())
