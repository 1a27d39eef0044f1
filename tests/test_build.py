"""Test cases for methods and classes defined in build.py file."""

import pytest

from stacksizes import build
from stacksizes.build import Cargo, Compiler, find_cargo_project, get_flags, is_rustc


@pytest.mark.parametrize(
    "compiler, expected",
    [
        # fmt: off
        ("rustc",                          True),
        ("/usr/bin/rustc",                 True),
        ("x86_64-unknown-linux-gnu-rustc", True),
        ("clang",                          False),
        ("/opt/llvm/bin/clang++",          False),
        ("rustc-wrapper",                  False),
        # fmt: on
    ],
)
def test_is_rustc(compiler, expected):
    """Test is_rustc()."""
    assert is_rustc(compiler) == expected


def test_get_flags():
    """Test get_flags() returns a copy of the flags."""
    flags = get_flags("clang")
    flags.append("-O2")

    assert get_flags("clang") == ["-fstack-size-section"]
    assert get_flags("rustc") == ["-Z", "emit-stack-sizes"]


def test_compiler_without_command():
    """Test Compiler.__init__() with an empty command."""
    with pytest.raises(ValueError):
        Compiler([])


@pytest.mark.parametrize(
    "command, expected",
    [
        # fmt: off
        (["clang", "-c", "foo.c"],
         ["clang", "-c", "foo.c", "-fstack-size-section"]),
        (["clang", "-fstack-size-section", "-c", "foo.c"],
         ["clang", "-fstack-size-section", "-c", "foo.c"]),
        (["rustc", "--emit=obj", "main.rs"],
         ["rustc", "--emit=obj", "main.rs", "-Z", "emit-stack-sizes"]),
        (["rustc", "-Z", "emit-stack-sizes", "main.rs"],
         ["rustc", "-Z", "emit-stack-sizes", "main.rs"]),
        (["clang"],
         ["clang", "-fstack-size-section"]),
        # fmt: on
    ],
)
def test_compiler_command_line(command, expected):
    """Test Compiler.command_line() adds the flags once."""
    assert Compiler(command).command_line() == expected


@pytest.mark.parametrize(
    "command, expected",
    [
        # fmt: off
        (["clang", "-c", "foo.c", "-o", "bar.o"],           "bar.o"),
        (["clang", "-c", "foo.c", "-obar.o"],               "bar.o"),
        (["clang", "-o", "out/app", "main.c", "util.c"],    "out/app"),
        (["clang", "-O2", "-c", "src/foo.c"],               "foo.o"),
        (["clang++", "-c", "widget.cpp"],                   "widget.o"),
        (["clang", "main.c"],                               "a.out"),
        (["clang", "-O2", "main.c", "util.c"],              "a.out"),
        (["rustc", "--emit=obj", "-o", "lib.o", "lib.rs"],  "lib.o"),
        # fmt: on
    ],
)
def test_compiler_output(command, expected):
    """Test Compiler.output() determines the file written by the compiler."""
    assert Compiler(command).output() == expected


@pytest.mark.parametrize(
    "command",
    [
        # fmt: off
        ["clang", "-c", "foo.c", "-o"],
        ["clang", "-c", "foo.c", "bar.c"],
        ["clang", "-c"],
        ["rustc", "main.rs"],
        # fmt: on
    ],
)
def test_compiler_output_unknown(command):
    """Test Compiler.output() when the output file cannot be determined."""
    with pytest.raises(ValueError):
        Compiler(command).output()


def test_compiler_run(monkeypatch):
    """Test Compiler.run() executes the extended command line."""
    calls = []

    def call(cmd):
        calls.append(cmd)
        return 3

    monkeypatch.setattr(build.subprocess, "call", call)

    assert Compiler(["clang", "-c", "foo.c"]).run() == 3
    assert calls == [["clang", "-c", "foo.c", "-fstack-size-section"]]


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        # fmt: off
        ({"bin": "app"},
         ["cargo", "rustc", "--bin", "app", "--"]),
        ({"example": "demo", "release": True},
         ["cargo", "rustc", "--example", "demo", "--release", "--"]),
        ({"bin": "app", "target": "thumbv7m-none-eabi", "args": ["-C", "lto"]},
         ["cargo", "rustc", "--target", "thumbv7m-none-eabi", "--bin", "app", "--",
          "-C", "lto"]),
        # fmt: on
    ],
)
def test_cargo_command_line(kwargs, expected):
    """Test Cargo.command_line()."""
    assert Cargo(**kwargs).command_line() == expected


@pytest.mark.parametrize(
    "kwargs", [{}, {"bin": "app", "example": "demo"}, {"bin": ""}]
)
def test_cargo_without_single_artifact(kwargs):
    """Test Cargo.__init__() requires exactly one binary or example."""
    with pytest.raises(ValueError):
        Cargo(**kwargs)


@pytest.mark.parametrize(
    "kwargs, expected",
    [
        # fmt: off
        ({"bin": "app"},                       "target/debug/app"),
        ({"bin": "app", "release": True},      "target/release/app"),
        ({"example": "demo"},                  "target/debug/examples/demo"),
        ({"bin": "app", "target": "thumbv7m-none-eabi", "release": True},
         "target/thumbv7m-none-eabi/release/app"),
        # fmt: on
    ],
)
def test_cargo_output(cargo_project, kwargs, expected):
    """Test Cargo.output() locates the artifact in the target directory."""
    assert Cargo(**kwargs).output() == str(cargo_project / expected)


def test_cargo_output_in_workspace(monkeypatch, tmp_path):
    """Test Cargo.output() uses the target directory of the workspace."""
    (tmp_path / "Cargo.toml").write_text('[workspace]\nmembers = ["app"]\n')
    (tmp_path / "app").mkdir()
    (tmp_path / "app" / "Cargo.toml").write_text('[package]\nname = "app"\n')
    monkeypatch.chdir(tmp_path / "app")
    monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)

    assert find_cargo_project(".") == str(tmp_path)
    assert Cargo(bin="app").output() == str(tmp_path / "target" / "debug" / "app")


def test_cargo_output_with_target_dir(monkeypatch, cargo_project, tmp_path):
    """Test Cargo.output() honors CARGO_TARGET_DIR."""
    monkeypatch.setenv("CARGO_TARGET_DIR", str(tmp_path / "build"))

    assert Cargo(bin="app").output() == str(tmp_path / "build" / "debug" / "app")


def test_cargo_output_without_project(monkeypatch, tmp_path):
    """Test Cargo.output() outside of a Cargo project."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)

    assert find_cargo_project(str(tmp_path)) is None
    with pytest.raises(ValueError):
        Cargo(bin="app").output()


def test_cargo_run(monkeypatch):
    """Test Cargo.run() replaces rustc by the wrapper."""
    calls = []

    def call(cmd, env=None):
        calls.append((cmd, env))
        return 101

    monkeypatch.setattr(build.subprocess, "call", call)
    monkeypatch.setenv("CARGO_TERM_COLOR", "never")

    assert Cargo(bin="app").run() == 101
    [(cmd, env)] = calls
    assert cmd == ["cargo", "rustc", "--bin", "app", "--"]
    assert env["RUSTC"] == "stack-sizes-rustc"
    assert env["CARGO_TERM_COLOR"] == "never"
