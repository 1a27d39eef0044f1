"""Fixtures shared by the test cases."""

import pytest

from elfbuilder import Symbol, build_executable, build_object


@pytest.fixture
def executable():
    r"""Build a 64 bit executable with stack usage information.

    0x1000  main     size 32  stack 16
    0x1040  helper   size 16  stack 48  (alias helper_alias)
    0x1080  unused   size  8  (no stack usage information)
            memcpy   undefined
    """
    symbols = [
        Symbol("main", 0x1000, 32),
        Symbol("helper", 0x1040, 16),
        Symbol("helper_alias", 0x1040, kind=0),
        Symbol("unused", 0x1080, 8),
        Symbol("memcpy", 0, 0, section=0),
    ]
    records = [(0x1000, 16), (0x1040, 48)]
    return build_executable(symbols, records)


@pytest.fixture
def object_file():
    """Build a 64 bit object file with the records foo: 32 and bar: 64."""
    symbols = [
        Symbol("foo", 0x0, 16),
        Symbol("bar", 0x10, 16),
    ]
    return build_object(symbols, [(0, 32), (0, 64)], [1, 2])


@pytest.fixture
def elf_file(tmp_path):
    """Write ELF content to a temporary file and return the path."""

    def write(data, name="binary.elf"):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)

    return write


@pytest.fixture
def cargo_project(monkeypatch, tmp_path):
    """Create a Cargo package and change into its source directory."""
    (tmp_path / "Cargo.toml").write_text('[package]\nname = "app"\n')
    (tmp_path / "src").mkdir()
    monkeypatch.chdir(tmp_path / "src")
    monkeypatch.delenv("CARGO_TARGET_DIR", raising=False)
    return tmp_path
