import os

import pytest

from errors import ContainerIOError, FormatError


def test_fmt_pct_and_bytes(m):
    assert m._fmt_pct(0, 0) == "0%"
    assert m._fmt_pct(50, 100).strip().endswith("%")
    assert m._fmt_pct(10, 10).strip().startswith("100")

    assert m._fmt_bytes(0) == "0.00 B"
    assert m._fmt_bytes(1024).endswith("KiB")


def test_progress_line_calls_bucketed(no_progress, m):
    p = m.ProgressLine("Compressing", "x.txt")
    p(0, 100)
    p(0, 100)
    p(10, 100)
    p(10, 100)
    p(19, 100)
    p(19, 100)
    p(5, 0)
    assert len(no_progress) == 3
    assert all(line.startswith("Compressing x.txt") for line in no_progress)


def test_cli_parser_accepts_subcommands(m):
    parser = m.get_parser()
    ns = parser.parse_args(["compress", "file1", "-o", "out.shuf"])
    assert ns.cmd == "compress" and ns.target == "file1" and ns.text is None
    ns = parser.parse_args(["c", "-t", "hello", "-o", "out.shuf", "-P"])
    assert ns.cmd == "c" and ns.text == "hello" and ns.no_progress
    ns = parser.parse_args(["decompress", "in.shuf", "-o", "dest"])
    assert ns.cmd in ("decompress", "d")
    ns = parser.parse_args(["i", "in.shuf", "--debug"])
    assert ns.cmd == "i" and ns.debug


def test_compress_file_and_decompress_file(sample_file, tmp_path, progress_recorder, m):
    arc = tmp_path / "a.shuf"
    back = tmp_path / "a.out"
    on_prog, calls = progress_recorder
    orig, comp = m.compress_file(str(sample_file), str(arc), on_progress=on_prog)
    assert orig == sample_file.stat().st_size
    assert comp == arc.stat().st_size
    assert calls[-1] == (orig, orig)

    assert m.decompress_file(str(arc), str(back)) == orig
    assert back.read_bytes() == sample_file.read_bytes()


def test_decompress_file_rejects_malformed_without_writing(tmp_path, m):
    arc = tmp_path / "bad.shuf"
    arc.write_bytes(b"SHUF\x01")
    with pytest.raises(FormatError):
        m.decompress_file(str(arc), str(tmp_path / "out"))
    assert not (tmp_path / "out").exists()


def test_write_into_missing_directory_is_io_error(tmp_path, m):
    with pytest.raises(ContainerIOError):
        m.compress_bytes_to_file(b"abc", str(tmp_path / "missing" / "x.shuf"))


def test_write_atomic_cleans_up_on_failure(tmp_path, monkeypatch, m):
    dest = tmp_path / "x.shuf"

    def broken_replace(src, dst):
        raise OSError(28, "No space left on device")

    monkeypatch.setattr(m.os, "replace", broken_replace)
    with pytest.raises(ContainerIOError):
        m._write_atomic(str(dest), b"payload")
    assert os.listdir(tmp_path) == []


def test_write_atomic_replaces_existing(tmp_path, m):
    dest = tmp_path / "x.bin"
    dest.write_bytes(b"old")
    m._write_atomic(str(dest), b"new")
    assert dest.read_bytes() == b"new"
    assert os.listdir(tmp_path) == ["x.bin"]
