import sys
from pathlib import Path
import importlib
import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture()
def m():
    """Lazily import the main module for tests to avoid module-level import."""
    return importlib.import_module("main")


@pytest.fixture()
def no_progress(monkeypatch, m):
    """Capture progress lines from the main module instead of drawing them."""
    calls = []

    def _stub(line: str):
        calls.append(line)

    monkeypatch.setattr(m, "_print_progress", _stub)
    return calls


@pytest.fixture()
def progress_recorder():
    """Provide a reusable progress callback and its call log."""
    calls = []

    def cb(done, total):
        calls.append((done, total))

    return cb, calls


@pytest.fixture()
def telemetry_text():
    """A small telemetry-like buffer with a skewed byte distribution."""
    lines = [
        f"t={i:05d} temp=21.{i % 10} hum=4{i % 7} status=OK\n" for i in range(40)
    ]
    return "".join(lines).encode("ascii")


@pytest.fixture()
def sample_file(tmp_path: Path, telemetry_text):
    path = tmp_path / "telemetry.log"
    path.write_bytes(telemetry_text)
    return path
