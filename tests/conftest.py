# tests/conftest.py
import io
import zipfile
from pathlib import Path
import pytest

from zipbuild import build_zip


@pytest.fixture
def make_sample_zip(tmp_path: Path):
    """
    Return a factory that creates a sample zip and returns its Path.
    Usage in tests: zf = make_sample_zip()
    """
    def _make() -> Path:
        zpath = tmp_path / "sample.zip"
        with zipfile.ZipFile(zpath, "w", compression=zipfile.ZIP_DEFLATED) as z:
            z.writestr("payload/data1.csv", "a,b,c\n1,2,3\n")
            z.writestr("payload/data2.csv", "x,y,z\n4,5,6\n")
            z.writestr("payload/sub/a.txt", "hello sub\n")
            z.writestr("payload/sub/nested/b.bin", b"\x00\x01\x02\x03")
            z.writestr("top.txt", "hello\n", compress_type=zipfile.ZIP_STORED)
            z.writestr("docs/readme.md", "# readme\n")
        return zpath
    return _make


@pytest.fixture
def make_two_entry_zip(tmp_path: Path):
    """a.txt stored ("hello"), b.bin deflated ("world world world")."""
    def _make() -> Path:
        zpath = tmp_path / "two.zip"
        with zipfile.ZipFile(zpath, "w") as z:
            z.writestr("a.txt", b"hello", compress_type=zipfile.ZIP_STORED)
            z.writestr("b.bin", b"world world world", compress_type=zipfile.ZIP_DEFLATED)
        return zpath
    return _make


@pytest.fixture
def zip_stream():
    """Build an archive with zipbuild and return it as a seekable stream."""
    def _make(members, **kw) -> io.BytesIO:
        return io.BytesIO(build_zip(members, **kw))
    return _make


@pytest.fixture
def outdir(tmp_path: Path):
    d = tmp_path / "out"
    d.mkdir()
    return d
