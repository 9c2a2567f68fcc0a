"""
Tests for the ZIP archive builder and local save.
"""
import io
import zipfile

from adapters.zip_archive import ZipArchiveBuilder, save_archive
from core.domain.models import ArchiveArtifact, ArchiveEntry
from core.interfaces.archive import ArchiveBuilder


class TestZipArchiveBuilder:
    def test_implements_protocol(self):
        assert isinstance(ZipArchiveBuilder(), ArchiveBuilder)

    def test_entries_written_in_order(self):
        data = ZipArchiveBuilder().build(
            [
                ArchiveEntry("User_a_1.mtl", b"newmtl x"),
                ArchiveEntry("texture_1.png", b"\x89PNG"),
                ArchiveEntry("User_a_1_meta.json", b"{}"),
            ]
        )
        with zipfile.ZipFile(io.BytesIO(data)) as zf:
            assert zf.namelist() == ["User_a_1.mtl", "texture_1.png", "User_a_1_meta.json"]
            assert zf.read("texture_1.png") == b"\x89PNG"

    def test_empty_archive_is_valid(self):
        with zipfile.ZipFile(io.BytesIO(ZipArchiveBuilder().build([]))) as zf:
            assert zf.namelist() == []


class TestSaveArchive:
    def test_creates_directory_and_writes_bytes(self, tmp_path):
        artifact = ArchiveArtifact(filename="User_a_1_3D_Files.zip", data=b"PK\x03\x04", entry_names=[])
        path = save_archive(artifact=artifact, output_dir=tmp_path / "out" / "nested")
        assert path == tmp_path / "out" / "nested" / "User_a_1_3D_Files.zip"
        assert path.read_bytes() == b"PK\x03\x04"
