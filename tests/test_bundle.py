"""Tests for packaging export files into a tar bundle."""

import tarfile

import pytest

from datacite_export.export.bundle import PackagingError, create_bundle


@pytest.fixture
def export_files(tmp_path):
    export_dir = tmp_path / "export"
    export_dir.mkdir()
    paths = []
    for name in ("datacite-a.xml", "datacite-b.xml", "datacite-c.xml"):
        path = export_dir / name
        path.write_text(f"<resource>{name}</resource>", encoding="utf-8")
        paths.append(str(path))
    return paths


class TestCreateBundle:
    """Test create_bundle."""

    def test_three_files(self, export_files, tmp_path):
        """Test that the bundle holds exactly the file basenames."""
        bundle = create_bundle(export_files, str(tmp_path / "bundle.tar.gz"))

        with tarfile.open(bundle, "r:gz") as tar:
            members = tar.getmembers()
            names = sorted(member.name for member in members)
            content = tar.extractfile("datacite-b.xml").read()

        assert names == ["datacite-a.xml", "datacite-b.xml", "datacite-c.xml"]
        assert all("/" not in name and ".." not in name for name in names)
        assert content == b"<resource>datacite-b.xml</resource>"

    def test_owner_not_revealed(self, export_files, tmp_path):
        bundle = create_bundle(export_files, str(tmp_path / "bundle.tar.gz"))

        with tarfile.open(bundle, "r:gz") as tar:
            for member in tar.getmembers():
                assert member.uid == 0
                assert member.gid == 0
                assert member.uname == ""
                assert member.gname == ""

    def test_deterministic(self, export_files, tmp_path):
        """Test that packaging the same files twice yields identical bytes."""
        (tmp_path / "first").mkdir()
        (tmp_path / "second").mkdir()

        first = create_bundle(export_files, str(tmp_path / "first" / "bundle.tar.gz"))
        second = create_bundle(export_files, str(tmp_path / "second" / "bundle.tar.gz"))

        with open(first, "rb") as f1, open(second, "rb") as f2:
            assert f1.read() == f2.read()

    def test_single_file_passed_through(self, export_files, tmp_path):
        """Test that one file is returned without packaging."""
        output = tmp_path / "bundle.tar.gz"

        result = create_bundle(export_files[:1], str(output))

        assert result == export_files[0]
        assert not output.exists()

    def test_no_files(self, tmp_path):
        with pytest.raises(PackagingError):
            create_bundle([], str(tmp_path / "bundle.tar.gz"))

    def test_duplicate_names(self, export_files, tmp_path):
        other_dir = tmp_path / "other"
        other_dir.mkdir()
        duplicate = other_dir / "datacite-a.xml"
        duplicate.write_text("<resource/>", encoding="utf-8")

        with pytest.raises(PackagingError, match="identical names"):
            create_bundle([export_files[0], str(duplicate)], str(tmp_path / "bundle.tar.gz"))

    def test_unwritable_target(self, export_files, tmp_path):
        with pytest.raises(PackagingError, match="Could not create export bundle"):
            create_bundle(export_files, str(tmp_path / "missing" / "bundle.tar.gz"))
