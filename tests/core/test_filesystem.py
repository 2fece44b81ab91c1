"""
Unit tests for filesystem module.

Tests archive extraction, atomic writes, ownership and permission helpers.
"""

import io
import os
import stat
import tarfile
from unittest.mock import patch

import pytest

from sdkprovision.core.filesystem import (
    ArchiveExtractionError,
    InsecureArchiveError,
    UnsupportedArchiveFormat,
    add_execute_permission,
    atomic_write,
    chown_recursive,
    ensure_directory,
    extract_archive,
    first_missing_ancestor,
    is_relative_to,
)


def _write_tar(path, members, mode="w:gz"):
    with tarfile.open(path, mode) as tar:
        for name, content in members.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return path


class TestPathHelpers:
    """Test path helper functions."""

    def test_is_relative_to(self, tmp_path):
        """Test child paths are relative to their parent."""
        assert is_relative_to(tmp_path / "a" / "b", tmp_path)
        assert not is_relative_to(tmp_path.parent, tmp_path)

    def test_first_missing_ancestor_existing(self, tmp_path):
        """Test existing path has no missing ancestor."""
        assert first_missing_ancestor(tmp_path) is None

    def test_first_missing_ancestor_nested(self, tmp_path):
        """Test top-most missing directory is returned."""
        target = tmp_path / "opt" / "android" / "sdk"
        assert first_missing_ancestor(target) == tmp_path / "opt"

    def test_first_missing_ancestor_leaf(self, tmp_path):
        """Test only the leaf is returned when its parent exists."""
        assert first_missing_ancestor(tmp_path / "sdk") == tmp_path / "sdk"

    def test_ensure_directory(self, tmp_path):
        """Test nested directories are created and existing ones accepted."""
        target = tmp_path / "a" / "b" / "c"

        assert ensure_directory(target) == target
        assert target.is_dir()
        ensure_directory(target)


class TestExtractArchive:
    """Test extract_archive function."""

    def test_extract_zip(self, tmp_path, make_zip):
        """Test zip members are extracted with their directory structure."""
        archive = make_zip(
            tmp_path / "sdk.zip",
            {"sdk/tools/android": "tool", "sdk/readme.txt": "readme"},
        )
        dest = tmp_path / "out"

        extract_archive(archive, dest)

        assert (dest / "sdk" / "tools" / "android").read_text() == "tool"
        assert (dest / "sdk" / "readme.txt").read_text() == "readme"

    def test_extract_tar_gz(self, tmp_path):
        """Test .tar.gz archives are extracted."""
        archive = _write_tar(tmp_path / "sdk.tar.gz", {"sdk/file.txt": "content"})
        dest = tmp_path / "out"

        extract_archive(archive, dest)

        assert (dest / "sdk" / "file.txt").read_text() == "content"

    def test_extract_tgz(self, tmp_path):
        """Test .tgz suffix is recognized."""
        archive = _write_tar(tmp_path / "sdk.tgz", {"file.txt": "content"})

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "file.txt").exists()

    def test_extract_tar_bz2(self, tmp_path):
        """Test .tar.bz2 archives are extracted."""
        archive = _write_tar(tmp_path / "sdk.tar.bz2", {"f.txt": "x"}, mode="w:bz2")

        extract_archive(archive, tmp_path / "out")

        assert (tmp_path / "out" / "f.txt").read_text() == "x"

    def test_destination_created(self, tmp_path, make_zip):
        """Test destination directory is created when missing."""
        archive = make_zip(tmp_path / "sdk.zip", {"f.txt": "x"})
        dest = tmp_path / "deep" / "nested" / "out"

        extract_archive(archive, dest)

        assert (dest / "f.txt").exists()

    def test_zip_traversal_blocked(self, tmp_path, make_zip):
        """Test members escaping the destination are rejected."""
        archive = make_zip(tmp_path / "evil.zip", {"../escape.txt": "x"})

        with pytest.raises(InsecureArchiveError, match="directory traversal"):
            extract_archive(archive, tmp_path / "out")

        assert not (tmp_path / "escape.txt").exists()

    def test_tar_traversal_blocked(self, tmp_path):
        """Test tar members escaping the destination are rejected."""
        archive = _write_tar(tmp_path / "evil.tar.gz", {"../../escape.txt": "x"})

        with pytest.raises(InsecureArchiveError):
            extract_archive(archive, tmp_path / "out")

    def test_unsupported_format(self, tmp_path):
        """Test unknown suffixes raise UnsupportedArchiveFormat."""
        archive = tmp_path / "sdk.rar"
        archive.write_bytes(b"not an archive")

        with pytest.raises(UnsupportedArchiveFormat):
            extract_archive(archive, tmp_path / "out")

    def test_missing_archive(self, tmp_path):
        """Test missing archive raises ArchiveExtractionError."""
        with pytest.raises(ArchiveExtractionError, match="Archive not found"):
            extract_archive(tmp_path / "missing.zip", tmp_path / "out")

    def test_corrupt_archive(self, tmp_path):
        """Test corrupt archive is wrapped in ArchiveExtractionError."""
        archive = tmp_path / "corrupt.zip"
        archive.write_bytes(b"PK\x03\x04 garbage")

        with pytest.raises(ArchiveExtractionError) as exc_info:
            extract_archive(archive, tmp_path / "out")

        assert exc_info.value.__cause__ is not None


class TestAtomicWrite:
    """Test atomic_write function."""

    def test_write_text(self, tmp_path):
        """Test text content is written."""
        target = tmp_path / "state.json"
        atomic_write(target, '{"a": 1}')
        assert target.read_text() == '{"a": 1}'

    def test_write_bytes(self, tmp_path):
        """Test bytes content is written."""
        target = tmp_path / "data.bin"
        atomic_write(target, b"\x00\x01")
        assert target.read_bytes() == b"\x00\x01"

    def test_replace_existing(self, tmp_path):
        """Test existing content is replaced without leftovers."""
        target = tmp_path / "state.json"
        target.write_text("old")

        atomic_write(target, "new")

        assert target.read_text() == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_failure_keeps_original(self, tmp_path):
        """Test a failed rename leaves the original file untouched."""
        target = tmp_path / "state.json"
        target.write_text("old")

        with patch("pathlib.Path.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                atomic_write(target, "new")

        assert target.read_text() == "old"
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]


class TestOwnershipAndPermissions:
    """Test chown_recursive and add_execute_permission."""

    @pytest.mark.posix_only
    def test_chown_recursive_visits_everything(self, tmp_path):
        """Test every directory and file below the root is re-owned."""
        root = tmp_path / "opt"
        (root / "sdk" / "tools").mkdir(parents=True)
        (root / "sdk" / "tools" / "android").write_text("x")

        with patch("sdkprovision.core.filesystem.os.chown") as chown:
            chown_recursive(root, 501, 20)

        chowned = {os.path.normpath(str(c.args[0])) for c in chown.call_args_list}
        assert chowned == {
            str(root),
            str(root / "sdk"),
            str(root / "sdk" / "tools"),
            str(root / "sdk" / "tools" / "android"),
        }
        assert all(c.args[1:] == (501, 20) for c in chown.call_args_list)
        assert all(c.kwargs == {"follow_symlinks": False} for c in chown.call_args_list)

    @pytest.mark.posix_only
    def test_chown_recursive_file(self, tmp_path):
        """Test a single file is re-owned once."""
        target = tmp_path / "profile"
        target.write_text("x")

        with patch("sdkprovision.core.filesystem.os.chown") as chown:
            chown_recursive(target, 501, 20)

        chown.assert_called_once_with(target, 501, 20, follow_symlinks=False)

    @pytest.mark.posix_only
    def test_add_execute_permission(self, tmp_path):
        """Test execute bits are added for user, group and others."""
        tool = tmp_path / "android"
        tool.write_text("#!/bin/sh\n")
        tool.chmod(0o644)

        add_execute_permission(tool)

        assert stat.S_IMODE(tool.stat().st_mode) == 0o755

    def test_add_execute_permission_missing_file(self, tmp_path):
        """Test missing file raises OSError."""
        with pytest.raises(OSError):
            add_execute_permission(tmp_path / "missing")
