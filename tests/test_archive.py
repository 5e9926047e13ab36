"""Project archive packing/unpacking and its safety limits."""

import io
import os
import tarfile

import pytest

from treasuredata.adapters.archive import create_tar_gz, extract_tar_gz
from treasuredata.core.errors import ArchiveError


def _tar(members: list[tuple[tarfile.TarInfo, bytes | None]]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tar:
        for info, data in members:
            tar.addfile(info, io.BytesIO(data) if data is not None else None)
    return buf.getvalue()


def _file(name: str, data: bytes) -> tuple[tarfile.TarInfo, bytes]:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    return info, data


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "project"
    (root / "queries").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    (root / ".env").write_text("SECRET=1\n")
    (root / "main.dig").write_text("+q:\n  td>: queries/q.sql\n")
    (root / "queries" / "q.sql").write_text("SELECT 1")
    return root


class TestCreate:
    def test_hidden_entries_are_skipped(self, project, tmp_path):
        data = create_tar_gz(project)
        files = extract_tar_gz(data, tmp_path / "out")
        assert sorted(p.relative_to(tmp_path / "out").as_posix() for p in files) == ["main.dig", "queries/q.sql"]
        assert (tmp_path / "out" / "queries" / "q.sql").read_text() == "SELECT 1"

    def test_entry_names_are_relative(self, project):
        with tarfile.open(fileobj=io.BytesIO(create_tar_gz(project)), mode="r:gz") as tar:
            names = tar.getnames()
        assert names == ["queries", "main.dig", "queries/q.sql"]

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unsupported")
    def test_symlink_is_rejected(self, project):
        os.symlink(project / "main.dig", project / "link.dig")
        with pytest.raises(ArchiveError, match="symlinks"):
            create_tar_gz(project)

    def test_file_size_limit(self, project):
        with pytest.raises(ArchiveError, match="file too large"):
            create_tar_gz(project, max_file_size=4)

    def test_file_count_limit(self, project):
        with pytest.raises(ArchiveError, match="too many files"):
            create_tar_gz(project, max_files=2)

    def test_total_size_limit(self, project):
        with pytest.raises(ArchiveError, match="archive too large"):
            create_tar_gz(project, max_total_size=10)

    def test_not_a_directory(self, tmp_path):
        with pytest.raises(ArchiveError):
            create_tar_gz(tmp_path / "missing")


class TestExtract:
    def test_path_traversal(self, tmp_path):
        data = _tar([_file("../escape.txt", b"x")])
        with pytest.raises(ArchiveError, match="unsafe"):
            extract_tar_gz(data, tmp_path / "out")
        assert not (tmp_path / "escape.txt").exists()

    def test_absolute_path(self, tmp_path):
        data = _tar([_file("/etc/passwd", b"x")])
        with pytest.raises(ArchiveError):
            extract_tar_gz(data, tmp_path / "out")

    def test_symlink_member(self, tmp_path):
        link = tarfile.TarInfo("link")
        link.type = tarfile.SYMTYPE
        link.linkname = "/etc/passwd"
        with pytest.raises(ArchiveError, match="links not allowed"):
            extract_tar_gz(_tar([(link, None)]), tmp_path / "out")

    def test_member_size_limit(self, tmp_path):
        data = _tar([_file("big.bin", b"0123456789")])
        with pytest.raises(ArchiveError, match="file too large"):
            extract_tar_gz(data, tmp_path / "out", max_file_size=5)

    def test_corrupt_archive(self, tmp_path):
        with pytest.raises(ArchiveError, match="cannot read archive"):
            extract_tar_gz(b"definitely not gzip", tmp_path / "out")

    def test_file_mode_is_kept(self, tmp_path):
        info, data = _file("run.sh", b"#!/bin/sh\n")
        info.mode = 0o755
        files = extract_tar_gz(_tar([(info, data)]), tmp_path / "out")
        assert files[0].name == "run.sh"
        if os.name == "posix":
            assert files[0].stat().st_mode & 0o777 == 0o755
