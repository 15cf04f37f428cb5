"""本地目录包存储测试 - 查找 + 下载落盘"""

from __future__ import annotations

import os
from pathlib import Path, PurePosixPath

import pytest

from extpkg.core.exceptions import (
    FetchError,
    PersistError,
    RemotePackageNotFoundError,
    RepoUnavailableError,
)
from extpkg.core.package.local import LocalProvider
from extpkg.core.package.models import PackageSpec
from extpkg.core.protocols import ExternalPackageProvider, RepoRetrievalDest


class TestLookup:
    def test_satisfies_protocols(self, tmp_path: Path) -> None:
        provider = LocalProvider(tmp_path)
        assert isinstance(provider, ExternalPackageProvider)
        assert isinstance(provider, RepoRetrievalDest)

    def test_package_present(self, tmp_path: Path, spec, place_package) -> None:
        pkg_dir = place_package(tmp_path, spec, {"lib.typ": "x"})
        pkg = LocalProvider(tmp_path).package(spec)
        assert pkg is not None
        assert pkg.root == pkg_dir
        assert pkg.spec == spec

    def test_package_absent(self, tmp_path: Path, spec) -> None:
        assert LocalProvider(tmp_path).package(spec) is None

    def test_package_absent_when_root_missing(self, tmp_path: Path, spec) -> None:
        assert LocalProvider(tmp_path / "nonexist").package(spec) is None

    def test_other_version_not_matched(self, tmp_path: Path, spec, place_package) -> None:
        place_package(tmp_path, PackageSpec("preview", "pkg", "2.0.0"), {"lib.typ": "x"})
        assert LocalProvider(tmp_path).package(spec) is None

    def test_lookup_has_no_side_effects(self, tmp_path: Path, spec) -> None:
        root = tmp_path / "root"
        LocalProvider(root).package(spec)
        assert not root.exists()


class TestFullId:
    def test_file_inside_package(self, tmp_path: Path) -> None:
        provider = LocalProvider(tmp_path)
        uri = (tmp_path / "preview" / "pkg" / "1.0.0" / "src" / "a.typ").as_uri()
        fid = provider.full_id(uri)
        assert fid is not None
        assert fid.package == PackageSpec("preview", "pkg", "1.0.0")
        assert fid.vpath == PurePosixPath("src/a.typ")

    def test_does_not_touch_filesystem(self, tmp_path: Path) -> None:
        """文件不存在也按路径归类"""
        root = tmp_path / "never-created"
        uri = (root / "preview" / "pkg" / "1.0.0" / "lib.typ").as_uri()
        assert LocalProvider(root).full_id(uri) is not None
        assert not root.exists()

    @pytest.mark.parametrize("rel", [
        "preview/pkg/1.0.0",
        "preview/pkg",
        "preview/pkg/latest/lib.typ",
    ])
    def test_too_shallow_or_bad_version(self, tmp_path: Path, rel: str) -> None:
        uri = (tmp_path / rel).as_uri()
        assert LocalProvider(tmp_path).full_id(uri) is None

    def test_outside_root(self, tmp_path: Path) -> None:
        provider = LocalProvider(tmp_path / "root")
        uri = (tmp_path / "other" / "preview" / "pkg" / "1.0.0" / "lib.typ").as_uri()
        assert provider.full_id(uri) is None

    def test_dotdot_escape_not_recognized(self, tmp_path: Path) -> None:
        root = tmp_path / "root"
        uri = f"{root.as_uri()}/preview/pkg/1.0.0/../../../../x/lib.typ"
        assert LocalProvider(root).full_id(uri) is None

    def test_non_file_uri(self, tmp_path: Path) -> None:
        assert LocalProvider(tmp_path).full_id("untitled:Untitled-1") is None


class TestListing:
    def test_list_versions_sorted_numerically(self, tmp_path: Path, place_package) -> None:
        for ver in ("1.10.0", "1.2.0", "1.9.1"):
            place_package(tmp_path, PackageSpec("preview", "pkg", ver), {"lib.typ": ""})
        (tmp_path / "preview" / "pkg" / ".1.0.0-abc.tmp").mkdir()
        (tmp_path / "preview" / "pkg" / "not-a-version").mkdir()

        versions = LocalProvider(tmp_path).list_versions("preview", "pkg")
        assert versions == ["1.2.0", "1.9.1", "1.10.0"]

    def test_list_versions_missing(self, tmp_path: Path) -> None:
        assert LocalProvider(tmp_path).list_versions("preview", "nope") == []

    def test_list_packages(self, tmp_path: Path, place_package) -> None:
        place_package(tmp_path, PackageSpec("preview", "b", "0.1.0"), {"lib.typ": ""})
        place_package(tmp_path, PackageSpec("local", "a", "1.0.0"), {"lib.typ": ""})
        specs = LocalProvider(tmp_path).list_packages()
        assert [str(s) for s in specs] == ["@local/a:1.0.0", "@preview/b:0.1.0"]

    def test_list_packages_empty_root(self, tmp_path: Path) -> None:
        assert LocalProvider(tmp_path / "missing").list_packages() == []


class TestStoreFrom:
    @pytest.mark.asyncio
    async def test_store_then_lookup(self, tmp_path: Path, spec, fake_repo) -> None:
        provider = LocalProvider(tmp_path)
        pkg = await provider.store_from(fake_repo, spec)

        assert pkg.root == tmp_path / "preview" / "pkg" / "1.0.0"
        assert pkg.read("lib.typ") == b"#let hello = [hello]\n"
        assert "src/util.typ" in pkg.files()
        # 落盘后作为查找后端也能查到
        assert provider.package(spec) == pkg
        assert fake_repo.fetch_count == 1

    @pytest.mark.asyncio
    async def test_no_temp_dirs_left(self, tmp_path: Path, spec, fake_repo) -> None:
        await LocalProvider(tmp_path).store_from(fake_repo, spec)
        leftovers = [p.name for p in (tmp_path / "preview" / "pkg").iterdir()]
        assert leftovers == ["1.0.0"]

    @pytest.mark.asyncio
    async def test_no_repo(self, tmp_path: Path, spec) -> None:
        with pytest.raises(RepoUnavailableError) as exc_info:
            await LocalProvider(tmp_path).store_from(None, spec)
        assert exc_info.value.spec == spec
        assert exc_info.value.code == "REPO_UNAVAILABLE"
        assert not (tmp_path / "preview").exists()

    @pytest.mark.asyncio
    async def test_remote_not_found(self, tmp_path: Path, fake_repo) -> None:
        missing = PackageSpec("preview", "nope", "1.0.0")
        with pytest.raises(RemotePackageNotFoundError):
            await LocalProvider(tmp_path).store_from(fake_repo, missing)
        assert LocalProvider(tmp_path).package(missing) is None

    @pytest.mark.asyncio
    async def test_corrupt_archive(self, tmp_path: Path, spec, make_repo) -> None:
        repo = make_repo({spec: b"definitely not a tarball"})
        with pytest.raises(FetchError) as exc_info:
            await LocalProvider(tmp_path).store_from(repo, spec)
        assert exc_info.value.stage == "unpack"
        assert LocalProvider(tmp_path).package(spec) is None
        assert list((tmp_path / "preview" / "pkg").iterdir()) == []

    @pytest.mark.asyncio
    async def test_existing_version_is_kept(
        self, tmp_path: Path, spec, fake_repo, place_package,
    ) -> None:
        """并发写入者已落盘时沿用已有目录"""
        provider = LocalProvider(tmp_path)
        place_package(tmp_path, spec, {"winner.typ": "first"})

        pkg = await provider.store_from(fake_repo, spec)
        assert pkg.files() == ["winner.typ"]

    @pytest.mark.asyncio
    @pytest.mark.skipif(
        os.name != "posix" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="需要非 root 的 POSIX 权限语义",
    )
    async def test_unwritable_root(self, tmp_path: Path, spec, fake_repo) -> None:
        root = tmp_path / "ro"
        root.mkdir()
        root.chmod(0o500)
        try:
            with pytest.raises(PersistError) as exc_info:
                await LocalProvider(root).store_from(fake_repo, spec)
            assert exc_info.value.stage == "persist"
        finally:
            root.chmod(0o700)
