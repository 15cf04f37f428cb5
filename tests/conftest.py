"""共享 fixture — 内存归档构造 + 可计数的假仓库

  make_archive({"lib.typ": b"..."})  -> tar.gz 字节
  FakeRepo(archives)                 -> 满足 RepoProvider 协议，记录 fetch 次数
"""

from __future__ import annotations

import io
import tarfile
from pathlib import Path

import pytest

import extpkg.core.config as cfgmod
from extpkg.core.exceptions import FetchError, RemotePackageNotFoundError
from extpkg.core.package.models import PackageSpec
from extpkg.services.container import reset_container


def _build_archive(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w:gz") as tf:
        for name, data in files.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return buf.getvalue()


class FakeRepo:
    """内存仓库：按 spec 返回预置归档，不存在时报 404 语义的异常"""

    def __init__(
        self,
        archives: dict[PackageSpec, bytes] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self.archives = archives or {}
        self.error = error
        self.calls: list[PackageSpec] = []

    @property
    def fetch_count(self) -> int:
        return len(self.calls)

    async def fetch(self, spec: PackageSpec) -> bytes:
        self.calls.append(spec)
        if self.error is not None:
            raise self.error
        if spec not in self.archives:
            raise RemotePackageNotFoundError(spec, "包仓库中不存在该包")
        return self.archives[spec]


@pytest.fixture()
def make_archive():
    return _build_archive


@pytest.fixture()
def spec() -> PackageSpec:
    return PackageSpec("preview", "pkg", "1.0.0")


@pytest.fixture()
def fake_repo(spec: PackageSpec) -> FakeRepo:
    """只含 @preview/pkg:1.0.0 的假仓库"""
    return FakeRepo({spec: _build_archive({
        "typst.toml": b'[package]\nname = "pkg"\nversion = "1.0.0"\n',
        "lib.typ": b"#let hello = [hello]\n",
        "src/util.typ": b"#let x = 1\n",
    })})


@pytest.fixture()
def make_repo():
    return FakeRepo


@pytest.fixture()
def failing_repo() -> FakeRepo:
    return FakeRepo(error=FetchError(
        PackageSpec("preview", "pkg", "1.0.0"), "下载失败: connection reset",
    ))


@pytest.fixture()
def roots(tmp_path: Path) -> tuple[Path, Path]:
    """(用户包目录, 缓存目录)，均为空"""
    user = tmp_path / "config" / "typst" / "packages"
    cache = tmp_path / "cache" / "typst" / "packages"
    return user, cache


def put_package(root: Path, spec: PackageSpec, files: dict[str, str]) -> Path:
    """直接在存储目录中放置一个已解压的包"""
    pkg_dir = root / spec.namespace / spec.name / spec.version
    for rel, text in files.items():
        f = pkg_dir / rel
        f.parent.mkdir(parents=True, exist_ok=True)
        f.write_text(text, encoding="utf-8")
    return pkg_dir


@pytest.fixture()
def place_package():
    return put_package


@pytest.fixture()
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """全局配置指向临时目录，离线模式"""
    cfg = cfgmod.Config(
        user_packages_dir=str(tmp_path / "user"),
        cache_packages_dir=str(tmp_path / "cache"),
        remote_enabled=False,
    )
    monkeypatch.setattr(cfgmod, "_current", cfg)
    reset_container()
    yield cfg
    reset_container()
