"""本地目录包存储

目录布局: <root>/<namespace>/<name>/<version>/

LocalProvider 同时满足两个协议:
- ExternalPackageProvider: 按包标识/文档 URI 做本地查找（不触发下载）
- RepoRetrievalDest: 从远程仓库拉取归档，解压后原子落盘
"""

from __future__ import annotations

import asyncio
import io
import logging
import os
import shutil
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from extpkg.core.exceptions import (
    FetchError,
    PersistError,
    RepoUnavailableError,
    ValidationError,
)
from extpkg.core.package.models import FullFileId, Package, PackageSpec, uri_to_path

if TYPE_CHECKING:
    from extpkg.core.protocols import RepoProvider

logger = logging.getLogger(__name__)


class LocalProvider:
    """本地包目录 - 查找后端 + 下载落盘目标"""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(os.path.normpath(os.path.abspath(root)))

    @property
    def root(self) -> Path:
        return self._root

    def __repr__(self) -> str:
        return f"LocalProvider(root={str(self._root)!r})"

    # ------------------------------------------------------------------
    # 本地查找（不下载）
    # ------------------------------------------------------------------

    def package_dir(self, spec: PackageSpec) -> Path:
        return self._root.joinpath(*spec.relative_dir.parts)

    def package(self, spec: PackageSpec) -> Package | None:
        path = self.package_dir(spec)
        if path.is_dir():
            logger.debug("本地命中: %s -> %s", spec, path)
            return Package(spec=spec, root=path)
        return None

    def full_id(self, uri: str) -> FullFileId | None:
        """URI 落在 <root>/<ns>/<name>/<ver>/ 之下时返回 FullFileId"""
        path = uri_to_path(uri)
        if path is None:
            return None
        try:
            rel = path.relative_to(self._root)
        except ValueError:
            return None

        parts = rel.parts
        # 至少需要 ns/name/version/文件
        if len(parts) < 4:
            return None
        try:
            spec = PackageSpec(parts[0], parts[1], parts[2])
        except ValidationError:
            return None
        return FullFileId(package=spec, vpath=PurePosixPath(*parts[3:]))

    def list_versions(self, namespace: str, name: str) -> list[str]:
        """列出某个包在本地已有的所有版本，按版本号排序"""
        base = self._root / namespace / name
        if not base.is_dir():
            return []
        specs = []
        for d in base.iterdir():
            if not d.is_dir() or d.name.startswith("."):
                continue
            try:
                specs.append(PackageSpec(namespace, name, d.name))
            except ValidationError:
                continue
        return [s.version for s in sorted(specs, key=_version_key)]

    def list_packages(self) -> list[PackageSpec]:
        """扫描根目录下所有已落盘的包"""
        if not self._root.is_dir():
            return []
        found: list[PackageSpec] = []
        for ns_dir in sorted(self._root.iterdir()):
            if not ns_dir.is_dir() or ns_dir.name.startswith("."):
                continue
            for name_dir in sorted(ns_dir.iterdir()):
                if not name_dir.is_dir() or name_dir.name.startswith("."):
                    continue
                for ver in self.list_versions(ns_dir.name, name_dir.name):
                    found.append(PackageSpec(ns_dir.name, name_dir.name, ver))
        return found

    # ------------------------------------------------------------------
    # 下载落盘
    # ------------------------------------------------------------------

    async def store_from(
        self, repo: RepoProvider | None, spec: PackageSpec,
    ) -> Package:
        """从 repo 拉取 spec 并写入本目录，返回落盘后的 Package"""
        if repo is None:
            raise RepoUnavailableError(spec, "未配置远程仓库，无法下载")

        logger.info("本地不存在，远程拉取: %s -> %s", spec, self._root)
        data = await repo.fetch(spec)
        path = await asyncio.to_thread(self._unpack, spec, data)
        logger.info("已缓存: %s -> %s", spec, path, extra={"spec": str(spec)})
        return Package(spec=spec, root=path)

    def _unpack(self, spec: PackageSpec, data: bytes) -> Path:
        """解压到同级临时目录后 rename，避免留下半成品目录"""
        dest = self.package_dir(spec)
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            tmp = Path(tempfile.mkdtemp(
                dir=str(dest.parent), prefix=f".{spec.version}-", suffix=".tmp",
            ))
        except OSError as e:
            raise PersistError(spec, f"无法创建缓存目录 {dest.parent}: {e}") from e

        try:
            try:
                with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tf:
                    tf.extractall(path=str(tmp), filter="data")  # noqa: S202
            except (tarfile.TarError, EOFError) as e:
                raise FetchError(spec, f"归档损坏: {e}", stage="unpack") from e
            except OSError as e:
                raise PersistError(spec, f"解压失败: {e}") from e

            try:
                os.rename(tmp, dest)
            except OSError as e:
                # 并发写入者已先落盘，沿用已有目录
                if dest.is_dir():
                    logger.info("缓存已存在，丢弃本次下载: %s", dest)
                else:
                    raise PersistError(spec, f"写入 {dest} 失败: {e}") from e
        finally:
            shutil.rmtree(tmp, ignore_errors=True)
        return dest


def _version_key(spec: PackageSpec) -> tuple[int, ...]:
    return tuple(int(x) for x in spec.version.split("."))
