"""外部包管理器

解析策略（本地优先）:
  1. 按构造顺序依次询问各本地查找后端，第一个命中的直接返回
     （顺序即优先级，不做 "最佳匹配"）
  2. 全部未命中时，交给缓存目标从远程仓库下载并落盘
  3. 没有缓存目标时报 NoDestinationError（配置问题，重试无效）

下载失败不在这里重试，重试策略属于调用方。
对同一个包的并发请求不做合并，两次未命中会各自下载一次，
由 LocalProvider 的 rename 语义保证结果一致。

用法:
    from extpkg.core.package.manager import ExternalPackageManager

    manager = ExternalPackageManager.default()
    pkg = await manager.package(PackageSpec.parse("@preview/cetz:0.2.2"))
    fid = manager.full_id("file:///home/me/.cache/typst/packages/preview/cetz/0.2.2/lib.typ")
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from typing import TYPE_CHECKING, Any

from extpkg.core.exceptions import (
    ExtPkgError,
    NoDestinationError,
    PersistError,
)
from extpkg.core.package.dirs import PackageDirs, PlatformPackageDirs
from extpkg.core.package.local import LocalProvider
from extpkg.core.package.remote_repo import RemoteRepoProvider

if TYPE_CHECKING:
    from extpkg.core.config import Config
    from extpkg.core.package.models import FullFileId, Package, PackageSpec
    from extpkg.core.protocols import (
        ExternalPackageProvider,
        RepoProvider,
        RepoRetrievalDest,
    )

logger = logging.getLogger(__name__)

RepoFactory = Callable[[], "RepoProvider"]


class ExternalPackageManager:
    """外部包解析编排器

    providers: 有序查找后端，构造后不再变化
    cache:     可选的下载落盘目标（None = 无法持久化新包）
    repo:      可选的远程仓库（None = 无网络能力，离线模式）
    """

    def __init__(
        self,
        providers: Sequence[ExternalPackageProvider] = (),
        *,
        cache: RepoRetrievalDest | None = None,
        repo: RepoProvider | None = None,
    ) -> None:
        self._providers: tuple[ExternalPackageProvider, ...] = tuple(providers)
        self._cache = cache
        self._repo = repo

    @classmethod
    def default(
        cls,
        config: Config | None = None,
        *,
        dirs: PackageDirs | None = None,
        repo_factory: RepoFactory | None = None,
    ) -> ExternalPackageManager:
        """按环境默认目录构造，任何一步失败都只降级不报错

        - 用户包目录、缓存目录各自作为一个查找后端，无法确定的目录跳过
        - 缓存目录同时作为下载落盘目标
        - 远程仓库构造失败视为无网络能力
        """
        if config is None:
            from extpkg.core.config import get_config
            config = get_config()
        if dirs is None:
            dirs = PlatformPackageDirs(config)

        providers: list[ExternalPackageProvider] = []

        user_dir = dirs.user_packages_dir()
        if user_dir is None:
            logger.warning("无法确定用户包目录，跳过")
        else:
            providers.append(LocalProvider(user_dir))

        cache: LocalProvider | None = None
        cache_dir = dirs.cache_packages_dir()
        if cache_dir is None:
            logger.warning("无法确定包缓存目录，新包将无法下载")
        else:
            cache = LocalProvider(cache_dir)
            providers.append(cache)

        repo = _default_repo(config, repo_factory)
        return cls(providers, cache=cache, repo=repo)

    # ------------------------------------------------------------------
    # 属性
    # ------------------------------------------------------------------

    @property
    def providers(self) -> tuple[ExternalPackageProvider, ...]:
        return self._providers

    @property
    def cache(self) -> RepoRetrievalDest | None:
        return self._cache

    @property
    def repo(self) -> RepoProvider | None:
        return self._repo

    def __repr__(self) -> str:
        return (
            f"ExternalPackageManager(providers={list(self._providers)!r}, "
            f"cache={self._cache!r}, repo={self._repo!r})"
        )

    # ------------------------------------------------------------------
    # 解析
    # ------------------------------------------------------------------

    async def package(self, spec: PackageSpec) -> Package:
        """获取包，本地没有时下载到缓存"""
        for provider in self._providers:
            found = provider.package(spec)
            if found is not None:
                return found
        return await self._download_to_cache(spec)

    def full_id(self, uri: str) -> FullFileId | None:
        """把文档 URI 归类到某个已知包内，只做本地判断，从不下载"""
        for provider in self._providers:
            fid = provider.full_id(uri)
            if fid is not None:
                return fid
        return None

    async def _download_to_cache(self, spec: PackageSpec) -> Package:
        if self._cache is None:
            raise NoDestinationError(spec, "本地不存在，且没有可下载到的缓存目录")

        try:
            return await self._cache.store_from(self._repo, spec)
        except ExtPkgError as e:
            logger.warning(
                "获取失败 [%s] %s", e.code, e,
                extra={"spec": str(spec), "stage": getattr(e, "stage", ""), "code": e.code},
            )
            raise
        except TimeoutError:
            raise
        except OSError as e:
            logger.warning(
                "写入缓存失败: %s - %s", spec, e,
                extra={"spec": str(spec), "stage": "persist", "code": PersistError.code},
            )
            raise PersistError(spec, f"写入缓存失败: {e}") from e

    async def package_many(
        self, specs: Iterable[PackageSpec],
    ) -> dict[PackageSpec, Package | ExtPkgError]:
        """并发获取多个包，返回 {spec: Package | 异常}

        单个包失败不影响其他包；非业务异常（如取消）照常抛出。
        """
        unique = list(dict.fromkeys(specs))
        outcomes = await asyncio.gather(
            *(self.package(s) for s in unique), return_exceptions=True,
        )

        results: dict[PackageSpec, Package | ExtPkgError] = {}
        failed: list[str] = []
        for spec, outcome in zip(unique, outcomes):
            if isinstance(outcome, ExtPkgError):
                failed.append(str(spec))
            elif isinstance(outcome, BaseException):
                raise outcome
            results[spec] = outcome

        if failed:
            logger.warning(
                "获取汇总: %d 成功, %d 失败 (%s)",
                len(results) - len(failed), len(failed), ", ".join(failed),
            )
        return results

    def list_packages(self) -> list[dict[str, Any]]:
        """列出各后端已落盘的包，按后端顺序"""
        results = []
        for provider in self._providers:
            lister = getattr(provider, "list_packages", None)
            if lister is None:
                continue
            for spec in lister():
                results.append({
                    "spec": str(spec),
                    "namespace": spec.namespace,
                    "name": spec.name,
                    "version": spec.version,
                    "root": str(provider.root),
                    "cached": provider is self._cache,
                })
        return results


def _default_repo(
    config: Config, factory: RepoFactory | None,
) -> RepoProvider | None:
    if not config.remote_enabled:
        logger.info("远程下载已禁用，仅使用本地包")
        return None
    try:
        if factory is not None:
            return factory()
        return RemoteRepoProvider.from_config(config)
    except Exception as err:  # noqa: BLE001
        logger.warning("无法创建包仓库客户端，仅使用本地包: %s", err)
        return None
