"""领域协议定义

集中定义包解析各层之间的接口契约（Protocol），
ExternalPackageManager 只依赖这些抽象，不依赖具体的目录/网络实现。

使用 typing.Protocol 而非 ABC，测试替身无需继承即可满足协议。
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from extpkg.core.package.models import FullFileId, Package, PackageSpec


# =========================================================================
# 本地查找
# =========================================================================

@runtime_checkable
class ExternalPackageProvider(Protocol):
    """本地包查找后端协议

    每个后端管理一个存储根目录。两个操作都是纯读取：
    可重复、可并发调用，不访问网络。未命中返回 None 而不是抛异常。
    """

    @property
    def root(self) -> Path:
        """后端管理的存储根目录"""
        ...

    def package(self, spec: PackageSpec) -> Package | None:
        """本地存在该包时返回 Package"""
        ...

    def full_id(self, uri: str) -> FullFileId | None:
        """文档 URI 落在本后端管理的某个包内时返回完整文件标识"""
        ...


# =========================================================================
# 远程仓库
# =========================================================================

@runtime_checkable
class RepoProvider(Protocol):
    """远程仓库协议：按包标识拉取原始归档内容"""

    async def fetch(self, spec: PackageSpec) -> bytes:
        """拉取包归档，失败时抛 FetchError 家族异常"""
        ...


# =========================================================================
# 下载落盘目标
# =========================================================================

@runtime_checkable
class RepoRetrievalDest(ExternalPackageProvider, Protocol):
    """下载落盘目标协议

    通过 repo 拉取并写入本地缓存，成功后同一对象作为查找后端
    也能查到该包。repo 为 None 表示没有网络能力。
    """

    async def store_from(
        self, repo: RepoProvider | None, spec: PackageSpec,
    ) -> Package:
        ...
