"""远程包仓库

从 HTTP 包仓库下载归档: <registry>/<namespace>/<name>-<version>.tar.gz

下载本身是阻塞的 urllib 调用，放在工作线程中执行，不阻塞事件循环。
"""

from __future__ import annotations

import asyncio
import logging
import urllib.error
import urllib.request
from typing import TYPE_CHECKING

from extpkg import __version__
from extpkg.core.exceptions import (
    ConfigError,
    FetchError,
    RemotePackageNotFoundError,
)
from extpkg.utils.net import normalize_registry_url

if TYPE_CHECKING:
    from extpkg.core.config import Config
    from extpkg.core.package.models import PackageSpec

logger = logging.getLogger(__name__)

# 单个包归档上限，防止异常响应撑爆内存
MAX_ARCHIVE_SIZE = 256 * 1024 * 1024


class RemoteRepoProvider:
    """HTTP 包仓库客户端"""

    def __init__(self, registry_url: str, *, timeout: int = 60) -> None:
        if not registry_url:
            raise ConfigError("未配置包仓库地址 registry_url")
        self.registry_url = normalize_registry_url(
            registry_url, context="package registry",
        )
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: Config) -> RemoteRepoProvider:
        return cls(config.registry_url, timeout=config.download_timeout)

    def __repr__(self) -> str:
        return f"RemoteRepoProvider(registry_url={self.registry_url!r})"

    def archive_url(self, spec: PackageSpec) -> str:
        return (
            f"{self.registry_url}/{spec.namespace}/"
            f"{spec.name}-{spec.version}.tar.gz"
        )

    async def fetch(self, spec: PackageSpec) -> bytes:
        url = self.archive_url(spec)
        logger.info("下载: %s", url)
        data = await asyncio.to_thread(self._download, spec, url)
        logger.info("下载完成: %s (%d 字节)", spec, len(data))
        return data

    def _download(self, spec: PackageSpec, url: str) -> bytes:
        req = urllib.request.Request(
            url, headers={"User-Agent": f"extpkg/{__version__}"},
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                data = resp.read(MAX_ARCHIVE_SIZE + 1)
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise RemotePackageNotFoundError(
                    spec, f"包仓库中不存在该包: {url}",
                ) from e
            raise FetchError(spec, f"下载失败: {url} - HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise FetchError(spec, f"下载失败: {url} - {e}") from e

        if len(data) > MAX_ARCHIVE_SIZE:
            raise FetchError(
                spec, f"归档超过大小限制 {MAX_ARCHIVE_SIZE} 字节: {url}",
            )
        return data
