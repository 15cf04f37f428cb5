"""统一异常体系

所有业务异常继承 ExtPkgError，每个子类带一个稳定的 code。
CLI 层据此输出 [CODE] 提示，Web 层据此映射 HTTP 状态码。

包解析相关的异常（PackageError 及其子类）额外携带 spec 与 stage，
让调用方能区分 "包在任何可达位置都不存在" 与 "包存在但拉取/落盘失败"。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extpkg.core.package.models import PackageSpec


class ExtPkgError(Exception):
    """框架基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(ExtPkgError):
    """配置缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(ExtPkgError, ValueError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.details = details or []


class PackageError(ExtPkgError):
    """包解析失败，携带包标识和失败阶段"""

    code = "PACKAGE_ERROR"
    stage: str = "resolve"

    def __init__(
        self, spec: PackageSpec, message: str, *, stage: str = "",
    ) -> None:
        super().__init__(f"{spec}: {message}")
        self.spec = spec
        if stage:
            self.stage = stage


class NoDestinationError(PackageError):
    """本地均未命中，且没有可写入的缓存目录（需修改配置，重试无效）"""

    code = "NO_DESTINATION"
    stage = "download"


class FetchError(PackageError):
    """远程拉取失败（网络/环境问题，可由调用方重试）"""

    code = "FETCH_FAILED"
    stage = "fetch"


class RepoUnavailableError(FetchError):
    """未配置远程仓库，无法下载"""

    code = "REPO_UNAVAILABLE"


class RemotePackageNotFoundError(FetchError):
    """远程仓库明确表示该包不存在（检查包名/版本）"""

    code = "PACKAGE_NOT_FOUND"


class PersistError(PackageError):
    """下载内容写入本地缓存失败（磁盘满、无权限等）"""

    code = "PERSIST_FAILED"
    stage = "persist"
