"""包存储根目录发现

默认实例化时需要两个根目录：用户包目录和下载缓存目录。
这里把 "目录从哪来" 抽象成 PackageDirs，测试可注入固定目录，
避免碰到真实的用户目录。任一目录无法确定时返回 None。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import platformdirs

if TYPE_CHECKING:
    from extpkg.core.config import Config

logger = logging.getLogger(__name__)

APP_DIR = "typst"
PACKAGES_SUBDIR = "packages"


class PackageDirs(Protocol):
    """存储根目录来源"""

    def user_packages_dir(self) -> Path | None:
        ...

    def cache_packages_dir(self) -> Path | None:
        ...


class StaticPackageDirs:
    """固定目录（测试 / 显式配置）"""

    def __init__(
        self, user: str | Path | None = None, cache: str | Path | None = None,
    ) -> None:
        self._user = Path(user) if user else None
        self._cache = Path(cache) if cache else None

    def user_packages_dir(self) -> Path | None:
        return self._user

    def cache_packages_dir(self) -> Path | None:
        return self._cache


class PlatformPackageDirs:
    """按平台约定推导目录，Config 中显式配置的路径优先

    Linux 下为 ~/.config/typst/packages 与 ~/.cache/typst/packages。
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config

    def user_packages_dir(self) -> Path | None:
        if self._config is not None and self._config.user_packages_dir:
            return Path(self._config.user_packages_dir)
        return _platform_dir(platformdirs.user_config_dir, "用户配置")

    def cache_packages_dir(self) -> Path | None:
        if self._config is not None and self._config.cache_packages_dir:
            return Path(self._config.cache_packages_dir)
        return _platform_dir(platformdirs.user_cache_dir, "缓存")


def _platform_dir(getter, label: str) -> Path | None:
    # 无 HOME 的容器或受限账号下 platformdirs 可能拿不到目录
    try:
        base = getter(appname=None, appauthor=False, ensure_exists=False)
    except (KeyError, OSError, RuntimeError) as e:
        logger.debug("无法确定%s目录: %s", label, e)
        return None
    if not base or base.startswith("~"):
        return None
    return Path(base) / APP_DIR / PACKAGES_SUBDIR
