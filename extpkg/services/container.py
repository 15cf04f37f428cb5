"""服务容器 — CLI 与 Web 共享同一组懒加载实例

用法:
    container = ServiceContainer()
    manager = container.packages          # 首次访问时构造

    # 测试中注入固定目录
    container = ServiceContainer(config=cfg, dirs=StaticPackageDirs(u, c))

    # 全局单例
    from extpkg.services.container import get_container
    manager = get_container().packages
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from extpkg.core.config import Config
    from extpkg.core.package.dirs import PackageDirs
    from extpkg.core.package.manager import ExternalPackageManager

class ServiceContainer:
    """懒加载服务容器"""

    def __init__(
        self, config: Config | None = None, dirs: PackageDirs | None = None,
    ) -> None:
        self._instances: dict[str, object] = {}
        if config is None:
            from extpkg.core.config import get_config
            config = get_config()
        self._config = config
        self._dirs = dirs

    @property
    def config(self) -> Config:
        return self._config

    @property
    def packages(self) -> ExternalPackageManager:
        if "packages" not in self._instances:
            from extpkg.core.package.manager import ExternalPackageManager
            self._instances["packages"] = ExternalPackageManager.default(
                self._config, dirs=self._dirs,
            )
        return self._instances["packages"]  # type: ignore[return-value]

_container: ServiceContainer | None = None
_lock = threading.Lock()

def get_container() -> ServiceContainer:
    """获取全局服务容器（线程安全）"""
    global _container  # noqa: PLW0603
    if _container is None:
        with _lock:
            if _container is None:
                _container = ServiceContainer()
    return _container

def reset_container() -> None:
    """重置全局容器（配置变更后或测试中使用）"""
    global _container  # noqa: PLW0603
    with _lock:
        _container = None
