"""集中配置管理

提供统一的配置入口，支持从 YAML 文件加载 + 编程式覆盖。
包目录留空时由 PackageDirs 按平台约定推导。
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field

import yaml

from extpkg.core.exceptions import ConfigError
from extpkg.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/default.yml"
DEFAULT_REGISTRY_URL = "https://packages.typst.org"


@dataclass
class Config:
    """全局配置"""

    # 目录（空字符串 = 平台默认目录）
    user_packages_dir: str = ""
    cache_packages_dir: str = ""

    # 远程仓库
    registry_url: str = DEFAULT_REGISTRY_URL
    remote_enabled: bool = True
    download_timeout: int = 60

    # 放不到字段里的配置项
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_file(cls, path: str = DEFAULT_CONFIG_FILE) -> Config:
        """从 YAML 文件加载配置，不存在则返回默认"""
        try:
            data = load_yaml(path)
        except (yaml.YAMLError, OSError, ValueError) as e:
            raise ConfigError(f"无法加载配置文件 {path}: {e}") from e
        if not data:
            return cls()
        known = {f.name for f in cls.__dataclass_fields__.values()}
        matched = {k: v for k, v in data.items() if k in known and k != "extra"}
        extra = {k: v for k, v in data.items() if k not in known}
        cfg = cls(**matched)
        cfg.extra = extra
        cfg.validate()
        return cfg

    def validate(self) -> None:
        for name in ("user_packages_dir", "cache_packages_dir", "registry_url"):
            value = getattr(self, name)
            if not isinstance(value, str):
                raise ConfigError(f"{name} 必须是字符串: {value!r}")
        if not isinstance(self.remote_enabled, bool):
            raise ConfigError(
                f"remote_enabled 必须是布尔值: {self.remote_enabled!r}",
            )
        if not isinstance(self.download_timeout, int) or self.download_timeout <= 0:
            raise ConfigError(
                f"download_timeout 必须是正整数: {self.download_timeout!r}",
            )

    def to_dict(self) -> dict:
        return asdict(self)


# 全局单例，首次 import 时不加载文件；由 CLI / Web 入口显式初始化
_current: Config | None = None


def get_config() -> Config:
    """获取当前配置（未初始化则返回默认值）"""
    global _current  # noqa: PLW0603
    if _current is None:
        _current = Config()
    return _current


def init_config(path: str = DEFAULT_CONFIG_FILE) -> Config:
    """从文件初始化全局配置"""
    global _current  # noqa: PLW0603
    _current = Config.from_file(path)
    logger.info("配置已加载: %s", path)
    return _current
