"""外部包解析

- models.py: 包标识 / 包 / 完整文件标识
- local.py: 本地目录存储（查找 + 落盘）
- remote_repo.py: HTTP 包仓库
- dirs.py: 存储根目录发现
- manager.py: 解析编排器
"""

from extpkg.core.package.local import LocalProvider
from extpkg.core.package.manager import ExternalPackageManager
from extpkg.core.package.models import FullFileId, Package, PackageSpec
from extpkg.core.package.remote_repo import RemoteRepoProvider

__all__ = [
    "ExternalPackageManager",
    "FullFileId",
    "LocalProvider",
    "Package",
    "PackageSpec",
    "RemoteRepoProvider",
]
