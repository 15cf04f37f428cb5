"""外部包数据模型

数据类:
- PackageSpec: 包标识 (namespace, name, version)
- Package: 已落在本地的包内容
- FullFileId: 包 + 包内路径
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urlparse
from urllib.request import url2pathname

from extpkg.core.exceptions import ValidationError

_IDENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")
_VERSION_RE = re.compile(r"^(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)\.(0|[1-9][0-9]*)$")
_SPEC_RE = re.compile(r"^@(?P<namespace>[^/]+)/(?P<name>[^:]+):(?P<version>.+)$")


@dataclass(frozen=True, order=True)
class PackageSpec:
    """包标识：命名空间 + 包名 + 精确版本（不支持版本范围）"""

    namespace: str
    name: str
    version: str

    def __post_init__(self) -> None:
        errors = []
        if not _IDENT_RE.match(self.namespace):
            errors.append(f"命名空间不合法: {self.namespace!r}")
        if not _IDENT_RE.match(self.name):
            errors.append(f"包名不合法: {self.name!r}")
        if not _VERSION_RE.match(self.version):
            errors.append(f"版本号必须是 MAJOR.MINOR.PATCH: {self.version!r}")
        if errors:
            raise ValidationError("包标识不合法: " + "; ".join(errors), errors)

    @classmethod
    def parse(cls, text: str) -> PackageSpec:
        """解析 "@namespace/name:version" 形式的包标识"""
        m = _SPEC_RE.match(text.strip())
        if m is None:
            raise ValidationError(
                f"包标识格式应为 @namespace/name:version，实际: {text!r}",
            )
        return cls(m["namespace"], m["name"], m["version"])

    @property
    def relative_dir(self) -> PurePosixPath:
        """包在存储根目录下的相对位置: <namespace>/<name>/<version>"""
        return PurePosixPath(self.namespace, self.name, self.version)

    def __str__(self) -> str:
        return f"@{self.namespace}/{self.name}:{self.version}"


@dataclass(frozen=True)
class Package:
    """已解析的包：标识 + 本地根目录

    只是一个值，不持有文件句柄，返回给调用方后无需额外协调。
    """

    spec: PackageSpec
    root: Path

    def exists(self) -> bool:
        return self.root.is_dir()

    def path_of(self, vpath: str | PurePosixPath) -> Path:
        """包内相对路径 -> 本地绝对路径，拒绝越出包根目录的路径"""
        rel = PurePosixPath(vpath)
        if rel.is_absolute() or ".." in rel.parts:
            raise ValidationError(f"包内路径不合法: {vpath}")
        return self.root.joinpath(*rel.parts)

    def read(self, vpath: str | PurePosixPath) -> bytes:
        return self.path_of(vpath).read_bytes()

    def files(self) -> list[str]:
        """包内所有普通文件的相对路径（POSIX 风格，已排序）"""
        if not self.exists():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*") if p.is_file()
        )


@dataclass(frozen=True)
class FullFileId:
    """完整文件标识：所属包 + 包内相对路径"""

    package: PackageSpec
    vpath: PurePosixPath

    def __str__(self) -> str:
        return f"{self.package}/{self.vpath.as_posix()}"


def uri_to_path(uri: str) -> Path | None:
    """file:// URI -> 规范化的本地路径；其他协议返回 None

    不访问文件系统，只做词法规范化。
    """
    parsed = urlparse(uri)
    if parsed.scheme != "file":
        return None
    if parsed.netloc not in ("", "localhost"):
        return None
    raw = url2pathname(parsed.path)
    if not raw:
        return None
    return Path(os.path.normpath(raw))
