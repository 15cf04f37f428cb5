"""网络工具 — 仓库地址校验"""

from __future__ import annotations

from urllib.parse import urlparse

from extpkg.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def normalize_registry_url(url: str, *, context: str = "") -> str:
    """校验仓库地址并去掉末尾的 /

    只允许 http/https，防止 file:// 等协议把下载指向本机任意路径。

    Raises:
        ValidationError: 协议不在白名单内或缺少主机名
    """
    label = f" ({context})" if context else ""
    parsed = urlparse(url.strip())
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )
    if not parsed.netloc:
        raise ValidationError(f"URL 缺少主机名{label}: {url}")
    if parsed.query or parsed.fragment:
        raise ValidationError(f"仓库地址不能带查询参数或片段{label}: {url}")
    return parsed.geturl().rstrip("/")
