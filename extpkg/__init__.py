"""extpkg - 外部包解析与缓存

按需解析文档工具链引用的外部包：先查本地目录，缺失时从远程仓库下载并缓存。
"""

__version__ = "0.1.0"
