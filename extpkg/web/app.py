"""轻量级 Web API（基于 Flask）

为编辑器插件等外部调用方提供包解析接口：
  GET /api/packages                         本地已有包列表
  GET /api/packages/<ns>/<name>/<version>   解析（必要时下载）
  GET /api/locate?uri=...                   文档 URI 归属
  GET /api/info                             后端 / 缓存 / 仓库
"""

from __future__ import annotations

import asyncio
import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from extpkg.core.exceptions import ExtPkgError
from extpkg.core.package.models import PackageSpec
from extpkg.services.container import ServiceContainer, get_container
from extpkg.web.responses import bad_request, error_response, ok

logger = logging.getLogger(__name__)


def create_app(container: ServiceContainer | None = None) -> Flask:
    """创建 Flask 应用；不传 container 时使用全局容器"""
    app = Flask(__name__)

    def _manager():
        return (container or get_container()).packages

    @app.errorhandler(HTTPException)
    def handle_http_exception(exc):
        """将所有 HTTP 异常统一返回 JSON"""
        return jsonify(error=exc.description), exc.code

    @app.errorhandler(ExtPkgError)
    def handle_extpkg_error(exc):
        return error_response(exc)

    @app.errorhandler(Exception)
    def handle_generic_exception(exc):  # noqa: ARG001
        """捕获未处理异常，返回 500 JSON"""
        logger.exception("未处理的异常")
        return jsonify(error="服务器内部错误"), 500

    @app.route("/api/packages")
    def api_packages():
        return ok({"packages": _manager().list_packages()})

    @app.route("/api/packages/<namespace>/<name>/<version>")
    def api_package(namespace: str, name: str, version: str):
        spec = PackageSpec(namespace, name, version)
        pkg = asyncio.run(_manager().package(spec))
        return ok({
            "spec": str(pkg.spec),
            "root": str(pkg.root),
            "files": pkg.files(),
        })

    @app.route("/api/locate")
    def api_locate():
        uri = request.args.get("uri", "")
        if not uri:
            return bad_request("需要提供 uri 参数")
        fid = _manager().full_id(uri)
        if fid is None:
            return ok({"full_id": None})
        return ok({"full_id": {
            "package": str(fid.package),
            "vpath": fid.vpath.as_posix(),
        }})

    @app.route("/api/info")
    def api_info():
        manager = _manager()
        cache = manager.cache
        repo = manager.repo
        return ok({
            "providers": [str(p.root) for p in manager.providers],
            "cache": str(cache.root) if cache is not None else None,
            "repo": repr(repo) if repo is not None else None,
        })

    return app


def run_server(port: int = 8765, debug: bool = False, host: str = "127.0.0.1") -> None:
    logger.info("extpkg API 已启动: http://%s:%d", host, port)
    create_app().run(host=host, port=port, debug=debug)
