"""Web 层统一响应辅助函数"""

from __future__ import annotations

from flask import Response, jsonify

from extpkg.core.exceptions import ExtPkgError

# 异常 code -> HTTP 状态码
_STATUS_BY_CODE = {
    "VALIDATION_ERROR": 400,
    "PACKAGE_NOT_FOUND": 404,
    "NO_DESTINATION": 409,
    "FETCH_FAILED": 502,
    "REPO_UNAVAILABLE": 503,
    "PERSIST_FAILED": 500,
    "CONFIG_ERROR": 500,
}


def ok(data: dict, status: int = 200) -> tuple[Response, int] | Response:
    """成功响应"""
    if status == 200:
        return jsonify(data)
    return jsonify(data), status


def bad_request(message: str) -> tuple[Response, int]:
    """请求参数错误"""
    return jsonify(error=message, code="VALIDATION_ERROR"), 400


def error_response(err: ExtPkgError) -> tuple[Response, int]:
    """业务异常 -> {"error", "code"} + 对应状态码"""
    status = _STATUS_BY_CODE.get(err.code, 500)
    return jsonify(error=str(err), code=err.code), status
