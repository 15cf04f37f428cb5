"""extpkg 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
"""

from __future__ import annotations

import os
from typing import Any, NoReturn

import click

from extpkg import __version__
from extpkg.core.config import DEFAULT_CONFIG_FILE, init_config
from extpkg.core.exceptions import ExtPkgError
from extpkg.services.container import get_container, reset_container
from extpkg.utils.logger import setup_logging


def _svc() -> Any:
    """获取全局服务容器的快捷方式"""
    return get_container()


def fail(err: ExtPkgError) -> NoReturn:
    """以 [CODE] message 形式报错并以退出码 1 结束"""
    click.echo(f"[{err.code}] {err}", err=True)
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__)
@click.option(
    "-c", "--config", "config_path", default=DEFAULT_CONFIG_FILE,
    show_default=True, help="配置文件路径",
)
def main(config_path: str) -> None:
    """extpkg - 外部包解析与缓存"""
    setup_logging(
        level=os.getenv("EXTPKG_LOG_LEVEL", "WARNING"),
        json_output=os.getenv("EXTPKG_LOG_JSON", "") == "1",
    )
    try:
        init_config(config_path)
    except ExtPkgError as e:
        fail(e)
    reset_container()


# 注册各领域子命令
from extpkg.cli.cmd_package import register as _reg_package  # noqa: E402
from extpkg.cli.cmd_serve import register as _reg_serve  # noqa: E402

_reg_package(main)
_reg_serve(main)
