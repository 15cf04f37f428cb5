"""CLI — 外部包命令"""

from __future__ import annotations

import asyncio

import click

from extpkg.cli import _svc, fail
from extpkg.core.exceptions import ExtPkgError
from extpkg.core.package.models import PackageSpec


def register(group: click.Group) -> None:
    group.add_command(resolve)
    group.add_command(fetch)
    group.add_command(locate)
    group.add_command(list_packages)
    group.add_command(info)


def _parse_spec(text: str) -> PackageSpec:
    try:
        return PackageSpec.parse(text)
    except ExtPkgError as e:
        raise click.BadParameter(str(e)) from e


@click.command()
@click.argument("spec")
def resolve(spec: str) -> None:
    """解析包并输出本地根目录（本地没有时下载）"""
    pkg_spec = _parse_spec(spec)
    try:
        pkg = asyncio.run(_svc().packages.package(pkg_spec))
    except ExtPkgError as e:
        fail(e)
    click.echo(str(pkg.root))


@click.command()
@click.argument("specs", nargs=-1, required=True)
def fetch(specs: tuple[str, ...]) -> None:
    """批量获取多个包，任一失败时退出码为 1"""
    parsed = [_parse_spec(s) for s in specs]
    results = asyncio.run(_svc().packages.package_many(parsed))
    failed = 0
    for spec, outcome in results.items():
        if isinstance(outcome, ExtPkgError):
            failed += 1
            click.echo(f"  [FAILED] {spec}  [{outcome.code}] {outcome}")
        else:
            click.echo(f"  [OK]     {spec} -> {outcome.root}")
    if failed:
        raise SystemExit(1)


@click.command()
@click.argument("uri")
def locate(uri: str) -> None:
    """判断文档 URI 属于哪个包（不下载）"""
    fid = _svc().packages.full_id(uri)
    if fid is None:
        click.echo("不属于任何已知包")
        return
    click.echo(str(fid))


@click.command(name="list")
def list_packages() -> None:
    """列出本地已有的包"""
    packages = _svc().packages.list_packages()
    if not packages:
        click.echo("本地没有任何包。")
        return
    for p in packages:
        marker = " (cache)" if p["cached"] else ""
        click.echo(f"  {p['spec']:40s} {p['root']}{marker}")


@click.command()
def info() -> None:
    """显示查找后端、缓存目录与远程仓库"""
    manager = _svc().packages
    click.echo("查找后端（按优先级）:")
    if not manager.providers:
        click.echo("  (无)")
    for i, provider in enumerate(manager.providers, 1):
        click.echo(f"  {i}. {provider.root}")
    cache = manager.cache
    click.echo(f"缓存目录: {cache.root if cache is not None else '(无)'}")
    repo = manager.repo
    click.echo(f"远程仓库: {repo!r}" if repo is not None else "远程仓库: (无)")
