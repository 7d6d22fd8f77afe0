"""CLI — 锁文件查询与缓存链接命令"""

from __future__ import annotations

import os

import click

from hpkl.cli import _fail
from hpkl.core.exceptions import HpklError
from hpkl.services.container import ServiceContainer


def register(group: click.Group) -> None:
    group.add_command(list_deps)
    group.add_command(download_package)


@click.command(name="deps")
@click.option(
    "--working-dir", "-w", default=None, type=click.Path(file_okay=False),
    help="项目目录（默认当前目录）",
)
@click.pass_obj
def list_deps(svc: ServiceContainer, working_dir: str | None) -> None:
    """列出锁文件中的已解析依赖"""
    try:
        deps = svc.deps.read_lock(working_dir or os.getcwd())
    except FileNotFoundError:
        click.echo("锁文件不存在，请先执行 hpkl resolve。")
        return
    except HpklError as e:
        raise _fail(e) from e

    if not deps.resolved_dependencies:
        click.echo("没有已解析的依赖。")
        return
    for key, entry in deps.resolved_dependencies.items():
        extra = entry.path if entry.dependency_type == "local" else (entry.checksums or {}).get("sha256", "")
        click.echo(f"  {key:50s} [{entry.dependency_type:6s}] {entry.uri}  {extra}")


@click.command(name="download-package")
@click.argument("uris", nargs=-1, required=True)
@click.option("--target-cache-dir", required=True, help="目标缓存目录")
@click.pass_obj
def download_package(svc: ServiceContainer, uris: tuple[str, ...], target_cache_dir: str) -> None:
    """将本地缓存中的包链接到另一个缓存目录"""
    try:
        linked = svc.deps.link_packages(uris, target_cache_dir)
    except (HpklError, OSError) as e:
        raise _fail(e) from e
    for path in linked:
        click.echo(f"已链接: {path}")
