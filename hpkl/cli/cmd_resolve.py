"""CLI — 依赖解析命令"""

from __future__ import annotations

import os

import click

from hpkl.cli import _fail
from hpkl.core.exceptions import HpklError
from hpkl.services.container import ServiceContainer


def register(group: click.Group) -> None:
    group.add_command(resolve)


@click.command()
@click.argument("project_dirs", nargs=-1, type=click.Path(file_okay=False))
@click.option(
    "--working-dir", "-w", default=None, type=click.Path(file_okay=False),
    help="项目目录（默认当前目录）",
)
@click.pass_obj
def resolve(svc: ServiceContainer, project_dirs: tuple[str, ...], working_dir: str | None) -> None:
    """解析项目全部依赖并生成 PklProject.deps.json"""
    dirs = list(project_dirs) or [working_dir or os.getcwd()]
    for d in dirs:
        try:
            deps = svc.deps.resolve_project(d)
        except (HpklError, OSError) as e:
            raise _fail(e) from e
        click.echo(f"已解析: {d} ({len(deps.resolved_dependencies)} 个依赖)")
