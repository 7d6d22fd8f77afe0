"""hpkl 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
配置在 main 中构造一次，经 click 上下文以 ServiceContainer 形式传给子命令。
"""

from __future__ import annotations

import click

from hpkl import __version__
from hpkl.core.config import DEFAULT_CONFIG_FILE, Config
from hpkl.core.exceptions import ConfigError, DependencyError, HpklError
from hpkl.services.container import ServiceContainer
from hpkl.utils.logger import setup_logging_from_env


def _fail(exc: Exception) -> click.ClickException:
    """将业务异常转为 CLI 错误（非零退出）"""
    if isinstance(exc, DependencyError) and exc.name:
        return click.ClickException(f"[{exc.code}] {exc.name}: {exc}")
    if isinstance(exc, HpklError):
        return click.ClickException(f"[{exc.code}] {exc}")
    return click.ClickException(str(exc))


@click.group()
@click.version_option(version=__version__)
@click.option("--config", "config_path", default=DEFAULT_CONFIG_FILE, help="配置文件路径")
@click.option("--cache-dir", default=None, help="包缓存目录（默认 ~/.pkl/cache）")
@click.option("--plain-http", "-p", is_flag=True, default=None, help="仓库使用明文 http")
@click.pass_context
def main(
    ctx: click.Context, config_path: str, cache_dir: str | None, plain_http: bool | None,
) -> None:
    """hpkl - Pkl 包管理器"""
    setup_logging_from_env()
    try:
        cfg = Config.from_file(config_path)
    except ConfigError as e:
        raise _fail(e) from e
    if cache_dir:
        cfg.cache_dir = cache_dir
    if plain_http:
        cfg.plain_http = True
    ctx.obj = ServiceContainer(cfg)


# 注册各领域子命令
from hpkl.cli.cmd_resolve import register as _reg_resolve  # noqa: E402
from hpkl.cli.cmd_deps import register as _reg_deps  # noqa: E402

_reg_resolve(main)
_reg_deps(main)
