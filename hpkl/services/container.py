"""服务容器 — 统一依赖注入

配置与拉取器等运行时对象在进程入口构造一次，由容器显式持有并向下传递，
不依赖任何全局单例。同一容器内的实例共享状态。

依赖关系图（→ 表示依赖）:
  deps     → fetchers → config

用法:
    container = ServiceContainer(Config.from_file("~/.hpkl/config.yml"))
    deps = container.deps.resolve_project(".")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from hpkl.core.config import Config

if TYPE_CHECKING:
    from hpkl.core.dep.fetcher import Fetcher
    from hpkl.core.dep.models import RemoteKind
    from hpkl.core.dep_manager import DepManager

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器"""

    def __init__(self, config: Config | None = None) -> None:
        self._instances: dict[str, object] = {}
        self._config = config if config is not None else Config()

    @property
    def config(self) -> Config:
        return self._config

    @property
    def fetchers(self) -> Mapping[RemoteKind, Fetcher]:
        if "fetchers" not in self._instances:
            from hpkl.core.dep.fetcher import build_fetchers
            self._instances["fetchers"] = build_fetchers(self._config)
        return self._instances["fetchers"]  # type: ignore[return-value]

    @property
    def deps(self) -> DepManager:
        if "deps" not in self._instances:
            from hpkl.core.dep_manager import DepManager
            self._instances["deps"] = DepManager(self._config, fetchers=self.fetchers)
        return self._instances["deps"]  # type: ignore[return-value]
