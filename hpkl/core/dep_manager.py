"""依赖包管理器

串联完整的依赖解析流程:

  1. 加载项目描述（远程依赖 + 本地子项目）
  2. Resolver.resolve      递归解析元数据
  3. deduplicate           同一主版本只保留最高版本
  4. PackageDownloader     补齐内容缓存
  5. build_lock/write_lock 生成 PklProject.deps.json

任一步骤失败立即中止，锁文件只在最后一步写入，失败时旧锁文件保持不变。

用法:
    from hpkl.core.config import Config
    from hpkl.core.dep_manager import DepManager

    dm = DepManager(Config(cache_dir="/tmp/pkl-cache"))
    deps = dm.resolve_project("path/to/project")
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Mapping
from pathlib import Path

from hpkl.core.config import PACKAGE_CACHE_SUBDIR, Config
from hpkl.core.dep.dedup import deduplicate
from hpkl.core.dep.downloader import PackageDownloader
from hpkl.core.dep.fetcher import Fetcher, build_fetchers
from hpkl.core.dep.lockfile import ProjectDeps, build_lock, read_lock, write_lock
from hpkl.core.dep.models import RemoteKind
from hpkl.core.dep.resolver import Resolver
from hpkl.core.dep.uri import PackageUri
from hpkl.core.project import load_project

logger = logging.getLogger(__name__)


class DepManager:
    """依赖解析流程编排"""

    def __init__(
        self,
        config: Config,
        fetchers: Mapping[RemoteKind, Fetcher] | None = None,
    ) -> None:
        self.config = config
        self.fetchers = fetchers if fetchers is not None else build_fetchers(config)
        self.downloader = PackageDownloader(config.package_root, self.fetchers)

    def resolve_project(self, working_dir: str | Path) -> ProjectDeps:
        """解析项目依赖并写入锁文件"""
        project = load_project(working_dir, self.config.project_file)
        logger.info("解析项目: %s (%s)", project.name, project.project_dir)

        # 每次运行使用独立的解析缓存；内容缓存中已有的包不再走网络
        resolver = Resolver(self.fetchers, store=self.downloader)
        resolved = resolver.resolve(project.all_remote_dependencies())
        deduplicated = deduplicate(resolved)
        self.downloader.download(deduplicated)
        self.downloader.remember(
            {u: m for u, m in resolved.items() if u not in deduplicated}
        )

        deps = build_lock(deduplicated, project)
        write_lock(project.project_dir, deps, self.config.lock_file)
        return deps

    def read_lock(self, working_dir: str | Path) -> ProjectDeps:
        return read_lock(Path(working_dir) / self.config.lock_file)

    def link_packages(self, uris: Iterable[str], target_cache_dir: str | Path) -> list[Path]:
        """将本地缓存中的包以符号链接方式挂到另一个缓存目录下

        目标缓存与当前缓存相同时不做任何事。已存在的链接保持不变。
        """
        target_root = Path(target_cache_dir).expanduser() / PACKAGE_CACHE_SUBDIR
        source_root = self.config.package_root
        if target_root.resolve() == source_root.resolve():
            logger.info("目标缓存与当前缓存相同，跳过: %s", target_root)
            return []

        linked: list[Path] = []
        for raw in uris:
            # 兼容 "uri::附加信息" 写法
            parsed = PackageUri.parse(raw.split("::", 1)[0])
            source = parsed.cache_path(source_root)
            target = parsed.cache_path(target_root)
            if target.exists() or target.is_symlink():
                logger.info("已存在，跳过: %s", target)
                continue
            if not source.exists():
                raise FileNotFoundError(f"包不在本地缓存中: {source}")
            target.parent.mkdir(parents=True, exist_ok=True)
            os.symlink(source, target, target_is_directory=True)
            logger.info("已链接: %s -> %s", target, source)
            linked.append(target)
        return linked
