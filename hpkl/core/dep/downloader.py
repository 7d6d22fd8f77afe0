"""内容缓存下载器

职责:
- 计算包在内容缓存中的目录（按包划分，与版本无关）
- 目录已存在视为已下载，跳过
- 缺失时按 Metadata.resolver_kind 选择拉取器下载归档，写入元数据 JSON 与归档

被去重淘汰的版本只补写元数据 JSON，再次解析时同样不走网络。

缓存布局:
  <package_root>/<host>/<path>/<name>@<version>.json
  <package_root>/<host>/<path>/<name>@<version>.zip

不校验归档校验和；失败时不回滚已创建的目录，由调用方在重试前清理。
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from hpkl.core.dep.fetcher import Fetcher
from hpkl.core.dep.models import Metadata, RemoteKind
from hpkl.core.dep.uri import PackageUri
from hpkl.core.exceptions import DependencyError

logger = logging.getLogger(__name__)


class PackageDownloader:
    """内容缓存下载器"""

    def __init__(self, package_root: Path, fetchers: Mapping[RemoteKind, Fetcher]) -> None:
        self.package_root = package_root
        self.fetchers = fetchers

    def package_dir(self, metadata: Metadata) -> Path:
        return PackageUri.parse(metadata.package_uri).cache_path(self.package_root)

    def exists(self, metadata: Metadata) -> bool:
        return self.package_dir(metadata).exists()

    def load_metadata(self, uri: str, kind: RemoteKind) -> Metadata | None:
        """从内容缓存读取某个精确版本的元数据，不存在时返回 None"""
        parsed = PackageUri.parse(uri)
        pkg_dir = parsed.cache_path(self.package_root)
        if not pkg_dir.is_dir():
            return None
        matches = sorted(pkg_dir.glob(f"*@{parsed.version}.json"))
        if not matches:
            return None
        logger.debug("内容缓存命中元数据: %s", matches[0])
        return Metadata.from_json(matches[0].read_bytes(), kind)

    def download(self, resolved: Mapping[str, Metadata]) -> list[Path]:
        """下载缓存中缺失的包，返回新写入的目录列表"""
        written: list[Path] = []
        for uri, metadata in sorted(resolved.items()):
            dest = self.package_dir(metadata)
            if dest.exists():
                logger.info("缓存命中: %s -> %s", uri, dest)
                continue

            fetcher = self.fetchers.get(metadata.resolver_kind)
            if fetcher is None:
                raise DependencyError(
                    f"没有可用的 {metadata.resolver_kind.value} 拉取器: {metadata.name}",
                    name=metadata.name, uri=uri,
                )

            logger.info(
                "下载: %s (proto=%s)", uri, metadata.resolver_kind.value,
            )
            archive = fetcher.resolve_archive(metadata)

            dest.mkdir(parents=True, exist_ok=True)
            self._write_metadata(dest, metadata)
            (dest / f"{metadata.name}@{metadata.version}.zip").write_bytes(archive)
            logger.info("  已保存: %s", dest)
            written.append(dest)
        return written

    def remember(self, resolved: Mapping[str, Metadata]) -> None:
        """为去重中被淘汰的版本补写元数据 JSON（不下载归档）

        使再次解析时这些版本同样命中内容缓存。包目录不存在时跳过。
        """
        for _, metadata in sorted(resolved.items()):
            dest = self.package_dir(metadata)
            target = dest / f"{metadata.name}@{metadata.version}.json"
            if not dest.is_dir() or target.exists():
                continue
            self._write_metadata(dest, metadata)
            logger.debug("  已记录元数据: %s", target)

    @staticmethod
    def _write_metadata(dest: Path, metadata: Metadata) -> None:
        (dest / f"{metadata.name}@{metadata.version}.json").write_text(
            json.dumps(metadata.to_dict(), ensure_ascii=False), encoding="utf-8",
        )
