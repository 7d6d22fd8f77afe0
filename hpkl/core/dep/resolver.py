"""依赖包元数据解析器

职责:
- 递归解析依赖声明的元数据（深度优先、前序遍历，同层按依赖名排序）
- 按包 URI 缓存已解析的元数据，菱形依赖只拉取一次
- 内容缓存中已有的精确版本直接读取元数据，不走网络
- 任一依赖解析失败立即中止，错误携带依赖名与 URI

合并规则:
  结果集作为累加器按引用传递，采用 "不存在才插入"。
  同一 URI 在结果集中始终绑定缓存中的同一个 Metadata 对象，不会出现冲突写入。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Protocol

from hpkl.core.dep.fetcher import Fetcher
from hpkl.core.dep.models import Dependency, Metadata, RemoteKind
from hpkl.core.exceptions import DependencyError, HpklError

logger = logging.getLogger(__name__)


class MetadataStore(Protocol):
    """本地元数据来源（内容缓存），命中时无需远程拉取"""

    def load_metadata(self, uri: str, kind: RemoteKind) -> Metadata | None:
        ...


class Resolver:
    """依赖元数据解析器，解析缓存仅在本实例内有效"""

    def __init__(
        self,
        fetchers: Mapping[RemoteKind, Fetcher],
        store: MetadataStore | None = None,
    ) -> None:
        self.fetchers = fetchers
        self.store = store
        self._cache: dict[str, Metadata] = {}
        self.fetch_count = 0

    def resolve(self, dependencies: Mapping[str, Dependency]) -> dict[str, Metadata]:
        """解析依赖集合，返回 {package_uri: Metadata}（含全部传递依赖）"""
        result: dict[str, Metadata] = {}
        self._resolve_into(dependencies, result)
        logger.info("解析完成: %d 个包, 远程拉取 %d 次", len(result), self.fetch_count)
        return result

    def _resolve_into(
        self, dependencies: Mapping[str, Dependency], result: dict[str, Metadata],
    ) -> None:
        for dep in sorted(dependencies.values(), key=lambda d: (d.name, d.uri)):
            if dep.uri in result:
                continue

            cached = self._cache.get(dep.uri)
            if cached is not None:
                # 子树已在首次出现时展开，这里只从缓存补齐结果集，不再拉取
                result[dep.uri] = cached
                self._resolve_into(cached.dependencies, result)
                continue

            metadata = self._load(dep)
            self._cache[dep.uri] = metadata
            result[dep.uri] = metadata
            if metadata.dependencies:
                self._resolve_into(metadata.dependencies, result)

    def _load(self, dep: Dependency) -> Metadata:
        if self.store is not None:
            try:
                stored = self.store.load_metadata(dep.uri, dep.kind)
            except (HpklError, OSError) as e:
                raise DependencyError(
                    f"读取缓存元数据失败 '{dep.name}' ({dep.uri}): {e}",
                    name=dep.name, uri=dep.uri,
                ) from e
            if stored is not None:
                logger.info("缓存命中: %s -> %s", dep.name, dep.uri)
                return stored
        return self._fetch(dep)

    def _fetch(self, dep: Dependency) -> Metadata:
        fetcher = self.fetchers.get(dep.kind)
        if fetcher is None:
            raise DependencyError(
                f"没有可用的 {dep.kind.value} 拉取器: {dep.name}",
                name=dep.name, uri=dep.uri,
            )

        logger.info("解析: %s -> %s (proto=%s)", dep.name, dep.uri, dep.kind.value)
        self.fetch_count += 1
        try:
            return fetcher.resolve_metadata(dep.uri)
        except DependencyError as e:
            # 拉取器记录的是实际请求地址，对外统一报告依赖名与包 URI
            e.name = e.name or dep.name
            e.uri = dep.uri
            logger.error(
                "元数据解析失败: %s (%s): %s", dep.name, dep.uri, e,
                extra={"dependency": dep.name, "uri": dep.uri},
            )
            raise
        except (HpklError, OSError) as e:
            logger.error(
                "元数据解析失败: %s (%s): %s", dep.name, dep.uri, e,
                extra={"dependency": dep.name, "uri": dep.uri},
            )
            raise DependencyError(
                f"解析依赖 '{dep.name}' 失败 ({dep.uri}): {e}",
                name=dep.name, uri=dep.uri,
            ) from e
