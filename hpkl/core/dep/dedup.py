"""依赖版本去重

按 (包名, host, path, 主版本) 分组，每组只保留语义化版本最高的一个，其余直接丢弃，
不下载也不写入锁文件。不同主版本属于不同分组，可以同时保留。

注意: 这是 "高版本胜出" 策略而非约束求解，被丢弃的版本是否满足声明方的期望不做校验。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from hpkl.core.dep.models import Metadata
from hpkl.core.dep.uri import PackageUri, parse_version

logger = logging.getLogger(__name__)


def deduplicate(resolved: Mapping[str, Metadata]) -> dict[str, Metadata]:
    """去重，返回 {package_uri: Metadata}"""
    winners: dict[tuple[str, str, str, int], tuple[str, Metadata]] = {}

    for uri, metadata in sorted(resolved.items()):
        parsed = PackageUri.parse(uri)
        version = parse_version(metadata.version)
        key = (metadata.name, parsed.host, parsed.path, version.major)

        current = winners.get(key)
        if current is None:
            winners[key] = (uri, metadata)
            continue

        kept_uri, kept = current
        if version > parse_version(kept.version):
            logger.info("版本去重: %s 替换 %s", uri, kept_uri)
            winners[key] = (uri, metadata)
        else:
            logger.info("版本去重: %s 保留, 丢弃 %s", kept_uri, uri)

    return dict(sorted(winners.values(), key=lambda item: item[0]))
