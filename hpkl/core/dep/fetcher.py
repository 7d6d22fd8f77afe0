"""依赖包拉取器

职责:
- 定义拉取器协议（元数据 + 归档）
- HTTP 拉取器: GET 元数据 JSON 与独立的归档 URL
- 按 RemoteKind 组装拉取器表
"""

from __future__ import annotations

import logging
import urllib.error
import urllib.request
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from hpkl.core.dep.models import Metadata, RemoteKind
from hpkl.core.dep.uri import PackageUri
from hpkl.core.exceptions import FetchError
from hpkl.utils.net import scheme_for, validate_url_scheme

if TYPE_CHECKING:
    from hpkl.core.config import Config

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """拉取器协议"""

    def resolve_metadata(self, uri: str) -> Metadata:
        """拉取并解析包元数据"""
        ...

    def resolve_archive(self, metadata: Metadata) -> bytes:
        """拉取包归档原始字节"""
        ...


def http_get(url: str, *, timeout: int, headers: Mapping[str, str] | None = None) -> bytes:
    """GET 请求，非 2xx 或网络错误统一转为 FetchError"""
    validate_url_scheme(url, context="package fetch")
    req = urllib.request.Request(url, headers=dict(headers or {}))
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:  # nosec B310
            return resp.read()
    except urllib.error.HTTPError as e:
        raise FetchError(f"HTTP 请求失败: {url} - {e.code} {e.reason}", uri=url) from e
    except (urllib.error.URLError, OSError) as e:
        raise FetchError(f"网络错误: {url} - {e}", uri=url) from e


class HttpFetcher:
    """HTTP 拉取器: 包 URI 改写为 http(s) 后直接 GET"""

    def __init__(self, plain_http: bool = False, timeout: int = 30) -> None:
        self.plain_http = plain_http
        self.timeout = timeout

    def metadata_url(self, uri: str) -> str:
        return str(PackageUri.parse(uri).with_scheme(scheme_for(self.plain_http)))

    def resolve_metadata(self, uri: str) -> Metadata:
        url = self.metadata_url(uri)
        logger.debug("HTTP 拉取元数据: %s", url)
        body = http_get(url, timeout=self.timeout)
        return Metadata.from_json(body, RemoteKind.HTTP)

    def resolve_archive(self, metadata: Metadata) -> bytes:
        if not metadata.package_zip_url:
            raise FetchError(
                f"包 '{metadata.name}' 未定义 packageZipUrl",
                name=metadata.name, uri=metadata.package_uri,
            )
        logger.debug("HTTP 拉取归档: %s", metadata.package_zip_url)
        return http_get(metadata.package_zip_url, timeout=self.timeout)


def build_fetchers(config: Config) -> dict[RemoteKind, Fetcher]:
    """按配置组装 RemoteKind -> 拉取器表"""
    from hpkl.core.dep.oci import OciFetcher, RegistryClient

    return {
        RemoteKind.HTTP: HttpFetcher(
            plain_http=config.plain_http, timeout=config.http_timeout,
        ),
        RemoteKind.OCI: OciFetcher(
            RegistryClient(plain_http=config.plain_http, timeout=config.http_timeout),
        ),
    }
