"""测试共享 fixture — 内存拉取器 + 项目描述文件生成

FakeFetcher 以 {package_uri: Metadata} 模拟远程仓库，记录每次调用，
用于验证 "菱形依赖只拉取一次"、"二次运行零网络请求" 等性质。
"""

from __future__ import annotations

import hashlib
import urllib.error
import urllib.request
from pathlib import Path
from typing import Any, Callable

import pytest
import yaml

from hpkl.core.dep.models import Checksums, Dependency, Metadata, RemoteKind
from hpkl.core.exceptions import FetchError


class FakeFetcher:
    """内存拉取器"""

    def __init__(self, kind: RemoteKind) -> None:
        self.kind = kind
        self.packages: dict[str, Metadata] = {}
        self.archives: dict[str, bytes] = {}
        self.failures: dict[str, Exception] = {}
        self.metadata_calls: list[str] = []
        self.archive_calls: list[str] = []

    def add(
        self,
        name: str,
        version: str,
        host: str = "example.com",
        deps: dict[str, str] | None = None,
    ) -> Metadata:
        uri = f"package://{host}/{name}@{version}"
        archive = f"zip:{name}@{version}".encode()
        metadata = Metadata(
            name=name,
            version=version,
            package_uri=uri,
            package_zip_url=f"https://{host}/{name}@{version}.zip",
            package_zip_checksums=Checksums(sha256=hashlib.sha256(archive).hexdigest()),
            authors=("dev@example.com",),
            dependencies={
                n: Dependency.declare(n, u) for n, u in (deps or {}).items()
            },
            resolver_kind=self.kind,
        )
        self.packages[uri] = metadata
        self.archives[uri] = archive
        return metadata

    def fail(self, uri: str, exc: Exception | None = None) -> None:
        self.failures[uri] = exc or FetchError(f"连接被拒绝: {uri}", uri=uri)

    def resolve_metadata(self, uri: str) -> Metadata:
        self.metadata_calls.append(uri)
        if uri in self.failures:
            raise self.failures[uri]
        if uri not in self.packages:
            raise FetchError(f"HTTP 请求失败: {uri} - 404 Not Found", uri=uri)
        return self.packages[uri]

    def resolve_archive(self, metadata: Metadata) -> bytes:
        self.archive_calls.append(metadata.package_uri)
        return self.archives[metadata.package_uri]


@pytest.fixture
def http_fetcher() -> FakeFetcher:
    return FakeFetcher(RemoteKind.HTTP)


@pytest.fixture
def oci_fetcher() -> FakeFetcher:
    return FakeFetcher(RemoteKind.OCI)


@pytest.fixture
def fetchers(http_fetcher: FakeFetcher, oci_fetcher: FakeFetcher) -> dict[RemoteKind, FakeFetcher]:
    return {RemoteKind.HTTP: http_fetcher, RemoteKind.OCI: oci_fetcher}


@pytest.fixture
def write_project() -> Callable[..., Path]:
    """写入 PklProject.yml，返回项目目录"""

    def _write(
        project_dir: Path,
        package: dict[str, str] | None = None,
        deps: Any = None,
    ) -> Path:
        project_dir.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {}
        if package:
            data["package"] = package
        if deps:
            data["dependencies"] = deps
        (project_dir / "PklProject.yml").write_text(
            yaml.dump(data, allow_unicode=True), encoding="utf-8",
        )
        return project_dir

    return _write


class _Response:
    def __init__(self, body: bytes) -> None:
        self.body = body

    def read(self) -> bytes:
        return self.body

    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *exc: object) -> None:
        return None


class FakeServer:
    """替换 urllib.request.urlopen 的路由表

    routes 登记 {url: body}，未登记的 URL 返回 404；
    challenges 登记 {url: WWW-Authenticate}，不带 Authorization 头访问时返回 401。
    """

    def __init__(self) -> None:
        self.routes: dict[str, bytes] = {}
        self.challenges: dict[str, str] = {}
        self.requested: list[str] = []
        self.auth_headers: list[str | None] = []

    def urlopen(self, req: Any, timeout: float | None = None) -> _Response:
        if isinstance(req, urllib.request.Request):
            url, auth = req.full_url, req.get_header("Authorization")
        else:
            url, auth = req, None
        self.requested.append(url)
        self.auth_headers.append(auth)
        if url in self.challenges and not auth:
            raise urllib.error.HTTPError(
                url, 401, "Unauthorized", {"WWW-Authenticate": self.challenges[url]}, None,
            )
        if url not in self.routes:
            raise urllib.error.HTTPError(url, 404, "Not Found", {}, None)
        return _Response(self.routes[url])


@pytest.fixture
def server(monkeypatch: pytest.MonkeyPatch) -> FakeServer:
    fake = FakeServer()
    monkeypatch.setattr(urllib.request, "urlopen", fake.urlopen)
    return fake
