"""OCI 制品仓库拉取

职责:
- 解析 OCI 引用（host/repo:tag），tag 中的 + 转为 _
- 通过 distribution HTTP API 拉取 manifest 与 blob
- 匿名 Bearer token 握手
- 按媒体类型挑选 config / metadata / package 层

仅实现拉取；推送、登录等由外部工具负责。
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass

from hpkl.core.dep.models import Metadata, RemoteKind
from hpkl.core.dep.uri import PackageUri
from hpkl.core.exceptions import FetchError, ManifestError, PackageUriError
from hpkl.utils.net import scheme_for, validate_url_scheme

logger = logging.getLogger(__name__)

CONFIG_MEDIA_TYPE = "application/vnd.hpkl.io.config.v1+json"
METADATA_MEDIA_TYPE = "application/vnd.hpkl.io.metadata.v1+json"
PACKAGE_LAYER_MEDIA_TYPE = "application/vnd.hpkl.io.pkg.content.v1.tar+gzip"

MANIFEST_ACCEPT = ", ".join((
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.docker.distribution.manifest.v2+json",
))

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


@dataclass(frozen=True)
class OciReference:
    host: str
    repository: str
    tag: str

    @classmethod
    def parse(cls, raw: str) -> OciReference:
        host, sep, rest = raw.partition("/")
        repository, colon, tag = rest.rpartition(":")
        if not sep or not colon or not repository or not tag or "/" in tag:
            raise PackageUriError(f"无效的 OCI 引用: '{raw}'")
        # + 不是合法的 tag 字符，按约定转为 _
        return cls(host=host, repository=repository, tag=tag.replace("+", "_"))

    def __str__(self) -> str:
        return f"{self.host}/{self.repository}:{self.tag}"


@dataclass
class PullResult:
    ref: str
    manifest_digest: str
    metadata: bytes
    archive: bytes | None = None
    archive_digest: str = ""


class RegistryClient:
    """OCI distribution API 客户端（只读）"""

    def __init__(self, plain_http: bool = False, timeout: int = 30) -> None:
        self.plain_http = plain_http
        self.timeout = timeout
        self._tokens: dict[str, str] = {}

    def _base_url(self, ref: OciReference) -> str:
        return f"{scheme_for(self.plain_http)}://{ref.host}/v2/{ref.repository}"

    def _fetch_token(self, challenge: str) -> str:
        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", "")
        if not challenge.lower().startswith("bearer") or not realm:
            raise FetchError(f"不支持的认证方式: {challenge}")
        url = f"{realm}?{urllib.parse.urlencode(params)}"
        validate_url_scheme(url, context="registry token")
        try:
            with urllib.request.urlopen(url, timeout=self.timeout) as resp:  # nosec B310
                body = json.loads(resp.read())
        except (urllib.error.URLError, OSError, json.JSONDecodeError) as e:
            raise FetchError(f"获取仓库 token 失败: {realm} - {e}") from e
        token = body.get("token") or body.get("access_token")
        if not token:
            raise FetchError(f"仓库 token 响应为空: {realm}")
        return token

    def _get(self, ref: OciReference, path: str, accept: str = "") -> bytes:
        url = f"{self._base_url(ref)}/{path}"
        validate_url_scheme(url, context=f"registry {ref.host}")
        for attempt in range(2):
            headers = {"Accept": accept} if accept else {}
            token = self._tokens.get(ref.host)
            if token:
                headers["Authorization"] = f"Bearer {token}"
            req = urllib.request.Request(url, headers=headers)
            try:
                with urllib.request.urlopen(req, timeout=self.timeout) as resp:  # nosec B310
                    return resp.read()
            except urllib.error.HTTPError as e:
                challenge = e.headers.get("WWW-Authenticate", "") if e.headers else ""
                if e.code == 401 and challenge and attempt == 0:
                    self._tokens[ref.host] = self._fetch_token(challenge)
                    continue
                raise FetchError(f"仓库请求失败: {url} - {e.code} {e.reason}", uri=url) from e
            except (urllib.error.URLError, OSError) as e:
                raise FetchError(f"仓库网络错误: {url} - {e}", uri=url) from e
        raise FetchError(f"仓库认证失败: {url}", uri=url)

    def pull(self, raw_ref: str, with_package: bool = True) -> PullResult:
        """拉取制品，返回元数据（及可选的归档）字节"""
        ref = OciReference.parse(raw_ref)
        manifest_bytes = self._get(ref, f"manifests/{ref.tag}", accept=MANIFEST_ACCEPT)
        try:
            manifest = json.loads(manifest_bytes)
        except json.JSONDecodeError as e:
            raise ManifestError(f"manifest 不是合法 JSON: {ref}", uri=str(ref)) from e

        descriptors = [manifest.get("config") or {}, *(manifest.get("layers") or [])]
        by_type = {d.get("mediaType"): d for d in descriptors if d.get("digest")}

        if CONFIG_MEDIA_TYPE not in by_type:
            raise ManifestError(
                f"could not load config with mediatype {CONFIG_MEDIA_TYPE}", uri=str(ref),
            )
        if METADATA_MEDIA_TYPE not in by_type:
            raise ManifestError(
                f"could not load metadata with mediatype {METADATA_MEDIA_TYPE}", uri=str(ref),
            )
        if with_package and PACKAGE_LAYER_MEDIA_TYPE not in by_type:
            raise ManifestError(
                f"manifest does not contain a layer with mediatype {PACKAGE_LAYER_MEDIA_TYPE}",
                uri=str(ref),
            )

        result = PullResult(
            ref=str(ref),
            manifest_digest="sha256:" + hashlib.sha256(manifest_bytes).hexdigest(),
            metadata=self._get(ref, f"blobs/{by_type[METADATA_MEDIA_TYPE]['digest']}"),
        )
        if with_package:
            pkg = by_type[PACKAGE_LAYER_MEDIA_TYPE]
            result.archive = self._get(ref, f"blobs/{pkg['digest']}")
            result.archive_digest = pkg["digest"]
        logger.info("已拉取: %s", result.ref)
        return result


class OciFetcher:
    """OCI 拉取器: 包 URI 转为 OCI 引用后经 RegistryClient 拉取"""

    def __init__(self, client: RegistryClient) -> None:
        self.client = client

    def resolve_metadata(self, uri: str) -> Metadata:
        ref = PackageUri.parse(uri).registry_ref()
        result = self.client.pull(ref, with_package=False)
        return Metadata.from_json(result.metadata, RemoteKind.OCI)

    def resolve_archive(self, metadata: Metadata) -> bytes:
        ref = PackageUri.parse(metadata.package_uri).registry_ref()
        result = self.client.pull(ref, with_package=True)
        if result.archive is None:
            raise ManifestError(f"制品缺少归档层: {ref}", name=metadata.name, uri=ref)
        return result.archive
