"""依赖解析引擎

拆分说明:
- uri.py: 包 URI 结构化解析
- models.py: 数据模型
- fetcher.py: 拉取器协议 + HTTP 拉取器
- oci.py: OCI 制品仓库拉取器
- resolver.py: 递归元数据解析
- dedup.py: 版本去重
- downloader.py: 内容缓存下载
- lockfile.py: 锁文件构建与读写

流程: Resolver.resolve -> deduplicate -> PackageDownloader.download -> build_lock -> write_lock
"""

from hpkl.core.dep.dedup import deduplicate
from hpkl.core.dep.downloader import PackageDownloader
from hpkl.core.dep.fetcher import Fetcher, HttpFetcher, build_fetchers
from hpkl.core.dep.lockfile import ProjectDeps, ResolvedDependency, build_lock, read_lock, write_lock
from hpkl.core.dep.models import Checksums, Dependency, Metadata, RemoteKind
from hpkl.core.dep.oci import OciFetcher, RegistryClient
from hpkl.core.dep.resolver import Resolver
from hpkl.core.dep.uri import PackageUri

__all__ = [
    "Checksums",
    "Dependency",
    "Fetcher",
    "HttpFetcher",
    "Metadata",
    "OciFetcher",
    "PackageDownloader",
    "PackageUri",
    "ProjectDeps",
    "RegistryClient",
    "RemoteKind",
    "ResolvedDependency",
    "Resolver",
    "build_fetchers",
    "build_lock",
    "deduplicate",
    "read_lock",
    "write_lock",
]
