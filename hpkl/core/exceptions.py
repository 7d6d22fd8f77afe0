"""统一异常体系

所有业务异常继承 HpklError，替代散落的 ValueError / RuntimeError。
CLI 层据此输出友好提示并以非零状态退出。

分类:
  - 传输错误:  FetchError / ManifestError（网络、制品仓库失败）
  - 解析错误:  PackageUriError / MetadataError（URI、元数据、版本号非法）
  - 文件错误:  保持 OSError 原样上抛
"""

from __future__ import annotations


class HpklError(Exception):
    """基础异常"""

    code: str = "UNKNOWN"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ConfigError(HpklError):
    """配置文件缺失或内容无效"""

    code = "CONFIG_ERROR"


class ValidationError(HpklError):
    """输入数据校验失败"""

    code = "VALIDATION_ERROR"


class ProjectError(HpklError):
    """项目描述文件缺失、格式错误或存在循环引用"""

    code = "PROJECT_ERROR"


class PackageUriError(HpklError):
    """包 URI 或版本号无法解析"""

    code = "PACKAGE_URI_ERROR"


class MetadataError(HpklError):
    """包元数据 JSON 格式错误"""

    code = "METADATA_ERROR"


class DependencyError(HpklError):
    """依赖包解析失败，携带出错依赖的名称和 URI"""

    code = "DEPENDENCY_ERROR"

    def __init__(self, message: str, name: str = "", uri: str = "") -> None:
        super().__init__(message)
        self.name = name
        self.uri = uri


class FetchError(DependencyError):
    """远程拉取失败（HTTP / OCI）"""

    code = "FETCH_ERROR"


class ManifestError(FetchError):
    """OCI 制品清单缺少预期的层"""

    code = "MANIFEST_ERROR"


class LockFileError(HpklError):
    """锁文件冲突或内容无效"""

    code = "LOCK_FILE_ERROR"
