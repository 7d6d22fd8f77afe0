"""网络工具: 仓库地址协议选择与 URL 校验"""

from __future__ import annotations

from urllib.parse import urlparse

from hpkl.core.exceptions import ValidationError

_ALLOWED_SCHEMES = frozenset(("http", "https"))


def scheme_for(plain_http: bool) -> str:
    """包仓库与 OCI 仓库使用的传输协议，默认 https"""
    return "http" if plain_http else "https"


def validate_url_scheme(url: str, *, context: str = "") -> None:
    """校验 URL 为带主机名的 http/https 地址，防止 file:// 等非预期协议访问

    Raises:
        ValidationError: 协议不在白名单内或缺少主机名
    """
    parsed = urlparse(url)
    label = f" ({context})" if context else ""
    if parsed.scheme not in _ALLOWED_SCHEMES:
        raise ValidationError(
            f"不允许的 URL 协议 '{parsed.scheme}'{label}，"
            f"仅支持 http/https: {url}"
        )
    if not parsed.netloc:
        raise ValidationError(f"URL 缺少主机名{label}: {url}")
