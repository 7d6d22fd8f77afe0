"""URL scheme 校验测试"""

import pytest

from hpkl.core.exceptions import ValidationError
from hpkl.utils.net import scheme_for, validate_url_scheme


class TestValidateUrlScheme:
    def test_http_ok(self) -> None:
        validate_url_scheme("http://example.com/birds@0.5.0")

    def test_https_ok(self) -> None:
        validate_url_scheme("https://example.com/birds@0.5.0")

    def test_file_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("file:///etc/passwd")

    def test_package_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("package://example.com/birds@0.5.0")

    def test_empty_scheme_rejected(self) -> None:
        with pytest.raises(ValidationError, match="不允许的 URL 协议"):
            validate_url_scheme("/local/path")

    def test_context_in_error(self) -> None:
        with pytest.raises(ValidationError, match="package fetch"):
            validate_url_scheme("file:///x", context="package fetch")

    def test_missing_host_rejected(self) -> None:
        with pytest.raises(ValidationError, match="缺少主机名"):
            validate_url_scheme("https:///birds@0.5.0")


@pytest.mark.parametrize(("plain_http", "expected"), [(True, "http"), (False, "https")])
def test_scheme_for(plain_http: bool, expected: str) -> None:
    assert scheme_for(plain_http) == expected
