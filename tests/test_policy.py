import pytest

from fsclient.errors import PolicyViolation
from fsclient.models import UploadCandidate
from fsclient.policy import DEFAULT_MAX_UPLOAD_BYTES, UploadPolicy, validate_upload

MiB = 1024 * 1024


def candidate(size: int, type: str) -> UploadCandidate:
    return UploadCandidate(name="f", size=size, type=type, data=b"")


class TestValidateUpload:
    def test_accepts_allowed_file_within_limit(self) -> None:
        validate_upload(candidate(120, "text/plain"), UploadPolicy())

    def test_size_exactly_at_limit_passes(self) -> None:
        validate_upload(candidate(DEFAULT_MAX_UPLOAD_BYTES, "application/pdf"), UploadPolicy())

    def test_rejects_oversized_file(self) -> None:
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(60 * MiB, "text/plain"), UploadPolicy())
        assert info.value.rule == "size"
        assert info.value.message == "File size exceeds the limit of 50MB"

    def test_rejects_unlisted_type(self) -> None:
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(10, "application/x-msdownload"), UploadPolicy())
        assert info.value.rule == "type"
        assert info.value.message == "File type not allowed"

    def test_size_rule_wins_when_both_fail(self) -> None:
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(60 * MiB, "application/x-msdownload"), UploadPolicy())
        assert info.value.rule == "size"

    def test_custom_policy(self) -> None:
        policy = UploadPolicy(max_size=MiB, allowed_types=frozenset({"image/png"}))
        validate_upload(candidate(MiB, "image/png"), policy)
        with pytest.raises(PolicyViolation):
            validate_upload(candidate(10, "text/plain"), policy)
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(MiB + 1, "image/png"), policy)
        assert "1MB" in info.value.message

    def test_limit_below_one_mib_is_rendered_in_bytes(self) -> None:
        policy = UploadPolicy(max_size=1000)
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(1001, "text/plain"), policy)
        assert info.value.message == "File size exceeds the limit of 1000.00B"

    def test_fractional_mib_limit(self) -> None:
        policy = UploadPolicy(max_size=3 * MiB // 2)
        with pytest.raises(PolicyViolation) as info:
            validate_upload(candidate(2 * MiB, "text/plain"), policy)
        assert info.value.message == "File size exceeds the limit of 1.50MB"
