"""Tests for the upload size guards."""

import pytest

from core.errors import LengthRequired, UploadTooLarge
from uploads.service import check_declared_size


def test_declared_size_within_envelope_slack_passes():
    check_declared_size(str(10 + 1024), max_bytes=10)


def test_declared_size_over_limit_rejected():
    with pytest.raises(UploadTooLarge):
        check_declared_size(str(10 + 64 * 1024 + 1), max_bytes=10)


@pytest.mark.parametrize("content_length", [None, "", "abc"])
def test_missing_or_invalid_length_rejected(content_length):
    with pytest.raises(LengthRequired):
        check_declared_size(content_length, max_bytes=10)
