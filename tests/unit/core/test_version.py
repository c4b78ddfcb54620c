"""Unit tests for linetl-core version module."""

from linetl_core import VERSION, __version__
from linetl_schemas.version import VersionInfo


def test_version_info_str() -> None:
    """Test VersionInfo string representation."""
    info = VersionInfo(major=1, minor=2, patch=3)
    assert str(info) == "1.2.3"


def test_global_version_is_valid_version_info() -> None:
    """Test global VERSION is a valid VersionInfo matching the package version."""
    assert isinstance(VERSION, VersionInfo)
    assert str(VERSION) == f"{VERSION.major}.{VERSION.minor}.{VERSION.patch}"
    assert __version__ == str(VERSION)
