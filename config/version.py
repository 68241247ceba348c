"""Project-level versioning and backup format compatibility metadata."""

from __future__ import annotations

from pathlib import Path
from typing import Final, Tuple

MIN_PYTHON_VERSION: Final[Tuple[int, int]] = (3, 10)
MIN_PYTHON_VERSION_STR: Final[str] = ".".join(str(part) for part in MIN_PYTHON_VERSION)
PYTHON_REQUIRES_SPECIFIER: Final[str] = f">={MIN_PYTHON_VERSION_STR}"

# Version tag written into every backup bundle
EXPORT_FORMAT_VERSION: Final[str] = "2.0.0"


class VersionMetadata:
    """Immutable semantic version triple."""

    __slots__ = ("major", "minor", "patch")

    def __init__(self, major: int, minor: int, patch: int) -> None:
        for attribute_name, value in (
            ("major", major),
            ("minor", minor),
            ("patch", patch),
        ):
            if value < 0:
                raise ValueError(f"{attribute_name} must be non-negative, got {value}")
        object.__setattr__(self, "major", major)
        object.__setattr__(self, "minor", minor)
        object.__setattr__(self, "patch", patch)

    def __setattr__(
        self, name: str, value: object
    ) -> None:  # pragma: no cover - enforce immutability
        raise AttributeError("VersionMetadata instances are read-only")

    def __str__(self) -> str:  # pragma: no cover - simple formatting helper
        return f"{self.major}.{self.minor}.{self.patch}"

    @classmethod
    def parse(cls, text: str) -> "VersionMetadata":
        """Parse ``MAJOR.MINOR.PATCH``; missing trailing parts count as zero."""

        parts = [part for part in str(text).strip().split(".") if part]
        if not parts or len(parts) > 3:
            raise ValueError(f"Invalid version string: {text!r}")
        try:
            numbers = [int(part) for part in parts]
        except ValueError as exc:
            raise ValueError(f"Invalid version string: {text!r}") from exc
        while len(numbers) < 3:
            numbers.append(0)
        return cls(*numbers)

    @property
    def tuple(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)


def is_compatible_export_version(version: str) -> bool:
    """Return True when a backup written with ``version`` can be restored.

    Bundles are compatible when they share the major version of
    :data:`EXPORT_FORMAT_VERSION`.
    """

    try:
        candidate = VersionMetadata.parse(version)
    except ValueError:
        return False
    return candidate.major == VersionMetadata.parse(EXPORT_FORMAT_VERSION).major


_VERSION_FILE = Path(__file__).resolve().parent.parent / "VERSION"
PROJECT_VERSION: Final[str] = _VERSION_FILE.read_text(encoding="utf-8").strip()
VERSION_INFO: Final[VersionMetadata] = VersionMetadata.parse(PROJECT_VERSION)
__version__: Final[str] = PROJECT_VERSION

__all__ = [
    "EXPORT_FORMAT_VERSION",
    "MIN_PYTHON_VERSION",
    "MIN_PYTHON_VERSION_STR",
    "PYTHON_REQUIRES_SPECIFIER",
    "PROJECT_VERSION",
    "VERSION_INFO",
    "__version__",
    "VersionMetadata",
    "is_compatible_export_version",
]
