"""
Value Object для семантической версии модели.
"""

import re

from pydantic import Field

from ...shared.value_object import ValueObject

_SEMVER_PATTERN = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class ModelVersion(ValueObject):
    """
    Семантическая версия major.minor.patch.

    Example:
        >>> ModelVersion.parse("1.2.3").bump_minor()
        ModelVersion('1.3.0')
    """

    major: int = Field(default=1, ge=0)
    minor: int = Field(default=0, ge=0)
    patch: int = Field(default=0, ge=0)

    @classmethod
    def parse(cls, value: str) -> "ModelVersion":
        """
        Разобрать строку версии.

        Raises:
            ValueError: Если строка не в формате major.minor.patch
        """
        match = _SEMVER_PATTERN.match(value.strip())
        if not match:
            raise ValueError(f"Invalid semantic version: '{value}'")
        major, minor, patch = (int(part) for part in match.groups())
        return cls(major=major, minor=minor, patch=patch)

    @classmethod
    def initial(cls) -> "ModelVersion":
        return cls(major=1, minor=0, patch=0)

    def bump_major(self) -> "ModelVersion":
        return ModelVersion(major=self.major + 1, minor=0, patch=0)

    def bump_minor(self) -> "ModelVersion":
        return ModelVersion(major=self.major, minor=self.minor + 1, patch=0)

    def bump_patch(self) -> "ModelVersion":
        return ModelVersion(major=self.major, minor=self.minor, patch=self.patch + 1)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"

    def __repr__(self) -> str:
        return f"ModelVersion('{self}')"
