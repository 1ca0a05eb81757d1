"""
Value Object для правила наследования свойства контекста.
"""

from pydantic import field_validator

from ...shared.value_object import ValueObject


class InheritanceRule(ValueObject):
    """
    Правило наследования одного свойства от родительского контекста.

    Атрибуты:
        property: Имя свойства
        inherit: Копировать значение родителя в inherited_data
        override: Собственное значение дочернего контекста важнее
            унаследованного, если заданы оба

    Example:
        >>> InheritanceRule(property="locale", inherit=True, override=True)
    """

    property: str
    inherit: bool = True
    override: bool = False

    @field_validator("property")
    @classmethod
    def validate_property(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Inheritance rule property cannot be empty")
        return v
