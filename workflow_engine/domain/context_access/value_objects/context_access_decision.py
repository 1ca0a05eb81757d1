"""
Value Object для решения о доступе к контексту.
"""

from typing import Dict, Optional, Tuple

from ...shared.value_object import ValueObject
from .context_scope import AccessLevel


class ContextAccessDecision(ValueObject):
    """
    Результат validate_context_access.

    Атрибуты:
        granted: Доступ предоставлен
        level: Фактический уровень доступа
        granted_properties: Свойства, к которым доступ разрешен
        denied_properties: Свойства, к которым доступ запрещен
        reasons: Причина отказа для каждого запрещенного свойства
        denial_reason: Общая причина отказа
        inheritance_allowed: Разрешено ли наследование между узлами
    """

    granted: bool
    level: AccessLevel
    granted_properties: Tuple[str, ...] = ()
    denied_properties: Tuple[str, ...] = ()
    reasons: Dict[str, str] = {}
    denial_reason: Optional[str] = None
    inheritance_allowed: bool = False

    @classmethod
    def deny(
        cls,
        reason: str,
        properties: Tuple[str, ...] = (),
        level: AccessLevel = AccessLevel.READ
    ) -> "ContextAccessDecision":
        """Полный отказ с одной причиной."""
        return cls(
            granted=False,
            level=level,
            denied_properties=properties,
            reasons={prop: reason for prop in properties},
            denial_reason=reason,
        )
