"""
Value Object для записи о компенсации.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from ...shared.value_object import ValueObject


class CompensationStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class CompensationRecord(ValueObject):
    """
    Одна выполненная компенсация.

    Атрибуты:
        name: Что было отменено
        sequence: Порядковый номер выполнения (с 1)
        status: Итог компенсации
        error: Сообщение об ошибке компенсации
        executed_at: Время выполнения
    """

    name: str
    sequence: int
    status: CompensationStatus
    error: Optional[str] = None
    executed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def succeeded(self) -> bool:
        return self.status == CompensationStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "sequence": self.sequence,
            "status": self.status.value,
            "error": self.error,
            "executed_at": self.executed_at.isoformat(),
        }
