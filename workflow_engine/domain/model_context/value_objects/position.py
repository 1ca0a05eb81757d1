"""
Value Object для позиции узла на холсте.

Используется только для отображения, выполнение его не читает.
"""

from ...shared.value_object import ValueObject


class Position(ValueObject):
    """
    Координаты узла.

    Example:
        >>> Position(x=120, y=40).moved_by(10, 0)
        Position(x=130.0, y=40.0)
    """

    x: float = 0.0
    y: float = 0.0

    def moved_by(self, dx: float, dy: float) -> "Position":
        """Вернуть новую позицию, смещенную на (dx, dy)."""
        return Position(x=self.x + dx, y=self.y + dy)

    def __repr__(self) -> str:
        return f"Position(x={self.x}, y={self.y})"
