"""
Value Objects для областей видимости и уровней доступа контекста.
"""

from enum import Enum


class ContextScope(str, Enum):
    """
    Область видимости контекста.

    isolated: данные не видны узлам вне поддерева контекста.
    """
    EXECUTION = "execution"
    SESSION = "session"
    GLOBAL = "global"
    ISOLATED = "isolated"


class AccessLevel(str, Enum):
    """Уровень доступа к контексту."""
    READ = "read"
    WRITE = "write"
    READ_WRITE = "read-write"
    EXECUTE = "execute"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @property
    def includes_read(self) -> bool:
        return self in (AccessLevel.READ, AccessLevel.READ_WRITE)

    def allows(self, requested: "AccessLevel") -> bool:
        """Покрывает ли этот уровень запрошенный."""
        return requested.rank <= self.rank


_RANKS = {
    AccessLevel.READ: 1,
    AccessLevel.WRITE: 2,
    AccessLevel.READ_WRITE: 2,
    AccessLevel.EXECUTE: 3,
}
