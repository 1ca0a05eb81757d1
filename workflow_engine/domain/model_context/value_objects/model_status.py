"""
Value Object для статуса функциональной модели.
"""

from enum import Enum


class ModelStatus(str, Enum):
    """
    Статус жизненного цикла модели.

    - DRAFT: структура редактируется
    - PUBLISHED: структура заморожена, модель можно выполнять
    - ARCHIVED: только чтение (аудит, статистика)
    """
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
