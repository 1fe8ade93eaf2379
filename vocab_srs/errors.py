from dataclasses import dataclass
from typing import Optional

from .models import VocabularyItem


@dataclass
class DuplicateItem:
    """Returned (not raised) when an insert collides with a stored item."""
    existing: VocabularyItem
    field: str                      # 'source_text' or 'target_text'
    candidate: Optional[VocabularyItem] = None

    def __str__(self):
        value = getattr(self.existing, self.field)
        return f"duplicate {self.field}: '{value}' (id={self.existing.id})"


class ItemNotFound(KeyError):
    def __init__(self, item_id: str):
        super().__init__(item_id)
        self.item_id = item_id

    def __str__(self):
        return f"vocabulary item not found: {self.item_id}"


class ContentGeneratorError(RuntimeError):
    """Network, quota or malformed-response failure from the content generator."""


class GatewayError(Exception):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
