from __future__ import annotations

from datetime import datetime
from typing import TypedDict


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    Storage-level representation of a Task, shared by every store backend.

    Fields:
    - id: Opaque unique identifier assigned by the store, never reused
    - text: Trimmed, non-empty task text (validated before it reaches a store)
    - created_at: Timezone-aware UTC creation timestamp; defines list order
    """

    id: str
    text: str
    created_at: datetime
