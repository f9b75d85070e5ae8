# ABOUTME: Declares the notification values emitted by the engine.
# ABOUTME: Events are returned to callers instead of dispatched to listeners.

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping


class EventType(str, Enum):
    TEMPLATE_STARTED = "template-started"
    STAGE_COMPLETED = "stage-completed"
    SKILL_IMPROVED = "skill-improved"
    ACHIEVEMENT_UNLOCKED = "achievement-unlocked"


@dataclass(frozen=True)
class EngineEvent:
    """One discrete notification for the UI or coaching layer."""

    type: EventType
    user_id: str
    template_id: str
    timestamp: datetime
    data: Mapping[str, Any] = field(default_factory=dict)
