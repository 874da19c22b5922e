# runmate/schemas/activity.py
from datetime import datetime
from typing import Any, Dict, Optional

from runmate.schemas.common import CamelModel


class ActivityOut(CamelModel):
    id: int
    type: str
    actor_id: int
    target_user_id: Optional[int] = None
    run_event_id: Optional[int] = None
    chat_id: Optional[int] = None
    data: Optional[Dict[str, Any]] = None
    created_at: datetime
