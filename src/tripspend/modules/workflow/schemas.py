from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from tripspend.modules.workflow.models import NoteAction


class NoteOut(BaseModel):
    id: uuid.UUID
    actor_user_id: uuid.UUID | None
    action: NoteAction
    message: str
    occurred_at: datetime


class CommentIn(BaseModel):
    message: str
