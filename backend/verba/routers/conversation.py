from __future__ import annotations
from datetime import datetime
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .. import conversation_log
from ..db import get_db
from ..errors import NotFound
from ..models import User
from .auth import get_current_user


router = APIRouter(prefix="/conversation", tags=["conversation"])


class ConversationOut(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	id: int
	created_at: datetime = Field(alias="createdAt")
	user_id: int = Field(alias="userId")
	messages: List[Dict[str, Any]]


@router.get("", response_model=ConversationOut, response_model_by_alias=True)
def get_conversation(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
	row = conversation_log.get_conversation(db, user.id)
	if row is None:
		raise NotFound("No conversation found for this user")
	return ConversationOut(
		id=row.id,
		created_at=row.created_at,
		user_id=row.user_id,
		messages=conversation_log.read_messages(row),
	)
