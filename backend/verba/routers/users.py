from __future__ import annotations
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .. import conversation_log, tutor
from ..db import get_db
from ..errors import BadRequest, InternalError, VerbaError
from ..gemini_client import GeminiClient, get_gemini_client
from ..models import User
from .auth import UserOut, get_current_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


class ChangeGoalRequest(BaseModel):
	goal: str


class ChangeGoalResponse(BaseModel):
	success: bool
	message: str
	user: UserOut


@router.post("/me/goal", response_model=ChangeGoalResponse)
async def change_goal(
	req: ChangeGoalRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	goal = (req.goal or "").strip()
	if not goal:
		raise BadRequest("goal is required")
	try:
		cleaned = await tutor.clean_goal(client, goal)
		# A new goal starts a new conversation; both changes land in one commit
		removed = conversation_log.delete_for_user(db, user.id, commit=False)
		user.goal = cleaned
		db.add(user)
		try:
			db.commit()
		except Exception:
			db.rollback()
			raise
		db.refresh(user)
		logger.info("User %s changed goal, %d conversation(s) removed", user.id, removed)
		return ChangeGoalResponse(success=True, message="Goal updated successfully.", user=UserOut.from_row(user))
	except VerbaError:
		raise
	except Exception as exc:
		logger.exception("Error in change_goal")
		raise InternalError() from exc
