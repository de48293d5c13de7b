from __future__ import annotations
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from .. import tutor
from ..db import get_db
from ..errors import EmptyGeneration, InternalError, VerbaError
from ..gemini_client import GeminiClient, get_gemini_client
from ..history import map_history
from ..interpreter import interpret_text
from ..models import User
from ..prompts import onboarding_system_prompt
from ..schemas import ChatRequest
from .auth import UserOut, get_current_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

FALLBACK_REPLY = "I apologize, I had trouble responding."
COMPLETE_REPLY = "Great! Your goal and level have been set. Click 'Go To Dashboard' to start your first lesson!"


class ChatResponse(BaseModel):
	model_config = ConfigDict(populate_by_name=True)

	message: str
	user: UserOut
	onboarding_complete: bool = Field(alias="onboardingComplete")


async def _update_profile(client: GeminiClient, db: Session, user: User, message: str) -> str:
	"""Classify the message and store any goal/level it carries.

	Returns the classification so callers can tell which sub-flows ran.
	"""
	classification = await tutor.classify_message(client, message)
	logger.info("Onboarding message for user %s classified as %r", user.id, classification)
	if "goal" in classification:
		user.goal = await tutor.clean_goal(client, message)
	if "level" in classification:
		level = await tutor.classify_level(client, message)
		if level is not None:
			user.level = level
	if classification != "none":
		db.add(user)
		db.commit()
		db.refresh(user)
	return classification


@router.post("/chat", response_model=ChatResponse, response_model_by_alias=True)
async def chat(
	req: ChatRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	try:
		contents = map_history(req.conversation_history)
		contents.append({"role": "user", "parts": [{"text": req.message}]})
		result = await tutor.complete(
			client,
			contents,
			system_instruction=onboarding_system_prompt(user.name),
			generation_config=tutor.ONBOARDING_CONFIG,
		)
		try:
			reply = interpret_text(result)
		except EmptyGeneration:
			reply = FALLBACK_REPLY

		if not user.goal or not user.level:
			classification = await _update_profile(client, db, user, req.message)
			if "level" in classification and user.goal and user.level:
				return ChatResponse(message=COMPLETE_REPLY, user=UserOut.from_row(user), onboarding_complete=True)

		return ChatResponse(
			message=reply,
			user=UserOut.from_row(user),
			onboarding_complete=bool(user.goal and user.level),
		)
	except VerbaError:
		raise
	except Exception as exc:
		logger.exception("Chat error")
		raise InternalError() from exc
