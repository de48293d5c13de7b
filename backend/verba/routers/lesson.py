from __future__ import annotations
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from .. import conversation_log, tutor
from ..db import get_db
from ..errors import InternalError, OnboardingIncomplete, VerbaError
from ..gemini_client import GeminiClient, get_gemini_client
from ..history import map_history
from ..interpreter import interpret_lesson
from ..models import User
from ..prompts import lesson_system_prompt
from ..schemas import LessonRequest, LessonResponse
from ..settings import settings
from ..turns import LessonTurn, TextTurn
from .auth import get_current_user


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/lesson", tags=["lesson"])


@router.post("/start", response_model=LessonResponse)
async def start_lesson(
	req: LessonRequest,
	user: User = Depends(get_current_user),
	db: Session = Depends(get_db),
	client: GeminiClient = Depends(get_gemini_client),
):
	if not user.goal or not user.level:
		raise OnboardingIncomplete()
	try:
		limit = settings.lesson_history_limit
		if req.conversation_history is None:
			history = conversation_log.load_turns(db, user.id, limit=limit)
		else:
			history = req.conversation_history[-limit:] if limit > 0 else []
		contents = map_history(history)
		contents.append({"role": "user", "parts": [{"text": req.message}]})

		output_format = settings.lesson_output_format
		result = await tutor.complete(
			client,
			contents,
			system_instruction=lesson_system_prompt(user.name, user.goal, user.level, output_format),
			generation_config=tutor.LESSON_CONFIG,
		)
		lesson = interpret_lesson(result, output_format)

		conversation_log.append(db, user.id, [
			TextTurn(role="user", text=req.message),
			LessonTurn(lesson=lesson),
		])
		return LessonResponse(lesson=lesson)
	except VerbaError:
		raise
	except Exception as exc:
		logger.exception("Lesson error")
		raise InternalError() from exc
