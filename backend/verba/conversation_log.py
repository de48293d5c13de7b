from __future__ import annotations
import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .errors import ConversationConflict
from .models import Conversation
from .turns import Turn, decode_turn, encode_turn


logger = logging.getLogger(__name__)

MAX_APPEND_ATTEMPTS = 5


def get_conversation(db: Session, user_id: int) -> Optional[Conversation]:
	return (
		db.query(Conversation)
		.filter(Conversation.user_id == user_id)
		.order_by(Conversation.id)
		.first()
	)


def read_messages(conversation: Conversation) -> List[Dict[str, Any]]:
	try:
		messages = json.loads(conversation.messages or "[]")
	except ValueError:
		logger.error("Conversation %s has unreadable messages, treating as empty", conversation.id)
		return []
	return messages if isinstance(messages, list) else []


def load_turns(db: Session, user_id: int, limit: Optional[int] = None) -> List[Turn]:
	conversation = get_conversation(db, user_id)
	if conversation is None:
		return []
	messages = read_messages(conversation)
	if limit is not None:
		messages = messages[-limit:] if limit > 0 else []
	return [decode_turn(m) for m in messages if isinstance(m, dict)]


def _create(db: Session, user_id: int, encoded: List[Dict[str, str]]) -> bool:
	row = Conversation(user_id=user_id, messages=json.dumps(encoded, ensure_ascii=False), version=0)
	db.add(row)
	try:
		db.commit()
	except IntegrityError:
		# Another request created it first
		db.rollback()
		return False
	return True


def _append(db: Session, conversation: Conversation, encoded: List[Dict[str, str]]) -> bool:
	messages = read_messages(conversation) + encoded
	res = db.execute(
		update(Conversation)
		.where(Conversation.id == conversation.id, Conversation.version == conversation.version)
		.values(
			messages=json.dumps(messages, ensure_ascii=False),
			version=conversation.version + 1,
			updated_at=datetime.utcnow(),
		)
		.execution_options(synchronize_session=False)
	)
	if res.rowcount != 1:
		db.rollback()
		return False
	db.commit()
	return True


def append(db: Session, user_id: int, turns: Sequence[Turn]) -> Conversation:
	"""Append ``turns`` to the user's conversation, creating it when absent.

	Each append is a conditional update on ``version``; a writer that lost a
	race re-reads and tries again.
	"""
	encoded = [encode_turn(t) for t in turns]
	for attempt in range(MAX_APPEND_ATTEMPTS):
		conversation = get_conversation(db, user_id)
		if conversation is None:
			if _create(db, user_id, encoded):
				return get_conversation(db, user_id)
		else:
			if _append(db, conversation, encoded):
				db.expire(conversation)
				return conversation
		logger.info("Conversation append for user %s lost a race (attempt %d)", user_id, attempt + 1)
		db.expire_all()
	raise ConversationConflict(f"Could not append to conversation of user {user_id}")


def delete_for_user(db: Session, user_id: int, *, commit: bool = True) -> int:
	res = db.execute(delete(Conversation).where(Conversation.user_id == user_id))
	if commit:
		db.commit()
	return res.rowcount or 0
