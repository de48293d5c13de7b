from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from verba import models  # noqa: F401
from verba.db import Base, get_db
from verba.gemini_client import CompletionResult, get_gemini_client
from verba.main import app
from verba.routers.auth import hash_password, token_for
from verba.settings import settings


class FakeGeminiClient:
	"""Scripted stand-in for GeminiClient.

	Each queued reply is a string, a CompletionResult or an exception to raise.
	"""

	def __init__(self, replies: Optional[List[Any]] = None) -> None:
		self.replies: List[Any] = list(replies or [])
		self.calls: List[Dict[str, Any]] = []

	def queue(self, *replies: Any) -> None:
		self.replies.extend(replies)

	async def generate(self, prompt: str, *, generation_config=None) -> CompletionResult:
		return await self.generate_content(
			[{"role": "user", "parts": [{"text": prompt}]}],
			generation_config=generation_config,
		)

	async def generate_content(self, contents, *, system_instruction=None, generation_config=None) -> CompletionResult:
		self.calls.append({
			"contents": contents,
			"system_instruction": system_instruction,
			"generation_config": generation_config,
		})
		if not self.replies:
			raise AssertionError("FakeGeminiClient ran out of scripted replies")
		reply = self.replies.pop(0)
		if isinstance(reply, BaseException):
			raise reply
		if isinstance(reply, CompletionResult):
			return reply
		return CompletionResult(text=reply)

	def prompts(self) -> List[str]:
		return [c["contents"][-1]["parts"][0]["text"] for c in self.calls]

	async def aclose(self) -> None:
		pass


@pytest.fixture
def engine():
	eng = create_engine(
		"sqlite://",
		connect_args={"check_same_thread": False},
		poolclass=StaticPool,
		future=True,
	)
	Base.metadata.create_all(bind=eng)
	yield eng
	eng.dispose()


@pytest.fixture
def session_factory(engine):
	return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
	session = session_factory()
	try:
		yield session
	finally:
		session.close()


@pytest.fixture
def gemini():
	return FakeGeminiClient()


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
	monkeypatch.setattr(settings, "retry_base_delay_ms", 0)


@pytest.fixture
def client(session_factory, gemini):
	def _get_db():
		session = session_factory()
		try:
			yield session
		finally:
			session.close()

	app.dependency_overrides[get_db] = _get_db
	app.dependency_overrides[get_gemini_client] = lambda: gemini
	try:
		yield TestClient(app)
	finally:
		app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
	def _make(name: str = "Sara", email: str = "sara@example.com", goal: Optional[str] = None, level: Optional[str] = None) -> models.User:
		row = models.User(name=name, email=email, password_hash=hash_password("secret"), goal=goal, level=level)
		db.add(row)
		db.commit()
		db.refresh(row)
		return row
	return _make


@pytest.fixture
def auth_headers():
	def _headers(user: models.User) -> Dict[str, str]:
		return {"Authorization": f"Bearer {token_for(user)}"}
	return _headers
