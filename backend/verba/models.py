from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Text, ForeignKey
from .db import Base


LEVELS = ("Beginner", "Intermediate", "Advanced")


class User(Base):
	__tablename__ = "users"
	id = Column(Integer, primary_key=True, autoincrement=True)
	name = Column(String(128), nullable=False)
	email = Column(String(256), nullable=False, unique=True, index=True)
	password_hash = Column(String(256), nullable=False)
	# Learning profile, filled in during onboarding
	goal = Column(Text, nullable=True)
	level = Column(String(32), nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Conversation(Base):
	__tablename__ = "conversations"
	id = Column(Integer, primary_key=True, autoincrement=True)
	# One conversation per user
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
	messages = Column(Text, nullable=False, default="[]")  # JSON list of {role, content}
	# Bumped on every append; writers update only when it still matches what they read
	version = Column(Integer, nullable=False, default=0)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
