from __future__ import annotations
import secrets
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Text
from .db import Base


def new_object_id() -> str:
	# 24 hex chars, same shape as the document-store ids the tutor redacts
	return secrets.token_hex(12)


class AuthUser(Base):
	__tablename__ = "auth_users"
	id = Column(String(24), primary_key=True, default=new_object_id)
	username = Column(String(128), unique=True, index=True, nullable=False)
	name = Column(String(256), nullable=True)
	# student | parent | teacher
	role = Column(String(16), default="student", nullable=False)
	email = Column(String(256), nullable=True)
	phone = Column(String(32), nullable=True)
	password_hash = Column(String(256), nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	user_id = Column(String(24), index=True, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Test(Base):
	__tablename__ = "tests"
	# Keep pytest from collecting this model
	__test__ = False
	id = Column(String(24), primary_key=True, default=new_object_id)
	student_id = Column(String(24), index=True, nullable=False)
	title = Column(String(256), nullable=False)
	subject = Column(String(256), index=True, nullable=True)
	questions_json = Column(Text, nullable=False, default="[]")  # JSON string snapshot
	score = Column(Float, default=0, nullable=False)
	total = Column(Integer, default=5, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
