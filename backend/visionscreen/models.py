from __future__ import annotations
from datetime import datetime
from sqlalchemy import Column, String, DateTime, Integer, Float, Text
from .db import Base


class AuthUser(Base):
	__tablename__ = "auth_users"
	# Primary key is username
	username = Column(String(128), primary_key=True, index=True)
	password_hash = Column(String(256), nullable=False)
	email = Column(String(256), nullable=True)
	# Screen density from the last accepted calibration; NULL means uncalibrated
	calibrated_ppi = Column(Float, nullable=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)


class AuthSession(Base):
	__tablename__ = "auth_sessions"
	session_id = Column(String(64), primary_key=True)
	username = Column(String(128), nullable=False, index=True)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
	last_activity_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class TestRecord(Base):
	__tablename__ = "tests"
	__test__ = False
	id = Column(Integer, primary_key=True, autoincrement=True)
	username = Column(String(128), nullable=False, index=True)
	test_type = Column(String(64), nullable=False, index=True)
	# JSON string snapshots
	questions = Column(Text, nullable=False)
	answers = Column(Text, nullable=False)
	correct_answers = Column(Text, nullable=False)
	metrics = Column(Text, nullable=False)
	created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
