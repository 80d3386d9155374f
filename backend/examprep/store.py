"""Queries against the test store used by the AI endpoints."""
from __future__ import annotations
import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from .models import Test
from .schemas import LastTestSnapshot, PriorSummary, Question


def latest_test(db: Session, student_id: str, subject: Optional[str]) -> Optional[Test]:
	return (
		db.query(Test)
		.filter(Test.student_id == student_id, Test.subject == subject)
		.order_by(Test.created_at.desc())
		.first()
	)


def recent_tests(db: Session, student_id: str, subject: Optional[str], limit: int = 5) -> List[Test]:
	return (
		db.query(Test)
		.filter(Test.student_id == student_id, Test.subject == subject)
		.order_by(Test.created_at.desc())
		.limit(limit)
		.all()
	)


def test_questions(test: Test) -> List[Dict[str, Any]]:
	try:
		data = json.loads(test.questions_json or "[]")
	except ValueError:
		return []
	return data if isinstance(data, list) else []


def test_percentage(test: Test) -> float:
	total = test.total or 0
	if total <= 0:
		return 0.0
	return round(100.0 * float(test.score or 0) / total, 1)


def prior_summary(test: Optional[Test]) -> Optional[PriorSummary]:
	if test is None:
		return None
	return PriorSummary(subject=test.subject or "", score=test.score or 0)


def snapshot(test: Optional[Test]) -> Optional[LastTestSnapshot]:
	if test is None:
		return None
	return LastTestSnapshot(subject=test.subject or "", score=test.score or 0, total=test.total or 0, taken_at=test.created_at)


def save_question_set(
	db: Session,
	*,
	student_id: str,
	subject: str,
	title: str,
	questions: Sequence[Question],
) -> Test:
	records = []
	for q in questions:
		record = q.to_record()
		record.update({"userAnswer": None, "isCorrect": False})
		records.append(record)
	row = Test(
		student_id=student_id,
		title=title,
		subject=subject,
		questions_json=json.dumps(records),
		score=0,
		total=len(records),
		created_at=datetime.utcnow(),
	)
	db.add(row)
	db.commit()
	db.refresh(row)
	return row
