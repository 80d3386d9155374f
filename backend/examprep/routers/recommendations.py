from __future__ import annotations
import random
from collections import Counter
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_pipeline
from ..errors import ConfigurationError
from ..pipeline.orchestrator import AssessmentPipeline
from ..schemas import GenerationRequest
from .. import store
from .auth import User, get_current_user


router = APIRouter(prefix="/recommendations", tags=["recommendations"])

MAX_WEAK_TOPICS = 3
PRACTICE_PICKS = 2


class Recommendation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    difficulty: str
    topic_focus: str = Field(alias="topicFocus")


class GenerateTestRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    course: str
    recommendation_id: Optional[str] = Field(default=None, alias="recommendationId")
    topic_focus: Optional[str] = Field(default=None, alias="topicFocus")
    difficulty: str = "intermediate"


def _beginner(course: str) -> Recommendation:
    return Recommendation(
        id="beginner_foundation",
        title="Beginner Practice: Foundations",
        description=f"Start with fundamental concepts of {course} to build a strong base.",
        difficulty="beginner",
        topic_focus="Foundations",
    )


_PRACTICE_OPTIONS: List[Recommendation] = [
    Recommendation(
        id="intermediate_practice",
        title="Intermediate Practice: Applications",
        description="Test your ability to apply concepts in real scenarios.",
        difficulty="intermediate",
        topic_focus="Applications",
    ),
    Recommendation(
        id="advanced_challenge",
        title="Advanced Challenge: Mastery",
        description="Push your limits with challenging questions.",
        difficulty="advanced",
        topic_focus="Advanced Topics",
    ),
    Recommendation(
        id="revision_practice",
        title="Revision: Mixed Topics",
        description="Review multiple topics to consolidate your learning.",
        difficulty="mixed",
        topic_focus="Mixed",
    ),
]


def weak_topics(tests: List[Any], limit: int = MAX_WEAK_TOPICS) -> List[tuple]:
    """Topics ranked by how many questions were answered incorrectly."""
    counts: Counter = Counter()
    for test in tests:
        for q in store.test_questions(test):
            if not q.get("isCorrect"):
                counts[q.get("topic") or "General"] += 1
    return counts.most_common(limit)


def build_recommendations(course: str, tests: List[Any], rng: Optional[random.Random] = None) -> List[Recommendation]:
    if not tests:
        return [_beginner(course)]
    recs = [
        Recommendation(
            id=f"weak_{topic}",
            title=f"Strengthen: {topic}",
            description=f"You struggled with this topic in {count} question(s). Let's practice!",
            difficulty="intermediate",
            topic_focus=topic,
        )
        for topic, count in weak_topics(tests)
    ]
    recs.extend((rng or random).sample(_PRACTICE_OPTIONS, PRACTICE_PICKS))
    return recs


@router.get("")
async def get_recommendations(course: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    course = (course or "").strip()
    if not course:
        raise HTTPException(status_code=400, detail="Course is required")
    tests = store.recent_tests(db, user.id, course, limit=5)
    recs = build_recommendations(course, tests)
    return {
        "success": True,
        "course": course,
        "isFirstTime": not tests,
        "totalRecommendations": len(recs),
        "recommendations": [r.model_dump(by_alias=True) for r in recs],
    }


@router.post("/generate-test", status_code=201)
async def generate_test(
    req: GenerateTestRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    pipeline: AssessmentPipeline = Depends(get_pipeline),
):
    course = (req.course or "").strip()
    if not course:
        raise HTTPException(status_code=400, detail="Course is required")
    topic = (req.topic_focus or "").strip() or course
    try:
        gen_req = GenerationRequest(course=course, topic=topic, difficulty=req.difficulty)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors()[0].get("msg", "invalid request"))
    prior = store.prior_summary(store.latest_test(db, user.id, course))
    try:
        outcome = await pipeline.generate_question_set(gen_req, prior)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    row = store.save_question_set(
        db,
        student_id=user.id,
        subject=course,
        title=f"Quiz from {req.recommendation_id or 'Custom Prompt'}",
        questions=outcome.questions,
    )
    return {
        "success": True,
        "message": "Quiz generated successfully",
        "source": outcome.source,
        "test": {
            "_id": row.id,
            "title": row.title,
            "subject": row.subject,
            "questions": store.test_questions(row),
            "createdAt": row.created_at.isoformat(),
        },
    }
