from __future__ import annotations
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.orm import Session

from ..db import get_db
from ..deps import get_pipeline
from ..errors import ConfigurationError
from ..models import AuthUser
from ..pipeline.orchestrator import AssessmentPipeline
from ..schemas import GenerationRequest
from .. import store
from .auth import User, get_current_user


router = APIRouter(prefix="/ai", tags=["ai"])


class AssistRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    mode: str = "chat"
    user_message: Optional[str] = Field(default=None, alias="userMessage")
    selected_course: Optional[str] = Field(default=None, alias="selectedCourse")
    topic: Optional[str] = None
    difficulty: Optional[str] = None


async def _generate_questions(
    req: AssistRequest, user: User, db: Session, pipeline: AssessmentPipeline
) -> Dict[str, Any]:
    if not req.topic or not req.difficulty:
        raise HTTPException(status_code=400, detail="Topic and difficulty are required")
    course = (req.selected_course or "").strip() or req.topic
    try:
        gen_req = GenerationRequest(course=course, topic=req.topic, difficulty=req.difficulty)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.errors()[0].get("msg", "invalid request"))
    prior = store.prior_summary(store.latest_test(db, user.id, course))
    try:
        outcome = await pipeline.generate_question_set(gen_req, prior)
    except ConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc))
    return {
        "success": True,
        "mode": "generate_question",
        "source": outcome.source,
        "questions": [q.to_record() for q in outcome.questions],
    }


async def _analyze_performance(
    req: AssistRequest, user: User, db: Session, pipeline: AssessmentPipeline
) -> Dict[str, Any]:
    course = req.selected_course
    history = store.recent_tests(db, user.id, course, limit=5)
    report = await pipeline.analyze_performance(course or "", [store.test_percentage(t) for t in history])
    return {"success": True, "mode": "performance_analysis", **report.model_dump(by_alias=True)}


async def _chat(
    req: AssistRequest, user: User, db: Session, pipeline: AssessmentPipeline
) -> Dict[str, Any]:
    message = (req.user_message or "").strip()
    if not message:
        raise HTTPException(status_code=400, detail="userMessage is required")
    last = store.latest_test(db, user.id, req.selected_course) if req.selected_course else None
    reply = await pipeline.tutor_reply(
        message,
        user,
        course=req.selected_course,
        display_name=user.name,
        last_test=store.snapshot(last),
    )
    return {"success": True, "mode": "chat", "message": reply}


_HANDLERS = {
    "generate_question": _generate_questions,
    "performance_analysis": _analyze_performance,
    "chat": _chat,
}


@router.post("/assist")
async def assist(
    req: AssistRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    pipeline: AssessmentPipeline = Depends(get_pipeline),
):
    if db.get(AuthUser, user.id) is None:
        raise HTTPException(status_code=404, detail="Student not found")
    # Unknown modes are treated as chat
    handler = _HANDLERS.get(req.mode, _chat)
    return await handler(req, user, db, pipeline)
