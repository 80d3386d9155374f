from __future__ import annotations
import json
from typing import Optional, Sequence

from ..schemas import GenerationRequest, LastTestSnapshot, PriorSummary
from ..settings import settings


# Phrases that mean the student is asking about their own results
_PERSONAL_CONTEXT_KEYWORDS = (
	"last test", "last marks", "my marks", "my score", "my last", "my test", "my results",
	"how did i", "tell me my", "what was my", "my performance", "my progress", "last score",
)


def _format_score(score: Optional[float]) -> str:
	if score is None:
		return "New"
	if float(score).is_integer():
		return str(int(score))
	return f"{score:.1f}"


def build_question_prompt(request: GenerationRequest, prior: Optional[PriorSummary] = None) -> str:
	score = prior.score if prior is not None else request.prior_score
	difficulty = request.difficulty.value
	option_count = settings.options_per_question
	example_options = json.dumps([chr(ord("A") + i) for i in range(option_count)])
	return f"""
Generate EXACTLY {request.requested_count} MCQs for {request.course}.
Topic: {request.topic}.
Difficulty: {difficulty}.
Student previous score: {_format_score(score)}.

Each question must have exactly {option_count} distinct options and exactly ONE correct option.
"correct_answer" must be the exact text of the correct option.

Return ONLY a valid JSON ARRAY of {request.requested_count} objects like:
[
  {{
    "question": "",
    "options": {example_options},
    "correct_answer": "",
    "explanation": "",
    "topic": "{request.topic}",
    "difficulty": "{difficulty}"
  }}
]

NO TEXT. NO MARKDOWN. JSON ONLY.
""".strip()


def build_analysis_prompt(course: str, scores: Sequence[float]) -> str:
	joined = ", ".join(_format_score(s) for s in scores)
	return (
		"System: You are a Student Progress Analyzer.\n"
		f"Input Scores for {course}: [{joined}] (percentages, most recent first).\n"
		'Task: Calculate a "Subject Mastery Confidence" percentage (0-100).\n'
		"Logic: Give more weight to recent scores. If scores are improving, confidence is higher.\n"
		'Format: Return ONLY valid JSON: {"confidenceScore": number, "progressStatus": "Improving" | "Declining" | "Stable"}'
	)


def needs_user_context(message: Optional[str]) -> bool:
	if not message or not isinstance(message, str):
		return False
	lowered = message.lower()
	return any(k in lowered for k in _PERSONAL_CONTEXT_KEYWORDS)


def build_tutor_system_prompt(
	course: Optional[str],
	*,
	display_name: Optional[str] = None,
	last_test: Optional[LastTestSnapshot] = None,
) -> str:
	"""System instruction for the chat tutor.

	`last_test` is only passed when the student asked about their own results;
	it is reduced to a first name, a score and a date. Identifiers never enter
	the prompt.
	"""
	prompt = "You are an expert AI Tutor."
	prompt += "\nINSTRUCTIONS:\n1. Answer the student's question clearly and concisely.\n2. Use helpful, educational tone."
	prompt += "\n3. If a student says they are weak in a topic, suggest a short study plan."
	if course:
		prompt += f"\nCourse context: {course}."
	if last_test is not None:
		name = (display_name or "").split(" ")[0] or "Student"
		taken = last_test.taken_at.strftime("%a %b %d %Y") if last_test.taken_at else "unknown date"
		prompt += (
			f"\nStudent: {name} (IDENTIFIER REDACTED). Last test for {last_test.subject}: "
			f"score {_format_score(last_test.score)}/{last_test.total}, takenAt {taken}."
		)
	prompt += "\nPRIVACY: Do not emit any persistent identifiers (IDs, emails, phone numbers). Replace them with [REDACTED] if needed."
	prompt += "\nBrevity: Answer in a short, point-to-point sentence or two, then add a very short 1-2 sentence summary. Keep total length minimal."
	return prompt
