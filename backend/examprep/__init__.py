"""Exam-prep backend: adaptive MCQ generation, tutoring and recommendations."""
