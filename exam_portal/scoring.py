"""
Exam scoring and submission.

``score_answers`` is the pure scoring rule; ``submit_exam`` wraps it with the
storage work: loading the authoritative question set, persisting the single
result for the (user, exam) pair and bumping the user's leaderboard totals.
"""

import logging
from typing import Any, Dict, List, Mapping

from pydantic import BaseModel
from pymongo.errors import DuplicateKeyError

from .errors import ConflictError, NotFoundError, ValidationError
from .schemas import AnswerRecord, Result
from .utils import parse_object_id, round_half_up, utcnow

logger = logging.getLogger(__name__)

SKIPPED = -1


class ScoreSheet(BaseModel):
    score: float = 0
    total_marks: int = 0
    correct_answers: int = 0
    wrong_answers: int = 0
    skipped_answers: int = 0
    accuracy: float = 0
    answers: List[AnswerRecord] = []


def score_answers(questions: List[Dict[str, Any]], answers: Mapping[str, int]) -> ScoreSheet:
    """
    Score ``answers`` (question id -> option id) against ``questions``.

    Every question counts, answered or not. A missing key or the -1 sentinel
    is a skip; a match on ``correct_option`` earns one mark; anything else,
    including option ids the question does not have, loses the question's
    ``negative_marks``. The total is floored at zero once, after summing.
    """
    sheet = ScoreSheet(total_marks=len(questions))
    score = 0
    for question in questions:
        question_id = str(question["_id"])
        selected = answers.get(question_id, SKIPPED)
        sheet.answers.append(AnswerRecord(question_id=question_id, selected_option=selected))

        if selected == SKIPPED:
            sheet.skipped_answers += 1
        elif selected == int(question["correct_option"]):
            score += 1
            sheet.correct_answers += 1
        else:
            score -= question.get("negative_marks") or 0
            sheet.wrong_answers += 1

    sheet.score = max(0, score)
    if questions:
        sheet.accuracy = round_half_up(sheet.correct_answers / len(questions) * 100, 1)
    return sheet


def get_active_exam(db, exam_id: str) -> Dict[str, Any]:
    exam = db["exam"].find_one({"_id": parse_object_id(exam_id, "Exam")})
    if not exam or not exam.get("is_active", True):
        raise NotFoundError("Exam not found")
    return exam


def submit_exam(db, user_id: str, exam_id: str, answers: Mapping[str, int]) -> Dict[str, Any]:
    """Score and store the one allowed attempt of ``user_id`` at ``exam_id``."""
    exam = get_active_exam(db, exam_id)
    exam_id = str(exam["_id"])

    if db["result"].find_one({"user_id": user_id, "exam_id": exam_id}, {"_id": 1}):
        logger.warning("Rejected repeat submission user=%s exam=%s", user_id, exam_id)
        raise ConflictError("Exam already submitted")

    questions = list(db["question"].find({"exam_id": exam_id}).sort("_id"))
    if not questions:
        raise ValidationError("No questions for this exam")

    sheet = score_answers(questions, answers)
    result = Result(
        user_id=user_id,
        exam_id=exam_id,
        score=sheet.score,
        total_marks=sheet.total_marks,
        correct_answers=sheet.correct_answers,
        wrong_answers=sheet.wrong_answers,
        skipped_answers=sheet.skipped_answers,
        accuracy=sheet.accuracy,
        answers=sheet.answers,
        submitted_at=utcnow(),
    )
    doc = result.model_dump()
    try:
        inserted = db["result"].insert_one(doc)
    except DuplicateKeyError:
        # lost the race against a concurrent submit for the same pair
        logger.warning("Concurrent repeat submission user=%s exam=%s", user_id, exam_id)
        raise ConflictError("Exam already submitted")
    doc["_id"] = inserted.inserted_id

    db["leaderboard"].update_one(
        {"user_id": user_id},
        {
            "$inc": {"total_score": sheet.score, "exams_attempted": 1},
            "$set": {"updated_at": utcnow()},
        },
        upsert=True,
    )
    logger.info(
        "Exam submitted user=%s exam=%s score=%s/%s",
        user_id, exam_id, sheet.score, sheet.total_marks,
    )
    return doc
