import random

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from exam_portal.errors import ConflictError, NotFoundError, ValidationError
from exam_portal.scoring import score_answers, submit_exam


def question(correct_option, negative_marks=0):
    return {"_id": ObjectId(), "correct_option": correct_option, "negative_marks": negative_marks}


def test_wrong_answer_deducts_negative_marks():
    q1, q2 = question(1), question(0, 0.25)
    sheet = score_answers([q1, q2], {str(q1["_id"]): 1, str(q2["_id"]): 2})

    assert sheet.score == pytest.approx(0.75)
    assert (sheet.correct_answers, sheet.wrong_answers, sheet.skipped_answers) == (1, 1, 0)
    assert sheet.total_marks == 2
    assert sheet.accuracy == 50.0


def test_nothing_answered_is_all_skipped():
    q1, q2 = question(1), question(0, 0.25)
    sheet = score_answers([q1, q2], {})

    assert sheet.score == 0
    assert (sheet.correct_answers, sheet.wrong_answers, sheet.skipped_answers) == (0, 0, 2)
    assert [a.selected_option for a in sheet.answers] == [-1, -1]


def test_minus_one_counts_as_skipped():
    q = question(2, 1)
    sheet = score_answers([q], {str(q["_id"]): -1})
    assert sheet.skipped_answers == 1
    assert sheet.wrong_answers == 0


def test_score_floor_applies_to_the_total():
    q1, q2, q3 = question(0), question(0, 0.5), question(0, 0.75)
    answers = {str(q1["_id"]): 0, str(q2["_id"]): 3, str(q3["_id"]): 3}
    assert score_answers([q1, q2, q3], answers).score == 0

    # without the third deduction the sum stays positive
    q3["negative_marks"] = 0.25
    assert score_answers([q1, q2, q3], answers).score == pytest.approx(0.25)


def test_out_of_range_option_is_wrong_not_rejected():
    q = question(1, 0.5)
    sheet = score_answers([q], {str(q["_id"]): 42})
    assert sheet.wrong_answers == 1
    assert sheet.score == 0


def test_answers_for_other_questions_are_ignored():
    q = question(1)
    sheet = score_answers([q], {str(ObjectId()): 1, str(q["_id"]): 1})
    assert sheet.correct_answers == 1
    assert len(sheet.answers) == 1


def test_accuracy_rounds_to_one_decimal():
    qs = [question(0) for _ in range(3)]
    one = score_answers(qs, {str(qs[0]["_id"]): 0})
    two = score_answers(qs, {str(qs[0]["_id"]): 0, str(qs[1]["_id"]): 0})
    assert one.accuracy == 33.3
    assert two.accuracy == 66.7


def test_score_bounds_and_counts_hold_for_any_answers():
    rng = random.Random(7)
    for _ in range(200):
        qs = [question(rng.randint(0, 3), rng.choice([0, 0.25, 0.5, 1])) for _ in range(rng.randint(1, 12))]
        answers = {str(q["_id"]): rng.randint(-1, 5) for q in qs if rng.random() < 0.8}
        sheet = score_answers(qs, answers)

        assert 0 <= sheet.score <= len(qs)
        assert sheet.correct_answers + sheet.wrong_answers + sheet.skipped_answers == len(qs)


def test_submit_persists_result_and_updates_leaderboard(db, student, make_exam, make_question):
    exam_id = make_exam()
    q1 = make_question(exam_id, correct_option=1)
    q2 = make_question(exam_id, correct_option=0, negative_marks=0.25)

    result = submit_exam(db, student, exam_id, {q1: 1, q2: 2})

    assert result["score"] == pytest.approx(0.75)
    assert result["total_marks"] == 2
    stored = db["result"].find_one({"user_id": student, "exam_id": exam_id})
    assert stored["_id"] == result["_id"]
    assert [a["question_id"] for a in stored["answers"]] == [q1, q2]

    totals = db["leaderboard"].find_one({"user_id": student})
    assert totals["total_score"] == pytest.approx(0.75)
    assert totals["exams_attempted"] == 1

    other_exam = make_exam(title="Optics")
    q3 = make_question(other_exam, correct_option=2)
    submit_exam(db, student, other_exam, {q3: 2})
    totals = db["leaderboard"].find_one({"user_id": student})
    assert totals["total_score"] == pytest.approx(1.75)
    assert totals["exams_attempted"] == 2


def test_total_marks_follows_question_count_not_exam_field(db, student, make_exam, make_question):
    exam_id = make_exam(total_questions=50)
    q = make_question(exam_id)
    result = submit_exam(db, student, exam_id, {q: 0})
    assert result["total_marks"] == 1


def test_second_submission_is_a_conflict(db, student, make_exam, make_question):
    exam_id = make_exam()
    q = make_question(exam_id)
    submit_exam(db, student, exam_id, {q: 0})

    with pytest.raises(ConflictError):
        submit_exam(db, student, exam_id, {q: 1})

    assert db["result"].count_documents({"user_id": student, "exam_id": exam_id}) == 1
    assert db["leaderboard"].find_one({"user_id": student})["exams_attempted"] == 1


class StaleResults:
    """Result collection whose lookups miss, as in a submit racing another."""

    def __init__(self, collection):
        self._collection = collection

    def find_one(self, *args, **kwargs):
        return None

    def __getattr__(self, name):
        return getattr(self._collection, name)


class RacingDB:
    def __init__(self, db):
        self._db = db

    def __getitem__(self, name):
        collection = self._db[name]
        return StaleResults(collection) if name == "result" else collection


def test_unique_index_catches_racing_submission(db, student, make_exam, make_question):
    exam_id = make_exam()
    q = make_question(exam_id)
    submit_exam(db, student, exam_id, {q: 0})

    with pytest.raises(ConflictError):
        submit_exam(RacingDB(db), student, exam_id, {q: 0})
    assert db["result"].count_documents({"user_id": student, "exam_id": exam_id}) == 1


def test_result_index_rejects_duplicate_pair(db):
    db["result"].insert_one({"user_id": "u", "exam_id": "e", "score": 1})
    with pytest.raises(DuplicateKeyError):
        db["result"].insert_one({"user_id": "u", "exam_id": "e", "score": 2})


def test_unknown_or_inactive_exam_is_not_found(db, student, make_exam):
    with pytest.raises(NotFoundError):
        submit_exam(db, student, str(ObjectId()), {})
    with pytest.raises(NotFoundError):
        submit_exam(db, student, "not-an-id", {})
    with pytest.raises(NotFoundError):
        submit_exam(db, student, make_exam(is_active=False), {})


def test_exam_without_questions_cannot_be_submitted(db, student, make_exam):
    with pytest.raises(ValidationError):
        submit_exam(db, student, make_exam(), {})
    assert db["result"].count_documents({}) == 0
