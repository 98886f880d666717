from fastapi import APIRouter, Depends

from ..analytics import result_detail
from ..auth import get_current_user, require_admin
from ..database import get_db, get_documents
from ..errors import ConflictError, NotFoundError
from ..ranking import rank_of
from ..schemas import ExamUpdate, SubmitAnswers, SubmitResponse
from ..scoring import get_active_exam, submit_exam
from ..utils import parse_object_id, to_str_id, utcnow

router = APIRouter()

DEFAULT_QUESTION_LIMIT = 100


@router.get("/public/stats")
def landing_stats(db=Depends(get_db)):
    return {
        "total_students": db["user"].count_documents({"role": "user"}),
        "total_exams": db["exam"].count_documents({"is_active": True}),
        "subjects": sorted(db["exam"].distinct("subject", {"is_active": True})),
    }


@router.get("")
def list_exams(user=Depends(get_current_user), db=Depends(get_db)):
    exams = get_documents("exam", {"is_active": True}, sort=[("created_at", -1)], database=db)
    return [to_str_id(e) for e in exams]


@router.post("/{exam_id}/start")
def start_exam(exam_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    exam = get_active_exam(db, exam_id)
    exam_id = str(exam["_id"])
    if db["result"].find_one({"user_id": str(user["_id"]), "exam_id": exam_id}, {"_id": 1}):
        raise ConflictError("You have already attempted this exam")

    limit = exam.get("total_questions") or DEFAULT_QUESTION_LIMIT
    # the answer key never leaves the server while the exam is running
    questions = (
        db["question"].find({"exam_id": exam_id}, {"correct_option": 0})
        .sort("_id")
        .limit(limit)
    )
    return {"exam": to_str_id(exam), "questions": [to_str_id(q) for q in questions]}


@router.post("/{exam_id}/submit", response_model=SubmitResponse)
def submit(exam_id: str, payload: SubmitAnswers, user=Depends(get_current_user), db=Depends(get_db)):
    result = submit_exam(db, str(user["_id"]), exam_id, payload.answers)
    return SubmitResponse(
        score=result["score"],
        total_marks=result["total_marks"],
        correct_answers=result["correct_answers"],
        wrong_answers=result["wrong_answers"],
    )


@router.get("/{exam_id}/result")
def exam_result(exam_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    exam_id = str(parse_object_id(exam_id, "Result"))
    result = db["result"].find_one({"exam_id": exam_id, "user_id": str(user["_id"])})
    if not result:
        raise NotFoundError("Result not found")
    rank, percentile = rank_of(db, result)
    detail = result_detail(db, result)
    detail["rank"] = rank
    detail["percentile"] = percentile
    return detail


@router.put("/{exam_id}")
def update_exam(exam_id: str, payload: ExamUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    changes = payload.model_dump(exclude_unset=True)
    oid = parse_object_id(exam_id, "Exam")
    if changes:
        changes["updated_at"] = utcnow()
        db["exam"].update_one({"_id": oid}, {"$set": changes})
    exam = db["exam"].find_one({"_id": oid})
    if not exam:
        raise NotFoundError("Exam not found")
    return to_str_id(exam)


@router.delete("/{exam_id}")
def delete_exam(exam_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    oid = parse_object_id(exam_id, "Exam")
    # questions and results reference the canonical lowercase id
    exam_id = str(oid)
    deleted = db["exam"].delete_one({"_id": oid})
    if not deleted.deleted_count:
        raise NotFoundError("Exam not found")
    questions = db["question"].delete_many({"exam_id": exam_id})
    results = db["result"].delete_many({"exam_id": exam_id})
    return {
        "message": "Exam deleted successfully",
        "questions_deleted": questions.deleted_count,
        "results_deleted": results.deleted_count,
    }
