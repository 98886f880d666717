import logging

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from ..analytics import admin_dashboard, student_analytics, with_exams
from ..auth import public_user, require_admin
from ..database import create_document, get_db
from ..errors import ConflictError, NotFoundError
from ..schemas import BulkQuestions, Exam, Question, Subject
from ..utils import parse_object_id, to_str_id, utcnow

logger = logging.getLogger(__name__)

# every route here is admin-only
router = APIRouter(dependencies=[Depends(require_admin)])


def check_exams_exist(db, exam_ids):
    for exam_id in set(exam_ids):
        if not db["exam"].find_one({"_id": parse_object_id(exam_id, "Exam")}, {"_id": 1}):
            raise NotFoundError(f"Exam {exam_id} not found")


@router.get("/dashboard")
def dashboard(db=Depends(get_db)):
    return admin_dashboard(db)


@router.get("/analytics")
def analytics(db=Depends(get_db)):
    return student_analytics(db)


@router.post("/exams", status_code=201)
def create_exam(exam: Exam, db=Depends(get_db)):
    exam_id = create_document("exam", exam, database=db)
    logger.info("Exam created id=%s subject=%s", exam_id, exam.subject)
    return to_str_id(db["exam"].find_one({"_id": ObjectId(exam_id)}))


@router.post("/questions", status_code=201)
def add_question(q: Question, db=Depends(get_db)):
    check_exams_exist(db, [q.exam_id])
    question_id = create_document("question", q, database=db)
    return to_str_id(db["question"].find_one({"_id": ObjectId(question_id)}))


@router.post("/questions/bulk", status_code=201)
def bulk_upload_questions(payload: BulkQuestions, db=Depends(get_db)):
    check_exams_exist(db, [q.exam_id for q in payload.questions])
    now = utcnow()
    docs = [{**q.model_dump(), "created_at": now, "updated_at": now} for q in payload.questions]
    inserted = db["question"].insert_many(docs)
    return {
        "message": f"{len(inserted.inserted_ids)} questions added",
        "ids": [str(i) for i in inserted.inserted_ids],
    }


@router.get("/users")
def list_users(db=Depends(get_db)):
    users = db["user"].find({"role": "user"}).sort("created_at", -1)
    return [public_user(u) for u in users]


@router.get("/users/{user_id}/results")
def user_results(user_id: str, db=Depends(get_db)):
    user_id = str(parse_object_id(user_id, "User"))
    results = list(db["result"].find({"user_id": user_id}, {"answers": 0}).sort("submitted_at", -1))
    return with_exams(db, results)


@router.delete("/users/{user_id}")
def delete_user(user_id: str, db=Depends(get_db)):
    oid = parse_object_id(user_id, "User")
    user_id = str(oid)
    deleted = db["user"].delete_one({"_id": oid})
    if not deleted.deleted_count:
        raise NotFoundError("User not found")
    db["result"].delete_many({"user_id": user_id})
    db["leaderboard"].delete_many({"user_id": user_id})
    db["notification"].delete_many({"user_id": user_id})
    logger.info("User deleted id=%s", user_id)
    return {"message": "User deleted successfully"}


@router.post("/subjects", status_code=201)
def create_subject(subject: Subject, db=Depends(get_db)):
    try:
        subject_id = create_document("subject", subject, database=db)
    except DuplicateKeyError:
        raise ConflictError("Subject already exists")
    return to_str_id(db["subject"].find_one({"_id": ObjectId(subject_id)}))
