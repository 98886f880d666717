"""Aggregate views for the admin console and the student dashboard."""

from datetime import timedelta
from typing import Any, Dict, List

from bson import ObjectId

from .config import settings
from .utils import round_half_up, to_str_id, utcnow

EXAM_SUMMARY_FIELDS = {"title": 1, "subject": 1, "duration_minutes": 1, "total_marks": 1, "total_questions": 1}


def score_pct(result: Dict[str, Any]) -> float:
    total = result.get("total_marks") or 0
    return result.get("score", 0) / total * 100 if total > 0 else 0


def with_exams(db, results: List[Dict[str, Any]], fields=None) -> List[Dict[str, Any]]:
    """Replace each result's exam_id with a summary of the exam under ``exam``."""
    ids = [ObjectId(r["exam_id"]) for r in results if ObjectId.is_valid(r["exam_id"])]
    exams = {
        str(e["_id"]): to_str_id(e)
        for e in db["exam"].find({"_id": {"$in": ids}}, fields or EXAM_SUMMARY_FIELDS)
    }
    out = []
    for result in results:
        r = to_str_id(result)
        r["exam"] = exams.get(r["exam_id"])
        out.append(r)
    return out


def admin_dashboard(db) -> Dict[str, Any]:
    passed = failed = 0
    for result in db["result"].find({}, {"score": 1, "total_marks": 1}):
        if result.get("score", 0) >= (result.get("total_marks") or 0) * settings.PASS_MARK_RATIO:
            passed += 1
        else:
            failed += 1

    recent_users = (
        db["user"].find({"role": "user"}, {"name": 1, "email": 1, "created_at": 1})
        .sort("created_at", -1)
        .limit(5)
    )
    return {
        "stats": {
            "total_students": db["user"].count_documents({"role": "user"}),
            "total_exams": db["exam"].count_documents({}),
            "total_questions": db["question"].count_documents({}),
            "total_attempts": passed + failed,
            "passed": passed,
            "failed": failed,
        },
        "recent_users": [to_str_id(u) for u in recent_users],
    }


def student_analytics(db) -> List[Dict[str, Any]]:
    """Per-student averages with strongest and weakest subject, best students first."""
    stats: Dict[str, Dict[str, Any]] = {}
    for user in db["user"].find({"role": "user"}, {"name": 1, "email": 1}):
        stats[str(user["_id"])] = {
            "id": str(user["_id"]),
            "name": user.get("name"),
            "email": user.get("email"),
            "total_exams": 0,
            "pct_sum": 0.0,
            "subjects": {},
        }

    subjects_by_exam = {str(e["_id"]): e.get("subject") for e in db["exam"].find({}, {"subject": 1})}
    for result in db["result"].find({}, {"user_id": 1, "exam_id": 1, "score": 1, "total_marks": 1}):
        stat = stats.get(result["user_id"])
        if stat is None:
            continue
        pct = score_pct(result)
        stat["total_exams"] += 1
        stat["pct_sum"] += pct
        subject = subjects_by_exam.get(result["exam_id"]) or "General"
        bucket = stat["subjects"].setdefault(subject, [0.0, 0])
        bucket[0] += pct
        bucket[1] += 1

    analytics = []
    for stat in stats.values():
        averages = {sub: total / count for sub, (total, count) in stat["subjects"].items()}
        analytics.append({
            "id": stat["id"],
            "name": stat["name"],
            "email": stat["email"],
            "total_exams": stat["total_exams"],
            "avg_score": round_half_up(stat["pct_sum"] / stat["total_exams"]) if stat["total_exams"] else 0,
            "strongest_subject": max(averages, key=averages.get) if averages else "N/A",
            "weakest_subject": min(averages, key=averages.get) if averages else "N/A",
        })
    analytics.sort(key=lambda a: a["avg_score"], reverse=True)
    return analytics


def badges_for(results: List[Dict[str, Any]], exams_this_week: int) -> List[Dict[str, str]]:
    badges = []
    if len(results) >= 1:
        badges.append({"icon": "award", "name": "First Step", "color": "blue", "desc": "Completed 1st Exam"})
    if len(results) >= 5:
        badges.append({"icon": "star", "name": "Dedicated", "color": "yellow", "desc": "Completed 5 Exams"})
    if any(score_pct(r) >= 90 for r in results):
        badges.append({"icon": "zap", "name": "High Flyer", "color": "purple", "desc": "Scored 90%+"})
    if exams_this_week >= settings.WEEKLY_GOAL:
        badges.append({"icon": "flame", "name": "On Fire", "color": "red", "desc": "Hit Weekly Goal"})
    return badges


def user_dashboard(db, user_id: str) -> Dict[str, Any]:
    all_exams = [to_str_id(e) for e in db["exam"].find({"is_active": True}).sort("created_at", -1)]
    completed = with_exams(db, list(db["result"].find({"user_id": user_id}, {"answers": 0})))

    taken = {r["exam_id"] for r in completed}
    pending = [e for e in all_exams if e["id"] not in taken]

    total_exams = len(completed)
    total_score = sum(r.get("score", 0) for r in completed)
    avg_score = round_half_up(total_score / total_exams, 1) if total_exams else 0
    aggregate = db["leaderboard"].find_one({"user_id": user_id}) or {}

    subject_stats: Dict[str, List[float]] = {}
    for r in completed:
        subject = (r.get("exam") or {}).get("subject") or "General"
        bucket = subject_stats.setdefault(subject, [0.0, 0])
        bucket[0] += score_pct(r)
        bucket[1] += 1
    subject_performance = sorted(
        ({"subject": sub, "average": round_half_up(total / count)} for sub, (total, count) in subject_stats.items()),
        key=lambda s: s["average"],
    )

    recommendations = []
    if subject_performance:
        weakest = subject_performance[0]["subject"]
        recommendations = [e for e in pending if e.get("subject") == weakest][:2]
    if not recommendations:
        recommendations = pending[:2]

    one_week_ago = utcnow() - timedelta(days=7)
    exams_this_week = sum(1 for r in completed if r.get("submitted_at") and r["submitted_at"] > one_week_ago)

    return {
        "pending_exams": pending,
        "completed_exams": completed,
        "stats": {
            "total_exams": total_exams,
            "avg_score": avg_score,
            "total_score": aggregate.get("total_score", 0),
        },
        "analytics": {
            "subject_performance": subject_performance,
            "weekly_progress": {"current": exams_this_week, "target": settings.WEEKLY_GOAL},
            "recommendations": recommendations,
            "badges": badges_for(completed, exams_this_week),
        },
    }


def result_detail(db, result: Dict[str, Any]) -> Dict[str, Any]:
    """A stored result with its exam and each answered question filled in."""
    detail = with_exams(db, [result], {"title": 1, "subject": 1, "total_marks": 1, "total_questions": 1})[0]
    question_ids = [ObjectId(a["question_id"]) for a in detail.get("answers", []) if ObjectId.is_valid(a["question_id"])]
    questions = {
        str(q["_id"]): to_str_id(q)
        for q in db["question"].find(
            {"_id": {"$in": question_ids}},
            {"question_text": 1, "options": 1, "correct_option": 1, "marks": 1, "negative_marks": 1},
        )
    }
    detail["answers"] = [
        {**answer, "question": questions.get(answer["question_id"])}
        for answer in detail.get("answers", [])
    ]
    return detail
