"""
Rankings computed at read time from the stored results.

Both the per-exam rank and the leaderboard order results by score, then by
number of correct answers, both descending. Nothing is cached: every call
reflects whatever has been committed when it runs.
"""

import logging
import re
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId

from .utils import round_half_up, utcnow

logger = logging.getLogger(__name__)

WEEKLY = "weekly"
ALL_TIME = "all-time"
WINDOW = timedelta(days=7)

CANDIDATE_LIMIT = 100
TOP_COUNT = 3
BOARD_SIZE = 50
NEW_ENTRY = "new"


def percentile(total: int, rank: int) -> int:
    if total <= 0:
        return 100
    return round_half_up((total - rank) / total * 100)


def rank_of(db, result: Dict[str, Any]) -> Tuple[int, int]:
    """Competition rank and percentile of ``result`` among its exam's results."""
    exam_id = result["exam_id"]
    better = db["result"].count_documents({
        "exam_id": exam_id,
        "$or": [
            {"score": {"$gt": result["score"]}},
            {"score": result["score"], "correct_answers": {"$gt": result["correct_answers"]}},
        ],
    })
    rank = better + 1
    total = db["result"].count_documents({"exam_id": exam_id})
    return rank, percentile(total, rank)


def rank_users(results, limit: int = CANDIDATE_LIMIT) -> List[Dict[str, Any]]:
    """Group results per user and order the users by total score, then total correct."""
    totals: Dict[str, Dict[str, Any]] = {}
    for result in results:
        entry = totals.setdefault(
            result["user_id"],
            {"user_id": result["user_id"], "score": 0, "correct": 0, "exams": 0},
        )
        entry["score"] += result.get("score") or 0
        entry["correct"] += result.get("correct_answers") or 0
        entry["exams"] += 1

    ranked = sorted(totals.values(), key=lambda e: (e["score"], e["correct"]), reverse=True)
    return ranked[:limit]


def window_filters(timeframe: str, now=None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Return the (current, previous) submitted_at filters for ``timeframe``."""
    now = now or utcnow()
    one_week_ago = now - WINDOW
    if timeframe == WEEKLY:
        current = {"submitted_at": {"$gte": one_week_ago}}
        previous = {"submitted_at": {"$gte": one_week_ago - WINDOW, "$lt": one_week_ago}}
    else:
        current = {}
        previous = {"submitted_at": {"$lt": one_week_ago}}
    return current, previous


def subject_exam_ids(db, subject: Optional[str]) -> Optional[List[str]]:
    """Ids of exams in ``subject`` (case-insensitive), or None for no filter."""
    if not subject or subject.lower() == "all":
        return None
    pattern = f"^{re.escape(subject)}$"
    exams = db["exam"].find({"subject": {"$regex": pattern, "$options": "i"}}, {"_id": 1})
    return [str(e["_id"]) for e in exams]


def rankings(db, match: Dict[str, Any], exam_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
    query = dict(match)
    if exam_ids is not None:
        query["exam_id"] = {"$in": exam_ids}
    results = db["result"].find(query, {"user_id": 1, "score": 1, "correct_answers": 1})
    ranked = rank_users(results)

    user_ids = [ObjectId(e["user_id"]) for e in ranked if ObjectId.is_valid(e["user_id"])]
    users = {
        str(u["_id"]): u
        for u in db["user"].find({"_id": {"$in": user_ids}}, {"name": 1, "profile_image": 1})
    }
    # results of users that no longer exist drop out after the cap
    board = []
    for entry in ranked:
        user = users.get(entry["user_id"])
        if user is None:
            continue
        board.append({
            "user_id": entry["user_id"],
            "name": user.get("name"),
            "avatar": user.get("profile_image"),
            "score": entry["score"],
            "correct": entry["correct"],
            "exams": entry["exams"],
        })
    return board


def apply_rank_changes(current: List[Dict[str, Any]], previous: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    previous_ranks = {entry["user_id"]: index + 1 for index, entry in enumerate(previous)}
    board = []
    for index, entry in enumerate(current):
        rank = index + 1
        previous_rank = previous_ranks.get(entry["user_id"])
        change = previous_rank - rank if previous_rank else NEW_ENTRY
        board.append({**entry, "rank": rank, "rank_change": change})
    return board


def leaderboard(db, timeframe: str = ALL_TIME, subject: Optional[str] = None,
                viewer_id: Optional[str] = None, now=None) -> Dict[str, Any]:
    """
    Build the leaderboard for ``timeframe`` ("weekly" or anything else for
    all-time), optionally restricted to one subject.

    The previous window only feeds ``rank_change``; it is never returned.
    """
    current_match, previous_match = window_filters(timeframe, now)
    exam_ids = subject_exam_ids(db, subject)

    board = apply_rank_changes(
        rankings(db, current_match, exam_ids),
        rankings(db, previous_match, exam_ids),
    )

    user_rank = None
    if viewer_id is not None:
        for index, entry in enumerate(board):
            if entry["user_id"] == viewer_id:
                user_rank = {
                    "position": entry["rank"],
                    "score": entry["score"],
                    "rank_change": entry["rank_change"],
                    "percentile": round_half_up((len(board) - index) / len(board) * 100),
                }
                break

    logger.debug("Leaderboard timeframe=%s subject=%s entries=%d", timeframe, subject, len(board))
    return {
        "top_three": board[:TOP_COUNT],
        "rest": board[TOP_COUNT:BOARD_SIZE],
        "user_rank": user_rank,
    }
