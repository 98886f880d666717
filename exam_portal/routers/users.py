from fastapi import APIRouter, Depends

from ..analytics import result_detail, user_dashboard, with_exams
from ..auth import get_current_user, hash_password, public_user, verify_password
from ..database import get_db
from ..errors import NotFoundError, ValidationError
from ..schemas import ChangePassword, ProfileUpdate
from ..utils import parse_object_id, to_str_id, utcnow

router = APIRouter()

NOTIFICATION_PAGE = 20


def uid(user):
    return str(user["_id"])


@router.get("/dashboard")
def dashboard(user=Depends(get_current_user), db=Depends(get_db)):
    return user_dashboard(db, uid(user))


@router.get("/profile")
def get_profile(user=Depends(get_current_user)):
    return public_user(user)


@router.put("/profile")
def update_profile(payload: ProfileUpdate, user=Depends(get_current_user), db=Depends(get_db)):
    # empty values leave the stored field alone
    changes = {k: v for k, v in payload.model_dump().items() if v}
    if changes:
        changes["updated_at"] = utcnow()
        db["user"].update_one({"_id": user["_id"]}, {"$set": changes})
    return public_user(db["user"].find_one({"_id": user["_id"]}))


@router.put("/change-password")
def change_password(payload: ChangePassword, user=Depends(get_current_user), db=Depends(get_db)):
    if not verify_password(payload.current_password, user.get("password", "")):
        raise ValidationError("Incorrect current password")
    db["user"].update_one(
        {"_id": user["_id"]},
        {"$set": {"password": hash_password(payload.new_password), "updated_at": utcnow()}},
    )
    return {"message": "Password updated successfully"}


@router.get("/history")
def exam_history(user=Depends(get_current_user), db=Depends(get_db)):
    results = list(db["result"].find({"user_id": uid(user)}, {"answers": 0}).sort("submitted_at", -1))
    return with_exams(db, results)


@router.get("/results/{exam_id}")
def result_details(exam_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    exam_id = str(parse_object_id(exam_id, "Result"))
    result = db["result"].find_one({"user_id": uid(user), "exam_id": exam_id})
    if not result:
        raise NotFoundError("Result not found")
    return result_detail(db, result)


@router.delete("/history/{result_id}")
def delete_result(result_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    # leaderboard totals are a running sum and stay as they are
    deleted = db["result"].delete_one({"_id": parse_object_id(result_id, "Result"), "user_id": uid(user)})
    if not deleted.deleted_count:
        raise NotFoundError("Result not found")
    return {"message": "Result deleted successfully"}


@router.get("/notifications")
def notifications(user=Depends(get_current_user), db=Depends(get_db)):
    items = (
        db["notification"].find({"user_id": uid(user)})
        .sort("created_at", -1)
        .limit(NOTIFICATION_PAGE)
    )
    return [to_str_id(n) for n in items]


@router.put("/notifications/read")
def mark_notifications_read(user=Depends(get_current_user), db=Depends(get_db)):
    updated = db["notification"].update_many({"user_id": uid(user), "is_read": False}, {"$set": {"is_read": True}})
    return {"message": "Notifications marked as read", "updated": updated.modified_count}


@router.put("/notifications/toggle")
def toggle_notifications(user=Depends(get_current_user), db=Depends(get_db)):
    enabled = not user.get("notifications_enabled", True)
    db["user"].update_one({"_id": user["_id"]}, {"$set": {"notifications_enabled": enabled}})
    return {"enabled": enabled}


@router.delete("/notifications/{notification_id}")
def delete_notification(notification_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    deleted = db["notification"].delete_one(
        {"_id": parse_object_id(notification_id, "Notification"), "user_id": uid(user)}
    )
    if not deleted.deleted_count:
        raise NotFoundError("Notification not found")
    return {"message": "Notification deleted"}


@router.delete("/notifications")
def delete_all_notifications(user=Depends(get_current_user), db=Depends(get_db)):
    deleted = db["notification"].delete_many({"user_id": uid(user)})
    return {"message": "All notifications cleared", "deleted": deleted.deleted_count}
