import re
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends

from ..auth import get_current_user, require_admin
from ..database import create_document, get_db, get_documents
from ..errors import NotFoundError
from ..schemas import Note, NoteUpdate
from ..utils import parse_object_id, to_str_id, utcnow

router = APIRouter()
subjects_router = APIRouter()


@router.get("")
def list_notes(subject: Optional[str] = None, search: Optional[str] = None, db=Depends(get_db)):
    query = {}
    if subject and subject != "all":
        query["subject"] = subject
    if search:
        query["title"] = {"$regex": re.escape(search), "$options": "i"}
    notes = get_documents("note", query, sort=[("created_at", -1)], database=db)
    return [to_str_id(n) for n in notes]


@router.post("/{note_id}/download")
def track_download(note_id: str, user=Depends(get_current_user), db=Depends(get_db)):
    updated = db["note"].update_one({"_id": parse_object_id(note_id, "Note")}, {"$inc": {"downloads": 1}})
    if not updated.matched_count:
        raise NotFoundError("Note not found")
    return {"message": "Download tracked"}


@router.post("", status_code=201)
def create_note(note: Note, admin=Depends(require_admin), db=Depends(get_db)):
    note_id = create_document("note", note, database=db)
    return to_str_id(db["note"].find_one({"_id": ObjectId(note_id)}))


@router.put("/{note_id}")
def update_note(note_id: str, payload: NoteUpdate, admin=Depends(require_admin), db=Depends(get_db)):
    oid = parse_object_id(note_id, "Note")
    changes = payload.model_dump(exclude_unset=True)
    if changes:
        changes["updated_at"] = utcnow()
        db["note"].update_one({"_id": oid}, {"$set": changes})
    note = db["note"].find_one({"_id": oid})
    if not note:
        raise NotFoundError("Note not found")
    return to_str_id(note)


@router.delete("/{note_id}")
def delete_note(note_id: str, admin=Depends(require_admin), db=Depends(get_db)):
    deleted = db["note"].delete_one({"_id": parse_object_id(note_id, "Note")})
    if not deleted.deleted_count:
        raise NotFoundError("Note not found")
    return {"message": "Note deleted"}


@subjects_router.get("")
def list_subjects(db=Depends(get_db)):
    subjects = get_documents("subject", {"is_active": True}, sort=[("name", 1)], database=db)
    return [to_str_id(s) for s in subjects]
