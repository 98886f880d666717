from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo.errors import DuplicateKeyError

from ..auth import get_current_user, hash_password, public_user
from ..database import create_document, get_db
from ..errors import ConflictError
from ..schemas import RegisterRequest, User

router = APIRouter()


@router.post("/register", status_code=201)
def register(payload: RegisterRequest, db=Depends(get_db)):
    if db["user"].find_one({"email": payload.email}, {"_id": 1}):
        raise ConflictError("User already exists")
    user = User(
        **payload.model_dump(exclude={"password"}),
        password=hash_password(payload.password),
    )
    try:
        user_id = create_document("user", user, database=db)
    except DuplicateKeyError:
        raise ConflictError("User already exists")
    return public_user(db["user"].find_one({"_id": ObjectId(user_id)}))


@router.get("/me")
def me(user=Depends(get_current_user)):
    return public_user(user)
