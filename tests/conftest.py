from datetime import timedelta

import mongomock
import pytest
from bson import ObjectId
from fastapi.testclient import TestClient

from exam_portal.auth import hash_password
from exam_portal.database import ensure_indexes, get_db
from exam_portal.main import app
from exam_portal.utils import utcnow


@pytest.fixture
def db():
    database = mongomock.MongoClient()["exam_portal_test"]
    ensure_indexes(database)
    return database


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(user_id):
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def _make(name=None, role="user", password=None, **extra):
        counter["n"] += 1
        n = counter["n"]
        doc = {
            "name": name or f"Student {n}",
            "email": f"user{n}@example.com",
            "password": hash_password(password) if password else "",
            "role": role,
            "notifications_enabled": True,
            "created_at": utcnow() + timedelta(seconds=n),
        }
        doc.update(extra)
        return str(db["user"].insert_one(doc).inserted_id)

    return _make


@pytest.fixture
def student(make_user):
    return make_user(name="Asha")


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", role="admin")


@pytest.fixture
def make_exam(db):
    def _make(title="Mechanics", subject="Physics", total_questions=2, is_active=True, **extra):
        doc = {
            "title": title,
            "description": "",
            "subject": subject,
            "student_class": "12",
            "duration_minutes": 30,
            "total_questions": total_questions,
            "total_marks": total_questions,
            "is_active": is_active,
            "created_at": utcnow(),
        }
        doc.update(extra)
        return str(db["exam"].insert_one(doc).inserted_id)

    return _make


@pytest.fixture
def make_question(db):
    def _make(exam_id, correct_option=0, negative_marks=0, text="What is 1 + 1?"):
        doc = {
            "_id": ObjectId(),
            "exam_id": exam_id,
            "question_text": text,
            "question_text_hindi": "",
            "options": [{"id": i, "text": str(i), "text_hindi": ""} for i in range(4)],
            "correct_option": correct_option,
            "marks": 1,
            "negative_marks": negative_marks,
            "difficulty": "Medium",
        }
        db["question"].insert_one(doc)
        return str(doc["_id"])

    return _make


@pytest.fixture
def make_result(db):
    def _make(user_id, exam_id, score, correct=None, days_ago=0, total_marks=10, now=None):
        now = now or utcnow()
        doc = {
            "user_id": user_id,
            "exam_id": exam_id,
            "score": score,
            "total_marks": total_marks,
            "correct_answers": score if correct is None else correct,
            "wrong_answers": 0,
            "skipped_answers": 0,
            "accuracy": 0,
            "answers": [],
            "submitted_at": now - timedelta(days=days_ago),
        }
        return str(db["result"].insert_one(doc).inserted_id)

    return _make
