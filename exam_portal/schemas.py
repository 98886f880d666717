"""
Database Schemas for the exam portal

Each Pydantic model represents a collection in MongoDB. The collection name
is the lowercase of the class name (e.g., Exam -> "exam"). Request bodies that
do not map to a collection sit next to the models they feed.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, model_validator

Role = Literal["user", "admin"]
Difficulty = Literal["Easy", "Medium", "Hard"]


class User(BaseModel):
    """Registered student or administrator (collection: user)"""
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., description="bcrypt hash, never returned")
    role: Role = "user"
    student_class: Optional[str] = None
    stream: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None
    notifications_enabled: bool = True


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    # bcrypt only looks at the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    role: Role = "user"
    student_class: Optional[str] = None
    stream: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    student_class: Optional[str] = None
    stream: Optional[str] = None
    profile_image: Optional[str] = None
    bio: Optional[str] = None


class ChangePassword(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=72)


class Exam(BaseModel):
    """Exam metadata (collection: exam)"""
    title: str = Field(..., min_length=1, description="Exam title")
    description: str = Field("", description="Short description of the exam")
    subject: str = Field(..., min_length=1, description="Subject name, e.g., Physics")
    student_class: str = Field("12", description="Class the exam targets")
    duration_minutes: int = Field(..., gt=0, description="Time limit in minutes")
    total_questions: int = Field(..., ge=0, description="Number of questions in the exam")
    total_marks: Optional[int] = Field(None, description="Always equal to total_questions")
    is_active: bool = True

    @model_validator(mode="after")
    def one_mark_per_question(self):
        self.total_marks = self.total_questions
        return self


class ExamUpdate(BaseModel):
    """Descriptive fields only; totals are fixed once results exist."""
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    subject: Optional[str] = Field(None, min_length=1)
    student_class: Optional[str] = None
    duration_minutes: Optional[int] = Field(None, gt=0)
    is_active: Optional[bool] = None


class QuestionOption(BaseModel):
    id: Optional[int] = None
    text: str
    text_hindi: str = ""


class Question(BaseModel):
    """Multiple-choice question for an exam (collection: question)"""
    exam_id: str = Field(..., description="Reference to Exam _id as string")
    question_text: str = Field(..., min_length=1)
    question_text_hindi: str = ""
    options: List[QuestionOption] = Field(..., min_length=2)
    correct_option: int = Field(..., description="Id of the correct option; hidden while the exam runs")
    marks: int = Field(1, ge=1, le=1, description="Every question is worth one mark")
    negative_marks: float = Field(0, ge=0, description="Deducted for a wrong answer")
    difficulty: Difficulty = "Medium"

    @model_validator(mode="after")
    def check_options(self):
        for position, option in enumerate(self.options):
            if option.id is None:
                option.id = position
        ids = [option.id for option in self.options]
        if len(set(ids)) != len(ids):
            raise ValueError("option ids must be unique")
        if self.correct_option not in ids:
            raise ValueError("correct_option must match one of the option ids")
        return self


class BulkQuestions(BaseModel):
    questions: List[Question] = Field(..., min_length=1)


class SubmitAnswers(BaseModel):
    answers: Dict[str, int] = Field(..., description="question id -> selected option id")


class SubmitResponse(BaseModel):
    score: float
    total_marks: int
    correct_answers: int
    wrong_answers: int


class AnswerRecord(BaseModel):
    question_id: str
    selected_option: int = Field(..., description="-1 when the question was skipped")


class Result(BaseModel):
    """One user's single attempt at one exam (collection: result)"""
    user_id: str
    exam_id: str
    score: float = Field(..., ge=0)
    total_marks: int = Field(..., ge=0)
    correct_answers: int = 0
    wrong_answers: int = 0
    skipped_answers: int = 0
    accuracy: float = 0
    answers: List[AnswerRecord] = []
    submitted_at: datetime


class Leaderboard(BaseModel):
    """Running per-user totals, incremented on each submission (collection: leaderboard)"""
    user_id: str
    total_score: float = 0
    exams_attempted: int = 0
    updated_at: Optional[datetime] = None


class Note(BaseModel):
    """Downloadable study material (collection: note)"""
    title: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    file_url: str = Field(..., min_length=1)
    type: str = "PDF"
    downloads: int = 0


class NoteUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    subject: Optional[str] = Field(None, min_length=1)
    file_url: Optional[str] = Field(None, min_length=1)
    type: Optional[str] = None


class Subject(BaseModel):
    """Subject catalogue entry (collection: subject)"""
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    is_active: bool = True


class Notification(BaseModel):
    """Message shown in a user's notification tray (collection: notification)"""
    user_id: str
    title: str
    message: str
    is_read: bool = False
