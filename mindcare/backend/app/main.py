from __future__ import annotations

import logging
import os
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Literal, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from fastapi.responses import FileResponse
from jose import JWTError, jwt
from passlib.context import CryptContext
from dotenv import load_dotenv
from pydantic import BaseModel, Field, StrictInt
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, create_engine, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.declarative import declarative_base
from sqlalchemy.orm import Session, relationship, sessionmaker

from .chat_relay import ChatRelay, ChatRelayError, ChatRelayUnavailable
from .crisis_detector import scan_message
from .triage_engine import (
    ANSWER_OPTIONS,
    GAD7_QUESTIONS,
    PHQ9_QUESTIONS,
    InvalidInput,
    RiskLevel,
    triage,
)

APP_VERSION = "1.0.0"
REPO_ROOT = Path(__file__).resolve().parents[3]
load_dotenv(REPO_ROOT / ".env")

logging.basicConfig(
    level=os.getenv("MINDCARE_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def resolve_db_path() -> str:
    db_env = (os.getenv("MINDCARE_DB_PATH") or os.getenv("DB_PATH") or "").strip()
    db_path = Path(db_env) if db_env else (REPO_ROOT / "mindcare.db")
    if not db_path.is_absolute():
        db_path = REPO_ROOT / db_path
    return str(db_path)


def resolve_upload_dir() -> str:
    upload_env = (os.getenv("MINDCARE_UPLOAD_DIR") or "").strip()
    upload_dir = Path(upload_env) if upload_env else (REPO_ROOT / "uploads")
    if not upload_dir.is_absolute():
        upload_dir = REPO_ROOT / upload_dir
    return str(upload_dir)


DB_PATH = resolve_db_path()
UPLOAD_DIR = resolve_upload_dir()
DATABASE_URL = f"sqlite:///{DB_PATH}"
SECRET_KEY = os.getenv("MINDCARE_SECRET_KEY", "CHANGE_ME")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24
MAX_PHOTO_BYTES = int(os.getenv("MINDCARE_MAX_PHOTO_BYTES", str(5 * 1024 * 1024)))
ALLOWED_PHOTO_TYPES = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
}
PROFILE_COMPLETION_FIELDS = [
    "full_name",
    "email",
    "phone_number",
    "gender",
    "institution",
    "year_of_study",
    "profile_photo_url",
]

logger.info("Using database at %s", DB_PATH)

engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")
chat_relay = ChatRelay()


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    profile = relationship("UserProfile", uselist=False, back_populates="user")


class UserProfile(Base):
    __tablename__ = "user_profiles"

    user_id = Column(Integer, ForeignKey("users.id"), primary_key=True)
    phone_number = Column(String, nullable=True)
    profile_photo_url = Column(String, nullable=True)
    gender = Column(String, nullable=True)
    institution = Column(String, nullable=True)
    year_of_study = Column(String, nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="profile")


Gender = Literal["male", "female", "other", "prefer_not_to_say"]
YearOfStudy = Literal["firstYear", "secondYear", "thirdYear", "fourthYear", "graduate", "postGraduate"]


class UserSummary(BaseModel):
    id: int
    name: str
    email: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user: UserSummary


class RegisterRequest(BaseModel):
    full_name: str
    email: str
    password: str


class ProfileResponse(BaseModel):
    user_id: int
    full_name: str
    email: str
    phone_number: Optional[str] = None
    profile_photo_url: Optional[str] = None
    gender: Optional[Gender] = None
    institution: Optional[str] = None
    year_of_study: Optional[YearOfStudy] = None


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    phone_number: Optional[str] = None
    gender: Optional[Gender] = None
    institution: Optional[str] = None
    year_of_study: Optional[YearOfStudy] = None


class ProfileCompletionResponse(BaseModel):
    user_id: int
    percent: int
    missing_fields: List[str]


class PhotoUploadResponse(BaseModel):
    photo_url: str


class AssessmentQuestion(BaseModel):
    instrument: str
    index: int
    text: str


class AssessmentQuestionsResponse(BaseModel):
    phq9: List[AssessmentQuestion]
    gad7: List[AssessmentQuestion]
    options: List[dict]


class AssessmentSubmitRequest(BaseModel):
    phq9: List[StrictInt]
    gad7: List[StrictInt]


class AssessmentSubmitResponse(BaseModel):
    phq9_score: int
    gad7_score: int
    phq9_severity: str
    gad7_severity: str
    risk_level: RiskLevel
    next_screen: str
    reasons: List[str]
    recommended_actions: List[str]
    crisis_guidance: List[str]


class ChatRequest(BaseModel):
    message: str = Field(max_length=4000)


class ChatResponse(BaseModel):
    reply: str
    crisis: bool
    next_screen: Optional[str] = None
    resources: List[str] = Field(default_factory=list)


app = FastAPI(title="Mind Care API", version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


@app.on_event("startup")
def on_startup() -> None:
    Base.metadata.create_all(bind=engine)
    Path(UPLOAD_DIR).mkdir(parents=True, exist_ok=True)


def get_db() -> Session:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_chat_relay() -> ChatRelay:
    return chat_relay


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db)
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = int(payload.get("sub"))
    except (JWTError, TypeError, ValueError) as exc:
        raise credentials_exception from exc

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception
    return user


def find_user_by_email(email: str, db: Session) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def build_token_response(user: User) -> TokenResponse:
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return TokenResponse(
        access_token=token,
        token_type="bearer",
        user=UserSummary(id=user.id, name=user.full_name, email=user.email),
    )


def ensure_self(user: User, user_id: int) -> None:
    if user.id != user_id:
        raise HTTPException(status_code=403, detail="You can only access your own profile")


def get_or_create_profile(user: User, db: Session) -> UserProfile:
    profile = db.query(UserProfile).filter(UserProfile.user_id == user.id).first()
    if profile is None:
        profile = UserProfile(user_id=user.id)
        db.add(profile)
        db.commit()
        db.refresh(profile)
    return profile


def build_profile_response(user: User, profile: UserProfile) -> ProfileResponse:
    return ProfileResponse(
        user_id=user.id,
        full_name=user.full_name,
        email=user.email,
        phone_number=profile.phone_number,
        profile_photo_url=profile.profile_photo_url,
        gender=profile.gender,
        institution=profile.institution,
        year_of_study=profile.year_of_study,
    )


def compute_profile_completion(values: dict) -> tuple[int, List[str]]:
    missing = [name for name in PROFILE_COMPLETION_FIELDS if values.get(name) in (None, "")]
    completed = len(PROFILE_COMPLETION_FIELDS) - len(missing)
    percent = int(round(completed / len(PROFILE_COMPLETION_FIELDS) * 100))
    return percent, missing


def recommended_actions(level: RiskLevel) -> List[str]:
    if level == RiskLevel.CRISIS:
        return [
            "Call the National Helpline now or contact local emergency services.",
            "Stay with someone you trust, or let them know you need support right away.",
            "Move away from anything you could use to hurt yourself.",
        ]
    if level == RiskLevel.ELEVATED:
        return [
            "Book a session with a campus counsellor this week.",
            "Talk through how you are feeling with the chat support.",
            "Keep a regular sleep and meal routine for the next few days.",
        ]
    return [
        "Browse the self-help resources for breathing and grounding exercises.",
        "Pick one small, kind action for yourself today.",
        "Retake the assessment in two weeks to check in with yourself.",
    ]


def crisis_resources() -> List[str]:
    return [
        "National Helpline: 1800-599-0019 (24x7, free).",
        "If you are in immediate danger, contact local emergency services.",
        "Reach out to a trusted person and tell them you need support.",
    ]


@app.get("/health")
def health() -> dict:
    db_status = "ok"
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception:
        logger.exception("Database health check failed")
        db_status = "error"
    return {"status": "ok", "version": APP_VERSION, "db": db_status}


@app.get("/safety/resources")
def safety_resources() -> dict:
    return {
        "helplines": [
            {"label": "National Helpline", "number": "1800-599-0019", "note": "Free, confidential, 24x7."},
            {"label": "Emergency", "number": "112", "note": "If you are in immediate danger."},
        ],
        "guidance": crisis_resources(),
        "safety_note": "This app is not medical advice. If you feel unsafe, seek immediate support.",
    }


@app.post("/auth/register", response_model=TokenResponse)
def register_user(payload: RegisterRequest, db: Session = Depends(get_db)) -> TokenResponse:
    email = payload.email.strip().lower()
    full_name = payload.full_name.strip()
    if not email or not full_name:
        raise HTTPException(status_code=400, detail="Full name and email are required")
    if find_user_by_email(email, db):
        raise HTTPException(status_code=400, detail="Email already registered")
    if not payload.password:
        raise HTTPException(status_code=400, detail="Password is required")
    if len(payload.password.encode("utf-8")) > 72:
        raise HTTPException(
            status_code=400,
            detail="Password too long (bcrypt limit is 72 bytes). Use a shorter password.",
        )
    try:
        hashed_password = get_password_hash(payload.password)
    except Exception as exc:
        raise HTTPException(
            status_code=500,
            detail="Unable to process password at this time.",
        ) from exc
    user = User(full_name=full_name, email=email, hashed_password=hashed_password)
    db.add(user)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already registered") from exc
    db.refresh(user)
    db.add(UserProfile(user_id=user.id))
    db.commit()
    logger.info("Registered user %s", user.id)
    return build_token_response(user)


@app.post("/auth/login", response_model=TokenResponse)
def login_user(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
) -> TokenResponse:
    email = form_data.username.strip().lower()
    user = find_user_by_email(email, db)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Failed login for %s", email)
        raise HTTPException(status_code=400, detail="Invalid email or password")
    return build_token_response(user)


@app.get("/users/{user_id}", response_model=ProfileResponse)
def get_user_profile(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    ensure_self(user, user_id)
    profile = get_or_create_profile(user, db)
    return build_profile_response(user, profile)


@app.put("/users/{user_id}", response_model=ProfileResponse)
def update_user_profile(
    user_id: int,
    payload: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileResponse:
    ensure_self(user, user_id)
    changes = payload.model_dump(exclude_unset=True)
    profile = get_or_create_profile(user, db)
    if "full_name" in changes:
        full_name = (changes.pop("full_name") or "").strip()
        if not full_name:
            raise HTTPException(status_code=400, detail="Full name cannot be empty")
        user.full_name = full_name
    for name, value in changes.items():
        setattr(profile, name, value)
    profile.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(user)
    db.refresh(profile)
    return build_profile_response(user, profile)


@app.get("/users/{user_id}/completion", response_model=ProfileCompletionResponse)
def profile_completion(
    user_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> ProfileCompletionResponse:
    ensure_self(user, user_id)
    profile = get_or_create_profile(user, db)
    percent, missing = compute_profile_completion(build_profile_response(user, profile).model_dump())
    return ProfileCompletionResponse(user_id=user.id, percent=percent, missing_fields=missing)


@app.post("/users/{user_id}/photo", response_model=PhotoUploadResponse)
def upload_profile_photo(
    user_id: int,
    profile_photo: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> PhotoUploadResponse:
    ensure_self(user, user_id)
    content_type = (profile_photo.content_type or "").lower()
    extension = ALLOWED_PHOTO_TYPES.get(content_type)
    if extension is None:
        raise HTTPException(status_code=400, detail="Profile photo must be a JPEG, PNG, GIF or WebP image")
    data = profile_photo.file.read(MAX_PHOTO_BYTES + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > MAX_PHOTO_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Profile photo exceeds {MAX_PHOTO_BYTES} bytes",
        )

    upload_dir = Path(UPLOAD_DIR)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{user.id}-{uuid.uuid4().hex}{extension}"
    stored_path = upload_dir / filename
    stored_path.write_bytes(data)

    try:
        profile = get_or_create_profile(user, db)
        previous = profile.profile_photo_url
        profile.profile_photo_url = f"/uploads/{filename}"
        profile.updated_at = datetime.utcnow()
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        stored_path.unlink(missing_ok=True)
        logger.error("Could not save profile photo for user %s: %s", user.id, exc)
        raise HTTPException(status_code=500, detail="Unable to save profile photo") from exc

    if previous and previous.startswith("/uploads/"):
        old_path = upload_dir / Path(previous).name
        if old_path.exists():
            old_path.unlink()
    logger.info("Stored profile photo for user %s (%d bytes)", user.id, len(data))
    return PhotoUploadResponse(photo_url=profile.profile_photo_url)


@app.get("/uploads/{filename}")
def serve_upload(filename: str) -> FileResponse:
    path = Path(UPLOAD_DIR) / Path(filename).name
    if Path(filename).name != filename or not path.is_file():
        raise HTTPException(status_code=404, detail="Not found")
    return FileResponse(path)


@app.get("/assessment/questions", response_model=AssessmentQuestionsResponse)
def assessment_questions() -> AssessmentQuestionsResponse:
    return AssessmentQuestionsResponse(
        phq9=[
            AssessmentQuestion(instrument="phq9", index=index, text=question)
            for index, question in enumerate(PHQ9_QUESTIONS)
        ],
        gad7=[
            AssessmentQuestion(instrument="gad7", index=index, text=question)
            for index, question in enumerate(GAD7_QUESTIONS)
        ],
        options=ANSWER_OPTIONS,
    )


@app.post("/assessment/submit", response_model=AssessmentSubmitResponse)
def submit_assessment(
    payload: AssessmentSubmitRequest,
    user: User = Depends(get_current_user),
) -> AssessmentSubmitResponse:
    try:
        outcome = triage(payload.phq9, payload.gad7)
    except InvalidInput as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    logger.info(
        "Assessment for user %s: phq9=%d gad7=%d level=%s",
        user.id,
        outcome.result.phq9_score,
        outcome.result.gad7_score,
        outcome.risk_level.value,
    )
    is_crisis = outcome.risk_level == RiskLevel.CRISIS
    return AssessmentSubmitResponse(
        phq9_score=outcome.result.phq9_score,
        gad7_score=outcome.result.gad7_score,
        phq9_severity=outcome.phq9_severity,
        gad7_severity=outcome.gad7_severity,
        risk_level=outcome.risk_level,
        next_screen=outcome.destination,
        reasons=outcome.reasons,
        recommended_actions=recommended_actions(outcome.risk_level),
        crisis_guidance=crisis_resources() if is_crisis else [],
    )


@app.post("/chat", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    user: User = Depends(get_current_user),
    relay: ChatRelay = Depends(get_chat_relay),
) -> ChatResponse:
    message = payload.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Message cannot be empty")

    screening = scan_message(message)
    if screening["is_crisis"]:
        logger.warning("Crisis language in chat message from user %s", user.id)
        return ChatResponse(
            reply="It sounds like you are going through something really painful. "
            "You deserve support right now. Please reach out to the National Helpline "
            "at 1800-599-0019 or someone you trust.",
            crisis=True,
            next_screen="crisis",
            resources=crisis_resources(),
        )

    try:
        reply = relay.reply(message)
    except ChatRelayUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    except ChatRelayError as exc:
        raise HTTPException(status_code=502, detail="Something went wrong") from exc
    return ChatResponse(reply=reply, crisis=False)
