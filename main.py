#backend/main.py
import logging
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, Depends, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import Settings, configure_logging, settings as default_settings
from db import make_engine, make_session_factory
from errors import ApiError, ConflictError, NotFoundError, storage_errors
from schemas import (
    AchievementOut,
    AchievementProgressUpdate,
    CourseProgressOut,
    CourseProgressUpdate,
    DailyActivityOut,
    DashboardOut,
    PracticeQuestionOut,
    QuizAttemptCreate,
    QuizAttemptOut,
    UserCreate,
    UserOut,
    UserUpdate,
)
from storage import Storage

logger = logging.getLogger(__name__)


# --------- DB Dependency ---------
def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_storage(db: Session = Depends(get_db)) -> Storage:
    return Storage(db)


# --------- Routes ---------
def register_routes(app: FastAPI):

    @app.get("/health")
    def health():
        return {"status": "ok"}

    # --------- Users ---------
    @app.get("/api/users/{user_id}", response_model=UserOut)
    def get_user(user_id: int, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch user"):
            user = storage.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return UserOut.model_validate(user)

    @app.post("/api/users", response_model=UserOut, status_code=201)
    def create_user(data: UserCreate, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to create user"):
            if storage.get_user_by_username(data.username) is not None:
                raise ConflictError("Username already taken")
            try:
                user = storage.create_user(data.username)
            except IntegrityError as exc:
                # Lost a race with a concurrent registration of the same name.
                raise ConflictError("Username already taken") from exc
        return UserOut.model_validate(user)

    @app.patch("/api/users/{user_id}", response_model=UserOut)
    def update_user(user_id: int, data: UserUpdate, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to update user"):
            user = storage.update_user(user_id, **data.model_dump(exclude_unset=True, exclude_none=True))
        return UserOut.model_validate(user)

    # --------- Dashboard ---------
    @app.get("/api/dashboard/{user_id}", response_model=DashboardOut)
    def get_dashboard(user_id: int, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch dashboard data"):
            dashboard = storage.get_dashboard_data(user_id)
        return DashboardOut.model_validate(dashboard)

    # --------- Course progress ---------
    @app.get("/api/progress/{user_id}", response_model=List[CourseProgressOut])
    def get_progress(user_id: int, topic_id: Optional[str] = Query(None, alias="topicId"),
                     storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch progress"):
            progress = storage.get_course_progress(user_id, topic_id)
        return [CourseProgressOut.model_validate(p) for p in progress]

    @app.put("/api/progress/{user_id}/{topic_id}", response_model=CourseProgressOut)
    def update_progress(user_id: int, topic_id: str, data: CourseProgressUpdate,
                        storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to update progress"):
            fields = data.model_dump(exclude_unset=True, exclude_none=True)
            progress = storage.update_course_progress(user_id, topic_id, **fields)
        return CourseProgressOut.model_validate(progress)

    # --------- Quiz attempts ---------
    @app.post("/api/quiz-attempts", response_model=QuizAttemptOut, status_code=201)
    def save_quiz_attempt(data: QuizAttemptCreate, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to save quiz attempt"):
            attempt = storage.save_quiz_attempt(**data.model_dump())
        return QuizAttemptOut.model_validate(attempt)

    @app.get("/api/quiz-attempts/{user_id}", response_model=List[QuizAttemptOut])
    def get_quiz_attempts(user_id: int, topic_id: Optional[str] = Query(None, alias="topicId"),
                          storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch quiz attempts"):
            attempts = storage.get_quiz_attempts(user_id, topic_id)
        return [QuizAttemptOut.model_validate(a) for a in attempts]

    # --------- Achievements ---------
    @app.get("/api/achievements/{user_id}", response_model=List[AchievementOut])
    def get_achievements(user_id: int, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch achievements"):
            achievements = storage.get_user_achievements(user_id)
        return [AchievementOut.model_validate(a) for a in achievements]

    @app.put("/api/achievements/{user_id}/{achievement_type}/progress", response_model=AchievementOut)
    def update_achievement(user_id: int, achievement_type: str, data: AchievementProgressUpdate,
                           storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to update achievement"):
            achievement = storage.update_achievement(user_id, achievement_type, data.progress)
        return AchievementOut.model_validate(achievement)

    @app.put("/api/achievements/{user_id}/{achievement_type}/unlock", response_model=AchievementOut)
    def unlock_achievement(user_id: int, achievement_type: str, storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to unlock achievement"):
            achievement = storage.unlock_achievement(user_id, achievement_type)
        return AchievementOut.model_validate(achievement)

    # --------- Practice questions ---------
    @app.get("/api/practice-questions/{topic_id}", response_model=List[PracticeQuestionOut])
    def get_practice_questions(topic_id: str, difficulty: Optional[int] = None,
                               storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch practice questions"):
            questions = storage.get_practice_questions(topic_id, difficulty)
        return [PracticeQuestionOut.model_validate(q) for q in questions]

    # --------- Daily activity ---------
    @app.get("/api/activity/{user_id}", response_model=List[DailyActivityOut])
    def get_activity(user_id: int, days: int = Query(7, ge=1), storage: Storage = Depends(get_storage)):
        with storage_errors("Failed to fetch daily activity"):
            activity = storage.get_daily_activity(user_id, days)
        return [DailyActivityOut.model_validate(a) for a in activity]


# --------- Error Handlers ---------
def register_error_handlers(app: FastAPI):

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": "Internal server error"})


# --------- App Setup ---------
def create_app(settings: Settings = default_settings, engine=None) -> FastAPI:
    configure_logging(settings.log_level)

    app = FastAPI(title="Quiz Progress API")
    if engine is None:
        engine = make_engine(settings.database_url, echo=settings.db_echo, pool_size=settings.db_pool_size)
    app.state.engine = engine
    app.state.session_factory = make_session_factory(engine)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("main:app", host=default_settings.host, port=default_settings.port)
