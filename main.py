from fastapi import FastAPI, File, UploadFile, Form, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from datetime import datetime, timezone
from PIL import Image, UnidentifiedImageError
import io
import os
import logging

import database, db_models, schemas, crud, auth
from ai_client import GeminiClient, AINotConfigured
from analysis import (
    ANALYSIS_PROMPT,
    CHAT_FALLBACK,
    build_chat_prompt,
    default_answer,
    parse_analysis,
    question_prompt,
)
from config import settings
from logging_config import setup_logging
from retry import RetryPolicy, AIServiceUnavailable, AITimeout
from scan_history import ScanHistory

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger("greenlens")

AI_BUSY_MESSAGE = "The AI service is busy right now. Please try again in a moment."
AI_UNAVAILABLE = (AIServiceUnavailable, AITimeout, AINotConfigured)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "static")


# ------------------- Initialisation -------------------
db_models.Base.metadata.create_all(bind=database.engine)
app = FastAPI(title="GreenLens API")
get_db = database.get_db

app.state.scan_history = ScanHistory(settings.SCAN_HISTORY_SIZE)
app.state.ai_client = GeminiClient(
    settings.GEMINI_API_KEY,
    model_name=settings.GEMINI_MODEL,
    policy=RetryPolicy(
        max_attempts=settings.AI_MAX_ATTEMPTS,
        delay=settings.AI_RETRY_DELAY,
        timeout=settings.AI_TIMEOUT,
    ),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_scan_history(request: Request) -> ScanHistory:
    return request.app.state.scan_history


def get_ai_client(request: Request) -> GeminiClient:
    return request.app.state.ai_client


def error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=status_code)


# ------------------- Error mapping -------------------
@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return error("Invalid request", 400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error(str(exc.detail), exc.status_code)


# ------------------- Analyse -------------------
@app.post("/api/analyze")
async def analyze(
    file: Optional[UploadFile] = File(None),
    userQuestion: Optional[str] = Form(None),
    ai: GeminiClient = Depends(get_ai_client),
    history: ScanHistory = Depends(get_scan_history),
):
    if file is None or not file.filename:
        return error("No file uploaded", 400)

    contents = await file.read()
    try:
        image = Image.open(io.BytesIO(contents))
        image.load()
    except (UnidentifiedImageError, OSError):
        return error("Invalid image file", 400)

    try:
        reply = await ai.generate([image, ANALYSIS_PROMPT])
        analysis = parse_analysis(reply)
        analysis["filename"] = file.filename
        analysis["timestamp"] = datetime.now(timezone.utc).isoformat()
        history.push(analysis)
        logger.info("Analysed %s (score=%s)", file.filename, analysis.get("greenScore"))

        if userQuestion and userQuestion.strip():
            answer = await ai.generate(question_prompt(analysis, userQuestion)) or CHAT_FALLBACK
        else:
            answer = default_answer(analysis)

        return {"analysis": analysis, "answer": answer}
    except AI_UNAVAILABLE as e:
        logger.warning("AI unavailable while analysing %s: %s", file.filename, e)
        return error(AI_BUSY_MESSAGE, 503)
    except Exception:
        logger.exception("Error analysing image %s", file.filename)
        return error("Something went wrong while analysing the image.", 500)


# ------------------- Chat -------------------
@app.post("/api/chat")
async def chat(
    body: schemas.ChatRequest,
    ai: GeminiClient = Depends(get_ai_client),
    history: ScanHistory = Depends(get_scan_history),
):
    if not body.userMessage or not body.userMessage.strip():
        return error("userMessage is required", 400)
    if not history:
        return error("No scan available yet. Analyze a product first.", 400)

    try:
        prompt = build_chat_prompt(history.items(), body.userMessage)
        reply = await ai.generate(prompt)
        return {"reply": reply or CHAT_FALLBACK}
    except AI_UNAVAILABLE as e:
        logger.warning("AI unavailable during chat: %s", e)
        return error(AI_BUSY_MESSAGE, 503)
    except Exception:
        logger.exception("Error answering chat message")
        return error("Something went wrong while generating a reply.", 500)


# ------------------- Users -------------------
@app.post("/api/register", status_code=201)
def register(user: schemas.UserCreate, db: Session = Depends(get_db)):
    if not all(v and v.strip() for v in (user.username, user.email, user.password)):
        return error("username, email and password are required", 400)
    if auth.password_too_long(user.password):
        return error(f"password must be at most {auth.MAX_PASSWORD_BYTES} bytes", 400)
    try:
        db_user = crud.create_user(db, user)
    except IntegrityError as e:
        # duplicate username/email
        return error(str(e.orig), 400)
    except SQLAlchemyError:
        logger.exception("Error registering user %s", user.username)
        return error("Could not create the account.", 500)
    logger.info("Registered user %s (id=%s)", db_user.username, db_user.id)
    return {"user": schemas.UserOut.model_validate(db_user)}


# ------------------- Login simple -------------------
@app.post("/api/login")
def login(credentials: schemas.LoginRequest, db: Session = Depends(get_db)):
    if not credentials.identifier or not credentials.password:
        return error("identifier and password are required", 400)
    try:
        user = crud.authenticate_user(db, credentials.identifier, credentials.password)
        if not user:
            return error("Invalid credentials", 401)
        user = crud.touch_last_login(db, user)
    except SQLAlchemyError:
        logger.exception("Error during login")
        return error("Could not log in.", 500)
    return {"user": schemas.UserOut.model_validate(user)}


@app.post("/api/logout")
def logout(body: schemas.LogoutRequest, db: Session = Depends(get_db)):
    if body.id is None:
        return error("id is required", 400)
    try:
        user = crud.touch_last_logout(db, body.id)
    except SQLAlchemyError:
        logger.exception("Error during logout of user %s", body.id)
        return error("Could not log out.", 500)
    if not user:
        return error("User not found", 404)
    return {"ok": True}


# ------------------- Get User by ID -------------------
@app.get("/api/users/{user_id}")
def get_user(user_id: str, db: Session = Depends(get_db)):
    # ids are positive 64-bit integers
    if not (user_id.isascii() and user_id.isdigit()) or len(user_id) > 18:
        return error("User not found", 404)
    try:
        user = crud.get_user_by_id(db, int(user_id))
    except SQLAlchemyError:
        logger.exception("Error fetching user %s", user_id)
        return error("Could not fetch the user.", 500)
    if not user:
        return error("User not found", 404)
    return {"user": schemas.UserOut.model_validate(user)}


@app.get("/", response_class=PlainTextResponse)
def read_root():
    return "GreenLens API is running"

@app.get("/health")
def health_check():
    return {"status": "healthy"}


# Frontend (Home, Scanner, Login, Register)
app.mount("/app", StaticFiles(directory=STATIC_DIR, html=True), name="frontend")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.PORT)
