# scriptstudio/main.py

import asyncio
import logging
import shutil
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import aiofiles
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy import delete, desc, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import from our other files
from scriptstudio.audio_processor import extract_audio
from scriptstudio.auth import get_current_user
from scriptstudio.backboard_client import BackboardClient, BackboardError, index_profile, store_prompt_memory
from scriptstudio.chatbot import converse
from scriptstudio.config import get_settings
from scriptstudio.database import engine, get_session
from scriptstudio.llm import TextGenerator, build_text_generator
from scriptstudio.models import AuthUser, BackboardProfile, Base, VideoScript
from scriptstudio.repurpose import RepurposeError, repurpose_script, select_strategy
from scriptstudio.schemas import (
    BackboardProfileOut,
    ChatInitRequest,
    ChatInitResponse,
    ChatMessageRequest,
    ChatMessageResponse,
    ProfileAnswers,
    ProfileEnvelope,
    ProfileSaveRequest,
    PromptRequest,
    PromptResponse,
    VideoScriptCreate,
    VideoScriptOut,
    VideoScriptUpdate,
)
from scriptstudio.tasks import run_detached
from scriptstudio.transcription import Transcriber, TranscriptionError, build_transcriber
from scriptstudio.utils import get_selection_edit_prompt

# --- Setup ---
logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

UPLOAD_READ_SIZE = 1024 * 1024
TRANSCRIPTION_FAILED = "Video uploaded but transcription failed. You can edit the script manually."


# --- Lifespan and App Initialization ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings.temp_dir.mkdir(parents=True, exist_ok=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("✅ Server startup complete.")
    yield
    logger.info("--- Server shutting down ---")
    backboard = getattr(app.state, "backboard", None)
    if backboard is not None:
        await backboard.aclose()
    if settings.temp_dir.exists():
        shutil.rmtree(settings.temp_dir)
    await engine.dispose()


app = FastAPI(title="scriptstudio", lifespan=lifespan)

# Configure CORS for production
FRONTEND_URL = get_settings().frontend_url
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL] if FRONTEND_URL != "*" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error responses ---
def validation_message(errors) -> str:
    if not errors:
        return "Invalid request"
    error = errors[0]
    location = [str(part) for part in error.get("loc", ()) if part != "body"]
    if error.get("type") == "missing" and location:
        return f"{location[-1]} is required"
    message = error.get("msg", "Invalid request")
    return message.replace("Value error, ", "", 1)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": validation_message(exc.errors())})


# --- Upstream clients (built on first use, only when configured) ---
def get_backboard(request: Request) -> Optional[BackboardClient]:
    state = request.app.state
    if getattr(state, "backboard", None) is None:
        settings = get_settings()
        if not settings.backboard_configured:
            return None
        state.backboard = BackboardClient(
            settings.backboard_api_key,
            base_url=settings.backboard_api_url,
            llm_provider=settings.backboard_llm_provider,
            model_name=settings.backboard_model_name,
        )
    return state.backboard


def get_text_generator(request: Request) -> Optional[TextGenerator]:
    state = request.app.state
    if getattr(state, "text_generator", None) is None:
        state.text_generator = build_text_generator(get_settings())
    return state.text_generator


def get_transcriber(request: Request) -> Optional[Transcriber]:
    state = request.app.state
    if getattr(state, "transcriber", None) is None:
        state.transcriber = build_transcriber(get_settings())
    return state.transcriber


def require_backboard(backboard: Optional[BackboardClient]) -> BackboardClient:
    if backboard is None:
        raise HTTPException(status_code=500, detail="BACKBOARD_API_KEY is not configured")
    return backboard


# --- Helpers ---
async def load_owned_script(session: AsyncSession, script_id: str, user_id: str) -> VideoScript:
    result = await session.execute(
        select(VideoScript).where(VideoScript.id == script_id, VideoScript.user_id == user_id)
    )
    script = result.scalar_one_or_none()
    if not script:
        raise HTTPException(status_code=404, detail="Video script not found")
    return script


async def load_profile(session: AsyncSession, user_id: str) -> Optional[BackboardProfile]:
    result = await session.execute(select(BackboardProfile).where(BackboardProfile.user_id == user_id))
    return result.scalar_one_or_none()


def script_json(script: VideoScript) -> dict:
    return VideoScriptOut.model_validate(script).model_dump(mode="json", by_alias=True)


async def transcribe_upload(upload: UploadFile, mime_type: str, transcriber: Transcriber) -> str:
    """Spool the upload to disk, shrink video to its audio track, and transcribe it."""
    temp_dir = get_settings().temp_dir
    temp_dir.mkdir(parents=True, exist_ok=True)
    upload_path = temp_dir / f"{uuid.uuid4()}{Path(upload.filename or '').suffix}"
    files_to_clean_up = [upload_path]

    try:
        async with aiofiles.open(upload_path, "wb") as out:
            while True:
                chunk = await upload.read(UPLOAD_READ_SIZE)
                if not chunk:
                    break
                await out.write(chunk)

        media_path, media_type = upload_path, mime_type
        if mime_type.startswith("video/"):
            loop = asyncio.get_running_loop()
            media_path = await loop.run_in_executor(None, extract_audio, upload_path, temp_dir)
            if media_path != upload_path:
                files_to_clean_up.append(media_path)
                media_type = "audio/ogg"

        return await transcriber.transcribe(media_path, media_type)
    finally:
        for path in files_to_clean_up:
            try:
                if path.exists():
                    path.unlink()
            except OSError as e:
                logger.warning("Could not delete file %s: %s", path, e)


async def repurpose_or_none(
    session: AsyncSession,
    user_id: str,
    transcript: str,
    generator: Optional[TextGenerator],
    backboard: Optional[BackboardClient],
) -> Optional[str]:
    profile = await load_profile(session, user_id)
    strategy = select_strategy(profile, generator, backboard)
    if strategy is None:
        return None
    try:
        return await repurpose_script(transcript, strategy)
    except RepurposeError as e:
        logger.error("Error generating repurposed script: %s", e)
        return None


# --- Video script endpoints ---
@app.get("/api/videos", response_model=list[VideoScriptOut])
async def list_video_scripts(
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    query = select(VideoScript).where(VideoScript.user_id == user.id).order_by(desc(VideoScript.created_at))
    result = await session.execute(query)
    return result.scalars().all()


@app.post("/api/videos", status_code=201)
async def create_video_script(
    request: Request,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    transcriber: Optional[Transcriber] = Depends(get_transcriber),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    """Create a script from an uploaded video/audio file (multipart) or from JSON."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if isinstance(upload, UploadFile):
            name = form.get("name")
            return await create_from_upload(
                upload, name if isinstance(name, str) else None, user, session, transcriber, generator, backboard
            )

    if "application/json" in content_type:
        try:
            body = await request.json()
            data = VideoScriptCreate.model_validate(body)
        except ValueError as e:
            errors = e.errors() if isinstance(e, ValidationError) else []
            raise HTTPException(status_code=400, detail=validation_message(errors) if errors else "Invalid JSON body")

        new_script = VideoScript(name=data.name, script=data.script or None, user_id=user.id)
        session.add(new_script)
        await session.commit()
        await session.refresh(new_script)
        return JSONResponse(status_code=201, content=script_json(new_script))

    raise HTTPException(status_code=400, detail="No file or name provided")


async def create_from_upload(upload, name, user, session, transcriber, generator, backboard):
    mime_type = upload.content_type or ""
    if not (mime_type.startswith("video/") or mime_type.startswith("audio/")):
        raise HTTPException(status_code=400, detail="File must be a video or audio file")
    if transcriber is None:
        raise HTTPException(status_code=500, detail="Transcription service is not configured")

    script_name = (name or "").strip() or Path(upload.filename or "Untitled").stem or "Untitled"

    # Create the row first so the upload survives a failed transcription
    new_script = VideoScript(name=script_name, script=None, user_id=user.id)
    session.add(new_script)
    await session.commit()
    await session.refresh(new_script)

    try:
        transcript = await transcribe_upload(upload, mime_type, transcriber)
    except (TranscriptionError, OSError) as e:
        logger.error("❌ Error transcribing video %s: %s", new_script.id, e)
        payload = script_json(new_script)
        payload["error"] = TRANSCRIPTION_FAILED
        return JSONResponse(status_code=201, content=payload)

    repurposed = await repurpose_or_none(session, user.id, transcript, generator, backboard)

    new_script.script = transcript
    new_script.repurposed_script = repurposed
    await session.commit()
    await session.refresh(new_script)
    logger.info("Video script %s transcribed (repurposed: %s)", new_script.id, repurposed is not None)
    return JSONResponse(status_code=201, content=script_json(new_script))


@app.post("/api/videos/prompt", response_model=PromptResponse)
async def edit_selection(
    payload: PromptRequest,
    background_tasks: BackgroundTasks,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    """Rewrite a selected passage with the user's indexed voice profile."""
    script = await session.get(VideoScript, payload.script_id)
    if script is None:
        raise HTTPException(status_code=404, detail="Script not found")
    if script.user_id != user.id:
        raise HTTPException(status_code=403, detail="Forbidden")

    profile = await load_profile(session, user.id)
    if profile is None or not profile.assistant_id:
        raise HTTPException(status_code=400, detail="Backboard profile not found or not indexed")
    backboard = require_backboard(backboard)

    try:
        thread_id = await backboard.create_thread(profile.assistant_id)
        updated_text = await backboard.send_message(
            thread_id, get_selection_edit_prompt(payload.selected_text, payload.prompt), memory="readonly"
        )
    except BackboardError as e:
        logger.error("Error processing prompt for script %s: %s", script.id, e)
        raise HTTPException(status_code=500, detail="Failed to process prompt")

    background_tasks.add_task(
        run_detached,
        "store prompt memory",
        store_prompt_memory,
        backboard,
        profile.assistant_id,
        payload.prompt,
        payload.selected_text,
    )
    return PromptResponse(updated_text=updated_text)


@app.patch("/api/videos/{script_id}", response_model=VideoScriptOut)
async def update_video_script(
    script_id: str,
    payload: VideoScriptUpdate,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    script = await load_owned_script(session, script_id, user.id)

    fields = payload.model_fields_set
    if "name" in fields:
        script.name = payload.name
    if "script" in fields:
        script.script = payload.script or None
    if "repurposed_script" in fields:
        script.repurposed_script = payload.repurposed_script or None

    await session.commit()
    await session.refresh(script)
    return script


@app.delete("/api/videos/{script_id}")
async def delete_video_script(
    script_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    result = await session.execute(
        delete(VideoScript).where(VideoScript.id == script_id, VideoScript.user_id == user.id)
    )
    await session.commit()
    if result.rowcount == 0:
        raise HTTPException(status_code=404, detail="Video script not found")
    return {"success": True}


@app.post("/api/videos/{script_id}/repurpose", response_model=VideoScriptOut)
async def rerun_repurposing(
    script_id: str,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    generator: Optional[TextGenerator] = Depends(get_text_generator),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    """Repurpose an existing transcript again, e.g. after the profile was re-indexed."""
    script = await load_owned_script(session, script_id, user.id)
    if not script.script or not script.script.strip():
        raise HTTPException(status_code=400, detail="Script has no transcript to repurpose")

    strategy = select_strategy(await load_profile(session, user.id), generator, backboard)
    if strategy is None:
        raise HTTPException(status_code=400, detail="No voice profile available for repurposing")

    try:
        script.repurposed_script = await repurpose_script(script.script, strategy)
    except RepurposeError as e:
        logger.error("Error repurposing script %s: %s", script.id, e)
        raise HTTPException(status_code=500, detail="Failed to repurpose script")

    await session.commit()
    await session.refresh(script)
    return script


# --- Voice profile endpoints ---
@app.get("/api/backboard", response_model=ProfileEnvelope)
async def get_profile(
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
):
    profile = await load_profile(session, user.id)
    return ProfileEnvelope(profile=BackboardProfileOut.model_validate(profile) if profile else None)


@app.post("/api/backboard", response_model=ProfileEnvelope)
async def save_profile(
    payload: ProfileSaveRequest,
    response: Response,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    """Upsert the onboarding answers and re-index them as assistant memories."""
    answers = ProfileAnswers.parse(payload.answers).to_json()

    profile = await load_profile(session, user.id)
    if profile is None:
        profile = BackboardProfile(user_id=user.id, answers=answers)
        session.add(profile)
        response.status_code = 201
    else:
        profile.answers = answers
    await session.commit()
    await session.refresh(profile)

    if backboard is not None:
        try:
            assistant_id = profile.assistant_id or await backboard.get_or_create_assistant(user.id)
            memory_ids = await index_profile(backboard, assistant_id, answers, profile.memory_ids)
        except BackboardError as e:
            logger.error("❌ Error indexing profile for user %s: %s", user.id, e)
        else:
            profile.assistant_id = assistant_id
            profile.memory_ids = memory_ids
            await session.commit()
            await session.refresh(profile)

    return ProfileEnvelope(profile=BackboardProfileOut.model_validate(profile))


# --- ScriptBot endpoints ---
@app.post("/api/chatbot/init", response_model=ChatInitResponse)
async def init_chatbot(
    payload: ChatInitRequest,
    user: AuthUser = Depends(get_current_user),
    session: AsyncSession = Depends(get_session),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    await load_owned_script(session, payload.script_id, user.id)
    backboard = require_backboard(backboard)

    profile = await load_profile(session, user.id)
    try:
        if profile is not None and profile.assistant_id:
            assistant_id = profile.assistant_id
        else:
            assistant_id = await backboard.get_or_create_assistant(user.id)
        # A fresh thread per editing session; the client keeps the id
        thread_id = await backboard.create_thread(assistant_id)
    except BackboardError as e:
        logger.error("Error initializing chatbot for user %s: %s", user.id, e)
        raise HTTPException(status_code=500, detail="Failed to initialize chatbot")

    return ChatInitResponse(thread_id=thread_id, assistant_id=assistant_id)


@app.post("/api/chatbot/message", response_model=ChatMessageResponse)
async def chatbot_message(
    payload: ChatMessageRequest,
    user: AuthUser = Depends(get_current_user),
    backboard: Optional[BackboardClient] = Depends(get_backboard),
):
    backboard = require_backboard(backboard)
    try:
        result = await converse(backboard, payload.thread_id, payload.message, payload.script_content)
    except BackboardError as e:
        logger.error("Error sending chatbot message on thread %s: %s", payload.thread_id, e)
        raise HTTPException(status_code=500, detail="Failed to send message")

    return ChatMessageResponse(response=result.reply, suggested_changes=result.suggested_edit)


@app.get("/")
def read_root():
    settings = get_settings()
    return {
        "status": "Server is running",
        "llm_provider": settings.resolved_llm_provider() or "Disabled",
        "backboard": "Enabled" if settings.backboard_configured else "Disabled",
    }


# Health check endpoint for Render
@app.get("/health")
def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
