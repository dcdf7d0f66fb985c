import os
import asyncio
import base64
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, UploadFile, File, Form, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from diagnosis.schemas import (
    CaseFacts, DiagnosisResult, AIFeedback, FeedbackResult, FeedbackStats,
    DischargeSummaryInput, CourseInHospital, LiteratureResult,
)
from diagnosis.responder import generate_diagnosis_suggestions
from discharge.narrative import generate_course_in_hospital
from extraction.schemas import (
    PatientContext, ExtractedClinicalData, SmartDictationResult, ImageExtractedData,
    VoiceTranscriptionResult,
)
from extraction.voice import extract_clinical_data_from_voice, extract_smart_dictation
from extraction.image import extract_clinical_data_from_image
from extraction.abg import interpret_abg
from transcription.pipeline import transcribe_and_extract_voice, MODES
from transcription.providers import SARVAM_API_KEY
from literature.search import search_medical_literature
from feedback.store import (
    get_engine, ensure_feedback_table, record_feedback, get_feedback_stats,
    get_learning_insights, list_feedback,
)
from inference.errors import InferenceUnavailable, GenerationError, TranscriptionError
from inference.llm import LLM_MODEL, is_configured

# ───────────────── CONFIG
APP_NAME = os.getenv("APP_NAME", "ED Case AI")
DATABASE_URL = os.getenv("DATABASE_URL", "")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MAX_AUDIO_BYTES = int(os.getenv("MAX_AUDIO_BYTES", str(25 * 1024 * 1024)))

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

# ───────────────── APP
app = FastAPI(title=APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_methods=["*"], allow_headers=["*"], allow_credentials=True
)

engine = get_engine(DATABASE_URL)

@app.on_event("startup")
def startup():
    if engine is not None:
        ensure_feedback_table(engine)

@app.get("/healthz")
def healthz():
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}

@app.get("/api/env")
def read_env():
    return {
        "app": APP_NAME,
        "model": LLM_MODEL,
        "ai_available": is_configured(),
        "feedback_available": engine is not None,
        "regional_speech_available": bool(SARVAM_API_KEY),
    }

# ───────────────── Diagnosis suggestions
@app.post("/api/ai/diagnose", response_model=DiagnosisResult)
async def diagnose(facts: CaseFacts):
    return await generate_diagnosis_suggestions(facts)

@app.get("/api/literature/search", response_model=list[LiteratureResult])
async def literature_search(q: str = Query(..., min_length=2), age: int = Query(30, ge=0),
                            history: Optional[str] = Query(None, max_length=200)):
    return await search_medical_literature(q, age, history)

# ───────────────── Feedback
@app.post("/api/ai/feedback", response_model=FeedbackResult)
def post_feedback(fb: AIFeedback):
    res = record_feedback(engine, fb)
    if not res.success:
        status = 503 if res.error_code == "persistence_unavailable" else 500
        raise HTTPException(status, res.error)
    return res

@app.get("/api/ai/feedback", response_model=list)
def get_feedback(limit: int = Query(50, ge=1, le=500)):
    if engine is None:
        raise HTTPException(503, "Database not configured.")
    return list_feedback(engine, limit)

@app.get("/api/ai/feedback/stats", response_model=FeedbackStats)
def feedback_stats():
    return get_feedback_stats(engine)

@app.get("/api/ai/insights")
def insights():
    return {"insights": get_learning_insights(engine)}

# ───────────────── Discharge summary
@app.post("/api/ai/course-in-hospital", response_model=CourseInHospital)
def course_in_hospital(summary: DischargeSummaryInput):
    try:
        return generate_course_in_hospital(summary)
    except InferenceUnavailable:
        raise HTTPException(503, "AI service not available - OpenAI not configured.")
    except GenerationError:
        raise HTTPException(502, "Failed to generate discharge summary content.")

# ───────────────── Extraction
class TranscriptIn(BaseModel):
    transcription: str = Field(min_length=1)
    context: Optional[PatientContext] = None

class ImageIn(BaseModel):
    image_base64: str = Field(min_length=1)
    context: Optional[PatientContext] = None

class AbgIn(BaseModel):
    values: str = Field(min_length=1)
    context: Optional[PatientContext] = None

@app.post("/api/ai/extract-voice", response_model=ExtractedClinicalData)
def extract_voice(body: TranscriptIn):
    return extract_clinical_data_from_voice(body.transcription, body.context)

@app.post("/api/ai/smart-dictation", response_model=SmartDictationResult)
def smart_dictation(body: TranscriptIn):
    return extract_smart_dictation(body.transcription, body.context)

@app.post("/api/ai/extract-image", response_model=ImageExtractedData)
def extract_image(body: ImageIn):
    try:
        base64.b64decode(body.image_base64, validate=True)
    except ValueError:
        raise HTTPException(400, "image_base64 is not valid base64.")
    try:
        return extract_clinical_data_from_image(body.image_base64, body.context)
    except InferenceUnavailable:
        raise HTTPException(503, "AI service not available.")
    except GenerationError:
        raise HTTPException(502, "Failed to extract data from image.")

@app.post("/api/ai/interpret-abg")
def abg(body: AbgIn):
    return {"interpretation": interpret_abg(body.values, body.context)}

@app.post("/api/ai/transcribe", response_model=VoiceTranscriptionResult)
async def transcribe(file: UploadFile = File(...), mode: str = Form("full"),
                     age: Optional[int] = Form(None), sex: Optional[str] = Form(None),
                     chief_complaint: Optional[str] = Form(None)):
    if mode not in MODES:
        raise HTTPException(400, f"mode must be one of {', '.join(MODES)}.")
    audio = await file.read()
    if not audio:
        raise HTTPException(400, "Empty audio upload.")
    if len(audio) > MAX_AUDIO_BYTES:
        raise HTTPException(413, "Audio upload too large.")

    ctx = PatientContext(age=age, sex=sex, chief_complaint=chief_complaint)
    try:
        return await asyncio.to_thread(transcribe_and_extract_voice, audio, file.filename or "audio.m4a", ctx, mode)
    except TranscriptionError as e:
        logger.error("Transcription failed: %s", e)
        raise HTTPException(502, "Failed to transcribe audio.")
