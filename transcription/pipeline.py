import logging
from typing import Optional, Sequence

from extraction.schemas import PatientContext, VoiceTranscriptionResult
from extraction.voice import extract_clinical_data_from_voice
from transcription.audio import convert_audio_to_wav
from transcription.providers import default_providers, transcribe_with_fallback
from compliance.audit import audit_event

logger = logging.getLogger(__name__)

NO_SPEECH = "No speech detected in the recording."
MODES = ("full", "raw")

def transcribe_and_extract_voice(audio: bytes, filename: str, ctx: Optional[PatientContext] = None,
                                 mode: str = "full", providers: Optional[Sequence] = None,
                                 llm=None) -> VoiceTranscriptionResult:
    """
    mode "raw": transcript only. mode "full": transcript + structured extraction.
    Raises TranscriptionError when no provider produces a transcript.
    """
    wav, wav_name = convert_audio_to_wav(audio, filename)
    transcript = transcribe_with_fallback(
        providers if providers is not None else default_providers(), wav, wav_name
    ).strip()

    audit_event("transcription.completed", {"mode": mode, "chars": len(transcript)})
    if not transcript:
        return VoiceTranscriptionResult(transcript=NO_SPEECH)
    if mode == "full":
        structured = extract_clinical_data_from_voice(transcript, ctx, llm=llm)
        return VoiceTranscriptionResult(transcript=transcript, structured=structured)
    return VoiceTranscriptionResult(transcript=transcript)
