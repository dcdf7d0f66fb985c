import os
import logging
import subprocess
from tempfile import NamedTemporaryFile
from typing import Tuple

logger = logging.getLogger(__name__)

FFMPEG_TIMEOUT = 30

MIME_TYPES = {
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "m4a": "audio/mp4",
    "mp4": "audio/mp4",
    "aac": "audio/aac",
    "ogg": "audio/ogg",
    "webm": "audio/webm",
    "flac": "audio/flac",
    "amr": "audio/amr",
    "wma": "audio/x-ms-wma",
    "opus": "audio/opus",
}

def audio_mime_type(filename: str) -> str:
    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    return MIME_TYPES.get(ext, "audio/mpeg")

def convert_audio_to_wav(audio: bytes, filename: str) -> Tuple[bytes, str]:
    """
    Re-encode to 16 kHz mono 16-bit WAV with ffmpeg.
    Returns the input unchanged when it is already WAV or conversion fails.
    """
    base, ext = os.path.splitext(filename or "audio")
    if ext.lower() == ".wav":
        return audio, filename

    with NamedTemporaryFile(suffix=ext or ".bin", delete=False) as src:
        src.write(audio)
        src_path = src.name
    dst_path = src_path + ".wav"
    try:
        subprocess.run(
            ["ffmpeg", "-y", "-i", src_path, "-ar", "16000", "-ac", "1",
             "-sample_fmt", "s16", "-f", "wav", dst_path],
            check=True, capture_output=True, timeout=FFMPEG_TIMEOUT,
        )
        with open(dst_path, "rb") as f:
            wav = f.read()
        logger.info("Converted %s (%d bytes) -> WAV (%d bytes)", filename, len(audio), len(wav))
        return wav, f"{base}.wav"
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("ffmpeg conversion failed (%s); using original audio", e.__class__.__name__)
        return audio, filename
    finally:
        for p in (src_path, dst_path):
            if os.path.exists(p):
                os.remove(p)
