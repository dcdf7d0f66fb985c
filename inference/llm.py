import os
import json
import logging
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Type, TypeVar

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, ValidationError

from inference.errors import InferenceUnavailable, InferenceError, MalformedResponse

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

LLM_API_KEY = os.getenv("AI_INTEGRATIONS_OPENAI_API_KEY", "")
LLM_BASE_URL = os.getenv("AI_INTEGRATIONS_OPENAI_BASE_URL", "").rstrip("/")
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o")
TRANSCRIBE_MODEL = os.getenv("TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))


@dataclass(frozen=True)
class TaskBudget:
    temperature: Optional[float]
    max_tokens: int
    json_mode: bool = True


DIAGNOSIS = TaskBudget(temperature=0.3, max_tokens=4000)
NARRATIVE = TaskBudget(temperature=0.3, max_tokens=1000)
VOICE_EXTRACTION = TaskBudget(temperature=0.2, max_tokens=1500)
SMART_DICTATION = TaskBudget(temperature=0.1, max_tokens=3000)
IMAGE_EXTRACTION = TaskBudget(temperature=0.2, max_tokens=2000)
ABG_INTERPRETATION = TaskBudget(temperature=0.3, max_tokens=500, json_mode=False)


def is_configured() -> bool:
    return bool(LLM_API_KEY and LLM_BASE_URL)


class OpenAICompatibleLLM:
    def __init__(self, base_url: str, api_key: str, model: str, timeout: float = LLM_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self._client = OpenAI(base_url=self.base_url, api_key=api_key, timeout=timeout, max_retries=0)

    def complete_messages(self, messages: List[Dict[str, Any]], budget: TaskBudget) -> str:
        kwargs: Dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": budget.max_tokens,
        }
        if budget.temperature is not None:
            kwargs["temperature"] = budget.temperature
        if budget.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        try:
            resp = self._client.chat.completions.create(**kwargs)
        except OpenAIError as e:
            raise InferenceError(f"LLM call failed: {e.__class__.__name__}") from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content or not content.strip():
            raise InferenceError("Empty response from LLM.")
        return content

    def complete(self, system: str, user: str, budget: TaskBudget) -> str:
        return self.complete_messages(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            budget,
        )

    def transcribe(self, audio: bytes, filename: str, mime_type: str) -> str:
        try:
            resp = self._client.audio.transcriptions.create(
                file=(filename, audio, mime_type),
                model=TRANSCRIBE_MODEL,
                language="en",
                response_format="json",
            )
        except OpenAIError as e:
            raise InferenceError(f"Transcription call failed: {e.__class__.__name__}") from e
        if isinstance(resp, str):
            return resp
        return getattr(resp, "text", "") or ""


def get_llm() -> OpenAICompatibleLLM:
    if not is_configured():
        raise InferenceUnavailable(
            "AI_INTEGRATIONS_OPENAI_API_KEY / AI_INTEGRATIONS_OPENAI_BASE_URL not configured."
        )
    return OpenAICompatibleLLM(LLM_BASE_URL, LLM_API_KEY, LLM_MODEL)


def parse_json_object(raw: str) -> dict:
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise MalformedResponse("Model did not return valid JSON.") from e
    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected a JSON object, got {type(data).__name__}.")
    return data


def parse_model(model: Type[M], raw: str) -> M:
    try:
        return model.model_validate(parse_json_object(raw))
    except ValidationError as e:
        raise MalformedResponse(f"{model.__name__} did not validate ({e.error_count()} errors).") from e
