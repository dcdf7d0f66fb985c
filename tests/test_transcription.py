import json
import unittest
from unittest import mock

from extraction.schemas import PatientContext
from inference.errors import InferenceError, TranscriptionError
from transcription.audio import audio_mime_type, convert_audio_to_wav
from transcription.pipeline import transcribe_and_extract_voice, NO_SPEECH
from transcription.providers import SarvamProvider, transcribe_with_fallback


class FakeProvider:
    def __init__(self, name, text="", error=None, available=True):
        self.name = name
        self.text = text
        self.error = error
        self._available = available
        self.calls = 0

    def available(self):
        return self._available

    def transcribe(self, audio, filename):
        self.calls += 1
        if self.error:
            raise self.error
        return self.text


class FakeLLM:
    def __init__(self, reply):
        self.reply = reply

    def complete(self, system, user, budget):
        return self.reply


class TestFallbackChain(unittest.TestCase):
    def test_first_success_wins(self):
        a = FakeProvider("sarvam", error=InferenceError("down"))
        b = FakeProvider("whisper", text="chest pain since morning")
        c = FakeProvider("spare", text="unused")
        self.assertEqual(transcribe_with_fallback([a, b, c], b"x", "a.wav"), "chest pain since morning")
        self.assertEqual((a.calls, b.calls, c.calls), (1, 1, 0))

    def test_unavailable_providers_are_skipped(self):
        a = FakeProvider("sarvam", available=False)
        b = FakeProvider("whisper", text="ok")
        self.assertEqual(transcribe_with_fallback([a, b], b"x", "a.wav"), "ok")
        self.assertEqual(a.calls, 0)

    def test_all_fail(self):
        with self.assertRaises(TranscriptionError) as ctx:
            transcribe_with_fallback(
                [FakeProvider("sarvam", error=InferenceError("a")), FakeProvider("whisper", error=InferenceError("b"))],
                b"x", "a.wav",
            )
        self.assertIn("sarvam, whisper", str(ctx.exception))

    def test_none_configured(self):
        with self.assertRaises(TranscriptionError) as ctx:
            transcribe_with_fallback([FakeProvider("sarvam", available=False)], b"x", "a.wav")
        self.assertEqual(str(ctx.exception), "No transcription service configured.")

    def test_sarvam_non_object_reply_falls_back(self):
        resp = mock.Mock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = ["x"]
        whisper = FakeProvider("whisper", text="fallback text")
        with mock.patch("transcription.providers.requests.post", return_value=resp):
            text = transcribe_with_fallback([SarvamProvider(api_key="k"), whisper], b"x", "a.wav")
        self.assertEqual(text, "fallback text")
        self.assertEqual(whisper.calls, 1)

    def test_sarvam_transcript(self):
        resp = mock.Mock()
        resp.raise_for_status.return_value = None
        resp.json.return_value = {"transcript": "fever since two days", "language_code": "hi-IN"}
        with mock.patch("transcription.providers.requests.post", return_value=resp) as post:
            self.assertEqual(SarvamProvider(api_key="k").transcribe(b"x", "a.wav"), "fever since two days")
        self.assertEqual(post.call_args.kwargs["headers"], {"api-subscription-key": "k"})

    def test_sarvam_without_key(self):
        self.assertFalse(SarvamProvider(api_key="").available())
        self.assertTrue(SarvamProvider(api_key="k").available())


class TestPipeline(unittest.TestCase):
    def test_no_speech(self):
        out = transcribe_and_extract_voice(b"x", "a.wav", providers=[FakeProvider("whisper", text="  ")])
        self.assertEqual(out.transcript, NO_SPEECH)
        self.assertIsNone(out.structured)

    def test_raw_mode_skips_extraction(self):
        out = transcribe_and_extract_voice(b"x", "a.wav", mode="raw",
                                           providers=[FakeProvider("whisper", text="fever 3 days")])
        self.assertEqual(out.transcript, "fever 3 days")
        self.assertIsNone(out.structured)

    def test_full_mode_extracts(self):
        llm = FakeLLM(json.dumps({"chiefComplaint": "fever", "symptoms": "fever",
                                  "painDetails": {"location": ""}}))
        out = transcribe_and_extract_voice(b"x", "a.wav", PatientContext(age=5), mode="full",
                                           providers=[FakeProvider("whisper", text="fever 3 days")], llm=llm)
        self.assertEqual(out.structured.chief_complaint, "fever")
        self.assertEqual(out.structured.symptoms, ["fever"])
        self.assertIsNone(out.structured.pain_details.location)
        self.assertEqual(out.structured.raw_transcription, "fever 3 days")

    def test_full_mode_degrades_to_transcript(self):
        out = transcribe_and_extract_voice(b"x", "a.wav", providers=[FakeProvider("whisper", text="cough")],
                                           llm=FakeLLM("not json"))
        self.assertEqual(out.transcript, "cough")
        self.assertIsNone(out.structured.chief_complaint)
        self.assertEqual(out.structured.raw_transcription, "cough")


class TestAudio(unittest.TestCase):
    def test_mime_types(self):
        self.assertEqual(audio_mime_type("note.M4A"), "audio/mp4")
        self.assertEqual(audio_mime_type("note"), "audio/mpeg")

    def test_wav_passes_through(self):
        self.assertEqual(convert_audio_to_wav(b"RIFF", "a.wav"), (b"RIFF", "a.wav"))

    def test_missing_ffmpeg_returns_original(self):
        with mock.patch("transcription.audio.subprocess.run", side_effect=FileNotFoundError("ffmpeg")):
            self.assertEqual(convert_audio_to_wav(b"data", "a.webm"), (b"data", "a.webm"))


if __name__ == "__main__":
    unittest.main()
