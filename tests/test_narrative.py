import json
import unittest
from unittest import mock

from diagnosis.schemas import DischargeSummaryInput
from discharge.narrative import (
    build_narrative_prompt, format_investigations, format_medications, generate_course_in_hospital,
)
from inference.errors import GenerationError, InferenceError, InferenceUnavailable


class FakeLLM:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.prompts = []

    def complete(self, system, user, budget):
        self.prompts.append(user)
        if self.error:
            raise self.error
        return self.reply


SUMMARY = DischargeSummaryInput.model_validate({
    "patient": {"name": "A", "age": 42, "gender": "female"},
    "chief_complaint": "abdominal pain",
    "medications": [{"name": "Inj. Pantoprazole", "dose": "40 mg", "route": "IV"}, {"name": ""}],
    "investigations": [{"test": "Lipase", "value": "900"}, {"name": "USG"}],
    "vitals": {"hr": "96", "bp": "", "spo2": "98"},
    "examination": {"abdomen": "epigastric tenderness"},
})


class TestNarrativePrompt(unittest.TestCase):
    def test_structured_medications_and_investigations(self):
        self.assertEqual(format_medications(SUMMARY.medications), "Inj. Pantoprazole 40 mg IV")
        self.assertEqual(format_investigations(SUMMARY.investigations), "Lipase: 900, USG: pending")
        self.assertEqual(format_medications("  Tab. PCM  "), "Tab. PCM")
        self.assertEqual(format_medications(None), "")

    def test_prompt_fills_placeholders(self):
        p = build_narrative_prompt(SUMMARY)
        self.assertIn("Patient: 42 year old female", p)
        self.assertIn("Vitals at Arrival: HR: 96, SPO2: 98", p)
        self.assertIn("Examination: abdomen: epigastric tenderness", p)
        self.assertIn("Allergies: NKDA", p)
        self.assertIn("Working Diagnosis: To be determined", p)

        bare = build_narrative_prompt(DischargeSummaryInput())
        self.assertIn("Patient: Patient", bare)
        self.assertIn("Medications Administered: None documented", bare)


class TestGenerateCourseInHospital(unittest.TestCase):
    def test_success(self):
        llm = FakeLLM(json.dumps({"course_in_hospital": " Patient improved. ", "diagnosis": "Pancreatitis"}))
        out = generate_course_in_hospital(SUMMARY, llm=llm)
        self.assertEqual(out.course_in_hospital, "Patient improved.")
        self.assertEqual(out.diagnosis, "Pancreatitis")

    def test_unconfigured_provider_raises(self):
        with mock.patch("inference.llm.LLM_API_KEY", ""):
            with self.assertRaises(InferenceUnavailable):
                generate_course_in_hospital(SUMMARY)

    def test_provider_error_becomes_generation_error(self):
        with self.assertRaises(GenerationError):
            generate_course_in_hospital(SUMMARY, llm=FakeLLM(error=InferenceError("timeout")))

    def test_empty_narrative_is_never_returned(self):
        for reply in ('{"course_in_hospital": ""}', '{"diagnosis": "x"}', "nope"):
            with self.assertRaises(GenerationError):
                generate_course_in_hospital(SUMMARY, llm=FakeLLM(reply))


if __name__ == "__main__":
    unittest.main()
