import logging
from typing import Dict, List, Optional, Union

from diagnosis.schemas import (
    DischargeSummaryInput, CourseInHospital, MedicationEntry, InvestigationEntry,
)
from inference.errors import GenerationError
from inference.llm import OpenAICompatibleLLM, NARRATIVE, get_llm, parse_json_object
from inference.policy import FailurePolicy, guarded
from compliance.audit import audit_event

logger = logging.getLogger(__name__)

NARRATIVE_SYSTEM = ("You are an experienced emergency medicine physician assistant "
                    "helping with discharge documentation.")

def _clean(value: Optional[str]) -> str:
    return (value or "").strip()

def format_medications(meds: Optional[Union[str, List[MedicationEntry]]]) -> str:
    if isinstance(meds, str):
        return meds.strip()
    if not meds:
        return ""
    items = []
    for m in meds:
        line = " ".join(p for p in (_clean(m.name), _clean(m.dose), _clean(m.route), _clean(m.frequency)) if p)
        if line:
            items.append(line)
    return ", ".join(items)

def format_investigations(invs: Optional[Union[str, List[InvestigationEntry]]]) -> str:
    if isinstance(invs, str):
        return invs.strip()
    if not invs:
        return ""
    items = []
    for i in invs:
        name = _clean(i.name) or _clean(i.test)
        if not name:
            continue
        items.append(f"{name}: {_clean(i.result) or _clean(i.value) or 'pending'}")
    return ", ".join(items)

def format_pairs(data: Optional[Dict[str, Optional[str]]], sep: str, upper_keys: bool = False) -> str:
    if not data:
        return ""
    return sep.join(
        f"{k.upper() if upper_keys else k}: {v.strip()}"
        for k, v in data.items() if v and v.strip()
    )

def describe_patient(s: DischargeSummaryInput) -> str:
    if not s.patient:
        return "Patient"
    return f"{s.patient.age or 'unknown age'} year old {s.patient.gender or 'patient'}"

def build_narrative_prompt(s: DischargeSummaryInput) -> str:
    return f"""You are a senior emergency medicine physician writing a discharge summary. Generate a professional "Course in Hospital" section based on the following case details.

CRITICAL RULES:
- ONLY describe what is documented below. Do NOT assume, infer, or add any treatments, medications, or procedures that are not explicitly listed.
- If a medication was given as an injection (Inj.), do NOT say it was given as a tablet (Tab.) or vice versa. Use the exact route/form documented.
- If no medications are documented, simply state "No specific medications were administered in the ER."
- Do NOT add any clinical decisions, reasoning, or treatment plans that are not documented below.
- Be strictly factual. No fabrication or speculation.

Patient: {describe_patient(s)}
Chief Complaint: {_clean(s.chief_complaint) or "Not specified"}
History of Present Illness: {_clean(s.history_of_present_illness) or "Not documented"}
Past Medical History: {_clean(s.past_medical_history) or "None"}
Allergies: {_clean(s.allergy) or "NKDA"}
Vitals at Arrival: {format_pairs(s.vitals, ", ", upper_keys=True) or "Not documented"}
Primary Assessment (ABCDE): {format_pairs(s.primary_assessment, "; ") or "Not documented"}
Examination: {format_pairs(s.examination, "; ") or "Not documented"}
Working Diagnosis: {_clean(s.diagnosis) or "To be determined"}
Treatment Notes: {_clean(s.treatment_given) or "None documented"}
Medications Administered: {format_medications(s.medications) or "None documented"}
Investigations: {format_investigations(s.investigations) or "None documented"}
Procedures: {_clean(s.procedures) or "None"}
Disposition: {_clean(s.disposition_type) or "Not specified"}
Condition at Discharge: {_clean(s.condition_at_discharge) or "Not specified"}

Write a concise, professional clinical narrative (2-4 paragraphs) describing:
1. Presentation and initial assessment
2. Investigations performed and key findings (only if documented)
3. Treatment provided - list ONLY the exact medications/interventions documented above
4. Clinical response and disposition

Use professional medical terminology. Be strictly factual based ONLY on the data provided above.

Respond in JSON format:
{{
  "course_in_hospital": "The detailed course narrative...",
  "diagnosis": "Refined diagnosis based on the case (if chief complaint suggests one)"
}}"""

def parse_narrative(raw: str) -> CourseInHospital:
    data = parse_json_object(raw)
    narrative = data.get("course_in_hospital")
    if not isinstance(narrative, str) or not narrative.strip():
        raise GenerationError("Model returned an empty course in hospital.")
    diagnosis = data.get("diagnosis")
    return CourseInHospital(
        course_in_hospital=narrative.strip(),
        diagnosis=diagnosis.strip() if isinstance(diagnosis, str) and diagnosis.strip() else None,
    )

def generate_course_in_hospital(summary: DischargeSummaryInput, *,
                                llm: Optional[OpenAICompatibleLLM] = None) -> CourseInHospital:
    """
    Raises InferenceUnavailable when the provider is not configured and
    GenerationError for any other failure: an empty narrative is never returned.
    """
    prompt = build_narrative_prompt(summary)

    def run() -> CourseInHospital:
        client = llm or get_llm()
        return parse_narrative(client.complete(NARRATIVE_SYSTEM, prompt, NARRATIVE))

    out = guarded("discharge.course_in_hospital", FailurePolicy.PROPAGATE, run)
    audit_event("discharge.course_generated", {"chars": len(out.course_in_hospital)})
    return out
