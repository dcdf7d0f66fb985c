import logging
from typing import Optional

from extraction.schemas import ImageExtractedData, PatientContext
from inference.llm import OpenAICompatibleLLM, IMAGE_EXTRACTION, get_llm, parse_model
from inference.policy import FailurePolicy, guarded
from compliance.audit import audit_event

logger = logging.getLogger(__name__)

IMAGE_SYSTEM = """You are a clinical documentation assistant for an Emergency Room. Your task is to analyze images of clinical documents (lab reports, referral notes, prescriptions, ABG results, handwritten notes, discharge summaries) and extract structured clinical data.

Extract ONLY information that is clearly visible and readable in the image. Do not guess or make up values. If a field is not present or not readable, omit it from the response.

For ABG reports specifically, look for: pH, pCO2, pO2, HCO3, BE (Base Excess), Lactate, SaO2, FiO2, Na, K, Cl, Anion Gap, Glucose, Hb.

For lab reports, look for: Complete blood count values, metabolic panel, liver function tests, renal function tests.

For vitals, look for: Heart rate, blood pressure, respiratory rate, SpO2, temperature, blood glucose."""

IMAGE_INSTRUCTIONS = """Analyze this clinical document image and extract all relevant medical data. Respond in JSON format:
{
  "chiefComplaint": "Main presenting complaint if visible",
  "hpiNotes": "History details if present",
  "allergies": "Any allergies mentioned",
  "pastMedicalHistory": "Past medical history if mentioned",
  "medications": "Current medications if listed",
  "vitals": {
    "hr": "Heart rate value with units",
    "bp": "Blood pressure (systolic/diastolic)",
    "rr": "Respiratory rate",
    "spo2": "Oxygen saturation percentage",
    "temp": "Temperature with units",
    "grbs": "Blood glucose value"
  },
  "abgValues": {
    "ph": "pH value",
    "pco2": "pCO2 value",
    "po2": "pO2 value",
    "hco3": "HCO3/Bicarbonate value",
    "be": "Base excess value",
    "lactate": "Lactate value",
    "sao2": "SaO2 percentage",
    "fio2": "FiO2 percentage",
    "na": "Sodium value",
    "k": "Potassium value",
    "cl": "Chloride value",
    "anionGap": "Anion gap value",
    "glucose": "Glucose value",
    "hb": "Hemoglobin value"
  },
  "labResults": "Summary of other lab results (CBC, metabolic panel, etc.)",
  "imagingResults": "Any imaging findings mentioned",
  "diagnosis": "Diagnosis or impression if stated",
  "treatmentNotes": "Treatment recommendations if present",
  "generalNotes": "Any other relevant clinical information"
}

Only include fields with actual values extracted from the image. Omit empty fields entirely."""

def describe_context(ctx: Optional[PatientContext]) -> str:
    if ctx is None:
        return ""
    parts = []
    if ctx.age is not None:
        parts.append(f"Age {ctx.age}")
    if ctx.sex:
        parts.append(ctx.sex)
    text = ", ".join(parts)
    if ctx.chief_complaint:
        complaint = f"Presenting complaint: {ctx.chief_complaint}"
        text = f"{text}. {complaint}" if text else complaint
    return f"Patient context: {text}" if text else ""

def build_image_messages(image_base64: str, ctx: Optional[PatientContext]) -> list:
    system = IMAGE_SYSTEM
    context = describe_context(ctx)
    if context:
        system += "\n\n" + context
    return [
        {"role": "system", "content": system},
        {
            "role": "user",
            "content": [
                {"type": "text", "text": IMAGE_INSTRUCTIONS},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{image_base64}", "detail": "high"},
                },
            ],
        },
    ]

def extract_clinical_data_from_image(image_base64: str, ctx: Optional[PatientContext] = None, *,
                                     llm: Optional[OpenAICompatibleLLM] = None) -> ImageExtractedData:
    """Raises InferenceUnavailable / GenerationError; a scanned document with no result is an error."""
    messages = build_image_messages(image_base64, ctx)

    def run() -> ImageExtractedData:
        client = llm or get_llm()
        return parse_model(ImageExtractedData, client.complete_messages(messages, IMAGE_EXTRACTION))

    out = guarded("extraction.image", FailurePolicy.PROPAGATE, run)
    audit_event("extraction.image", {"fields": sorted(out.model_dump(exclude_none=True))})
    return out
