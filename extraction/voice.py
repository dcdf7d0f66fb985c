import logging
from typing import Optional

from extraction.schemas import ExtractedClinicalData, SmartDictationResult, PatientContext
from inference.llm import OpenAICompatibleLLM, VOICE_EXTRACTION, SMART_DICTATION, get_llm, parse_model
from inference.policy import FailurePolicy, guarded

logger = logging.getLogger(__name__)

VOICE_SYSTEM = ("You are a precise clinical documentation assistant. Extract only the information that is "
                "explicitly stated or strongly implied in the voice transcript. Do not invent or assume information.")

DICTATION_SYSTEM = ("You are an expert emergency medicine clinical documentation assistant specializing in parsing "
                    "doctor dictations. You understand Indian English medical terminology, common abbreviations, and "
                    "clinical workflow. Extract ONLY information explicitly stated or strongly implied in the dictation. "
                    "Never invent data. Be thorough - capture every clinical detail mentioned.")

VOICE_SCHEMA = """{
  "chiefComplaint": "Main presenting complaint if mentioned",
  "historyOfPresentIllness": "Detailed HPI narrative if mentioned",
  "pastMedicalHistory": "PMH if mentioned (diabetes, hypertension, etc.)",
  "allergies": "Drug/food allergies if mentioned",
  "medications": "Current medications if mentioned",
  "symptoms": ["Array of symptoms mentioned"],
  "painDetails": {
    "location": "Where the pain is",
    "severity": "Pain severity/score if mentioned",
    "character": "Nature of pain (sharp, dull, etc.)",
    "onset": "When it started",
    "duration": "How long"
  },
  "examFindings": {
    "general": "General examination findings if mentioned",
    "cvs": "Cardiovascular findings if mentioned",
    "respiratory": "Respiratory findings if mentioned",
    "abdomen": "Abdominal findings if mentioned",
    "cns": "Neurological findings if mentioned"
  },
  "diagnosis": ["Possible diagnoses mentioned"],
  "treatmentNotes": "Any treatment plans or notes mentioned"
}"""

PEDIATRIC_DICTATION_FIELDS = """
  "immunizationHistory": "Vaccination history if mentioned",
  "birthHistory": "Birth history - term/preterm, birth weight, NICU stay, etc. if mentioned",
  "feedingHistory": "Breastfeeding/formula/weaning history if mentioned",
  "developmentalHistory": "Developmental milestones if mentioned","""

DICTATION_SCHEMA = """{{
  "chiefComplaint": "Main presenting complaint(s) - what the patient came in for",
  "historyOfPresentIllness": "Detailed narrative of the current illness episode - onset, progression, character, associated/aggravating/relieving factors",
  "onset": "When symptoms started (e.g., '2 days ago', 'sudden onset')",
  "duration": "Duration of symptoms",
  "progression": "How symptoms progressed (gradual, sudden, worsening, etc.)",
  "associatedSymptoms": "Symptoms that accompany the chief complaint",
  "negativeSymptoms": "Pertinent negatives explicitly mentioned (e.g., 'no vomiting, no loose stools')",
  "pastMedicalHistory": "Known medical conditions (diabetes, hypertension, asthma, etc.)",
  "pastSurgicalHistory": "Previous surgeries if mentioned",
  "allergies": "Drug or food allergies if mentioned",
  "currentMedications": "Current medications the patient is taking",
  "familyHistory": "Family medical history if mentioned",
  "socialHistory": "Smoking, alcohol, occupation, etc. if mentioned",
  "menstrualHistory": "Menstrual/obstetric history if mentioned and relevant",{pediatric}
  "symptoms": ["Array of individual symptoms extracted"],
  "painDetails": {{
    "location": "Where the pain is",
    "severity": "Pain score or description",
    "character": "Nature of pain (sharp, dull, colicky, burning, etc.)",
    "onset": "When pain started",
    "duration": "How long",
    "aggravatingFactors": "What makes it worse",
    "relievingFactors": "What makes it better",
    "associatedSymptoms": "Symptoms with the pain"
  }},
  "vitalsSuggested": {{
    "bp": "Blood pressure if mentioned",
    "hr": "Heart rate if mentioned",
    "rr": "Respiratory rate if mentioned",
    "spo2": "SpO2 if mentioned",
    "temperature": "Temperature if mentioned",
    "grbs": "Blood sugar if mentioned"
  }},
  "examFindings": {{
    "general": "General appearance/examination findings",
    "cvs": "Cardiovascular examination findings",
    "respiratory": "Respiratory examination findings",
    "abdomen": "Abdominal examination findings",
    "cns": "Neurological examination findings",
    "musculoskeletal": "MSK findings if mentioned",
    "skin": "Skin/wound findings if mentioned",
    "heent": "Head, eyes, ears, nose, throat findings if mentioned"
  }},
  "diagnosis": ["Primary diagnosis or working diagnosis"],
  "differentialDiagnosis": ["Differential diagnoses if mentioned"],
  "treatmentNotes": "Any treatment plans or medications given if mentioned",
  "investigationsOrdered": "Labs ordered if mentioned (CBC, RFT, etc.)",
  "imagingOrdered": "Imaging ordered if mentioned (X-ray, CT, USG, etc.)",
  "fieldsPopulated": ["Array of field names that were populated"]
}}"""

def is_pediatric_context(ctx: Optional[PatientContext]) -> bool:
    if ctx is None:
        return False
    return ctx.case_type == "pediatric" or (ctx.age is not None and ctx.age <= 16)

def describe_context(ctx: Optional[PatientContext]) -> str:
    if ctx is None:
        return "No patient context provided"
    return (f"Patient context: {ctx.age or 'unknown'} year old {ctx.sex or 'patient'}, "
            f"presenting with: {ctx.chief_complaint or 'not specified'}")

def build_voice_prompt(transcript: str, ctx: Optional[PatientContext]) -> str:
    return f"""You are a clinical documentation assistant for an Emergency Room physician. Extract structured clinical information from the following voice dictation and organize it into appropriate case sheet fields.

{describe_context(ctx)}

Voice dictation transcript:
"{transcript}"

Extract and categorize any mentioned clinical information into the following structure. Only include fields that have relevant information mentioned in the transcript. Be accurate and use medical terminology appropriately.

Respond in JSON format:
{VOICE_SCHEMA}

Only include fields that have actual content from the transcript. Omit empty or irrelevant fields."""

def build_dictation_prompt(transcript: str, ctx: Optional[PatientContext]) -> str:
    pediatric = is_pediatric_context(ctx)
    if ctx is None:
        context = "No patient context provided"
    else:
        context = f"Patient context: {ctx.age or 'unknown'} year old {ctx.sex or 'patient'}"
        if ctx.chief_complaint:
            context += f", presenting with: {ctx.chief_complaint}"
        context += f". Case type: {'Pediatric (PALS)' if pediatric else 'Adult (ATLS)'}."
    schema = DICTATION_SCHEMA.format(pediatric=PEDIATRIC_DICTATION_FIELDS if pediatric else "")

    return f"""You are an expert Emergency Medicine clinical documentation assistant. A physician is dictating a patient's complete history in one continuous narrative. Your job is to carefully parse this dictation and extract every piece of clinical information, placing it into the correct case sheet field.

{context}

Voice dictation transcript:
"{transcript}"

IMPORTANT INSTRUCTIONS:
1. Parse the ENTIRE dictation carefully. Doctors may speak in informal/shorthand style.
2. Recognize common medical abbreviations: "pt" = patient, "c/o" = complaining of, "h/o" = history of, "k/c/o" = known case of, "OHA" = oral hypoglycemic agents, "dx" = diagnosis, "rx" = treatment, "hx" = history, "sx" = symptoms, "o/e" = on examination, "NAD" = no acute distress, "GRBS" = random blood sugar, etc.
3. Differentiate between: presenting complaints vs past history vs examination findings vs diagnosis.
4. If something is mentioned as a NEGATIVE finding (e.g., "not associated with vomiting"), put it in "negativeSymptoms".
5. Only include fields that have actual content from the transcript. Omit empty fields entirely.
6. Be precise - do not invent or assume information not stated.
7. Include a "fieldsPopulated" array listing which fields you filled, so the UI can show what was auto-populated.

Respond in JSON format:
{schema}"""

def extract_clinical_data_from_voice(transcript: str, ctx: Optional[PatientContext] = None, *,
                                     llm: Optional[OpenAICompatibleLLM] = None) -> ExtractedClinicalData:
    """Falls back to the raw transcript alone when extraction is unavailable or fails."""
    prompt = build_voice_prompt(transcript, ctx)

    def run() -> ExtractedClinicalData:
        client = llm or get_llm()
        return parse_model(ExtractedClinicalData, client.complete(VOICE_SYSTEM, prompt, VOICE_EXTRACTION))

    out = guarded("extraction.voice", FailurePolicy.DEGRADE_TO_EMPTY, run,
                  lambda: ExtractedClinicalData())
    out.raw_transcription = transcript
    return out

def extract_smart_dictation(transcript: str, ctx: Optional[PatientContext] = None, *,
                            llm: Optional[OpenAICompatibleLLM] = None) -> SmartDictationResult:
    prompt = build_dictation_prompt(transcript, ctx)

    def run() -> SmartDictationResult:
        client = llm or get_llm()
        return parse_model(SmartDictationResult, client.complete(DICTATION_SYSTEM, prompt, SMART_DICTATION))

    out = guarded("extraction.smart_dictation", FailurePolicy.DEGRADE_TO_EMPTY, run,
                  lambda: SmartDictationResult())
    out.raw_transcription = transcript
    return out
