from pydantic import AliasGenerator, BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional

class Extracted(BaseModel):
    # model output uses camelCase keys; attributes and responses stay snake_case
    model_config = ConfigDict(
        extra="ignore",
        coerce_numbers_to_str=True,
        populate_by_name=True,
        alias_generator=AliasGenerator(validation_alias=to_camel),
    )

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

def _str_list(v):
    if v is None:
        return None
    if isinstance(v, str):
        return [v]
    if isinstance(v, list):
        return [str(x) for x in v if isinstance(x, (str, int, float)) and str(x).strip()]
    return None

class PatientContext(BaseModel):
    age: Optional[int] = None
    sex: Optional[str] = None
    chief_complaint: Optional[str] = None
    case_type: Optional[str] = None   # "adult" | "pediatric"

class PainDetails(Extracted):
    location: Optional[str] = None
    severity: Optional[str] = None
    character: Optional[str] = None
    onset: Optional[str] = None
    duration: Optional[str] = None
    aggravating_factors: Optional[str] = None
    relieving_factors: Optional[str] = None
    associated_symptoms: Optional[str] = None

class SuggestedVitals(Extracted):
    bp: Optional[str] = None
    hr: Optional[str] = None
    rr: Optional[str] = None
    spo2: Optional[str] = None
    temperature: Optional[str] = None
    grbs: Optional[str] = None

class ExamFindings(Extracted):
    general: Optional[str] = None
    cvs: Optional[str] = None
    respiratory: Optional[str] = None
    abdomen: Optional[str] = None
    cns: Optional[str] = None
    musculoskeletal: Optional[str] = None
    skin: Optional[str] = None
    heent: Optional[str] = None

class ExtractedClinicalData(Extracted):
    chief_complaint: Optional[str] = None
    history_of_present_illness: Optional[str] = None
    past_medical_history: Optional[str] = None
    allergies: Optional[str] = None
    medications: Optional[str] = None
    symptoms: Optional[List[str]] = None
    pain_details: Optional[PainDetails] = None
    vitals_suggested: Optional[SuggestedVitals] = None
    exam_findings: Optional[ExamFindings] = None
    diagnosis: Optional[List[str]] = None
    treatment_notes: Optional[str] = None
    raw_transcription: Optional[str] = None

    @field_validator("symptoms", "diagnosis", mode="before")
    @classmethod
    def _lists(cls, v):
        return _str_list(v)

class SmartDictationResult(ExtractedClinicalData):
    onset: Optional[str] = None
    duration: Optional[str] = None
    progression: Optional[str] = None
    associated_symptoms: Optional[str] = None
    negative_symptoms: Optional[str] = None
    past_surgical_history: Optional[str] = None
    current_medications: Optional[str] = None
    family_history: Optional[str] = None
    social_history: Optional[str] = None
    menstrual_history: Optional[str] = None
    immunization_history: Optional[str] = None
    birth_history: Optional[str] = None
    feeding_history: Optional[str] = None
    developmental_history: Optional[str] = None
    differential_diagnosis: Optional[List[str]] = None
    investigations_ordered: Optional[str] = None
    imaging_ordered: Optional[str] = None
    fields_populated: Optional[List[str]] = None

    @field_validator("differential_diagnosis", "fields_populated", mode="before")
    @classmethod
    def _more_lists(cls, v):
        return _str_list(v)

class ImageVitals(Extracted):
    hr: Optional[str] = None
    bp: Optional[str] = None
    rr: Optional[str] = None
    spo2: Optional[str] = None
    temp: Optional[str] = None
    grbs: Optional[str] = None

class ImageBloodGas(Extracted):
    ph: Optional[str] = None
    pco2: Optional[str] = None
    po2: Optional[str] = None
    hco3: Optional[str] = None
    be: Optional[str] = None
    lactate: Optional[str] = None
    sao2: Optional[str] = None
    fio2: Optional[str] = None
    na: Optional[str] = None
    k: Optional[str] = None
    cl: Optional[str] = None
    anion_gap: Optional[str] = None
    glucose: Optional[str] = None
    hb: Optional[str] = None

class ImageExtractedData(Extracted):
    chief_complaint: Optional[str] = None
    hpi_notes: Optional[str] = None
    allergies: Optional[str] = None
    past_medical_history: Optional[str] = None
    medications: Optional[str] = None
    vitals: Optional[ImageVitals] = None
    abg_values: Optional[ImageBloodGas] = None
    lab_results: Optional[str] = None
    imaging_results: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_notes: Optional[str] = None
    general_notes: Optional[str] = None

class VoiceTranscriptionResult(BaseModel):
    transcript: str
    structured: Optional[ExtractedClinicalData] = None
