from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Literal, Dict, Union

SourceType = Literal["pubmed", "textbook", "guideline", "wikem"]
Confidence = Literal["high", "moderate", "low"]
FeedbackType = Literal["accepted", "modified", "rejected"]

class BloodGasPanel(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    sample_type: Optional[str] = None
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
    aa_gradient: Optional[str] = None
    interpretation: Optional[str] = None
    status: Optional[str] = None

class CaseFacts(BaseModel):
    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    chief_complaint: str
    vitals: Dict[str, str] = Field(default_factory=dict)
    history: str = ""
    examination: str = ""
    age: int
    gender: str = ""
    abg: Optional[BloodGasPanel] = None

class LiteratureResult(BaseModel):
    id: str
    title: str
    source: str
    authors: Optional[str] = None
    year: Optional[str] = None
    url: Optional[str] = None
    snippet: str = ""
    source_type: SourceType

class SearchSource(BaseModel):
    id: str
    title: str
    source: str
    authors: Optional[str] = None
    year: Optional[str] = None
    url: Optional[str] = None
    source_type: SourceType

class Citation(BaseModel):
    id: str
    source: str
    title: str
    year: Optional[str] = None
    url: Optional[str] = None
    excerpt: str = ""
    source_type: SourceType
    authors: Optional[str] = None
    ref_number: int

class DiagnosisSuggestion(BaseModel):
    id: str
    diagnosis: str
    confidence: Confidence
    severity_rank: int
    reasoning: str
    key_findings: List[str]
    workup: List[str]
    management: List[str]
    citations: List[Citation]

class RedFlag(BaseModel):
    id: str
    flag: str
    severity: str  # "critical" | "warning"; unknown values are passed through
    action: str
    timeframe: Optional[str] = None
    citations: List[Citation]

class DiagnosisResult(BaseModel):
    suggestions: List[DiagnosisSuggestion] = Field(default_factory=list)
    red_flags: List[RedFlag] = Field(default_factory=list)
    sources: List[SearchSource] = Field(default_factory=list)

class AIFeedback(BaseModel):
    suggestion_id: str = Field(min_length=1)
    case_id: str = Field(min_length=1)
    feedback_type: FeedbackType
    user_correction: Optional[str] = None
    suggestion_text: Optional[str] = None
    user_id: Optional[str] = None
    timestamp: Optional[str] = None  # assigned by the store

class FeedbackResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_code: Optional[Literal["persistence_unavailable", "persistence_error"]] = None

class FeedbackStats(BaseModel):
    total: int = 0
    accepted: int = 0
    modified: int = 0
    rejected: int = 0
    acceptance_rate: float = 0
    available: bool = False

class PatientInfo(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    age: Optional[str] = None
    gender: Optional[str] = None

class MedicationEntry(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    dose: Optional[str] = None
    route: Optional[str] = None
    frequency: Optional[str] = None

class InvestigationEntry(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    name: Optional[str] = None
    test: Optional[str] = None
    result: Optional[str] = None
    value: Optional[str] = None

class DischargeSummaryInput(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    patient: Optional[PatientInfo] = None
    chief_complaint: Optional[str] = None
    diagnosis: Optional[str] = None
    treatment_given: Optional[str] = None
    medications: Optional[Union[str, List[MedicationEntry]]] = None
    investigations: Optional[Union[str, List[InvestigationEntry]]] = None
    vitals: Optional[Dict[str, Optional[str]]] = None
    examination: Optional[Dict[str, Optional[str]]] = None
    procedures: Optional[str] = None
    primary_assessment: Optional[Dict[str, Optional[str]]] = None
    history_of_present_illness: Optional[str] = None
    past_medical_history: Optional[str] = None
    allergy: Optional[str] = None
    disposition_type: Optional[str] = None
    condition_at_discharge: Optional[str] = None

class CourseInHospital(BaseModel):
    course_in_hospital: str
    diagnosis: Optional[str] = None
