import json
from typing import List, NamedTuple, Optional

from diagnosis.schemas import BloodGasPanel, CaseFacts, LiteratureResult

PEDIATRIC_MAX_AGE = 16

# (field, label, unit suffix)
ABG_FIELDS = [
    ("sample_type", "Sample", ""),
    ("ph", "pH", ""),
    ("pco2", "pCO2", " mmHg"),
    ("po2", "pO2", " mmHg"),
    ("hco3", "HCO3", " mEq/L"),
    ("be", "BE", " mEq/L"),
    ("lactate", "Lactate", " mmol/L"),
    ("sao2", "SaO2", "%"),
    ("fio2", "FiO2", "%"),
    ("na", "Na", " mEq/L"),
    ("k", "K", " mEq/L"),
    ("cl", "Cl", " mEq/L"),
    ("anion_gap", "Anion Gap", ""),
    ("glucose", "Glucose", " mg/dL"),
    ("hb", "Hb", " g/dL"),
    ("aa_gradient", "A-a Gradient", " mmHg"),
]

class DiagnosisPrompts(NamedTuple):
    system: str
    user: str

def is_pediatric(age: int) -> bool:
    return age <= PEDIATRIC_MAX_AGE

def _present(value: Optional[str]) -> bool:
    return value is not None and str(value).strip() != ""

def format_blood_gas(panel: Optional[BloodGasPanel]) -> str:
    if panel is None:
        return ""
    parts: List[str] = []
    for field, label, unit in ABG_FIELDS:
        value = getattr(panel, field)
        if _present(value):
            parts.append(f"{label}: {str(value).strip()}{unit}")
    if _present(panel.status) and panel.status != "not_done":
        parts.append(f"Interpretation: {panel.status.replace('_', ' ')}")
    if _present(panel.interpretation):
        parts.append(f"Clinical Note: {panel.interpretation.strip()}")
    return ", ".join(parts)

def format_literature(literature: List[LiteratureResult]) -> str:
    if not literature:
        return ""
    out = ["## MEDICAL LITERATURE SEARCH RESULTS (use these as references)"]
    for n, r in enumerate(literature, start=1):
        head = f"[{n}] {r.title}"
        if r.authors:
            head += f" - {r.authors}"
        if r.year:
            head += f" ({r.year})"
        block = [head, f"    Source: {r.source}"]
        if r.url:
            block.append(f"    URL: {r.url}")
        if r.snippet:
            block.append(f"    Summary: {r.snippet}")
        out.append("\n".join(block))
    return "\n\n".join(out)

SYSTEM_PROMPT = """You are an expert emergency medicine physician and clinical decision support system. You have been trained on emergency medicine textbooks including Tintinalli's Emergency Medicine, Rosen's Emergency Medicine, and current clinical practice guidelines.

Your role is to analyze the patient case using evidence-based medicine and provide:
1. EXACTLY 5 provisional diagnoses ranked by SEVERITY (most severe/life-threatening FIRST, least severe LAST)
2. Red flags requiring immediate attention with specific time-sensitive actions
3. For EACH diagnosis: key supporting findings, recommended workup, and initial management

CRITICAL INSTRUCTIONS:
- You MUST provide exactly 5 provisional diagnoses, no more, no less
- Rank them by SEVERITY (1 = most severe/dangerous, 5 = least severe/benign), NOT by likelihood
- The first diagnosis should be the most life-threatening condition to rule out
- The last diagnosis should be the most benign possibility
- Cite specific sources using reference numbers [1], [2], etc. from the provided medical literature search results
- Each diagnosis reasoning MUST include inline citations like "According to [1], ..." or "Per Tintinalli's [2], ..."
- Only use reference numbers that appear in the literature list; if no list is provided, leave citationRefs empty
- Include specific diagnostic criteria, clinical decision rules, and guideline recommendations
- For red flags, cite the specific guideline that defines the criteria (e.g., "SIRS criteria per Surviving Sepsis Campaign [3]")
- Think like a senior EM attending teaching a resident - explain WHY each diagnosis is considered

Patient is {population}.

{literature}

Respond in JSON format with EXACTLY 5 suggestions ranked by severity (index 0 = most severe, index 4 = least severe):
{{
  "suggestions": [
    {{
      "diagnosis": "Most severe/life-threatening diagnosis to rule out",
      "severity_rank": 1,
      "confidence": "high|moderate|low",
      "reasoning": "Detailed clinical reasoning with inline citations [1], [2]. Explain the pathophysiology, why this patient's presentation matches, and key distinguishing features from the differential.",
      "keyFindings": ["Finding 1 that supports this diagnosis", "Finding 2", "Finding 3"],
      "workup": ["Investigation 1 to order", "Investigation 2", "Lab/imaging 3"],
      "management": ["Initial management step 1", "Step 2", "Disposition consideration"],
      "citationRefs": [1, 3, 5]
    }},
    {{ "diagnosis": "2nd most severe...", "severity_rank": 2, "confidence": "...", "reasoning": "...", "keyFindings": [], "workup": [], "management": [], "citationRefs": [] }},
    {{ "diagnosis": "3rd...", "severity_rank": 3, "confidence": "...", "reasoning": "...", "keyFindings": [], "workup": [], "management": [], "citationRefs": [] }},
    {{ "diagnosis": "4th...", "severity_rank": 4, "confidence": "...", "reasoning": "...", "keyFindings": [], "workup": [], "management": [], "citationRefs": [] }},
    {{ "diagnosis": "Least severe/most benign diagnosis", "severity_rank": 5, "confidence": "...", "reasoning": "...", "keyFindings": [], "workup": [], "management": [], "citationRefs": [] }}
  ],
  "redFlags": [
    {{
      "flag": "Critical finding description",
      "severity": "critical|warning",
      "action": "Specific immediate action required - be precise (e.g., 'Obtain STAT ECG and troponin, activate cath lab if STEMI')",
      "timeframe": "Within X minutes/hours",
      "citationRefs": [2, 4]
    }}
  ]
}}"""

PEDIATRIC_FRAMING = "PEDIATRIC (age <= 16, use PALS protocols, weight-based dosing)"
ADULT_FRAMING = "ADULT (use ATLS protocols)"

def build_system_prompt(age: int, literature: List[LiteratureResult]) -> str:
    return SYSTEM_PROMPT.format(
        population=PEDIATRIC_FRAMING if is_pediatric(age) else ADULT_FRAMING,
        literature=format_literature(literature),
    )

def build_user_prompt(facts: CaseFacts) -> str:
    abg = format_blood_gas(facts.abg)
    lines = [
        "Patient Case:",
        f"- Age: {facts.age} years, Gender: {facts.gender}",
        f"- Chief Complaint: {facts.chief_complaint}",
        f"- Vitals: {json.dumps(facts.vitals)}",
        f"- History: {facts.history}",
        f"- Examination: {facts.examination}",
    ]
    if abg:
        lines.append(f"- ABG/VBG: {abg}")

    ask = ("Analyze this case thoroughly. Provide differential diagnoses with evidence-based reasoning, "
           "cite the medical literature provided, identify all red flags, and recommend workup and "
           "management for each diagnosis.")
    if abg:
        ask += (" Consider the ABG values carefully - analyze acid-base status, oxygenation, "
                "electrolytes, and their implications for the differential.")
    return "\n".join(lines) + "\n\n" + ask

def build_prompts(facts: CaseFacts, literature: List[LiteratureResult]) -> DiagnosisPrompts:
    return DiagnosisPrompts(
        system=build_system_prompt(facts.age, literature),
        user=build_user_prompt(facts),
    )
