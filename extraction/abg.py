from typing import Optional

from extraction.schemas import PatientContext
from inference.llm import OpenAICompatibleLLM, ABG_INTERPRETATION, get_llm
from inference.policy import FailurePolicy, guarded

ABG_SYSTEM = ("You are an expert emergency medicine physician providing ABG interpretation. "
              "Be concise, clinically relevant, and actionable.")

UNAVAILABLE_TEXT = "AI interpretation unavailable. Manual interpretation required."

def build_abg_prompt(values: str, ctx: Optional[PatientContext]) -> str:
    lines = [
        "You are an expert emergency medicine physician. Interpret the following ABG/VBG values "
        "and provide a clear clinical interpretation.",
        "",
        f"ABG Values: {values}",
    ]
    if ctx is not None:
        if ctx.age is not None:
            lines.append(f"Patient Age: {ctx.age}")
        if ctx.sex:
            lines.append(f"Patient Sex: {ctx.sex}")
        if ctx.chief_complaint:
            lines.append(f"Presenting Complaint: {ctx.chief_complaint}")
    lines.append("""
Provide a concise interpretation including:
1. Acid-base status (respiratory/metabolic acidosis/alkalosis, mixed disorder)
2. Oxygenation assessment
3. Compensation status (compensated, partially compensated, uncompensated)
4. Clinical significance and likely causes
5. Suggested actions if critical

Use the stepwise approach:
1. Check pH (acidemia <7.35, alkalemia >7.45)
2. Check primary disorder (pCO2 for respiratory, HCO3 for metabolic)
3. Check compensation (Winter's formula for metabolic, expected changes for respiratory)
4. Check anion gap if metabolic acidosis
5. Consider delta ratio if high anion gap

Be concise but clinically relevant. Format as a clear, readable paragraph.""")
    return "\n".join(lines)

def interpret_abg(values: str, ctx: Optional[PatientContext] = None, *,
                  llm: Optional[OpenAICompatibleLLM] = None) -> str:
    prompt = build_abg_prompt(values, ctx)

    def run() -> str:
        client = llm or get_llm()
        return client.complete(ABG_SYSTEM, prompt, ABG_INTERPRETATION).strip()

    return guarded("extraction.abg", FailurePolicy.DEGRADE_TO_EMPTY, run, lambda: UNAVAILABLE_TEXT)
