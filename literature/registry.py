"""
Curated emergency-medicine references offered to the model alongside live search results.

Selection:
- ALWAYS       general EM textbooks, included for every complaint
- PEDIATRIC    pediatric textbooks/guidelines, included when age <= 16
- keyword      complaint-specific guidelines, matched on word boundaries

Only bibliographic metadata is stored here; no licensed content.
"""

import re
from dataclasses import dataclass
from typing import List, Optional

from diagnosis.schemas import LiteratureResult

@dataclass(frozen=True)
class Reference:
    id: str
    title: str
    source: str
    authors: str
    year: str
    url: str
    snippet: str
    source_type: str         # textbook | guideline
    trigger: Optional[str] = None   # regex over the lower-cased complaint
    pediatric_only: bool = False

    def to_result(self) -> LiteratureResult:
        return LiteratureResult(
            id=self.id,
            title=self.title,
            source=self.source,
            authors=self.authors,
            year=self.year,
            url=self.url,
            snippet=self.snippet,
            source_type=self.source_type,
        )

REFERENCES: List[Reference] = [
    # Always
    Reference(
        id="textbook_tintinalli",
        title="Tintinalli's Emergency Medicine: A Comprehensive Study Guide, 9th Edition",
        source="McGraw-Hill Education",
        authors="Tintinalli JE, Ma OJ, Yealy DM et al.",
        year="2020",
        url="https://accessemergencymedicine.mhmedical.com/book.aspx?bookid=2353",
        snippet="Comprehensive emergency medicine reference covering evaluation, diagnosis, and management.",
        source_type="textbook",
    ),
    Reference(
        id="textbook_rosens",
        title="Rosen's Emergency Medicine: Concepts and Clinical Practice, 10th Edition",
        source="Elsevier",
        authors="Walls RM, Hockberger RS, Gausche-Hill M",
        year="2023",
        url="https://www.elsevier.com/books/rosens-emergency-medicine/walls/978-0-323-75489-3",
        snippet="Gold standard clinical practice reference for emergency physicians.",
        source_type="textbook",
    ),

    # Pediatric
    Reference(
        id="textbook_fleisher",
        title="Fleisher & Ludwig's Textbook of Pediatric Emergency Medicine, 8th Edition",
        source="Wolters Kluwer",
        authors="Shaw KN, Bachur RG",
        year="2021",
        url="https://shop.lww.com/fleisher-ludwigs-textbook-of-pediatric-emergency-medicine/p/9781975134556",
        snippet="Definitive pediatric emergency medicine textbook with evidence-based protocols.",
        source_type="textbook",
        pediatric_only=True,
    ),
    Reference(
        id="guideline_pals",
        title="Pediatric Advanced Life Support (PALS) Provider Manual",
        source="American Heart Association",
        authors="AHA",
        year="2020",
        url="https://cpr.heart.org/en/resuscitation-science/cpr-and-ecc-guidelines/pediatric-advanced-life-support",
        snippet="AHA guidelines for pediatric resuscitation and emergency cardiovascular care.",
        source_type="guideline",
        pediatric_only=True,
    ),

    # Complaint-specific
    Reference(
        id="guideline_atls",
        title="Advanced Trauma Life Support (ATLS) Student Course Manual, 10th Edition",
        source="American College of Surgeons",
        authors="ACS Committee on Trauma",
        year="2018",
        url="https://www.facs.org/quality-programs/trauma/education/advanced-trauma-life-support/",
        snippet="Systematic approach to trauma assessment and management: primary and secondary surveys.",
        source_type="guideline",
        trigger=r"trauma|fracture|fall|accident|injury|wound|laceration|head injury|blunt|penetrating",
    ),
    Reference(
        id="guideline_east",
        title="EAST Practice Management Guidelines",
        source="Eastern Association for the Surgery of Trauma",
        authors="EAST",
        year="2023",
        url="https://www.east.org/education-resources/practice-management-guidelines",
        snippet="Evidence-based practice management guidelines for surgical trauma care.",
        source_type="guideline",
        trigger=r"trauma|fracture|fall|accident|injury|wound|laceration|head injury|blunt|penetrating",
    ),
    Reference(
        id="guideline_aha_acs",
        title="2021 ACC/AHA/SCAI Guideline for Coronary Artery Revascularization",
        source="Journal of the American College of Cardiology",
        authors="Lawton JS, Tamis-Holland JE, Bangalore S et al.",
        year="2022",
        url="https://www.jacc.org/doi/10.1016/j.jacc.2021.09.006",
        snippet="Evidence-based guidelines for management of acute coronary syndromes and revascularization.",
        source_type="guideline",
        trigger=r"chest pain|mi|acs|angina|stemi|nstemi|cardiac|heart|palpitations?",
    ),
    Reference(
        id="guideline_ssc",
        title="Surviving Sepsis Campaign: International Guidelines for Management of Sepsis and Septic Shock 2021",
        source="Intensive Care Medicine",
        authors="Evans L, Rhodes A, Alhazzani W et al.",
        year="2021",
        url="https://www.sccm.org/SurvivingSepsisCampaign/Guidelines/Adult-Patients",
        snippet="Hour-1 bundle: lactate, blood cultures, broad-spectrum antibiotics, crystalloid for hypotension, vasopressors if needed.",
        source_type="guideline",
        trigger=r"sepsis|septic|infection|fever|pneumonia|uti|cellulitis|bacteremia|meningitis",
    ),
    Reference(
        id="guideline_aha_stroke",
        title="2019 AHA/ASA Guideline for the Early Management of Patients With Acute Ischemic Stroke",
        source="Stroke (AHA/ASA)",
        authors="Powers WJ, Rabinstein AA, Ackerson T et al.",
        year="2019",
        url="https://www.ahajournals.org/doi/10.1161/STR.0000000000000211",
        snippet="Door-to-needle time <60 min, IV alteplase within 4.5h window, mechanical thrombectomy within 24h for large vessel occlusion.",
        source_type="guideline",
        trigger=r"stroke|tia|weakness|hemiparesis|aphasia|facial droop|slurred speech",
    ),
    Reference(
        id="guideline_gina",
        title="Global Initiative for Asthma (GINA) Report 2023",
        source="GINA",
        authors="GINA Science Committee",
        year="2023",
        url="https://ginasthma.org/gina-reports/",
        snippet="Stepwise approach to asthma management, acute exacerbation protocols, and severity assessment.",
        source_type="guideline",
        trigger=r"asthma|copd|dyspnea|breathless|wheeze|respiratory|shortness of breath|sob",
    ),
    Reference(
        id="textbook_goldfrank",
        title="Goldfrank's Toxicologic Emergencies, 11th Edition",
        source="McGraw-Hill Education",
        authors="Nelson LS, Howland MA, Lewin NA et al.",
        year="2019",
        url="https://accessemergencymedicine.mhmedical.com/book.aspx?bookid=2569",
        snippet="Comprehensive toxicology reference: toxidromes, antidotes, decontamination, and enhanced elimination.",
        source_type="textbook",
        trigger=r"poison(ing)?|overdose|toxicology|ingestion|intoxication|drug abuse",
    ),
    Reference(
        id="guideline_aga",
        title="ACG Clinical Guidelines for Abdominal Pain Assessment",
        source="American College of Gastroenterology",
        authors="ACG",
        year="2023",
        url="https://journals.lww.com/ajg/pages/default.aspx",
        snippet="Evidence-based approach to acute abdominal pain: differential diagnosis, imaging, and management.",
        source_type="guideline",
        trigger=r"abdominal|appendicitis|bowel|gi bleed|vomiting|diarrh?oea|diarrhea|obstruction|pancreatitis",
    ),
    Reference(
        id="guideline_headache",
        title="ACEP Clinical Policy: Critical Issues in the Evaluation of Adult Patients Presenting with Acute Headache",
        source="Annals of Emergency Medicine",
        authors="Godwin SA, Cherkas DS, Panagos PD et al.",
        year="2019",
        url="https://www.acep.org/patient-care/clinical-policies/",
        snippet="Risk stratification for headache emergencies, SAH screening criteria, CT/LP decision rules.",
        source_type="guideline",
        trigger=r"headache|migraine|subarachnoid|meningitis|head",
    ),
]

def _matches(trigger: str, complaint: str) -> bool:
    return re.search(rf"\b(?:{trigger})\b", complaint) is not None

def select_references(complaint: str, is_pediatric: bool) -> List[LiteratureResult]:
    c = (complaint or "").lower()
    out: List[LiteratureResult] = []
    for ref in REFERENCES:
        if ref.pediatric_only and not is_pediatric:
            continue
        if ref.trigger and not _matches(ref.trigger, c):
            continue
        out.append(ref.to_result())
    return out
