import unittest

from diagnosis.schemas import BloodGasPanel, CaseFacts, LiteratureResult
from diagnosis.prompts import build_prompts, format_blood_gas, format_literature


def _lit(n):
    return [
        LiteratureResult(id=f"pubmed_{i}", title=f"Paper {i}", source="Journal", authors="Doe J",
                         year="2022", url=f"https://pubmed.ncbi.nlm.nih.gov/{i}/", snippet=f"Paper {i}",
                         source_type="pubmed")
        for i in range(1, n + 1)
    ]


class TestDiagnosisPrompts(unittest.TestCase):
    def setUp(self):
        self.facts = CaseFacts(chief_complaint="chest pain", age=55, gender="M",
                               vitals={"hr": "110", "bp_systolic": "90"})

    def test_literature_block_numbers_each_reference(self):
        p = build_prompts(self.facts, _lit(2))
        self.assertIn("[1] Paper 1 - Doe J (2022)", p.system)
        self.assertIn("[2] Paper 2 - Doe J (2022)", p.system)
        self.assertNotIn("[3] ", p.system)

    def test_no_literature_block_without_results(self):
        self.assertEqual(format_literature([]), "")
        p = build_prompts(self.facts, [])
        self.assertNotIn("MEDICAL LITERATURE SEARCH RESULTS", p.system)

    def test_user_prompt_carries_case_fields(self):
        p = build_prompts(self.facts, [])
        self.assertIn("Age: 55 years, Gender: M", p.user)
        self.assertIn("Chief Complaint: chest pain", p.user)
        self.assertIn('"hr": "110"', p.user)
        self.assertNotIn("ABG/VBG", p.user)

    def test_blood_gas_lists_only_present_fields(self):
        panel = BloodGasPanel(ph="7.21", lactate="4.5")
        self.assertEqual(format_blood_gas(panel), "pH: 7.21, Lactate: 4.5 mmol/L")

        facts = self.facts.model_copy(update={"abg": panel})
        user = build_prompts(facts, []).user
        self.assertIn("ABG/VBG: pH: 7.21, Lactate: 4.5 mmol/L", user)
        self.assertNotIn("pCO2", user)
        self.assertIn("acid-base status", user)

    def test_blood_gas_status_and_note(self):
        panel = BloodGasPanel(ph=7.3, status="metabolic_acidosis", interpretation=" high AG ")
        self.assertEqual(format_blood_gas(panel),
                         "pH: 7.3, Interpretation: metabolic acidosis, Clinical Note: high AG")
        self.assertEqual(format_blood_gas(BloodGasPanel(status="not_done")), "")

    def test_population_framing(self):
        adult = build_prompts(self.facts, []).system
        child = build_prompts(self.facts.model_copy(update={"age": 16}), []).system
        self.assertIn("ATLS", adult)
        self.assertIn("PALS", child)
        self.assertNotIn("PEDIATRIC (age", adult)


if __name__ == "__main__":
    unittest.main()
