import json
import unittest

from diagnosis.schemas import LiteratureResult
from diagnosis.citations import resolve_citation, resolve_citations
from diagnosis.normalizer import normalize
from inference.errors import MalformedResponse


def _lit(n):
    return [
        LiteratureResult(id=f"ref_{i}", title=f"Ref {i}", source="Src", snippet=f"snippet {i}",
                         source_type="guideline")
        for i in range(1, n + 1)
    ]


class TestCitationResolution(unittest.TestCase):
    def test_out_of_range_refs_are_dropped(self):
        cites = resolve_citations([1, 4, 2], _lit(3))
        self.assertEqual([c.ref_number for c in cites], [1, 2])
        self.assertEqual(cites[0].id, "ref_1")
        self.assertEqual(cites[1].excerpt, "snippet 2")

    def test_non_integer_refs(self):
        lit = _lit(2)
        self.assertIsNone(resolve_citation(0, lit))
        self.assertIsNone(resolve_citation(-1, lit))
        self.assertIsNone(resolve_citation(True, lit))
        self.assertIsNone(resolve_citation("two", lit))
        self.assertEqual(resolve_citation("[2]", lit).ref_number, 2)
        self.assertEqual(resolve_citation(1.0, lit).ref_number, 1)
        self.assertIsNone(resolve_citation("\u00b9", lit))
        self.assertIsNone(resolve_citation("[\u00b2]", lit))

    def test_empty_literature_resolves_nothing(self):
        self.assertEqual(resolve_citations([1, 2], []), [])
        self.assertEqual(resolve_citations(None, _lit(2)), [])


class TestNormalize(unittest.TestCase):
    def test_full_entry(self):
        raw = json.dumps({
            "suggestions": [{
                "diagnosis": "ACS", "severity_rank": 1, "confidence": "High",
                "reasoning": "per [1]", "keyFindings": ["tachycardia"], "workup": ["ECG"],
                "management": ["aspirin"], "citationRefs": [1, 4, 2],
            }],
            "redFlags": [{"flag": "Hypotension", "severity": "critical", "action": "fluids",
                          "timeframe": "now", "citationRefs": [3]}],
        })
        out = normalize(raw, _lit(3))
        s = out.suggestions[0]
        self.assertEqual(s.confidence, "high")
        self.assertEqual(s.key_findings, ["tachycardia"])
        self.assertEqual(len(s.citations), 2)
        self.assertTrue(s.id)
        self.assertEqual(out.red_flags[0].citations[0].ref_number, 3)

    def test_partial_entries_keep_count(self):
        raw = json.dumps({"suggestions": [{"diagnosis": "A"}, "B", {}, None, {"diagnosis": "E"}]})
        out = normalize(raw, [])
        self.assertEqual(len(out.suggestions), 5)
        self.assertEqual(out.suggestions[1].diagnosis, "B")
        self.assertEqual(out.suggestions[3].diagnosis, "")
        self.assertEqual([s.severity_rank for s in out.suggestions], [1, 2, 3, 4, 5])
        for s in out.suggestions:
            self.assertEqual(s.confidence, "low")
            self.assertEqual(s.citations, [])
            self.assertEqual(s.workup, [])
        self.assertEqual(out.red_flags, [])

    def test_red_flag_defaults(self):
        raw = json.dumps({"redFlags": [{"flag": "x"}, {"flag": "y", "severity": "URGENT"}]})
        flags = normalize(raw, []).red_flags
        self.assertEqual(flags[0].severity, "warning")
        self.assertIsNone(flags[0].timeframe)
        self.assertEqual(flags[1].severity, "urgent")

    def test_ids_are_unique(self):
        raw = json.dumps({"suggestions": [{"diagnosis": "A"}, {"diagnosis": "A"}]})
        a, b = normalize(raw, []).suggestions
        self.assertNotEqual(a.id, b.id)

    def test_wrong_container_types(self):
        out = normalize(json.dumps({"suggestions": "none", "redFlags": {}}), [])
        self.assertEqual(out.suggestions, [])
        self.assertEqual(out.red_flags, [])

    def test_superscript_digits_fall_back_to_defaults(self):
        raw = json.dumps({"suggestions": [{"diagnosis": "A", "severity_rank": "\u00b2"},
                                          {"diagnosis": "B", "citationRefs": ["\u00b9", "2"]}]})
        out = normalize(raw, _lit(2))
        self.assertEqual([s.severity_rank for s in out.suggestions], [1, 2])
        self.assertEqual([c.ref_number for c in out.suggestions[1].citations], [2])

    def test_missing_confidence_is_not_logged(self):
        with self.assertNoLogs("diagnosis.normalizer", level="WARNING"):
            out = normalize(json.dumps({"suggestions": [{"diagnosis": "A"}]}), [])
        self.assertEqual(out.suggestions[0].confidence, "low")
        with self.assertLogs("diagnosis.normalizer", level="WARNING"):
            normalize(json.dumps({"suggestions": [{"diagnosis": "A", "confidence": "certain"}]}), [])

    def test_malformed_json(self):
        with self.assertRaises(MalformedResponse):
            normalize("not json", [])
        with self.assertRaises(MalformedResponse):
            normalize("[1, 2]", [])


if __name__ == "__main__":
    unittest.main()
