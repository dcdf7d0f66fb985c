import os
import shutil
import tempfile
import unittest

from diagnosis.schemas import AIFeedback, FeedbackStats
from feedback.store import (
    get_engine, ensure_feedback_table, record_feedback, get_feedback_stats, get_learning_insights,
    derive_insights, list_feedback, UNAVAILABLE_MSG,
)


def _fb(kind, correction=None, n=0):
    return AIFeedback(suggestion_id=f"s{n}", case_id="c1", feedback_type=kind, user_correction=correction)


class TestFeedbackStore(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.engine = get_engine(f"sqlite:///{os.path.join(self.tmp, 'feedback.db')}")
        ensure_feedback_table(self.engine)

    def tearDown(self):
        self.engine.dispose()
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_empty_store_stats(self):
        stats = get_feedback_stats(self.engine)
        self.assertEqual(stats, FeedbackStats(available=True))
        self.assertEqual(stats.acceptance_rate, 0)

    def test_all_accepted(self):
        for i in range(10):
            self.assertTrue(record_feedback(self.engine, _fb("accepted", n=i)).success)
        stats = get_feedback_stats(self.engine)
        self.assertEqual(stats.total, 10)
        self.assertEqual(stats.accepted, 10)
        self.assertEqual(stats.acceptance_rate, 100)
        self.assertEqual(len(list_feedback(self.engine)), 10)

    def test_mixed_counts(self):
        for kind in ("accepted", "accepted", "modified", "rejected"):
            record_feedback(self.engine, _fb(kind))
        stats = get_feedback_stats(self.engine)
        self.assertEqual((stats.accepted, stats.modified, stats.rejected), (2, 1, 1))
        self.assertEqual(stats.acceptance_rate, 50)

    def test_missing_table_is_persistence_error(self):
        engine = get_engine(f"sqlite:///{os.path.join(self.tmp, 'empty.db')}")
        try:
            res = record_feedback(engine, _fb("accepted"))
            self.assertFalse(res.success)
            self.assertEqual(res.error_code, "persistence_error")
            self.assertFalse(get_feedback_stats(engine).available)
            self.assertEqual(get_learning_insights(engine), ["Unable to load learning insights"])
            self.assertEqual(list_feedback(engine), [])
        finally:
            engine.dispose()

    def test_insights_from_store(self):
        for i in range(12):
            record_feedback(self.engine, _fb("rejected", n=i))
        record_feedback(self.engine, _fb("modified", correction="Pulmonary embolism"))
        record_feedback(self.engine, _fb("modified", correction=""))
        insights = get_learning_insights(self.engine)
        self.assertIn("1 diagnoses have been corrected by clinicians", insights)
        self.assertIn("AI suggestions need improvement - acceptance rate below 70%", insights)


class TestFeedbackWithoutStore(unittest.TestCase):
    def test_unconfigured(self):
        self.assertIsNone(get_engine(""))
        res = record_feedback(None, _fb("accepted"))
        self.assertFalse(res.success)
        self.assertEqual(res.error_code, "persistence_unavailable")
        self.assertEqual(res.error, UNAVAILABLE_MSG)
        self.assertEqual(get_feedback_stats(None), FeedbackStats(available=False))
        self.assertEqual(get_learning_insights(None),
                         ["Self-learning analytics unavailable - database not configured"])
        self.assertEqual(list_feedback(None), [])


class TestDeriveInsights(unittest.TestCase):
    def test_thresholds_need_more_than_ten(self):
        self.assertEqual(derive_insights(FeedbackStats(total=10, accepted=0, available=True)), [])
        high = FeedbackStats(total=20, accepted=19, acceptance_rate=95, available=True)
        self.assertEqual(derive_insights(high), ["AI suggestions performing well - 90%+ acceptance rate"])
        mid = FeedbackStats(total=20, accepted=16, acceptance_rate=80, available=True)
        self.assertEqual(derive_insights(mid), [])


if __name__ == "__main__":
    unittest.main()
