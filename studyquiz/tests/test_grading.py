"""
Tests for answer grading.
"""

import unittest

from studyquiz.analytics.grading import grade_question, grade_submission, is_correct_answer, normalize_answer
from studyquiz.analytics.models import Difficulty, QuestionType


class TestIsCorrectAnswer(unittest.TestCase):
    """Normalized exact-match grading."""

    def test_case_and_whitespace_are_ignored(self):
        self.assertTrue(is_correct_answer(" Paris ", "paris"))
        self.assertTrue(is_correct_answer("TRUE", "true"))

    def test_different_text_is_incorrect(self):
        self.assertFalse(is_correct_answer("London", "Paris"))

    def test_missing_answer_is_incorrect(self):
        self.assertFalse(is_correct_answer(None, "Paris"))

    def test_inner_whitespace_is_significant(self):
        self.assertFalse(is_correct_answer("New  York", "New York"))

    def test_empty_canonical_answer_is_never_correct(self):
        self.assertFalse(is_correct_answer("", ""))
        self.assertFalse(is_correct_answer("   ", "  "))
        self.assertFalse(is_correct_answer("anything", ""))

    def test_casefold_handles_special_letters(self):
        self.assertTrue(is_correct_answer("STRASSE", "straße"))

    def test_normalize_answer(self):
        self.assertEqual(normalize_answer("  Mixed Case\n"), "mixed case")


class TestGradeQuestion(unittest.TestCase):
    """Building answer records from question dicts."""

    def test_defaults_apply_when_fields_are_absent(self):
        record = grade_question(
            {"id": 7, "type": "true-false", "correct_answer": "True"},
            "true"
        )
        self.assertEqual(record.question_id, "7")
        self.assertEqual(record.question_type, QuestionType.TRUE_FALSE)
        self.assertEqual(record.difficulty, Difficulty.MEDIUM)
        self.assertEqual(record.topics, ())
        self.assertTrue(record.is_correct)

    def test_fields_are_carried_over(self):
        record = grade_question(
            {
                "id": "q1",
                "question": "2 + 2?",
                "type": "short-answer",
                "correct_answer": "4",
                "difficulty": "hard",
                "topics": ["arithmetic", "addition"],
            },
            "5"
        )
        self.assertEqual(record.question, "2 + 2?")
        self.assertEqual(record.difficulty, Difficulty.HARD)
        self.assertEqual(record.topics, ("arithmetic", "addition"))
        self.assertEqual(record.user_answer, "5")
        self.assertFalse(record.is_correct)

    def test_unknown_question_type_is_rejected(self):
        with self.assertRaises(ValueError):
            grade_question({"id": "q1", "type": "essay", "correct_answer": "x"}, "x")


class TestGradeSubmission(unittest.TestCase):

    def test_answers_are_looked_up_by_string_id(self):
        questions = [
            {"id": 1, "type": "multiple-choice", "correct_answer": "B"},
            {"id": "2", "type": "multiple-choice", "correct_answer": "C"},
            {"id": 3, "type": "multiple-choice", "correct_answer": "D"},
        ]
        records = grade_submission(questions, {"1": "b", "2": "A"})

        self.assertEqual([r.question_id for r in records], ["1", "2", "3"])
        self.assertEqual([r.is_correct for r in records], [True, False, False])
        self.assertIsNone(records[2].user_answer)

    def test_empty_quiz(self):
        self.assertEqual(grade_submission([], {}), [])


if __name__ == "__main__":
    unittest.main()
