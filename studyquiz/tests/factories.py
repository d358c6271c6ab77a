"""
Builders for questions, quizzes and stores used across the analytics tests.
"""

from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from studyquiz.analytics.sql_store import SQLAlchemyAnalyticsStore
from studyquiz.database.init_db import create_schema


def make_question(
    question_id: Any,
    correct_answer: str = "A",
    topics: Sequence[str] = ("algebra",),
    question_type: str = "multiple-choice",
    difficulty: Optional[str] = "medium"
) -> Dict[str, Any]:
    """Build a question dict in the shape accepted by quiz submission."""
    question = {
        "id": question_id,
        "question": f"Question {question_id}?",
        "type": question_type,
        "correct_answer": correct_answer,
        "topics": list(topics),
    }
    if difficulty is not None:
        question["difficulty"] = difficulty
    return question


def make_quiz(outcomes: Sequence[bool], topics: Sequence[str] = ("algebra",), prefix: str = "q"):
    """
    Build questions and answers producing the given correctness sequence.

    Returns:
        Tuple of (questions, user_answers)
    """
    questions: List[Dict[str, Any]] = []
    answers: Dict[str, str] = {}
    for i, correct in enumerate(outcomes):
        question_id = f"{prefix}{i}"
        questions.append(make_question(question_id, correct_answer="A", topics=topics))
        answers[question_id] = "A" if correct else "B"
    return questions, answers


async def open_sql_store(database_url: str, **kwargs):
    """Create the schema on a fresh engine and return (engine, store)."""
    engine = create_async_engine(database_url)
    await create_schema(engine)
    factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine, SQLAlchemyAnalyticsStore(factory, **kwargs)
