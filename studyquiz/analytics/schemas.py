"""
Request and response models of the analytics API.
"""

from datetime import datetime
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from studyquiz.analytics.models import (
    BreakdownPerformance,
    Difficulty,
    QuestionType,
    QuizSubmission,
    TopicPerformance,
)


class QuestionPayload(BaseModel):
    id: Union[str, int] = Field(..., description="Question ID, unique within the quiz")
    question: str = Field("", description="Question text")
    type: QuestionType = Field(..., description="Question format")
    correct_answer: str = Field(..., description="Canonical correct answer")
    difficulty: Difficulty = Field(Difficulty.MEDIUM, description="Question difficulty")
    topics: List[str] = Field(default_factory=list, description="Topic labels")


class QuizResultRequest(BaseModel):
    """
    Quiz submission body.

    The three required inputs are optional here so that their absence is
    reported with a 400 by the service rather than a schema error.
    """
    user_id: Optional[str] = Field(None, description="Learner ID")
    questions: Optional[List[QuestionPayload]] = Field(None, description="Questions of the quiz")
    user_answers: Optional[Dict[str, Optional[str]]] = Field(None, description="Answers keyed by question ID")
    score: Optional[int] = Field(None, ge=0, description="Reported score, defaults to the graded count")
    total_questions: Optional[int] = Field(None, ge=0, description="Question count, defaults to len(questions)")
    time_taken: Optional[float] = Field(None, ge=0, description="Elapsed time in seconds")
    quiz_id: Optional[str] = Field(None, description="Quiz ID")
    study_material_id: Optional[str] = Field(None, description="Study material ID")
    submission_id: Optional[str] = Field(None, description="Client-chosen submission ID, rejected if reused")
    completed_at: Optional[datetime] = Field(None, description="Completion time, defaults to now")


class AnswerResponse(BaseModel):
    question_id: str
    question: str
    type: str
    user_answer: Optional[str] = None
    correct_answer: str
    is_correct: bool
    topics: List[str]
    difficulty: str


class TallyResponse(BaseModel):
    correct: int
    total: int


class QuizResultResponse(BaseModel):
    id: str = Field(..., description="Submission ID")
    user_id: str = Field(..., description="Learner ID")
    quiz_id: Optional[str] = None
    study_material_id: Optional[str] = None
    answers: List[AnswerResponse]
    score: int
    total_questions: int
    time_taken: Optional[float] = None
    topic_performance: Dict[str, TallyResponse]
    question_type_performance: Dict[str, TallyResponse]
    difficulty_performance: Dict[str, TallyResponse]
    completed_at: str

    @classmethod
    def from_domain(cls, submission: QuizSubmission) -> 'QuizResultResponse':
        return cls.model_validate(submission.to_dict())


class TopicPerformanceResponse(BaseModel):
    user_id: str = Field(..., description="Learner ID")
    topic: str = Field(..., description="Topic label")
    total_attempts: int = Field(..., description="Answers recorded on the topic")
    correct_answers: int = Field(..., description="Correct answers on the topic")
    accuracy_percentage: float = Field(..., description="Lifetime accuracy")
    is_weakness: bool = Field(..., description="Whether the rolling window flags the topic")
    rolling_accuracy: Optional[float] = Field(None, description="Accuracy over the rolling window, null on cold start")
    last_updated: str = Field(..., description="Last update time")

    @classmethod
    def from_domain(cls, aggregate: TopicPerformance) -> 'TopicPerformanceResponse':
        return cls.model_validate(aggregate.to_dict())


class BreakdownResponse(BaseModel):
    dimension: str
    value: str
    correct: int
    total: int
    accuracy_percentage: float
    last_updated: str

    @classmethod
    def from_domain(cls, breakdown: BreakdownPerformance) -> 'BreakdownResponse':
        return cls.model_validate(breakdown.to_dict())


class SubmitQuizResultResponse(BaseModel):
    success: bool = Field(..., description="True when every aggregate was updated")
    result: QuizResultResponse
    analytics: List[TopicPerformanceResponse] = Field(..., description="Updated topic aggregates")
    failed_topics: List[str] = Field(default_factory=list, description="Topics whose update failed")
    failed_breakdowns: List[str] = Field(default_factory=list, description="Breakdowns whose update failed")


class QuizResultsResponse(BaseModel):
    results: List[QuizResultResponse]


class SummaryResponse(BaseModel):
    weaknesses: List[TopicPerformanceResponse]
    improving: List[TopicPerformanceResponse]
    strengths: List[TopicPerformanceResponse]
    overall_accuracy: float = Field(..., description="Sum of scores over sum of question counts, in percent")
    total_attempts: int = Field(..., description="Sum of question counts over all submissions")
    total_correct: int = Field(..., description="Sum of scores over all submissions")
    total_topics: int


class PerformanceAnalyticsResponse(BaseModel):
    analytics: List[TopicPerformanceResponse]
    summary: SummaryResponse
    question_types: List[BreakdownResponse]
    difficulties: List[BreakdownResponse]


class WeaknessesResponse(BaseModel):
    weaknesses: List[TopicPerformanceResponse]


class PersonalizationResponse(BaseModel):
    focus_topics: List[str] = Field(..., description="Weak topics to emphasize, weakest first")
    min_share: float = Field(..., description="Suggested minimum share of questions on focus topics")
    max_share: float = Field(..., description="Suggested maximum share of questions on focus topics")
