"""
Analytics API Router

This module provides the HTTP endpoints for:
- Submitting quiz results
- Listing recent quiz results
- Retrieving performance analytics and weaknesses
- Retrieving personalization guidance for the question generator
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from studyquiz.analytics.schemas import (
    BreakdownResponse,
    PerformanceAnalyticsResponse,
    PersonalizationResponse,
    QuizResultRequest,
    QuizResultResponse,
    QuizResultsResponse,
    SubmitQuizResultResponse,
    SummaryResponse,
    TopicPerformanceResponse,
    WeaknessesResponse,
)
from studyquiz.analytics.service import PerformanceAnalyticsService
from studyquiz.common.exceptions import ConfigurationError
from studyquiz.common.logger import app_logger

logger = app_logger.getChild("analytics.router")

router = APIRouter(prefix="/analytics", tags=["Analytics"])


def get_analytics_service(request: Request) -> PerformanceAnalyticsService:
    """Dependency returning the service created at application startup."""
    service = getattr(request.app.state, "analytics_service", None)
    if service is None:
        raise ConfigurationError("Analytics service not initialized")
    return service


@router.post("/quiz-results", response_model=SubmitQuizResultResponse)
async def submit_quiz_result(
    payload: QuizResultRequest,
    service: PerformanceAnalyticsService = Depends(get_analytics_service)
):
    """Grade and record a quiz submission, then update the learner's analytics."""
    questions = None
    if payload.questions is not None:
        questions = [q.model_dump(mode="json") for q in payload.questions]

    result = await service.submit_quiz_result(
        learner_id=payload.user_id,
        questions=questions,
        user_answers=payload.user_answers,
        score=payload.score,
        total_questions=payload.total_questions,
        time_taken=payload.time_taken,
        quiz_id=payload.quiz_id,
        study_material_id=payload.study_material_id,
        submission_id=payload.submission_id,
        completed_at=payload.completed_at,
    )

    return SubmitQuizResultResponse(
        success=result.complete,
        result=QuizResultResponse.from_domain(result.submission),
        analytics=[TopicPerformanceResponse.from_domain(a) for a in result.topics.values()],
        failed_topics=list(result.failed_topics),
        failed_breakdowns=list(result.failed_breakdowns),
    )


@router.get("/quiz-results", response_model=QuizResultsResponse)
async def list_quiz_results(
    user_id: Optional[str] = Query(None, description="Learner ID"),
    limit: int = Query(10, description="Maximum number of results"),
    service: PerformanceAnalyticsService = Depends(get_analytics_service)
):
    results = await service.list_quiz_results(user_id, limit=limit)
    return QuizResultsResponse(results=[QuizResultResponse.from_domain(r) for r in results])


@router.get("/performance-analytics", response_model=PerformanceAnalyticsResponse)
async def get_performance_analytics(
    user_id: Optional[str] = Query(None, description="Learner ID"),
    service: PerformanceAnalyticsService = Depends(get_analytics_service)
):
    """Get all topic aggregates with their bands, overall accuracy and breakdowns."""
    summary = await service.get_performance_summary(user_id)
    return PerformanceAnalyticsResponse(
        analytics=[TopicPerformanceResponse.from_domain(a) for a in summary.analytics],
        summary=SummaryResponse(
            weaknesses=[TopicPerformanceResponse.from_domain(a) for a in summary.weaknesses],
            improving=[TopicPerformanceResponse.from_domain(a) for a in summary.improving],
            strengths=[TopicPerformanceResponse.from_domain(a) for a in summary.strengths],
            overall_accuracy=summary.overall_accuracy,
            total_attempts=summary.total_attempts,
            total_correct=summary.total_correct,
            total_topics=summary.total_topics,
        ),
        question_types=[BreakdownResponse.from_domain(b) for b in summary.question_types],
        difficulties=[BreakdownResponse.from_domain(b) for b in summary.difficulties],
    )


@router.get("/user-weaknesses", response_model=WeaknessesResponse)
async def get_user_weaknesses(
    user_id: Optional[str] = Query(None, description="Learner ID"),
    service: PerformanceAnalyticsService = Depends(get_analytics_service)
):
    """Get the topics flagged as weakness, lowest accuracy first."""
    weaknesses = await service.get_weaknesses(user_id)
    return WeaknessesResponse(weaknesses=[TopicPerformanceResponse.from_domain(a) for a in weaknesses])


@router.get("/personalization", response_model=PersonalizationResponse)
async def get_personalization(
    user_id: Optional[str] = Query(None, description="Learner ID"),
    focus_on_weaknesses: bool = Query(True, description="Whether to focus the next quiz on weak topics"),
    service: PerformanceAnalyticsService = Depends(get_analytics_service)
):
    bias = await service.generation_bias(user_id, focus_on_weaknesses)
    return PersonalizationResponse(**bias.to_dict())
