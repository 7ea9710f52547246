"""
Performance-analysis orchestrator.

Fans the response analysis agent out over every answer, synthesizes the
results with the overall analysis agent, and caches the final report per
session key.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..config import ANALYSIS_WORKERS
from .agents import (
    OverallAnalysisAgent,
    OverallAnalysisRequest,
    ResponseAnalysisAgent,
    ResponseAnalysisRequest,
)
from .events import AnalysisCompletedEvent, InterviewEventBus
from .models import (
    AnalysisReport,
    InterviewConfig,
    InterviewResponse,
    QuestionReview,
    ResponseAnalysis,
)

logger = logging.getLogger("analysis_orchestrator")


class PerformanceAnalysisOrchestrator:
    """Builds the final interview report from stored responses."""

    def __init__(self,
                 llm_client,
                 max_workers: int = ANALYSIS_WORKERS,
                 event_bus: Optional[InterviewEventBus] = None):
        self.llm_client = llm_client
        self.max_workers = max(1, max_workers)
        self.event_bus = event_bus

        self.response_agent = ResponseAnalysisAgent(llm_client, event_bus)
        self.overall_agent = OverallAnalysisAgent(llm_client, event_bus)

        self._cache: Dict[str, AnalysisReport] = {}
        self._lock = threading.Lock()
        self._stats = {"reports_generated": 0, "cache_hits": 0, "responses_analyzed": 0, "fallback_responses": 0}

    def analyze(self,
                responses: Sequence[InterviewResponse],
                config: InterviewConfig,
                session_key: Optional[str] = None,
                session_id: Optional[str] = None) -> AnalysisReport:
        """
        Analyze all responses of one interview.

        Args:
            responses: Stored answers, in question order
            config: Interview configuration
            session_key: Cache key; a repeated key returns the cached report
            session_id: Tags emitted events

        Returns:
            AnalysisReport with one question review per response
        """
        if session_key is not None:
            with self._lock:
                cached = self._cache.get(session_key)
                if cached is not None:
                    self._stats["cache_hits"] += 1
                    logger.debug(f"Returning cached report for {session_key}")
                    return cached

        responses = list(responses)
        context = {"session_id": session_id}
        session_metadata = self.session_metadata(responses, config)

        if responses:
            logger.info(f"Analyzing {len(responses)} responses ({self.max_workers} workers)")
            analyses = self._analyze_responses(responses, config, context)
            overall_result = self.overall_agent.execute_with_fallback(
                OverallAnalysisRequest(responses, analyses, config, session_metadata), context
            )
            overall = overall_result.data
            method = "fallback" if overall_result.used_fallback else "agentic"
        else:
            logger.info("No responses to analyze, producing empty report")
            analyses = []
            overall = self.overall_agent.fallback(OverallAnalysisRequest([], [], config, session_metadata))
            method = "fallback"

        fallback_count = sum(1 for a in analyses if a.fallback)
        report = AnalysisReport(
            overall=overall,
            question_reviews=[self._review(r, a) for r, a in zip(responses, analyses)],
            metadata={
                "generated_at": datetime.now().isoformat(),
                "analysis_method": method,
                "responses_analyzed": len(analyses),
                "fallback_responses": fallback_count,
                "session": session_metadata,
            },
        )

        with self._lock:
            if session_key is not None:
                report = self._cache.setdefault(session_key, report)
            self._stats["reports_generated"] += 1
            self._stats["responses_analyzed"] += len(analyses)
            self._stats["fallback_responses"] += fallback_count

        if self.event_bus:
            self.event_bus.emit(AnalysisCompletedEvent(
                session_id, report.overall_score, report.performance_level, method, len(analyses)
            ))
        logger.info(f"Report ready: score {report.overall_score} ({report.performance_level}, {method})")
        return report

    @staticmethod
    def session_metadata(responses: Sequence[InterviewResponse], config: InterviewConfig) -> Dict[str, Any]:
        total_ms = sum(r.duration_ms or 0 for r in responses)
        return {
            "totalDurationMs": total_ms,
            "averageResponseDurationMs": round(total_ms / len(responses)) if responses else 0,
            "totalResponses": len(responses),
            "style": config.style.value,
            "experienceLevel": config.experience_level.value,
        }

    def clear_cache(self, session_key: Optional[str] = None) -> None:
        """Drop one cached report, or all of them."""
        with self._lock:
            if session_key is None:
                self._cache.clear()
            else:
                self._cache.pop(session_key, None)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            snapshot = dict(self._stats)
            snapshot["cached_reports"] = len(self._cache)
        return snapshot

    def _analyze_responses(self, responses: List[InterviewResponse], config: InterviewConfig,
                           context: Dict[str, Any]) -> List[ResponseAnalysis]:
        requests = [
            ResponseAnalysisRequest(r.question_text, r.response_text, config, question_number=i)
            for i, r in enumerate(responses, start=1)
        ]
        if self.max_workers == 1 or len(requests) == 1:
            return [self._analyze_one(request, context) for request in requests]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(requests)),
                                thread_name_prefix="response-analysis") as pool:
            return list(pool.map(lambda request: self._analyze_one(request, context), requests))

    def _analyze_one(self, request: ResponseAnalysisRequest, context: Dict[str, Any]) -> ResponseAnalysis:
        try:
            return self.response_agent.execute_with_fallback(request, context).data
        except Exception as e:
            # One bad response must not abort the report
            logger.error(f"Response {request.question_number} analysis failed: {e}")
            return self.response_agent.fallback(request)

    @staticmethod
    def _review(response: InterviewResponse, analysis: ResponseAnalysis) -> QuestionReview:
        return QuestionReview(
            question_id=response.question_id,
            question=response.question_text,
            response=response.response_text,
            score=analysis.score,
            feedback=analysis.feedback,
            strengths=list(analysis.strengths),
            improvements=list(analysis.improvements),
            detailed_scores=dict(analysis.scores),
        )
