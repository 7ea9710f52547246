"""
Data models for the interview rehearsal system.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, List, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import ConfigurationError


class InterviewStyle(str, Enum):
    """Supported interview styles."""
    TECHNICAL = "technical"
    HR = "hr"
    BEHAVIORAL = "behavioral"
    SALARY_NEGOTIATION = "salary-negotiation"
    CASE_STUDY = "case-study"


class ExperienceLevel(str, Enum):
    """Candidate experience levels, ordered by seniority."""
    FRESHER = "fresher"
    JUNIOR = "junior"
    MID_LEVEL = "mid-level"
    SENIOR = "senior"
    LEAD_MANAGER = "lead-manager"


class SessionStatus(str, Enum):
    """Interview session states."""
    WAITING = "waiting"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


SCORE_DIMENSIONS = ("clarity", "structure", "technical", "communication", "confidence", "relevance")


class InterviewConfig(BaseModel):
    """Immutable interview configuration, validated on construction."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    topic: str
    style: InterviewStyle
    experience_level: ExperienceLevel = Field(alias="experienceLevel")
    company_name: Optional[str] = Field(default=None, alias="companyName")
    duration: int = Field(gt=0, description="Interview length in minutes")

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("topic must not be blank")
        return value

    @field_validator("company_name")
    @classmethod
    def _blank_company_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InterviewConfig":
        """Build a config from camelCase or snake_case keys, raising ConfigurationError."""
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid interview configuration: {e}") from e

    @property
    def company_label(self) -> str:
        return self.company_name or "General"

    def to_prompt_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for prompts and reports."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(frozen=True)
class TopicAnalysis:
    """Structured breakdown of an interview topic."""
    main_concepts: List[str]
    skills: List[str]
    technologies: List[str]
    focus_areas: List[str]
    relevance_keywords: List[str]
    complexity: str = "medium"
    question_categories: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TopicAnalysis":
        return cls(
            main_concepts=list(data.get("mainConcepts", [])),
            skills=list(data.get("skills", [])),
            technologies=list(data.get("technologies", [])),
            focus_areas=list(data.get("focusAreas", [])),
            relevance_keywords=list(data.get("relevanceKeywords", [])),
            complexity=data.get("complexity", "medium"),
            question_categories=list(data.get("questionCategories", [])),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "mainConcepts": list(self.main_concepts),
            "skills": list(self.skills),
            "technologies": list(self.technologies),
            "focusAreas": list(self.focus_areas),
            "relevanceKeywords": list(self.relevance_keywords),
            "complexity": self.complexity,
            "questionCategories": list(self.question_categories),
        }


@dataclass
class QuestionSpec:
    """Specification for a single question to generate."""
    category: str
    difficulty: str
    focus_area: str
    concepts: List[str] = field(default_factory=list)
    avoid_topics: List[str] = field(default_factory=list)
    question_type: str = "theoretical"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QuestionSpec":
        return cls(
            category=data.get("category", ""),
            difficulty=data.get("difficulty", "medium"),
            focus_area=data.get("focusArea", ""),
            concepts=list(data.get("concepts", [])),
            avoid_topics=list(data.get("avoidTopics", [])),
            question_type=data.get("questionType", "theoretical"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "difficulty": self.difficulty,
            "focusArea": self.focus_area,
            "concepts": list(self.concepts),
            "avoidTopics": list(self.avoid_topics),
            "questionType": self.question_type,
        }


@dataclass
class GeneratedQuestion:
    """A generated question and the spec it was built from."""
    text: str
    difficulty: str
    focus_area: str
    concepts: List[str] = field(default_factory=list)
    question_type: str = "theoretical"
    topic_relevance: str = "medium"
    fallback: bool = False
    reasoning: str = ""

    @property
    def metadata(self) -> Dict[str, Any]:
        return {
            "difficulty": self.difficulty,
            "focusArea": self.focus_area,
            "concepts": list(self.concepts),
            "questionType": self.question_type,
            "topicRelevance": self.topic_relevance,
            "fallback": self.fallback,
        }


@dataclass
class QuestionValidation:
    """Quality check of a generated question."""
    is_valid: bool
    topic_relevance: int
    difficulty_match: int
    clarity: int
    overall_score: int
    issues: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    decision: str = "approve"
    reasoning: str = ""


@dataclass
class QuestionPlan:
    """Planning output: what the next question should look like."""
    next_question_spec: QuestionSpec
    total_questions: int
    progression: str = "easy-to-hard"
    focus_distribution: Dict[str, int] = field(default_factory=dict)
    reasoning: str = ""


@dataclass(frozen=True)
class InterviewResponse:
    """A candidate's answer to one question. Never mutated once stored."""
    question_id: str
    question_text: str
    response_text: str
    timestamp: float
    duration_ms: int = 0
    audio_metadata: Optional[Dict[str, Any]] = None


@dataclass
class ResponseAnalysis:
    """Scored analysis of a single response."""
    scores: Dict[str, int]
    score: int
    feedback: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    key_insights: List[str] = field(default_factory=list)
    fallback: bool = False


@dataclass
class OverallAnalysis:
    """Interview-wide analysis synthesized from all response analyses."""
    overall_score: int
    performance_level: str
    trends: Dict[str, str]
    strengths: List[str]
    improvements: List[str]
    recommendations: List[str]
    next_steps: List[str]
    executive_summary: str
    dimension_scores: Dict[str, int] = field(default_factory=dict)
    fallback: bool = False


@dataclass
class QuestionReview:
    """Per-question slice of the final report."""
    question_id: str
    question: str
    response: str
    score: int
    feedback: str
    strengths: List[str] = field(default_factory=list)
    improvements: List[str] = field(default_factory=list)
    detailed_scores: Dict[str, int] = field(default_factory=dict)


@dataclass
class AnalysisReport:
    """Final interview report."""
    overall: OverallAnalysis
    question_reviews: List[QuestionReview]
    metadata: Dict[str, Any]
    completion: Optional[Dict[str, Any]] = None

    @property
    def overall_score(self) -> int:
        return self.overall.overall_score

    @property
    def performance_level(self) -> str:
        return self.overall.performance_level

    def to_dict(self) -> Dict[str, Any]:
        overall = self.overall
        return {
            "overallScore": overall.overall_score,
            "performanceLevel": overall.performance_level,
            "strengths": list(overall.strengths),
            "improvements": list(overall.improvements),
            "responseAnalysis": dict(overall.dimension_scores),
            "trends": dict(overall.trends),
            "recommendations": list(overall.recommendations),
            "executiveSummary": overall.executive_summary,
            "nextSteps": list(overall.next_steps),
            "questionReviews": [
                {
                    "questionId": r.question_id,
                    "question": r.question,
                    "response": r.response,
                    "score": r.score,
                    "feedback": r.feedback,
                    "strengths": list(r.strengths),
                    "improvements": list(r.improvements),
                    "detailedScores": dict(r.detailed_scores),
                }
                for r in self.question_reviews
            ],
            "metadata": dict(self.metadata),
            "completion": dict(self.completion) if self.completion else None,
        }


@dataclass(frozen=True)
class CachedQuestion:
    """A pre-fetched question for a specific question number."""
    question_number: int
    text: str


@dataclass
class Session:
    """Mutable record of one interview attempt. Owned by the session manager."""
    session_id: str
    config: InterviewConfig
    participant_identity: str
    started_at: float
    status: SessionStatus = SessionStatus.WAITING
    current_question_index: int = 0
    questions: List[str] = field(default_factory=list)
    responses: List[InterviewResponse] = field(default_factory=list)
    cached_next_question: Optional[CachedQuestion] = None
    paused_at: Optional[float] = None
    paused_seconds: float = 0.0
    ended_at: Optional[float] = None
    ended_early: bool = False
    room_id: Optional[str] = None
    ws_url: Optional[str] = None
    participant_credential: Optional[str] = None
    host_credential: Optional[str] = None
    report: Optional[AnalysisReport] = None

    @property
    def current_question(self) -> Optional[str]:
        return self.questions[-1] if self.questions else None


def performance_level_for(score: float) -> str:
    """Map an overall score onto the fixed performance bands."""
    if score >= 85:
        return "excellent"
    if score >= 70:
        return "good"
    if score >= 60:
        return "fair"
    return "needs_improvement"
