"""
Topic analysis agent: breaks an interview topic into concepts, skills and focus areas.
"""
from dataclasses import dataclass
from typing import Any, Dict

from ..models import ExperienceLevel, InterviewConfig, TopicAnalysis
from ..prompts import InterviewPrompts
from .base import AgentOutputRejected, BaseAgent, clean_strings

REQUIRED_LISTS = ("main_concepts", "skills", "focus_areas", "relevance_keywords")

# Matched by substring against the lower-cased topic, first hit wins
CANNED_ANALYSES: Dict[str, Dict[str, Any]] = {
    "react": {
        "main_concepts": ["Components", "Hooks", "State Management", "Rendering"],
        "skills": ["JSX", "React Hooks", "Component Design", "Testing", "Debugging"],
        "technologies": ["React", "Redux", "React Router", "Jest", "TypeScript"],
        "focus_areas": ["Component Design", "State Management", "Performance Optimization", "Testing"],
        "relevance_keywords": ["component", "hook", "state", "props", "render", "react", "jsx"],
    },
    "frontend": {
        "main_concepts": ["User Interface", "User Experience", "Web Development", "Client-side Programming"],
        "skills": ["HTML", "CSS", "JavaScript", "React", "Vue", "Angular"],
        "technologies": ["React", "Vue.js", "Angular", "TypeScript", "Webpack", "Sass"],
        "focus_areas": ["Component Design", "State Management", "Performance Optimization", "Responsive Design"],
        "relevance_keywords": ["component", "state", "props", "DOM", "CSS", "responsive", "performance"],
    },
    "backend": {
        "main_concepts": ["Server-side Development", "API Design", "Database Management", "System Architecture"],
        "skills": ["Node.js", "Python", "Java", "SQL", "API Development", "Database Design"],
        "technologies": ["Express.js", "Django", "Spring Boot", "PostgreSQL", "MongoDB", "Redis"],
        "focus_areas": ["API Design", "Database Optimization", "Security", "Scalability"],
        "relevance_keywords": ["API", "database", "server", "authentication", "security", "scalability"],
    },
    "javascript": {
        "main_concepts": ["Programming Fundamentals", "Asynchronous Programming", "Object-Oriented Programming"],
        "skills": ["ES6+", "Async/Await", "Promises", "Closures", "Prototypes"],
        "technologies": ["Node.js", "React", "Express", "TypeScript"],
        "focus_areas": ["Language Features", "Best Practices", "Performance", "Modern JavaScript"],
        "relevance_keywords": ["function", "async", "promise", "closure", "prototype", "ES6", "arrow function"],
    },
    "python": {
        "main_concepts": ["Language Fundamentals", "Data Structures", "Object-Oriented Programming", "Concurrency"],
        "skills": ["Idiomatic Python", "Packaging", "Testing", "Debugging", "Type Hints"],
        "technologies": ["pytest", "Django", "Flask", "NumPy", "asyncio"],
        "focus_areas": ["Language Features", "Data Structures", "Testing", "Performance"],
        "relevance_keywords": ["python", "generator", "decorator", "list", "dict", "class", "module"],
    },
    "data": {
        "main_concepts": ["Data Modeling", "Data Pipelines", "Statistics", "Data Quality"],
        "skills": ["SQL", "Python", "Data Cleaning", "Visualization", "ETL Design"],
        "technologies": ["pandas", "Spark", "Airflow", "PostgreSQL", "dbt"],
        "focus_areas": ["Data Modeling", "Pipeline Design", "Analysis", "Data Quality"],
        "relevance_keywords": ["data", "pipeline", "query", "schema", "model", "analysis", "ETL"],
    },
}

GENERIC_ANALYSIS: Dict[str, Any] = {
    "main_concepts": ["Technical Knowledge", "Problem Solving", "Best Practices"],
    "skills": ["Programming", "Debugging", "Testing", "Documentation"],
    "technologies": ["Version Control", "IDEs", "Testing Frameworks"],
    "focus_areas": ["Core Concepts", "Practical Application", "Industry Standards"],
    "relevance_keywords": ["code", "programming", "development", "software", "technical"],
}


@dataclass(frozen=True)
class TopicAnalysisRequest:
    config: InterviewConfig


def complexity_for(level: ExperienceLevel) -> str:
    if level == ExperienceLevel.FRESHER:
        return "low"
    if level in (ExperienceLevel.SENIOR, ExperienceLevel.LEAD_MANAGER):
        return "high"
    return "medium"


class TopicAnalysisAgent(BaseAgent):
    """Extracts key concepts, skills and focus areas for a topic."""

    name = "TopicAnalysisAgent"
    schema_name = "topic_analysis"

    def system_prompt(self) -> str:
        return InterviewPrompts.topic_analysis_system()

    def prepare_prompt(self, request: TopicAnalysisRequest, context: Dict[str, Any]) -> str:
        return InterviewPrompts.topic_analysis_prompt(request.config)

    def build(self, data: Dict[str, Any], request: TopicAnalysisRequest) -> TopicAnalysis:
        config = request.config
        analysis = TopicAnalysis(
            main_concepts=clean_strings(data.get("mainConcepts")),
            skills=clean_strings(data.get("skills")),
            technologies=clean_strings(data.get("technologies")),
            focus_areas=clean_strings(data.get("focusAreas")),
            relevance_keywords=clean_strings(data.get("relevanceKeywords")),
            complexity=data.get("complexity") or complexity_for(config.experience_level),
            question_categories=clean_strings(data.get("questionCategories"))
            or [config.style.value, "fundamentals", "practical"],
        )

        missing = [name for name in REQUIRED_LISTS if not getattr(analysis, name)]
        if missing:
            raise AgentOutputRejected(f"empty required lists: {', '.join(missing)}")
        return analysis

    def fallback(self, request: TopicAnalysisRequest) -> TopicAnalysis:
        config = request.config
        topic_lower = config.topic.lower()

        mapping = GENERIC_ANALYSIS
        for key, canned in CANNED_ANALYSES.items():
            if key in topic_lower:
                mapping = canned
                break

        self.logger.info(f"[{self.name}] Generated fallback analysis for topic: {config.topic}")
        return TopicAnalysis(
            main_concepts=list(mapping["main_concepts"]),
            skills=list(mapping["skills"]),
            technologies=list(mapping["technologies"]),
            focus_areas=list(mapping["focus_areas"]),
            relevance_keywords=list(mapping["relevance_keywords"]),
            complexity=complexity_for(config.experience_level),
            question_categories=[config.style.value, "fundamentals", "practical"],
        )
