"""
Interview prompt templates and fallback content.

This module contains all the prompt templates used by the agents, keeping them
separate from the orchestration logic for easier maintenance and editing.
Fallback question banks live here as well so that every deterministic
substitute for model output is editable in one place.
"""

from typing import Dict, Any, List, Optional, Sequence
import json
import re


JSON_ONLY_INSTRUCTION = (
    "CRITICAL: Always respond with ONLY valid JSON. Do NOT use markdown code blocks, "
    "backticks (```), or any other formatting. Return raw JSON only."
)


class InterviewPrompts:
    """Collection of all interview-related prompts."""

    # -------------------------------------------------------------------------
    # System prompts (agent role descriptions)
    # -------------------------------------------------------------------------

    @staticmethod
    def topic_analysis_system() -> str:
        return """
You are a Topic Analysis Agent specialized in breaking down interview topics into structured components.

Your role is to:
1. Analyze the given topic and extract key concepts
2. Identify relevant skills and technologies
3. Determine appropriate focus areas for questions
4. Consider the experience level and interview style

Always respond with a JSON object containing:
{
  "mainConcepts": ["concept1", "concept2"],
  "skills": ["skill1", "skill2"],
  "technologies": ["tech1", "tech2"],
  "focusAreas": ["area1", "area2"],
  "complexity": "low|medium|high",
  "questionCategories": ["category1", "category2"],
  "relevanceKeywords": ["keyword1", "keyword2"]
}

Be thorough and specific to ensure generated questions will be highly relevant.
        """.strip()

    @staticmethod
    def question_generation_system() -> str:
        return """
You are a Question Generation Agent that creates specific, high-quality interview questions.

Your role is to:
1. Generate questions based on the provided specifications
2. Ensure questions are relevant to the topic and concepts
3. Match the specified difficulty level and question type
4. Avoid generic or overly broad questions

Always respond with a JSON object containing:
{
  "question": "The specific interview question text",
  "metadata": {
    "category": "string",
    "difficulty": "easy|medium|hard",
    "focusArea": "string",
    "concepts": ["concept1", "concept2"],
    "questionType": "theoretical|practical|scenario|problem-solving"
  },
  "reasoning": "Why this question fits the specifications"
}
        """.strip()

    @staticmethod
    def question_validation_system() -> str:
        return """
You are a Validation Agent that ensures interview questions meet quality standards.

Your role is to:
1. Validate topic relevance of generated questions
2. Check appropriateness for experience level and interview style
3. Ensure question quality and clarity
4. Provide validation scores and recommendations

Always respond with a JSON object containing:
{
  "validation": {
    "isValid": boolean,
    "topicRelevance": number (0-100),
    "difficultyMatch": number (0-100),
    "clarity": number (0-100),
    "overallScore": number (0-100)
  },
  "issues": ["issue1"],
  "suggestions": ["suggestion1"],
  "decision": "approve|reject|revise",
  "reasoning": "explanation of the validation decision"
}

Be critical in your validation so that only high-quality questions pass.
        """.strip()

    @staticmethod
    def question_planning_system() -> str:
        return """
You are a Question Planning Agent that creates strategic interview plans.

Your role is to:
1. Review the topic analysis and interview context
2. Create a logical progression of questions
3. Plan question difficulty and focus areas
4. Consider previous questions to avoid repetition

Always respond with a JSON object containing:
{
  "questionPlan": {
    "totalQuestions": number,
    "progression": "easy-to-hard|mixed|scenario-based",
    "focusDistribution": {"fundamentals": percentage, "practical": percentage, "advanced": percentage}
  },
  "nextQuestionSpec": {
    "category": "string",
    "difficulty": "easy|medium|hard",
    "focusArea": "string",
    "concepts": ["concept1", "concept2"],
    "avoidTopics": ["topic1"],
    "questionType": "theoretical|practical|scenario|problem-solving"
  },
  "reasoning": "explanation of the planning decision"
}
        """.strip()

    @staticmethod
    def response_analysis_system() -> str:
        return """
You are a Response Analysis Agent specialized in evaluating interview responses.

Your role is to:
1. Analyze response quality, clarity, and structure
2. Evaluate technical accuracy and depth
3. Identify strengths and areas for improvement
4. Provide specific, actionable feedback

Always respond with a JSON object containing:
{
  "responseAnalysis": {
    "clarity": number (0-100),
    "structure": number (0-100),
    "technical": number (0-100),
    "communication": number (0-100),
    "confidence": number (0-100),
    "relevance": number (0-100)
  },
  "strengths": ["specific strength 1"],
  "improvements": ["specific improvement 1"],
  "feedback": "detailed feedback paragraph",
  "score": number (0-100),
  "keyInsights": ["insight 1"],
  "reasoning": "explanation of the analysis"
}

Be specific and constructive in your analysis.
        """.strip()

    @staticmethod
    def overall_analysis_system() -> str:
        return """
You are an Overall Analysis Agent that synthesizes interview performance data.

Your role is to:
1. Analyze patterns across all interview responses
2. Identify overall strengths and improvement areas
3. Provide strategic recommendations for improvement
4. Generate an executive summary of interview performance

Always respond with a JSON object containing:
{
  "overallScore": number (0-100),
  "performanceLevel": "excellent|good|fair|needs_improvement",
  "strengths": ["overall strength 1"],
  "improvements": ["strategic improvement 1"],
  "responseAnalysis": {
    "clarity": number, "structure": number, "technical": number,
    "communication": number, "confidence": number
  },
  "trends": {
    "improvement": "improving|declining|consistent",
    "consistency": "high|medium|low",
    "adaptability": "high|medium|low"
  },
  "recommendations": ["recommendation 1"],
  "executiveSummary": "comprehensive summary paragraph",
  "nextSteps": ["next step 1"]
}
        """.strip()

    @staticmethod
    def with_json_instruction(system_prompt: str) -> str:
        """Every agent call ends its framing text with the raw-JSON demand."""
        return f"{system_prompt}\n\n{JSON_ONLY_INSTRUCTION}"

    # -------------------------------------------------------------------------
    # Task prompts
    # -------------------------------------------------------------------------

    @staticmethod
    def topic_analysis_prompt(config) -> str:
        return f"""
Analyze this interview topic and provide a structured breakdown:

Topic: "{config.topic}"
Interview Style: {config.style.value}
Experience Level: {config.experience_level.value}
Company: {config.company_label}

Provide an analysis that will guide the generation of highly relevant interview questions. Focus on:
1. Core concepts that should be covered
2. Specific skills to assess
3. Technologies/tools that are relevant
4. Areas of focus based on experience level
5. Keywords that indicate relevance

Ensure the analysis is specific to the topic and not generic.
        """.strip()

    @staticmethod
    def question_generation_prompt(question_spec, topic_analysis, config) -> str:
        fmt = PromptFormatter
        return f"""
Generate a specific interview question based on these specifications:

QUESTION SPECIFICATIONS:
{fmt.to_json(question_spec.to_dict())}

TOPIC ANALYSIS CONTEXT:
Main Concepts: {fmt.join_or_na(topic_analysis.main_concepts)}
Skills: {fmt.join_or_na(topic_analysis.skills)}
Technologies: {fmt.join_or_na(topic_analysis.technologies)}
Relevance Keywords: {fmt.join_or_na(topic_analysis.relevance_keywords)}

INTERVIEW CONTEXT:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Company: {config.company_label}

REQUIREMENTS:
1. Address the specified concepts: {fmt.join_or_na(question_spec.concepts)}
2. Match the difficulty level: {question_spec.difficulty}
3. Focus on: {question_spec.focus_area}
4. Question type: {question_spec.question_type}
5. Avoid these topics: {fmt.join_or_na(question_spec.avoid_topics, empty="None")}

Generate ONE clear, realistic question specific to "{config.topic}" for a {config.experience_level.value} candidate.
        """.strip()

    @staticmethod
    def question_validation_prompt(question: str, question_spec, topic_analysis, config) -> str:
        fmt = PromptFormatter
        return f"""
Validate this interview question against the specifications and requirements:

GENERATED QUESTION:
"{question}"

ORIGINAL SPECIFICATIONS:
{fmt.to_json(question_spec.to_dict())}

TOPIC ANALYSIS:
{fmt.to_json(topic_analysis.to_dict())}

INTERVIEW CONTEXT:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Company: {config.company_label}

VALIDATION CRITERIA:
1. Topic Relevance: Does the question directly relate to "{config.topic}"?
2. Difficulty Match: Is it appropriate for {config.experience_level.value} level?
3. Style Alignment: Does it fit the {config.style.value} interview style?
4. Clarity: Is the question clear and unambiguous?
5. Keyword Relevance: Does it include relevant keywords: {fmt.join_or_na(topic_analysis.relevance_keywords)}
        """.strip()

    @staticmethod
    def question_planning_prompt(topic_analysis, config, previous_questions: Sequence[str],
                                 previous_responses: Sequence[Any], question_number: int) -> str:
        fmt = PromptFormatter
        previous = "; ".join(previous_questions) if previous_questions else "None"
        return f"""
Create a strategic plan for the next interview question based on this context:

TOPIC ANALYSIS:
{fmt.to_json(topic_analysis.to_dict())}

INTERVIEW CONFIG:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Duration: {config.duration} minutes
- Company: {config.company_label}

INTERVIEW PROGRESS:
- Current Question Number: {question_number}
- Previous Questions: {previous}
- Previous Response Quality: {fmt.assess_response_quality(previous_responses)}

Plan the next question so that it builds on previous ones, stays relevant to the
topic analysis, matches the experience level and avoids repeating earlier topics.
        """.strip()

    @staticmethod
    def response_analysis_prompt(question: str, response: str, config, question_number: int) -> str:
        return f"""
Analyze this interview response in detail:

QUESTION: "{question}"

RESPONSE: "{response}"

INTERVIEW CONTEXT:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Question Number: {question_number}
- Company: {config.company_label}

ANALYSIS REQUIREMENTS:
1. Clarity: How clear and understandable is the response?
2. Structure: Is the response well-organized and logical?
3. Technical: How accurate and deep is the technical content?
4. Communication: How effective is the communication style?
5. Confidence: How confident and decisive does the candidate sound?
6. Relevance: How well does the response address the question?

Support the analysis with specific examples from the response.
        """.strip()

    @staticmethod
    def overall_analysis_prompt(review_data: List[Dict[str, Any]], config,
                                session_metadata: Dict[str, Any]) -> str:
        fmt = PromptFormatter
        return f"""
Analyze the overall interview performance based on individual response analyses:

INTERVIEW CONTEXT:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Company: {config.company_label}
- Duration: {config.duration} minutes
- Total Questions: {len(review_data)}

INDIVIDUAL RESPONSE ANALYSES:
{fmt.to_json(review_data)}

SESSION METADATA:
{fmt.to_json(session_metadata)}

Focus on performance consistency across questions, improvement or decline during
the interview, adaptability to different question types, and specific next steps.
        """.strip()

    @staticmethod
    def follow_up_system(original_question: str, user_response: str, config) -> str:
        return f"""
You are an expert interviewer asking a follow-up question based on the candidate's response.

Original Question: "{original_question}"
Candidate's Response: "{user_response}"

Interview Context:
- Topic: {config.topic}
- Style: {config.style.value}
- Experience Level: {config.experience_level.value}
- Company: {config.company_label}

Generate a natural follow-up question that builds on their response and digs deeper.

Return ONLY the follow-up question text without any markdown formatting, code blocks, or additional text.
        """.strip()

    # -------------------------------------------------------------------------
    # Fallback content
    # -------------------------------------------------------------------------

    @staticmethod
    def fallback_messages() -> Dict[str, str]:
        """Fixed strings used when the LLM cannot be reached."""
        return {
            "follow_up": "Can you elaborate on that point a bit more?",
            "response_feedback": (
                "Good response with relevant content. Consider adding more specific "
                "examples and structuring your answer more clearly."
            ),
        }

    @staticmethod
    def question_bank(topic: str) -> Dict[str, Dict[str, List[str]]]:
        """Style and difficulty indexed questions used by the generation agent's fallback."""
        t = topic
        return {
            "technical": {
                "easy": [
                    f"What are the basic concepts of {t}?",
                    f"How would you explain {t} to a beginner?",
                    f"What tools do you use for {t} development?",
                ],
                "medium": [
                    f"Describe a challenging problem you solved using {t}.",
                    f"How do you optimize performance in {t} applications?",
                    f"What are the best practices for {t} development?",
                ],
                "hard": [
                    f"Design a scalable architecture for a {t} system.",
                    f"How would you handle complex state management in {t}?",
                    f"Explain advanced concepts and patterns in {t}.",
                ],
            },
            "hr": {
                "easy": [
                    f"Why are you interested in {t}?",
                    f"What motivates you to work with {t}?",
                    f"How do you stay updated with {t} trends?",
                ],
                "medium": [
                    f"Describe a project where you used {t} successfully.",
                    f"How do you handle challenges when working with {t}?",
                    f"What's your approach to learning new {t} technologies?",
                ],
                "hard": [
                    f"How would you lead a team working on {t} projects?",
                    f"What's your vision for the future of {t}?",
                    f"How do you balance innovation and stability in {t} work?",
                ],
            },
            "behavioral": {
                "easy": [
                    f"Tell me about a time you learned {t}.",
                    f"Describe your experience working with {t}.",
                    f"How do you approach {t} problems?",
                ],
                "medium": [
                    f"Tell me about a challenging {t} project you worked on.",
                    f"Describe a time you had to debug a complex {t} issue.",
                    f"How did you handle a situation where {t} requirements changed?",
                ],
                "hard": [
                    f"Tell me about a time you had to make a critical decision about {t} architecture.",
                    f"Describe how you influenced others to adopt {t} best practices.",
                    f"How did you handle a major {t} system failure?",
                ],
            },
            "salary-negotiation": {
                "easy": [
                    f"What are your salary expectations for a {t} role?",
                    f"Which benefits matter most to you in a {t} position?",
                    f"How do you research market rates for {t} positions?",
                ],
                "medium": [
                    f"How do you evaluate the total compensation package for a {t} role?",
                    f"How flexible are you with compensation for a {t} position, and why?",
                    f"How would you justify a higher offer based on your {t} experience?",
                ],
                "hard": [
                    f"How would you negotiate equity or stock options for a senior {t} role?",
                    f"What would make you accept a {t} offer below your expectations?",
                    f"How do you balance salary against career growth in the {t} field?",
                ],
            },
            "case-study": {
                "easy": [
                    f"Walk me through how you would scope a small {t} project.",
                    f"How would you diagnose a performance issue in a {t} application?",
                    f"What's your process for making technical decisions about {t}?",
                ],
                "medium": [
                    f"How would you design a caching strategy for a {t} system?",
                    f"How would you handle a critical production incident involving {t}?",
                    f"How would you migrate a legacy system to {t}?",
                ],
                "hard": [
                    f"Design a {t} system that handles ten times today's traffic.",
                    f"How would you plan disaster recovery for a {t} platform?",
                    f"How would you manage technical debt across a large {t} codebase?",
                ],
            },
        }

    @staticmethod
    def indexed_fallback_questions(topic: str) -> Dict[str, List[str]]:
        """Ordered per-style questions used when the whole generation pipeline fails."""
        t = topic
        return {
            "technical": [
                f"What are the key concepts and best practices in {t}?",
                f"How would you approach solving a complex problem using {t}?",
                f"Explain the architecture and design patterns you would use for a {t} project.",
                f"What are the performance considerations when working with {t}?",
                f"How do you ensure code quality and maintainability in {t} development?",
            ],
            "hr": [
                f"Why are you passionate about working with {t}?",
                f"How do you stay current with developments in {t}?",
                f"Describe your experience and growth in {t}.",
                f"What challenges have you faced while working with {t}?",
                f"How do you see your career developing in the {t} field?",
            ],
            "behavioral": [
                f"Tell me about a successful project you completed using {t}.",
                f"Describe a time when you had to learn {t} quickly for a project.",
                f"How did you handle a difficult technical challenge involving {t}?",
                f"Tell me about a time you had to collaborate with others on a {t} project.",
                f"Describe how you've improved your {t} skills over time.",
            ],
            "salary-negotiation": [
                "What are your salary expectations for this role?",
                "How do you evaluate the total compensation package?",
                "What factors are most important to you besides salary?",
                "How flexible are you with your compensation requirements?",
                "What would make you accept an offer below your expectations?",
                "How do you research market rates for your position?",
                "What benefits are most valuable to you?",
                "How do you approach negotiating equity or stock options?",
                "What's your timeline for making a decision on an offer?",
                "How do you balance salary with career growth opportunities?",
            ],
            "case-study": [
                "How would you approach designing a system for handling high traffic?",
                "Walk me through how you would solve a performance issue.",
                "Describe your process for making technical decisions.",
                "How would you handle a critical production incident?",
                "What's your approach to evaluating new technologies?",
                "How would you design a scalable database architecture?",
                "Describe how you would implement a caching strategy.",
                "How would you approach migrating a legacy system?",
                "What's your process for conducting a technical audit?",
                "How would you design a monitoring and alerting system?",
                "Describe your approach to capacity planning.",
                "How would you implement a disaster recovery plan?",
                "What's your strategy for managing technical debt?",
                "How would you approach API design and versioning?",
                "Describe your process for security assessment and implementation.",
            ],
        }

    @staticmethod
    def generic_question(topic: str, focus_area: str, question_number: int) -> str:
        """Parametrized question used once every canned question has been asked."""
        templates = [
            "Question {n}: Walk me through how you would apply {topic} to {focus} in a real project.",
            "Question {n}: What trade-offs do you consider around {focus} when working with {topic}?",
            "Question {n}: Describe a mistake people often make with {focus} in {topic} and how to avoid it.",
        ]
        template = templates[(question_number - 1) % len(templates)]
        return template.format(n=question_number, topic=topic, focus=focus_area)


class PromptFormatter:
    """Helper class for formatting values inside prompts."""

    @staticmethod
    def join_or_na(items: Optional[Sequence[str]], empty: str = "N/A") -> str:
        """Comma-join a list for prompt display."""
        if not items:
            return empty
        return ", ".join(str(i) for i in items)

    @staticmethod
    def to_json(value: Any) -> str:
        """Pretty JSON for embedding structured context in prompts."""
        return json.dumps(value, indent=2, ensure_ascii=False, default=str)

    @staticmethod
    def assess_response_quality(responses: Sequence[Any]) -> str:
        """Summarize answer length so the planner can adjust difficulty."""
        if not responses:
            return "No previous responses"

        lengths = [len(getattr(r, "response_text", r) or "") for r in responses]
        avg_length = sum(lengths) / len(lengths)

        if avg_length > 200:
            return "Detailed responses - can increase complexity"
        if avg_length > 100:
            return "Moderate responses - maintain current level"
        return "Brief responses - may need simpler questions"

    @staticmethod
    def clean_plain_text(text: str) -> str:
        """Strip code fences and wrapping quotes from a plain-text reply."""
        cleaned = text.strip()
        if cleaned.startswith("```"):
            lines = cleaned.split("\n")[1:]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            cleaned = "\n".join(lines).strip()
        if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] and cleaned[0] in ("'", '"'):
            cleaned = cleaned[1:-1].strip()
        return re.sub(r"\s+", " ", cleaned)
