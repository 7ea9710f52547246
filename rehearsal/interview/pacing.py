"""
Interview pacing rules: how many questions fit a session and how
difficulty escalates from one question to the next.
"""
import math
from typing import Union

from .models import ExperienceLevel, InterviewStyle

# Minutes per question by seniority
BASE_MINUTES_PER_QUESTION = {
    ExperienceLevel.FRESHER: 4.0,
    ExperienceLevel.JUNIOR: 5.0,
    ExperienceLevel.MID_LEVEL: 6.0,
    ExperienceLevel.SENIOR: 7.0,
    ExperienceLevel.LEAD_MANAGER: 8.0,
}

STYLE_ADJUSTMENT_MINUTES = {
    InterviewStyle.TECHNICAL: 1.0,
    InterviewStyle.CASE_STUDY: 2.0,
    InterviewStyle.BEHAVIORAL: 0.5,
    InterviewStyle.HR: -0.5,
    InterviewStyle.SALARY_NEGOTIATION: -1.0,
}

MIN_QUESTIONS = 3
MAX_QUESTIONS = 15


def max_questions(duration: int,
                  experience_level: Union[ExperienceLevel, str],
                  style: Union[InterviewStyle, str]) -> int:
    """
    Number of questions that fit into an interview.

    floor(duration / minutes_per_question), clamped to
    [3, min(15, max(8, floor(duration / 3)))].
    """
    level = ExperienceLevel(experience_level)
    style = InterviewStyle(style)

    per_question = BASE_MINUTES_PER_QUESTION[level] + STYLE_ADJUSTMENT_MINUTES[style]
    count = math.floor(duration / per_question)

    upper = min(MAX_QUESTIONS, max(8, math.floor(duration / 3)))
    return max(MIN_QUESTIONS, min(count, upper))


def difficulty_for(question_number: int, experience_level: Union[ExperienceLevel, str]) -> str:
    """Easy first, medium second, then hard (medium for freshers)."""
    if question_number > 2:
        return "medium" if ExperienceLevel(experience_level) == ExperienceLevel.FRESHER else "hard"
    if question_number > 1:
        return "medium"
    return "easy"


def question_type_for(question_number: int, style: Union[InterviewStyle, str]) -> str:
    style = InterviewStyle(style)
    if style == InterviewStyle.BEHAVIORAL:
        return "scenario"
    if style == InterviewStyle.CASE_STUDY:
        return "problem-solving"
    return "practical" if question_number > 1 else "theoretical"
