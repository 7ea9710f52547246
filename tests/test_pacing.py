import pytest

from rehearsal.interview.models import ExperienceLevel, InterviewStyle
from rehearsal.interview.pacing import difficulty_for, max_questions, question_type_for


def test_react_junior_technical_thirty_minutes():
    assert max_questions(30, "junior", "technical") == 5
    assert max_questions(30, ExperienceLevel.JUNIOR, InterviewStyle.TECHNICAL) == 5


def test_short_interview_is_raised_to_minimum():
    assert max_questions(5, "fresher", "hr") == 3


def test_long_interview_is_capped():
    assert max_questions(300, "fresher", "salary-negotiation") == 15


def test_upper_bound_follows_duration_for_mid_length_interviews():
    # 45 / 3 = 15 questions fit, bound is min(15, max(8, 15)) = 15
    assert max_questions(45, "fresher", "salary-negotiation") == 15
    # 20 / 3 = 6 questions fit, bound is 8
    assert max_questions(20, "fresher", "salary-negotiation") == 6


@pytest.mark.parametrize("level", [e.value for e in ExperienceLevel])
@pytest.mark.parametrize("style", [s.value for s in InterviewStyle])
def test_bounds_and_monotonic_in_duration(level, style):
    for duration in (1, 5, 10, 15, 30, 45, 60, 90):
        count = max_questions(duration, level, style)
        assert 3 <= count <= 15
        assert max_questions(duration * 2, level, style) >= count


def test_seniority_never_adds_questions():
    counts = [max_questions(60, level, "technical") for level in ExperienceLevel]
    assert counts == sorted(counts, reverse=True)


def test_unknown_level_raises():
    with pytest.raises(ValueError):
        max_questions(30, "intern", "technical")


def test_difficulty_escalates_after_first_and_second_question():
    assert difficulty_for(1, "junior") == "easy"
    assert difficulty_for(2, "junior") == "medium"
    assert difficulty_for(3, "junior") == "hard"
    assert difficulty_for(7, "senior") == "hard"


def test_freshers_top_out_at_medium():
    assert [difficulty_for(n, "fresher") for n in (1, 2, 3, 4)] == ["easy", "medium", "medium", "medium"]


def test_question_type_by_style():
    assert question_type_for(1, "technical") == "theoretical"
    assert question_type_for(2, "technical") == "practical"
    assert question_type_for(1, "behavioral") == "scenario"
    assert question_type_for(3, "case-study") == "problem-solving"
