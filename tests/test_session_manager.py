import logging
import threading
from unittest.mock import Mock

import pytest

from rehearsal.errors import (
    ConfigurationError,
    RoomProviderError,
    SessionNotFoundError,
    SessionStateError,
)
from rehearsal.interview.events import EventType
from rehearsal.interview.models import SessionStatus
from rehearsal.interview.testing import (
    GENERATION_ROLE,
    MockRoomProvider,
    ReportValidator,
    create_mock_session_setup,
)


def answer_all(manager, session_id, count):
    results = []
    for i in range(count):
        results.append(manager.submit_response(session_id, f"My answer number {i + 1} uses hooks and props.",
                                               duration_ms=20_000))
    return results


class TestLifecycle:

    def test_full_react_interview(self, manager, config, setup):
        started = manager.start(config, "alice")

        assert started.status == SessionStatus.ACTIVE
        assert started.question_number == 1
        assert started.total_questions == 5
        assert started.question

        results = answer_all(manager, started.session_id, 5)

        assert [r.should_continue for r in results] == [True, True, True, True, False]
        assert [r.question_number for r in results[:4]] == [2, 3, 4, 5]
        assert results[-1].status == SessionStatus.COMPLETED
        assert results[-1].next_question is None
        assert len({started.question, *(r.next_question for r in results[:4])}) == 5

        report = manager.end_interview(started.session_id)

        ReportValidator.assert_valid_report(report)
        assert len(report.question_reviews) == 5
        assert report.performance_level == "good"
        assert report.completion["responsesGiven"] == 5
        assert report.completion["completionRate"] == 100.0
        assert report.completion["endedEarly"] is False

        metrics = setup["metrics"].get_metrics()
        assert metrics["sessions_started"] == 1
        assert metrics["questions_issued"] == 5
        assert metrics["responses_submitted"] == 5
        assert metrics["sessions_completed"] == 1
        assert metrics["reports_generated"] == 1

    def test_only_first_question_generated_on_start(self, manager, config, setup):
        started = manager.start(config, "alice")

        snapshot = manager.status(started.session_id)
        assert snapshot.question_number == 1
        assert snapshot.responses_count == 0
        assert snapshot.progress == {"current": 1, "total": 5, "percentage": 20}
        assert len(setup["llm_client"].calls_for(GENERATION_ROLE)) == 1

    def test_start_accepts_plain_dict(self, manager):
        started = manager.start({"topic": "Python", "style": "hr", "experienceLevel": "senior",
                                 "duration": 20}, "bob")

        snapshot = manager.status(started.session_id)
        assert snapshot.topic == "Python"
        assert snapshot.style == "hr"
        assert snapshot.participant_identity == "bob"

    def test_invalid_config_fails_before_any_model_call(self, manager, setup):
        with pytest.raises(ConfigurationError):
            manager.start({"topic": "  ", "style": "technical", "experienceLevel": "junior", "duration": 30},
                          "alice")
        with pytest.raises(ConfigurationError):
            manager.start({"topic": "React", "style": "technical", "experienceLevel": "junior", "duration": 0},
                          "alice")

        assert setup["llm_client"].request_history == []

    def test_blank_participant_is_rejected(self, manager, config):
        with pytest.raises(ConfigurationError):
            manager.start(config, "   ")

    def test_unknown_session(self, manager):
        with pytest.raises(SessionNotFoundError):
            manager.submit_response("session-missing", "hello")
        with pytest.raises(SessionNotFoundError):
            manager.status("session-missing")

    def test_unknown_session_ids_leave_no_locks(self, manager):
        for i in range(200):
            with pytest.raises(SessionNotFoundError):
                manager.pause(f"bogus-{i}")
        with pytest.raises(SessionNotFoundError):
            manager.submit_response("bogus-submit", "hello")
        with pytest.raises(SessionNotFoundError):
            manager.reconnect("bogus-reconnect", "alice")
        with pytest.raises(SessionNotFoundError):
            manager.end_interview("bogus-end")

        assert manager._locks == {}

    def test_active_sessions_excludes_completed(self, manager, config):
        first = manager.start(config, "alice")
        second = manager.start(config, "bob")

        manager.end_interview(first.session_id)

        assert [s.session_id for s in manager.active_sessions()] == [second.session_id]


class TestPauseAndTime:

    def test_pause_and_resume_preserve_question(self, manager, config, clock):
        started = manager.start(config, "alice")
        manager.submit_response(started.session_id, "First answer.")
        before = manager.status(started.session_id)

        paused = manager.pause(started.session_id)
        assert paused.status == SessionStatus.PAUSED
        with pytest.raises(SessionStateError):
            manager.submit_response(started.session_id, "Too early.")

        clock.advance(120)
        resumed = manager.resume(started.session_id)

        assert resumed.status == SessionStatus.ACTIVE
        assert resumed.current_question == before.current_question
        assert resumed.question_number == before.question_number
        assert resumed.responses_count == 1
        assert resumed.paused_seconds == 120

    def test_invalid_transitions(self, manager, config):
        started = manager.start(config, "alice")

        with pytest.raises(SessionStateError):
            manager.resume(started.session_id)
        with pytest.raises(SessionStateError) as exc_info:
            manager.mark_ready(started.session_id)
        assert exc_info.value.actual == "active"

        manager.end_interview(started.session_id)
        with pytest.raises(SessionStateError):
            manager.pause(started.session_id)
        with pytest.raises(SessionStateError):
            manager.submit_response(started.session_id, "late")

    def test_elapsed_time_excludes_pauses(self, manager, config, clock):
        started = manager.start(config, "alice")

        clock.advance(60)
        manager.pause(started.session_id)
        clock.advance(100)
        assert manager.status(started.session_id).elapsed_seconds == 60

        manager.resume(started.session_id)
        clock.advance(30)
        snapshot = manager.status(started.session_id)
        assert snapshot.elapsed_seconds == 90
        assert snapshot.paused_seconds == 100

    def test_time_limit_completes_session(self, manager, config, clock):
        started = manager.start(config, "alice")

        clock.advance(31 * 60)
        result = manager.submit_response(started.session_id, "A long pause before answering.")

        assert not result.should_continue
        assert result.status == SessionStatus.COMPLETED

    def test_paused_time_does_not_count_against_limit(self, manager, config, clock):
        started = manager.start(config, "alice")

        manager.pause(started.session_id)
        clock.advance(60 * 60)
        manager.resume(started.session_id)
        clock.advance(60)
        result = manager.submit_response(started.session_id, "Back after a break.")

        assert result.should_continue
        assert result.question_number == 2


class TestEndInterview:

    def test_ending_early_reports_partial_completion(self, manager, config, setup):
        events = []
        setup["event_bus"].subscribe(EventType.SESSION_COMPLETED, events.append)
        started = manager.start(config, "alice")
        answer_all(manager, started.session_id, 2)

        report = manager.end_interview(started.session_id)

        assert len(report.question_reviews) == 2
        assert report.completion["completionRate"] == 40.0
        assert report.completion["questionsAsked"] == 3
        assert report.completion["maxQuestions"] == 5
        assert report.completion["endedEarly"] is True
        assert events[0].data["ended_early"] is True

        snapshot = manager.status(started.session_id)
        assert snapshot.status == SessionStatus.COMPLETED
        assert snapshot.ended_early
        assert snapshot.has_report

    def test_end_interview_is_idempotent(self, manager, config, setup):
        started = manager.start(config, "alice")
        answer_all(manager, started.session_id, 1)

        first = manager.end_interview(started.session_id)
        second = manager.end_interview(started.session_id)

        assert second is first
        assert setup["analysis_orchestrator"].stats()["reports_generated"] == 1

    def test_ending_while_paused_closes_the_pause(self, manager, config, clock):
        started = manager.start(config, "alice")
        clock.advance(30)
        manager.pause(started.session_id)
        clock.advance(90)

        report = manager.end_interview(started.session_id)

        assert report.completion["pausedSeconds"] == 90
        assert report.completion["activeSeconds"] == 30
        assert report.completion["responsesGiven"] == 0
        assert report.overall_score == 0


class TestRooms:

    @pytest.fixture
    def rooms(self):
        return MockRoomProvider()

    @pytest.fixture
    def room_manager(self, rooms, clock):
        return create_mock_session_setup(room_provider=rooms, clock=clock)["manager"]

    def test_session_waits_for_transport(self, room_manager, config):
        started = room_manager.start(config, "alice")

        assert started.status == SessionStatus.WAITING
        assert started.room_id == "interview-test-1"
        assert started.participant_credential == "participant-token-1"
        assert started.host_credential == "host-token-1"
        assert started.ws_url == "wss://rooms.test"

        with pytest.raises(SessionStateError):
            room_manager.submit_response(started.session_id, "Hello?")

        assert room_manager.mark_ready(started.session_id).status == SessionStatus.ACTIVE
        assert room_manager.submit_response(started.session_id, "Now it works.").should_continue

    def test_reconnect_issues_new_credential_and_keeps_progress(self, room_manager, rooms, config):
        started = room_manager.start(config, "alice")
        room_manager.mark_ready(started.session_id)
        answer_all(room_manager, started.session_id, 2)
        before = room_manager.status(started.session_id)

        result = room_manager.reconnect(started.session_id, "alice")

        assert result.participant_credential == "reconnect-token-interview-test-1-1"
        assert result.question_number == 3
        assert result.current_question == before.current_question
        assert rooms.reconnects[0]["metadata"] == {
            "sessionId": started.session_id, "questionNumber": 3, "status": "active",
        }
        assert room_manager.status(started.session_id).responses_count == 2

    def test_reconnect_after_completion_is_rejected(self, room_manager, config):
        started = room_manager.start(config, "alice")
        room_manager.end_interview(started.session_id)

        with pytest.raises(SessionStateError):
            room_manager.reconnect(started.session_id, "alice")

    def test_room_failure_propagates(self, clock, config):
        setup = create_mock_session_setup(room_provider=MockRoomProvider(fail=True), clock=clock)

        with pytest.raises(RoomProviderError):
            setup["manager"].start(config, "alice")

        assert setup["manager"].active_sessions() == []
        assert setup["llm_client"].request_history == []


class TestPrefetch:

    def test_next_question_served_from_cache(self, clock, config):
        setup = create_mock_session_setup(prefetch=True, clock=clock)
        manager = setup["manager"]
        llm = setup["llm_client"]

        started = manager.start(config, "alice")
        generated_after_start = len(llm.calls_for(GENERATION_ROLE))

        result = manager.submit_response(started.session_id, "First answer.")

        assert generated_after_start == 2
        assert result.from_cache
        assert result.question_number == 2
        assert setup["metrics"].get_metrics()["prefetch_hits"] == 1

    def test_stale_prefetch_is_discarded(self, manager, config, setup):
        prefetched = []
        setup["event_bus"].subscribe(EventType.QUESTION_PREFETCHED, prefetched.append)
        started = manager.start(config, "alice")

        manager._prefetch(started.session_id, config, [started.question], [], 4)

        assert manager.store.get(started.session_id).cached_next_question is None
        assert prefetched[0].data["stored"] is False

    def test_prefetch_after_teardown_does_not_recreate_lock(self, manager, config, setup):
        prefetched = []
        setup["event_bus"].subscribe(EventType.QUESTION_PREFETCHED, prefetched.append)
        started = manager.start(config, "alice")
        manager.teardown(started.session_id)

        manager._prefetch(started.session_id, config, [started.question], [], 2)

        assert started.session_id not in manager._locks
        assert prefetched[0].data["stored"] is False

    def test_prefetch_task_failure_is_logged(self, clock, config, caplog):
        setup = create_mock_session_setup(prefetch=True, clock=clock)
        manager = setup["manager"]
        manager._prefetch = Mock(side_effect=RuntimeError("store offline"))

        with caplog.at_level(logging.ERROR, logger="session_manager"):
            started = manager.start(config, "alice")

        assert started.question_number == 1
        assert manager._prefetch.called
        assert "store offline" in caplog.text

    def test_no_prefetch_after_last_question(self, clock):
        setup = create_mock_session_setup(prefetch=True, clock=clock)
        manager = setup["manager"]
        config = {"topic": "React", "style": "technical", "experienceLevel": "junior", "duration": 1}

        started = manager.start(config, "alice")
        answer_all(manager, started.session_id, started.total_questions - 1)

        assert manager.store.get(started.session_id).cached_next_question is None


class TestMisc:

    def test_follow_up_targets_last_answer(self, manager, config, setup):
        started = manager.start(config, "alice")
        manager.submit_response(started.session_id, "I memoize with useMemo.")

        follow_up = manager.follow_up(started.session_id)

        assert follow_up == "Can you give a concrete React example of that?"
        last_call = setup["llm_client"].request_history[-1]
        assert "I memoize with useMemo." in last_call["system_prompt"]

    def test_follow_up_requires_active_session(self, manager, config):
        started = manager.start(config, "alice")
        manager.pause(started.session_id)

        with pytest.raises(SessionStateError):
            manager.follow_up(started.session_id)

    def test_teardown_drops_session_and_caches(self, manager, config, setup):
        started = manager.start(config, "alice")
        manager.end_interview(started.session_id)

        manager.teardown(started.session_id)

        with pytest.raises(SessionNotFoundError):
            manager.status(started.session_id)
        assert setup["question_orchestrator"].stats()["cached_topics"] == 0
        assert setup["analysis_orchestrator"].stats()["cached_reports"] == 0

    def test_teardown_keeps_topic_cache_shared_with_other_sessions(self, manager, config, setup):
        first = manager.start(config, "alice")
        manager.start(config, "bob")

        manager.teardown(first.session_id)

        assert setup["question_orchestrator"].stats()["cached_topics"] == 1

    def test_concurrent_submissions_are_serialized(self, manager, config):
        started = manager.start(config, "alice")
        errors = []

        def submit(i):
            try:
                manager.submit_response(started.session_id, f"Answer from thread {i}.")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=submit, args=(i,)) for i in range(5)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        session = manager.store.get(started.session_id)
        assert [r.question_id for r in session.responses] == ["q1", "q2", "q3", "q4", "q5"]
        assert session.status == SessionStatus.COMPLETED
        assert len(session.questions) == 5

    def test_follow_up_waits_for_session_lock(self, manager, config):
        started = manager.start(config, "alice")
        results = []
        worker = threading.Thread(target=lambda: results.append(manager.follow_up(started.session_id)))

        with manager._lock_for(started.session_id):
            worker.start()
            worker.join(timeout=0.2)
            assert results == []

        worker.join(timeout=5)
        assert results == ["Can you give a concrete React example of that?"]
