#!/usr/bin/env python3
"""
Main entry point for the rehearsal system.
Allows running the package with: python -m rehearsal --topic=React --style=technical --level=junior --duration=30
"""
import sys

from .config import get_config
from .errors import ConfigurationError, RehearsalError, SessionStateError
from .interview.models import InterviewConfig, SessionStatus
from .utils import setup_logging
from . import build_session_manager

USAGE = (
    "Usage: python -m rehearsal --topic=<topic> --style=<technical|hr|behavioral|salary-negotiation|case-study> "
    "--level=<fresher|junior|mid-level|senior|lead-manager> --duration=<minutes> "
    "[--company=<name>] [--validated] [--no-prefetch]"
)

COMMANDS_HELP = "   (Type /pause, /resume or /end at any time)"


def parse_args(argv):
    """Parse --key=value flags into an interview config dict and runtime options."""
    interview = {}
    options = {"validated": False, "no_prefetch": False}
    keys = {"--topic": "topic", "--style": "style", "--level": "experienceLevel",
            "--duration": "duration", "--company": "companyName"}

    for arg in argv:
        if arg in ("-h", "--help"):
            print(USAGE)
            sys.exit(0)
        elif arg == "--validated":
            options["validated"] = True
        elif arg == "--no-prefetch":
            options["no_prefetch"] = True
        elif "=" in arg and arg.split("=", 1)[0] in keys:
            flag, value = arg.split("=", 1)
            interview[keys[flag]] = value
        else:
            print(f"❌ Unknown argument: {arg}")
            print(USAGE)
            sys.exit(1)

    if "duration" in interview:
        try:
            interview["duration"] = int(interview["duration"])
        except ValueError:
            print("❌ Invalid duration value. Use --duration=<minutes>")
            sys.exit(1)

    return interview, options


def print_report(report):
    """Print the final report."""
    print("\n" + "=" * 60)
    print(f"📊 Overall score: {report.overall_score}/100 ({report.performance_level.replace('_', ' ')})")
    print("=" * 60)
    print(f"\n{report.overall.executive_summary}\n")

    if report.overall.strengths:
        print("💪 Strengths:")
        for item in report.overall.strengths:
            print(f"   • {item}")
    if report.overall.improvements:
        print("🎯 Improvements:")
        for item in report.overall.improvements:
            print(f"   • {item}")
    if report.overall.next_steps:
        print("🧭 Next steps:")
        for item in report.overall.next_steps:
            print(f"   • {item}")

    for i, review in enumerate(report.question_reviews, start=1):
        print(f"\nQ{i} ({review.score}/100): {review.question}")
        print(f"   {review.feedback}")

    if report.completion:
        print(f"\n✅ Completion: {report.completion['completionRate']}% "
              f"({report.completion['responsesGiven']}/{report.completion['maxQuestions']} answered)")


def main():
    """Command-line interface for a text-mode rehearsal."""

    # Load configuration from environment
    try:
        config = get_config()
    except ConfigurationError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    interview_data, options = parse_args(sys.argv[1:])
    if options["validated"]:
        config.question_mode = "validated"
    if options["no_prefetch"]:
        config.prefetch_next_question = False

    try:
        interview_config = InterviewConfig.from_dict(interview_data)
    except ConfigurationError as e:
        print(f"❌ {e}")
        print(USAGE)
        sys.exit(1)

    log_file = setup_logging(config.log_file, config.log_level)

    # Text mode never provisions a media room
    manager, _, metrics = build_session_manager(config, use_rooms=False)

    print(f"🎤 Interview rehearsal: {interview_config.topic} ({interview_config.style.value}, "
          f"{interview_config.experience_level.value}, {interview_config.duration} min)")
    print(f"🧠 Question mode: {config.question_mode}")
    print(COMMANDS_HELP)
    print(f"📝 Detailed log: {log_file}")

    try:
        started = manager.start(interview_config, "cli-user")
        session_id = started.session_id
        print(f"\n❓ Q1/{started.total_questions}: {started.question}")

        while True:
            try:
                answer = input("> ").strip()
            except EOFError:
                break

            if answer == "/end":
                break
            if not answer:
                continue

            try:
                if answer == "/pause":
                    manager.pause(session_id)
                    print("⏸️  Paused. Type /resume to continue.")
                    continue
                if answer == "/resume":
                    manager.resume(session_id)
                    print(f"▶️  Resumed. ❓ {manager.status(session_id).current_question}")
                    continue
                result = manager.submit_response(session_id, answer)
            except SessionStateError as e:
                print(f"⚠️  {e}")
                continue

            if not result.should_continue:
                print("\n🏁 That was the last question.")
                break
            progress = result.progress
            print(f"\n❓ Q{progress['current']}/{progress['total']}: {result.next_question}")

        print("\n⏳ Analyzing your answers...")
        report = manager.end_interview(session_id)
        print_report(report)

    except RehearsalError as e:
        print(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n👋 Interrupted.")
        sys.exit(130)
    finally:
        manager.shutdown(wait=False)

    status = manager.status(session_id)
    if status.status == SessionStatus.COMPLETED:
        print(f"\n📈 Session metrics: {metrics.get_metrics()}")


if __name__ == "__main__":
    main()
