import pytest

from conftest import make_attempt
from models.exam_stats import ExamStats
from services.stats import attempt_percentage, compute_stats, summarize_student


def test_no_attempts_gives_zeros():
    stats = compute_stats([], "exam-1")
    assert stats == ExamStats()
    assert stats.totalAttempts == 0
    assert stats.averageScore == stats.highestScore == stats.lowestScore == stats.passRate == 0


def test_exam_without_attempts_by_anyone_is_all_zero():
    attempts = [make_attempt("exam-2", 3, 4)]
    assert compute_stats(attempts, "exam-1") == ExamStats()


def test_three_attempts():
    attempts = [
        make_attempt("exam-1", 10, 10, student_id="a"),
        make_attempt("exam-1", 5, 10, student_id="b"),
        make_attempt("exam-1", 7, 10, student_id="c"),
    ]
    stats = compute_stats(attempts, "exam-1")
    assert stats.totalAttempts == 3
    assert stats.averageScore == pytest.approx(73.333, abs=1e-3)
    assert stats.highestScore == 100
    assert stats.lowestScore == 50
    assert stats.passRate == pytest.approx(66.667, abs=1e-3)


def test_pass_threshold_is_inclusive():
    attempts = [make_attempt("exam-1", 3, 5), make_attempt("exam-1", 2, 5, student_id="b")]
    assert compute_stats(attempts, "exam-1").passRate == 50


def test_order_does_not_matter():
    attempts = [
        make_attempt("exam-1", 1, 3, student_id="a"),
        make_attempt("exam-1", 2, 3, student_id="b"),
        make_attempt("exam-1", 3, 7, student_id="c"),
        make_attempt("exam-1", 6, 7, student_id="d"),
        make_attempt("exam-2", 0, 1, student_id="e"),
    ]
    forward = compute_stats(attempts, "exam-1")
    assert compute_stats(list(reversed(attempts)), "exam-1") == forward
    assert compute_stats(attempts[2:] + attempts[:2], "exam-1") == forward
    assert forward.totalAttempts == 4


def test_input_is_not_mutated():
    attempts = [make_attempt("exam-1", 1, 2), make_attempt("exam-1", 2, 2, student_id="b")]
    snapshot = [a.model_copy(deep=True) for a in attempts]
    compute_stats(attempts, "exam-1")
    compute_stats(attempts, "exam-1")
    assert attempts == snapshot


def test_attempt_without_questions_is_rejected():
    attempt = make_attempt("exam-1", 0, 0)
    with pytest.raises(ValueError):
        attempt_percentage(attempt)
    with pytest.raises(ValueError):
        compute_stats([attempt], "exam-1")


def test_student_summary_groups_newest_first():
    older = make_attempt("exam-1", 1, 2, minutes_ago=30)
    newer = make_attempt("exam-1", 2, 2, minutes_ago=5)
    other = make_attempt("exam-2", 1, 4, minutes_ago=10)
    summary = summarize_student([older, other, newer])
    assert summary.totalAttempts == 3
    assert summary.averageScore == pytest.approx((50 + 100 + 25) / 3)
    assert summary.bestScore == 100
    assert [a.id for a in summary.attemptsByExamSet["exam-1"]] == [newer.id, older.id]
    assert [a.id for a in summary.attemptsByExamSet["exam-2"]] == [other.id]


def test_student_summary_without_attempts():
    summary = summarize_student([])
    assert summary.totalAttempts == 0
    assert summary.bestScore == 0
    assert summary.attemptsByExamSet == {}
