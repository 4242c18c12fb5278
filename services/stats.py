# services/stats.py
from collections import defaultdict
from typing import Iterable, List

from models.exam_attempt import ExamAttempt
from models.exam_stats import ExamStats, StudentSummary

PASS_THRESHOLD = 60.0


def attempt_percentage(attempt: ExamAttempt) -> float:
    if attempt.totalQuestions < 1:
        raise ValueError(f"Attempt {attempt.id} has no questions to score against")
    return 100.0 * attempt.score / attempt.totalQuestions


def compute_stats(attempts: Iterable[ExamAttempt], exam_set_id: str) -> ExamStats:
    """Summary of the attempts made on one exam set. Pure; never mutates its input."""
    percentages = [attempt_percentage(a) for a in attempts if a.examSetId == exam_set_id]
    if not percentages:
        return ExamStats()
    # Sorting makes the float sum independent of the input order.
    percentages.sort()
    total = len(percentages)
    passed = sum(1 for p in percentages if p >= PASS_THRESHOLD)
    return ExamStats(
        totalAttempts=total,
        averageScore=sum(percentages) / total,
        highestScore=percentages[-1],
        lowestScore=percentages[0],
        passRate=100.0 * passed / total,
    )


def summarize_student(attempts: List[ExamAttempt]) -> StudentSummary:
    """Overall results of one student, attempts grouped by exam set newest first."""
    if not attempts:
        return StudentSummary()
    percentages = sorted(attempt_percentage(a) for a in attempts)
    grouped = defaultdict(list)
    for attempt in attempts:
        grouped[attempt.examSetId].append(attempt)
    for exam_attempts in grouped.values():
        exam_attempts.sort(key=lambda a: a.endTime or a.startTime, reverse=True)
    return StudentSummary(
        totalAttempts=len(attempts),
        averageScore=sum(percentages) / len(percentages),
        bestScore=percentages[-1],
        attemptsByExamSet=dict(grouped),
    )
