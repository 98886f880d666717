"""Exam portal API: timed exams, scored results and leaderboards."""

__version__ = "1.0.0"
