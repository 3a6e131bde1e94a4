"""
Tests for leave day counting
"""
from datetime import date
from decimal import Decimal

import pytest

from leave_approval.core.config import settings
from leave_approval.core.exceptions import LeaveValidationError
from leave_approval.models.leave import HalfDaySession
from leave_approval.services.leave_service import compute_days_count


def test_single_day():
    assert compute_days_count(date(2026, 3, 2), date(2026, 3, 2)) == Decimal("1")


def test_inclusive_calendar_span():
    # Monday to Sunday
    assert compute_days_count(date(2026, 3, 2), date(2026, 3, 8)) == Decimal("7")


def test_span_across_month_end():
    assert compute_days_count(date(2026, 2, 27), date(2026, 3, 2)) == Decimal("4")


def test_half_day_counts_half():
    days = compute_days_count(date(2026, 3, 2), date(2026, 3, 2), True, HalfDaySession.FIRST_HALF)

    assert days == Decimal("0.5")


def test_half_day_requires_session():
    with pytest.raises(LeaveValidationError, match="Half-day session is required"):
        compute_days_count(date(2026, 3, 2), date(2026, 3, 2), True, None)


def test_half_day_must_be_single_day():
    with pytest.raises(LeaveValidationError, match="single day"):
        compute_days_count(date(2026, 3, 2), date(2026, 3, 3), True, HalfDaySession.SECOND_HALF)


def test_reversed_range_is_invalid():
    with pytest.raises(LeaveValidationError, match="Invalid date range"):
        compute_days_count(date(2026, 3, 5), date(2026, 3, 2))


def test_sundays_excluded_when_configured(monkeypatch):
    monkeypatch.setattr(settings, "LEAVE_EXCLUDE_SUNDAYS", True)

    # Monday to Sunday: six working days
    assert compute_days_count(date(2026, 3, 2), date(2026, 3, 8)) == Decimal("6")


def test_sunday_only_range_is_invalid_when_sundays_excluded(monkeypatch):
    monkeypatch.setattr(settings, "LEAVE_EXCLUDE_SUNDAYS", True)

    with pytest.raises(LeaveValidationError, match="Invalid date range"):
        compute_days_count(date(2026, 3, 8), date(2026, 3, 8))


def test_half_day_on_sunday_rejected_when_sundays_excluded(monkeypatch):
    monkeypatch.setattr(settings, "LEAVE_EXCLUDE_SUNDAYS", True)

    with pytest.raises(LeaveValidationError, match="Cannot apply leave on Sunday"):
        compute_days_count(date(2026, 3, 8), date(2026, 3, 8), True, HalfDaySession.FIRST_HALF)
