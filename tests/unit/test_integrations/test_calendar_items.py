"""Tests for calendar item types."""

import pytest

from src.integrations.base import ItemCategory


class TestItemCategory:
    """Tests for ItemCategory parsing and labels."""

    @pytest.mark.parametrize("value", ["course", "Course", "lecture", " CLASS ", "course-meeting"])
    def test_course_aliases(self, value):
        """Course-like names should parse to COURSE."""
        assert ItemCategory.parse(value) is ItemCategory.COURSE

    @pytest.mark.parametrize(
        "value", ["assignment", "Exam", "Assignment / Exam", "assignment-or-exam", "test"]
    )
    def test_assignment_aliases(self, value):
        """Assignment-like names should parse to ASSIGNMENT."""
        assert ItemCategory.parse(value) is ItemCategory.ASSIGNMENT

    def test_enum_passthrough(self):
        """Enum values should be returned unchanged."""
        assert ItemCategory.parse(ItemCategory.ASSIGNMENT) is ItemCategory.ASSIGNMENT

    def test_unknown_category(self):
        """Unknown names should raise ValueError."""
        with pytest.raises(ValueError):
            ItemCategory.parse("holiday")

    def test_labels(self):
        """Labels should match the calendar UI wording."""
        assert ItemCategory.COURSE.label == "Course"
        assert ItemCategory.ASSIGNMENT.label == "Assignment / Exam"
