"""Syllabus-Watch: periodic portal harvesting with change detection."""

__version__ = "0.1.0"
