"""Data models for Strava API integration."""

from .strava import Activity, Athlete, Segment, SegmentEffort, StravaCredentials

__all__ = ["Activity", "Athlete", "Segment", "SegmentEffort", "StravaCredentials"]
