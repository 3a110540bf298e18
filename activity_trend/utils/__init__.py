"""Utility modules for the application."""

from .auth import StravaAuthHelper, extract_authorization_code
from .geo import haversine_km, is_valid_latlng

__all__ = ["StravaAuthHelper", "extract_authorization_code", "haversine_km", "is_valid_latlng"]
