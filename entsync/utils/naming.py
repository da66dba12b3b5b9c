import re


_BOUNDARY = re.compile(r'(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])')


def to_snake_case(name: str) -> str:
    """UserProfile -> user_profile, HTTPRequest -> http_request"""
    parts = _BOUNDARY.sub('_', name.strip())
    return re.sub(r'[\s\-]+', '_', parts).lower()

