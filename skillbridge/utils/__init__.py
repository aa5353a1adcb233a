from datetime import UTC, datetime

__all__ = [
    "utcnow",
    "create_access_token",
    "get_current_user_id",
    "oauth2_scheme",
]


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the TIMESTAMP columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def __getattr__(name):
    if name in {"create_access_token", "get_current_user_id", "oauth2_scheme"}:
        from . import security as _security
        return getattr(_security, name)
    raise AttributeError(f"module 'skillbridge.utils' has no attribute '{name}'")
