from datetime import datetime, timezone


def normalize_instant(value: datetime) -> datetime:
    """Return ``value`` as a naive UTC datetime truncated to milliseconds.

    Naive inputs are taken to already be UTC. Two instants are the same slot
    exactly when their normalized values are equal.
    """
    if not isinstance(value, datetime):
        raise TypeError(f"Expected datetime, got {type(value).__name__}")

    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)

    return value.replace(microsecond=value.microsecond // 1000 * 1000)


def as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc)
