import uuid
import datetime


def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every datetime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is not None:
        value = value.astimezone(datetime.timezone.utc).replace(tzinfo=None)
    return value


def parse_datetime(value):
    if value is None or isinstance(value, datetime.datetime):
        return value and as_utc(value)
    return as_utc(datetime.datetime.fromisoformat(value))


def new_id() -> str:
    return str(uuid.uuid4())
