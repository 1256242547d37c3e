import time
import uuid
from datetime import datetime, timezone


def utcnow() -> datetime:
    # naive UTC, igual que lo que devuelve SQLite
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id(prefix: str = "") -> str:
    return f"{prefix}{int(time.time()*1000)}-{uuid.uuid4().hex[:6]}"
