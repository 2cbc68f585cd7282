import time
from typing import Optional

from bpou_finder.session import WidgetSession


class SessionCache:
    """In-memory widget sessions that expire after ``ttl`` seconds idle."""

    def __init__(self, ttl=1800):
        self.store: dict[str, tuple[WidgetSession, float]] = {}
        self.ttl = ttl

    def get(self, key: str) -> Optional[WidgetSession]:
        item = self.store.get(key)
        if not item:
            return None
        session, expiry = item
        if time.time() > expiry:
            del self.store[key]
            return None
        # Sliding expiry: any activity keeps the session alive.
        self.store[key] = (session, time.time() + self.ttl)
        return session

    def add(self, session: WidgetSession) -> WidgetSession:
        self.purge()
        self.store[session.id] = (session, time.time() + self.ttl)
        return session

    def purge(self) -> int:
        now = time.time()
        expired = [key for key, (_, expiry) in self.store.items() if now > expiry]
        for key in expired:
            del self.store[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self.store)
