"""Table sessions: one round engine per signed session id."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from uuid import uuid4

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from cardtable.game import AsyncioScheduler, RoundEngine
from cardtable.persistence import ParticipantStore, create_store
from config import config

logger = logging.getLogger(__name__)


class SessionSigner:
    """Sign and verify session IDs using itsdangerous."""

    def __init__(self, secret_key: str | None = None) -> None:
        """Initialize the signer with a secret key."""
        self._serializer = URLSafeTimedSerializer(secret_key or config.security.secret_key)

    def sign(self, session_id: str) -> str:
        """Create a signed token from a session ID."""
        return self._serializer.dumps(session_id)

    def unsign(self, token: str, max_age: int | None = None) -> str | None:
        """
        Verify and extract session_id from a signed token.

        Args:
            token: The signed token to verify
            max_age: Maximum age in seconds (defaults to session_ttl)

        Returns:
            The session ID if valid, None otherwise
        """
        try:
            return self._serializer.loads(token, max_age=max_age or config.session_ttl)
        except (BadSignature, SignatureExpired):
            return None


def build_store(session_id: str) -> ParticipantStore:
    """Persistence for one table, per the configured backend."""
    settings = config.persistence
    return create_store(
        backend=settings.backend,
        path=settings.file_path,
        redis_url=config.redis.url,
        prefix=f"{settings.key_prefix}{session_id}:",
    )


def build_engine(session_id: str) -> RoundEngine:
    """Create a table with the configured defaults."""
    table = config.table
    engine = RoundEngine(
        player_names=list(table.player_names),
        ante=table.ante,
        starting_bank=table.starting_bank,
        scheduler=AsyncioScheduler(),
        automation_delay=table.automation_delay,
        store=build_store(session_id),
    )
    engine.load_participants()
    return engine


@dataclass
class TableSession:
    """A table and its bookkeeping."""

    session_id: str
    engine: RoundEngine
    expires_at: datetime
    created_at: datetime = field(default_factory=datetime.now)

    def touch(self, ttl: int) -> None:
        self.expires_at = datetime.now() + timedelta(seconds=ttl)

    @property
    def expired(self) -> bool:
        return self.expires_at < datetime.now()


class TableRegistry:
    """In-process registry of live tables, keyed by raw session id."""

    def __init__(self, signer: SessionSigner | None = None, ttl: int | None = None) -> None:
        self._signer = signer or SessionSigner()
        self._ttl = ttl or config.session_ttl
        self._sessions: dict[str, TableSession] = {}

    def create(self) -> tuple[str, TableSession]:
        """
        Open a new table.

        Returns:
            (signed token, session)
        """
        session_id = str(uuid4())
        session = TableSession(
            session_id=session_id,
            engine=build_engine(session_id),
            expires_at=datetime.now() + timedelta(seconds=self._ttl),
        )
        self._sessions[session_id] = session
        logger.info("Opened table %s", session_id)
        return self._signer.sign(session_id), session

    def get(self, token: str) -> TableSession | None:
        """Resolve a signed token to a live session."""
        session_id = self._signer.unsign(token, max_age=self._ttl)
        if session_id is None:
            return None
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.expired:
            self.close(session_id)
            return None
        session.touch(self._ttl)
        return session

    def close(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.engine.agent.detach()
            logger.info("Closed table %s", session_id)

    def cleanup_expired(self) -> int:
        """Close expired tables."""
        expired = [sid for sid, s in self._sessions.items() if s.expired]
        for sid in expired:
            self.close(sid)
        return len(expired)

    def __len__(self) -> int:
        return len(self._sessions)


# Global registry instance
_registry: TableRegistry | None = None


def get_registry() -> TableRegistry:
    """Get or create the table registry."""
    global _registry
    if _registry is None:
        _registry = TableRegistry()
    return _registry
