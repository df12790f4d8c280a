import secrets
import uuid
from datetime import timedelta
from typing import Optional

from ..config import Settings, settings as default_settings
from ..errors import access_denied, internal, unauthorized
from ..logging_config import get_logger
from ..models.session import UserSession
from ..storage.interface import StoragePort
from .clock import Clock, add_months, as_utc, utcnow


TOKEN_BYTES = 16

logger = get_logger("sessions")


class SessionManager:
    """Issues opaque bearer tokens and keeps their expiry sliding.

    A session lives ``session_lifetime_months`` from login. Once fewer than
    ``session_renewal_window_days`` remain, a successful check pushes the expiry
    to ``session_renewal_months`` from now; the token itself never changes.
    """

    def __init__(
        self,
        storage: StoragePort,
        config: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ):
        self._storage = storage
        self._settings = config or default_settings
        self._clock = clock or utcnow

    def create_session(self, user_id: uuid.UUID) -> str:
        try:
            token = secrets.token_bytes(TOKEN_BYTES).hex()
        except (OSError, NotImplementedError) as exc:
            logger.error("failed to generate session token for user_id=%s", user_id, exc_info=True)
            raise internal("Failed to create session, try again later.") from exc

        now = self._clock()
        session = UserSession(
            id=uuid.uuid4(),
            token=token,
            user_id=user_id,
            created_at=now,
            expire_at=add_months(now, self._settings.session_lifetime_months),
        )
        try:
            self._storage.save_session(session)
        except Exception as exc:
            logger.error("failed to save session for user_id=%s", user_id, exc_info=True)
            raise internal("Failed to create session, try again later.") from exc
        return token

    def validate_session(self, token: str) -> uuid.UUID:
        session = self._storage.get_session_by_token(token) if token else None
        if session is None:
            logger.info("session check failed: unknown token")
            raise unauthorized("Session does not exist, please login.")

        now = self._clock()
        expire_at = as_utc(session.expire_at)
        if now > expire_at:
            logger.info("session check failed: session %s expired at %s", session.id, expire_at.isoformat())
            raise unauthorized("Your session expired, please login again.")

        if expire_at - now <= timedelta(days=self._settings.session_renewal_window_days):
            new_expire_at = add_months(now, self._settings.session_renewal_months)
            try:
                self._storage.update_session_expiry(session.id, new_expire_at)
                logger.info("session %s renewed until %s", session.id, new_expire_at.isoformat())
            except Exception:
                # the caller is already authorized for this request
                logger.warning("failed to renew session %s", session.id, exc_info=True)

        return session.user_id

    def invalidate_session(self, user_id: uuid.UUID, token: str) -> None:
        session = self._storage.get_session_by_token(token) if token else None
        if session is None:
            raise unauthorized("Session does not exist, please login.")
        if session.user_id != user_id:
            raise access_denied("You cannot end this session.")

        now = self._clock()
        if as_utc(session.expire_at) < now:
            return
        self._storage.update_session_expiry(session.id, now - timedelta(seconds=1))
        logger.info("session %s invalidated for user_id=%s", session.id, user_id)

