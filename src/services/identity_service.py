"""Identity service: accounts, credentials and signed session tokens."""

import logging
from collections.abc import Callable

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from pydantic import BaseModel
from werkzeug.security import check_password_hash, generate_password_hash

from src.core import db_client
from src.core.config import Constants, settings
from src.core.db_client import sanitize_param
from src.core.errors import AuthenticationError
from src.core.logging import span
from src.domain.actor import Actor, Role
from src.services import profile_service


logger = logging.getLogger(__name__)

CREDENTIALS_COLLECTION = "credentials"
SESSION_SALT = "task-session"

ActorCallback = Callable[[Actor | None], None]


class Session(BaseModel):
    """A signed-in session: bearer token plus the actor it represents."""

    token: str
    actor: Actor


def hash_password(password: str) -> str:
    """Hash a password with a random salt."""
    return generate_password_hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    """Check a password against a stored hash. Unrecognised hashes never match."""
    try:
        return check_password_hash(stored_hash, password)
    except ValueError:
        return False


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _validate_password(password: str) -> None:
    if len(password) < Constants.MIN_PASSWORD_LENGTH:
        msg = f"Password must be at least {Constants.MIN_PASSWORD_LENGTH} characters"
        raise ValueError(msg)


class IdentityService:
    """Signs users in and out and tracks the current actor for one client.

    Listeners registered with ``on_actor_changed`` are called with the new
    actor on sign-in and with None on sign-out.
    """

    def __init__(self, *, secret_key: str | None = None, max_age_seconds: int | None = None) -> None:
        self._serializer = URLSafeTimedSerializer(str(secret_key or settings.secret_key), salt=SESSION_SALT)
        self._max_age_seconds = max_age_seconds or settings.session_max_age_seconds
        self._current_actor: Actor | None = None
        self._listeners: list[ActorCallback] = []

    def get_current_actor(self) -> Actor | None:
        return self._current_actor

    def on_actor_changed(self, callback: ActorCallback) -> Callable[[], None]:
        """Register a listener. Returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _set_current_actor(self, actor: Actor | None) -> None:
        self._current_actor = actor
        for listener in list(self._listeners):
            try:
                listener(actor)
            except Exception:
                logger.exception("Actor change listener failed")

    async def sign_up(self, *, email: str, password: str, full_name: str | None = None) -> Actor:
        """Create an account. New accounts always start as housekeepers.

        Args:
            email: Sign-in email, compared case-insensitively
            password: Plain-text password
            full_name: Optional display name

        Returns:
            Actor for the new account

        Raises:
            ValueError: If the password is too short or the email is taken
            db_client.DatabaseError: If database operation fails
        """
        with span("identity_service.sign_up"):
            email = _normalize_email(email)
            _validate_password(password)

            existing = await db_client.get_first_record(
                collection=CREDENTIALS_COLLECTION,
                filter_query=f'email = "{sanitize_param(email)}"',
            )
            if existing:
                msg = "An account with this email already exists"
                logger.warning("Sign-up rejected: email already registered")
                raise ValueError(msg)

            profile = await db_client.create_record(
                collection="profiles",
                data={"role": Role.HOUSEKEEPER, "full_name": full_name},
            )
            try:
                await db_client.create_record(
                    collection=CREDENTIALS_COLLECTION,
                    data={"email": email, "password_hash": hash_password(password), "user_id": profile["id"]},
                )
            except db_client.DatabaseError:
                # No credential means nobody can sign in as this profile
                logger.error("Credential insert failed; removing profile user=%s", profile["id"])
                await db_client.delete_record(collection="profiles", record_id=profile["id"])
                raise

            logger.info("Created account for user=%s", profile["id"])
            return Actor(id=profile["id"], role=Role.HOUSEKEEPER, full_name=full_name)

    async def sign_in(self, *, email: str, password: str) -> Session:
        """Check credentials and start a session.

        Raises:
            AuthenticationError: If the email or password is wrong
            db_client.DatabaseError: If database operation fails
        """
        with span("identity_service.sign_in"):
            credential = await db_client.get_first_record(
                collection=CREDENTIALS_COLLECTION,
                filter_query=f'email = "{sanitize_param(_normalize_email(email))}"',
            )
            if not credential or not verify_password(password, credential["password_hash"]):
                logger.warning("Sign-in failed: invalid credentials")
                raise AuthenticationError("Invalid credentials")

            actor = await profile_service.get_actor(user_id=credential["user_id"])
            if actor is None:
                logger.error("Credential without profile for user=%s", credential["user_id"])
                raise AuthenticationError("Invalid credentials")

            token = self._serializer.dumps({"user_id": actor.id})
            self._set_current_actor(actor)
            logger.info("User signed in: user=%s role=%s", actor.id, actor.role)
            return Session(token=token, actor=actor)

    async def sign_out(self) -> None:
        with span("identity_service.sign_out"):
            if self._current_actor is not None:
                logger.info("User signed out: user=%s", self._current_actor.id)
            self._set_current_actor(None)

    async def resolve_token(self, token: str) -> Actor | None:
        """Rebuild the actor behind a session token.

        The role is read from the profile on every call, so role changes take
        effect on the next request. Returns None for tampered, expired or
        orphaned tokens.
        """
        try:
            session_data = self._serializer.loads(token, max_age=self._max_age_seconds)
        except (BadSignature, SignatureExpired):
            logger.warning("Rejected tampered or expired session token")
            return None

        user_id = session_data.get("user_id") if isinstance(session_data, dict) else None
        if not user_id:
            return None
        return await profile_service.get_actor(user_id=user_id)

    async def change_password(self, *, actor: Actor, new_password: str) -> None:
        """Replace the actor's password.

        Raises:
            ValueError: If the new password is too short
            AuthenticationError: If the actor has no credential
            db_client.DatabaseError: If database operation fails
        """
        with span("identity_service.change_password"):
            _validate_password(new_password)
            updated = await db_client.update_records(
                collection=CREDENTIALS_COLLECTION,
                filter_query=f'user_id = "{sanitize_param(actor.id)}"',
                data={"password_hash": hash_password(new_password)},
            )
            if not updated:
                raise AuthenticationError("No credential for this account")
            logger.info("Password changed for user=%s", actor.id)
