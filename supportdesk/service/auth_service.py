"""
Identity provider integration.

Sign-up, sign-in and sign-out go through Supabase Auth. Incoming access
tokens are resolved to a Caller: verified locally with the project's JWT
secret when one is configured, otherwise by asking Supabase Auth.
"""

from datetime import datetime, timezone
from typing import Optional
import logging
import threading

import httpx
import jwt
from supabase import AuthApiError, AuthError, AuthRetryableError, Client

from supportdesk.config import get_settings
from supportdesk.database import SupabaseClientSingleton
from supportdesk.database.auth import get_auth_client
from supportdesk.errors import (
    AuthenticationError,
    EmailTaken,
    InvalidCredentials,
    TransientBackendError,
    ValidationError,
    WeakPassword,
)
from supportdesk.models.session import AuthSession, Caller
from supportdesk.service.user_service import UserService, get_user_service

logger = logging.getLogger(__name__)

JWT_AUDIENCE = "authenticated"

EMAIL_TAKEN_CODES = {"user_already_exists", "email_exists"}
WEAK_PASSWORD_CODES = {"weak_password"}
INVALID_CREDENTIAL_CODES = {"invalid_credentials", "email_not_confirmed"}


class AuthServiceSingleton:
    _instance = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = AuthService()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        with cls._lock:
            cls._instance = None


def get_auth_service() -> "AuthService":
    return AuthServiceSingleton.get_instance()


def _translate_auth_error(error: Exception, action: str):
    """Map a Supabase Auth failure onto the SupportDesk error taxonomy."""
    if isinstance(error, (AuthRetryableError, httpx.HTTPError)):
        return TransientBackendError(f"Auth service unavailable while trying to {action}")

    code = getattr(error, "code", None)
    message = getattr(error, "message", None) or str(error)
    if code in EMAIL_TAKEN_CODES:
        return EmailTaken("An account with this email already exists")
    if code in WEAK_PASSWORD_CODES:
        return WeakPassword(message)
    if code in INVALID_CREDENTIAL_CODES:
        return InvalidCredentials("Invalid email or password")
    if isinstance(error, AuthApiError) and getattr(error, "status", 500) < 500:
        return ValidationError(message)
    return TransientBackendError(f"Failed to {action}: {message}")


def _require(value: Optional[str], name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} is required")
    return value.strip()


class AuthService:
    def __init__(
        self,
        supabase_client: Optional[Client] = None,
        user_service: Optional[UserService] = None,
        auth_client_factory=get_auth_client,
    ):
        self.supabase: Client = supabase_client or SupabaseClientSingleton.get_instance()
        self.user_service = user_service or (
            UserService(supabase_client) if supabase_client else get_user_service()
        )
        self.auth_client_factory = auth_client_factory

    def sign_up(self, email: str, password: str, full_name: str) -> Caller:
        """
        Register an identity and create its profile row with role 'user'.

        Raises:
            EmailTaken: the email is already registered.
            WeakPassword: Supabase Auth rejected the password.
            ValidationError: missing email, password or name.
        """
        email = _require(email, "email")
        full_name = _require(full_name, "full_name")
        if not isinstance(password, str) or not password:
            raise ValidationError("password is required")

        try:
            response = self.auth_client_factory().auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": {"full_name": full_name}},
            })
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Sign up failed for {email}: {e}")
            raise _translate_auth_error(e, "sign up") from e

        identity = getattr(response, "user", None)
        if identity is None:
            raise TransientBackendError("Sign up returned no user")
        # Supabase hides duplicate signups behind a user with no identities
        if getattr(identity, "identities", None) == []:
            raise EmailTaken("An account with this email already exists")

        profile = self.user_service.create_profile(identity.id, email, full_name)
        logger.info(f"Registered user {profile.id}")
        return Caller.from_user(profile)

    def sign_in(self, email: str, password: str) -> AuthSession:
        email = _require(email, "email")
        if not isinstance(password, str) or not password:
            raise ValidationError("password is required")

        try:
            response = self.auth_client_factory().auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Sign in failed for {email}: {e}")
            raise _translate_auth_error(e, "sign in") from e

        session = getattr(response, "session", None)
        if session is None or not session.access_token:
            raise InvalidCredentials("Invalid email or password")

        expires_at = None
        if getattr(session, "expires_at", None):
            expires_at = datetime.fromtimestamp(session.expires_at, tz=timezone.utc)

        logger.info(f"User {response.user.id} signed in")
        return AuthSession(
            access_token=session.access_token,
            refresh_token=session.refresh_token,
            user_id=response.user.id,
            email=response.user.email,
            expires_at=expires_at,
        )

    def sign_out(self, access_token: str) -> None:
        """Revoke the session behind an access token."""
        if not access_token:
            raise AuthenticationError("Authentication required")
        try:
            self.supabase.auth.admin.sign_out(access_token)
        except (AuthError, httpx.HTTPError) as e:
            logger.warning(f"Sign out failed: {e}")
            raise _translate_auth_error(e, "sign out") from e
        logger.info("Session signed out")

    # =========================================================================
    # Token resolution
    # =========================================================================

    def _user_id_from_token(self, access_token: str) -> Optional[str]:
        secret = get_settings().SUPABASE_JWT_SECRET
        if secret:
            try:
                payload = jwt.decode(
                    access_token,
                    secret,
                    algorithms=["HS256"],
                    audience=JWT_AUDIENCE,
                )
            except jwt.ExpiredSignatureError:
                logger.debug("JWT expired")
                return None
            except jwt.InvalidTokenError as e:
                logger.debug(f"JWT validation failed: {e}")
                return None
            return payload.get("sub")

        try:
            response = self.supabase.auth.get_user(access_token)
        except (AuthRetryableError, httpx.HTTPError) as e:
            raise _translate_auth_error(e, "verify session") from e
        except AuthError as e:
            logger.debug(f"Token rejected by Supabase Auth: {e}")
            return None
        user = getattr(response, "user", None)
        return user.id if user else None

    def resolve_caller(self, access_token: Optional[str]) -> Caller:
        """
        Turn an access token into the Caller it belongs to.

        Raises:
            AuthenticationError: missing, invalid or expired token, or no profile.
        """
        if not access_token:
            raise AuthenticationError("Authentication required")

        user_id = self._user_id_from_token(access_token)
        if not user_id:
            raise AuthenticationError("Invalid or expired session")

        profile = self.user_service.get_by_id(user_id)
        if profile is None:
            logger.warning(f"Authenticated user {user_id} has no profile row")
            raise AuthenticationError("No profile for this account")
        return Caller.from_user(profile)
