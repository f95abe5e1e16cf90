"""
Identity issuance: registration, password login and profile lookup.

Tokens carry the user id as ``sub``; shared.security.identity turns them
back into a Principal.
"""
import structlog
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import transaction
from shared.errors import Conflict, Forbidden, NotFound, Unauthenticated
from shared.security import Principal, issue_user_token, require_principal

from .models import User
from .repository import UserRepository
from .schemas import TokenResponse, UserCreate, UserLogin, UserResponse

logger = structlog.get_logger(__name__)

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _clean_name(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


class AuthService:

    @staticmethod
    async def register(db: AsyncSession, data: UserCreate) -> User:
        email = data.email.lower()
        async with transaction(db, conflict="Email already registered"):
            if await UserRepository.email_taken(db, email):
                raise Conflict("Email already registered")
            user = await UserRepository.add_user(
                db,
                User(
                    email=email,
                    hashed_password=_pwd_context.hash(data.password),
                    first_name=_clean_name(data.first_name),
                    last_name=_clean_name(data.last_name),
                ),
            )
        logger.info("user_registered", user_id=user.id)
        return user

    @staticmethod
    async def login(db: AsyncSession, data: UserLogin) -> TokenResponse:
        user = await UserRepository.find_by_email(db, data.email.lower())
        # Same answer for unknown email and wrong password
        if not user or not _pwd_context.verify(data.password, user.hashed_password):
            logger.info("login_failed", email=data.email.lower())
            raise Unauthenticated("Incorrect email or password")
        if not user.is_active:
            raise Forbidden("Account is disabled")

        logger.info("login_succeeded", user_id=user.id)
        return TokenResponse(
            access_token=issue_user_token(user.id),
            user=UserResponse.model_validate(user),
        )

    @staticmethod
    async def get_user(db: AsyncSession, principal: Principal) -> User:
        require_principal(principal)
        user = await UserRepository.get_user(db, principal.user_id)
        if not user:
            raise NotFound("User", "id", principal.user_id)
        return user
