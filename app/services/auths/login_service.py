from sqlalchemy.future import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import UnauthenticatedError
from app.cores.security import verify_password
from app.models import User
from app.schemas.users.user_schema import LoginData, UserPublic
from app.services.auths.session_service import issue_session


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(password, user.password):
        raise UnauthenticatedError("Invalid email or password")

    return user


async def login_user(db: AsyncSession, email: str, password: str) -> LoginData:
    user = await authenticate_user(db, email, password)
    tokens = await issue_session(db, user)
    return LoginData(
        user=UserPublic.model_validate(user),
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
    )
