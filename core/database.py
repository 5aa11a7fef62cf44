import logging
import secrets

from fastapi import FastAPI
from tortoise import Tortoise

from core.config import settings

logger = logging.getLogger(__name__)


TORTOISE_ORM = {
    "connections": {"default": settings.DATABASE_URL},
    "apps": {
        "models": {
            "models": ["models"],
            "default_connection": "default",
        },
    },
    "use_tz": True,
    "timezone": settings.TIME_ZONE,
}


async def init_db(create_schema: bool = False) -> None:
    """
    Connect Tortoise and make sure a general admin exists

    Args:
        create_schema: Create missing tables before bootstrapping
    """
    logger.info("Connecting to %s", settings.DATABASE_URL.split("://", 1)[0])
    await Tortoise.init(config=TORTOISE_ORM)

    if create_schema:
        await Tortoise.generate_schemas(safe=True)

    await bootstrap_admin()


async def bootstrap_admin() -> bool:
    """
    Create the configured general admin on first start

    Admins cannot sign up, so this account is how the first admin gets in.
    Without ADMIN_PASSWORD a random password is generated and logged once.
    Returns True when the account was created.
    """
    from models.users import Admin, AdminType, User, UserRole
    from core.security import get_password_hash

    if await User.filter(email=settings.ADMIN_EMAIL).exists():
        return False

    password = settings.ADMIN_PASSWORD
    if not password:
        password = secrets.token_urlsafe(12)
        logger.warning("Generated password for admin %s: %s", settings.ADMIN_EMAIL, password)

    user = await User.create(
        name=settings.ADMIN_NAME,
        email=settings.ADMIN_EMAIL,
        password_hash=get_password_hash(password),
        role=UserRole.ADMIN,
    )
    await Admin.create(user=user, admin_type=AdminType.GENERAL)
    logger.info("Bootstrapped general admin %s", settings.ADMIN_EMAIL)
    return True


async def close_db() -> None:
    await Tortoise.close_connections()


def init_app(app: FastAPI) -> None:
    """
    Open the database on startup and close it on shutdown
    """

    @app.on_event("startup")
    async def open_database() -> None:
        await init_db(create_schema=settings.GENERATE_SCHEMAS)

    @app.on_event("shutdown")
    async def close_database() -> None:
        await close_db()
