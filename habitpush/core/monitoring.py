"""
Application monitoring and error tracking with Sentry
"""
import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.asyncio import AsyncioIntegration

from config import settings


def init_sentry(with_fastapi: bool = True) -> bool:
    """
    Initialize Sentry for error tracking and performance monitoring.
    The CLI jobs call this with with_fastapi=False.
    """
    if not settings.SENTRY_DSN:
        return False

    integrations = [SqlalchemyIntegration(), AsyncioIntegration()]
    if with_fastapi:
        integrations.append(FastApiIntegration())

    sentry_environment = settings.SENTRY_ENVIRONMENT
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=sentry_environment,
        integrations=integrations,
        traces_sample_rate=1.0 if sentry_environment == "development" else 0.1,
        release=settings.APP_VERSION,
    )
    return True
