"""
Process Resources
=================

Everything that holds a connection is built here once and passed down:
the API stores an AppResources on `app.state.resources` for its lifespan,
and each worker task opens its own for the duration of the job.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Generator, Optional

from redis import Redis

from .auth import TokenService
from .config import Settings
from .db.session import Database
from .storage import BlobStore, LocalStorage

logger = logging.getLogger(__name__)


@dataclass
class AppResources:
    settings: Settings
    database: Database
    storage: BlobStore
    token_service: TokenService
    _redis: Optional[Redis] = field(default=None, repr=False)

    @property
    def redis(self) -> Redis:
        """Lazily created Redis client (RQ queue and rate limiter)."""
        if self._redis is None:
            self._redis = Redis.from_url(self.settings.redis_url, socket_connect_timeout=2)
        return self._redis

    def close(self) -> None:
        if self._redis is not None:
            self._redis.close()
            self._redis = None
        self.database.dispose()


def build_resources(settings: Settings) -> AppResources:
    database = Database(settings.database_url, echo=settings.sql_echo)
    database.create_all()
    return AppResources(
        settings=settings,
        database=database,
        storage=LocalStorage(base_path=settings.storage_path),
        token_service=TokenService(
            secret_key=settings.jwt_secret_key,
            algorithm=settings.jwt_algorithm,
            expires=timedelta(minutes=settings.jwt_expire_minutes),
        ),
    )


@contextmanager
def open_resources(settings: Settings) -> Generator[AppResources, None, None]:
    resources = build_resources(settings)
    try:
        yield resources
    finally:
        resources.close()
