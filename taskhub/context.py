from __future__ import annotations

import logging
from dataclasses import dataclass

import redis
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from taskhub.config import Settings

logger = logging.getLogger(__name__)

@dataclass
class AppContext:
    """Process-wide resources, built once by create_app() and closed on shutdown."""

    settings: Settings
    engine: Engine
    session_factory: sessionmaker[Session]
    redis: redis.Redis

    @classmethod
    def build(cls, settings: Settings) -> AppContext:
        engine = create_engine(settings.database_url, pool_pre_ping=True)
        return cls(
            settings=settings,
            engine=engine,
            session_factory=sessionmaker(bind=engine, autoflush=False, autocommit=False),
            redis=redis.Redis.from_url(settings.redis_url, decode_responses=True),
        )

    def close(self) -> None:
        logger.info("closing application context")
        self.engine.dispose()
        self.redis.close()
