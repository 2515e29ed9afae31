"""Explicit client state: the local cache plus an authenticated API client."""

from __future__ import annotations

from typing import Optional

from readlater.client.api import ApiClient
from readlater.core.logging import get_logger
from readlater.sync.local_cache import TOKEN_KEY, LocalCache

logger = get_logger(__name__)


class ClientSession:
    def __init__(self, cache: LocalCache, api: Optional[ApiClient] = None) -> None:
        self.cache = cache
        self.api = api or ApiClient()
        self.api.token = cache.token
        if self.api.token:
            logger.info("Client session is authenticated")
        else:
            logger.info("Client session is not authenticated")

    @property
    def token(self) -> Optional[str]:
        return self.api.token

    @property
    def authenticated(self) -> bool:
        return bool(self.api.token)

    def login(self, token: str) -> None:
        self.cache.set({TOKEN_KEY: token})
        self.api.token = token

    def logout(self) -> None:
        self.cache.remove(TOKEN_KEY)
        self.api.token = None


__all__ = ["ClientSession"]
