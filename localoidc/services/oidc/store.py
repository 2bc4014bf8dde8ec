"""
Token Store.

In-memory mapping from authorization codes to the grants a test harness
has registered, shared between the harness and the token endpoint.
"""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from typing import Dict, Optional

from localoidc.auth.oidc.exceptions import InvalidAuthorizationCodeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenRecord:
    """An issued but not yet redeemed grant."""

    access_token: str
    scopes: str
    user_id: str
    nonce: str


class TokenStore:
    """
    Authorization code store for one emulator instance.

    All reads and writes happen under a single lock. Critical sections are
    limited to the dictionary operation itself.

    Attributes:
        _records: Dictionary mapping authorization codes to token records
        _lock: Asyncio lock guarding _records
        _single_use: Whether redeeming a code removes it
    """

    CODE_BYTES = 24

    def __init__(self, single_use: bool = True):
        """Initialize the token store.

        Args:
            single_use: Remove a record when its code is redeemed. When
                False a code can be replayed for the life of the store.
        """
        self._records: Dict[str, TokenRecord] = {}
        self._lock = asyncio.Lock()
        self._single_use = single_use

    @property
    def single_use(self) -> bool:
        return self._single_use

    @classmethod
    def generate_code(cls) -> str:
        """Generate a fresh authorization code."""
        return secrets.token_urlsafe(cls.CODE_BYTES)

    async def register(
        self,
        access_token: str,
        scopes: str,
        user_id: str,
        nonce: str,
        code: Optional[str] = None,
    ) -> str:
        """Register a grant and return its authorization code.

        Args:
            access_token: Returned verbatim from the token endpoint
            scopes: Returned verbatim as the granted scope
            user_id: Subject of the ID token
            nonce: Nonce to embed in the ID token
            code: Authorization code to use, generated if None

        Returns:
            The authorization code

        Raises:
            ValueError: If nonce is empty
        """
        if not nonce:
            raise ValueError("A token record requires a nonce")

        code = code or self.generate_code()
        record = TokenRecord(
            access_token=access_token,
            scopes=scopes,
            user_id=user_id,
            nonce=nonce,
        )

        async with self._lock:
            replaced = code in self._records
            self._records[code] = record

        if replaced:
            logger.warning(f"Replaced existing grant for user_id={user_id}")
        logger.debug(f"Registered grant for user_id={user_id}, scopes={scopes}")
        return code

    async def redeem(self, code: str) -> TokenRecord:
        """Look up the record for an authorization code.

        Args:
            code: Authorization code

        Returns:
            The token record

        Raises:
            InvalidAuthorizationCodeError: If the code is unknown or consumed
        """
        async with self._lock:
            if self._single_use:
                record = self._records.pop(code, None)
            else:
                record = self._records.get(code)

        if record is None:
            logger.info("Rejected unknown or consumed authorization code")
            raise InvalidAuthorizationCodeError(code)

        logger.debug(f"Redeemed grant for user_id={record.user_id}")
        return record

    async def count(self) -> int:
        """Number of outstanding grants."""
        async with self._lock:
            return len(self._records)

    async def clear(self) -> None:
        """Drop all outstanding grants."""
        async with self._lock:
            self._records.clear()
