"""
API key selection for the Gemini / Veo gateway.

The video model is billed separately, so the pipeline checks for a usable
key before every video request and runs a selection flow when there is none
or when the service rejects the active one.
"""

import asyncio
import inspect
import os
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Union

from utils.constants import API_KEY_ENV
from utils.errors import CredentialError
from utils.logger import get_logger

logger = get_logger("credentials")

KeySelector = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class CredentialProvider(ABC):
    """Source of the API key used by the gateway."""

    @abstractmethod
    async def has_credential(self) -> bool:
        ...

    @abstractmethod
    async def select_credential(self) -> None:
        """Run the selection flow; returns once the user is done."""

    @abstractmethod
    def api_key(self) -> Optional[str]:
        ...


class EnvCredentialProvider(CredentialProvider):
    """
    Reads the key from an environment variable (GOOGLE_API_KEY by default).

    ``selector`` is the user-facing selection flow. It may be sync or async
    and returns the new key (or None if the user cancelled).
    """

    def __init__(self, env_var: str = API_KEY_ENV, selector: Optional[KeySelector] = None):
        self.env_var = env_var
        self.selector = selector
        self._lock = asyncio.Lock()

    def api_key(self) -> Optional[str]:
        return os.getenv(self.env_var) or None

    async def has_credential(self) -> bool:
        return self.api_key() is not None

    async def select_credential(self) -> None:
        if self.selector is None:
            raise CredentialError(
                f"No API key selection flow available. Set {self.env_var} and try again."
            )

        # one selection dialog at a time
        async with self._lock:
            result = self.selector()
            if inspect.isawaitable(result):
                result = await result
            if result:
                os.environ[self.env_var] = result.strip()
                logger.info("API key selected")
            else:
                logger.warning("API key selection cancelled")
