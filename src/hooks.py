"""
Init Hooks - Calling out to an initializer's webhook.

The controller sends the uninitialized object to the initializer's init hook
and gets back the (possibly transformed) object plus an optional result that
is recorded on the object's metadata.
"""

import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from errors import HookCallError
from models import InitializerController

logger = logging.getLogger(__name__)


@dataclass
class HookRequest:
    """Request sent to an init hook."""

    object: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {"object": self.object}


@dataclass
class HookResponse:
    """Response from an init hook."""

    object: Dict[str, Any]
    result: Optional[Any] = None

    @classmethod
    def from_dict(cls, body: Any) -> "HookResponse":
        """
        Parse a hook response body.

        Raises:
            HookCallError: If the body has no object to write back.
        """
        if not isinstance(body, dict):
            raise HookCallError("hook response is not a JSON object")
        obj = body.get("object")
        if not isinstance(obj, dict):
            raise HookCallError("hook response has no object")
        return cls(object=obj, result=body.get("result"))


class HookInvoker(ABC):
    """Calls the init hook of an InitializerController."""

    @abstractmethod
    async def invoke(
        self, ic: InitializerController, obj: Dict[str, Any]
    ) -> HookResponse:
        """
        Run the init hook for one object.

        Args:
            ic: The controller whose hook is called.
            obj: The uninitialized object. It is not modified.

        Returns:
            HookResponse with the object to write back.

        Raises:
            Exception: Any failure; the caller records it against the object.
        """
        pass


class WebhookInvoker(HookInvoker):
    """HookInvoker that POSTs the request as JSON to the controller's hook URL."""

    def __init__(self, timeout_seconds: int = 10):
        self.timeout_seconds = timeout_seconds

    async def invoke(
        self, ic: InitializerController, obj: Dict[str, Any]
    ) -> HookResponse:
        url = ic.hook_url()
        payload = HookRequest(object=copy.deepcopy(obj)).to_dict()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)

        logger.debug(f"Calling init hook {url} for InitializerController {ic.name}")
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.post(url, json=payload) as resp:
                if resp.status != 200:
                    text = await resp.text()
                    raise HookCallError(
                        f"init hook {url} returned HTTP {resp.status}: {text}"
                    )
                try:
                    body = await resp.json(content_type=None)
                except ValueError as e:
                    raise HookCallError(f"init hook {url} returned invalid JSON: {e}")

        return HookResponse.from_dict(body)
