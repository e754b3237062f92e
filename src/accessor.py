"""
Resource Accessor - Generic access to any resource collection.

Resources are addressed by (apiVersion, resource, namespace) strings, so the
controller can operate on arbitrary kinds without knowing their shape. The
Kubernetes implementation talks to the API server's REST interface directly.
"""

import json
import logging
import os
import ssl
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp

from config import KubernetesConfig
from errors import ApiError

logger = logging.getLogger(__name__)


def resource_path(
    api_version: str, resource: str, namespace: str = "", name: str = ""
) -> str:
    """
    Build the REST path for a resource collection or a single object.

    The core group ("v1") lives under /api, named groups under /apis.
    An empty namespace addresses the resource across all namespaces (or a
    cluster-scoped resource).
    """
    if "/" in api_version:
        path = f"/apis/{api_version}"
    else:
        path = f"/api/{api_version}"
    if namespace:
        path += f"/namespaces/{namespace}"
    path += f"/{resource}"
    if name:
        path += f"/{name}"
    return path


class ResourceAccessor(ABC):
    """Narrow interface the controller uses to read and write objects."""

    @abstractmethod
    async def list(
        self,
        api_version: str,
        resource: str,
        namespace: str = "",
        include_uninitialized: bool = True,
    ) -> List[Dict[str, Any]]:
        """
        List objects of a resource.

        Args:
            api_version: Group/version, e.g. 'v1' or 'apps/v1'.
            resource: Plural resource name, e.g. 'configmaps'.
            namespace: Namespace to list in; empty for all namespaces.
            include_uninitialized: Also return objects still pending
                initialization.

        Returns:
            The objects as dicts, each with kind and apiVersion set.
        """
        pass

    @abstractmethod
    async def update(
        self,
        api_version: str,
        resource: str,
        namespace: str,
        obj: Dict[str, Any],
    ) -> Dict[str, Any]:
        """
        Replace a single object.

        Returns:
            The object as stored by the server.
        """
        pass


class KubernetesAccessor(ResourceAccessor):
    """ResourceAccessor backed by the Kubernetes API server."""

    def __init__(
        self,
        config: KubernetesConfig,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def connect(self) -> None:
        """Open the HTTP session used for all API calls."""
        if self._session is not None:
            return

        headers = {"Accept": "application/json"}
        token = self.config.read_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        if not self.config.verify_ssl:
            ssl_context: Any = False
        else:
            ssl_context = ssl.create_default_context(cafile=self._ca_file())

        self._session = aiohttp.ClientSession(
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=self.config.request_timeout),
            connector=aiohttp.TCPConnector(ssl=ssl_context),
        )
        self._owns_session = True
        logger.info(f"Connected to Kubernetes API server at {self.config.api_server}")

    async def close(self) -> None:
        """Close the HTTP session if this accessor opened it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "KubernetesAccessor":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _ca_file(self) -> Optional[str]:
        if self.config.ca_file and os.path.exists(self.config.ca_file):
            return self.config.ca_file
        return None

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        if self._session is None:
            await self.connect()

        url = f"{self.config.api_server.rstrip('/')}{path}"
        async with self._session.request(
            method, url, params=params, json=body
        ) as resp:
            text = await resp.text()
            try:
                data = json.loads(text) if text else {}
            except json.JSONDecodeError:
                data = {}

            if resp.status >= 400:
                message = text
                if isinstance(data, dict) and data.get("message"):
                    message = data["message"]
                raise ApiError(resp.status, message)

        if not isinstance(data, dict):
            raise ApiError(resp.status, f"unexpected response body for {method} {path}")
        return data

    async def list(
        self,
        api_version: str,
        resource: str,
        namespace: str = "",
        include_uninitialized: bool = True,
    ) -> List[Dict[str, Any]]:
        params = {}
        if include_uninitialized:
            params["includeUninitialized"] = "true"

        data = await self._request(
            "GET", resource_path(api_version, resource, namespace), params=params
        )

        # Items of a list response carry neither kind nor apiVersion.
        list_kind = data.get("kind", "")
        item_kind = list_kind[: -len("List")] if list_kind.endswith("List") else ""
        item_api_version = data.get("apiVersion", api_version)

        items = []
        for item in data.get("items") or []:
            if not isinstance(item, dict):
                continue
            if item_kind:
                item.setdefault("kind", item_kind)
            item.setdefault("apiVersion", item_api_version)
            items.append(item)
        return items

    async def update(
        self,
        api_version: str,
        resource: str,
        namespace: str,
        obj: Dict[str, Any],
    ) -> Dict[str, Any]:
        name = (obj.get("metadata") or {}).get("name", "")
        if not name:
            raise ValueError("cannot update an object without metadata.name")
        return await self._request(
            "PUT", resource_path(api_version, resource, namespace, name), body=obj
        )
