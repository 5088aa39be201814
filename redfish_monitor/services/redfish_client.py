"""Redfish API client that traverses the resource tree."""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from ..config.models import RedfishConfig, TraverseRule
from ..utils.errors import FetchFailure, ParseFailure, SchemaViolation
from .snapshot_cache import Snapshot, freeze_snapshot


ODATA_ID = "@odata.id"


def escaped_path(url: httpx.URL) -> str:
    """Return the percent-encoded path of a URL without its query."""
    return url.raw_path.decode("ascii").partition("?")[0]


class RedfishClient:
    """
    Client for a Redfish management controller.

    Walks the resource graph from a root path by following ``@odata.id``
    links and returns a snapshot mapping each resource path to its document.
    Failures on one resource are logged and only abandon that branch.
    """

    def __init__(
        self,
        config: RedfishConfig,
        logger: Optional[logging.Logger] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize Redfish client.

        Args:
            config: Controller address and credentials
            logger: Optional logger instance
            transport: Optional httpx transport (used by tests)
        """
        self.config = config
        self.logger = (logger or logging.getLogger(__name__)).getChild(self.__class__.__name__)
        self.endpoint = httpx.URL(config.base_url)
        self._transport = transport

    def _create_client(self) -> httpx.AsyncClient:
        # Management controllers ship self-signed certificates
        return httpx.AsyncClient(
            auth=httpx.BasicAuth(self.config.username, self.config.password),
            headers={"Accept": "application/json"},
            timeout=self.config.timeout_seconds,
            verify=False,
            transport=self._transport,
        )

    async def traverse(self, rule: TraverseRule) -> Snapshot:
        """
        Fetch every resource reachable from the rule's root.

        Args:
            rule: Compiled traverse rule (root and exclusions)

        Returns:
            Snapshot: Resource path to parsed document
        """
        data: Dict[str, Any] = {}
        async with self._create_client() as client:
            await self._get(client, rule, rule.root, data)

        self.logger.info(
            f"Traversed {len(data)} Redfish resources",
            extra={"root": rule.root, "resources": len(data)}
        )
        return freeze_snapshot(data)

    async def _get(
        self,
        client: httpx.AsyncClient,
        rule: TraverseRule,
        path: str,
        data: Dict[str, Any]
    ) -> None:
        if rule.is_excluded(path):
            self.logger.debug(f"Skipping excluded path {path}")
            return

        try:
            url = self.endpoint.join(path)
        except httpx.InvalidURL as e:
            self.logger.warning(
                "failed to parse Redfish path",
                extra={"path": path, "error": str(e), "error_type": FetchFailure.__name__}
            )
            return

        epath = escaped_path(url)
        if epath in data:
            return

        try:
            # httpx timeouts apply per phase; bound the whole exchange as well
            response = await asyncio.wait_for(client.get(url), timeout=self.config.timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning(
                "Redfish request timed out",
                extra={"url": str(url), "timeout": self.config.timeout_seconds, "error_type": FetchFailure.__name__}
            )
            return
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            self.logger.warning(
                "failed to GET Redfish data",
                extra={"url": str(url), "error": str(e) or type(e).__name__, "error_type": FetchFailure.__name__}
            )
            return

        if not response.is_success:
            self.logger.warning(
                "Redfish answered non-OK",
                extra={"url": str(url), "status": response.status_code, "error_type": FetchFailure.__name__}
            )
            return

        try:
            parsed = response.json()
        except ValueError as e:
            self.logger.warning(
                "failed to parse Redfish data",
                extra={"url": str(url), "error": str(e), "error_type": ParseFailure.__name__}
            )
            return

        data[epath] = parsed
        await self._follow(client, rule, parsed, data)

    async def _follow(
        self,
        client: httpx.AsyncClient,
        rule: TraverseRule,
        value: Any,
        data: Dict[str, Any]
    ) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                if key != ODATA_ID:
                    await self._follow(client, rule, child, data)
                elif isinstance(child, str):
                    await self._get(client, rule, child, data)
                else:
                    self.logger.warning(
                        "value of @odata.id is not string",
                        extra={"type": type(child).__name__, "value": repr(child),
                               "error_type": SchemaViolation.__name__}
                    )
        elif isinstance(value, list):
            for child in value:
                await self._follow(client, rule, child, data)
