"""
Convex HTTP client for swap records.

Swap records live in a Convex ``swaps`` table behind four functions:
``swaps:create``, ``swaps:get``, ``swaps:update`` and ``swaps:listActive``.
"""

from typing import Any, Dict, List, Optional, Type

import httpx

from swapflow.config import settings


class ConvexError(Exception):
    """Base exception for Convex errors."""

    def __init__(
        self,
        message: str,
        function_name: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        self.function_name = function_name
        # ``errorData`` of a ConvexError thrown inside the function
        self.data = data or {}
        prefix = f"{function_name}: " if function_name else ""
        super().__init__(f"{prefix}{message}")


class ConvexAuthError(ConvexError):
    """Deploy key rejected."""


class ConvexQueryError(ConvexError):
    pass


class ConvexMutationError(ConvexError):
    pass


class ConvexClient:
    """Async client for the Convex ``/api/query`` and ``/api/mutation`` endpoints."""

    SWAP_FUNCTIONS = {
        "create": "swaps:create",
        "get": "swaps:get",
        "update": "swaps:update",
        "list_active": "swaps:listActive",
    }

    def __init__(
        self,
        deployment_url: Optional[str] = None,
        deploy_key: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        url = deployment_url or settings.convex_url
        if not url:
            raise ConvexError("CONVEX_URL is required to store swaps in Convex")

        self.deployment_url = url.rstrip("/")
        self.deploy_key = deploy_key or settings.convex_deploy_key
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = http_client

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.deploy_key:
            headers["Authorization"] = f"Convex {self.deploy_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def _call(
        self,
        kind: str,
        function_name: str,
        args: Optional[Dict[str, Any]],
        error_cls: Type[ConvexError],
    ) -> Any:
        client = await self._get_client()
        try:
            response = await client.post(
                f"{self.deployment_url}/api/{kind}",
                json={"path": function_name, "args": args or {}, "format": "json"},
                headers=self.headers,
            )
        except httpx.RequestError as exc:
            raise error_cls(f"request failed: {exc}", function_name) from exc

        if response.status_code in (401, 403):
            raise ConvexAuthError("deploy key rejected", function_name)
        if response.is_error:
            raise error_cls(f"HTTP {response.status_code}: {response.text}", function_name)

        data = response.json()
        if data.get("status") == "error":
            error_data = data.get("errorData")
            raise error_cls(
                data.get("errorMessage") or "unknown error",
                function_name,
                error_data if isinstance(error_data, dict) else None,
            )
        return data.get("value")

    async def query(self, function_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        """
        Run a Convex query function.

        Raises:
            ConvexQueryError: If the request or the function fails
        """
        return await self._call("query", function_name, args, ConvexQueryError)

    async def mutation(self, function_name: str, args: Optional[Dict[str, Any]] = None) -> Any:
        return await self._call("mutation", function_name, args, ConvexMutationError)

    # =========================================================================
    # Swap records
    # =========================================================================

    async def create_swap(self, swap: Dict[str, Any]) -> Any:
        return await self.mutation(self.SWAP_FUNCTIONS["create"], {"swap": swap})

    async def get_swap(self, swap_id: str) -> Optional[Dict[str, Any]]:
        return await self.query(self.SWAP_FUNCTIONS["get"], {"swapId": swap_id})

    async def update_swap(
        self,
        swap_id: str,
        status: Optional[str],
        fields: Dict[str, Any],
        *,
        expected_status: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        """Apply a status change and field updates in one mutation; returns the updated record.

        With ``expected_status`` the mutation throws a ``STATUS_CONFLICT``
        ConvexError instead of writing when the stored status differs.
        """
        args: Dict[str, Any] = {"swapId": swap_id, "status": status, "fields": fields}
        if expected_status is not None:
            args["expectedStatus"] = expected_status
        return await self.mutation(self.SWAP_FUNCTIONS["update"], args)

    async def list_active_swaps(self) -> List[Dict[str, Any]]:
        """Swap records not yet in a terminal status."""
        return await self.query(self.SWAP_FUNCTIONS["list_active"], {}) or []


_convex_client: Optional[ConvexClient] = None


def get_convex_client() -> ConvexClient:
    """Process-wide Convex client built from settings."""
    global _convex_client
    if _convex_client is None:
        _convex_client = ConvexClient()
    return _convex_client
