"""JSON-RPC 2.0 endpoint exposing the search tools (MCP-style)."""

import json
from collections.abc import Awaitable, Callable
from enum import IntEnum
from typing import Any

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from embedding_search import __version__
from embedding_search.exceptions import EmbeddingSearchError, ValidationError
from embedding_search.logging_config import get_logger
from embedding_search.query.service import QueryService

logger = get_logger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "embedding-search"


class RPCErrorCode(IntEnum):
    """Standard JSON-RPC error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603


class RPCError(Exception):
    """An error to be returned as a JSON-RPC error object."""

    def __init__(self, code: RPCErrorCode, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)


class RPCRequest(BaseModel):
    """Envelope of an incoming JSON-RPC call."""

    jsonrpc: str = Field(description="Protocol version, must be 2.0")
    id: str | int | None = Field(default=None, description="Request id")
    method: str = Field(min_length=1, description="Method name")
    params: dict[str, Any] | None = Field(default=None, description="Parameters")


TOOLS: list[dict[str, Any]] = [
    {
        "name": "semantic_search_text",
        "description": "Semantic search for a freeform text query.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string"},
                "limit": {"type": "number"},
            },
            "required": ["query"],
        },
    },
    {
        "name": "semantic_search_note",
        "description": "Semantic search for notes related to a given note title or path.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "note": {"type": "string"},
                "limit": {"type": "number"},
            },
            "required": ["note"],
        },
    },
    {
        "name": "fetch_note",
        "description": "Fetch the full content of a note by path.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "path": {"type": "string"},
            },
            "required": ["path"],
        },
    },
]


def rpc_result(request_id: str | int | None, result: Any) -> dict[str, Any]:
    """Build a JSON-RPC success response."""
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def rpc_error(request_id: str | int | None, code: int, message: str) -> dict[str, Any]:
    """Build a JSON-RPC error response."""
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": int(code), "message": message}}


class RPCDispatcher:
    """Routes JSON-RPC methods and tool calls to the query service."""

    def __init__(
        self,
        queries: QueryService,
        on_initialize: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            queries: Service that executes the tools.
            on_initialize: Hook run when a client completes ``initialize``.
        """
        self._queries = queries
        self._on_initialize = on_initialize

    async def handle_raw(self, body: bytes) -> dict[str, Any] | None:
        """Handle an undecoded request body.

        Returns:
            The response object, or None for notifications.
        """
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return rpc_error(None, RPCErrorCode.PARSE_ERROR, "Invalid JSON")
        return await self.handle(payload)

    async def handle(self, payload: Any) -> dict[str, Any] | None:
        """Handle a decoded JSON-RPC message."""
        raw_id = payload.get("id") if isinstance(payload, dict) else None
        request_id = raw_id if isinstance(raw_id, (str, int)) else None
        try:
            request = RPCRequest.model_validate(payload)
        except PydanticValidationError:
            return rpc_error(request_id, RPCErrorCode.INVALID_REQUEST, "Invalid request")
        if request.jsonrpc != "2.0":
            return rpc_error(request_id, RPCErrorCode.INVALID_REQUEST, "Invalid request")

        if request.method.startswith("notifications/"):
            return None

        try:
            result = await self._dispatch(request)
        except RPCError as e:
            return rpc_error(request.id, e.code, e.message)
        return rpc_result(request.id, result)

    async def _dispatch(self, request: RPCRequest) -> Any:
        if request.method == "initialize":
            if self._on_initialize is not None:
                await self._on_initialize()
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {"tools": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            }
        if request.method == "tools/list":
            return {"tools": TOOLS}
        if request.method == "tools/call":
            return await self._call_tool(request.params or {})
        raise RPCError(RPCErrorCode.METHOD_NOT_FOUND, "Method not found")

    async def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not name or not isinstance(name, str):
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Missing tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise RPCError(RPCErrorCode.INVALID_PARAMS, "Tool arguments must be an object")

        try:
            result = await self._run_tool(name, arguments)
        except ValidationError as e:
            raise RPCError(RPCErrorCode.INVALID_PARAMS, e.message) from e
        except EmbeddingSearchError as e:
            logger.error(
                f"Tool {name} failed: {e.message}",
                extra={"error_code": e.code.value, "details": e.details},
            )
            raise RPCError(RPCErrorCode.INTERNAL_ERROR, e.message) from e

        text = json.dumps(result.model_dump(mode="json"), indent=2, ensure_ascii=False)
        return {"content": [{"type": "text", "text": text}], "isError": False}

    async def _run_tool(self, name: str, arguments: dict[str, Any]) -> BaseModel:
        if name == "semantic_search_text":
            return await self._queries.search_by_text(
                arguments.get("query"),
                arguments.get("limit"),
            )
        if name == "semantic_search_note":
            return await self._queries.search_by_note(
                arguments.get("note"),
                arguments.get("limit"),
            )
        if name == "fetch_note":
            return await self._queries.fetch_note(arguments.get("path"))
        raise RPCError(RPCErrorCode.METHOD_NOT_FOUND, f"Unknown tool: {name}")


router = APIRouter(tags=["MCP"])


@router.post("/mcp")
async def mcp_endpoint(request: Request) -> Response:
    """Handle one JSON-RPC message."""
    dispatcher: RPCDispatcher = request.app.state.dispatcher
    body = await request.body()
    try:
        response = await dispatcher.handle_raw(body)
    except Exception as e:
        logger.exception("MCP request error")
        response = rpc_error(None, RPCErrorCode.INTERNAL_ERROR, str(e))

    if response is None:
        return Response(status_code=status.HTTP_202_ACCEPTED)
    return JSONResponse(content=response)
