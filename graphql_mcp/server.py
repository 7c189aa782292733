"""
JSON-RPC Protocol Server

Serves generated GraphQL tools over line-delimited JSON-RPC 2.0. Each incoming line
is handled by its own task; responses are written as tasks finish, so clients must
match them by id.
"""

import asyncio
import itertools
import json
import logging
import re
import sys
from typing import Any, Callable, Dict, Optional, Tuple, Union

from pydantic import BaseModel, ValidationError

from . import __version__
from .base import GraphQLSource
from .catalog import build_tools
from .config import Settings
from .errors import (
    GraphQLMCPError,
    InvalidParams,
    MethodNotFound,
    ProtocolParseError,
    SchemaUnavailable,
    JSONRPC_SERVER_ERROR,
)
from .operations import ToolInvoker, sanitize_value
from .schema import SchemaService

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "graphql-mcp-server"
MAX_LINE_LENGTH = 16 * 1024 * 1024

_ID_PATTERN = re.compile(r'"id"\s*:\s*("(?:[^"\\]|\\.)*"|-?\d+|null)')


class JSONRPCRequest(BaseModel):
    jsonrpc: str = "2.0"
    id: Optional[Union[int, str]] = None
    method: str
    params: Optional[Dict[str, Any]] = None


def recover_id(line: str) -> Optional[Union[int, str]]:
    """Best-effort extraction of the request id from a line that is not valid JSON."""
    match = _ID_PATTERN.search(line)
    if match is None:
        return None
    try:
        return json.loads(match.group(1))
    except ValueError:
        return None


def error_response(request_id: Any, code: int, message: str) -> Dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


class MCPServer:
    """Routes JSON-RPC requests to the schema service, the tool catalog and the invoker."""

    def __init__(self, invoker: ToolInvoker):
        """
        Args:
            invoker: Tool invoker; its schema service and whitelists also drive tool listing
        """
        self.invoker = invoker
        self.schema_service: SchemaService = invoker.schema_service
        self.pending: Dict[Tuple[Any, int], asyncio.Task] = {}
        self._sequence = itertools.count()
        self._handlers = {
            "initialize": self._initialize,
            "tools/list": self._list_tools,
            "tools/call": self._call_tool,
            "tool.call": self._call_tool,
            "resources/list": self._list_resources,
            "prompts/list": self._list_prompts,
        }

    @classmethod
    def from_settings(cls, settings: Settings) -> "MCPServer":
        source = GraphQLSource(endpoint=settings.endpoint, api_key=settings.api_key)
        schema_service = SchemaService(source, ttl=settings.cache_ttl)
        invoker = ToolInvoker(schema_service, settings.whitelisted_queries, settings.whitelisted_mutations)
        return cls(invoker)

    async def _initialize(self, params: Dict[str, Any]) -> Dict[str, Any]:
        logger.info("Handling initialize request")
        return {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {"tools": {}, "resources": {}, "prompts": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    async def _list_tools(self, params: Dict[str, Any]) -> Dict[str, Any]:
        snapshot = await self.schema_service.get_schema()
        tools = build_tools(
            snapshot.schema,
            self.invoker.query_whitelist,
            self.invoker.mutation_whitelist,
            self.schema_service.registry,
        )
        return {"tools": [tool.to_wire() for tool in tools]}

    async def _call_tool(self, params: Dict[str, Any]) -> Dict[str, Any]:
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParams("Missing tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise InvalidParams("Tool arguments must be an object")

        logger.info(f"Tool call: {name} args={arguments}")
        result = await self.invoker.call(name, arguments)
        text = json.dumps(sanitize_value(result), separators=(",", ":"), ensure_ascii=False)
        return {"content": [{"type": "text", "text": text}]}

    async def _list_resources(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"resources": []}

    async def _list_prompts(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"prompts": []}

    async def handle_message(self, line: str) -> Optional[Dict[str, Any]]:
        """
        Handle one JSON-RPC line.

        Args:
            line: Raw request text

        Returns:
            The response object, or None for notifications
        """
        try:
            message = json.loads(line)
        except ValueError as e:
            logger.error(f"Error parsing message: {e}")
            error = ProtocolParseError(f"Error processing request: {e}")
            return error_response(recover_id(line), error.code, str(error))

        request_id = message.get("id") if isinstance(message, dict) else None
        try:
            request = JSONRPCRequest.model_validate(message)
            if request.method == "notifications/initialized" or (
                request.method.startswith("notifications/") and request.id is None
            ):
                logger.debug(f"Notification received: {request.method}")
                return None

            handler = self._handlers.get(request.method)
            if handler is None:
                logger.warning(f"Method not found: {request.method}")
                raise MethodNotFound(f"Method '{request.method}' not found")

            result = await handler(request.params or {})
        except GraphQLMCPError as e:
            logger.error(f"Error handling request {request_id}: {e}")
            return error_response(request_id, e.code, str(e))
        except ValidationError as e:
            logger.error(f"Invalid request {request_id}: {e}")
            return error_response(request_id, JSONRPC_SERVER_ERROR, f"Error processing request: invalid request ({e.error_count()} errors)")
        except Exception as e:
            logger.exception(f"Error processing message: {e}")
            return error_response(request_id, JSONRPC_SERVER_ERROR, f"Error processing request: {e}")

        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def _process(self, line: str, write: Callable[[str], None]) -> None:
        response = await self.handle_message(line)
        if response is not None:
            write(json.dumps(response, ensure_ascii=False))

    def _on_done(self, key: Tuple[Any, int], task: asyncio.Task) -> None:
        self.pending.pop(key, None)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Request {key[0]} failed: {task.exception()!r}")

    async def serve(self, reader: asyncio.StreamReader, write: Callable[[str], None]) -> None:
        """
        Read lines until EOF, handling each one concurrently.

        Args:
            reader: Source of request lines
            write: Callable that emits one response line
        """
        while True:
            try:
                raw = await reader.readline()
            except ValueError as e:
                logger.error(f"Dropping oversized message: {e}")
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            logger.debug(f"Received message: {line[:100]}")
            key = (recover_id(line), next(self._sequence))
            task = asyncio.create_task(self._process(line, write))
            self.pending[key] = task
            task.add_done_callback(lambda t, key=key: self._on_done(key, t))

        if self.pending:
            await asyncio.gather(*self.pending.values(), return_exceptions=True)

    async def warm_up(self) -> None:
        """Fetch the schema in the background so the first request is fast."""
        try:
            await self.schema_service.get_schema()
        except SchemaUnavailable as e:
            logger.error(f"Initial schema fetch failed: {e}")

    async def run_stdio(self) -> None:
        """Serve over stdin/stdout until stdin closes."""
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(_log_unhandled)

        reader = asyncio.StreamReader(limit=MAX_LINE_LENGTH)
        await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

        def write(line: str) -> None:
            sys.stdout.write(line + "\n")
            sys.stdout.flush()

        warm_up = asyncio.create_task(self.warm_up())
        logger.info("GraphQL MCP Server started and ready")
        await self.serve(reader, write)
        await warm_up


def _log_unhandled(loop: asyncio.AbstractEventLoop, context: Dict[str, Any]) -> None:
    """Log errors nobody awaited instead of letting them pass silently."""
    exception = context.get("exception")
    logger.error(f"Unhandled error: {context.get('message')}", exc_info=exception)
