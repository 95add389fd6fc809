"""
Daemon client — one request, one response line, per call.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from pathlib import Path
from typing import Any

from alloy.core.errors import AlloyError
from alloy.daemon.rpc import RpcRequest, RpcResponse

logger = logging.getLogger(__name__)

_request_ids = itertools.count(1)


class DaemonError(AlloyError):
    """The daemon answered with an error."""

    def __init__(self, message: str, code: int = -32000, kind: str | None = None):
        super().__init__(message)
        self.code = code
        self.kind = kind or type(self).kind


class DaemonUnavailableError(DaemonError):
    """Nothing is listening on the daemon socket."""

    kind = "unavailable"


class RpcClient:
    """Async client for the daemon socket."""

    def __init__(self, socket_path: Path, timeout: float | None = None):
        self._socket_path = socket_path
        self._timeout = timeout

    @property
    def socket_path(self) -> Path:
        return self._socket_path

    async def call(self, method: str, params: dict | None = None) -> Any:
        """Send one request and return its ``result``.

        Raises:
            DaemonUnavailableError: If the socket cannot be reached.
            DaemonError: If the daemon returns an error response.
        """
        try:
            reader, writer = await asyncio.open_unix_connection(str(self._socket_path))
        except OSError as e:
            raise DaemonUnavailableError(
                f"unable to connect to daemon at {self._socket_path}: {e}"
            ) from e

        request = RpcRequest(id=next(_request_ids), method=method, params=params or {})
        try:
            writer.write(request.to_json().encode("utf-8") + b"\n")
            await writer.drain()
            line = await asyncio.wait_for(reader.readline(), timeout=self._timeout)
        finally:
            writer.close()
            await writer.wait_closed()

        if not line:
            raise DaemonError("daemon closed connection without response")

        try:
            response = RpcResponse.model_validate(json.loads(line))
        except ValueError as e:
            raise DaemonError(f"malformed response from daemon: {e}") from e

        if response.error is not None:
            kind = (response.error.data or {}).get("kind")
            raise DaemonError(response.error.message, response.error.code, kind)
        return response.result

    def call_sync(self, method: str, params: dict | None = None) -> Any:
        """Blocking wrapper around :meth:`call` for the CLI."""
        return asyncio.run(self.call(method, params))
