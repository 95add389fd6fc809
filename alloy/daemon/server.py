"""
Daemon transport — newline-delimited JSON over a Unix socket.

One asyncio task per accepted connection. Requests on a connection are
handled in order; connections are independent of each other. A client
that disconnects mid-request does not stop the work already started on
its behalf (launched processes keep running).
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import signal
import socket
from functools import partial
from pathlib import Path

from pydantic import ValidationError

from alloy.core.errors import AlloyError, StorageError
from alloy.daemon.rpc import (
    INTERNAL_ERROR,
    INVALID_REQUEST,
    PARSE_ERROR,
    RpcRequest,
    RpcResponse,
)
from alloy.daemon.service import DaemonService

logger = logging.getLogger(__name__)

MAX_LINE_BYTES = 1024 * 1024


async def handle_line(service: DaemonService, line: str) -> RpcResponse:
    """Decode one request line, dispatch it, and build the response."""
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as e:
        return RpcResponse.failure(None, PARSE_ERROR, f"invalid json: {e}")

    try:
        request = RpcRequest.model_validate(payload)
    except ValidationError as e:
        request_id = payload.get("id") if isinstance(payload, dict) else None
        return RpcResponse.failure(request_id, INVALID_REQUEST, f"invalid request: {e}")

    try:
        result = await service.dispatch(request.method, request.params)
    except AlloyError as e:
        logger.warning("%s failed: %s", request.method, e)
        return RpcResponse.failure(request.id, e.code, str(e), e.kind)
    except Exception as e:
        logger.exception("Unhandled error in %s", request.method)
        return RpcResponse.failure(request.id, INTERNAL_ERROR, f"internal error: {e}", "internal")

    return RpcResponse.success(request.id, result)


async def handle_connection(
    service: DaemonService,
    reader: asyncio.StreamReader,
    writer: asyncio.StreamWriter,
) -> None:
    """Serve requests on one connection until the client hangs up."""
    logger.debug("Client connected")
    try:
        while True:
            try:
                raw = await reader.readline()
            except ValueError:
                response = RpcResponse.failure(
                    None, INVALID_REQUEST, f"request exceeds {MAX_LINE_BYTES} bytes"
                )
                writer.write(response.to_json().encode("utf-8") + b"\n")
                await writer.drain()
                break

            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").strip()
            if not line:
                continue

            response = await handle_line(service, line)
            writer.write(response.to_json().encode("utf-8") + b"\n")
            await writer.drain()
    except (ConnectionResetError, BrokenPipeError) as e:
        logger.debug("Client went away: %s", e)
    finally:
        writer.close()
        with contextlib.suppress(ConnectionResetError, BrokenPipeError):
            await writer.wait_closed()
        logger.debug("Client disconnected")


def _remove_stale_socket(socket_path: Path) -> None:
    """Unlink a leftover socket file; refuse if a daemon still answers on it."""
    if not socket_path.exists():
        return

    probe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
    try:
        probe.connect(str(socket_path))
    except OSError:
        logger.debug("Removing stale socket %s", socket_path)
        socket_path.unlink()
    else:
        raise StorageError(f"a daemon is already listening on {socket_path}")
    finally:
        probe.close()


async def serve(
    service: DaemonService,
    socket_path: Path,
    stop: asyncio.Event | None = None,
    ready: asyncio.Event | None = None,
    handle_signals: bool = True,
) -> None:
    """Listen on ``socket_path`` until ``stop`` is set (or SIGINT/SIGTERM).

    Args:
        service: The dispatcher shared by all connections.
        socket_path: Unix socket to bind; a stale file is replaced.
        stop: Event that ends the server. Created if omitted.
        ready: Set once the socket is accepting connections.
        handle_signals: Install SIGINT/SIGTERM handlers that set ``stop``.
    """
    stop = stop or asyncio.Event()
    socket_path.parent.mkdir(parents=True, exist_ok=True)
    _remove_stale_socket(socket_path)

    connections: set[asyncio.StreamWriter] = set()

    async def _on_connect(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        connections.add(writer)
        try:
            await handle_connection(service, reader, writer)
        finally:
            connections.discard(writer)

    server = await asyncio.start_unix_server(
        _on_connect,
        path=str(socket_path),
        limit=MAX_LINE_BYTES,
    )
    socket_path.chmod(0o600)

    loop = asyncio.get_running_loop()
    installed: list[int] = []
    if handle_signals:
        for sig in (signal.SIGINT, signal.SIGTERM):
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, partial(_request_stop, stop, sig))
                installed.append(sig)

    logger.info("Daemon listening on %s", socket_path)
    try:
        if ready is not None:
            ready.set()
        await stop.wait()
    finally:
        logger.info("Daemon shutting down")
        for sig in installed:
            loop.remove_signal_handler(sig)
        server.close()
        for writer in list(connections):
            writer.close()
        await server.wait_closed()
        socket_path.unlink(missing_ok=True)


def _request_stop(stop: asyncio.Event, sig: int) -> None:
    logger.info("Received %s", signal.Signals(sig).name)
    stop.set()
