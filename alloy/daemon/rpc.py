"""
RPC envelopes — one JSON object per line in each direction.

Request::

    {"id": 1, "method": "bottle.list", "params": {}}

Response, exactly one of ``result`` / ``error``::

    {"id": 1, "result": {...}}
    {"id": 1, "error": {"code": -32000, "message": "...", "data": {"kind": "not_found"}}}
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
INTERNAL_ERROR = -32603


class RpcRequest(BaseModel):
    """A decoded request line."""

    id: Any = None
    method: str
    params: Any = None

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"))


class RpcError(BaseModel):
    code: int
    message: str
    data: dict[str, Any] | None = None


class RpcResponse(BaseModel):
    """A response line."""

    id: Any = None
    result: Any = None
    error: RpcError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, request_id: Any, result: Any) -> RpcResponse:
        return cls(id=request_id, result=result)

    @classmethod
    def failure(
        cls,
        request_id: Any,
        code: int,
        message: str,
        kind: str | None = None,
    ) -> RpcResponse:
        return cls(
            id=request_id,
            error=RpcError(code=code, message=message, data={"kind": kind} if kind else None),
        )

    def to_json(self) -> str:
        body: dict[str, Any] = {}
        if self.id is not None:
            body["id"] = self.id
        if self.error is not None:
            body["error"] = self.error.model_dump(exclude_none=True)
        else:
            body["result"] = self.result
        try:
            return json.dumps(body, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            return json.dumps(
                {
                    "id": self.id,
                    "error": {"code": INTERNAL_ERROR, "message": f"serialization failed: {e}"},
                }
            )
