# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Wire messages exchanged between the interpreter and the kernel.

Every message crosses the channel as a plain JSON-compatible mapping with a
``type`` tag, so neither side ever shares mutable objects with the other::

    {"type": "fs_mkdir", "id": "3f2a...", "path": "/docs"}          # request
    {"type": "response", "id": "3f2a...", "ok": true, "result": null}
    {"type": "ready"}                                               # lifecycle
    {"type": "fatal", "error": {"message": "...", "trace": "..."}}

Request tags form a closed set; decoding an unknown tag raises
:class:`~kernelshell.errors.ProtocolError`.
"""

from __future__ import annotations

import base64
import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Final, cast
from uuid import uuid4

from ..errors import ProtocolError
from ..storage import Stat

__all__ = [
    "MUTATING_TYPES",
    "CpRequest",
    "ErrorInfo",
    "Fatal",
    "HelloRequest",
    "KernelMessage",
    "MkdirRequest",
    "MvRequest",
    "ReadFileRequest",
    "ReaddirRequest",
    "Ready",
    "Request",
    "Response",
    "RmRequest",
    "RmdirRequest",
    "StatRequest",
    "WriteFileRequest",
    "from_wire",
    "new_request_id",
    "to_wire",
]


def new_request_id() -> str:
    """Return a fresh correlation id."""
    return uuid4().hex


@dataclass(slots=True, frozen=True, kw_only=True)
class HelloRequest:
    type: ClassVar[str] = "hello"
    id: str = field(default_factory=new_request_id)
    name: str


@dataclass(slots=True, frozen=True, kw_only=True)
class MkdirRequest:
    type: ClassVar[str] = "fs_mkdir"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class ReaddirRequest:
    type: ClassVar[str] = "fs_readdir"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class WriteFileRequest:
    type: ClassVar[str] = "fs_write_file"
    id: str = field(default_factory=new_request_id)
    path: str
    data: bytes


@dataclass(slots=True, frozen=True, kw_only=True)
class ReadFileRequest:
    type: ClassVar[str] = "fs_read_file"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class StatRequest:
    type: ClassVar[str] = "fs_stat"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class RmRequest:
    type: ClassVar[str] = "fs_rm"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class RmdirRequest:
    type: ClassVar[str] = "fs_rmdir"
    id: str = field(default_factory=new_request_id)
    path: str


@dataclass(slots=True, frozen=True, kw_only=True)
class MvRequest:
    type: ClassVar[str] = "fs_mv"
    id: str = field(default_factory=new_request_id)
    src: str
    dst: str


@dataclass(slots=True, frozen=True, kw_only=True)
class CpRequest:
    type: ClassVar[str] = "fs_cp"
    id: str = field(default_factory=new_request_id)
    src: str
    dst: str


type Request = (
    HelloRequest
    | MkdirRequest
    | ReaddirRequest
    | WriteFileRequest
    | ReadFileRequest
    | StatRequest
    | RmRequest
    | RmdirRequest
    | MvRequest
    | CpRequest
)

_REQUEST_TYPES: Final[dict[str, type[Any]]] = {
    cls.type: cls
    for cls in (
        HelloRequest,
        MkdirRequest,
        ReaddirRequest,
        WriteFileRequest,
        ReadFileRequest,
        StatRequest,
        RmRequest,
        RmdirRequest,
        MvRequest,
        CpRequest,
    )
}

MUTATING_TYPES: Final[frozenset[str]] = frozenset(
    {"fs_mkdir", "fs_write_file", "fs_rm", "fs_rmdir", "fs_mv", "fs_cp"}
)


@dataclass(slots=True, frozen=True)
class ErrorInfo:
    """Failure payload: a human-readable message and an optional traceback."""

    message: str
    trace: str | None = None

    @classmethod
    def from_exception(cls, error: BaseException, *, trace: str | None = None) -> ErrorInfo:
        return cls(message=str(error) or type(error).__name__, trace=trace)


@dataclass(slots=True, frozen=True)
class Response:
    """Reply to exactly one request, correlated by ``id``.

    ``ok`` implies ``error is None``; ``not ok`` implies ``error`` is set and
    ``result is None``. Use :meth:`success` and :meth:`failure` to build one.
    """

    type: ClassVar[str] = "response"
    id: str
    ok: bool
    result: Any = None
    error: ErrorInfo | None = None

    def __post_init__(self) -> None:
        if self.ok and self.error is not None:
            raise ValueError("successful response cannot carry an error")
        if not self.ok and (self.error is None or self.result is not None):
            raise ValueError("failed response needs an error and no result")

    @classmethod
    def success(cls, request_id: str, result: Any = None) -> Response:  # noqa: ANN401
        return cls(id=request_id, ok=True, result=result)

    @classmethod
    def failure(cls, request_id: str, error: ErrorInfo) -> Response:
        return cls(id=request_id, ok=False, error=error)


@dataclass(slots=True, frozen=True)
class Ready:
    """Bootstrap finished; requests are now accepted."""

    type: ClassVar[str] = "ready"


@dataclass(slots=True, frozen=True)
class Fatal:
    """Bootstrap failed; the kernel will never accept requests."""

    type: ClassVar[str] = "fatal"
    error: ErrorInfo


type KernelMessage = Response | Ready | Fatal


# ---------------------------------------------------------------------------
# Wire encoding
# ---------------------------------------------------------------------------

_BYTES_TAG: Final[str] = "__bytes__"
_STAT_TAG: Final[str] = "__stat__"


def _encode_value(value: object) -> object:
    if isinstance(value, bytes | bytearray):
        return {_BYTES_TAG: base64.b64encode(value).decode("ascii")}
    if isinstance(value, Stat):
        return {_STAT_TAG: value.to_dict()}
    if isinstance(value, list | tuple):
        return [_encode_value(item) for item in cast(list[object], value)]
    return value


def _decode_value(value: object) -> object:
    if isinstance(value, Mapping):
        mapping = cast(Mapping[str, Any], value)
        if _BYTES_TAG in mapping:
            return base64.b64decode(mapping[_BYTES_TAG])
        if _STAT_TAG in mapping:
            return Stat.from_dict(mapping[_STAT_TAG])
    if isinstance(value, list):
        return [_decode_value(item) for item in cast(list[object], value)]
    return value


def _encode_error(error: ErrorInfo) -> dict[str, Any]:
    return {"message": error.message, "trace": error.trace}


def _decode_error(raw: object) -> ErrorInfo:
    if not isinstance(raw, Mapping):
        raise ProtocolError("error payload must be a mapping")
    mapping = cast(Mapping[str, Any], raw)
    return ErrorInfo(message=str(mapping.get("message", "")), trace=mapping.get("trace"))


def to_wire(message: Request | KernelMessage) -> dict[str, Any]:
    """Convert a message into a JSON-compatible mapping."""

    match message:
        case Response(id=request_id, ok=ok, result=result, error=error):
            payload: dict[str, Any] = {"type": "response", "id": request_id, "ok": ok}
            if ok:
                payload["result"] = _encode_value(result)
            else:
                payload["error"] = _encode_error(cast(ErrorInfo, error))
            return payload
        case Ready():
            return {"type": "ready"}
        case Fatal(error=error):
            return {"type": "fatal", "error": _encode_error(error)}
        case _ if type(message) in _REQUEST_TYPES.values():
            payload = {"type": message.type}
            for item in dataclasses.fields(message):
                payload[item.name] = _encode_value(getattr(message, item.name))
            return payload
        case _:
            raise ProtocolError(f"cannot encode {type(message).__name__}")


def from_wire(payload: Mapping[str, Any]) -> Request | KernelMessage:
    """Rebuild a message from its wire mapping.

    Raises:
        ProtocolError: The tag is unknown or required fields are missing.
    """

    tag = payload.get("type")
    if tag == "response":
        request_id = payload.get("id")
        if not isinstance(request_id, str):
            raise ProtocolError("response is missing its id")
        if payload.get("ok"):
            return Response.success(request_id, _decode_value(payload.get("result")))
        return Response.failure(request_id, _decode_error(payload.get("error")))
    if tag == "ready":
        return Ready()
    if tag == "fatal":
        return Fatal(error=_decode_error(payload.get("error")))

    cls = _REQUEST_TYPES.get(cast(str, tag))
    if cls is None:
        raise ProtocolError(f"unknown message type: {tag!r}")
    kwargs = {
        item.name: _decode_value(payload[item.name])
        for item in dataclasses.fields(cls)
        if item.name in payload
    }
    try:
        return cast(Request, cls(**kwargs))
    except TypeError as error:
        raise ProtocolError(f"malformed {tag} request: {error}") from error
