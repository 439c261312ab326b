from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Literal, Protocol, Union


Role = Literal["system", "user", "assistant"]


class ErrorKind(str, Enum):
    CONFIGURATION = "configuration"
    TRANSPORT = "transport"
    EXTRACTION = "extraction"
    CANCELLED = "cancelled"
    PERSISTENCE = "persistence"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ChatMessage:
    role: Role
    content: str


@dataclass(frozen=True)
class Success:
    data: Any = None
    text: str | None = None

    @property
    def success(self) -> bool:
        return True

    @property
    def cancelled(self) -> bool:
        return False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": True}
        if self.text is not None:
            payload["text"] = self.text
        else:
            payload["data"] = self.data
        return payload


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    error: str
    code: str = "unexpected"
    recoverable: bool = True

    @property
    def success(self) -> bool:
        return False

    @property
    def cancelled(self) -> bool:
        return self.kind is ErrorKind.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "success": False,
            "error": self.error,
            "code": self.code,
            "kind": self.kind.value,
        }
        if self.cancelled:
            payload["cancelled"] = True
        return payload


AIResult = Union[Success, Failure]


def cancelled_failure() -> Failure:
    return Failure(kind=ErrorKind.CANCELLED, error="Request cancelled", code="cancelled")


def transport_failure(error: str, code: str = "http_error") -> Failure:
    return Failure(kind=ErrorKind.TRANSPORT, error=error, code=code)


class AIClient(Protocol):
    name: str

    async def call(self, prompt: str) -> AIResult: ...

    async def aclose(self) -> None: ...
