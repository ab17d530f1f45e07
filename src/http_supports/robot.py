"""Webhook robot that posts notifications through ``HttpClient``."""

from __future__ import annotations

import dataclasses
import logging
import threading
import traceback
from dataclasses import dataclass
from enum import Enum
from pprint import pformat
from typing import Any, Callable, Dict, Mapping, Optional

import httpx
from pydantic import BaseModel

from .client import HttpClient
from .config import ClientConfig
from .exceptions import ConfigurationError, UnsupportedVariantError
from .models import MarkdownMessage, MessageBody, TextMessage

logger = logging.getLogger(__name__)

DEFAULT_HOOK = "https://qyapi.weixin.qq.com"
SEND_PATH = "/cgi-bin/webhook/send"


class MessageType(str, Enum):
    TEXT = "text"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: Any) -> "MessageType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise UnsupportedVariantError("message type", value) from None


@dataclass(frozen=True)
class ErrorInfo:
    code: Any
    message: str
    file: str
    line: int

    @classmethod
    def from_exception(cls, error: BaseException) -> "ErrorInfo":
        file, line = "", 0
        frames = traceback.extract_tb(error.__traceback__) if error.__traceback__ else []
        if frames:
            file, line = frames[-1].filename, frames[-1].lineno or 0
        code = getattr(error, "code", None)
        if code is None:
            code = getattr(error, "errno", None) or 0
        return cls(code=code, message=str(error), file=file, line=line)

    def as_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "line": self.line, "file": self.file}


@dataclass(frozen=True)
class NotificationContext:
    description: str
    payload: Any
    error: Optional[ErrorInfo] = None


def _plain(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    if dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        return dataclasses.asdict(payload)
    if isinstance(payload, Mapping):
        return dict(payload)
    return payload


def format_content(ctx: NotificationContext) -> str:
    content = f"{ctx.description}\nParameters: \n{pformat(_plain(ctx.payload))}"
    if ctx.error is not None:
        content += f"\nDebug info:\n{pformat(ctx.error.as_dict())}"
    return content


def build_text(ctx: NotificationContext) -> TextMessage:
    return TextMessage(text=MessageBody(content=format_content(ctx)))


def build_markdown(ctx: NotificationContext) -> MarkdownMessage:
    content = f"**{ctx.description}**\n```\n{pformat(_plain(ctx.payload))}\n```"
    if ctx.error is not None:
        content += f"\n> {ctx.error.message} ({ctx.error.file}:{ctx.error.line})"
    return MarkdownMessage(markdown=MessageBody(content=content))


MESSAGE_BUILDERS: Dict[MessageType, Callable[[NotificationContext], BaseModel]] = {
    MessageType.TEXT: build_text,
    MessageType.MARKDOWN: build_markdown,
}


class Robot:
    """Sends notifications to a group-chat webhook identified by ``key``."""

    def __init__(self, key: str, *, http: Optional[HttpClient] = None, hook: str = DEFAULT_HOOK) -> None:
        if not key:
            raise ConfigurationError("robot key must not be empty")
        self._key = key
        self._http = http if http is not None else HttpClient(ClientConfig())
        self._http.base_uri = hook

    @property
    def key(self) -> str:
        return self._key

    @property
    def http(self) -> HttpClient:
        return self._http

    def notify(
        self,
        description: str,
        payload: Any,
        error: Optional[BaseException] = None,
        msg_type: Any = MessageType.TEXT,
    ) -> httpx.Response:
        message_type = MessageType.parse(msg_type)
        ctx = NotificationContext(
            description=description,
            payload=payload,
            error=ErrorInfo.from_exception(error) if error is not None else None,
        )
        message = MESSAGE_BUILDERS[message_type](ctx)
        return self._send(message)

    def _send(self, message: BaseModel) -> httpx.Response:
        options = {
            "debug": True,
            "http_errors": True,
            "headers": {
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            "query": {"key": self._key},
        }
        response = self._http.post(SEND_PATH, message.model_dump_json(), options)
        logger.info("Robot notification sent status=%s", response.status_code)
        return response

    def close(self) -> None:
        self._http.close()


class RobotRegistry:
    """Maps robot keys to ``Robot`` instances, creating them on first use."""

    def __init__(self, factory: Optional[Callable[[str], Robot]] = None) -> None:
        self._factory = factory or Robot
        self._robots: Dict[str, Robot] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Robot:
        if not key:
            raise ConfigurationError("robot key must not be empty")
        with self._lock:
            robot = self._robots.get(key)
            if robot is None:
                robot = self._factory(key)
                self._robots[key] = robot
            return robot

    def __contains__(self, key: object) -> bool:
        return key in self._robots

    def __len__(self) -> int:
        return len(self._robots)

    def close(self) -> None:
        with self._lock:
            robots = list(self._robots.values())
            self._robots.clear()
        for robot in robots:
            robot.close()


__all__ = [
    "DEFAULT_HOOK",
    "ErrorInfo",
    "MessageType",
    "NotificationContext",
    "Robot",
    "RobotRegistry",
    "format_content",
]
