"""Pydantic models for robot webhook messages."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class MessageBody(BaseModel):
    content: str = Field(..., min_length=1)


class TextMessage(BaseModel):
    msgtype: Literal["text"] = "text"
    text: MessageBody


class MarkdownMessage(BaseModel):
    msgtype: Literal["markdown"] = "markdown"
    markdown: MessageBody


__all__ = ["MessageBody", "TextMessage", "MarkdownMessage"]
