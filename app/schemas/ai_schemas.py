# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.config import MAX_ENTRY_CHARS, MAX_SUMMARY_CHARS


class InsightRequest(BaseModel):
    entry_id: int


class ChatRequest(BaseModel):
    entry_id: int
    message: str = Field(..., max_length=MAX_ENTRY_CHARS)
    entry_content: Optional[str] = Field(None, max_length=MAX_ENTRY_CHARS)
    client_temp_id: Optional[str] = None


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class SummaryRequest(BaseModel):
    entry_id: int
    entry_content: Optional[str] = Field(None, max_length=MAX_SUMMARY_CHARS)
    conversation_history: Optional[List[HistoryMessage]] = None
