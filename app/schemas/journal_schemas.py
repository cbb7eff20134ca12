# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.

from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from app.config import MAX_ENTRY_CHARS


class EntryCreateRequest(BaseModel):
    content: str = Field(..., max_length=MAX_ENTRY_CHARS)
    mood_rating: Optional[int] = None
    tags: Optional[List[str]] = None
    title: Optional[str] = None
    entry_date: Optional[date] = None
    generate_insight: bool = True


class EntryUpdateRequest(BaseModel):
    content: Optional[str] = Field(None, max_length=MAX_ENTRY_CHARS)
    mood_rating: Optional[int] = None
    title: Optional[str] = None
