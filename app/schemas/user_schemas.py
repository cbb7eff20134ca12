# Copyright (c) 2025 Shiladitya Mallick
# This file is part of the Reflect - AI Journal Companion project.
# Licensed under the MIT License - see the LICENSE file for details.


from pydantic import BaseModel
from app.models.user import AIStyle


class AIStyleUpdateRequest(BaseModel):
    ai_style: AIStyle
