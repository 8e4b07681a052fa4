from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from edumeal.schemas.common import CamelModel


class StudentCreate(CamelModel):
    student_id: str = Field(min_length=1, max_length=64)
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    grade: str = Field(min_length=1, max_length=32)
    class_name: str = Field(alias="class", min_length=1, max_length=32)

    is_active: bool = True
    meals_remaining: int = 0
    parent_email: Optional[str] = Field(default=None, max_length=255)


class StudentUpdate(CamelModel):
    student_id: Optional[str] = Field(default=None, min_length=1, max_length=64)
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    grade: Optional[str] = Field(default=None, min_length=1, max_length=32)
    class_name: Optional[str] = Field(default=None, alias="class", min_length=1, max_length=32)

    is_active: Optional[bool] = None
    meals_remaining: Optional[int] = None
    parent_email: Optional[str] = Field(default=None, max_length=255)


class StudentOut(CamelModel):
    id: int
    student_id: str
    first_name: str
    last_name: str
    grade: str
    class_name: str = Field(alias="class")
    is_active: bool
    meals_remaining: int
    parent_email: Optional[str] = None
    updated_at: Optional[datetime] = None
