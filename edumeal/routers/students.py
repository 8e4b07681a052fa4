from __future__ import annotations

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from edumeal.core.db import get_db
from edumeal.core.deps import AuthUser, get_current_user
from edumeal.schemas.students import StudentCreate, StudentOut, StudentUpdate
from edumeal.services.students import (
    create_student,
    delete_student,
    get_student,
    list_students,
    update_student,
)

router = APIRouter(prefix="/api/students", tags=["Students"])


@router.get("", response_model=list[StudentOut])
async def students_list(
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await list_students(db)


@router.get("/{student_pk}", response_model=StudentOut)
async def students_get(
    student_pk: int,
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await get_student(db, student_pk)


@router.post("", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
async def students_create(
    body: StudentCreate,
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await create_student(db, body)


@router.put("/{student_pk}", response_model=StudentOut)
async def students_update(
    student_pk: int,
    body: StudentUpdate,
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    return await update_student(db, student_pk, body)


@router.delete("/{student_pk}", status_code=status.HTTP_204_NO_CONTENT)
async def students_delete(
    student_pk: int,
    db: AsyncSession = Depends(get_db),
    _: AuthUser = Depends(get_current_user),
):
    await delete_student(db, student_pk)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
