"""
Students API routes - CRUD endpoints over the students table.

Handlers only marshal requests: ids are parsed here, payloads go through
the validator, and storage work is delegated to services.students.
Errors are raised as StudentRecordsError subclasses and turned into
responses by the exception handlers in main.py.
"""

import re
from typing import Any

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from student_records.database import get_db
from student_records.errors import InvalidStudentId, StudentNotFound
from student_records.logging_config import get_logger, log_with_context
from student_records.services import students as student_service
from student_records.validation import validate_create, validate_partial_update

router = APIRouter()
logger = get_logger("http")

_ID_PATTERN = re.compile(r"[0-9]+")


def student_id_param(student_id: str) -> int:
    """
    Parse the {student_id} path segment.

    Declared ahead of get_db in every route so a malformed id is rejected
    before a session is opened.
    """
    if not _ID_PATTERN.fullmatch(student_id) or int(student_id) <= 0:
        raise InvalidStudentId(student_id)
    return int(student_id)


@router.get("/students")
def list_students(db: Session = Depends(get_db)):
    """List all students, newest enrollment first."""
    students = student_service.list_students(db)
    return {"success": True, "data": [s.to_api() for s in students]}


@router.get("/students/{student_id}")
def get_student(student_id: int = Depends(student_id_param), db: Session = Depends(get_db)):
    """Get a single student by id."""
    student = student_service.get_student(db, student_id)
    if student is None:
        raise StudentNotFound(student_id)
    return {"success": True, "data": student.to_api()}


@router.post("/students", status_code=201)
def create_student(payload: Any = Body(None), db: Session = Depends(get_db)):
    """Validate and create a student."""
    student = validate_create(payload)
    created = student_service.create_student(db, student)
    return {"success": True, "data": created.to_api()}


@router.put("/students/{student_id}")
def update_student(student_id: int = Depends(student_id_param),
                   payload: Any = Body(None),
                   db: Session = Depends(get_db)):
    """Apply a partial update to a student."""
    changes = validate_partial_update(payload)
    updated = student_service.update_student(db, student_id, changes)
    return {"success": True, "data": updated.to_api()}


@router.delete("/students/{student_id}")
def delete_student(student_id: int = Depends(student_id_param), db: Session = Depends(get_db)):
    """Delete a student."""
    if not student_service.delete_student(db, student_id):
        raise StudentNotFound(student_id)

    log_with_context(logger, "INFO", f"Student {student_id} deleted via API",
                     context={"student_id": student_id})
    return {"success": True, "message": "Student deleted successfully"}
