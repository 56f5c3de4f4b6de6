"""
Student query service - the five storage operations on the students table.

Every function takes a SQLAlchemy Session, issues bound-parameter
statements only, and translates between external field names and storage
columns through models.student.to_columns() / from_columns().

Operations are independent round trips. The insert's write and re-read
are not atomic, so a concurrent delete in between surfaces as
NotFoundAfterWrite.
"""

import time
from typing import List, Optional

from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from student_records.errors import NoFieldsToUpdate, NotFoundAfterWrite, StudentNotFound
from student_records.logging_config import get_logger, log_with_context
from student_records.models.student import from_columns, students_table, to_columns
from student_records.validation import StudentCreate, StudentRecord, StudentUpdate

# Channel logger for storage operations
logger = get_logger("db")


def _to_record(row) -> StudentRecord:
    return StudentRecord.model_validate(from_columns(row))


def _elapsed_ms(start_time: float) -> float:
    return round((time.time() - start_time) * 1000, 2)


def list_students(db: Session) -> List[StudentRecord]:
    """Return every student, newest enrollment first (ties: newest id first)."""
    start_time = time.time()
    stmt = select(students_table).order_by(
        students_table.c.enrollment_date.desc(),
        students_table.c.id.desc(),
    )
    rows = db.execute(stmt).mappings().all()

    log_with_context(logger, "DEBUG", "Listed {} students".format(len(rows)),
                     extra_data={"duration_ms": _elapsed_ms(start_time)})
    return [_to_record(row) for row in rows]


def get_student(db: Session, student_id: int) -> Optional[StudentRecord]:
    """Fetch one student by primary key, or None when absent."""
    stmt = select(students_table).where(students_table.c.id == student_id)
    row = db.execute(stmt).mappings().first()
    return _to_record(row) if row is not None else None


def create_student(db: Session, student: StudentCreate) -> StudentRecord:
    """
    Insert a validated student and read it back by the assigned key.

    Returns:
        The stored record, including id and storage timestamps

    Raises:
        NotFoundAfterWrite: if the new row cannot be read back
    """
    start_time = time.time()
    values = to_columns(student.model_dump(by_alias=True))

    try:
        result = db.execute(insert(students_table).values(values))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to insert student", exc_info=True)
        raise

    student_id = result.inserted_primary_key[0]
    created = get_student(db, student_id)
    if created is None:
        log_with_context(logger, "ERROR", f"Student {student_id} missing after insert",
                         context={"student_id": student_id})
        raise NotFoundAfterWrite(student_id)

    log_with_context(logger, "INFO", f"Created student {student_id}",
                     context={"student_id": student_id},
                     extra_data={"duration_ms": _elapsed_ms(start_time)})
    return created


def update_student(db: Session, student_id: int, changes: StudentUpdate) -> StudentRecord:
    """
    Apply a partial update covering exactly the fields the caller supplied.

    Raises:
        NoFieldsToUpdate: if no field was supplied (no statement is issued)
        StudentNotFound: if no row with student_id exists after the write
    """
    fields = changes.model_dump(by_alias=True, exclude_unset=True)
    if not fields:
        raise NoFieldsToUpdate()

    start_time = time.time()
    values = to_columns(fields)
    stmt = update(students_table).where(students_table.c.id == student_id).values(values)

    try:
        db.execute(stmt)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log_with_context(logger, "ERROR", f"Failed to update student {student_id}",
                         context={"student_id": student_id}, exc_info=True)
        raise

    updated = get_student(db, student_id)
    if updated is None:
        raise StudentNotFound(student_id)

    log_with_context(logger, "INFO", f"Updated student {student_id}",
                     context={"student_id": student_id},
                     extra_data={"fields": sorted(fields), "duration_ms": _elapsed_ms(start_time)})
    return updated


def delete_student(db: Session, student_id: int) -> bool:
    """Delete a student. Returns False when no row matched."""
    try:
        result = db.execute(delete(students_table).where(students_table.c.id == student_id))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        log_with_context(logger, "ERROR", f"Failed to delete student {student_id}",
                         context={"student_id": student_id}, exc_info=True)
        raise

    deleted = result.rowcount > 0
    if deleted:
        log_with_context(logger, "INFO", f"Deleted student {student_id}",
                         context={"student_id": student_id})
    return deleted
