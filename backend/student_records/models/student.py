"""
Student model - the single table managed by this service.

Also owns the mapping between external (API) field names and storage
column names. The insert, update and read paths all go through
to_columns() / from_columns() so the two naming schemes cannot drift apart.
"""

from sqlalchemy import Column, Integer, String, Date, DateTime, Index, func
from student_records.database import Base

STUDENT_STATUSES = ("active", "inactive", "graduated", "suspended")

# External field name -> storage column name
FIELD_TO_COLUMN = {
    "id": "id",
    "firstName": "first_name",
    "lastName": "last_name",
    "email": "email",
    "phone": "phone",
    "enrollmentDate": "enrollment_date",
    "major": "major",
    "status": "status",
    "graduationYear": "graduation_year",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

COLUMN_TO_FIELD = {column: field for field, column in FIELD_TO_COLUMN.items()}


def to_columns(fields: dict) -> dict:
    """Rename external field keys to column keys. Unmapped keys pass through."""
    return {FIELD_TO_COLUMN.get(name, name): value for name, value in fields.items()}


def from_columns(row) -> dict:
    """Rename column keys (from a dict or a SQLAlchemy RowMapping) to field keys."""
    return {COLUMN_TO_FIELD.get(name, name): value for name, value in dict(row).items()}


class Student(Base):
    """
    SQLAlchemy model for the students table.

    id is assigned by the database. created_at and updated_at are set by
    the database server and never written by the application.
    """
    __tablename__ = "students"

    id = Column(Integer, primary_key=True, autoincrement=True,
                doc="Storage-assigned student identifier")
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)
    enrollment_date = Column(Date, nullable=False,
                             doc="Enrollment date; list ordering key")
    major = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, doc="One of STUDENT_STATUSES")
    graduation_year = Column(Integer, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_students_enrollment_date", "enrollment_date"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.first_name} {self.last_name}', email='{self.email}')>"


students_table = Student.__table__
