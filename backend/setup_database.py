"""
Database Setup Script - creates the students table on the configured database.

Credentials are resolved the same way the service resolves them: from
DATABASE_URL, from the DB_* variables, or from AWS Secrets Manager when
USE_SECRETS_MANAGER=true. The script is idempotent; an existing table is
left untouched.

Usage:
    python setup_database.py
"""

import sys

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import SQLAlchemyError

from student_records.database import create_tables, dispose_engine, get_engine
from student_records.errors import StudentRecordsError
from student_records.logging_config import setup_logging
from student_records.models.student import students_table


def main():
    setup_logging()
    try:
        engine = get_engine()
        print(f"Connecting to {engine.dialect.name} database '{engine.url.database}'...")
        create_tables()

        tables = inspect(engine).get_table_names()
        print(f"Tables in database: {', '.join(tables)}")

        with engine.connect() as conn:
            count = conn.execute(select(func.count()).select_from(students_table)).scalar_one()
        print(f"Student records: {count}")
    except (StudentRecordsError, SQLAlchemyError) as e:
        print(f"Error setting up database: {e}")
        sys.exit(1)
    finally:
        dispose_engine()

    print("✅ Database setup completed successfully!")


if __name__ == "__main__":
    main()
