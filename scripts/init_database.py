#!/usr/bin/env python3
"""
Initialize the Campus Library database.

This script:
1. Creates all database tables
2. Optionally loads sample students, books, copies and approved requests,
   and places a reservation for each request
3. Lists the tables so you can confirm the database is ready

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys

from sqlalchemy import inspect

from campus_library.database import Book, BookCopy, BorrowRequest, Student, get_db_manager
from campus_library.models.enums import BorrowRequestStatus
from campus_library.services import ReservationLifecycleManager

logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

SAMPLE_STUDENTS = [
    ("student_rahim", "Rahim Uddin", 1001),
    ("student_nadia", "Nadia Islam", 1002),
]

SAMPLE_BOOKS = [
    ("book_clrs", "Introduction to Algorithms", "Cormen et al."),
    ("book_sicp", "Structure and Interpretation of Computer Programs", "Abelson, Sussman"),
]


def main():
    parser = argparse.ArgumentParser(description="Initialize the Campus Library database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Load sample data after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    args = parser.parse_args()

    db_manager = get_db_manager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    db_manager.init_database(drop_existing=args.drop_existing)

    if args.sample_data:
        load_sample_data(db_manager)

    tables = inspect(db_manager.engine).get_table_names()
    logger.info("Tables: %s", ", ".join(sorted(tables)))


def load_sample_data(db_manager):
    """Insert two students, two books with copies, and one reservation each."""
    request_ids = []
    with db_manager.session_scope() as session:
        for student_id, name, roll in SAMPLE_STUDENTS:
            session.add(Student(id=student_id, name=name, roll=roll))
        for book_id, name, author in SAMPLE_BOOKS:
            session.add(Book(id=book_id, name=name, author=author))
            for n in range(1, 3):
                session.add(BookCopy(id=f"copy_{book_id[5:]}_{n:02d}", book_id=book_id))
        session.flush()

        for (student_id, _, _), (book_id, _, _) in zip(SAMPLE_STUDENTS, SAMPLE_BOOKS, strict=True):
            request_id = f"request_{student_id[8:]}"
            session.add(
                BorrowRequest(
                    id=request_id,
                    student_id=student_id,
                    book_id=book_id,
                    copy_id=f"copy_{book_id[5:]}_01",
                    borrow_for_days=14,
                    status=BorrowRequestStatus.APPROVED,
                )
            )
            request_ids.append(request_id)

    lifecycle = ReservationLifecycleManager(db_manager)
    for request_id in request_ids:
        reservation = lifecycle.reserve(request_id)
        logger.info("Reservation %s (secret %s)", reservation.id, reservation.secret)


if __name__ == "__main__":
    main()
