"""
Tests for reservation listings and lookups.

Covers staff and student listings, filter validation, pagination metadata
and single-reservation lookups.
"""

from datetime import datetime
from unittest.mock import MagicMock

import pytest

from campus_library.database.repository import PaginationParams
from campus_library.errors import BadRequestError, NotFoundError
from campus_library.models.enums import ReservationStatus
from campus_library.services import (
    MyReservationFilters,
    ReservationQueryService,
    StaffReservationFilters,
)

STUDENT_ID = "student_rahim"
STUDENT_ROLL = 1001
OTHER_STUDENT_ID = "student_nadia"


@pytest.fixture
def mixed_reservations(make_reservation):
    """Three reservations for the first student and one for the second."""
    return {
        "old": make_reservation(
            copy_id="copy_clrs_01",
            status=ReservationStatus.FULFILLED,
            created_at=datetime(2024, 1, 1, 9, 0),
        ),
        "new": make_reservation(
            copy_id="copy_clrs_02",
            created_at=datetime(2024, 1, 5, 9, 0),
        ),
        "archived": make_reservation(
            copy_id="copy_clrs_03",
            status=ReservationStatus.CANCELED,
            index=0,
            created_at=datetime(2024, 1, 8, 9, 0),
        ),
        "other": make_reservation(
            copy_id="copy_clrs_04",
            student_id=OTHER_STUDENT_ID,
            created_at=datetime(2024, 1, 3, 9, 0),
            secret="DESK42SECRET",
        ),
    }


class TestStaffListing:
    def test_lists_everything_with_references(self, queries, mixed_reservations):
        page = queries.list_for_staff(StaffReservationFilters(), PaginationParams())

        assert page.meta.total_result == 4
        assert page.meta.total == 4
        assert {r.id for r in page.data} == {r.id for r in mixed_reservations.values()}
        for reservation in page.data:
            assert reservation.student is not None
            assert reservation.book.name == "Introduction to Algorithms"
            assert reservation.book_copy.id == reservation.copy_id

    def test_roll_filter(self, queries, mixed_reservations):
        page = queries.list_for_staff(
            StaffReservationFilters(roll=str(STUDENT_ROLL)), PaginationParams()
        )

        assert page.meta.total_result == 3
        assert page.meta.total == 4
        assert all(r.student.roll == STUDENT_ROLL for r in page.data)

    @pytest.mark.parametrize("roll", ["1001.0", " 1001 ", "1.001e3"])
    def test_roll_accepts_integral_numbers(self, queries, mixed_reservations, roll):
        page = queries.list_for_staff(StaffReservationFilters(roll=roll), PaginationParams())

        assert page.meta.total_result == 3

    def test_roll_and_status_combine(self, queries, mixed_reservations):
        page = queries.list_for_staff(
            StaffReservationFilters(roll=STUDENT_ROLL, status="awaiting"), PaginationParams()
        )

        assert [r.id for r in page.data] == [mixed_reservations["new"].id]

    def test_status_filter(self, queries, mixed_reservations):
        page = queries.list_for_staff(
            StaffReservationFilters(status="awaiting"), PaginationParams()
        )

        assert page.meta.total_result == 2
        assert all(r.status == ReservationStatus.AWAITING for r in page.data)

    def test_secret_lookup_ignores_other_filters(self, queries, mixed_reservations):
        page = queries.list_for_staff(
            StaffReservationFilters(secret="DESK42SECRET", status="fulfilled"),
            PaginationParams(),
        )

        assert [r.id for r in page.data] == [mixed_reservations["other"].id]
        assert page.data[0].student.id == OTHER_STUDENT_ID
        assert page.meta.total_result == 1

    def test_unknown_secret_returns_empty_page(self, queries, mixed_reservations):
        page = queries.list_for_staff(
            StaffReservationFilters(secret="NOSUCHSECRET"), PaginationParams()
        )

        assert page.data == []
        assert page.meta.total_result == 0
        assert page.meta.total == 4

    def test_pagination(self, queries, mixed_reservations):
        first = queries.list_for_staff(StaffReservationFilters(), PaginationParams(limit=3))
        second = queries.list_for_staff(
            StaffReservationFilters(), PaginationParams(page=2, limit=3)
        )

        assert len(first.data) == 3
        assert len(second.data) == 1
        assert second.meta.page == 2
        assert second.meta.total_result == 4
        assert {r.id for r in first.data}.isdisjoint({r.id for r in second.data})

    @pytest.mark.parametrize(
        "filters",
        [
            StaffReservationFilters(status="pending"),
            StaffReservationFilters(roll="12abc"),
            StaffReservationFilters(roll="roll-1001"),
            StaffReservationFilters(roll="1001.5"),
            StaffReservationFilters(roll="inf"),
        ],
    )
    def test_invalid_filters_never_reach_the_store(self, filters):
        db = MagicMock()
        service = ReservationQueryService(db)

        with pytest.raises(BadRequestError) as exc_info:
            service.list_for_staff(filters, PaginationParams())

        assert exc_info.value.status_code == 400
        db.session_scope.assert_not_called()

    @pytest.mark.parametrize(
        "pagination",
        [
            PaginationParams(page=0),
            PaginationParams(limit=0),
            PaginationParams(limit=101),
            PaginationParams(sort_by="secret"),
        ],
    )
    def test_invalid_pagination(self, pagination):
        db = MagicMock()

        with pytest.raises(BadRequestError):
            ReservationQueryService(db).list_for_staff(StaffReservationFilters(), pagination)

        db.session_scope.assert_not_called()


class TestMyListing:
    def test_only_own_reservations_in_index_then_recency_order(
        self, queries, mixed_reservations
    ):
        page = queries.list_mine(STUDENT_ID, MyReservationFilters(), PaginationParams())

        assert [r.id for r in page.data] == [
            mixed_reservations["new"].id,
            mixed_reservations["old"].id,
            mixed_reservations["archived"].id,
        ]
        assert all(r.student is None for r in page.data)
        assert all(r.book is not None and r.book_copy is not None for r in page.data)

    def test_status_filter_and_totals(self, queries, mixed_reservations):
        page = queries.list_mine(
            STUDENT_ID, MyReservationFilters(status="canceled"), PaginationParams()
        )

        assert [r.id for r in page.data] == [mixed_reservations["archived"].id]
        assert page.meta.total_result == 1
        assert page.meta.total == 3

    def test_ascending_sort(self, queries, mixed_reservations):
        page = queries.list_mine(
            STUDENT_ID, MyReservationFilters(), PaginationParams(sort_order="asc")
        )

        assert [r.id for r in page.data] == [
            mixed_reservations["old"].id,
            mixed_reservations["new"].id,
            mixed_reservations["archived"].id,
        ]

    def test_no_reservations(self, queries, library):
        page = queries.list_mine(STUDENT_ID, MyReservationFilters(), PaginationParams())

        assert page.data == []
        assert page.meta.total == 0

    def test_invalid_status(self):
        db = MagicMock()

        with pytest.raises(BadRequestError, match="Invalid status"):
            ReservationQueryService(db).list_mine(
                STUDENT_ID, MyReservationFilters(status="lost"), PaginationParams()
            )

        db.session_scope.assert_not_called()


class TestLookups:
    def test_get_by_id(self, queries, make_reservation):
        reservation = make_reservation()

        found = queries.get_by_id(reservation.id)

        assert found.id == reservation.id
        assert found.student.id == STUDENT_ID
        assert found.book_copy.id == reservation.copy_id

    def test_get_by_id_not_found(self, queries, library):
        with pytest.raises(NotFoundError) as exc_info:
            queries.get_by_id("reservation_missing")

        assert exc_info.value.status_code == 404

    def test_get_mine_by_id(self, queries, make_reservation):
        reservation = make_reservation()

        found = queries.get_mine_by_id(STUDENT_ID, reservation.id)

        assert found.id == reservation.id
        assert found.student is None

    def test_get_mine_by_id_hides_other_students(self, queries, make_reservation):
        reservation = make_reservation(student_id=OTHER_STUDENT_ID)

        with pytest.raises(NotFoundError):
            queries.get_mine_by_id(STUDENT_ID, reservation.id)
