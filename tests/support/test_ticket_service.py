import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.exceptions import ForbiddenError, NotFoundError, TransientIOError
from app.support.models.ticket import Ticket, TicketCategory, TicketStatus
from app.support.schemas.ticket import TicketCreate
from app.support.services.ticket_service import TicketService
from tests.utils.factories import create_profile_factory, create_ticket_factory, identity_of


def _status_of(db_session, ticket_id) -> str:
    db_session.expire_all()
    return db_session.query(Ticket).filter(Ticket.id == ticket_id).one().status


class TestCreateTicket:
    def test_should_create_pending_ticket_for_student(self, db_session, student):
        service = TicketService(db_session)
        data = TicketCreate(
            category=TicketCategory.ACADEMICS, description="  Cannot see my grades  "
        )

        ticket = service.create_ticket(identity_of(db_session, student), data)

        assert ticket.status == TicketStatus.PENDING.value
        assert ticket.category == "Academics"
        assert ticket.description == "Cannot see my grades"
        assert ticket.student_id == student.id

    def test_should_forbid_admin_from_filing(self, db_session, admin):
        data = TicketCreate(category=TicketCategory.OTHER, description="Admins cannot file")

        with pytest.raises(ForbiddenError):
            TicketService(db_session).create_ticket(identity_of(db_session, admin), data)

        assert db_session.query(Ticket).count() == 0

    def test_should_translate_storage_failure(self, db_session, student):
        data = TicketCreate(category=TicketCategory.HOUSING, description="Heating is broken")
        failure = OperationalError("INSERT", {}, Exception("connection reset"))

        with patch.object(db_session, "commit", side_effect=failure):
            with pytest.raises(TransientIOError):
                TicketService(db_session).create_ticket(identity_of(db_session, student), data)


class TestOpenTicket:
    def test_should_move_pending_to_in_progress_for_verified_admin(
        self, db_session, student, admin
    ):
        ticket = create_ticket_factory(db_session, student)

        response, transitioned = TicketService(db_session).open_ticket(
            identity_of(db_session, admin), ticket.id
        )

        assert transitioned is True
        assert response.status == TicketStatus.IN_PROGRESS.value
        assert _status_of(db_session, ticket.id) == TicketStatus.IN_PROGRESS.value

    def test_should_transition_only_once(self, db_session, student, admin):
        ticket = create_ticket_factory(db_session, student)
        service = TicketService(db_session)
        actor = identity_of(db_session, admin)

        _, first = service.open_ticket(actor, ticket.id)
        response, second = service.open_ticket(actor, ticket.id)

        assert first is True
        assert second is False
        assert response.status == TicketStatus.IN_PROGRESS.value

    def test_should_not_transition_when_student_opens(self, db_session, student):
        ticket = create_ticket_factory(db_session, student)

        response, transitioned = TicketService(db_session).open_ticket(
            identity_of(db_session, student), ticket.id
        )

        assert transitioned is False
        assert response.status == TicketStatus.PENDING.value
        assert _status_of(db_session, ticket.id) == TicketStatus.PENDING.value

    def test_should_not_transition_when_pending_admin_opens(
        self, db_session, student, pending_admin
    ):
        ticket = create_ticket_factory(db_session, student)

        response, transitioned = TicketService(db_session).open_ticket(
            identity_of(db_session, pending_admin), ticket.id
        )

        assert transitioned is False
        assert _status_of(db_session, ticket.id) == TicketStatus.PENDING.value

    def test_should_not_touch_resolved_ticket(self, db_session, student, admin):
        ticket = create_ticket_factory(db_session, student, status=TicketStatus.RESOLVED)

        response, transitioned = TicketService(db_session).open_ticket(
            identity_of(db_session, admin), ticket.id
        )

        assert transitioned is False
        assert response.status == TicketStatus.RESOLVED.value

    def test_should_hide_ticket_from_other_university(self, db_session, student, foreign_admin):
        ticket = create_ticket_factory(db_session, student)

        with pytest.raises(ForbiddenError):
            TicketService(db_session).open_ticket(identity_of(db_session, foreign_admin), ticket.id)

        assert _status_of(db_session, ticket.id) == TicketStatus.PENDING.value

    def test_should_hide_ticket_from_other_student(self, db_session, student, other_student):
        ticket = create_ticket_factory(db_session, student)

        with pytest.raises(ForbiddenError):
            TicketService(db_session).open_ticket(identity_of(db_session, other_student), ticket.id)

    def test_should_raise_not_found_for_unknown_ticket(self, db_session, admin):
        with pytest.raises(NotFoundError):
            TicketService(db_session).open_ticket(identity_of(db_session, admin), uuid.uuid4())

    def test_should_still_return_ticket_when_transition_write_fails(
        self, db_session, student, admin
    ):
        ticket = create_ticket_factory(db_session, student)
        actor = identity_of(db_session, admin)
        service = TicketService(db_session)
        failure = OperationalError("UPDATE", {}, Exception("timeout"))

        with patch.object(db_session, "commit", side_effect=failure):
            response, transitioned = service.open_ticket(actor, ticket.id)

        assert transitioned is False
        assert response.status == TicketStatus.PENDING.value
        assert _status_of(db_session, ticket.id) == TicketStatus.PENDING.value

        # next open retries the transition
        _, transitioned = service.open_ticket(actor, ticket.id)
        assert transitioned is True


class TestChangeStatus:
    def test_should_let_verified_admin_resolve(self, db_session, student, admin):
        ticket = create_ticket_factory(db_session, student, status=TicketStatus.IN_PROGRESS)

        updated, changed = TicketService(db_session).change_status(
            identity_of(db_session, admin), ticket.id, TicketStatus.RESOLVED
        )

        assert updated.status == TicketStatus.RESOLVED.value
        assert changed is True

    def test_should_allow_backward_override(self, db_session, student, admin):
        ticket = create_ticket_factory(db_session, student, status=TicketStatus.RESOLVED)

        updated, _ = TicketService(db_session).change_status(
            identity_of(db_session, admin), ticket.id, TicketStatus.PENDING
        )

        assert updated.status == TicketStatus.PENDING.value

    def test_should_report_no_change_for_same_status(self, db_session, student, admin):
        ticket = create_ticket_factory(db_session, student, status=TicketStatus.RESOLVED)

        updated, changed = TicketService(db_session).change_status(
            identity_of(db_session, admin), ticket.id, TicketStatus.RESOLVED
        )

        assert changed is False
        assert updated.status == TicketStatus.RESOLVED.value

    def test_should_forbid_unverified_admin_and_keep_status(
        self, db_session, student, pending_admin
    ):
        ticket = create_ticket_factory(db_session, student)

        with pytest.raises(ForbiddenError):
            TicketService(db_session).change_status(
                identity_of(db_session, pending_admin), ticket.id, TicketStatus.RESOLVED
            )

        assert _status_of(db_session, ticket.id) == TicketStatus.PENDING.value

    @pytest.mark.parametrize("target", list(TicketStatus))
    def test_should_never_let_students_change_status(self, db_session, student, target):
        ticket = create_ticket_factory(db_session, student, status=TicketStatus.IN_PROGRESS)

        with pytest.raises(ForbiddenError):
            TicketService(db_session).change_status(
                identity_of(db_session, student), ticket.id, target
            )

        assert _status_of(db_session, ticket.id) == TicketStatus.IN_PROGRESS.value

    def test_should_forbid_admin_of_other_university(self, db_session, student, foreign_admin):
        ticket = create_ticket_factory(db_session, student)

        with pytest.raises(ForbiddenError):
            TicketService(db_session).change_status(
                identity_of(db_session, foreign_admin), ticket.id, TicketStatus.RESOLVED
            )

    def test_should_raise_not_found_before_checking_access(self, db_session, student):
        with pytest.raises(NotFoundError):
            TicketService(db_session).change_status(
                identity_of(db_session, student), uuid.uuid4(), TicketStatus.RESOLVED
            )


class TestListTickets:
    def test_should_show_students_only_their_tickets(self, db_session, student, other_student):
        own = create_ticket_factory(db_session, student)
        create_ticket_factory(db_session, other_student)

        tickets = TicketService(db_session).list_tickets(identity_of(db_session, student))

        assert [t.id for t in tickets] == [own.id]

    def test_should_scope_admin_list_to_university(
        self, db_session, student, foreign_student, admin
    ):
        home = create_ticket_factory(db_session, student)
        create_ticket_factory(db_session, foreign_student)

        tickets = TicketService(db_session).list_tickets(identity_of(db_session, admin))

        assert [t.id for t in tickets] == [home.id]

    def test_should_order_newest_first(self, db_session, student, admin):
        now = datetime.now(UTC)
        older = create_ticket_factory(db_session, student, created_at=now - timedelta(days=2))
        newer = create_ticket_factory(db_session, student, created_at=now)

        tickets = TicketService(db_session).list_tickets(identity_of(db_session, admin))

        assert [t.id for t in tickets] == [newer.id, older.id]

    def test_should_filter_by_status_and_category(self, db_session, student, admin):
        match = create_ticket_factory(
            db_session, student, category=TicketCategory.FINANCE, status=TicketStatus.RESOLVED
        )
        create_ticket_factory(db_session, student, category=TicketCategory.FINANCE)
        create_ticket_factory(
            db_session, student, category=TicketCategory.PORTAL, status=TicketStatus.RESOLVED
        )

        tickets = TicketService(db_session).list_tickets(
            identity_of(db_session, admin), status=TicketStatus.RESOLVED, category="Finance"
        )

        assert [t.id for t in tickets] == [match.id]

    def test_should_search_student_name_and_description(self, db_session, admin):
        alice = create_profile_factory(db_session, full_name="Alice Moreno")
        bob = create_profile_factory(db_session, full_name="Bob Lindqvist")
        by_name = create_ticket_factory(db_session, alice, description="Portal login loops")
        by_text = create_ticket_factory(db_session, bob, description="Moreno hall has no water")
        create_ticket_factory(db_session, bob, description="Printer quota exhausted")

        tickets = TicketService(db_session).list_tickets(
            identity_of(db_session, admin), search="moreno"
        )

        assert {t.id for t in tickets} == {by_name.id, by_text.id}

    def test_should_treat_like_wildcards_literally(self, db_session, student, admin):
        create_ticket_factory(db_session, student, description="Nothing special here")

        tickets = TicketService(db_session).list_tickets(identity_of(db_session, admin), search="%")

        assert tickets == []


class TestStats:
    def test_should_count_statuses_in_scope(self, db_session, student, foreign_student, admin):
        create_ticket_factory(db_session, student)
        create_ticket_factory(db_session, student, status=TicketStatus.IN_PROGRESS)
        create_ticket_factory(db_session, student, status=TicketStatus.RESOLVED)
        create_ticket_factory(db_session, student, status=TicketStatus.RESOLVED)
        create_ticket_factory(db_session, foreign_student)

        stats = TicketService(db_session).get_stats(identity_of(db_session, admin))

        assert stats.total == 4
        assert stats.pending == 1
        assert stats.in_progress == 1
        assert stats.resolved == 2

    def test_should_return_zeroes_when_empty(self, db_session, student):
        stats = TicketService(db_session).get_stats(identity_of(db_session, student))

        assert stats.total == 0
        assert stats.pending == 0
