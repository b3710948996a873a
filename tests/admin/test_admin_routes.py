from tests.utils.factories import create_ticket_factory
from tests.utils.helpers import assert_error_response, login_as


class TestVerificationEndpoints:
    async def test_should_list_and_approve_pending_admin(self, test_client, admin, pending_admin):
        login_as(test_client, admin)

        pending = await test_client.get("/api/v1/admin/pending-admins")
        approved = await test_client.post(f"/api/v1/admin/admins/{pending_admin.id}/approve")
        again = await test_client.post(f"/api/v1/admin/admins/{pending_admin.id}/approve")

        assert [p["id"] for p in pending.json()] == [str(pending_admin.id)]
        assert approved.status_code == 200
        assert approved.json()["is_verified"] is True
        assert again.status_code == 200

    async def test_should_unlock_admin_features_after_approval(
        self, test_client, admin, pending_admin
    ):
        login_as(test_client, pending_admin)
        before = await test_client.get("/api/v1/admin/students")
        assert_error_response(before, 403, "FORBIDDEN")

        login_as(test_client, admin)
        await test_client.post(f"/api/v1/admin/admins/{pending_admin.id}/approve")

        login_as(test_client, pending_admin)
        after = await test_client.get("/api/v1/admin/students")
        assert after.status_code == 200

    async def test_should_reject_pending_admin(self, test_client, admin, pending_admin):
        login_as(test_client, admin)

        response = await test_client.post(f"/api/v1/admin/admins/{pending_admin.id}/reject")

        assert response.status_code == 200
        login_as(test_client, pending_admin)
        me = await test_client.get("/api/v1/auth/me")
        assert_error_response(me, 403, "PROFILE_MISSING")

    async def test_should_return_404_when_rejecting_student(self, test_client, admin, student):
        login_as(test_client, admin)

        response = await test_client.post(f"/api/v1/admin/admins/{student.id}/reject")

        assert_error_response(response, 404, "NOT_FOUND")

    async def test_should_return_403_for_student(self, test_client, student, pending_admin):
        login_as(test_client, student)

        response = await test_client.post(f"/api/v1/admin/admins/{pending_admin.id}/approve")

        assert_error_response(response, 403, "FORBIDDEN")


class TestDirectoryEndpoints:
    async def test_should_list_students_with_counts(self, test_client, db_session, admin, student):
        create_ticket_factory(db_session, student)
        login_as(test_client, admin)

        response = await test_client.get("/api/v1/admin/students")

        assert response.status_code == 200
        rows = response.json()
        assert rows[0]["id"] == str(student.id)
        assert rows[0]["total_tickets"] == 1
        assert rows[0]["pending"] == 1

    async def test_should_list_student_tickets(self, test_client, db_session, admin, student):
        ticket = create_ticket_factory(db_session, student)
        login_as(test_client, admin)

        response = await test_client.get(f"/api/v1/admin/students/{student.id}/tickets")

        assert [t["id"] for t in response.json()] == [str(ticket.id)]

    async def test_should_return_404_for_foreign_student(
        self, test_client, db_session, admin, foreign_student
    ):
        create_ticket_factory(db_session, foreign_student)
        login_as(test_client, admin)

        response = await test_client.get(f"/api/v1/admin/students/{foreign_student.id}/tickets")

        assert_error_response(response, 404, "NOT_FOUND")
