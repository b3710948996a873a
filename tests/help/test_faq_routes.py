from app.help.models.faq import Faq
from tests.utils.helpers import assert_error_response, login_as


def _seed(db_session):
    db_session.add_all(
        [
            Faq(
                question="How do I reset my portal password?",
                answer="Use the reset link.",
                category="Portal",
            ),
            Faq(question="When is tuition due?", answer="First week of term.", category="Finance"),
            Faq(question="Can I change rooms?", answer="Ask housing services.", category="Housing"),
        ]
    )
    db_session.commit()


class TestFaqEndpoints:
    async def test_should_filter_by_category(self, test_client, db_session, student):
        _seed(db_session)
        login_as(test_client, student)

        response = await test_client.get("/api/v1/faqs", params={"category": "Finance"})

        assert [f["category"] for f in response.json()] == ["Finance"]

    async def test_should_search_questions_and_answers(self, test_client, db_session, student):
        _seed(db_session)
        login_as(test_client, student)

        response = await test_client.get("/api/v1/faqs", params={"search": "housing"})

        assert [f["question"] for f in response.json()] == ["Can I change rooms?"]

    async def test_should_list_categories(self, test_client, db_session, student):
        _seed(db_session)
        login_as(test_client, student)

        response = await test_client.get("/api/v1/faqs/categories")

        assert response.json() == ["Finance", "Housing", "Portal"]

    async def test_should_let_verified_admin_add_entry(self, test_client, admin):
        login_as(test_client, admin)

        response = await test_client.post(
            "/api/v1/faqs",
            json={
                "question": "Where is the IT desk?",
                "answer": "Building C.",
                "category": "Other",
            },
        )

        assert response.status_code == 201
        assert response.json()["category"] == "Other"

    async def test_should_forbid_students_from_adding(self, test_client, student):
        login_as(test_client, student)

        response = await test_client.post(
            "/api/v1/faqs",
            json={"question": "Is this allowed?", "answer": "No.", "category": "Other"},
        )

        assert_error_response(response, 403, "FORBIDDEN")
