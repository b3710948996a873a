from tests.utils.helpers import assert_error_response, login_as


class TestProfileEndpoints:
    async def test_should_return_own_profile(self, test_client, student):
        login_as(test_client, student)

        response = await test_client.get("/api/v1/profile/me")

        assert response.status_code == 200
        assert response.json()["id"] == str(student.id)
        assert response.json()["role"] == "student"

    async def test_should_update_name_and_photo(self, test_client, student):
        login_as(test_client, student)

        response = await test_client.patch(
            "/api/v1/profile/me",
            json={"full_name": "Renamed Student", "photo_url": "https://cdn.example.edu/me.png"},
        )

        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed Student"
        assert response.json()["photo_url"] == "https://cdn.example.edu/me.png"

    async def test_should_not_change_university(self, test_client, student):
        login_as(test_client, student)

        response = await test_client.patch(
            "/api/v1/profile/me", json={"university": "Elsewhere Institute"}
        )

        assert response.status_code == 200
        assert response.json()["university"] == student.university

    async def test_should_return_401_without_session(self, test_client):
        response = await test_client.get("/api/v1/profile/me")

        assert_error_response(response, 401, "UNAUTHENTICATED")
