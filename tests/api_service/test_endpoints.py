"""
Tests for the HTTP admin surface in api_service.src.main.

The DI container is patched per test, so no store or socket state leaks
between cases.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from api_service.src.main import app
from conftest import TEST_JWT_SECRET, make_meeting
from domain.models import MeetingStatus
from shared_utils.auth import issue_token
from shared_utils.constants import APIEndpoints
from shared_utils.error_handler import MeetingNotFoundError, StoreUnavailableError

client = TestClient(app)


def _auth(user_id: str = "u1") -> dict:
    return {"Authorization": f"Bearer {issue_token(user_id, TEST_JWT_SECRET)}"}


@pytest.fixture
def mock_container():
    with patch("api_service.src.main.get_di_container") as mock_get:
        container = MagicMock()
        container.get_room_coordinator.return_value.end_meeting = AsyncMock()
        mock_get.return_value = container
        yield container


def test_health_check():
    response = client.get(APIEndpoints.HEALTH)
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_debug_info(mock_container):
    mock_container.get_registry.return_value = []
    response = client.get(APIEndpoints.DEBUG)
    assert response.status_code == 200
    body = response.json()
    assert body["store"] == "memory"
    assert body["connections"] == 0
    assert "jwtSecret" not in body


class TestAuthentication:
    def test_missing_token(self, mock_container):
        response = client.post(APIEndpoints.MEETINGS)
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Access token required"
        mock_container.get_meeting_store.assert_not_called()

    def test_invalid_token(self, mock_container):
        response = client.post(APIEndpoints.MEETINGS, headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401
        assert response.json()["error"]["message"] == "Invalid token"

    def test_token_signed_with_other_secret(self, mock_container):
        token = issue_token("u1", "someone-else")
        response = client.get(
            APIEndpoints.MEETING.format(meeting_id="m1"),
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 401


class TestCreateMeeting:
    def test_success(self, mock_container):
        store = mock_container.get_meeting_store.return_value
        store.create.return_value = make_meeting("m-new", creator_id="u7")

        response = client.post(APIEndpoints.MEETINGS, headers=_auth("u7"))

        assert response.status_code == 201
        meeting = response.json()["meeting"]
        assert meeting["id"] == "m-new"
        assert meeting["creatorId"] == "u7"
        assert meeting["status"] == "active"
        store.create.assert_called_once_with("u7")

    def test_store_failure_is_generic_500(self, mock_container):
        store = mock_container.get_meeting_store.return_value
        store.create.side_effect = StoreUnavailableError("throttled")

        response = client.post(APIEndpoints.MEETINGS, headers=_auth())

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Internal server error"


class TestGetMeeting:
    def test_found(self, mock_container):
        mock_container.get_meeting_store.return_value.get_by_id.return_value = make_meeting("m1")
        response = client.get(APIEndpoints.MEETING.format(meeting_id="m1"), headers=_auth())
        assert response.status_code == 200
        assert response.json()["meeting"]["id"] == "m1"

    def test_not_found(self, mock_container):
        mock_container.get_meeting_store.return_value.get_by_id.return_value = None
        response = client.get(APIEndpoints.MEETING.format(meeting_id="ghost"), headers=_auth())
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "MEETING_NOT_FOUND"


class TestEndMeeting:
    def test_success_updates_store_then_notifies_room(self, mock_container):
        store = mock_container.get_meeting_store.return_value
        coordinator = mock_container.get_room_coordinator.return_value

        response = client.put(APIEndpoints.MEETING_END.format(meeting_id="m1"), headers=_auth())

        assert response.status_code == 200
        assert response.json() == {"message": "Meeting ended", "meetingId": "m1"}
        store.update_status.assert_called_once_with("m1", MeetingStatus.ENDED)
        coordinator.end_meeting.assert_awaited_once_with("m1")
        # Ending keeps the record; deletion is an operator action only
        store.delete.assert_not_called()

    def test_unknown_meeting(self, mock_container):
        store = mock_container.get_meeting_store.return_value
        store.update_status.side_effect = MeetingNotFoundError("ghost")
        coordinator = mock_container.get_room_coordinator.return_value

        response = client.put(APIEndpoints.MEETING_END.format(meeting_id="ghost"), headers=_auth())

        assert response.status_code == 404
        coordinator.end_meeting.assert_not_awaited()

    def test_store_failure(self, mock_container):
        store = mock_container.get_meeting_store.return_value
        store.update_status.side_effect = StoreUnavailableError("down")

        response = client.put(APIEndpoints.MEETING_END.format(meeting_id="m1"), headers=_auth())

        assert response.status_code == 500
        assert response.json()["error"]["message"] == "Internal server error"
