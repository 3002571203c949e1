"""Tests for tracking sessions and territory claims."""

from datetime import timedelta

import pytest
from earthlord_api.errors import InvalidSessionState, NotOwner
from earthlord_api.repositories import territory as territory_repo
from earthlord_api.repositories import tracking as tracking_repo
from earthlord_api.schemas import TrackingStatus
from earthlord_api.services import tracking as tracking_service
from earthlord_shared import GeoPoint
from httpx import AsyncClient

from conftest import OTHER_USER_ID, T0, TEST_USER_ID

HEADERS = {"X-User-Id": str(TEST_USER_ID)}
OTHER_HEADERS = {"X-User-Id": str(OTHER_USER_ID)}

# A loop around a ~95 m x 100 m block; the last fix is ~4 m from the first
LOOP = [
    GeoPoint(latitude=31.2300, longitude=121.4700),
    GeoPoint(latitude=31.2300, longitude=121.4710),
    GeoPoint(latitude=31.2309, longitude=121.4710),
    GeoPoint(latitude=31.2309, longitude=121.4700),
    GeoPoint(latitude=31.23003, longitude=121.47003),
]
# Same loop, but the walk stops ~50 m short of the start
OPEN_LOOP = [*LOOP[:4], GeoPoint(latitude=31.23045, longitude=121.4700)]


async def walk(db, session_id, points, start=T0):
    result = None
    for i, point in enumerate(points):
        result = await tracking_service.append_point(
            db, TEST_USER_ID, session_id, point, now=start + timedelta(seconds=30 * i)
        )
    return result


def point_json(point: GeoPoint) -> dict:
    return {"latitude": point.latitude, "longitude": point.longitude}


class TestAppendPoint:
    @pytest.mark.asyncio
    async def test_closing_the_loop_claims_territory(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)

        result = await walk(db_session, session.id, LOOP)

        assert result.accepted is True
        assert result.closed is True
        assert result.session.status == TrackingStatus.CLOSED
        assert result.session.territory_id == result.territory.id

        territory = result.territory
        assert territory.owner_id == TEST_USER_ID
        assert territory.point_count == 5
        assert territory.boundary == LOOP
        assert territory.started_at == T0
        assert territory.completed_at == T0 + timedelta(seconds=120)
        assert territory.polygon_wkt.startswith("SRID=4326;POLYGON((121.47 31.23,")
        assert 8000 < territory.area < 11000

    @pytest.mark.asyncio
    async def test_open_loop_keeps_recording(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)

        result = await walk(db_session, session.id, OPEN_LOOP)

        assert result.accepted is True
        assert result.closed is False
        assert result.territory is None
        assert result.session.status == TrackingStatus.RECORDING
        assert result.session.point_count == 5
        assert await territory_repo.list_territories_by_owner(db_session, TEST_USER_ID) == []

    @pytest.mark.asyncio
    async def test_jitter_is_ignored(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        await walk(db_session, session.id, LOOP[:2])

        # ~3 m from the previous fix
        jitter = GeoPoint(latitude=31.23002, longitude=121.47101)
        result = await tracking_service.append_point(
            db_session, TEST_USER_ID, session.id, jitter, now=T0 + timedelta(minutes=1)
        )

        assert result.accepted is False
        assert result.session.point_count == 2

    @pytest.mark.asyncio
    async def test_path_is_checkpointed(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        await walk(db_session, session.id, LOOP[:3])

        stored = await tracking_repo.get_session(db_session, session.id)

        assert stored.path == LOOP[:3]
        assert stored.version == 4

    @pytest.mark.asyncio
    async def test_closed_session_rejects_points(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        await walk(db_session, session.id, LOOP)

        with pytest.raises(InvalidSessionState):
            await tracking_service.append_point(
                db_session, TEST_USER_ID, session.id, LOOP[1], now=T0 + timedelta(hours=1)
            )

    @pytest.mark.asyncio
    async def test_other_players_session(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)

        with pytest.raises(NotOwner):
            await tracking_service.append_point(db_session, OTHER_USER_ID, session.id, LOOP[0])

    @pytest.mark.asyncio
    async def test_collinear_loop_closes_with_no_area(self, db_session):
        """A straight out-and-back walk has three distinct points, so it closes with no area."""
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        there_and_back = [
            LOOP[0],
            LOOP[1],
            GeoPoint(latitude=31.2300, longitude=121.4705),
            LOOP[0],
        ]

        result = await walk(db_session, session.id, there_and_back)

        assert result.closed is True
        assert result.territory.area < 1.0


class TestAbandonSession:
    @pytest.mark.asyncio
    async def test_abandon(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        await walk(db_session, session.id, LOOP[:3])

        abandoned = await tracking_service.abandon_session(db_session, TEST_USER_ID, session.id)

        assert abandoned.status == TrackingStatus.ABANDONED
        with pytest.raises(InvalidSessionState):
            await tracking_service.append_point(db_session, TEST_USER_ID, session.id, LOOP[3])
        assert await territory_repo.list_territories_by_owner(db_session, TEST_USER_ID) == []

    @pytest.mark.asyncio
    async def test_cannot_abandon_closed_session(self, db_session):
        session = await tracking_service.start_session(db_session, TEST_USER_ID, now=T0)
        await walk(db_session, session.id, LOOP)

        with pytest.raises(InvalidSessionState):
            await tracking_service.abandon_session(db_session, TEST_USER_ID, session.id)


class TestTrackingEndpoints:
    @pytest.mark.asyncio
    async def test_walk_a_loop(self, client: AsyncClient):
        response = await client.post("/tracking-sessions", headers=HEADERS)
        assert response.status_code == 201
        session_id = response.json()["id"]
        assert response.json()["status"] == "recording"

        for point in LOOP:
            response = await client.post(
                f"/tracking-sessions/{session_id}/points",
                json=point_json(point),
                headers=HEADERS,
            )
            assert response.status_code == 200

        data = response.json()
        assert data["closed"] is True
        assert data["session"]["status"] == "closed"
        territory_id = data["territory"]["id"]

        response = await client.get("/territories", headers=HEADERS)
        assert [t["id"] for t in response.json()] == [territory_id]

    @pytest.mark.asyncio
    async def test_resume_session(self, client: AsyncClient):
        response = await client.post("/tracking-sessions", headers=HEADERS)
        session_id = response.json()["id"]
        for point in LOOP[:2]:
            await client.post(
                f"/tracking-sessions/{session_id}/points",
                json=point_json(point),
                headers=HEADERS,
            )

        response = await client.get(f"/tracking-sessions/{session_id}", headers=HEADERS)

        assert response.status_code == 200
        assert len(response.json()["path"]) == 2

    @pytest.mark.asyncio
    async def test_abandon_then_append(self, client: AsyncClient):
        response = await client.post("/tracking-sessions", headers=HEADERS)
        session_id = response.json()["id"]

        response = await client.post(f"/tracking-sessions/{session_id}/abandon", headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["status"] == "abandoned"

        response = await client.post(
            f"/tracking-sessions/{session_id}/points",
            json=point_json(LOOP[0]),
            headers=HEADERS,
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "InvalidSessionState"

    @pytest.mark.asyncio
    async def test_other_player_forbidden(self, client: AsyncClient):
        response = await client.post("/tracking-sessions", headers=HEADERS)
        session_id = response.json()["id"]

        response = await client.get(f"/tracking-sessions/{session_id}", headers=OTHER_HEADERS)

        assert response.status_code == 403
        assert response.json()["error_type"] == "NotOwner"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient):
        response = await client.get(
            "/tracking-sessions/00000000-0000-0000-0000-00000000dead", headers=HEADERS
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_coordinates(self, client: AsyncClient):
        response = await client.post("/tracking-sessions", headers=HEADERS)
        session_id = response.json()["id"]

        response = await client.post(
            f"/tracking-sessions/{session_id}/points",
            json={"latitude": 91.0, "longitude": 0.0},
            headers=HEADERS,
        )
        assert response.status_code == 422
