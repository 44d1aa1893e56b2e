"""
Tests for driver <-> vehicle <-> trailer assignments.

Covers exclusivity (one active assignment per driver, vehicle and trailer),
supersession, inactive creation, reactivation and the admin endpoints.
"""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from fleetcheck.app.core.exceptions import ResourceNotFoundError
from fleetcheck.app.models.assignment import Assignment
from fleetcheck.app.models.enums import AssignmentStatus, UserRole
from fleetcheck.app.services.assignments import (
    create_assignment,
    get_active_assignment_for_driver,
    list_assignments,
    set_assignment_active,
)
from fleetcheck.app.services.users import create_user


async def _statuses(db_session):
    result = await db_session.execute(
        select(Assignment).order_by(Assignment.id).execution_options(populate_existing=True)
    )
    return {row.id: row.status for row in result.scalars().all()}


# TEST 1: Basic creation
@pytest.mark.asyncio
async def test_create_active_assignment(db_session, driver, vehicle, trailer):
    assignment = await create_assignment(db_session, driver.id, vehicle.id, trailer.id)

    assert assignment.active
    assert assignment.status == AssignmentStatus.ACTIVE
    assert assignment.vehicle.registration == "AB 123 CD"
    assert assignment.trailer.number == "TR-001"
    assert assignment.user.email == "driver1@fleet.test"


# TEST 2: Same vehicle and trailer handed to another driver
@pytest.mark.asyncio
async def test_new_driver_supersedes_previous_on_same_vehicle(db_session, driver, second_driver, vehicle, trailer):
    first = await create_assignment(db_session, driver.id, vehicle.id, trailer.id)
    second = await create_assignment(db_session, second_driver.id, vehicle.id, trailer.id)

    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.SUPERSEDED
    assert statuses[second.id] == AssignmentStatus.ACTIVE

    assert await get_active_assignment_for_driver(db_session, driver.id) is None
    current = await get_active_assignment_for_driver(db_session, second_driver.id)
    assert current.id == second.id
    assert current.vehicle_id == vehicle.id
    assert current.trailer_id == trailer.id


# TEST 3: Driver moved to a different vehicle
@pytest.mark.asyncio
async def test_driver_reassignment_supersedes_own_previous(db_session, driver, vehicle, second_vehicle):
    first = await create_assignment(db_session, driver.id, vehicle.id)
    second = await create_assignment(db_session, driver.id, second_vehicle.id)

    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.SUPERSEDED
    assert statuses[second.id] == AssignmentStatus.ACTIVE


# TEST 4: Trailer moves between vehicles
@pytest.mark.asyncio
async def test_trailer_only_overlap_supersedes(db_session, driver, second_driver, vehicle, second_vehicle, trailer):
    first = await create_assignment(db_session, driver.id, vehicle.id, trailer.id)
    second = await create_assignment(db_session, second_driver.id, second_vehicle.id, trailer.id)

    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.SUPERSEDED
    assert statuses[second.id] == AssignmentStatus.ACTIVE


# TEST 5: Assignments without trailers never collide on the trailer
@pytest.mark.asyncio
async def test_assignments_without_trailer_do_not_conflict(db_session, driver, second_driver, vehicle, second_vehicle):
    first = await create_assignment(db_session, driver.id, vehicle.id)
    second = await create_assignment(db_session, second_driver.id, second_vehicle.id)

    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.ACTIVE
    assert statuses[second.id] == AssignmentStatus.ACTIVE


# TEST 6: Inactive creation leaves others alone
@pytest.mark.asyncio
async def test_inactive_creation_does_not_supersede(db_session, driver, second_driver, vehicle):
    first = await create_assignment(db_session, driver.id, vehicle.id)
    planned = await create_assignment(db_session, second_driver.id, vehicle.id, active=False)

    assert planned.status == AssignmentStatus.INACTIVE
    assert not planned.active
    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.ACTIVE


# TEST 7: Reactivation applies the same sweep
@pytest.mark.asyncio
async def test_reactivation_supersedes_conflicting_rows(db_session, driver, second_driver, vehicle):
    first = await create_assignment(db_session, driver.id, vehicle.id)
    planned = await create_assignment(db_session, second_driver.id, vehicle.id, active=False)

    reactivated = await set_assignment_active(db_session, planned.id, True)

    assert reactivated.active
    statuses = await _statuses(db_session)
    assert statuses[first.id] == AssignmentStatus.SUPERSEDED
    assert statuses[planned.id] == AssignmentStatus.ACTIVE


@pytest.mark.asyncio
async def test_deactivation_and_repeat_are_idempotent(db_session, driver, vehicle):
    assignment = await create_assignment(db_session, driver.id, vehicle.id)

    deactivated = await set_assignment_active(db_session, assignment.id, False)
    again = await set_assignment_active(db_session, assignment.id, False)

    assert deactivated.status == AssignmentStatus.INACTIVE
    assert again.status == AssignmentStatus.INACTIVE
    assert await get_active_assignment_for_driver(db_session, driver.id) is None


# TEST 8: Unknown references
@pytest.mark.asyncio
async def test_unknown_references_raise_not_found(db_session, driver, vehicle):
    driver_id, vehicle_id = driver.id, vehicle.id

    with pytest.raises(ResourceNotFoundError):
        await create_assignment(db_session, driver_id, 9999)
    with pytest.raises(ResourceNotFoundError):
        await create_assignment(db_session, 9999, vehicle_id)
    with pytest.raises(ResourceNotFoundError):
        await create_assignment(db_session, driver_id, vehicle_id, trailer_id=9999)
    with pytest.raises(ResourceNotFoundError):
        await set_assignment_active(db_session, 9999, True)

    assert await list_assignments(db_session) == []


@pytest.mark.asyncio
async def test_admin_cannot_be_assigned_as_driver(db_session, vehicle):
    admin = await create_user(db_session, "boss@fleet.test", "secret123", UserRole.ADMIN)

    with pytest.raises(ResourceNotFoundError):
        await create_assignment(db_session, admin.id, vehicle.id)


# TEST 9: Storage-level backstop
@pytest.mark.asyncio
async def test_partial_unique_index_rejects_second_active_row(db_session, driver, vehicle, second_vehicle):
    driver_id, vehicle_id, other_vehicle_id = driver.id, vehicle.id, second_vehicle.id

    db_session.add(Assignment(user_id=driver_id, vehicle_id=vehicle_id, status=AssignmentStatus.ACTIVE))
    await db_session.commit()

    db_session.add(Assignment(user_id=driver_id, vehicle_id=other_vehicle_id, status=AssignmentStatus.ACTIVE))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()

    # Non-active rows are unconstrained
    db_session.add(Assignment(user_id=driver_id, vehicle_id=other_vehicle_id, status=AssignmentStatus.SUPERSEDED))
    db_session.add(Assignment(user_id=driver_id, vehicle_id=other_vehicle_id, status=AssignmentStatus.INACTIVE))
    await db_session.commit()


@pytest.mark.asyncio
async def test_list_assignments_active_only(db_session, driver, second_driver, vehicle):
    await create_assignment(db_session, driver.id, vehicle.id)
    await create_assignment(db_session, second_driver.id, vehicle.id)

    everything = await list_assignments(db_session)
    active = await list_assignments(db_session, active_only=True)

    assert len(everything) == 2
    assert [a.user_id for a in active] == [second_driver.id]


# TEST 10: Admin endpoints
@pytest.mark.asyncio
async def test_assignment_endpoints(client, admin_headers, driver, second_driver, vehicle, trailer):
    response = await client.post("/v1/admin/assignments", headers=admin_headers, json={
        "user_id": driver.id,
        "vehicle_id": vehicle.id,
        "trailer_id": trailer.id,
    })
    assert response.status_code == 201
    first = response.json()
    assert first["active"] is True
    assert first["registration"] == "AB 123 CD"
    assert first["trailer_number"] == "TR-001"
    assert first["user_email"] == "driver1@fleet.test"

    response = await client.post("/v1/admin/assignments", headers=admin_headers, json={
        "user_id": second_driver.id,
        "vehicle_id": vehicle.id,
        "trailer_id": trailer.id,
    })
    assert response.status_code == 201

    response = await client.get("/v1/admin/assignments", headers=admin_headers)
    rows = {row["id"]: row for row in response.json()["assignments"]}
    assert rows[first["id"]]["active"] is False
    assert rows[first["id"]]["status"] == "superseded"

    response = await client.patch(
        f"/v1/admin/assignments/{first['id']}", headers=admin_headers, json={"active": True}
    )
    assert response.status_code == 200
    assert response.json()["active"] is True

    response = await client.get("/v1/admin/assignments?active_only=true", headers=admin_headers)
    assert [row["id"] for row in response.json()["assignments"]] == [first["id"]]


@pytest.mark.asyncio
async def test_assignment_endpoint_unknown_vehicle(client, admin_headers, driver):
    response = await client.post("/v1/admin/assignments", headers=admin_headers, json={
        "user_id": driver.id,
        "vehicle_id": 4242,
    })
    assert response.status_code == 404
    assert response.json()["error_code"] == "ERR_NOT_FOUND_001"


@pytest.mark.asyncio
async def test_driver_cannot_manage_assignments(client, driver_headers, driver, vehicle):
    response = await client.post("/v1/admin/assignments", headers=driver_headers, json={
        "user_id": driver.id,
        "vehicle_id": vehicle.id,
    })
    assert response.status_code == 403
