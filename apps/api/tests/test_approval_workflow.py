"""Approval workflow and profile administration tests."""

from __future__ import annotations

import asyncio
from typing import Any
import unittest

from registrar.adapters.identity import InMemoryIdentityProvider
from registrar.domain.access import decide
from registrar.errors import ApiError, NotFoundError, StoreError, UnauthorizedError
from registrar.repositories.base import APPROVAL_REQUESTS, PROFILES, Record
from registrar.repositories.memory import InMemoryRecordStore
from registrar.schemas.access import Decision, RouteRequirement
from registrar.schemas.approval import ApprovalDecision, ApprovalStatus
from registrar.schemas.auth import RegistrationResult
from registrar.schemas.profile import Profile, ProfileStatus, Role
from registrar.services.approvals import ApprovalService
from registrar.services.profiles import ProfileService
from registrar.services.registration import RegistrationService


async def seed_profile(
    store: InMemoryRecordStore,
    *,
    role: Role = Role.ADMIN,
    status: ProfileStatus = ProfileStatus.ACTIVE,
    principal_id: str = "user-admin",
) -> Profile:
    record = await store.insert(
        PROFILES,
        {
            "principal_id": principal_id,
            "email": f"{principal_id}@example.com",
            "full_name": "Seeded User",
            "role": role.value,
            "status": status.value,
        },
    )
    return Profile.model_validate(record)


class _InterleavingStore(InMemoryRecordStore):
    """Gives up the event loop before every read and write, as a networked store would."""

    async def find(self, table: str, filters: dict[str, Any]) -> Record | None:
        await asyncio.sleep(0)
        return await super().find(table, filters)

    async def update(
        self,
        table: str,
        record_id: str,
        patch: Record,
        *,
        expected: dict[str, Any] | None = None,
    ) -> Record:
        await asyncio.sleep(0)
        return await super().update(table, record_id, patch, expected=expected)


class ApprovalWorkflowTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.identity = InMemoryIdentityProvider()
        self.store = InMemoryRecordStore()
        self.service = ApprovalService(self.store)
        self.admin = await seed_profile(self.store)
        self.registration: RegistrationResult = await RegistrationService(self.identity, self.store).register(
            email="a@x.com",
            password="pw123456",
            role=Role.STUDENT,
            form_data={"first_name": "Ada", "last_name": "Lovelace"},
        )
        self.request_id = self.registration.approval_request.id

    async def test_approve_activates_student_with_student_scoped_access(self) -> None:
        outcome = await self.service.decide(
            actor=self.admin,
            request_id=self.request_id,
            decision=ApprovalDecision.APPROVE,
        )

        self.assertEqual(outcome.request.status, ApprovalStatus.APPROVED)
        self.assertEqual(outcome.request.granted_role, Role.STUDENT)
        self.assertEqual(outcome.request.reviewed_by_profile_id, self.admin.id)
        self.assertIsNotNone(outcome.request.reviewed_at)
        self.assertEqual(outcome.profile.status, ProfileStatus.ACTIVE)
        self.assertEqual(outcome.profile.role, Role.STUDENT)
        self.assertEqual(decide(outcome.profile, RouteRequirement.REQUIRE_STAFF), Decision.REDIRECT_TO_UNAUTHORIZED)
        self.assertEqual(decide(outcome.profile, RouteRequirement.AUTHENTICATED), Decision.ALLOW)

    async def test_reject_marks_profile_rejected_and_blocks_access(self) -> None:
        outcome = await self.service.decide(
            actor=self.admin,
            request_id=self.request_id,
            decision=ApprovalDecision.REJECT,
            role_override=Role.ADMIN,
        )

        self.assertEqual(outcome.request.status, ApprovalStatus.REJECTED)
        self.assertIsNone(outcome.request.granted_role)
        self.assertEqual(outcome.profile.status, ProfileStatus.REJECTED)
        self.assertEqual(outcome.profile.role, Role.STUDENT)
        self.assertEqual(decide(outcome.profile, RouteRequirement.AUTHENTICATED), Decision.REDIRECT_TO_UNAUTHORIZED)

    async def test_second_decision_on_same_request_fails_with_not_found(self) -> None:
        await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.APPROVE)
        writes_after_first = self.store.write_count

        with self.assertRaises(NotFoundError):
            await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.APPROVE)
        with self.assertRaises(NotFoundError):
            await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.REJECT)

        self.assertEqual(self.store.write_count, writes_after_first)

    async def test_concurrent_decisions_on_one_request_apply_exactly_once(self) -> None:
        store = _InterleavingStore()
        service = ApprovalService(store)
        admin = await seed_profile(store)
        registration = await RegistrationService(self.identity, store).register(
            email="b@x.com",
            password="pw123456",
            role=Role.STAFF,
            form_data={},
        )
        request_id = registration.approval_request.id
        writes_before = store.write_count

        results = await asyncio.gather(
            service.decide(actor=admin, request_id=request_id, decision=ApprovalDecision.APPROVE),
            service.decide(actor=admin, request_id=request_id, decision=ApprovalDecision.REJECT),
            return_exceptions=True,
        )

        outcomes = [result for result in results if not isinstance(result, BaseException)]
        failures = [result for result in results if isinstance(result, BaseException)]
        self.assertEqual(len(outcomes), 1)
        self.assertEqual(len(failures), 1)
        self.assertIsInstance(failures[0], NotFoundError)
        self.assertEqual(store.write_count - writes_before, 2)

        stored_request = await store.find(APPROVAL_REQUESTS, {"id": request_id})
        stored_profile = await store.find(PROFILES, {"id": registration.profile.id})
        self.assertEqual(stored_request["status"], outcomes[0].request.status.value)
        self.assertEqual(stored_profile["status"], outcomes[0].profile.status.value)

    async def test_role_override_is_the_role_of_record(self) -> None:
        outcome = await self.service.decide(
            actor=self.admin,
            request_id=self.request_id,
            decision=ApprovalDecision.APPROVE,
            role_override=Role.STAFF,
        )

        self.assertEqual(outcome.request.target_role, Role.STUDENT)
        self.assertEqual(outcome.request.granted_role, Role.STAFF)
        self.assertEqual(outcome.profile.role, Role.STAFF)
        self.assertEqual(decide(outcome.profile, RouteRequirement.REQUIRE_STAFF), Decision.ALLOW)

    async def test_unknown_request_fails_with_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            await self.service.decide(actor=self.admin, request_id="missing", decision=ApprovalDecision.APPROVE)

    async def test_missing_requester_profile_fails_before_any_write(self) -> None:
        await self.store.delete(PROFILES, self.registration.profile.id)
        writes_before = self.store.write_count

        with self.assertRaises(NotFoundError):
            await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.APPROVE)

        self.assertEqual(self.store.write_count, writes_before)
        request = await self.store.find(APPROVAL_REQUESTS, {"id": self.request_id})
        self.assertEqual(request["status"], "pending")

    async def test_non_admin_or_inactive_actor_is_unauthorized(self) -> None:
        actors = [
            None,
            await seed_profile(self.store, role=Role.STAFF, principal_id="user-staff"),
            await seed_profile(self.store, status=ProfileStatus.PENDING, principal_id="user-pending-admin"),
            await seed_profile(self.store, status=ProfileStatus.SUSPENDED, principal_id="user-suspended-admin"),
        ]
        for actor in actors:
            with self.subTest(actor=actor and (actor.role, actor.status)):
                with self.assertRaises(UnauthorizedError) as context:
                    await self.service.decide(
                        actor=actor,
                        request_id=self.request_id,
                        decision=ApprovalDecision.APPROVE,
                    )
                self.assertEqual(context.exception.status_code, 403)

        request = await self.store.find(APPROVAL_REQUESTS, {"id": self.request_id})
        self.assertEqual(request["status"], "pending")

    async def test_profile_write_failure_restores_pending_request(self) -> None:
        self.store.fail_next(PROFILES, "update")

        with self.assertRaises(StoreError) as context:
            await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.APPROVE)

        self.assertEqual(context.exception.payload.details, {"table": PROFILES})
        request = await self.store.find(APPROVAL_REQUESTS, {"id": self.request_id})
        self.assertEqual(request["status"], "pending")
        self.assertIsNone(request["reviewed_at"])
        self.assertIsNone(request["granted_role"])
        profile = await self.store.find(PROFILES, {"id": self.registration.profile.id})
        self.assertEqual(profile["status"], "pending")

        outcome = await self.service.decide(
            actor=self.admin,
            request_id=self.request_id,
            decision=ApprovalDecision.APPROVE,
        )
        self.assertEqual(outcome.profile.status, ProfileStatus.ACTIVE)

    async def test_list_requests_filters_by_status_in_submission_order(self) -> None:
        second = await RegistrationService(self.identity, self.store).register(
            email="b@x.com",
            password="pw123456",
            role=Role.STAFF,
            form_data={},
        )
        await self.service.decide(actor=self.admin, request_id=self.request_id, decision=ApprovalDecision.REJECT)

        everything = await self.service.list_requests(actor=self.admin)
        pending = await self.service.list_requests(actor=self.admin, status=ApprovalStatus.PENDING)

        self.assertEqual([item.id for item in everything], [self.request_id, second.approval_request.id])
        self.assertEqual([item.id for item in pending], [second.approval_request.id])
        with self.assertRaises(UnauthorizedError):
            await self.service.list_requests(actor=self.registration.profile)


class ProfileAdministrationTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.store = InMemoryRecordStore()
        self.service = ProfileService(self.store)
        self.admin = await seed_profile(self.store)
        self.staff = await seed_profile(self.store, role=Role.STAFF, principal_id="user-staff")

    async def test_suspend_then_reinstate(self) -> None:
        suspended = await self.service.suspend(actor=self.admin, profile_id=self.staff.id)
        self.assertEqual(suspended.status, ProfileStatus.SUSPENDED)
        self.assertEqual(decide(suspended, RouteRequirement.REQUIRE_STAFF), Decision.REDIRECT_TO_UNAUTHORIZED)

        reinstated = await self.service.reinstate(actor=self.admin, profile_id=self.staff.id)
        self.assertEqual(reinstated.status, ProfileStatus.ACTIVE)
        self.assertEqual(decide(reinstated, RouteRequirement.REQUIRE_STAFF), Decision.ALLOW)

    async def test_suspending_a_pending_profile_is_an_invalid_transition(self) -> None:
        pending = await seed_profile(self.store, role=Role.STUDENT, status=ProfileStatus.PENDING, principal_id="user-p")

        with self.assertRaises(ApiError) as context:
            await self.service.suspend(actor=self.admin, profile_id=pending.id)

        self.assertEqual(context.exception.status_code, 409)
        self.assertEqual(context.exception.payload.code, "STATUS_TRANSITION_INVALID")

    async def test_admin_cannot_suspend_self_and_staff_cannot_suspend_anyone(self) -> None:
        with self.assertRaises(UnauthorizedError):
            await self.service.suspend(actor=self.admin, profile_id=self.admin.id)
        with self.assertRaises(UnauthorizedError):
            await self.service.suspend(actor=self.staff, profile_id=self.admin.id)

    async def test_unknown_profile_is_not_found(self) -> None:
        with self.assertRaises(NotFoundError):
            await self.service.suspend(actor=self.admin, profile_id="missing")

    async def test_get_for_principal_returns_none_when_absent(self) -> None:
        self.assertIsNone(await self.service.get_for_principal("nobody"))
        found = await self.service.get_for_principal("user-staff")
        self.assertEqual(found.id, self.staff.id)


if __name__ == "__main__":
    unittest.main()
