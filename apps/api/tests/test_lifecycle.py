"""Profile and approval lifecycle transition tests."""

from __future__ import annotations

import unittest

from registrar.domain.lifecycle import (
    allowed_next_profile_statuses,
    can_transition_approval,
    ensure_profile_transition,
)
from registrar.errors import ApiError
from registrar.schemas.approval import ApprovalStatus
from registrar.schemas.profile import ProfileStatus


class ProfileLifecycleTests(unittest.TestCase):
    def test_allowed_profile_transitions(self) -> None:
        allowed_pairs = [
            (ProfileStatus.PENDING, ProfileStatus.ACTIVE),
            (ProfileStatus.PENDING, ProfileStatus.REJECTED),
            (ProfileStatus.ACTIVE, ProfileStatus.SUSPENDED),
            (ProfileStatus.SUSPENDED, ProfileStatus.ACTIVE),
        ]
        for old_status, new_status in allowed_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                ensure_profile_transition(old_status, new_status)

    def test_forbidden_transitions_return_contract_shape(self) -> None:
        invalid_pairs = [
            (ProfileStatus.PENDING, ProfileStatus.SUSPENDED),
            (ProfileStatus.ACTIVE, ProfileStatus.PENDING),
            (ProfileStatus.ACTIVE, ProfileStatus.ACTIVE),
            (ProfileStatus.REJECTED, ProfileStatus.ACTIVE),
        ]
        for old_status, new_status in invalid_pairs:
            with self.subTest(old_status=old_status, new_status=new_status):
                with self.assertRaises(ApiError) as context:
                    ensure_profile_transition(old_status, new_status)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "STATUS_TRANSITION_INVALID")
                details = context.exception.payload.details
                self.assertEqual(details["current_status"], old_status)
                self.assertEqual(details["attempted_status"], new_status)
                self.assertEqual(details["allowed_next_statuses"], allowed_next_profile_statuses(old_status))

    def test_rejected_profile_has_no_successors(self) -> None:
        self.assertEqual(allowed_next_profile_statuses(ProfileStatus.REJECTED), [])
        self.assertEqual(
            allowed_next_profile_statuses(ProfileStatus.PENDING),
            [ProfileStatus.ACTIVE, ProfileStatus.REJECTED],
        )


class ApprovalLifecycleTests(unittest.TestCase):
    def test_pending_request_moves_once_to_a_terminal_outcome(self) -> None:
        self.assertTrue(can_transition_approval(ApprovalStatus.PENDING, ApprovalStatus.APPROVED))
        self.assertTrue(can_transition_approval(ApprovalStatus.PENDING, ApprovalStatus.REJECTED))

    def test_terminal_requests_are_immutable(self) -> None:
        for terminal_status in (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED):
            for new_status in ApprovalStatus:
                with self.subTest(terminal_status=terminal_status, new_status=new_status):
                    self.assertFalse(can_transition_approval(terminal_status, new_status))


if __name__ == "__main__":
    unittest.main()
