"""Generation job lifecycle transition tests."""

from __future__ import annotations

import unittest

from app.domain.job_fsm import allowed_next_states, ensure_transition, is_terminal, map_remote_status
from app.errors import ApiError
from app.schemas.job import JobLifecycle


class JobFsmUnitTests(unittest.TestCase):
    def test_allowed_transition_examples_across_lifecycle(self) -> None:
        allowed_pairs = [
            (JobLifecycle.QUEUED, JobLifecycle.STARTING),
            (JobLifecycle.QUEUED, JobLifecycle.FAILED),
            (JobLifecycle.STARTING, JobLifecycle.STARTING),
            (JobLifecycle.STARTING, JobLifecycle.PROCESSING),
            (JobLifecycle.STARTING, JobLifecycle.TIMED_OUT),
            (JobLifecycle.PROCESSING, JobLifecycle.PROCESSING),
            (JobLifecycle.PROCESSING, JobLifecycle.SUCCEEDED),
            (JobLifecycle.PROCESSING, JobLifecycle.CANCELED),
        ]
        for old_state, new_state in allowed_pairs:
            with self.subTest(old_state=old_state, new_state=new_state):
                ensure_transition(old_state, new_state)

    def test_forbidden_transitions_return_contract_shape(self) -> None:
        invalid_pairs = [
            (JobLifecycle.PROCESSING, JobLifecycle.STARTING),
            (JobLifecycle.PROCESSING, JobLifecycle.QUEUED),
            (JobLifecycle.QUEUED, JobLifecycle.PROCESSING),
        ]
        for old_state, new_state in invalid_pairs:
            with self.subTest(old_state=old_state, new_state=new_state):
                with self.assertRaises(ApiError) as context:
                    ensure_transition(old_state, new_state)
                self.assertEqual(context.exception.status_code, 409)
                self.assertEqual(context.exception.payload.code, "FSM_TRANSITION_INVALID")
                details = context.exception.payload.details
                self.assertEqual(details["current_state"], old_state)
                self.assertEqual(details["attempted_state"], new_state)
                self.assertEqual(details["allowed_next_states"], allowed_next_states(old_state))

    def test_terminal_states_are_immutable(self) -> None:
        for terminal_state in (
            JobLifecycle.SUCCEEDED,
            JobLifecycle.FAILED,
            JobLifecycle.CANCELED,
            JobLifecycle.TIMED_OUT,
        ):
            with self.subTest(terminal_state=terminal_state):
                self.assertTrue(is_terminal(terminal_state))
                with self.assertRaises(ApiError) as context:
                    ensure_transition(terminal_state, JobLifecycle.PROCESSING)
                self.assertEqual(context.exception.payload.code, "FSM_TERMINAL_IMMUTABLE")
                self.assertEqual(context.exception.payload.details["allowed_next_states"], [])

    def test_remote_status_mapping(self) -> None:
        cases = [
            ("starting", None, JobLifecycle.PROCESSING),
            ("processing", None, JobLifecycle.PROCESSING),
            ("succeeded", "https://cdn.example/video.mp4", JobLifecycle.SUCCEEDED),
            ("failed", None, JobLifecycle.FAILED),
            ("canceled", None, JobLifecycle.CANCELED),
            ("something_new", None, JobLifecycle.PROCESSING),
        ]
        for status, output, expected in cases:
            with self.subTest(status=status):
                self.assertEqual(map_remote_status(status, output), expected)

    def test_success_without_output_is_a_failure(self) -> None:
        self.assertEqual(map_remote_status("succeeded", None), JobLifecycle.FAILED)
        self.assertEqual(map_remote_status("succeeded", ""), JobLifecycle.FAILED)


if __name__ == "__main__":
    unittest.main()
