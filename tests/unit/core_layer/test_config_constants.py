"""
Unit Tests for Constants

Tests the session state machine and the stage identifiers.
"""

import pytest

from enhance_stream.core.config.constants import (
    BACKEND_PRICING,
    TERMINAL_EVENT_TYPES,
    SessionStatus,
    Stage,
    StreamEventType,
)


@pytest.mark.unit
class TestSessionStatus:
    @pytest.mark.parametrize(
        "status", [SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.ERROR]
    )
    def test_terminal_statuses(self, status):
        assert status.is_terminal

    @pytest.mark.parametrize("status", [SessionStatus.PENDING, SessionStatus.STREAMING])
    def test_non_terminal_statuses(self, status):
        assert not status.is_terminal

    def test_forward_transitions_allowed(self):
        assert SessionStatus.PENDING.can_transition_to(SessionStatus.STREAMING)
        assert SessionStatus.PENDING.can_transition_to(SessionStatus.CANCELLED)
        assert SessionStatus.STREAMING.can_transition_to(SessionStatus.COMPLETED)
        assert SessionStatus.STREAMING.can_transition_to(SessionStatus.CANCELLED)
        assert SessionStatus.STREAMING.can_transition_to(SessionStatus.ERROR)

    def test_pending_cannot_complete_directly(self):
        assert not SessionStatus.PENDING.can_transition_to(SessionStatus.COMPLETED)

    @pytest.mark.parametrize(
        "status", [SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.ERROR]
    )
    def test_nothing_leaves_a_terminal_status(self, status):
        assert not any(status.can_transition_to(target) for target in SessionStatus)


@pytest.mark.unit
class TestStageAndEvents:
    def test_stage_values_are_unique(self):
        values = [stage.value for stage in Stage]
        assert len(values) == len(set(values))

    def test_lifecycle_stages_are_numbered(self):
        assert Stage.SESSION_CREATE.value.startswith("1.0")
        assert Stage.GENERATION.value.startswith("5.0")

    def test_terminal_event_types(self):
        assert TERMINAL_EVENT_TYPES == {
            StreamEventType.DONE,
            StreamEventType.ERROR,
            StreamEventType.CANCELLED,
        }

    def test_mock_backend_is_free(self):
        assert BACKEND_PRICING["mock"] == (0.0, 0.0)
