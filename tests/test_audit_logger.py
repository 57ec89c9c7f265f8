"""Tests for the sync event history."""

from smartfinance.audit import SyncEventLogger
from smartfinance.models import SyncEventBuilder, SyncEventType


class TestSyncEventLogger:
    """Tests for SyncEventLogger."""

    def test_log_returns_event(self):
        logger = SyncEventLogger()
        event = SyncEventBuilder.user_logged_in()
        assert logger.log(event) is event

    def test_history_bounded(self):
        logger = SyncEventLogger(history_size=2)
        for backend in ("a", "b", "c"):
            logger.log(SyncEventBuilder.pull_not_found(backend))
        backends = [e.details["backend"] for e in logger.recent()]
        assert backends == ["c", "b"]

    def test_zero_history_keeps_nothing(self):
        logger = SyncEventLogger(history_size=0)
        logger.log(SyncEventBuilder.user_logged_in())
        assert logger.recent() == []

    def test_recent_filter_and_limit(self):
        logger = SyncEventLogger()
        logger.log(SyncEventBuilder.push_succeeded("memory", 1))
        logger.log(SyncEventBuilder.user_logged_in())
        logger.log(SyncEventBuilder.push_succeeded("memory", 2))

        pushes = logger.recent(event_type=SyncEventType.PUSH_SUCCEEDED)
        assert [e.details["transactions"] for e in pushes] == [2, 1]
        assert len(logger.recent(limit=1)) == 1

    def test_last(self):
        logger = SyncEventLogger()
        assert logger.last(SyncEventType.PUSH_FAILED) is None
        logger.log(SyncEventBuilder.push_failed("memory", "NetworkError", "offline"))
        assert logger.last(SyncEventType.PUSH_FAILED).details["error_type"] == "NetworkError"

    def test_clear(self):
        logger = SyncEventLogger()
        logger.log(SyncEventBuilder.user_logged_in())
        logger.clear()
        assert logger.recent() == []
