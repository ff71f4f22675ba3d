"""Tests for the Celery task wrappers (lifecycle promotion and dispatch)."""

from __future__ import annotations

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from estateops.clock import FixedClock
from estateops.models.enums import SubjectType

from tests.helpers import NOW


def _session_ctx():
    session = AsyncMock()
    ctx = MagicMock()
    ctx.__aenter__ = AsyncMock(return_value=session)
    ctx.__aexit__ = AsyncMock(return_value=False)
    return session, ctx


def _engine():
    engine = MagicMock()
    engine.dispose = AsyncMock()
    return engine


class TestLifecycleTasks:
    @patch("estateops.modules.lifecycle.tasks.LifecyclePromoter")
    def test_run_lifecycle_rules_uses_given_date(self, mock_promoter_cls):
        from estateops.modules.lifecycle.tasks import run_lifecycle_rules

        session, ctx = _session_ctx()
        mock_promoter_cls.return_value.run_rules = AsyncMock(
            return_value={"rules": 4, "promoted": 2, "errors": 0}
        )
        engine = _engine()

        with patch("estateops.modules.lifecycle.tasks.async_session", return_value=ctx), \
             patch("estateops.modules.lifecycle.tasks.engine", engine):
            stats = run_lifecycle_rules("INVOICE", "2026-03-01")

        mock_promoter_cls.return_value.run_rules.assert_awaited_once_with(
            SubjectType.INVOICE, date(2026, 3, 1)
        )
        assert mock_promoter_cls.call_args.args[0] is session
        assert stats == {
            "rules": 4,
            "promoted": 2,
            "errors": 0,
            "subject_type": "INVOICE",
            "as_of": "2026-03-01",
        }
        engine.dispose.assert_awaited_once()

    @patch("estateops.modules.lifecycle.tasks.LifecyclePromoter")
    def test_run_lifecycle_rules_defaults_to_clock_date(self, mock_promoter_cls):
        from estateops.modules.lifecycle.tasks import run_lifecycle_rules

        _, ctx = _session_ctx()
        mock_promoter_cls.return_value.run_rules = AsyncMock(
            return_value={"rules": 1, "promoted": 0, "errors": 0}
        )

        with patch("estateops.modules.lifecycle.tasks.async_session", return_value=ctx), \
             patch("estateops.modules.lifecycle.tasks.engine", _engine()), \
             patch("estateops.modules.lifecycle.tasks._clock", FixedClock(NOW)):
            stats = run_lifecycle_rules("PDC")

        assert stats["as_of"] == "2026-03-01"
        assert stats["subject_type"] == "PDC"

    def test_unknown_subject_type_is_rejected(self):
        from estateops.modules.lifecycle.tasks import run_lifecycle_rules

        with pytest.raises(ValueError):
            run_lifecycle_rules("LEASE", "2026-03-01")

    @patch("estateops.modules.lifecycle.tasks.LifecyclePromoter")
    def test_promote_rule_applies_single_rule(self, mock_promoter_cls):
        from estateops.modules.lifecycle.tasks import promote_rule

        _, ctx = _session_ctx()
        promoter = mock_promoter_cls.return_value
        promoter.promote = AsyncMock(return_value=3)

        with patch("estateops.modules.lifecycle.tasks.session_scope", return_value=ctx), \
             patch("estateops.modules.lifecycle.tasks.engine", _engine()):
            stats = promote_rule("PDC", "pdc.due_window", "2026-03-01")

        promoter.validate.assert_called_once()
        promoter.promote.assert_awaited_once_with(
            SubjectType.PDC, "pdc.due_window", date(2026, 3, 1)
        )
        assert stats == {
            "subject_type": "PDC",
            "rule_id": "pdc.due_window",
            "as_of": "2026-03-01",
            "promoted": 3,
        }


class TestDispatchTask:
    @patch("estateops.modules.notifications.tasks.NotificationDispatcher")
    def test_dispatch_runs_one_cycle_and_closes_channels(self, mock_dispatcher_cls):
        from estateops.modules.notifications.tasks import dispatch_notifications

        _, ctx = _session_ctx()
        expected = {"reclaimed": 0, "claimed": 2, "sent": 2, "retried": 0, "failed_terminal": 0}
        mock_dispatcher_cls.return_value.run_cycle = AsyncMock(return_value=expected)
        close = AsyncMock()

        with patch("estateops.modules.notifications.tasks.async_session", return_value=ctx), \
             patch("estateops.modules.notifications.tasks.engine", _engine()), \
             patch("estateops.modules.notifications.tasks.get_channel") as mock_get_channel, \
             patch("estateops.modules.notifications.tasks.close_channels", close), \
             patch("estateops.modules.notifications.tasks._clock", FixedClock(NOW)):
            stats = dispatch_notifications(batch_size=10)

        assert stats == expected
        mock_dispatcher_cls.return_value.run_cycle.assert_awaited_once_with(NOW, batch_size=10)
        assert mock_dispatcher_cls.call_args.args[1] is mock_get_channel.return_value
        close.assert_awaited_once()

    @patch("estateops.modules.notifications.tasks.NotificationDispatcher")
    def test_channels_closed_when_cycle_fails(self, mock_dispatcher_cls):
        from estateops.modules.notifications.tasks import dispatch_notifications

        _, ctx = _session_ctx()
        mock_dispatcher_cls.return_value.run_cycle = AsyncMock(
            side_effect=RuntimeError("database unavailable")
        )
        close = AsyncMock()

        with patch("estateops.modules.notifications.tasks.async_session", return_value=ctx), \
             patch("estateops.modules.notifications.tasks.engine", _engine()), \
             patch("estateops.modules.notifications.tasks.get_channel"), \
             patch("estateops.modules.notifications.tasks.close_channels", close):
            with pytest.raises(RuntimeError):
                dispatch_notifications()

        close.assert_awaited_once()
