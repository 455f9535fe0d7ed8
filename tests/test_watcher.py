"""Unit tests for the MailWatcher sync cycle."""

from unittest.mock import MagicMock

import pytest

from src.auth import RefreshFailedError
from src.gmail import (
    AddressParseError,
    AuthorizedTransport,
    GmailApi,
    LabelCatalog,
    MessageEnricher,
    SyncEngine,
)
from src.metrics import InMemoryEventSink
from src.watcher import CycleResult, MailWatcher
from tests.gmail_test_helpers import FakeGmailSession, make_store, message_body


def _make_watcher(session, sleep=None, **store_kwargs):
    store = make_store(session, **store_kwargs)
    api = GmailApi(AuthorizedTransport(store, session=session))
    sink = InMemoryEventSink()
    watcher = MailWatcher(
        SyncEngine(api),
        MessageEnricher(api, LabelCatalog.load(api)),
        sink,
        sleep_interval=30,
        sleep=sleep or MagicMock(),
    )
    return watcher, sink


class TestRunCycle:
    def test_emits_events_and_advances_watermark(self):
        session = FakeGmailSession()
        session.add_message("m1")
        last = session.add_message("m2")
        watcher, sink = _make_watcher(session)

        result = watcher.run_cycle("100")

        assert [e.id for e in sink.events] == ["m1", "m2"]
        assert sink.polls == 1
        assert result.refs_found == 2
        assert result.events_emitted == 2
        assert result.watermark_in == "100"
        assert result.watermark_out == last
        assert result.advanced is True

    def test_no_new_mail_still_counts_poll(self):
        session = FakeGmailSession()
        watcher, sink = _make_watcher(session)

        result = watcher.run_cycle("100")

        assert sink.events == []
        assert sink.polls == 1
        assert result.watermark_out == "100"
        assert result.advanced is False

    def test_rerun_from_advanced_watermark_is_idempotent(self):
        session = FakeGmailSession()
        session.add_message("m1")
        session.add_message("m2")
        watcher, sink = _make_watcher(session)

        first = watcher.run_cycle("100")
        second = watcher.run_cycle(first.watermark_out)

        assert second.events_emitted == 0
        assert second.watermark_out == first.watermark_out
        assert len(sink.events) == 2
        assert sink.polls == 2

    def test_watermark_never_below_input(self):
        session = FakeGmailSession()
        session.add_message("m1")
        watcher, _ = _make_watcher(session)

        result = watcher.run_cycle("100")

        assert int(result.watermark_out) >= int(result.watermark_in)

    def test_failed_enrichment_redelivers_whole_batch(self):
        session = FakeGmailSession()
        session.add_message("m1")
        history_id = session.add_message("m2", sender="Broken <broken@example.com")
        session.add_message("m3")
        watcher, sink = _make_watcher(session)

        with pytest.raises(AddressParseError):
            watcher.run_cycle("100")
        assert sink.events == []

        session.messages["m2"] = message_body("m2", history_id)
        result = watcher.run_cycle("100")

        assert [e.id for e in sink.events] == ["m1", "m2", "m3"]
        assert result.refs_found == 3

    def test_dotted_display_name_does_not_block_sync(self):
        session = FakeGmailSession()
        last = session.add_message("m1", sender="Amazon.com <shipment-tracking@amazon.com>")
        watcher, sink = _make_watcher(session)

        result = watcher.run_cycle("100")

        assert [e.id for e in sink.events] == ["m1"]
        assert sink.events[0].from_addresses[0].address == "shipment-tracking@amazon.com"
        assert sink.polls == 1
        assert result.watermark_out == last

    def test_deleted_message_is_skipped(self):
        session = FakeGmailSession()
        session.add_message("m1")
        last = session.add_message("m2")
        session.delete_message("m1")
        watcher, sink = _make_watcher(session)

        result = watcher.run_cycle("100")

        assert [e.id for e in sink.events] == ["m2"]
        assert result.refs_found == 2
        assert result.watermark_out == last

    def test_refreshes_token_mid_cycle(self):
        session = FakeGmailSession()
        session.add_message("m1")
        watcher, sink = _make_watcher(session)
        session.rejected_tokens = {"access-1"}
        session.token_responses = [{"access_token": "access-2"}]

        watcher.run_cycle("100")

        assert len(session.post_calls) == 1
        assert [e.id for e in sink.events] == ["m1"]
        assert session.bearer_tokens()[-1] == "access-2"

    def test_rejected_refresh_aborts_cycle(self):
        session = FakeGmailSession()
        session.add_message("m1")
        watcher, sink = _make_watcher(session)
        session.rejected_tokens = {"access-1", "access-2"}
        session.token_responses = [{"access_token": "access-2"}]

        with pytest.raises(RefreshFailedError):
            watcher.run_cycle("100")
        assert sink.polls == 0


class TestRun:
    def test_sleeps_between_cycles(self):
        session = FakeGmailSession()
        sleep = MagicMock()
        watcher, sink = _make_watcher(session, sleep=sleep)
        session.add_message("m1")

        watermark = watcher.run("100", max_cycles=3)

        assert sink.polls == 3
        assert len(sink.events) == 1
        assert sleep.call_count == 2
        sleep.assert_called_with(30)
        assert watermark == session.history[-1]["id"]


class TestBackfill:
    def test_reports_latest_history_id_without_emitting(self):
        session = FakeGmailSession()
        session.add_message("m1")
        latest = session.add_message("m2")
        watcher, sink = _make_watcher(session)

        result = watcher.backfill(max_results=10)

        assert [e.id for e in result.events] == ["m2", "m1"]
        assert result.latest_history_id == latest
        assert sink.events == []
        assert sink.polls == 0

    def test_empty_mailbox(self):
        watcher, _ = _make_watcher(FakeGmailSession())

        assert watcher.backfill().latest_history_id is None


class TestCycleResult:
    def test_to_dict(self):
        from datetime import datetime, timezone

        result = CycleResult(
            started_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            watermark_in="100",
            watermark_out="150",
            refs_found=2,
        )
        data = result.to_dict()
        assert data["watermark_out"] == "150"
        assert data["events_emitted"] == 0
