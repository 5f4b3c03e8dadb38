"""Unit tests for the refresh and notify cycles and the pipeline runner.

Covers:
- Snapshot publication and failure isolation on refresh
- New-listing detection, matching and job creation in the notify cycle
- Ledger commit semantics (single commit, skipped on failure)
- Malformed subscriptions and missing snapshots
- Lock behaviour and session handling in NotifyPipeline
- Paged listing queries
"""

import json
import threading
from unittest.mock import MagicMock, Mock

import pytest

from jobnotify.config.environment import EnvironmentConfig
from jobnotify.config.models import AppConfig
from jobnotify.domain.models import FilterCondition
from jobnotify.feed.exceptions import FeedFormatError, FeedHTTPError
from jobnotify.ledger import LEDGER_KEY, NotificationLedger
from jobnotify.normalization import ListingNormalizer
from jobnotify.notifications import DeliveryStatus, DeliveryWorker, MessageLinks
from jobnotify.persistence import (
    PersistenceError,
    SqlDeliveryQueue,
    SqlSnapshotStore,
    SqlSubscriptionStore,
    close_database,
    get_session,
    init_database,
)
from jobnotify.pipeline import (
    CURRENT_LISTINGS_KEY,
    MalformedSubscriptionError,
    NotifyPipeline,
    SnapshotUnavailableError,
    load_snapshot,
    parse_subscription,
    query_listings,
    refresh_listings,
    run_notify_cycle,
)
from tests.helpers import RecordingChannel, make_listing, make_subscription_record


@pytest.fixture
def temp_database():
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def session(temp_database):
    with get_session() as session:
        yield session


@pytest.fixture
def store(session):
    return SqlSnapshotStore(session)


@pytest.fixture
def subscriptions(session):
    return SqlSubscriptionStore(session)


@pytest.fixture
def queue(session):
    return SqlDeliveryQueue(session)


@pytest.fixture
def ledger(store):
    return NotificationLedger(store)


def _add(subscriptions, subscription_id, condition):
    record = make_subscription_record(subscription_id, condition)
    subscriptions.add_record(record.id, record.credential, record.condition_json)


class TestRefreshListings:
    def test_publishes_snapshot(self, store):
        normalizer = MagicMock(spec=ListingNormalizer)
        normalizer.fetch_all.return_value = [make_listing("1"), make_listing("2")]

        result = refresh_listings(normalizer, store)

        assert result.listing_count == 2
        assert not result.had_errors
        assert [l.id for l in load_snapshot(store)] == ["1", "2"]

    def test_replaces_previous_snapshot(self, store):
        normalizer = MagicMock(spec=ListingNormalizer)
        normalizer.fetch_all.return_value = [make_listing("1")]
        refresh_listings(normalizer, store)

        normalizer.fetch_all.return_value = [make_listing("7")]
        refresh_listings(normalizer, store)

        assert [l.id for l in load_snapshot(store)] == ["7"]

    def test_feed_failure_keeps_previous_snapshot(self, store):
        normalizer = MagicMock(spec=ListingNormalizer)
        normalizer.fetch_all.return_value = [make_listing("1")]
        refresh_listings(normalizer, store)

        normalizer.fetch_all.side_effect = FeedFormatError("literal not found")
        with pytest.raises(FeedFormatError):
            refresh_listings(normalizer, store)

        assert [l.id for l in load_snapshot(store)] == ["1"]


class TestLoadSnapshot:
    def test_missing_snapshot_raises(self, store):
        with pytest.raises(SnapshotUnavailableError):
            load_snapshot(store)

    def test_unreadable_snapshot_raises(self, store):
        store.put(CURRENT_LISTINGS_KEY, b'{"not": "a list"}')
        with pytest.raises(SnapshotUnavailableError):
            load_snapshot(store)

    def test_round_trips_derived_fields(self, store):
        store.put(CURRENT_LISTINGS_KEY, b"[]")
        assert load_snapshot(store) == []


class TestParseSubscription:
    def test_parses_legacy_keys(self):
        record = make_subscription_record(
            "s1", {"jobType": "薦任", "citys": ["臺北市"], "isDisability": False, "sysnams": ["資訊"]}
        )

        subscription = parse_subscription(record)

        assert subscription.condition == FilterCondition(
            job_type="薦任", regions=["臺北市"], requires_accessibility=False, job_families=["資訊"]
        )

    def test_invalid_json(self):
        record = make_subscription_record("s1", {})
        record = record.model_copy(update={"condition_json": "{broken"})

        with pytest.raises(MalformedSubscriptionError) as exc_info:
            parse_subscription(record)
        assert exc_info.value.subscription_id == "s1"

    def test_non_object_condition(self):
        record = make_subscription_record("s1", {}).model_copy(update={"condition_json": "[1]"})
        with pytest.raises(MalformedSubscriptionError):
            parse_subscription(record)

    def test_invalid_field_types(self):
        record = make_subscription_record("s1", {"citys": "臺北市"})
        with pytest.raises(MalformedSubscriptionError):
            parse_subscription(record)

    def test_empty_credential(self):
        record = make_subscription_record("s1", {}).model_copy(update={"credential": ""})
        with pytest.raises(MalformedSubscriptionError):
            parse_subscription(record)


class TestRunNotifyCycle:
    def test_region_example(self, subscriptions, ledger, queue):
        snapshot = [make_listing("1", region="臺北市"), make_listing("2", region="高雄市")]
        _add(subscriptions, "taipei", {"citys": ["臺北市"]})

        result = run_notify_cycle(snapshot, subscriptions, ledger, queue)

        assert result.new_listing_ids == ["1", "2"]
        assert result.jobs_enqueued == 1
        assert result.jobs[0].subscription_id == "taipei"
        jobs = queue.receive(10)
        assert [l.id for l in jobs[0].job.matched_listings] == ["1"]
        assert jobs[0].job.credential == "token-taipei"
        assert set(ledger.load_ids()) == {"1", "2"}

    def test_second_cycle_is_idempotent(self, subscriptions, ledger, queue):
        snapshot = [make_listing("1")]
        _add(subscriptions, "all", {})

        run_notify_cycle(snapshot, subscriptions, ledger, queue)
        second = run_notify_cycle(snapshot, subscriptions, ledger, queue)

        assert second.new_count == 0
        assert second.jobs_enqueued == 0
        assert second.subscriptions_seen == 0
        assert queue.pending_count() == 1

    def test_job_carries_every_match(self, subscriptions, ledger, queue):
        snapshot = [make_listing(str(i)) for i in range(1, 26)]
        _add(subscriptions, "all", {})

        result = run_notify_cycle(snapshot, subscriptions, ledger, queue)

        assert result.jobs[0].matched_count == 25
        assert len(queue.receive(1)[0].job.matched_listings) == 25

    def test_no_job_without_matches(self, subscriptions, ledger, queue):
        _add(subscriptions, "kaohsiung", {"citys": ["高雄市"]})

        result = run_notify_cycle([make_listing("1")], subscriptions, ledger, queue)

        assert result.jobs_enqueued == 0
        # Listings are recorded even when nobody matched them
        assert ledger.load_ids() == ["1"]

    def test_malformed_subscription_is_skipped(self, subscriptions, ledger, queue):
        subscriptions.add_record("broken", "token-broken", "{oops")
        _add(subscriptions, "all", {})

        result = run_notify_cycle([make_listing("1")], subscriptions, ledger, queue)

        assert result.subscriptions_seen == 2
        assert result.subscriptions_malformed == 1
        assert [job.subscription_id for job in result.jobs] == ["all"]

    def test_empty_snapshot(self, subscriptions, ledger, queue):
        _add(subscriptions, "all", {})

        result = run_notify_cycle([], subscriptions, ledger, queue)

        assert result.new_count == 0
        assert result.jobs_enqueued == 0

    def test_ledger_committed_once_after_enqueues(self, subscriptions, queue):
        ledger = Mock(spec=NotificationLedger)
        ledger.load_ids.return_value = []
        ledger.commit.return_value = 2
        _add(subscriptions, "a", {})
        _add(subscriptions, "b", {})

        run_notify_cycle([make_listing("1"), make_listing("2")], subscriptions, ledger, queue)

        ledger.commit.assert_called_once_with(["1", "2"])

    def test_enqueue_failure_skips_ledger_commit(self, subscriptions, ledger):
        _add(subscriptions, "all", {})
        failing_queue = Mock(spec=SqlDeliveryQueue)
        failing_queue.enqueue.side_effect = PersistenceError("queue unavailable")

        with pytest.raises(PersistenceError):
            run_notify_cycle([make_listing("1")], subscriptions, ledger, failing_queue)

        assert ledger.load_ids() == []


class TestQueryListings:
    @pytest.fixture
    def populated(self, store):
        listings = [
            make_listing(str(i), region="臺北市" if i % 2 else "高雄市") for i in range(1, 11)
        ]
        normalizer = MagicMock(spec=ListingNormalizer)
        normalizer.fetch_all.return_value = listings
        refresh_listings(normalizer, store)
        return store

    def test_filters_and_pages(self, populated):
        page = query_listings(populated, FilterCondition(regions=["臺北市"]), start=1, limit=2)
        assert [l.id for l in page] == ["3", "5"]

    def test_start_beyond_results(self, populated):
        assert query_listings(populated, FilterCondition(), start=50) == []

    @pytest.mark.parametrize("start,limit", [(-1, 10), (0, 0), (0, 101)])
    def test_rejects_bad_paging(self, populated, start, limit):
        with pytest.raises(ValueError):
            query_listings(populated, FilterCondition(), start=start, limit=limit)

    def test_missing_snapshot(self, store):
        with pytest.raises(SnapshotUnavailableError):
            query_listings(store, FilterCondition())


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        backend_host="https://api.example.com",
        frontend_host="https://jobs.example.com",
        database_url="sqlite:///:memory:",
    )


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def pipeline(temp_database, env_config, channel):
    app_config = AppConfig()
    normalizer = MagicMock(spec=ListingNormalizer)
    normalizer.fetch_all.return_value = [
        make_listing("1", region="臺北市"),
        make_listing("2", region="高雄市"),
    ]
    worker = DeliveryWorker(
        channel,
        MessageLinks(env_config.backend_host, env_config.frontend_host, "https://notify-bot.line.me/my/"),
        delivery_config=app_config.delivery,
    )
    return NotifyPipeline(app_config, env_config, normalizer, worker)


class TestNotifyPipeline:
    def test_refresh_notify_deliver(self, pipeline, channel):
        with get_session() as session:
            _add(SqlSubscriptionStore(session), "taipei", {"citys": ["臺北市"]})

        assert not pipeline.refresh_listings().had_errors
        cycle = pipeline.run_notify_cycle()
        delivery = pipeline.handle_delivery_batch()

        assert cycle.jobs_enqueued == 1
        assert delivery.count(DeliveryStatus.DELIVERED) == 1
        messages = channel.messages_for("token-taipei")
        assert len(messages) == 2
        assert "以上為全部" in messages[1]

    def test_refresh_failure_is_reported(self, pipeline):
        pipeline.normalizer.fetch_all.side_effect = FeedHTTPError(
            "HTTP 503", status_code=503, url="http://feed"
        )

        result = pipeline.refresh_listings()

        assert result.had_errors
        assert "HTTP 503" in result.error_message

    def test_notify_without_snapshot_aborts(self, pipeline):
        result = pipeline.run_notify_cycle()

        assert result.had_errors
        with get_session() as session:
            assert SqlSnapshotStore(session).get(LEDGER_KEY) is None

    def test_corrupt_ledger_aborts(self, pipeline):
        pipeline.refresh_listings()
        with get_session() as session:
            SqlSnapshotStore(session).put(LEDGER_KEY, b"garbage")

        result = pipeline.run_notify_cycle()

        assert result.had_errors
        with get_session() as session:
            assert SqlDeliveryQueue(session).pending_count() == 0

    def test_concurrent_notify_cycle_is_skipped(self, pipeline):
        pipeline._notify_lock.acquire()
        try:
            result = pipeline.run_notify_cycle()
        finally:
            pipeline._notify_lock.release()

        assert result.skipped

    def test_lock_released_after_failure(self, pipeline):
        pipeline.run_notify_cycle()
        assert pipeline._notify_lock.acquire(blocking=False)
        pipeline._notify_lock.release()

    def test_empty_queue(self, pipeline):
        result = pipeline.handle_delivery_batch()
        assert result.outcomes == []
        assert not result.skipped

    def test_subscribe_stores_and_confirms(self, pipeline, channel):
        subscription = pipeline.subscribe("token-new", FilterCondition(regions=["臺中市"]))

        assert channel.messages_for("token-new")[0].startswith("訂閱事求人職缺成功")
        with get_session() as session:
            record = SqlSubscriptionStore(session).get(subscription.id)
        assert json.loads(record.condition_json) == {"citys": ["臺中市"]}

    def test_storage_failure_is_isolated_to_its_message(self, pipeline, monkeypatch):
        with get_session() as session:
            subscriptions = SqlSubscriptionStore(session)
            _add(subscriptions, "taipei", {"citys": ["臺北市"]})
            _add(subscriptions, "kaohsiung", {"citys": ["高雄市"]})
        pipeline.refresh_listings()
        pipeline.run_notify_cycle()

        original_put = SqlSnapshotStore.put

        def failing_put(self, key, value, ttl_seconds=None):
            if key.startswith("view:") and b'"id":"1"' in value:
                raise PersistenceError("disk I/O error")
            return original_put(self, key, value, ttl_seconds)

        def failing_retry(self, message, delay_seconds, error=None):
            raise PersistenceError("session needs rollback")

        monkeypatch.setattr(SqlSnapshotStore, "put", failing_put)
        monkeypatch.setattr(SqlDeliveryQueue, "retry", failing_retry)

        result = pipeline.handle_delivery_batch()

        assert result.had_errors
        assert len(result.errors) == 1
        assert [o.subscription_id for o in result.outcomes] == ["kaohsiung"]
        assert result.count(DeliveryStatus.DELIVERED) == 1
        with get_session() as session:
            # The delivered job's ack survived; the failed one is still leased.
            assert SqlDeliveryQueue(session).pending_count() == 1

    def test_lease_failure_is_reported(self, pipeline, monkeypatch):
        def failing_receive(self, max_messages):
            raise PersistenceError("database is locked")

        monkeypatch.setattr(SqlDeliveryQueue, "receive", failing_receive)

        result = pipeline.handle_delivery_batch()

        assert result.had_errors
        assert result.outcomes == []
        assert pipeline._delivery_lock.acquire(blocking=False)
        pipeline._delivery_lock.release()

    def test_query_listings(self, pipeline):
        pipeline.refresh_listings()
        assert [l.id for l in pipeline.query_listings(FilterCondition(regions=["高雄市"]))] == ["2"]
