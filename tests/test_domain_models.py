"""Unit tests for domain models."""

import json

import pytest
from pydantic import ValidationError

from jobnotify.domain.models import (
    DeliveryJob,
    FilterCondition,
    Listing,
    RawListing,
    Subscription,
)
from tests.helpers import make_listing


class TestRawListing:
    def test_coerces_values_to_text(self):
        raw = RawListing(view_url=" https://x?work_id=1 ", rank_from=5, work_item=None)

        assert raw.view_url == "https://x?work_id=1"
        assert raw.rank_from == "5"
        assert raw.work_item == ""

    def test_requires_view_url(self):
        with pytest.raises(ValidationError):
            RawListing(view_url=None)

    def test_ignores_unknown_fields(self):
        raw = RawListing.model_validate({"view_url": "https://x?work_id=1", "extra": 1})
        assert not hasattr(raw, "extra")


class TestListing:
    def test_is_frozen(self):
        listing = make_listing()
        with pytest.raises(ValidationError):
            listing.title = "changed"

    def test_json_round_trip_keeps_derived_fields(self):
        listing = make_listing("9", region="臺南市", requires_accessibility_certificate=True)
        assert Listing.model_validate_json(listing.model_dump_json()) == listing


class TestFilterCondition:
    def test_accepts_stored_keys(self):
        condition = FilterCondition.model_validate(
            {"jobType": "委任", "citys": ["臺北市"], "isDisability": True, "sysnams": ["人事"]}
        )

        assert condition.job_type == "委任"
        assert condition.regions == ["臺北市"]
        assert condition.requires_accessibility is True
        assert condition.job_families == ["人事"]

    def test_accepts_field_names(self):
        assert FilterCondition(regions=["臺北市"]).regions == ["臺北市"]

    def test_blank_values_are_absent(self):
        condition = FilterCondition.model_validate(
            {"jobType": "  ", "citys": ["", " "], "sysnams": []}
        )
        assert condition.is_unconstrained()

    def test_false_accessibility_is_a_constraint(self):
        assert not FilterCondition(requires_accessibility=False).is_unconstrained()

    def test_to_storage_uses_stored_keys(self):
        condition = FilterCondition(regions=["臺北市"], requires_accessibility=False)
        assert condition.to_storage() == {"citys": ["臺北市"], "isDisability": False}

    def test_to_storage_of_empty_condition(self):
        assert FilterCondition().to_storage() == {}


class TestSubscriptionAndJob:
    def test_subscription_requires_credential(self):
        with pytest.raises(ValidationError):
            Subscription(id="s1", credential="")

    def test_delivery_job_requires_matches(self):
        with pytest.raises(ValidationError):
            DeliveryJob(
                subscription_id="s1",
                credential="token",
                condition=FilterCondition(),
                matched_listings=[],
            )

    def test_delivery_job_serializes(self):
        job = DeliveryJob(
            subscription_id="s1",
            credential="token",
            condition=FilterCondition(regions=["臺北市"]),
            matched_listings=[make_listing("1")],
            cycle_id="c1",
        )

        restored = DeliveryJob.model_validate_json(job.model_dump_json())

        assert restored == job
        assert json.loads(job.model_dump_json())["matched_listings"][0]["id"] == "1"
