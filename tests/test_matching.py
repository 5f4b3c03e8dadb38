"""Unit tests for the condition matcher.

Covers each constraint in isolation, the empty condition, unknown regions,
first-failure reporting and order preservation in filter().
"""

import pytest

from jobnotify.domain.models import UNKNOWN_REGION, FilterCondition
from jobnotify.matching import (
    CONSTRAINT_ACCESSIBILITY,
    CONSTRAINT_JOB_FAMILY,
    CONSTRAINT_JOB_TYPE,
    CONSTRAINT_REGION,
    ConditionMatcher,
    matches,
)
from tests.helpers import make_listing


@pytest.fixture
def listing():
    return make_listing(
        "1",
        job_type="薦任",
        region="臺北市",
        requires_accessibility_certificate=False,
        sysnam="資訊處理",
    )


class TestEmptyCondition:
    def test_matches_everything(self, listing):
        assert matches(listing, FilterCondition())

    def test_matches_unknown_region(self):
        assert matches(make_listing(region=UNKNOWN_REGION), FilterCondition())

    def test_empty_values_are_unconstrained(self, listing):
        condition = FilterCondition(jobType="", citys=[], sysnams=[])
        assert condition.is_unconstrained()
        assert matches(listing, condition)


class TestJobType:
    def test_substring_match(self, listing):
        assert matches(listing, FilterCondition(job_type="薦"))

    def test_mismatch(self, listing):
        assert not matches(listing, FilterCondition(job_type="委任"))


class TestRegion:
    def test_region_in_allow_list(self, listing):
        assert matches(listing, FilterCondition(regions=["高雄市", "臺北市"]))

    def test_region_not_in_allow_list(self, listing):
        assert not matches(listing, FilterCondition(regions=["高雄市"]))

    def test_region_must_match_exactly(self, listing):
        assert not matches(listing, FilterCondition(regions=["臺北"]))

    def test_unknown_region_never_satisfies_allow_list(self):
        listing = make_listing(region=UNKNOWN_REGION)
        assert not matches(listing, FilterCondition(regions=[UNKNOWN_REGION]))


class TestAccessibility:
    def test_only_certificate_listings(self):
        required = make_listing("1", requires_accessibility_certificate=True)
        open_to_all = make_listing("2", requires_accessibility_certificate=False)
        condition = FilterCondition(requires_accessibility=True)

        assert matches(required, condition)
        assert not matches(open_to_all, condition)

    def test_exclude_certificate_listings(self):
        required = make_listing("1", requires_accessibility_certificate=True)
        assert not matches(required, FilterCondition(requires_accessibility=False))


class TestJobFamilies:
    def test_any_family_substring_matches(self, listing):
        assert matches(listing, FilterCondition(job_families=["土木", "資訊"]))

    def test_no_family_matches(self, listing):
        assert not matches(listing, FilterCondition(job_families=["土木", "人事"]))


class TestConditionMatcher:
    def test_all_constraints_must_pass(self, listing):
        condition = FilterCondition(
            job_type="薦任",
            regions=["臺北市"],
            requires_accessibility=False,
            job_families=["資訊"],
        )
        result = ConditionMatcher(condition).evaluate(listing)

        assert result.is_match
        assert result.failed_constraint is None
        assert result.listing_id == "1"

    @pytest.mark.parametrize(
        "condition,expected",
        [
            (FilterCondition(job_type="簡任", regions=["高雄市"]), CONSTRAINT_JOB_TYPE),
            (FilterCondition(regions=["高雄市"], job_families=["土木"]), CONSTRAINT_REGION),
            (FilterCondition(requires_accessibility=True), CONSTRAINT_ACCESSIBILITY),
            (FilterCondition(job_families=["人事"]), CONSTRAINT_JOB_FAMILY),
        ],
    )
    def test_reports_first_failed_constraint(self, listing, condition, expected):
        result = ConditionMatcher(condition).evaluate(listing)

        assert not result.is_match
        assert result.failed_constraint == expected

    def test_filter_preserves_order(self):
        listings = [
            make_listing("3", region="臺北市"),
            make_listing("1", region="高雄市"),
            make_listing("2", region="臺北市"),
        ]
        matched = ConditionMatcher(FilterCondition(regions=["臺北市"])).filter(listings)

        assert [l.id for l in matched] == ["3", "2"]

    def test_filter_is_deterministic(self, listing):
        matcher = ConditionMatcher(FilterCondition(regions=["臺北市"]))
        assert matcher.filter([listing]) == matcher.filter([listing])
