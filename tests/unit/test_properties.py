"""
Property-based tests for timeline invariants using Hypothesis.
"""
from datetime import date

from hypothesis import assume, given, settings
from hypothesis import strategies as st

from apps.worker.pipeline import ClaimsTimelineParser
from packages.shared.errors import ParseFailure
from packages.shared.models import ParserConfig, SortDirection, StrategyTier, SUPPORTED_DATE_FORMATS
from packages.shared.models.enums import CalcOperation, CalcUnit
from packages.shared.utils.dates import format_date, parse_date_string, shift_date

dates = st.dates(min_value=date(1990, 1, 1), max_value=date(2035, 12, 31))

valid_rx = st.fixed_dictionaries({
    "dos": dates.map(lambda d: d.isoformat()),
    "dayssupply": st.integers(min_value=0, max_value=365),
})
broken_rx = st.fixed_dictionaries({"dos": st.sampled_from(["xyz", "", "??", "13/45/2024"])})
rx_records = st.lists(st.one_of(valid_rx, broken_rx), min_size=1, max_size=25)

json_keys = st.one_of(
    st.text(max_size=8),
    st.sampled_from([".", "a.b", "claims.v2", "[0]", "x[1]", "x]", "[", " ", "  ", "\t", "a. .b", "rxTba"]),
)
json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(max_size=12) | dates.map(lambda d: d.isoformat()),
    lambda children: st.lists(children, max_size=4) | st.dictionaries(json_keys, children, max_size=4),
    max_leaves=20,
)


@given(dates, st.sampled_from(SUPPORTED_DATE_FORMATS))
def test_format_then_parse_returns_same_date(value, fmt):
    assert parse_date_string(format_date(value, fmt), fmt) == value


@given(dates, st.integers(min_value=0, max_value=3650), st.sampled_from([CalcUnit.DAYS, CalcUnit.WEEKS]))
def test_shift_add_then_subtract_is_identity(base, amount, unit):
    forward = shift_date(base, CalcOperation.ADD, amount, unit)
    assert shift_date(forward, CalcOperation.SUBTRACT, amount, unit) == base


@settings(max_examples=50, deadline=None)
@given(rx_records)
def test_fixed_tier_timeline_invariants(records):
    valid = [r for r in records if parse_date_string(r["dos"]) is not None]
    assume(valid)
    result = ClaimsTimelineParser().parse_document({"rxTba": records, "rxHistory": list(reversed(valid))})

    assert result.metadata.total_claims == len(result.claims) == 2 * len(valid)
    assert len(set(result.metadata.claim_types)) == len(result.metadata.claim_types)
    for claim in result.claims:
        assert claim.start_date <= claim.end_date
    assert result.date_range.start == min(c.start_date for c in result.claims)
    assert result.date_range.end == max(c.end_date for c in result.claims)
    starts = [c.start_date for c in result.claims]
    assert starts == sorted(starts)


@settings(max_examples=30, deadline=None)
@given(st.lists(valid_rx, min_size=1, max_size=20))
def test_newest_first_is_non_increasing(records):
    parser = ClaimsTimelineParser(ParserConfig(sort_direction=SortDirection.NEWEST_FIRST))
    starts = [c.start_date for c in parser.parse_document({"rxTba": records}).claims]
    assert starts == sorted(starts, reverse=True)


@settings(max_examples=100, deadline=None)
@given(json_values)
def test_classify_never_raises(document):
    assert ClaimsTimelineParser().classify(document) in set(StrategyTier)


@settings(max_examples=100, deadline=None)
@given(json_values)
def test_parse_document_returns_or_raises_parse_failure(document):
    try:
        result = ClaimsTimelineParser().parse_document(document)
    except ParseFailure:
        return
    assert result.metadata.total_claims == len(result.claims)
