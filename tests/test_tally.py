import itertools
import logging
import random

import pytest

from qtally.tally import (
    ALL_ONES,
    ALL_ZEROS,
    OTHER,
    PERCENT_SENTINEL,
    AggregationResult,
    EmptyInput,
    MalformedOutcome,
    aggregate,
    bucket_labels,
    classify,
    format_outcomes,
    format_report,
    normalize,
)


def test_normalize_hex_and_bits_agree():
    for n in (1, 2, 3, 5):
        for v in range(1 << n):
            assert normalize(hex(v), n) == v
            assert normalize(format(v, f"0{n}b"), n) == v


def test_normalize_accepts_short_bitstrings_and_whitespace():
    assert normalize("1", 3) == 1
    assert normalize(" 0x3\n", 2) == 3
    assert normalize("0X1f", 5) == 31
    assert normalize("0b101", 3) == 5


@pytest.mark.parametrize(
    "token",
    ["0xg", "", "12", "abc", "0x", "1 0", "-1", "0x_3", "0b1_1", "+0x1", "-0x0", "0x\N{FULLWIDTH DIGIT THREE}", "0o8", "1_0"],
)
def test_normalize_rejects_garbage(token):
    with pytest.raises(MalformedOutcome):
        normalize(token, 2)


def test_normalize_rejects_out_of_range():
    with pytest.raises(MalformedOutcome):
        normalize("0x4", 2)
    with pytest.raises(MalformedOutcome):
        normalize("111", 2)
    with pytest.raises(MalformedOutcome):
        normalize("-0x1", 2)


def test_normalize_rejects_non_string():
    with pytest.raises(MalformedOutcome):
        normalize(None, 2)


def test_malformed_outcome_is_value_error():
    with pytest.raises(ValueError):
        normalize("0xg", 2)


def test_classify_bell_patterns():
    assert [classify(v, 2) for v in range(4)] == ["00", "01", "10", "11"]
    with pytest.raises(MalformedOutcome):
        classify(4, 2)


def test_classify_ghz_buckets():
    assert classify(0, 3) == ALL_ZEROS
    assert classify(7, 3) == ALL_ONES
    assert classify(2, 3) == OTHER
    assert classify(1, 1) == ALL_ONES
    with pytest.raises(MalformedOutcome):
        classify(8, 3)


def test_qubit_count_must_be_positive():
    with pytest.raises(ValueError):
        bucket_labels(0)
    with pytest.raises(ValueError):
        aggregate(["0"], 0)


def test_bell_example():
    result = aggregate(["0x0", "0x0", "0x3", "0x3", "0x1"], 2)
    assert result.counts == {"00": 2, "01": 1, "10": 0, "11": 2}
    assert result.denominator == 5
    assert format_report(result) == [
        "00: 2 (40.0%)",
        "01: 1 (20.0%)",
        "10: 0 (0.0%)",
        "11: 2 (40.0%)",
    ]


def test_ghz_example():
    result = aggregate(["000", "111", "111", "010"], 3)
    assert result.counts == {ALL_ZEROS: 1, ALL_ONES: 2, OTHER: 1}
    assert result.denominator == 4
    assert format_report(result) == [
        "all zeros: 1 (25.0%)",
        "all ones: 2 (50.0%)",
        "other: 1 (25.0%)",
    ]
    assert result.outcomes == {"000": 1, "010": 1, "111": 2}


def test_mixed_encodings_land_in_same_bucket():
    result = aggregate(["0x7", "111", "0b111"], 3)
    assert result.counts[ALL_ONES] == 3


def test_malformed_token_is_skipped_and_counted(caplog):
    with caplog.at_level(logging.WARNING, logger="tally"):
        result = aggregate(["0x0", "0xg"], 2)
    assert result.denominator == 1
    assert result.malformed == 1
    assert result.total_tokens == 2
    assert result.counts["00"] == 1
    assert any(r.getMessage() == "outcomes_malformed" for r in caplog.records)
    assert format_report(result)[-1] == "warning: skipped 1 malformed of 2 shots"


def test_order_invariance():
    tokens = ["0x0", "0x3", "10", "0xg", "0x1", "11", "00"]
    expected = aggregate(tokens, 2)
    for perm in itertools.permutations(tokens):
        assert aggregate(list(perm), 2) == expected


def test_counts_sum_to_denominator():
    rng = random.Random(7)
    alphabet = ["0x0", "0x7", "0x5", "101", "111", "000", "0xz", "1111", "x"]
    tokens = [rng.choice(alphabet) for _ in range(500)]
    result = aggregate(tokens, 3)
    assert sum(result.counts.values()) == result.denominator
    assert sum(result.outcomes.values()) == result.denominator
    assert result.denominator + result.malformed == len(tokens)


def test_aggregate_consumes_generator_once():
    result = aggregate((t for t in ["0x0", "0x3"]), 2)
    assert result.denominator == 2


def test_empty_input_uses_sentinel():
    result = aggregate([], 3)
    assert result.denominator == 0
    assert result.empty_reason == "no shots sampled"
    lines = format_report(result)
    assert lines[:3] == [
        f"all zeros: 0 ({PERCENT_SENTINEL})",
        f"all ones: 0 ({PERCENT_SENTINEL})",
        f"other: 0 ({PERCENT_SENTINEL})",
    ]
    assert lines[-1] == "warning: no shots sampled"
    assert format_outcomes(result) == []


def test_all_malformed_is_distinguished_from_no_shots():
    result = aggregate(["0xg", "zz"], 2)
    assert result.empty_reason == "all 2 shots malformed"
    assert all(PERCENT_SENTINEL in line for line in format_report(result)[:4])
    with pytest.raises(EmptyInput) as excinfo:
        result.require_shots()
    assert excinfo.value.reason == "all 2 shots malformed"


def test_require_shots_returns_result():
    result = aggregate(["0x1"], 2)
    assert result.require_shots() is result


def test_threshold_hides_small_buckets_only_in_report():
    tokens = ["000"] * 60 + ["111"] * 40
    result = aggregate(tokens, 3)
    assert format_report(result, threshold=1.0) == [
        "all zeros: 60 (60.0%)",
        "all ones: 40 (40.0%)",
    ]
    assert result.counts[OTHER] == 0


def test_threshold_boundary_is_inclusive():
    tokens = ["000"] * 99 + ["010"]
    result = aggregate(tokens, 3)
    lines = format_report(result, threshold=1.0)
    assert not any(line.startswith("other") for line in lines)
    assert result.counts[OTHER] == 1
    assert result.outcomes["010"] == 1


def test_threshold_ignored_for_bell():
    result = aggregate(["0x0"] * 10, 2)
    assert len(format_report(result, threshold=50.0)) == 4


def test_format_outcomes_ranks_above_threshold():
    tokens = ["0000"] * 50 + ["1111"] * 45 + ["0100"] * 4 + ["0010"]
    result = aggregate(tokens, 4)
    assert format_outcomes(result, threshold=1.0) == [
        "|0000⟩: 50 (50.0%)",
        "|1111⟩: 45 (45.0%)",
        "|0100⟩: 4 (4.0%)",
    ]


def test_result_roundtrips_through_json():
    result = aggregate(["0x0", "0x3"], 2)
    restored = AggregationResult.model_validate_json(result.model_dump_json())
    assert restored == result
    assert list(restored.counts) == ["00", "01", "10", "11"]
