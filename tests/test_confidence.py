"""Tests for evidence scoring."""

from __future__ import annotations

import pytest

from readmeci import confidence as scoring


def _evidence(evidence_type: str, count: int = 1):
    return [scoring.make_evidence(evidence_type, f"{evidence_type}-{index}") for index in range(count)]


def test_empty_evidence_scores_zero() -> None:
    assert scoring.score([]) == 0.0


def test_single_weak_signal_is_lifted_to_floor() -> None:
    # keyword: 0.5 * (1 - 0.5) = 0.25, below the floor.
    assert scoring.score(_evidence(scoring.KEYWORD)) == pytest.approx(scoring.EVIDENCE_FLOOR)


def test_repeated_evidence_saturates() -> None:
    once = scoring.score(_evidence(scoring.SYNTAX, 1))
    twice = scoring.score(_evidence(scoring.SYNTAX, 2))
    many = scoring.score(_evidence(scoring.SYNTAX, 10))

    assert once < twice < many <= scoring.EVIDENCE_WEIGHTS[scoring.SYNTAX]
    assert twice == pytest.approx(0.9 * 0.75)


def test_diverse_evidence_gets_bounded_boost() -> None:
    items = (
        _evidence(scoring.SYNTAX, 2)
        + _evidence(scoring.CONFIG_FILE, 2)
        + _evidence(scoring.KEYWORD, 3)
        + _evidence(scoring.COMMAND)
    )

    value = scoring.score(items)

    assert 0.0 <= value <= 1.0
    assert value == pytest.approx(1.0)


def test_framework_evidence_boosts_score() -> None:
    base = _evidence(scoring.KEYWORD, 2)
    without = scoring.score(base + _evidence(scoring.TEXT_MENTION))
    with_framework = scoring.score(base + _evidence(scoring.FRAMEWORK))

    assert with_framework > without


def test_score_is_monotone_in_evidence() -> None:
    pool = (
        _evidence(scoring.KEYWORD, 3)
        + _evidence(scoring.EXTENSION, 2)
        + _evidence(scoring.FRAMEWORK)
        + _evidence(scoring.SYNTAX)
    )
    previous = 0.0
    for size in range(len(pool) + 1):
        current = scoring.score(pool[:size])
        assert current >= previous
        previous = current


def test_source_kinds_are_deduplicated_in_order() -> None:
    items = _evidence(scoring.SYNTAX) + _evidence(scoring.IMPORT) + _evidence(scoring.EXTENSION)

    assert scoring.source_kinds(items) == ["code-block", "file-reference"]


def test_weighted_average_and_clamp() -> None:
    assert scoring.weighted_average([(1.0, 0.3), (0.0, 0.7)]) == pytest.approx(0.3)
    assert scoring.weighted_average([]) == 0.0
    assert scoring.clamp(1.7) == 1.0
    assert scoring.clamp(-0.1) == 0.0
    assert scoring.clamp(float("nan")) == 0.0


def test_make_evidence_clamps_weight() -> None:
    item = scoring.make_evidence(scoring.CONTEXT, "Rust", weight=4.2)

    assert item.weight == 1.0
    assert item.location.start_line == 0
