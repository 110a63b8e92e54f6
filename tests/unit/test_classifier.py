"""
Unit tests for crowd level classification.
"""

import pytest

from coffeeworld.crowd.classifier import CrowdLevel, classify


class TestClassify:
    """Tests for the count -> crowd level mapping."""

    @pytest.mark.parametrize(
        "count,expected",
        [
            (0, CrowdLevel.LOW),
            (2, CrowdLevel.LOW),
            (3, CrowdLevel.MODERATE),
            (5, CrowdLevel.MODERATE),
            (6, CrowdLevel.HIGH),
            (10, CrowdLevel.HIGH),
            (11, CrowdLevel.VERY_HIGH),
            (500, CrowdLevel.VERY_HIGH),
        ],
    )
    def test_bucket_boundaries(self, count, expected):
        assert classify(count) == expected

    def test_monotonic(self):
        """More people never means a calmer shop."""
        ranks = [classify(n).rank for n in range(50)]
        assert ranks == sorted(ranks)

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError):
            classify(-1)

    def test_wire_values(self):
        assert CrowdLevel.VERY_HIGH.value == "Very High"
        assert [level.value for level in CrowdLevel] == ["Low", "Moderate", "High", "Very High"]
