"""
Unit tests for the near-duplicate stage.
"""

import pytest

from photoclean.exceptions import AnalysisCancelled
from photoclean.models import MatchKind
from photoclean.pipeline.near import cluster_star, detect_near, near_duplicate_groups
from photoclean.pipeline.workers import CancellationToken


def scalar_distance(a, b):
    return abs(a - b)


class TestClusterStar:
    """Test cluster_star function."""

    def test_basic_grouping(self):
        entries = [('a', 0.0), ('b', 0.2), ('c', 0.4)]
        groups = cluster_star(entries, scalar_distance, 0.3)
        assert groups == [['a', 'b']]

    def test_membership_is_relative_to_anchor(self):
        """Test that members only need to be close to the anchor, not each other."""
        entries = [('anchor', 0.0), ('left', -0.25), ('right', 0.25)]
        groups = cluster_star(entries, scalar_distance, 0.3)

        assert groups == [['anchor', 'left', 'right']]
        # The two non-anchor members are further apart than the threshold
        assert scalar_distance(-0.25, 0.25) > 0.3

    def test_not_transitive(self):
        """Test that a chain a~b~c does not pull c into a's group."""
        entries = [('a', 0.0), ('b', 0.2), ('c', 0.4), ('d', 0.55)]
        groups = cluster_star(entries, scalar_distance, 0.3)
        assert groups == [['a', 'b'], ['c', 'd']]

    def test_threshold_is_strict(self):
        entries = [('a', 0.0), ('b', 0.25)]
        assert cluster_star(entries, scalar_distance, 0.25) == []
        assert cluster_star(entries, scalar_distance, 0.2500001) == [['a', 'b']]

    def test_singletons_dropped(self):
        entries = [('a', 0.0), ('b', 1.0), ('c', 2.0)]
        assert cluster_star(entries, scalar_distance, 0.3) == []

    def test_deterministic(self):
        entries = [(f"img{i}", (i * 7919 % 101) / 100) for i in range(50)]
        first = cluster_star(entries, scalar_distance, 0.05)
        second = cluster_star(list(entries), scalar_distance, 0.05)
        assert first == second

    def test_each_ref_in_at_most_one_group(self):
        entries = [(f"img{i}", (i % 10) / 20) for i in range(40)]
        groups = cluster_star(entries, scalar_distance, 0.12)
        members = [ref for g in groups for ref in g]
        assert len(members) == len(set(members))

    def test_distance_failure_means_not_near(self):
        def flaky(a, b):
            if 'bad' in (a, b):
                raise ValueError("incomparable")
            return 0.0

        entries = [('a', 'ok'), ('b', 'bad'), ('c', 'ok')]
        assert cluster_star(entries, flaky, 0.3) == [['a', 'c']]

    def test_cancellation(self):
        token = CancellationToken()
        token.cancel()
        with pytest.raises(AnalysisCancelled):
            cluster_star([('a', 0.0), ('b', 0.1)], scalar_distance, 0.3, cancel_token=token)


class TestDetectNear:
    """Test detect_near function."""

    def test_groups_close_features(self, fake_media):
        media = fake_media({'a': '1', 'b': '2', 'c': '3'}, features={'a': 0.0, 'b': 0.1, 'c': 0.9})
        groups = detect_near(['a', 'b', 'c'], media.read_bytes, media.extract_feature, 0.3,
                             distance=scalar_distance)
        assert groups == [['a', 'b']]

    def test_failed_extraction_excluded(self, fake_media):
        """Test that images without a feature print are excluded from clustering."""
        media = fake_media({'a': '1', 'b': '2', 'c': '3'}, features={'a': 0.0, 'c': 0.1})
        skipped = []
        groups = detect_near(['a', 'b', 'c'], media.read_bytes, media.extract_feature, 0.3,
                             distance=scalar_distance, on_skip=skipped.append)

        assert groups == [['a', 'c']]
        assert [s.ref for s in skipped] == ['b']

    def test_too_few_prints(self, fake_media):
        media = fake_media({'a': '1', 'b': '2'}, features={'a': 0.0})
        assert detect_near(['a', 'b'], media.read_bytes, media.extract_feature, 0.3,
                           distance=scalar_distance) == []

    def test_empty_input(self, fake_media):
        media = fake_media({})
        assert detect_near([], media.read_bytes, media.extract_feature, 0.3) == []

    def test_progress_reported(self, fake_media):
        media = fake_media({'a': '1', 'b': '2'}, features={'a': 0.0, 'b': 0.1})
        calls = []
        detect_near(['a', 'b'], media.read_bytes, media.extract_feature, 0.3,
                    lambda done, total: calls.append((done, total)), distance=scalar_distance)
        assert calls == [(1, 2), (2, 2)]

    def test_near_duplicate_groups(self):
        candidates = near_duplicate_groups([['a', 'b'], ['c', 'd', 'e']])
        assert [c.members for c in candidates] == [('a', 'b'), ('c', 'd', 'e')]
        assert all(c.kind is MatchKind.NEAR for c in candidates)
