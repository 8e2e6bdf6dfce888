"""
Unit tests for data models.
"""

import pytest

from photoclean.models import (
    AnalysisConfig,
    DuplicateGroup,
    ItemResult,
    MatchKind,
    RunPhase,
    RunSnapshot,
    RunStats,
    SkipReason,
)


class TestDuplicateGroup:
    """Test DuplicateGroup dataclass."""

    def test_create_group(self):
        group = DuplicateGroup(id=1, members=['/a.jpg', '/b.jpg'], kind=MatchKind.EXACT,
                               representative='/b.jpg', scores={'/a.jpg': 0.2, '/b.jpg': 0.6})
        assert group.member_count == 2
        assert group.duplicates == ['/a.jpg']
        assert group.is_exact
        assert group.score_of('/b.jpg') == 0.6

    def test_needs_two_members(self):
        with pytest.raises(ValueError):
            DuplicateGroup(id=1, members=['/a.jpg'])

    def test_representative_must_be_member(self):
        with pytest.raises(ValueError):
            DuplicateGroup(id=1, members=['/a.jpg', '/b.jpg'], representative='/c.jpg')

    def test_kind_from_string(self):
        group = DuplicateGroup(id=1, members=['/a.jpg', '/b.jpg'], kind='near')
        assert group.kind is MatchKind.NEAR
        assert not group.is_exact

    def test_to_dict(self):
        group = DuplicateGroup(id=3, members=['/x/a.jpg', '/x/b.jpg'], kind=MatchKind.NEAR,
                               representative='/x/a.jpg', scores={'/x/a.jpg': 0.5})
        data = group.to_dict()

        assert data['id'] == 3
        assert data['kind'] == 'near'
        assert data['member_count'] == 2
        assert data['representative'] == '/x/a.jpg'
        assert data['members'][0] == {
            'path': '/x/a.jpg', 'filename': 'a.jpg', 'score': 0.5, 'is_representative': True,
        }
        assert data['members'][1]['score'] is None

    def test_from_dict(self):
        original = DuplicateGroup(id=2, members=['/a.jpg', '/b.jpg', '/c.jpg'], kind=MatchKind.EXACT,
                                  representative='/c.jpg', scores={'/a.jpg': 0.1, '/c.jpg': 0.9})
        restored = DuplicateGroup.from_dict(original.to_dict())
        assert restored == original


class TestItemResult:
    """Test ItemResult dataclass."""

    def test_success(self):
        result = ItemResult.success('/a.jpg', 'abc')
        assert result.ok
        assert result.reason is None

    def test_skip(self):
        result = ItemResult.skip('/a.jpg', SkipReason.READ_FAILED, 'missing')
        assert not result.ok
        assert result.value is None
        assert result.detail == 'missing'


class TestAnalysisConfig:
    """Test AnalysisConfig dataclass."""

    def test_defaults(self):
        config = AnalysisConfig()
        assert config.distance_threshold == 0.30
        assert config.cancellation_check_interval == 10
        assert sum(config.stage_weights) == pytest.approx(1.0)

    @pytest.mark.parametrize('kwargs', [
        {'distance_threshold': 0},
        {'stage_concurrency': 0},
        {'cancellation_check_interval': 0},
        {'stage_weights': (0.5, 0.5)},
        {'stage_weights': (0.5, 0.5, 0.5)},
        {'stage_weights': (1.2, -0.1, -0.1)},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            AnalysisConfig(**kwargs)

    def test_from_user_config_overrides(self, isolated_user_config, monkeypatch):
        monkeypatch.setenv('PHOTOCLEAN_THRESHOLD', '0.2')
        monkeypatch.setenv('PHOTOCLEAN_WORKERS', '3')

        config = AnalysisConfig.from_user_config(stage_concurrency=5, cancellation_check_interval=None)

        assert config.distance_threshold == 0.2
        assert config.stage_concurrency == 5
        assert config.cancellation_check_interval == 10

    def test_to_dict(self):
        data = AnalysisConfig(distance_threshold=0.1, stage_concurrency=2).to_dict()
        assert data['distance_threshold'] == 0.1
        assert data['stage_concurrency'] == 2
        assert len(data['stage_weights']) == 3


class TestRunPhase:
    """Test RunPhase enum."""

    def test_active_phases(self):
        assert RunPhase.HASHING.is_active
        assert RunPhase.SCORING.is_active
        assert not RunPhase.NOT_STARTED.is_active
        assert not RunPhase.COMPLETED.is_active

    def test_terminal_phases(self):
        assert RunPhase.COMPLETED.is_terminal
        assert RunPhase.CANCELLED.is_terminal
        assert RunPhase.FAILED.is_terminal
        assert not RunPhase.CLUSTERING.is_terminal


class TestRunSnapshot:
    """Test RunSnapshot dataclass."""

    def test_status_dict(self):
        group = DuplicateGroup(id=1, members=['/a.jpg', '/b.jpg'], representative='/a.jpg')
        snapshot = RunSnapshot(run_id='r1', phase=RunPhase.COMPLETED, progress=1.0,
                               message='done', groups=(group,), stats=RunStats(submitted=2))
        status = snapshot.to_status_dict()

        assert status['run_id'] == 'r1'
        assert status['phase'] == 'completed'
        assert status['is_active'] is False
        assert status['group_count'] == 1
        assert status['stats']['submitted'] == 2
        assert snapshot.has_results

    def test_groups_dict(self):
        snapshot = RunSnapshot(run_id='r1', phase=RunPhase.HASHING, progress=0.1)
        assert snapshot.to_groups_dict() == {'run_id': 'r1', 'phase': 'hashing', 'groups': []}
        assert not snapshot.has_results
