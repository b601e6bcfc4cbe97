"""Tests for gengame.repository.JsonGameRepository."""

import typing
from unittest.mock import patch

import pytest

from gengame.ports import ArtifactValidator, Repository
from gengame.repository import LEADERBOARD_SIZE, JsonGameRepository, PersistedArtifact
from gengame.state import Verdict


@pytest.fixture
def repo(tmp_path):
    return JsonGameRepository(tmp_path / "games.json")


class TestSave:
    def test_save_assigns_id_and_zero_likes(self, repo, good_artifact):
        saved = repo.save(good_artifact)
        assert len(saved.id) == 9
        assert saved.likes == 0
        assert saved.artifact == good_artifact

    def test_saved_games_survive_reload(self, repo, good_artifact, tmp_path):
        saved = repo.save(good_artifact)
        reloaded = JsonGameRepository(tmp_path / "games.json").get_all()
        assert reloaded == [saved]

    def test_saving_persisted_game_counts_as_like(self, repo, good_artifact):
        saved = repo.save(good_artifact)
        again = repo.save(saved)
        assert again.id == saved.id
        assert again.likes == 1
        assert len(repo.get_all()) == 1

    def test_unknown_persisted_game_saved_as_new(self, repo, good_artifact):
        stray = PersistedArtifact(id="abc", likes=5, **good_artifact.to_dict())
        saved = repo.save(stray)
        assert saved.id != "abc"
        assert saved.likes == 0


class TestGetAll:
    def test_missing_file_is_empty(self, repo):
        assert repo.get_all() == []

    def test_corrupt_file_is_empty(self, repo):
        repo.path.write_text("{not json", encoding="utf-8")
        assert repo.get_all() == []

    def test_ordered_by_likes_then_newest(self, repo, good_artifact, nan_artifact, crashing_artifact):
        with patch("gengame.repository.time.time", side_effect=[1.0, 2.0, 3.0]):
            old = repo.save(good_artifact)
            mid = repo.save(nan_artifact)
            new = repo.save(crashing_artifact)
        repo.like(old.id)

        assert [g.id for g in repo.get_all()] == [old.id, new.id, mid.id]

    def test_capped_at_leaderboard_size(self, repo, good_artifact):
        for _ in range(LEADERBOARD_SIZE + 3):
            repo.save(good_artifact)
        assert len(repo.get_all()) == LEADERBOARD_SIZE


class TestLike:
    def test_like_increments(self, repo, good_artifact):
        saved = repo.save(good_artifact)
        repo.like(saved.id)
        assert repo.like(saved.id).likes == 2

    def test_unknown_id_raises(self, repo):
        with pytest.raises(KeyError):
            repo.like("missing")


class TestPorts:
    @pytest.mark.parametrize("method", ["save", "get_all", "like"])
    def test_repository_port_matches_json_repository(self, method):
        port_hints = typing.get_type_hints(getattr(Repository, method))
        impl_hints = typing.get_type_hints(getattr(JsonGameRepository, method))
        assert port_hints["return"] == impl_hints["return"]

    def test_validator_port_returns_verdict(self):
        assert typing.get_type_hints(ArtifactValidator.validate)["return"] is Verdict
