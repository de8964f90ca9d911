"""Unit tests for checkpoint service"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from photo_judge.models.checkpoint import (
    CHECKPOINT_FILENAME,
    CheckpointConfig,
    CheckpointStatus,
)
from photo_judge.models.config import CompetitionConfig
from photo_judge.services.checkpoint_service import CheckpointService
from tests.helpers import make_scores


@pytest.fixture
def checkpoint_service():
    """Checkpoint service with default config"""
    return CheckpointService(CheckpointConfig(checkpoint_interval=5))


@pytest.fixture
def competition(open_call):
    return CompetitionConfig.model_validate(open_call)


@pytest.fixture
def checkpoint(checkpoint_service, tmp_path, competition):
    """Fresh checkpoint for a 10-photo batch"""
    return checkpoint_service.initialize(
        tmp_path, competition, competition.build_criteria_prompt(), total_photos=10
    )


def test_initialize_freezes_prompt_and_hash(checkpoint, competition, tmp_path):
    """Test new checkpoint carries prompt, hash and empty progress"""
    assert checkpoint.version == "2.0"
    assert checkpoint.config_hash.startswith("sha256:")
    assert checkpoint.criteria_prompt.title == competition.title
    assert checkpoint.progress.count == 0
    assert checkpoint.progress.status == CheckpointStatus.IN_PROGRESS
    assert checkpoint.batch_metadata.total_photos_in_batch == 10
    assert checkpoint.batch_metadata.photo_directory == str(tmp_path / "photos")


def test_save_and_load_round_trip(checkpoint_service, checkpoint, tmp_path):
    """Test saving and loading checkpoint"""
    updated = checkpoint_service.update(
        checkpoint,
        ["a.jpg", "b.jpg"],
        {"a.jpg": make_scores(8.0), "b.jpg": make_scores(6.0)},
    )
    assert checkpoint_service.save(updated, tmp_path) is True

    loaded = checkpoint_service.load(tmp_path)
    assert loaded is not None
    assert loaded.progress.analyzed_photo_names == ["a.jpg", "b.jpg"]
    assert loaded.progress.count == 2
    assert loaded.results.scores_by_photo["a.jpg"].overall_score == 8.0
    assert loaded.criteria_prompt == checkpoint.criteria_prompt


def test_saved_file_uses_camel_case_keys(checkpoint_service, checkpoint, tmp_path):
    """Test checkpoint JSON layout"""
    checkpoint_service.save(checkpoint, tmp_path)

    data = json.loads((tmp_path / CHECKPOINT_FILENAME).read_text())
    assert data["version"] == "2.0"
    assert "configHash" in data
    assert "analyzedPhotoNames" in data["progress"]
    assert data["progress"]["count"] == 0
    assert "scoresByPhoto" in data["results"]


def test_atomic_save_leaves_no_temp_file(checkpoint_service, checkpoint, tmp_path):
    """Test that save uses atomic write with temp file"""
    checkpoint_service.save(checkpoint, tmp_path)

    checkpoint_file = tmp_path / CHECKPOINT_FILENAME
    assert checkpoint_file.exists()
    assert not checkpoint_file.with_suffix(".tmp").exists()


def test_save_failure_returns_false(checkpoint_service, checkpoint, tmp_path):
    """Test write errors are reported, not raised"""
    missing_dir = tmp_path / "does-not-exist"
    assert checkpoint_service.save(checkpoint, missing_dir) is False
    assert not (missing_dir / CHECKPOINT_FILENAME).exists()


def test_load_missing_returns_none(checkpoint_service, tmp_path):
    """Test loading checkpoint that doesn't exist"""
    assert checkpoint_service.load(tmp_path) is None


def test_load_corrupted_returns_none(checkpoint_service, tmp_path):
    """Test loading corrupted checkpoint file"""
    (tmp_path / CHECKPOINT_FILENAME).write_text("{ invalid json")
    assert checkpoint_service.load(tmp_path) is None


def test_load_invalid_structure_returns_none(checkpoint_service, tmp_path):
    """Test a parsable file with the wrong shape is ignored"""
    (tmp_path / CHECKPOINT_FILENAME).write_text(json.dumps({"version": "2.0"}))
    assert checkpoint_service.load(tmp_path) is None


def test_load_migrates_legacy_layout(checkpoint_service, tmp_path, competition):
    """Test 1.0 checkpoints are upgraded on load"""
    legacy = {
        "version": "1.0",
        "projectDir": str(tmp_path),
        "configHash": "sha256:abc",
        "analysisPrompt": competition.build_criteria_prompt().model_dump(by_alias=True),
        "batchMetadata": {"parallelSetting": 2, "photoDirectory": "photos"},
        "progress": {
            "analyzedPhotos": ["a.jpg"],
            "photosCount": 1,
            "failedPhotos": ["bad.jpg"],
        },
        "results": {"scores": {"a.jpg": {"individual": {}, "summary": {}}}},
        "metadata": {"createdAt": "2026-01-01T00:00:00+00:00", "resumeCount": 3},
    }
    (tmp_path / CHECKPOINT_FILENAME).write_text(json.dumps(legacy))

    loaded = checkpoint_service.load(tmp_path)
    assert loaded is not None
    assert loaded.version == "2.0"
    assert loaded.progress.analyzed_photo_names == ["a.jpg"]
    assert loaded.progress.failed_photo_names == ["bad.jpg"]
    assert loaded.batch_metadata.parallel_setting == 2
    assert loaded.metadata.resume_count == 3
    assert "a.jpg" in loaded.results.scores_by_photo


@pytest.mark.parametrize(
    "payload",
    [
        {"version": []},
        {"version": {"major": 2}},
        {"version": "1.0", "results": {"scores": [1]}},
        {"version": "1.0", "progress": ["a.jpg"], "results": "none"},
        {"version": "1.0", "progress": {"analyzedPhotos": "a.jpg"}},
    ],
)
def test_load_wrong_shape_returns_none(checkpoint_service, tmp_path, payload):
    """Test valid JSON with unexpected types never raises"""
    (tmp_path / CHECKPOINT_FILENAME).write_text(json.dumps(payload))
    assert checkpoint_service.load(tmp_path) is None


def test_legacy_analyzed_photo_without_score_is_requeued(
    checkpoint_service, tmp_path, competition
):
    """Test a 1.0 photo whose score is unusable is not kept as analyzed"""
    legacy = {
        "version": "1.0",
        "projectDir": str(tmp_path),
        "configHash": "sha256:abc",
        "analysisPrompt": competition.build_criteria_prompt().model_dump(by_alias=True),
        "batchMetadata": {"photoDirectory": "photos"},
        "progress": {"analyzedPhotos": ["a.jpg", "b.jpg"]},
        "results": {
            "scores": {
                "a.jpg": {"individual": {}, "summary": {}},
                "b.jpg": {"summary": {"weightedAverage": 7}},
            }
        },
    }
    (tmp_path / CHECKPOINT_FILENAME).write_text(json.dumps(legacy))

    loaded = checkpoint_service.load(tmp_path)
    assert loaded is not None
    assert loaded.progress.analyzed_photo_names == ["a.jpg"]
    assert list(loaded.results.scores_by_photo) == ["a.jpg"]


class TestValidate:
    """Tests for checkpoint validation reasons"""

    def test_none_is_invalid(self, checkpoint_service, competition):
        result = checkpoint_service.validate(None, competition)
        assert result.valid is False
        assert result.reason == "No checkpoint found"

    def test_matching_config_is_valid(
        self, checkpoint_service, checkpoint, competition
    ):
        result = checkpoint_service.validate(checkpoint, competition)
        assert result.valid is True
        assert result.reason == "Checkpoint valid"

    def test_key_order_does_not_matter(self, checkpoint_service, checkpoint, open_call):
        reordered = dict(reversed(list(open_call.items())))
        result = checkpoint_service.validate(
            checkpoint, CompetitionConfig.model_validate(reordered)
        )
        assert result.valid is True

    def test_changed_config_is_invalid(self, checkpoint_service, checkpoint, open_call):
        changed = dict(open_call, theme="Light in the countryside")
        result = checkpoint_service.validate(
            checkpoint, CompetitionConfig.model_validate(changed)
        )
        assert result.valid is False
        assert "Config changed" in result.reason

    def test_version_mismatch(self, checkpoint_service, checkpoint, competition):
        data = checkpoint.model_dump(mode="json", by_alias=True)
        data["version"] = "3.0"
        result = checkpoint_service.validate(data, competition)
        assert result.valid is False
        assert result.reason == "Unsupported checkpoint version: 3.0"

    def test_missing_fields(self, checkpoint_service, checkpoint, competition):
        data = checkpoint.model_dump(mode="json", by_alias=True)
        del data["criteriaPrompt"]
        result = checkpoint_service.validate(data, competition)
        assert result.valid is False
        assert result.reason == "Missing required fields: criteriaPrompt"

    def test_too_old(self, checkpoint_service, checkpoint, competition):
        checkpoint.metadata.created_at = datetime.now(timezone.utc) - timedelta(days=8)
        result = checkpoint_service.validate(checkpoint, competition)
        assert result.valid is False
        assert result.reason == "Checkpoint too old (8 days)"

    def test_age_at_limit_is_valid(self, checkpoint_service, checkpoint, competition):
        checkpoint.metadata.created_at = datetime.now(timezone.utc) - timedelta(
            days=6, hours=23
        )
        assert checkpoint_service.validate(checkpoint, competition).valid is True


    def test_wrong_shape_dict_is_invalid(self, checkpoint_service, competition):
        result = checkpoint_service.validate(
            {"version": "1.0", "results": {"scores": [1]}}, competition
        )
        assert result.valid is False

    def test_unhashable_version_is_invalid(self, checkpoint_service, competition):
        result = checkpoint_service.validate({"version": []}, competition)
        assert result.valid is False
        assert result.reason.startswith("Unsupported checkpoint version")


class TestUpdate:
    """Tests for applying sub-batches"""

    def test_update_returns_copy(self, checkpoint_service, checkpoint):
        updated = checkpoint_service.update(
            checkpoint, ["a.jpg"], {"a.jpg": make_scores(7.0)}
        )
        assert updated.progress.count == 1
        assert checkpoint.progress.count == 0

    def test_duplicates_ignored(self, checkpoint_service, checkpoint):
        first = checkpoint_service.update(
            checkpoint, ["a.jpg"], {"a.jpg": make_scores(7.0)}
        )
        second = checkpoint_service.update(
            first, ["a.jpg", "b.jpg"], {"b.jpg": make_scores(6.0)}
        )
        assert second.progress.analyzed_photo_names == ["a.jpg", "b.jpg"]
        assert second.progress.count == len(second.progress.analyzed_photo_names)

    def test_empty_delta_keeps_progress(self, checkpoint_service, checkpoint):
        first = checkpoint_service.update(
            checkpoint, ["a.jpg"], {"a.jpg": make_scores(7.0)}
        )
        second = checkpoint_service.update(first, [], {})
        assert second.progress.analyzed_photo_names == ["a.jpg"]
        assert set(second.results.scores_by_photo) == {"a.jpg"}

    def test_success_clears_previous_failure(self, checkpoint_service, checkpoint):
        failed = checkpoint_service.update(checkpoint, [], {}, ["a.jpg"])
        assert failed.progress.failed_photo_names == ["a.jpg"]

        retried = checkpoint_service.update(
            failed, ["a.jpg"], {"a.jpg": make_scores(7.0)}
        )
        assert retried.progress.failed_photo_names == []
        assert retried.progress.analyzed_photo_names == ["a.jpg"]


def test_prune_missing_drops_names_and_scores(checkpoint_service, checkpoint):
    """Test photos removed from disk are silently dropped"""
    updated = checkpoint_service.update(
        checkpoint,
        ["a.jpg", "b.jpg", "c.jpg"],
        {n: make_scores(7.0) for n in ("a.jpg", "b.jpg", "c.jpg")},
    )

    dropped = checkpoint_service.prune_missing(updated, ["a.jpg", "c.jpg", "d.jpg"])

    assert dropped == ["b.jpg"]
    assert updated.progress.analyzed_photo_names == ["a.jpg", "c.jpg"]
    assert updated.progress.count == 2
    assert "b.jpg" not in updated.results.scores_by_photo


def test_requeue_unscored_drops_names_without_scores(checkpoint_service, checkpoint):
    """Test analyzed names lacking a stored score go back in the queue"""
    updated = checkpoint_service.update(
        checkpoint, ["a.jpg", "b.jpg"], {"a.jpg": make_scores(7.0)}
    )

    requeued = checkpoint_service.requeue_unscored(updated)

    assert requeued == ["b.jpg"]
    assert updated.progress.analyzed_photo_names == ["a.jpg"]
    assert checkpoint_service.requeue_unscored(updated) == []


def test_delete(checkpoint_service, checkpoint, tmp_path):
    """Test deleting checkpoint, twice"""
    checkpoint_service.save(checkpoint, tmp_path)
    assert checkpoint_service.delete(tmp_path) is True
    assert checkpoint_service.load(tmp_path) is None
    assert checkpoint_service.delete(tmp_path) is True


def test_disabled_service_skips_io(checkpoint, tmp_path):
    """Test disabled checkpointing neither writes nor reads"""
    service = CheckpointService(CheckpointConfig(enabled=False))
    assert service.save(checkpoint, tmp_path) is True
    assert not (tmp_path / CHECKPOINT_FILENAME).exists()
    assert service.load(tmp_path) is None
