"""Tests for data models."""

import pytest
from pydantic import ValidationError

from photo_judge.models.batch import BatchResult, FailedPhoto
from photo_judge.models.checkpoint import (
    Checkpoint,
    CheckpointProgress,
    migrate_checkpoint_data,
)
from photo_judge.models.config import (
    DEFAULT_CRITERIA,
    BatchSettings,
    CompetitionConfig,
    ScorerSettings,
)
from photo_judge.models.errors import ErrorType
from photo_judge.models.scoring import CriterionScore, PhotoScoreRecord
from tests.helpers import make_scores


class TestBatchSettings:
    """Tests for batch setting clamping."""

    def test_defaults(self):
        settings = BatchSettings()
        assert settings.parallel == 3
        assert settings.checkpoint_interval == 10
        assert settings.photo_timeout_seconds == 60

    @pytest.mark.parametrize("requested,applied", [(0, 1), (51, 50), (25, 25)])
    def test_checkpoint_interval_clamped(self, requested, applied):
        settings = BatchSettings(checkpoint_interval=requested)
        assert settings.checkpoint_interval == applied

    @pytest.mark.parametrize("requested,applied", [(5, 30), (600, 300), (90, 90)])
    def test_photo_timeout_clamped(self, requested, applied):
        settings = BatchSettings(photo_timeout_seconds=requested)
        assert settings.photo_timeout_seconds == applied

    def test_parallel_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            BatchSettings(parallel=0)


class TestCompetitionConfig:
    """Tests for the open-call model."""

    def test_camel_case_input(self, open_call):
        config = CompetitionConfig.model_validate(open_call)
        assert config.past_winners == "Night scenes"
        assert [c.name for c in config.custom_criteria] == ["Impact", "Technique"]

    def test_duplicate_criteria_rejected(self, open_call):
        open_call["customCriteria"].append({"name": "impact", "weight": 10})
        with pytest.raises(ValidationError):
            CompetitionConfig.model_validate(open_call)

    def test_prompt_uses_default_criteria(self):
        prompt = CompetitionConfig(title="T", theme="Th").build_criteria_prompt()
        assert [c.name for c in prompt.criteria] == [c.name for c in DEFAULT_CRITERIA]

    def test_prompt_mentions_jury(self, open_call):
        prompt = CompetitionConfig.model_validate(open_call).build_criteria_prompt()
        assert "A. Jury" in prompt.evaluation_instructions
        assert "Night scenes" in prompt.evaluation_instructions


def test_scorer_settings_from_env(monkeypatch):
    """Test OLLAMA_* environment variables are honored."""
    monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
    monkeypatch.setenv("OLLAMA_MODEL", "llava:13b")
    settings = ScorerSettings.from_env()
    assert settings.host == "http://gpu-box:11434"
    assert settings.model == "llava:13b"


def test_criterion_score_range():
    """Test criterion scores are 1..10."""
    with pytest.raises(ValidationError):
        CriterionScore(score=0)
    with pytest.raises(ValidationError):
        CriterionScore(score=11)


def test_record_properties():
    """Test record exposes overall and per-criterion scores."""
    record = PhotoScoreRecord(filename="a.jpg", scores=make_scores(7.5, {"Impact": 8}))
    assert record.weighted_average == 7.5
    assert record.criterion_scores == {"Impact": 8}


def test_progress_count_is_derived():
    """Test count always equals the number of analyzed names."""
    progress = CheckpointProgress(analyzed_photo_names=["a.jpg", "b.jpg"])
    assert progress.count == 2
    progress.analyzed_photo_names.append("c.jpg")
    assert progress.count == 3
    assert progress.analyzed_set == {"a.jpg", "b.jpg", "c.jpg"}


def test_unknown_version_is_not_migrated():
    """Test migrations leave unknown versions untouched."""
    data = {"version": "9.9", "foo": "bar"}
    assert migrate_checkpoint_data(dict(data)) == data


def test_checkpoint_count_not_read_from_input(criteria_prompt):
    """Test a stale count in the file cannot override the names list."""
    checkpoint = Checkpoint.model_validate(
        {
            "projectDir": "/p",
            "configHash": "sha256:x",
            "criteriaPrompt": criteria_prompt.model_dump(by_alias=True),
            "batchMetadata": {"photoDirectory": "/p/photos"},
            "progress": {"analyzedPhotoNames": ["a.jpg"], "count": 99},
        }
    )
    assert checkpoint.progress.count == 1


def test_batch_result_reconciles():
    """Test records plus failures must cover all photos."""
    result = BatchResult(
        total_photos=2,
        records=[PhotoScoreRecord(filename="a.jpg", scores=make_scores(7.0))],
        failures=[
            FailedPhoto(
                filename="b.jpg", error_type=ErrorType.TIMEOUT, reason="timeout"
            )
        ],
    )
    assert result.processed == 1
    assert result.reconciled is True


def test_error_type_fatality():
    """Test only backend outages halt a batch."""
    assert ErrorType.BACKEND_UNREACHABLE.is_fatal is True
    assert all(
        not t.is_fatal for t in ErrorType if t is not ErrorType.BACKEND_UNREACHABLE
    )
