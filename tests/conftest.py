"""Shared fixtures: competition configs and on-disk photo projects."""

import json
from pathlib import Path
from typing import Optional

import pytest

from photo_judge.models.scoring import CriteriaPrompt, Criterion
from tests.helpers import write_photo


@pytest.fixture
def criteria_prompt():
    """Two-criterion prompt"""
    return CriteriaPrompt(
        title="Urban Light",
        theme="Light in the city",
        criteria=[
            Criterion(name="Impact", weight=60),
            Criterion(name="Technique", weight=40),
        ],
    )


@pytest.fixture
def open_call():
    """Raw open-call config as written by users"""
    return {
        "title": "Urban Light",
        "theme": "Light in the city",
        "jury": ["A. Jury"],
        "pastWinners": "Night scenes",
        "customCriteria": [
            {"name": "Impact", "description": "Emotional pull", "weight": 60},
            {"name": "Technique", "description": "Craft", "weight": 40},
        ],
    }


@pytest.fixture
def make_project(tmp_path, open_call):
    """Factory creating a project with N photos and an open-call.json."""

    def _make(count: int, name: str = "project", config: Optional[dict] = None) -> Path:
        project = tmp_path / name
        photos = project / "photos"
        photos.mkdir(parents=True, exist_ok=True)
        for i in range(1, count + 1):
            write_photo(photos / f"photo-{i:02d}.png")
        (project / "open-call.json").write_text(json.dumps(config or open_call))
        return project

    return _make
