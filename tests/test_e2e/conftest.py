"""Fixtures for E2E pipeline tests."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

REPO_ROOT = Path(__file__).resolve().parents[2]


@pytest.fixture
def pipeline_config(data_root: Path, sample_frames_dir: Path) -> Path:
    """
    Copy of configs/pipeline.yaml pointed at a temporary data root.

    Step config paths are made absolute so the test does not depend on the
    working directory.
    """
    with open(REPO_ROOT / "configs" / "pipeline.yaml", encoding="utf-8") as f:
        raw = yaml.safe_load(f)

    raw["data_root"] = str(data_root)
    for step in raw["steps"]:
        step["config_file"] = str(REPO_ROOT / step["config_file"])
        if "frames_dir" in step.get("inputs", {}):
            step["inputs"]["frames_dir"] = str(sample_frames_dir)

    config_path = data_root / "pipeline.yaml"
    with open(config_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(raw, f)
    return config_path
