# ABOUTME: Tests loading engine settings and keyword tables from YAML files.
# ABOUTME: Ensures relative data paths resolve and bad files fail loudly.

from pathlib import Path

import pytest

from src.prompt_coach.config import EngineConfig, load_engine_config
from src.prompt_coach.vocabulary import DEFAULT_VOCABULARY, load_vocabulary

CONFIG_DIR = Path(__file__).resolve().parents[1] / "configs"


def test_defaults_match_documented_constants():
    config = EngineConfig()
    assert config.mastery_threshold == 80
    assert config.smoothing_factor == 0.3
    assert config.trend_window == 10
    assert config.template_completion_stages == 3


def test_shipped_engine_config_resolves_catalogue_path():
    config = load_engine_config(CONFIG_DIR / "engine.yaml")
    assert config.achievements_path == CONFIG_DIR / "achievements.yaml"
    assert config.achievements_path.exists()
    assert config.vocabulary_path is None


def test_engine_config_overrides_and_paths(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text(
        "engine:\n  mastery_threshold: 70\n  smoothing_factor: 0.5\n  vocabulary_path: words.yaml\n",
        encoding="utf-8",
    )
    config = load_engine_config(path)
    assert config.mastery_threshold == 70
    assert config.smoothing_factor == 0.5
    assert config.vocabulary_path == tmp_path / "words.yaml"


def test_engine_config_rejects_unknown_keys(tmp_path):
    path = tmp_path / "engine.yaml"
    path.write_text("engine:\n  mastery_treshold: 70\n", encoding="utf-8")
    with pytest.raises(ValueError, match="mastery_treshold"):
        load_engine_config(path)


@pytest.mark.parametrize(
    "kwargs",
    [{"smoothing_factor": 0.0}, {"smoothing_factor": 1.5}, {"trend_window": 0}, {"initial_skill_level": 120}],
)
def test_engine_config_validates_values(kwargs):
    with pytest.raises(ValueError):
        EngineConfig(**kwargs)


def test_vocabulary_matching_is_case_insensitive():
    vocab = load_vocabulary(CONFIG_DIR / "vocabulary_en.yaml")
    assert vocab.count("subjects", "The KID and the Dog") == 1
    assert vocab.matches("colors", "Red and GREEN") == ("red", "green")


def test_partial_vocabulary_falls_back_to_base(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text("colors: [teal, ochre]\n", encoding="utf-8")
    vocab = load_vocabulary(path)
    assert vocab.colors == ("teal", "ochre")
    assert vocab.subjects == DEFAULT_VOCABULARY.subjects


def test_vocabulary_rejects_unknown_tables(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text("vocabulary:\n  colours: [red]\n", encoding="utf-8")
    with pytest.raises(ValueError, match="colours"):
        load_vocabulary(path)


def test_vocabulary_rejects_scalar_table(tmp_path):
    path = tmp_path / "words.yaml"
    path.write_text("colors: red\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_vocabulary(path)
