from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

_DEFAULT_PATH = Path(__file__).resolve().parents[3] / "config" / "scoring.yaml"
_REQUIRED_SECTIONS = ("answer", "classifier", "resume", "parsing")

_cache: dict[str, Any] | None = None


def scoring_config_path() -> Path:
    override = os.getenv("SCORING_CONFIG_PATH", "").strip()
    return Path(override) if override else _DEFAULT_PATH


def _validate(parsed: Any, path: Path) -> dict[str, Any]:
    if not isinstance(parsed, dict):
        raise RuntimeError(f"Invalid scoring config '{path}': expected a top-level mapping.")

    missing = [section for section in _REQUIRED_SECTIONS if not isinstance(parsed.get(section), dict)]
    if missing:
        raise RuntimeError(f"Invalid scoring config '{path}': missing sections {', '.join(missing)}.")

    weights = parsed["resume"].get("weights") or {}
    try:
        total = sum(int(value) for value in weights.values())
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"Invalid scoring config '{path}': resume.weights must be integers.") from exc
    if weights and total != 100:
        raise RuntimeError(f"Invalid scoring config '{path}': resume.weights sum to {total}, expected 100.")
    return parsed


def get_scoring_config() -> dict[str, Any]:
    """Rubric bands, model sampling settings, resume weights and caps; loaded once."""
    global _cache

    if _cache is not None:
        return _cache

    path = scoring_config_path()
    if not path.exists():
        raise RuntimeError(f"Scoring config not found at '{path}'. Expected file: config/scoring.yaml")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeError(f"Failed to read scoring config '{path}': {exc}") from exc

    try:
        parsed = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise RuntimeError(f"Invalid YAML in scoring config '{path}': {exc}") from exc

    _cache = _validate(parsed, path)
    return _cache


def reset_scoring_config() -> None:
    global _cache
    _cache = None


def get_scoring_value(path: str, default: Any = None) -> Any:
    """Nested value by dot path, e.g. 'resume.weights.skill_match'."""
    if not path:
        return default

    current: Any = get_scoring_config()
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def get_answer_bands() -> list[tuple[int, str]]:
    """(lower bound, label) pairs, highest band first."""
    bands = []
    for band in get_scoring_value("answer.bands", []) or []:
        if isinstance(band, dict) and "min" in band and "label" in band:
            bands.append((int(band["min"]), str(band["label"])))
    return sorted(bands, reverse=True)
