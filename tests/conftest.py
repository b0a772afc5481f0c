"""
Pytest configuration and fixtures for skill engine tests.

Provides:
- an on-disk skill tree writer for loader tests
- a fresh cache per test and metric resets
"""

import textwrap
from pathlib import Path

import pytest

from skill_engine.cache import EngineCache
from skill_engine.observability import metrics
from skill_engine.skills.registry import SkillRegistry


@pytest.fixture
def project_root():
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def sample_skills_dir(project_root):
    """The sample skills shipped with the repository."""
    return project_root / "skills"


@pytest.fixture
def cache():
    """A cache private to the test."""
    return EngineCache()


@pytest.fixture(autouse=True)
def reset_metrics():
    metrics.reset_all()
    yield
    metrics.reset_all()


@pytest.fixture
def make_registry():
    """Build a registry from descriptor mappings."""
    def _make(*mappings):
        return SkillRegistry.load(list(mappings))
    return _make


@pytest.fixture
def write_skill(tmp_path):
    """Write a skill folder under tmp_path/skills and return its path."""
    root = tmp_path / "skills"
    root.mkdir(exist_ok=True)

    def _write(name, frontmatter_yaml, body="Core guidance.", files=None):
        skill_dir = root / name
        skill_dir.mkdir(parents=True, exist_ok=True)
        text = f"---\n{textwrap.dedent(frontmatter_yaml).strip()}\n---\n{body}\n"
        (skill_dir / "SKILL.md").write_text(text, encoding="utf-8")
        for rel, content in (files or {}).items():
            target = skill_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(textwrap.dedent(content), encoding="utf-8")
        return skill_dir

    _write.root = root
    return _write
