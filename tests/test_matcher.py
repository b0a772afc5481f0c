"""Tests for TriggerMatcher: categories, scoring and ordering."""

from skill_engine.matching.matcher import TriggerMatcher
from skill_engine.skills.models import Artifact, TriggerCategory

from tests.builders import skill_mapping


def _artifact(path="src/Service.java", content=""):
    return Artifact(path=path, content=content)


class TestCategories:
    def test_path_only_match(self, make_registry, cache):
        registry = make_registry(skill_mapping("java", paths=["**/*.java"]))
        results = TriggerMatcher(cache).match(_artifact(), registry.all())

        assert len(results) == 1
        assert results[0].score == 2
        assert results[0].path_matched
        assert results[0].fired[0].category == TriggerCategory.PATH
        assert results[0].fired[0].matched == "src/Service.java"

    def test_lexical_only_match(self, make_registry, cache):
        registry = make_registry(skill_mapping("locks", lexical=["synchronized"]))
        results = TriggerMatcher(cache).match(_artifact(content="synchronized void f()"), registry.all())

        assert [r.skill_id for r in results] == ["locks@1.0.0"]
        assert results[0].score == 1
        assert not results[0].path_matched

    def test_annotation_tokens_match_like_lexical(self, make_registry, cache):
        registry = make_registry(skill_mapping("tx", annotations=["@Transactional"]))
        results = TriggerMatcher(cache).match(
            _artifact(content="@Transactional\npublic void save() {}"), registry.all()
        )

        assert results[0].fired[0].category == TriggerCategory.ANNOTATION
        assert results[0].fired[0].matched == "@Transactional"

    def test_no_hit_excludes_skill(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("py", paths=["**/*.py"], lexical=["asyncio"]),
        )
        assert TriggerMatcher(cache).match(_artifact(content="class A {}"), registry.all()) == []

    def test_disabled_skill_never_matches(self, make_registry, cache):
        registry = make_registry(skill_mapping("java", paths=["**/*.java"], enabled=False))
        assert TriggerMatcher(cache).match(_artifact(), registry.all()) == []

    def test_case_insensitive_trigger_set(self, make_registry, cache):
        mapping = skill_mapping("locks", lexical=["MUTEX"])
        mapping["triggers"]["case_sensitive"] = False
        registry = make_registry(mapping)
        results = TriggerMatcher(cache).match(_artifact(content="a mutex guard"), registry.all())
        assert results[0].fired[0].matched == "mutex"


class TestScoring:
    def test_path_plus_tokens(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("tx", paths=["**/*.java"], lexical=["commit", "rollback"], annotations=["@Transactional"]),
        )
        content = "@Transactional void f() { commit(); rollback(); }"
        result = TriggerMatcher(cache).match(_artifact(content=content), registry.all())[0]

        assert result.score == 2 + 3
        assert result.categories() == {
            TriggerCategory.PATH,
            TriggerCategory.LEXICAL,
            TriggerCategory.ANNOTATION,
        }

    def test_token_score_capped_at_five(self, make_registry, cache):
        tokens = [f"tok{i}" for i in range(8)]
        registry = make_registry(skill_mapping("many", paths=["**/*.java"], lexical=tokens))
        result = TriggerMatcher(cache).match(_artifact(content=" ".join(tokens)), registry.all())[0]

        assert result.score == 2 + 5
        assert len(result.fired) == 9

    def test_token_in_both_categories_counts_once(self, make_registry, cache):
        registry = make_registry(skill_mapping("dup", lexical=["@Lock"], annotations=["@Lock"]))
        result = TriggerMatcher(cache).match(_artifact(content="@Lock"), registry.all())[0]
        assert result.score == 1

    def test_multiple_path_patterns_score_once(self, make_registry, cache):
        registry = make_registry(skill_mapping("jvm", paths=["**/*.java", "src/**"]))
        result = TriggerMatcher(cache).match(_artifact(), registry.all())[0]
        assert result.score == 2
        assert len(result.fired) == 2


class TestOrdering:
    def test_sorted_by_score_descending(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("weak", lexical=["void"]),
            skill_mapping("strong", paths=["**/*.java"], lexical=["void"]),
        )
        results = TriggerMatcher(cache).match(_artifact(content="void f()"), registry.all())
        assert [r.skill.name for r in results] == ["strong", "weak"]

    def test_ties_keep_registration_order(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("first", lexical=["void"]),
            skill_mapping("second", lexical=["f()"]),
            skill_mapping("third", lexical=["void"]),
        )
        results = TriggerMatcher(cache).match(_artifact(content="void f()"), registry.all())
        assert [r.skill.name for r in results] == ["first", "second", "third"]
        assert [r.order for r in results] == [0, 1, 2]


class TestArtifactLanguage:
    def test_inferred_from_extension(self):
        assert _artifact("src/Service.java").language == "java"
        assert _artifact("app\\worker.PY").language == "python"
        assert _artifact("Makefile").language == "unknown"

    def test_explicit_language_kept(self):
        assert Artifact(path="build.gradle", content="", language="groovy").language == "groovy"

    def test_normalized_path(self):
        assert _artifact("src\\main\\A.java").normalized_path == "src/main/A.java"
