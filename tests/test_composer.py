"""Tests for ContextComposer: concern deduplication, text and manifest."""

from skill_engine.loading.composer import ContextComposer, is_duplicate, trigger_overlap
from skill_engine.loading.planner import ProgressiveLoader
from skill_engine.matching.matcher import TriggerMatcher
from skill_engine.skills.models import Artifact, Budget, PlanEntry, SkipReason

from tests.builders import module_mapping, skill_mapping


def _compose(registry, artifact, budget, cache):
    matches = TriggerMatcher(cache).match(artifact, registry.all())
    plan = ProgressiveLoader(cache=cache).plan(artifact, matches, Budget(budget))
    return ContextComposer(separator="\n\n").compose(plan, artifact.path)


def _entry(skill, module, triggers=(), concerns=(), is_core=False, size=1):
    return PlanEntry(
        skill_id=skill,
        module_id=module,
        content="",
        size=size,
        is_core=is_core,
        concerns=tuple(concerns),
        triggers=tuple(triggers),
    )


class TestOverlap:
    def test_identical_sets(self):
        assert trigger_overlap(("a",), ("a",)) == 1.0

    def test_measured_against_smaller_set(self):
        assert trigger_overlap(("a", "b"), ("a", "b", "c", "d")) == 1.0
        assert trigger_overlap(("a", "b"), ("a", "c")) == 0.5

    def test_empty_set(self):
        assert trigger_overlap((), ("a",)) == 0.0


class TestIsDuplicate:
    def test_same_concern_and_overlap(self):
        kept = _entry("s1", "m", ["@Transactional"], ["transactions"])
        cand = _entry("s2", "m", ["@Transactional"], ["transactions"])
        assert is_duplicate(cand, kept)

    def test_exactly_half_overlap_is_not_duplicate(self):
        kept = _entry("s1", "m", ["a", "b"], ["t"])
        cand = _entry("s2", "m", ["a", "c"], ["t"])
        assert not is_duplicate(cand, kept)

    def test_different_concerns(self):
        kept = _entry("s1", "m", ["a"], ["t"])
        cand = _entry("s2", "m", ["a"], ["u"])
        assert not is_duplicate(cand, kept)

    def test_same_skill_never_duplicate(self):
        kept = _entry("s1", "m1", ["a"], ["t"])
        cand = _entry("s1", "m2", ["a"], ["t"])
        assert not is_duplicate(cand, kept)

    def test_core_modules_never_duplicate(self):
        kept = _entry("s1", "core", ["a"], ["t"], is_core=True)
        cand = _entry("s2", "core", ["a"], ["t"], is_core=True)
        assert not is_duplicate(cand, kept)


class TestDuplicateScenario:
    def test_higher_relevance_skill_keeps_shared_concern(self, make_registry, cache):
        registry = make_registry(
            skill_mapping(
                "generic-db",
                lexical=["@Transactional"],
                modules=[module_mapping("tx", ["@Transactional"], concerns=["transactions"])],
            ),
            skill_mapping(
                "spring",
                paths=["**/*.java"],
                lexical=["@Transactional"],
                modules=[module_mapping("tx", ["@Transactional"], concerns=["transactions"])],
            ),
        )
        artifact = Artifact(path="src/OrderService.java", content="@Transactional public void place() {}")

        context = _compose(registry, artifact, 1000, cache)
        manifest = context.manifest

        included = [(e.skill_id, e.module_id) for e in manifest.included]
        assert ("spring@1.0.0", "tx") in included
        assert ("generic-db@1.0.0", "tx") not in included

        [dup] = manifest.skipped_duplicate
        assert dup.key == "generic-db@1.0.0::tx"
        assert dup.reason == SkipReason.DUPLICATE
        assert dup.duplicate_of == "spring@1.0.0::tx"

        assert "## generic-db@1.0.0 :: tx" not in context.text
        assert "## spring@1.0.0 :: tx" in context.text

    def test_disjoint_triggers_keep_both(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("a", lexical=["x"], modules=[module_mapping("m", ["x"], concerns=["c"])]),
            skill_mapping("b", lexical=["y"], modules=[module_mapping("m", ["y"], concerns=["c"])]),
        )
        context = _compose(registry, Artifact(path="f", content="x y"), 1000, cache)
        assert context.manifest.skipped_duplicate == ()
        assert len(context.manifest.included) == 4


class TestManifest:
    def test_total_size_is_sum_of_included(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("a", lexical=["x"], core_size=10,
                          modules=[module_mapping("m", ["x"], size=15, concerns=["c"])]),
            skill_mapping("b", lexical=["x"], core_size=20,
                          modules=[module_mapping("m", ["x"], size=25, concerns=["c"])]),
        )
        context = _compose(registry, Artifact(path="f", content="x"), 1000, cache)
        manifest = context.manifest

        assert manifest.total_size == sum(e.size for e in manifest.included)
        assert manifest.total_size == 10 + 20 + 15
        assert len(manifest.skipped_duplicate) == 1
        assert manifest.budget == 1000

    def test_cores_come_first_for_each_skill(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("a", lexical=["x"], modules=[module_mapping("m", ["x"])]),
        )
        context = _compose(registry, Artifact(path="f", content="x"), 1000, cache)
        text = context.text
        assert text.index("## a@1.0.0 :: core") < text.index("## a@1.0.0 :: m")
        assert text.startswith("## a@1.0.0 :: core\n\na core guidance")

    def test_to_dict(self, make_registry, cache):
        registry = make_registry(
            skill_mapping("a", lexical=["x"], core_size=10,
                          modules=[module_mapping("m", ["x"], size=100)]),
        )
        context = _compose(registry, Artifact(path="f", content="x"), 50, cache)
        data = context.manifest.to_dict()

        assert data["included"] == [{"skill": "a@1.0.0", "module": "core", "size": 10, "core": True}]
        assert data["skipped_for_budget"] == [
            {"skill": "a@1.0.0", "module": "m", "size": 100, "reason": "skipped-for-budget"}
        ]
        assert data["skipped_duplicate"] == []
        assert data["total_size"] == 10

    def test_no_matches_gives_empty_context(self, make_registry, cache):
        registry = make_registry(skill_mapping("a", lexical=["x"]))
        context = _compose(registry, Artifact(path="f", content="nothing"), 100, cache)
        assert context.text == ""
        assert context.manifest.included == ()
        assert context.manifest.total_size == 0
