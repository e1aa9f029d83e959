"""End-to-end tests for the normalization pipeline and serializer."""

import io
import json

import pytest

from wiring_graph.core.errors import IntegrityViolation, SchemaViolation
from wiring_graph.pipeline import NormalizationPipeline, run_pipeline
from wiring_graph.utils.serialization import serialize, write_ndjson

from tests.factories import edge, meta, node


def _reparse(lines):
    return [json.loads(line) for line in lines]


class TestNormalizationPipeline:
    """Tests for NormalizationPipeline."""

    def test_lenient_run(self, wired_records, settings):
        """Test a bad record is dropped and reported without aborting."""
        records = wired_records + [node("bad", "pin", anchor_xyz=[1, 2])]

        result = NormalizationPipeline(settings).run(records)

        assert "bad" not in result.store
        assert [e.code for e in result.issues.schema_errors] == ["invalid_shape"]
        assert result.store.nodes["w_ab"].color == "B-W"
        assert result.store.nodes["w_ab"].path_xyz is not None

    def test_repair_precedes_indexing(self, settings):
        """Test indices only ever see repaired values."""
        result = NormalizationPipeline(settings).run([node("w1", "wire", color="Y/G")])

        assert result.model.nodes_by_id["w1"].color == "Y-G"
        assert result.issues.repairs[0].before == "Y/G"

    def test_duplicate_rejected_before_repair(self, settings):
        """Test a dropped duplicate leaves no repair record behind."""
        records = [node("w1", "wire", color="R"), node("w1", "wire", color="B/W")]

        result = NormalizationPipeline(settings).run(records)

        assert result.store.nodes["w1"].color == "R"
        assert result.issues.repairs == []
        assert [e.code for e in result.issues.schema_errors] == ["duplicate_id"]

    def test_duplicate_strict_abort(self, strict_settings):
        with pytest.raises(SchemaViolation) as exc_info:
            NormalizationPipeline(strict_settings).run([node("w1", "wire"), node("w1", "wire", color="B/W")])

        assert exc_info.value.issue.code == "duplicate_id"

    def test_no_repair(self, settings):
        """Test repairs can be disabled."""
        config = settings.model_copy(update={"auto_repair": False})

        result = NormalizationPipeline(config).run([node("w1", "wire", color="Y/G")])

        assert result.store.nodes["w1"].color == "Y/G"
        assert result.issues.repairs == []

    def test_no_synthesis(self, settings):
        """Test spatial synthesis can be disabled."""
        config = settings.model_copy(update={"synthesize_spatial": False})

        result = NormalizationPipeline(config).run([node("f1", "fuse", anchor_zone="Roof")])

        assert result.store.nodes["f1"].anchor_xyz is None
        assert result.synthesis_stats == {}

    def test_strict_schema_abort(self, strict_settings):
        """Test strict mode aborts on the first schema error."""
        with pytest.raises(SchemaViolation):
            NormalizationPipeline(strict_settings).run([meta(), {"kind": "node", "id": "x"}])

    def test_strict_integrity_abort(self, strict_settings):
        """Test strict mode aborts on a dangling edge."""
        with pytest.raises(IntegrityViolation):
            NormalizationPipeline(strict_settings).run([node("a", "fuse"), edge("a", "ghost", "routed_on")])

    def test_retained_edges_resolve(self, wired_records, settings):
        """Test every canonical edge resolves after a lenient run."""
        records = wired_records + [edge("pin_a1", "missing", "routed_on")]

        result = NormalizationPipeline(settings).run(records)

        model = result.model
        assert all(e.source in model and e.target in model for e in model.edges)
        assert len(result.store.dangling_edges) == 1

    def test_unbridgeable_wire_single_warning(self, wired_records, settings):
        """Test an unbridgeable wire ends the run with exactly one geometry warning."""
        result = NormalizationPipeline(settings).run(wired_records)

        warnings = result.issues.warnings_for("w_orphan")
        assert len(warnings) == 1
        assert warnings[0].code == "wire_unbridged"
        assert result.store.nodes["w_orphan"].path_xyz is None

    def test_bridged_wire_loses_advisory_warning(self, settings):
        """Test a wire bridged from synthesized anchors ends without a placement warning."""
        records = [
            node("f", "fuse", anchor_zone="Engine Compartment"),
            node("p", "pin", anchor_zone="Dash Panel"),
            node("w", "wire"),
            edge("p", "w", "pin_to_wire"),
            edge("w", "f", "wire_to_fuse"),
        ]

        result = NormalizationPipeline(settings).run(records)

        assert result.store.nodes["w"].path_xyz is not None
        assert result.issues.warnings_for("w") == []

    def test_starter_scenario(self, starter_records, settings):
        """Test the starter scenario is detected end to end."""
        result = NormalizationPipeline(settings).run(starter_records)

        report = result.analyze(settings)

        [starter] = [p for p in report.patterns if p.pattern == "starter_circuit"]
        assert starter.detected is True
        assert starter.confidence >= 0.5

    def test_runs_are_independent(self, wired_records, settings):
        """Test each run owns a fresh store and issue log."""
        pipeline = NormalizationPipeline(settings)

        first = pipeline.run(wired_records)
        second = pipeline.run(wired_records)

        assert first.store is not second.store
        assert first.issues is not second.issues
        assert first.run_id != second.run_id


class TestQualityGates:
    """Tests for PipelineResult.quality_gates."""

    def test_clean_graph_passes(self, settings):
        result = run_pipeline(
            [meta(), node("c", "connector"), node("p", "pin"), edge("c", "p", "has_pin")],
            settings,
        )

        gates = result.quality_gates()

        assert gates["passed"] is True
        assert gates["gates"]["all_wires_have_paths"] is True

    def test_missing_wire_path_only_warns(self, wired_records, settings):
        """Test unplaced wires are reported without failing the gates."""
        gates = run_pipeline(wired_records, settings).quality_gates()

        assert gates["passed"] is True
        assert gates["wires_without_path"] == ["w_orphan"]

    def test_dangling_edge_fails(self, settings):
        gates = run_pipeline([node("a", "fuse"), edge("a", "ghost", "routed_on")], settings).quality_gates()

        assert gates["passed"] is False
        assert gates["dangling_edges"] == 1

    def test_schema_error_fails(self, settings):
        gates = run_pipeline([{"kind": "node", "id": "x"}], settings).quality_gates()

        assert gates["gates"]["no_schema_errors"] is False


class TestSerialization:
    """Tests for deterministic serialization."""

    def test_ordering(self, settings):
        """Test metadata first, nodes by id, edges by source then target."""
        records = [
            node("b", "pin"),
            edge("c", "a", "has_pin"),
            node("c", "connector"),
            edge("c", "b", "has_pin"),
            meta(),
            node("a", "pin"),
        ]

        lines = serialize(run_pipeline(records, settings).store)
        decoded = _reparse(lines)

        assert decoded[0]["kind"] == "meta"
        assert [r["id"] for r in decoded[1:4]] == ["a", "b", "c"]
        assert [(r["source"], r["target"]) for r in decoded[4:]] == [("c", "a"), ("c", "b")]

    def test_compact_sorted_keys_without_nulls(self, settings):
        """Test each line is compact JSON with sorted keys and no null fields."""
        [line] = serialize(run_pipeline([node("p1", "pin", label="Pin 1")], settings).store)

        assert line == '{"id":"p1","kind":"node","label":"Pin 1","node_type":"pin"}'

    def test_unicode_preserved(self, settings):
        [line] = serialize(run_pipeline([node("w", "wire", gauge="16mm²")], settings).store)

        assert "16mm²" in line

    def test_serialize_twice_identical(self, wired_records, settings):
        """Test serializing the same store twice yields identical lines."""
        store = run_pipeline(wired_records, settings).store

        assert serialize(store) == serialize(store)

    def test_normalize_is_idempotent(self, wired_records, starter_records, settings):
        """Test re-normalizing canonical output reproduces it byte for byte."""
        records = wired_records + [r for r in starter_records if r["kind"] != "meta"]
        first = serialize(run_pipeline(records, settings).store)

        second = serialize(run_pipeline(_reparse(first), settings).store)

        assert second == first

    def test_write_ndjson(self, wired_records, settings):
        """Test the stream writer emits one line per record."""
        store = run_pipeline(wired_records, settings).store
        stream = io.StringIO()

        count = write_ndjson(store, stream)

        assert count == len(serialize(store))
        assert stream.getvalue().splitlines() == serialize(store)
