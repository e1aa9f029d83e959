"""Tests for topology analysis."""

import pytest

from wiring_graph.core.config import Settings
from wiring_graph.core.errors import UnknownNodeError
from wiring_graph.services.analysis_service import (
    analyze,
    analyze_circuit_family,
    analyze_load_distribution,
    analyze_power_distribution,
    check_wire_gauges,
    identify_circuit_families,
    recommend_protection,
    trace_power_path,
)
from wiring_graph.services.heuristics import CircuitFamily

from tests.factories import edge, model_from, node


@pytest.fixture
def distribution_model():
    """Battery feeding a main fuse, a junction block and two loads."""
    return model_from(
        [
            node("battery", "battery", anchor_zone="Engine Compartment"),
            node("main_fuse", "fuse", label="Main Fuse 100A", anchor_zone="Engine Compartment"),
            node("jb", "connector", label="Junction Block"),
            node("f_lamp", "fuse"),
            node("head_l", "lamp", label="Headlight L", anchor_zone="Engine Compartment"),
            node("head_r", "lamp", label="Headlight R", anchor_zone="Engine Compartment"),
        ],
        [
            edge("battery", "main_fuse", "feeds"),
            edge("main_fuse", "jb", "feeds"),
            edge("jb", "f_lamp", "feeds"),
            edge("f_lamp", "head_l", "feeds"),
            edge("f_lamp", "head_r", "feeds"),
        ],
    )


class TestTracePowerPath:
    """Tests for trace_power_path."""

    def test_follows_distribution_nodes(self, distribution_model):
        """Test the trace descends through fuses and connectors only."""
        path = trace_power_path(distribution_model, "battery")

        assert path == ["battery", "main_fuse", "jb", "f_lamp"]

    def test_depth_bound(self, distribution_model):
        """Test the depth bound truncates the trace."""
        assert trace_power_path(distribution_model, "battery", max_depth=2) == ["battery", "main_fuse"]

    def test_cycle_terminates(self):
        """Test cycles between distribution nodes do not loop."""
        model = model_from(
            [node("b", "battery"), node("f1", "fuse"), node("c1", "connector")],
            [edge("b", "f1", "feeds"), edge("f1", "c1", "feeds"), edge("c1", "f1", "feeds")],
        )

        assert trace_power_path(model, "b", max_depth=10) == ["b", "f1", "c1"]

    def test_unknown_source(self, distribution_model):
        """Test an unknown source id raises."""
        with pytest.raises(UnknownNodeError) as exc_info:
            trace_power_path(distribution_model, "nope")

        assert exc_info.value.node_id == "nope"


class TestPowerDistribution:
    """Tests for analyze_power_distribution."""

    def test_centralized(self, distribution_model):
        """Test a main fuse makes the architecture centralized."""
        result = analyze_power_distribution(distribution_model)

        assert result.architecture == "centralized"
        assert result.main_distribution_points == ["main_fuse"]
        assert result.confidence == 0.7
        assert result.redundancy == "none"
        assert result.power_paths[0].path == ["battery", "main_fuse", "jb"]

    def test_distributed(self):
        """Test more than two junction blocks without a main fuse."""
        model = model_from(
            [node("b", "battery")] + [node(f"jb{i}", "connector", label="Distribution box") for i in range(3)],
            [],
        )

        result = analyze_power_distribution(model)

        assert result.architecture == "distributed"
        assert result.confidence == 0.6

    def test_multiple_sources(self):
        model = model_from([node("b1", "battery"), node("b2", "battery")], [])

        assert analyze_power_distribution(model).redundancy == "multiple_sources"

    def test_no_battery(self):
        """Test graphs without a battery are unknown with zero confidence."""
        result = analyze_power_distribution(model_from([node("f", "fuse")], []))

        assert result.architecture == "unknown"
        assert result.confidence == 0.0


class TestCircuitFamilies:
    """Tests for family grouping and stats."""

    def test_every_family_present(self, distribution_model):
        """Test all family keys exist even when empty."""
        families = identify_circuit_families(distribution_model)

        assert set(families) == set(CircuitFamily.ALL)
        assert families[CircuitFamily.LIGHTING] == ["head_l", "head_r"]
        assert "battery" in families[CircuitFamily.POWER_DISTRIBUTION]

    def test_family_stats(self, distribution_model):
        """Test connectivity and power for the lighting family."""
        stats = analyze_circuit_family(distribution_model, ["head_l", "head_r"])

        assert stats.node_count == 2
        assert stats.connectivity == 0.0
        assert stats.component_types == {"lamp": 2}
        assert stats.estimated_power == 16.0
        assert stats.issues == []
        assert stats.circuit_type == "lighting"

    def test_unprotected_high_power(self):
        """Test a high-power family without a fuse is flagged."""
        model = model_from(
            [node("s", "motor", label="Starter"), node("a", "motor", label="Aux"), node("c", "motor", label="Aux2")],
            [],
        )

        stats = analyze_circuit_family(model, ["s", "a", "c"])

        assert "High power family without protection" in stats.issues
        assert "Low connectivity within family" in stats.issues


class TestLoadDistribution:
    """Tests for analyze_load_distribution."""

    def test_loads_by_zone(self, distribution_model):
        """Test loads sum per zone."""
        result = analyze_load_distribution(distribution_model)

        assert result.total_load == 16.0
        assert result.load_by_zone == {"Engine Compartment": 16.0, "unknown": 0.0}
        assert result.critical_loads == []
        assert result.recommendations == []

    def test_starter_is_critical(self):
        """Test a starter is a critical load and triggers recommendations."""
        model = model_from([node("sm", "motor", label="Starter", anchor_zone="Engine Compartment")], [])

        result = analyze_load_distribution(model)

        assert [c.id for c in result.critical_loads] == ["sm"]
        assert "High total system load - verify alternator capacity" in result.recommendations
        assert "High load in Engine Compartment zone (150A) - check wiring capacity" in result.recommendations

    def test_custom_thresholds(self, distribution_model):
        result = analyze_load_distribution(distribution_model, critical_load_amps=5.0, zone_load_warning_amps=10.0)

        assert [c.id for c in result.critical_loads] == ["head_l", "head_r"]
        assert len(result.recommendations) == 1


class TestProtectionAndGauges:
    """Tests for fuse sizing and gauge checks."""

    def test_recommend_protection(self, distribution_model):
        """Test the lamp fuse is sized for both headlights."""
        assert recommend_protection(distribution_model, "f_lamp") == 20

    def test_recommend_protection_unknown(self, distribution_model):
        with pytest.raises(UnknownNodeError):
            recommend_protection(distribution_model, "ghost")

    def test_thin_wire_on_motor(self):
        """Test a thin edge gauge on a motor is flagged."""
        model = model_from(
            [node("f", "fuse"), node("m", "motor", label="Wiper")],
            [edge("f", "m", "feeds", gauge="0.5mm²")],
        )

        [issue] = check_wire_gauges(model)

        assert issue.gauge == "0.5mm²"
        assert "thin wire" in issue.message

    def test_starter_needs_heavy_gauge(self):
        """Test an undersized starter wire node is flagged."""
        model = model_from(
            [node("b", "battery"), node("w", "wire", gauge="4mm²"), node("sm", "motor", label="Starter")],
            [edge("b", "w", "feeds"), edge("w", "sm", "feeds")],
        )

        [issue] = check_wire_gauges(model)

        assert issue.subject == "Wire w"
        assert "starter" in issue.message

    def test_heavy_starter_feed_ok(self, starter_records):
        nodes = [r for r in starter_records if r["kind"] == "node"]
        edges = [r for r in starter_records if r["kind"] == "edge"]

        assert check_wire_gauges(model_from(nodes, edges)) == []


class TestAnalyze:
    """Tests for the bundled report."""

    def test_report(self, starter_records):
        """Test the report bundles every analysis and serializes to a dict."""
        nodes = [r for r in starter_records if r["kind"] == "node"]
        edges = [r for r in starter_records if r["kind"] == "edge"]

        report = analyze(model_from(nodes, edges), Settings(_env_file=None))

        assert [p.pattern for p in report.detected_patterns] == ["starter_circuit"]
        data = report.to_dict()
        assert set(data) == {
            "power_distribution", "families", "family_analysis",
            "load_distribution", "gauge_issues", "electrical_validation",
            "patterns", "zone_suggestions",
        }
        assert data["load_distribution"]["critical_loads"][0]["id"] == "starter_motor"
        assert data["electrical_validation"]["score"] == report.electrical.score
        assert data["family_analysis"]["engine_management"]["circuit_type"] == "starting"

    def test_report_is_deterministic(self, starter_records):
        nodes = [r for r in starter_records if r["kind"] == "node"]
        edges = [r for r in starter_records if r["kind"] == "edge"]
        model = model_from(nodes, edges)

        assert analyze(model).to_dict() == analyze(model).to_dict()

    def test_zone_suggestions_for_unplaced_nodes(self):
        """Test only unplaced non-wire nodes get a placement hint."""
        model = model_from(
            [
                node("dlc", "connector", label="Diagnostic connector"),
                node("tail", "lamp", label="Rear lamp"),
                node("placed", "ecu", anchor_xyz=[0, 0, 0]),
                node("zoned", "ecu", anchor_zone="Dash"),
                node("w1", "wire"),
            ],
            [],
        )

        report = analyze(model)

        assert report.zone_suggestions == {"dlc": "dash", "tail": "trunk"}

    def test_circuits_feed_completeness_rule(self, distribution_model):
        report = analyze(distribution_model, circuits={"lamps": ["f_lamp", "head_l", "head_r"]})

        [completeness] = [r for r in report.electrical.results if r.rule == "R010"]
        assert completeness.passed is True
        assert completeness.message == "All circuits are complete and properly configured"
