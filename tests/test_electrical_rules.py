"""Tests for the electrical rule table."""

import pytest

from wiring_graph.services.electrical_rules import (
    ELECTRICAL_RULES,
    ElectricalRuleChecker,
    check_wire_gauges,
    validate_electrical,
)

from tests.factories import edge, model_from, node


def _check(rule, nodes, edges=(), circuits=None):
    return getattr(ElectricalRuleChecker(model_from(list(nodes), list(edges)), circuits), rule)()


@pytest.fixture
def sound_model():
    """Battery through a fuse to a lamp, an ECU with power and ground, and a relay with its circuits."""
    return model_from(
        [
            node("bat", "battery"),
            node("f1", "fuse"),
            node("lamp", "lamp", label="Tail lamp"),
            node("ecu", "ecu", label="Engine ECU"),
            node("gnd", "ground_point"),
            node("rly", "relay"),
            node("horn", "motor", label="Horn"),
        ],
        [
            edge("bat", "f1", "feeds"),
            edge("bat", "gnd", "ground"),
            edge("f1", "lamp", "feeds"),
            edge("f1", "ecu", "feeds"),
            edge("ecu", "gnd", "ground"),
            edge("f1", "rly", "feeds"),
            edge("ecu", "rly", "controls"),
            edge("rly", "horn", "feeds"),
            edge("rly", "gnd", "ground"),
        ],
    )


class TestRuleTable:
    """Tests for table order and scoring."""

    def test_rule_order(self):
        """Test rules run in a fixed order and report their ids in sequence."""
        validation = validate_electrical(model_from([node("bat", "battery")], []))

        assert [r.rule for r in validation.results] == [f"R{i:03d}" for i in range(1, 12)]
        assert len(ELECTRICAL_RULES) == 11

    def test_sound_graph_passes_everything(self, sound_model):
        validation = validate_electrical(sound_model)

        assert [r.rule for r in validation.results if not r.passed] == []
        assert validation.passed is True
        assert validation.score == 100
        assert validation.warnings == []

    def test_starter_scenario_score(self, starter_records):
        """Test failed warnings lower the score without failing the graph."""
        nodes = [r for r in starter_records if r["kind"] == "node"]
        edges = [r for r in starter_records if r["kind"] == "edge"]

        validation = validate_electrical(model_from(nodes, edges))

        assert [r.rule for r in validation.results if not r.passed] == ["R002", "R005", "R011"]
        assert validation.passed is True
        assert validation.score == 73

    def test_missing_battery_fails(self):
        """Test a graph without a battery is an error and fails overall."""
        validation = validate_electrical(model_from([node("f1", "fuse")], []))

        assert validation.passed is False
        assert validation.errors == ["No power source (battery) found in electrical system"]

    def test_to_dict(self, sound_model):
        data = validate_electrical(sound_model).to_dict()

        assert data["summary"] == {
            "total_rules": 11,
            "passed_rules": 11,
            "error_count": 0,
            "warning_count": 0,
            "info_count": 11,
        }
        assert set(data["details"][0]) == {"rule", "passed", "severity", "message"}


class TestRules:
    """One test per rule outcome."""

    def test_power_source(self):
        result = _check("has_power_source", [node(f"b{i}", "battery") for i in range(4)])

        assert result.passed is True
        assert result.severity == "warning"
        assert "Unusual number of batteries (4)" in result.message

    def test_ground_references(self):
        assert _check("has_ground_references", [node("b", "battery")]).passed is False
        assert _check("has_ground_references", [node("g", "ground_plane")]).passed is True

    def test_circuit_protection(self):
        result = _check("has_circuit_protection", [node("f", "fuse"), node("r", "relay")])

        assert result.message == "Found circuit protection: 1 fuse(s), 1 relay(s)"
        assert _check("has_circuit_protection", [node("m", "motor")]).passed is False

    def test_isolated_components(self):
        result = _check("no_isolated_components", [node("a", "fuse"), node("b", "lamp"), node("c", "ecu")],
                        [edge("a", "b", "feeds")])

        assert result.passed is False
        assert result.message == "Found 1 isolated component(s): c"

    def test_battery_single_connection(self):
        """Test a battery with one direct load link is flagged twice."""
        result = _check("battery_connections", [node("b", "battery"), node("m", "motor")], [edge("b", "m", "feeds")])

        assert result.passed is False
        assert "only one connection" in result.message
        assert "should connect through fuse" in result.message

    def test_battery_without_connections(self):
        result = _check("battery_connections", [node("b", "battery")])

        assert result.message == "Battery b has no connections"

    def test_fuse_placement(self):
        """Test a fuse needs two connections and a recognizable input or load."""
        lonely = _check("fuse_placement", [node("f", "fuse"), node("b", "battery")], [edge("b", "f", "feeds")])
        unclear = _check(
            "fuse_placement",
            [node("f", "fuse"), node("s1", "splice"), node("s2", "splice")],
            [edge("s1", "f", "feeds"), edge("f", "s2", "feeds")],
        )

        assert "should have input and output connections" in lonely.message
        assert "power source and load connections unclear" in unclear.message

    def test_ecu_power_and_ground(self):
        result = _check("ecu_power_and_ground", [node("ecu", "ecu"), node("f", "fuse")], [edge("f", "ecu", "feeds")])

        assert result.passed is False
        assert result.message == "ECU ecu has no ground connection"

    def test_wire_gauge(self):
        """Test gauge findings from edges and wire nodes surface in the rule."""
        result = _check(
            "wire_gauge_appropriate",
            [node("f", "fuse"), node("m", "motor", label="Wiper")],
            [edge("f", "m", "feeds", gauge="0.5 mm2")],
        )

        assert result.passed is False
        assert result.message == "Edge f->m: thin wire (0.5mm²) for high-current component"

    def test_low_voltage_mismatch(self):
        result = _check(
            "voltage_level_consistency",
            [node("s", "sensor"), node("w", "wire", voltage="48V")],
            [edge("s", "w", "pin_to_wire")],
        )

        assert result.message == "Wire w: high voltage (48V) for ECU/sensor connection"

    def test_high_voltage_needs_safety_note(self):
        """Test 400V links need a warning note on one endpoint."""
        nodes = [node("inv", "component"), node("mot", "motor")]
        bare = _check("voltage_level_consistency", nodes, [edge("inv", "mot", "feeds", voltage="400 v")])
        noted = _check(
            "voltage_level_consistency",
            [node("inv", "component", notes="DANGER: high voltage"), node("mot", "motor")],
            [edge("inv", "mot", "feeds", voltage="400V")],
        )

        assert bare.message == "Edge inv->mot: 400V connection should have safety warnings"
        assert noted.passed is True

    def test_circuit_completeness(self):
        nodes = [node("b", "battery"), node("f", "fuse"), node("l", "lamp"), node("s", "sensor")]
        edges = [edge("b", "f", "feeds"), edge("f", "l", "feeds")]
        circuits = {"tail": ["b", "f", "l"], "stub": ["s"], "sense": ["s", "l"]}

        result = _check("circuit_completeness", nodes, edges, circuits)

        assert result.passed is False
        assert "Circuit tail" not in result.message
        assert "Circuit stub: incomplete (needs at least 2 nodes)" in result.message
        assert "Circuit sense: no clear power source" in result.message
        assert "Circuit sense: nodes may not form connected path" in result.message

    def test_no_circuits_defined(self):
        result = _check("circuit_completeness", [node("b", "battery")])

        assert result.passed is True
        assert result.message == "No circuits defined for validation"

    def test_relay_connections(self):
        """Test relays need three to six connections and both control and power sides."""
        few = _check("relay_configuration", [node("r", "relay"), node("f", "fuse")], [edge("f", "r", "feeds")])
        neighbors = [node(f"s{i}", "splice") for i in range(4)]
        unclear = _check(
            "relay_configuration",
            [node("r", "relay")] + neighbors,
            [edge("r", n["id"], "feeds") for n in neighbors],
        )

        assert "insufficient connections" in few.message
        assert "no clear control input connection" in unclear.message
        assert "no clear power circuit connection" in unclear.message

    def test_relay_control_by_label(self):
        nodes = [node("r", "relay"), node("sw", "component", label="Horn control switch"), node("f", "fuse"),
                 node("h", "motor"), node("g", "ground_point")]
        edges = [edge("sw", "r", "controls"), edge("f", "r", "feeds"), edge("r", "h", "feeds"), edge("r", "g", "ground")]

        assert _check("relay_configuration", nodes, edges).passed is True


class TestCheckWireGauges:
    """Tests for check_wire_gauges."""

    def test_blank_gauge_ignored(self):
        model = model_from([node("f", "fuse"), node("m", "motor", label="Starter")], [edge("f", "m", "feeds", gauge=" ")])

        assert check_wire_gauges(model) == []
