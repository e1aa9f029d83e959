"""Zone table and default geometry for the reference vehicle"""

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field


class Zone(BaseModel):
    """Named physical region with one representative anchor point"""
    name: str = Field(..., description="Canonical zone name")
    anchor: Tuple[float, float, float] = Field(..., description="Representative point used by synthesis")
    aliases: Tuple[str, ...] = Field(default=())
    description: Optional[str] = None


REFERENCE_ZONES: Tuple[Zone, ...] = (
    Zone(name="Engine Compartment", anchor=(1.10, 0.0, 0.75), aliases=("Engine Bay",),
         description="Front engine bay area"),
    Zone(name="Dash Panel", anchor=(0.60, 0.0, 0.90), aliases=("Dash",),
         description="Dashboard and instrument panel"),
    Zone(name="Firewall", anchor=(0.90, 0.0, 0.85)),
    Zone(name="Floor & Roof", anchor=(0.40, 0.0, 0.25), aliases=("Floor",),
         description="Passenger compartment floor"),
    Zone(name="Roof", anchor=(0.40, 0.0, 1.30)),
    Zone(name="Rear Cargo/Tailgate", anchor=(-0.60, 0.0, 0.80), aliases=("Rear", "Tailgate"),
         description="Rear cargo area and tailgate"),
    Zone(name="Left Front Door", anchor=(0.55, -0.55, 0.95)),
    Zone(name="Right Front Door", anchor=(0.55, 0.55, 0.95)),
    Zone(name="Chassis", anchor=(0.0, 0.0, 0.0), description="Vehicle chassis and ground plane"),
)

# Static per-type bounding boxes (metres) for nodes that ship without one
DEFAULT_BBOX_M: Dict[str, Tuple[float, float, float]] = {
    "component": (0.1, 0.1, 0.05),
    "fuse": (0.02, 0.02, 0.03),
    "relay": (0.03, 0.03, 0.04),
}


class ZoneTable:
    """Lookup of zone anchors by name or alias"""

    def __init__(self, zones: Tuple[Zone, ...] = REFERENCE_ZONES):
        self.zones = zones
        self._by_name: Dict[str, Zone] = {}
        for zone in zones:
            for name in (zone.name, *zone.aliases):
                self._by_name[name] = zone

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self.zones)

    def get(self, name: str) -> Optional[Zone]:
        return self._by_name.get(name)

    def anchor_for(self, name: str) -> Optional[List[float]]:
        """Fresh copy of the zone's representative point, or None for unknown zones"""
        zone = self._by_name.get(name)
        return list(zone.anchor) if zone else None

    def names(self) -> List[str]:
        return sorted(self._by_name)
