"""AIS ship-type and navigational-status lookup tables.

Update the tables if the downstream consumer expects different labels;
nothing else in the poller depends on the exact wording.
"""

from __future__ import annotations

# AIS ship type code -> display name (ITU-R M.1371, message 5)
AIS_SHIP_TYPES: dict[int, str] = {
    # Category 2x: Wing in ground
    20: "Wing In Ground",
    29: "Wing In Ground (no other information)",

    # Category 3x: Special operations
    30: "Fishing",
    31: "Towing",
    32: "Towing exceeds 200m or wider than 25m",
    33: "Engaged in dredging or underwater operations",
    34: "Engaged in diving operations",
    35: "Engaged in military operations",
    36: "Sailing",
    37: "Pleasure",

    # Category 4x: High speed craft
    40: "High speed craft",
    41: "High speed craft carrying dangerous goods",
    42: "High speed craft hazard cat B",
    43: "High speed craft hazard cat C",
    44: "High speed craft hazard cat D",
    49: "High speed craft (no additional information)",

    # Category 5x: Special craft
    50: "Pilot vessel",
    51: "SAR",
    52: "Tug",
    53: "Port tender",
    54: "Anti-pollution",
    55: "Law enforcement",
    56: "Spare",
    57: "Spare #2",
    58: "Medical",
    59: "RR Resolution No.1",

    # Category 6x: Passenger
    60: "Passenger ship",
    69: "Passenger ship (no additional information)",

    # Category 7x: Cargo
    70: "Cargo ship",
    71: "Cargo ship (carrying dangerous goods)",
    72: "Cargo ship hazard cat B",
    73: "Cargo ship hazard cat C",
    74: "Cargo ship hazard cat D",
    79: "Cargo ship (no additional information)",

    # Category 8x: Tanker
    80: "Tanker",
    81: "Tanker (carrying dangerous goods)",
    82: "Tanker hazard cat B",
    83: "Tanker hazard cat C",
    84: "Tanker hazard cat D",
    89: "Tanker (no additional information)",

    # Category 9x: Other
    90: "Other",
    91: "Other (carrying dangerous goods)",
    92: "Other hazard cat B",
    93: "Other hazard cat C",
    94: "Other hazard cat D",
    99: "Other (no additional information)",
}

# AIS navigational status code -> navigation.state value
NAVIGATION_STATES: dict[int, str] = {
    0: "motoring",
    1: "anchored",
    2: "not under command",
    3: "restricted manouverability",
    4: "constrained by draft",
    5: "moored",
    6: "aground",
    7: "fishing",
    8: "sailing",
    9: "hazardous material high speed",
    10: "hazardous material wing in ground",
    14: "ais-sart",
}


def ship_type_name(type_id: int | None) -> str | None:
    """Return the display name for an AIS ship type, or None if unknown."""
    if type_id is None:
        return None
    return AIS_SHIP_TYPES.get(type_id)


def navigation_state(code: int | None) -> str | None:
    """Return the navigation state for an AIS status code (15 = undefined)."""
    if code is None:
        return None
    return NAVIGATION_STATES.get(code)
