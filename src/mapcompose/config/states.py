"""
US State Registry

Centralized table of states, the District of Columbia and Puerto Rico with
USPS abbreviations, FIPS codes and Census regions. County and water files
from the Census Bureau are keyed by the two-digit state FIPS code.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class StateInfo:
    """State metadata for boundary and water lookups"""
    name: str
    abbr: str
    fips: str
    region: str

    def __post_init__(self):
        """Validate state data format"""
        if len(self.abbr) != 2:
            raise ValueError(f"USPS abbreviation must be 2 characters, got '{self.abbr}'")
        if len(self.fips) != 2 or not self.fips.isdigit():
            raise ValueError(f"State FIPS code must be 2 digits, got '{self.fips}'")


class StateRegistry:
    """Registry for state lookups"""

    @staticmethod
    def get_state(identifier: str) -> StateInfo | None:
        """
        Get state information by USPS abbreviation, FIPS code or name

        Args:
            identifier: Abbreviation ("MI"), FIPS code ("26" or 26) or name ("Michigan")

        Returns:
            StateInfo object if found, None otherwise
        """
        identifier = str(identifier).strip()
        if not identifier:
            return None

        identifier_upper = identifier.upper()
        if identifier_upper in STATES:
            return STATES[identifier_upper]

        if identifier.isdigit():
            fips = identifier.zfill(2)
            for state in STATES.values():
                if state.fips == fips:
                    return state
            return None

        identifier_lower = identifier.lower()
        for state in STATES.values():
            if state.name.lower() == identifier_lower:
                return state

        return None

    @staticmethod
    def require_state(identifier: str) -> StateInfo:
        """Like ``get_state`` but raises ``ValueError`` for unknown identifiers."""
        state = StateRegistry.get_state(identifier)
        if state is None:
            suggestions = StateRegistry.suggest_states(str(identifier))
            hint = f" Did you mean: {', '.join(s.name for s in suggestions[:3])}?" if suggestions else ""
            raise ValueError(f"Unknown state: {identifier!r}.{hint}")
        return state

    @staticmethod
    def list_states() -> list[StateInfo]:
        """Get all states ordered by FIPS code"""
        return sorted(STATES.values(), key=lambda s: s.fips)

    @staticmethod
    def list_regions() -> list[str]:
        """Get list of all Census regions"""
        return sorted({state.region for state in STATES.values()})

    @staticmethod
    def suggest_states(partial: str) -> list[StateInfo]:
        """Get states whose name or abbreviation contains ``partial``"""
        partial_lower = partial.lower()
        return [
            state for state in STATES.values()
            if partial_lower in state.name.lower() or partial_lower == state.abbr.lower()
        ]


def _state(name: str, abbr: str, fips: str, region: str) -> tuple[str, StateInfo]:
    return abbr, StateInfo(name=name, abbr=abbr, fips=fips, region=region)


STATES: dict[str, StateInfo] = dict([
    _state('Alabama', 'AL', '01', 'South'),
    _state('Alaska', 'AK', '02', 'West'),
    _state('Arizona', 'AZ', '04', 'West'),
    _state('Arkansas', 'AR', '05', 'South'),
    _state('California', 'CA', '06', 'West'),
    _state('Colorado', 'CO', '08', 'West'),
    _state('Connecticut', 'CT', '09', 'Northeast'),
    _state('Delaware', 'DE', '10', 'South'),
    _state('District of Columbia', 'DC', '11', 'South'),
    _state('Florida', 'FL', '12', 'South'),
    _state('Georgia', 'GA', '13', 'South'),
    _state('Hawaii', 'HI', '15', 'West'),
    _state('Idaho', 'ID', '16', 'West'),
    _state('Illinois', 'IL', '17', 'Midwest'),
    _state('Indiana', 'IN', '18', 'Midwest'),
    _state('Iowa', 'IA', '19', 'Midwest'),
    _state('Kansas', 'KS', '20', 'Midwest'),
    _state('Kentucky', 'KY', '21', 'South'),
    _state('Louisiana', 'LA', '22', 'South'),
    _state('Maine', 'ME', '23', 'Northeast'),
    _state('Maryland', 'MD', '24', 'South'),
    _state('Massachusetts', 'MA', '25', 'Northeast'),
    _state('Michigan', 'MI', '26', 'Midwest'),
    _state('Minnesota', 'MN', '27', 'Midwest'),
    _state('Mississippi', 'MS', '28', 'South'),
    _state('Missouri', 'MO', '29', 'Midwest'),
    _state('Montana', 'MT', '30', 'West'),
    _state('Nebraska', 'NE', '31', 'Midwest'),
    _state('Nevada', 'NV', '32', 'West'),
    _state('New Hampshire', 'NH', '33', 'Northeast'),
    _state('New Jersey', 'NJ', '34', 'Northeast'),
    _state('New Mexico', 'NM', '35', 'West'),
    _state('New York', 'NY', '36', 'Northeast'),
    _state('North Carolina', 'NC', '37', 'South'),
    _state('North Dakota', 'ND', '38', 'Midwest'),
    _state('Ohio', 'OH', '39', 'Midwest'),
    _state('Oklahoma', 'OK', '40', 'South'),
    _state('Oregon', 'OR', '41', 'West'),
    _state('Pennsylvania', 'PA', '42', 'Northeast'),
    _state('Rhode Island', 'RI', '44', 'Northeast'),
    _state('South Carolina', 'SC', '45', 'South'),
    _state('South Dakota', 'SD', '46', 'Midwest'),
    _state('Tennessee', 'TN', '47', 'South'),
    _state('Texas', 'TX', '48', 'South'),
    _state('Utah', 'UT', '49', 'West'),
    _state('Vermont', 'VT', '50', 'Northeast'),
    _state('Virginia', 'VA', '51', 'South'),
    _state('Washington', 'WA', '53', 'West'),
    _state('West Virginia', 'WV', '54', 'South'),
    _state('Wisconsin', 'WI', '55', 'Midwest'),
    _state('Wyoming', 'WY', '56', 'West'),
    _state('Puerto Rico', 'PR', '72', 'Territory'),
])
