"""
Static lookup for Bangladesh's administrative hierarchy (division > district > upazila).

The table is loaded once from a bundled JSON file and shared by reference.
Names that cannot be resolved map to the "Unmapped" sentinel so aggregates
always reconcile with the donor count.
"""
import json
import os
import logging
from functools import lru_cache
from typing import Dict, List, NamedTuple, Optional, Tuple
from pulsecare.core.exceptions import GeographyTableError

logger = logging.getLogger(__name__)

UNMAPPED = "Unmapped"
EXPECTED_DIVISION_COUNT = 8
EXPECTED_DISTRICT_COUNT = 64

_CONFIG_DIR = os.path.join(os.path.dirname(__file__), 'config')
DEFAULT_TABLE_PATH = os.path.join(_CONFIG_DIR, 'bangladesh_geography.json')


def _normalize(name: Optional[str]) -> str:
    """Case- and whitespace-insensitive lookup key."""
    if not name:
        return ""
    return " ".join(name.split()).casefold()


class GeoChain(NamedTuple):
    division: str
    district: str
    upazila: str

    @property
    def is_mapped(self) -> bool:
        return self.division != UNMAPPED


UNMAPPED_CHAIN = GeoChain(UNMAPPED, UNMAPPED, UNMAPPED)


class GeographicIndex:
    """Read-only division/district/upazila index built from a nested table."""

    def __init__(
        self,
        table: Dict[str, Dict[str, List[str]]],
        district_aliases: Optional[Dict[str, str]] = None
    ):
        self._divisions: List[str] = []
        self._districts_by_division: Dict[str, List[str]] = {}
        self._upazilas_by_district: Dict[str, List[str]] = {}
        # normalized district -> (district, division)
        self._district_lookup: Dict[str, Tuple[str, str]] = {}
        # normalized upazila -> [(upazila, district), ...]
        self._upazila_lookup: Dict[str, List[Tuple[str, str]]] = {}

        for division, districts in table.items():
            if _normalize(division) == _normalize(UNMAPPED):
                raise GeographyTableError(f"'{UNMAPPED}' is reserved and cannot be used as a division name")
            self._divisions.append(division)
            self._districts_by_division[division] = []
            for district, upazilas in districts.items():
                key = _normalize(district)
                if key in self._district_lookup:
                    owner = self._district_lookup[key][1]
                    raise GeographyTableError(
                        f"District '{district}' listed under both {owner} and {division}"
                    )
                self._district_lookup[key] = (district, division)
                self._districts_by_division[division].append(district)
                self._upazilas_by_district[district] = []
                for upazila in upazilas:
                    candidates = self._upazila_lookup.setdefault(_normalize(upazila), [])
                    if any(existing_district == district for _, existing_district in candidates):
                        raise GeographyTableError(f"Upazila '{upazila}' listed twice in district {district}")
                    candidates.append((upazila, district))
                    self._upazilas_by_district[district].append(upazila)

        for alias, canonical in (district_aliases or {}).items():
            target = self._district_lookup.get(_normalize(canonical))
            if target is None:
                raise GeographyTableError(f"Alias '{alias}' points at unknown district '{canonical}'")
            self._district_lookup.setdefault(_normalize(alias), target)

        ambiguous = sum(1 for candidates in self._upazila_lookup.values() if len(candidates) > 1)
        logger.debug(
            f"Geographic index built: {len(self._divisions)} divisions, "
            f"{len(self._upazilas_by_district)} districts, "
            f"{sum(len(u) for u in self._upazilas_by_district.values())} upazilas "
            f"({ambiguous} names shared between districts)"
        )

    def division_of(self, district: Optional[str]) -> str:
        """Division containing the district, or UNMAPPED."""
        match = self._district_lookup.get(_normalize(district))
        return match[1] if match else UNMAPPED

    def district_of(self, upazila: Optional[str], district_hint: Optional[str] = None) -> str:
        """District containing the upazila, or UNMAPPED."""
        return self.resolve(upazila, district_hint).district

    def resolve(self, upazila: Optional[str], district_hint: Optional[str] = None) -> GeoChain:
        """
        Resolve an upazila to its full division/district/upazila chain.

        A name unique in the table resolves on its own. Names shared by
        several districts need the district hint. A known district hint with
        an unknown upazila yields that district with an UNMAPPED upazila.
        """
        candidates = self._upazila_lookup.get(_normalize(upazila), [])
        if len(candidates) == 1:
            name, district = candidates[0]
            return GeoChain(self._district_lookup[_normalize(district)][1], district, name)

        hint = self._district_lookup.get(_normalize(district_hint))
        if hint is None:
            return UNMAPPED_CHAIN

        district, division = hint
        for name, candidate_district in candidates:
            if candidate_district == district:
                return GeoChain(division, district, name)
        return GeoChain(division, district, UNMAPPED)

    def divisions(self) -> List[str]:
        return list(self._divisions)

    def districts(self, division: Optional[str] = None) -> List[str]:
        if division is None:
            return [d for division_name in self._divisions for d in self._districts_by_division[division_name]]
        for name in self._divisions:
            if _normalize(name) == _normalize(division):
                return list(self._districts_by_division[name])
        return []

    def upazilas(self, district: str) -> List[str]:
        match = self._district_lookup.get(_normalize(district))
        if match is None:
            return []
        return list(self._upazilas_by_district[match[0]])

    def canonical_district(self, district: Optional[str]) -> Optional[str]:
        match = self._district_lookup.get(_normalize(district))
        return match[0] if match else None

    def canonical_division(self, division: Optional[str]) -> Optional[str]:
        for name in self._divisions:
            if _normalize(name) == _normalize(division):
                return name
        return None


def load_geographic_index(path: Optional[str] = None, strict: bool = True) -> GeographicIndex:
    """
    Load the static hierarchy from JSON.

    With strict=True the table must describe exactly 8 divisions and 64
    districts, as the national hierarchy does.
    """
    table_path = path or DEFAULT_TABLE_PATH
    try:
        with open(table_path, 'r', encoding='utf-8') as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise GeographyTableError(f"Failed to load geography table {table_path}: {e}")

    table = raw.get("divisions") or {}
    index = GeographicIndex(table, raw.get("district_aliases"))

    if strict:
        division_count = len(index.divisions())
        district_count = len(index.districts())
        if division_count != EXPECTED_DIVISION_COUNT or district_count != EXPECTED_DISTRICT_COUNT:
            raise GeographyTableError(
                f"Geography table {table_path} has {division_count} divisions and {district_count} districts; "
                f"expected {EXPECTED_DIVISION_COUNT} and {EXPECTED_DISTRICT_COUNT}"
            )

    logger.info(f"Loaded geography table from {table_path}")
    return index


@lru_cache(maxsize=None)
def get_geographic_index(path: Optional[str] = None) -> GeographicIndex:
    """Shared index instance, loaded on first use."""
    return load_geographic_index(path)
