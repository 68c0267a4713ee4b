"""
Command Resolution Module

Maps ranked detections to discrete command codes using two static case
tables: single-object cases keyed on (color, bearing, distance zone) and
dual-object cases keyed on the bearings and colors of a near primary and a
far secondary. Every ambiguous input resolves to a defined fallback (the
no-detection sentinel, or the primary's single-object code), never an error.
"""

import logging

from collections import OrderedDict
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

from config import PipelineConfig
from .entities import Bearing, DualDetection, TargetColor, Zone, normalize_color
from .geometry import GeometryEstimator

logger = logging.getLogger(__name__)

NO_DETECTION = PipelineConfig.COMMANDS['NO_DETECTION']


@dataclass(frozen=True)
class CommandCase:
    """Single-object case: matches color, bearing and an inclusive distance range."""

    code: str
    color: TargetColor
    bearing: Bearing
    distance_min: int
    distance_max: int
    description: str

    def matches(self, color: TargetColor, bearing: Bearing, distance: int) -> bool:
        return (self.color is color
                and self.bearing is bearing
                and self.distance_min <= distance <= self.distance_max)


@dataclass(frozen=True)
class DualCase:
    """Dual-object case: near primary plus far secondary."""

    code: str
    primary_color: TargetColor
    primary_bearing: Bearing
    secondary_color: TargetColor
    secondary_bearing: Bearing
    description: str

    def matches(self, primary: 'Observation', secondary: 'Observation') -> bool:
        return (self.primary_color is primary.color
                and self.primary_bearing is primary.bearing
                and self.secondary_color is secondary.color
                and self.secondary_bearing is secondary.bearing)

    @property
    def pattern(self) -> str:
        return f"{self.primary_bearing.value}-{self.secondary_bearing.value}"


@dataclass(frozen=True)
class Observation:
    """A detection reduced to what the case tables look at."""

    color: Optional[TargetColor]
    bearing: Optional[Bearing]
    distance: int


@dataclass(frozen=True)
class Resolution:
    """Outcome of a lookup: the code to send plus a human-readable note."""

    code: str
    description: str
    dual: bool = False

    @property
    def is_detection(self) -> bool:
        return self.code != NO_DETECTION


_G, _R = TargetColor.GREEN, TargetColor.RED
_L, _RT = Bearing.LEFT, Bearing.RIGHT

# (code, color, bearing, zone)
_SINGLE_LAYOUT = [
    ('C01', _G, _RT, Zone.NEAR),
    ('C02', _R, _RT, Zone.NEAR),
    ('C07', _G, _L, Zone.NEAR),
    ('C08', _R, _L, Zone.NEAR),
    ('C03', _G, _RT, Zone.MID),
    ('C04', _R, _RT, Zone.MID),
    ('C09', _G, _L, Zone.MID),
    ('C10', _R, _L, Zone.MID),
    ('C05', _G, _RT, Zone.FAR),
    ('C06', _R, _RT, Zone.FAR),
    ('C37', _G, _L, Zone.FAR),
    ('C38', _R, _L, Zone.FAR),
]

# (code, primary color, primary bearing, secondary color, secondary bearing)
_DUAL_LAYOUT = [
    ('C13', _G, _L, _G, _RT),
    ('C14', _G, _L, _R, _RT),
    ('C15', _R, _L, _G, _RT),
    ('C18', _R, _L, _R, _RT),
    ('C31', _G, _L, _G, _L),
    ('C32', _G, _L, _R, _L),
    ('C33', _R, _L, _G, _L),
    ('C36', _R, _L, _R, _L),
    ('C19', _G, _RT, _G, _L),
    ('C20', _G, _RT, _R, _L),
    ('C21', _R, _RT, _G, _L),
    ('C24', _R, _RT, _R, _L),
    ('C25', _G, _RT, _G, _RT),
    ('C26', _G, _RT, _R, _RT),
    ('C27', _R, _RT, _G, _RT),
    ('C30', _R, _RT, _R, _RT),
]

_BEARING_WORDS = {Bearing.LEFT: 'left', Bearing.RIGHT: 'right'}


def zone_bounds(zones: dict = None) -> Dict[Zone, Tuple[int, int]]:
    zones = zones or PipelineConfig.ZONES
    return {
        Zone.NEAR: tuple(zones['NEAR']),
        Zone.MID: tuple(zones['MID']),
        Zone.FAR: tuple(zones['FAR']),
    }


def build_single_cases(zones: dict = None) -> List[CommandCase]:
    """Single-object table with distance ranges taken from the zone config."""
    bounds = zone_bounds(zones)
    cases = []
    for code, color, bearing, zone in _SINGLE_LAYOUT:
        lo, hi = bounds[zone]
        description = f"{color.value.title()}, {zone.value} {_BEARING_WORDS[bearing]}"
        cases.append(CommandCase(code, color, bearing, lo, hi, description))
    return cases


def build_dual_cases() -> List[DualCase]:
    cases = []
    for code, p_color, p_bearing, s_color, s_bearing in _DUAL_LAYOUT:
        description = (f"{p_color.value.title()} near {_BEARING_WORDS[p_bearing]} + "
                       f"{s_color.value.title()} far {_BEARING_WORDS[s_bearing]}")
        cases.append(DualCase(code, p_color, p_bearing, s_color, s_bearing, description))
    return cases


SINGLE_CASES = build_single_cases()
DUAL_CASES = build_dual_cases()


def _normalize_bearing(bearing: Union[Bearing, str, None]) -> Optional[Bearing]:
    if isinstance(bearing, Bearing):
        return bearing
    if isinstance(bearing, str):
        try:
            return Bearing(bearing.strip().upper())
        except ValueError:
            return None
    return None


def encode_raw_command(color: Union[TargetColor, str, None], distance: int,
                       bearing: Union[Bearing, str]) -> str:
    """Raw token "<color letter>,<distance>,<bearing letter>", e.g. "R,45,L"."""
    target = normalize_color(color)
    letter = target.letter if target is not None else NO_DETECTION
    side = _normalize_bearing(bearing)
    return f"{letter},{int(distance)},{side.value if side else '?'}"


class CommandResolver:
    """Pure lookups against the single and dual case tables."""

    def __init__(self,
                 config: dict = None,
                 single_cases: List[CommandCase] = None,
                 dual_cases: List[DualCase] = None,
                 estimator: GeometryEstimator = None):
        """
        Initialize command resolver.

        Args:
            config: Optional zone config dict, uses PipelineConfig.ZONES if None
            single_cases: Optional single-object table, built from the zones if None
            dual_cases: Optional dual-object table, uses DUAL_CASES if None
            estimator: Geometry estimator used by resolve_detections
        """
        self.config = config or PipelineConfig.ZONES
        self.zones = zone_bounds(self.config)
        self.valid_distance = tuple(self.config['VALID_DISTANCE'])
        self.single_cases = single_cases if single_cases is not None else build_single_cases(self.config)
        self.dual_cases = dual_cases if dual_cases is not None else DUAL_CASES
        self.estimator = estimator or GeometryEstimator()

    # ------------------------------------------------------------------
    # Zones
    # ------------------------------------------------------------------

    def zone_for(self, distance: int) -> Optional[Zone]:
        """Zone containing distance, or None if it falls between zones."""
        for zone, (lo, hi) in self.zones.items():
            if lo <= distance <= hi:
                return zone
        return None

    def in_zone(self, distance: int, zone: Zone) -> bool:
        lo, hi = self.zones[zone]
        return lo <= distance <= hi

    def is_valid_distance(self, distance: int) -> bool:
        """True if some single case covers distance."""
        return any(c.distance_min <= distance <= c.distance_max for c in self.single_cases)

    def is_valid_dual_configuration(self, primary_distance: int, secondary_distance: int) -> bool:
        """A dual case needs the primary in the near zone and the secondary in the far zone."""
        return self.in_zone(primary_distance, Zone.NEAR) and self.in_zone(secondary_distance, Zone.FAR)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def resolve_single(self, color: Union[TargetColor, str, None],
                       bearing: Union[Bearing, str, None],
                       distance: int) -> Resolution:
        """
        Resolve one object against the single-object table.

        Args:
            color: Target color (labels are normalized here)
            bearing: Two-bucket bearing ('L'/'R' strings accepted)
            distance: Estimated distance in cm

        Returns:
            Resolution with the matching case code, or the sentinel
        """
        target = normalize_color(color)
        side = _normalize_bearing(bearing)

        if side is None:
            return Resolution(NO_DETECTION, f"Invalid bearing: {bearing}")

        lo, hi = self.valid_distance
        if distance < lo or distance > hi:
            return Resolution(NO_DETECTION, f"Distance out of range: {distance}cm")

        if target is not None:
            for case in self.single_cases:
                if case.matches(target, side, distance):
                    return Resolution(case.code, case.description)

        label = target.value if target is not None else color
        return Resolution(NO_DETECTION, f"No case for {label}, {side.value}, {distance}cm")

    def resolve_dual(self, primary: Observation, secondary: Observation) -> Resolution:
        """
        Resolve a primary/secondary pair.

        Falls back to the primary's single-object resolution whenever the
        pair is not near/far or no dual case matches.
        """
        logger.debug("Dual: primary=%s secondary=%s", primary, secondary)

        if not self.is_valid_dual_configuration(primary.distance, secondary.distance):
            single = self.resolve_single(primary.color, primary.bearing, primary.distance)
            reasons = []
            if not self.in_zone(primary.distance, Zone.NEAR):
                reasons.append(f"primary not near ({primary.distance}cm)")
            if not self.in_zone(secondary.distance, Zone.FAR):
                reasons.append(f"secondary not far ({secondary.distance}cm)")
            logger.debug("Dual geometry invalid (%s), using primary %s", ', '.join(reasons), single.code)
            return Resolution(single.code, f"Dual distances invalid - using: {single.description}")

        if primary.color is not None and secondary.color is not None:
            for case in self.dual_cases:
                if case.matches(primary, secondary):
                    logger.debug("Dual case %s matched", case.code)
                    return Resolution(case.code, case.description, dual=True)

        single = self.resolve_single(primary.color, primary.bearing, primary.distance)
        logger.debug("No dual case, using primary %s", single.code)
        return Resolution(single.code, f"Dual not matched - using: {single.description}")

    def observe(self, detection) -> Observation:
        """Reduce a Detection to (color, bearing, distance)."""
        return Observation(
            color=detection.color,
            bearing=self.estimator.bearing(detection.x),
            distance=self.estimator.estimate_distance(detection.area)
        )

    def resolve_detections(self, detections: DualDetection) -> Resolution:
        """
        Main resolution method.

        Args:
            detections: Ranked detections of one frame

        Returns:
            Resolution for zero, one or two detections
        """
        if detections.primary is None:
            return Resolution(NO_DETECTION, "No detection")

        primary = self.observe(detections.primary)
        if detections.secondary is None:
            return self.resolve_single(primary.color, primary.bearing, primary.distance)

        return self.resolve_dual(primary, self.observe(detections.secondary))

    # ------------------------------------------------------------------
    # Table introspection
    # ------------------------------------------------------------------

    def command_info(self, code: str) -> Optional[str]:
        """Description of a single or dual code, or None if unknown."""
        for case in self.single_cases:
            if case.code == code:
                return case.description
        for case in self.dual_cases:
            if case.code == code:
                return case.description
        return None

    def commands_by_zone(self) -> Dict[Zone, List[CommandCase]]:
        grouped = OrderedDict((zone, []) for zone in self.zones)
        for case in self.single_cases:
            zone = self.zone_for(case.distance_min)
            if zone is not None:
                grouped[zone].append(case)
        return grouped

    def dual_cases_by_pattern(self) -> Dict[str, List[DualCase]]:
        grouped = OrderedDict()
        for case in self.dual_cases:
            grouped.setdefault(case.pattern, []).append(case)
        return grouped

    def all_cases_info(self) -> str:
        singles = "\n".join(
            f"{c.code}: {c.description} ({c.distance_min}-{c.distance_max}cm)"
            for c in self.single_cases
        )
        duals = "\n".join(f"{c.code}: {c.description}" for c in self.dual_cases)
        return f"=== SINGLE CASES ===\n{singles}\n\n=== DUAL CASES ===\n{duals}"
