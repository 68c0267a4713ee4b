"""Tests for single and dual case resolution."""
import pytest

from stages import (
    DUAL_CASES,
    SINGLE_CASES,
    Bearing,
    CommandResolver,
    DualDetection,
    Observation,
    TargetColor,
    Zone,
    encode_raw_command,
)
from conftest import make_detection

RED, GREEN, MAGENTA = TargetColor.RED, TargetColor.GREEN, TargetColor.MAGENTA
LEFT, RIGHT = Bearing.LEFT, Bearing.RIGHT

NEAR, MID, FAR = 50, 90, 120


@pytest.fixture
def resolver():
    return CommandResolver()


class TestSingleCases:

    @pytest.mark.parametrize("color,bearing,distance,code", [
        (GREEN, RIGHT, NEAR, 'C01'),
        (RED, RIGHT, NEAR, 'C02'),
        (GREEN, LEFT, NEAR, 'C07'),
        (RED, LEFT, NEAR, 'C08'),
        (GREEN, RIGHT, MID, 'C03'),
        (RED, RIGHT, MID, 'C04'),
        (GREEN, LEFT, MID, 'C09'),
        (RED, LEFT, MID, 'C10'),
        (GREEN, RIGHT, FAR, 'C05'),
        (RED, RIGHT, FAR, 'C06'),
        (GREEN, LEFT, FAR, 'C37'),
        (RED, LEFT, FAR, 'C38'),
    ])
    def test_table(self, resolver, color, bearing, distance, code):
        resolution = resolver.resolve_single(color, bearing, distance)
        assert resolution.code == code
        assert resolution.is_detection
        assert not resolution.dual

    @pytest.mark.parametrize("distance,code", [
        (40, 'C08'), (60, 'C08'), (80, 'C10'), (100, 'C10'), (110, 'C38'), (130, 'C38'),
    ])
    def test_zone_bounds_are_inclusive(self, resolver, distance, code):
        assert resolver.resolve_single(RED, LEFT, distance).code == code

    @pytest.mark.parametrize("distance", [39, 61, 70, 79, 101, 105, 131, 135])
    def test_gaps_resolve_to_sentinel(self, resolver, distance):
        resolution = resolver.resolve_single(GREEN, RIGHT, distance)
        assert resolution.code == 'N'
        assert not resolution.is_detection

    @pytest.mark.parametrize("distance", [5, 9, 201, 500])
    def test_out_of_range_distance(self, resolver, distance):
        resolution = resolver.resolve_single(RED, LEFT, distance)
        assert resolution.code == 'N'
        assert 'out of range' in resolution.description

    def test_invalid_bearing(self, resolver):
        resolution = resolver.resolve_single(RED, 'X', NEAR)
        assert resolution.code == 'N'
        assert 'Invalid bearing' in resolution.description
        assert resolver.resolve_single(RED, None, NEAR).code == 'N'

    def test_color_without_cases(self, resolver):
        assert resolver.resolve_single(MAGENTA, LEFT, NEAR).code == 'N'
        assert resolver.resolve_single('blue', LEFT, NEAR).code == 'N'

    @pytest.mark.parametrize("color,bearing,code", [
        ('rojo', 'L', 'C08'),
        ('Verde', 'r', 'C01'),
        (' RED ', LEFT, 'C08'),
    ])
    def test_labels_are_normalized(self, resolver, color, bearing, code):
        assert resolver.resolve_single(color, bearing, NEAR).code == code

    def test_single_cases_follow_zone_config(self):
        zones = {'NEAR': (20, 30), 'MID': (80, 100), 'FAR': (110, 130), 'VALID_DISTANCE': (10, 200)}
        resolver = CommandResolver(zones)
        assert resolver.resolve_single(RED, LEFT, 25).code == 'C08'
        assert resolver.resolve_single(RED, LEFT, 50).code == 'N'


class TestDualCases:

    @pytest.mark.parametrize("p_color,p_bearing,s_color,s_bearing,code", [
        (GREEN, LEFT, GREEN, RIGHT, 'C13'),
        (GREEN, LEFT, RED, RIGHT, 'C14'),
        (RED, LEFT, GREEN, RIGHT, 'C15'),
        (RED, LEFT, RED, RIGHT, 'C18'),
        (GREEN, LEFT, GREEN, LEFT, 'C31'),
        (GREEN, LEFT, RED, LEFT, 'C32'),
        (RED, LEFT, GREEN, LEFT, 'C33'),
        (RED, LEFT, RED, LEFT, 'C36'),
        (GREEN, RIGHT, GREEN, LEFT, 'C19'),
        (GREEN, RIGHT, RED, LEFT, 'C20'),
        (RED, RIGHT, GREEN, LEFT, 'C21'),
        (RED, RIGHT, RED, LEFT, 'C24'),
        (GREEN, RIGHT, GREEN, RIGHT, 'C25'),
        (GREEN, RIGHT, RED, RIGHT, 'C26'),
        (RED, RIGHT, GREEN, RIGHT, 'C27'),
        (RED, RIGHT, RED, RIGHT, 'C30'),
    ])
    def test_table(self, resolver, p_color, p_bearing, s_color, s_bearing, code):
        resolution = resolver.resolve_dual(Observation(p_color, p_bearing, NEAR),
                                           Observation(s_color, s_bearing, FAR))
        assert resolution.code == code
        assert resolution.dual

    def test_red_left_near_green_right_far(self, resolver):
        resolution = resolver.resolve_dual(Observation(RED, LEFT, 45), Observation(GREEN, RIGHT, 120))
        assert resolution.code == 'C15'
        assert resolution.description == 'Red near left + Green far right'

    def test_primary_not_near_uses_primary_single_case(self, resolver):
        resolution = resolver.resolve_dual(Observation(RED, LEFT, MID), Observation(GREEN, RIGHT, FAR))
        assert resolution.code == 'C10'
        assert not resolution.dual
        assert resolution.description.startswith('Dual distances invalid')

    def test_secondary_not_far_uses_primary_single_case(self, resolver):
        resolution = resolver.resolve_dual(Observation(GREEN, RIGHT, NEAR), Observation(RED, LEFT, MID))
        assert resolution.code == 'C01'
        assert resolution.description.startswith('Dual distances invalid')

    def test_unmatched_pair_uses_primary(self, resolver):
        resolution = resolver.resolve_dual(Observation(RED, LEFT, NEAR), Observation(MAGENTA, RIGHT, FAR))
        assert resolution.code == 'C08'
        assert resolution.description.startswith('Dual not matched')

    def test_unmatched_pair_with_unknown_primary(self, resolver):
        resolution = resolver.resolve_dual(Observation(MAGENTA, LEFT, NEAR), Observation(RED, RIGHT, FAR))
        assert resolution.code == 'N'

    def test_valid_dual_configuration(self, resolver):
        assert resolver.is_valid_dual_configuration(45, 120)
        assert not resolver.is_valid_dual_configuration(90, 120)
        assert not resolver.is_valid_dual_configuration(45, 90)


class TestResolveDetections:

    def test_no_detection(self, resolver):
        resolution = resolver.resolve_detections(DualDetection())
        assert resolution.code == 'N'
        assert resolution.description == 'No detection'

    def test_single_detection(self, resolver):
        dual = DualDetection(make_detection(RED, 11881.0, 0.2))
        assert resolver.resolve_detections(dual).code == 'C08'

    def test_pair_of_detections(self, resolver):
        dual = DualDetection(make_detection(RED, 11881.0, 0.2), make_detection(GREEN, 1600.0, 0.9))
        assert resolver.resolve_detections(dual).code == 'C15'

    def test_observe(self, resolver):
        observation = resolver.observe(make_detection(GREEN, 1600.0, 0.9))
        assert observation == Observation(GREEN, RIGHT, 120)


class TestTables:

    def test_codes_are_unique(self):
        codes = [c.code for c in SINGLE_CASES] + [c.code for c in DUAL_CASES]
        assert len(codes) == 28
        assert len(set(codes)) == len(codes)
        assert 'N' not in codes

    def test_command_info(self, resolver):
        assert resolver.command_info('C15') == 'Red near left + Green far right'
        assert resolver.command_info('C01') == 'Green, near right'
        assert resolver.command_info('C99') is None

    def test_commands_by_zone(self, resolver):
        grouped = resolver.commands_by_zone()
        assert list(grouped) == [Zone.NEAR, Zone.MID, Zone.FAR]
        assert {c.code for c in grouped[Zone.NEAR]} == {'C01', 'C02', 'C07', 'C08'}
        assert {c.code for c in grouped[Zone.FAR]} == {'C05', 'C06', 'C37', 'C38'}

    def test_dual_cases_by_pattern(self, resolver):
        grouped = resolver.dual_cases_by_pattern()
        assert set(grouped) == {'L-R', 'L-L', 'R-L', 'R-R'}
        assert all(len(cases) == 4 for cases in grouped.values())
        assert {c.code for c in grouped['L-R']} == {'C13', 'C14', 'C15', 'C18'}

    def test_is_valid_distance(self, resolver):
        assert resolver.is_valid_distance(45)
        assert not resolver.is_valid_distance(70)

    def test_zone_for(self, resolver):
        assert resolver.zone_for(45) is Zone.NEAR
        assert resolver.zone_for(95) is Zone.MID
        assert resolver.zone_for(125) is Zone.FAR
        assert resolver.zone_for(105) is None

    def test_all_cases_info(self, resolver):
        text = resolver.all_cases_info()
        assert text.startswith('=== SINGLE CASES ===')
        assert 'C38: Red, far left (110-130cm)' in text
        assert 'C30: Red near right + Red far right' in text


class TestRawCommand:

    @pytest.mark.parametrize("color,distance,bearing,expected", [
        (RED, 45, LEFT, 'R,45,L'),
        ('verde', 120, 'r', 'G,120,R'),
        (MAGENTA, 90, RIGHT, 'E,90,R'),
        ('blue', 50, LEFT, 'N,50,L'),
    ])
    def test_encoding(self, color, distance, bearing, expected):
        assert encode_raw_command(color, distance, bearing) == expected
