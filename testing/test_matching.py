"""
Tests for candidate filtering, scoring and greedy pair selection.
"""

from dataclasses import replace

import numpy as np
import pytest

import sockmatch.matching as matching
from sockmatch.config import DARK_REGIME, PLAIN_REGIME, STRONG_PATTERN_REGIME
from sockmatch.exceptions import FrameError
from sockmatch.models import MatchCandidate, PatternDirection, TextureSummary
from sockmatch.matching import (
    bbox_overlap_area,
    choose_regime,
    compute_color_score,
    dimension_ratios,
    find_matching_pairs,
    rank_candidates,
    region_texture,
    score_pair,
    select_disjoint_pairs,
)
from sockmatch.regions import find_color_regions

from testing.frames import (
    BLUE,
    DARK,
    GRAY,
    blank_frame,
    draw_rect,
    draw_stripes,
    make_region,
    two_rect_frame,
)

REGIMES = {regime.name: regime for regime in (STRONG_PATTERN_REGIME, DARK_REGIME, PLAIN_REGIME)}


def four_rect_frame():
    """Gray, blue, gray, blue 60x150 rectangles side by side on white."""
    frame = blank_frame(400, 400)
    for x, color in zip((20, 120, 220, 320), (GRAY, BLUE, GRAY, BLUE)):
        draw_rect(frame, x, 40, 60, 150, color)
    return frame


def striped_pair_frame():
    """Two identically striped 60x150 rectangles side by side on white."""
    frame = blank_frame(200, 400)
    draw_stripes(frame, 20, 40, 60, 150, orientation="rows")
    draw_stripes(frame, 120, 40, 60, 150, orientation="rows")
    return frame


def all_candidates(regions, settings, frame):
    ordered = sorted(regions, key=lambda region: region.size, reverse=True)
    candidates = []
    for i, first in enumerate(ordered):
        for second in ordered[i + 1:]:
            candidate = score_pair(first, second, settings, frame)
            if candidate is not None:
                candidates.append(candidate)
    return candidates


def flat_texture(edges=0):
    return TextureSummary(
        pattern=np.full(50, 100.0), contrast=0.0, vertical_edges=edges, horizontal_edges=0,
        avg_brightness=100.0, direction=PatternDirection.NONE,
    )


def candidate(first, second, score, texture_score):
    return MatchCandidate(
        first=first, second=second, score=score, color_score=0.0,
        texture_score=texture_score, size_score=1.0, regime="plain",
    )


class TestGeometry:
    """Overlap and dimension ratios between regions."""

    def test_disjoint_boxes(self):
        assert bbox_overlap_area(make_region(0, 0, 60, 150), make_region(100, 0, 60, 150)) == 0

    def test_shared_border_is_not_overlap(self):
        assert bbox_overlap_area(make_region(0, 0, 60, 150), make_region(59, 0, 60, 150)) == 0

    def test_overlapping_boxes(self):
        first = make_region(0, 0, 60, 150)
        second = make_region(10, 10, 60, 150)
        assert bbox_overlap_area(first, second) == 49 * 139
        assert bbox_overlap_area(second, first) == 49 * 139

    def test_dimension_ratios(self):
        ratios = dimension_ratios(make_region(0, 0, 60, 150), make_region(100, 0, 30, 150))
        assert ratios == (1.0, 0.5, 0.5)


class TestColorScore:
    """Color similarity for plain and dark regions."""

    def test_identical_colors(self, settings):
        assert compute_color_score(make_region(0, 0, 5, 5), make_region(9, 0, 5, 5), settings) == 1.0

    def test_scaled_by_twice_threshold(self, settings):
        first = make_region(0, 0, 5, 5, (128, 128, 128))
        second = make_region(9, 0, 5, 5, (128, 128, 163))
        assert compute_color_score(first, second, settings) == pytest.approx(0.5)

    def test_floored_at_zero(self, settings):
        first = make_region(0, 0, 5, 5, GRAY)
        second = make_region(9, 0, 5, 5, (200, 40, 40))
        assert compute_color_score(first, second, settings) == 0.0

    def test_dark_regions_compare_brightness_only(self, settings):
        """Hue is ignored when both regions are dark."""
        first = make_region(0, 0, 5, 5, (60, 0, 0))
        second = make_region(9, 0, 5, 5, (0, 0, 60))
        assert compute_color_score(first, second, settings) == 1.0

    def test_dark_brightness_difference(self, settings):
        first = make_region(0, 0, 5, 5, (20, 20, 20))
        second = make_region(9, 0, 5, 5, (75, 75, 75))
        assert compute_color_score(first, second, settings) == pytest.approx(1 - 55 / 80)


class TestRegimes:
    """Scoring regime selection."""

    def test_strong_pattern_wins(self):
        assert choose_regime(flat_texture(101), flat_texture(0), both_dark=True) is STRONG_PATTERN_REGIME

    def test_edge_count_of_100_is_not_strong(self):
        assert choose_regime(flat_texture(100), flat_texture(100), both_dark=False) is PLAIN_REGIME

    def test_dark(self):
        assert choose_regime(flat_texture(), flat_texture(), both_dark=True) is DARK_REGIME


class TestScorePair:
    """Filtering and gating of single candidate pairs."""

    def test_overlapping_regions_rejected(self, settings):
        frame = blank_frame(200, 400)
        assert score_pair(make_region(0, 0, 60, 150), make_region(10, 10, 60, 150), settings, frame) is None

    def test_size_mismatch_rejected(self, settings):
        frame = blank_frame(200, 400)
        assert score_pair(make_region(0, 0, 60, 150), make_region(100, 0, 20, 150), settings, frame) is None

    def test_rejected_before_texture_is_computed(self, settings):
        first = make_region(0, 0, 60, 150)
        second = make_region(100, 0, 20, 150)
        score_pair(first, second, settings, blank_frame(200, 400))
        assert first.texture is None and second.texture is None

    def test_plain_pair(self, gray_pair_frame, settings):
        first, second = find_color_regions(gray_pair_frame, settings)

        result = score_pair(first, second, settings, gray_pair_frame)

        assert result.regime == "plain"
        assert result.color_score == 1.0
        assert result.size_score == 1.0
        assert result.texture_score == pytest.approx(0.6)
        assert result.score == pytest.approx(0.6 * 0.4 + 0.4 + 0.2)

    def test_dark_pair(self, settings):
        frame = two_rect_frame(DARK, DARK)
        first, second = find_color_regions(frame, settings)

        result = score_pair(first, second, settings, frame)

        assert result.regime == "dark"
        assert result.score == pytest.approx(0.6 * 0.6 + 0.2 + 0.2)

    def test_strong_pattern_pair(self, settings):
        frame = striped_pair_frame()
        first, second = find_color_regions(frame, settings)

        result = score_pair(first, second, settings, frame)

        assert first.texture.edge_count > 100
        assert result.regime == "strong_pattern"
        assert result.texture_score > 0.9

    def test_color_alone_cannot_pass(self, settings):
        """A flat and a striped region of the same average color fail the texture gate."""
        frame = blank_frame(200, 400)
        draw_stripes(frame, 20, 40, 60, 150, orientation="checker")
        draw_rect(frame, 120, 40, 60, 150, (109, 109, 109))
        first, second = find_color_regions(frame, settings)

        assert score_pair(first, second, settings, frame) is None


class TestSelection:
    """Ranking and greedy disjoint selection."""

    def setup_method(self):
        self.a, self.b, self.c, self.d = (make_region(100 * i, 0, 10, 10) for i in range(4))

    def test_higher_score_first(self):
        low = candidate(self.a, self.b, 0.5, 0.99)
        high = candidate(self.c, self.d, 0.8, 0.5)
        assert rank_candidates([low, high]) == [high, low]

    def test_close_scores_ordered_by_texture(self):
        better_score = candidate(self.a, self.b, 0.80, 0.5)
        better_texture = candidate(self.c, self.d, 0.75, 0.9)
        assert rank_candidates([better_score, better_texture]) == [better_texture, better_score]

    def test_ties_keep_input_order(self):
        first = candidate(self.a, self.b, 0.7, 0.6)
        second = candidate(self.c, self.d, 0.7, 0.6)
        assert rank_candidates([first, second]) == [first, second]

    def test_regions_used_once(self):
        ranked = [
            candidate(self.a, self.b, 0.9, 0.9),
            candidate(self.a, self.c, 0.8, 0.8),
            candidate(self.c, self.d, 0.7, 0.7),
            candidate(self.b, self.d, 0.6, 0.6),
        ]
        selected = select_disjoint_pairs(ranked)
        assert [match.regions for match in selected] == [(self.a, self.b), (self.c, self.d)]

    def test_greedy_is_not_optimal(self):
        """The best single pair is taken even when it blocks a better total."""
        ranked = [
            candidate(self.a, self.b, 0.9, 0.9),
            candidate(self.a, self.c, 0.85, 0.85),
            candidate(self.b, self.d, 0.85, 0.85),
        ]
        selected = select_disjoint_pairs(ranked)
        assert [match.regions for match in selected] == [(self.a, self.b)]


class TestFindMatchingPairs:
    """End-to-end matching on synthetic frames."""

    def test_two_gray_rectangles_pair(self, gray_pair_frame, settings):
        regions = find_color_regions(gray_pair_frame, settings)

        pairs = find_matching_pairs(regions, settings, gray_pair_frame)

        assert len(pairs) == 1
        assert set(pairs[0]) == set(regions)

    def test_different_hues_do_not_pair(self, mismatched_frame, settings):
        regions = find_color_regions(mismatched_frame, settings)

        assert len(regions) == 2
        assert find_matching_pairs(regions, settings, mismatched_frame) == []

    def test_no_regions(self, white_frame, settings):
        assert find_matching_pairs([], settings, white_frame) == []

    def test_pairs_are_disjoint(self, settings):
        frame = four_rect_frame()
        regions = find_color_regions(frame, settings)

        pairs = find_matching_pairs(regions, settings, frame)

        assert len(regions) == 4
        indices = [regions.index(region) for pair in pairs for region in pair]
        assert len(indices) == len(set(indices))
        assert {frozenset(regions.index(r) for r in pair) for pair in pairs} == {
            frozenset((0, 2)), frozenset((1, 3))
        }

    def test_score_gates_hold(self, settings):
        frame = four_rect_frame()
        regions = find_color_regions(frame, settings)

        for match in all_candidates(regions, settings, frame):
            regime = REGIMES[match.regime]
            assert match.score > regime.min_score
            assert match.texture_score > regime.min_texture_score

    def test_texture_computed_once_per_region(self, settings, monkeypatch):
        calls = []
        original = matching.analyze_texture

        def counting(frame, region):
            calls.append(region)
            return original(frame, region)

        monkeypatch.setattr(matching, "analyze_texture", counting)
        frame = four_rect_frame()
        regions = find_color_regions(frame, settings)

        find_matching_pairs(regions, settings, frame)

        assert len(calls) == 4
        assert len(set(calls)) == 4
        for region in regions:
            assert region_texture(region, frame) is region.texture

    def test_deterministic(self, settings):
        frame = four_rect_frame()

        def run():
            regions = find_color_regions(frame, settings)
            pairs = find_matching_pairs(regions, settings, frame)
            scores = [(m.first.box, m.second.box, m.score, m.texture_score)
                      for m in all_candidates(regions, settings, frame)]
            return [(a.box, b.box) for a, b in pairs], scores

        assert run() == run()

    def test_settings_not_mutated(self, gray_pair_frame, settings):
        before = replace(settings)
        regions = find_color_regions(gray_pair_frame, settings)
        find_matching_pairs(regions, settings, gray_pair_frame)
        assert settings == before

    def test_malformed_frame_raises(self, settings):
        with pytest.raises(FrameError):
            find_matching_pairs([make_region(0, 0, 60, 150)], settings, np.zeros((4, 4), dtype=np.uint8))

    def test_textures_stay_bound_to_first_frame(self, gray_pair_frame, settings):
        """Regions passed again with another frame keep the textures sampled first."""
        regions = find_color_regions(gray_pair_frame, settings)
        find_matching_pairs(regions, settings, gray_pair_frame)
        textures = [region.texture for region in regions]

        find_matching_pairs(regions, settings, striped_pair_frame())

        assert [region.texture for region in regions] == textures
        assert all(region.texture.direction is PatternDirection.NONE for region in regions)
