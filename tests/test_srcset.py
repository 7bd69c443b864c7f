"""
Tests for srcset resolution preference parsing.
"""

from image_harvester.srcset import parse_descriptor, select_best_candidate


class TestSelectBestCandidate:
    """Test highest-resolution selection."""

    def test_picks_widest_candidate(self):
        """Test that the widest candidate is chosen."""
        assert select_best_candidate("small.jpg 320w, large.jpg 1280w, medium.jpg 640w") == "large.jpg"

    def test_ties_go_to_first_listed(self):
        """Test that ties keep source order."""
        assert select_best_candidate("a.jpg 100w, b.jpg 300w, c.jpg 300w") == "b.jpg"

    def test_density_descriptors_use_leading_integer(self):
        """Test density descriptors by their leading integer."""
        assert select_best_candidate("one.jpg 1x, two.jpg 2x") == "two.jpg"

    def test_missing_widths_default_to_zero(self):
        """Test candidates without descriptors."""
        # With every width 0 the first entry wins
        assert select_best_candidate("first.jpg, second.jpg") == "first.jpg"

    def test_unparsable_width_defaults_to_zero(self):
        """Test that unparsable widths count as zero."""
        assert select_best_candidate("bad.jpg wide, good.jpg 10w") == "good.jpg"

    def test_single_entry_without_descriptor(self):
        """Test a single bare locator."""
        assert select_best_candidate("only.png") == "only.png"

    def test_empty_entries_are_dropped(self):
        """Test that blank entries are ignored."""
        assert select_best_candidate(" , ,hero.webp 800w,") == "hero.webp"

    def test_empty_descriptor_returns_none(self):
        """Test empty descriptors."""
        assert select_best_candidate("") is None
        assert select_best_candidate(None) is None
        assert select_best_candidate(" , , ") is None

    def test_non_string_descriptor_returns_none(self):
        """Test that a non-string descriptor yields None."""
        assert select_best_candidate(["a.jpg 10w"]) is None


class TestParseDescriptor:
    """Test candidate splitting."""

    def test_parses_locator_and_width(self):
        """Test splitting entries into locator and width."""
        candidates = parse_descriptor("a.jpg 100w,  b.jpg   2x")
        assert [(c.locator, c.width) for c in candidates] == [("a.jpg", 100), ("b.jpg", 2)]
