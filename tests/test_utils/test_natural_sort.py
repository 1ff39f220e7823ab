"""Tests for natural filename ordering."""

import random

import pytest

from framestab.utils.natural_sort import frame_index, natural_sort


class TestNaturalSort:
    def test_numeric_not_lexical(self):
        names = ["frame_10.png", "frame_2.png", "frame_1.png"]
        assert natural_sort(names) == ["frame_1.png", "frame_2.png", "frame_10.png"]

    def test_strictly_increasing_for_distinct_numbers(self):
        numbers = random.Random(7).sample(range(0, 50000), 200)
        names = [f"frame_{n}.png" for n in numbers]
        ordered = [frame_index(n) for n in natural_sort(names)]
        assert all(a < b for a, b in zip(ordered, ordered[1:]))

    def test_mixed_padding(self):
        names = ["frame_0100.png", "frame_99.png", "frame_0001.png"]
        assert natural_sort(names) == ["frame_0001.png", "frame_99.png", "frame_0100.png"]

    def test_last_digit_run_wins(self):
        assert frame_index("take2_frame_0010.png") == 10

    def test_no_digits_raises(self):
        with pytest.raises(ValueError):
            natural_sort(["frame_1.png", "frame_final.png"])

    def test_input_not_mutated(self):
        names = ["frame_3.png", "frame_1.png"]
        natural_sort(names)
        assert names == ["frame_3.png", "frame_1.png"]
