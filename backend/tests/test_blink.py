"""Tests for blink frequency estimation and the tracker pool slot policy."""
from __future__ import annotations

import numpy as np
import pytest

from cv import config
from cv.blink import BlinkTrackerPool, estimate_blink_frequency, find_light_regions
from cv.types import Point, Rect
from tests.fakes import bright_square, hollow_square


# ---------- Frequency ----------

class TestEstimateBlinkFrequency:
    def test_empty_history(self):
        assert estimate_blink_frequency([], shutter_fps=250) == 0.0

    def test_no_transitions(self):
        assert estimate_blink_frequency([True] * 30, shutter_fps=250) == 0.0
        assert estimate_blink_frequency([False] * 30, shutter_fps=250) == 0.0

    def test_alternating_snaps_to_100(self):
        # 15 on->off transitions over 30 samples at 250 fps -> 125 Hz -> 100
        history = [True, False] * 15
        assert estimate_blink_frequency(history, shutter_fps=250) == 100.0

    def test_tie_goes_to_lower_frequency(self):
        # 3 transitions over 10 samples at 250 fps -> 75 Hz, equidistant from 50 and 100
        history = [True, False, True, False, True, False, False, False, False, False]
        assert estimate_blink_frequency(history, shutter_fps=250) == 50.0

    def test_only_last_30_samples_count(self):
        history = [True, False] * 20 + [True] * 30
        assert estimate_blink_frequency(history, shutter_fps=250) == 0.0

    def test_result_is_always_standard(self):
        rng = np.random.default_rng(7)
        for _ in range(50):
            history = list(rng.random(30) > 0.5)
            freq = estimate_blink_frequency(history, shutter_fps=250)
            assert freq == 0.0 or freq in config.LED_STANDARD_FREQUENCIES_HZ

    def test_shutter_rate_is_injectable(self):
        history = [True, False] * 15
        # 15 * 400 / 30 = 200
        assert estimate_blink_frequency(history, shutter_fps=400) == 200.0


# ---------- Region filter ----------

class TestFindLightRegions:
    def _gray(self, frame):
        return frame[:, :, 0].copy()

    def test_accepts_led_sized_square(self):
        regions = find_light_regions(self._gray(bright_square(value=255)))
        assert regions == [Rect(150, 110, 20, 20)]

    def test_rejects_dim_light(self):
        assert find_light_regions(self._gray(bright_square(value=200))) == []

    def test_rejects_too_small_and_too_large(self):
        assert find_light_regions(self._gray(bright_square(size=8, value=255))) == []
        assert find_light_regions(self._gray(bright_square(size=40, value=255))) == []

    def test_rejects_elongated(self):
        frame = np.zeros((240, 320), dtype=np.uint8)
        frame[100:110, 100:140] = 255
        assert find_light_regions(frame) == []


# ---------- Pool ----------

class TestBlinkTrackerPool:
    def test_pool_has_fixed_size(self):
        pool = BlinkTrackerPool()
        assert len(pool.slots) == 3
        assert all(slot.region is None for slot in pool.slots)

    def test_first_light_takes_first_slot(self):
        pool = BlinkTrackerPool()
        pool.update(bright_square(center=(100, 100), value=255))
        assert pool.slots[0].region == Rect(90, 90, 20, 20)
        assert list(pool.slots[0].history) == [True]
        assert pool.slots[1].region is None

    def test_nearby_light_stays_in_same_slot(self):
        pool = BlinkTrackerPool()
        pool.update(bright_square(center=(100, 100), value=255))
        pool.update(bright_square(center=(110, 104), value=255))
        assert len(pool.slots[0].history) == 2
        assert pool.slots[0].last_center == Point(110.0, 104.0)
        assert pool.slots[1].region is None

    def test_distant_light_takes_next_empty_slot(self):
        pool = BlinkTrackerPool()
        pool.update(bright_square(center=(50, 50), value=255))
        pool.update(bright_square(center=(250, 180), value=255))
        assert pool.slots[0].last_center == Point(50.0, 50.0)
        assert pool.slots[1].last_center == Point(250.0, 180.0)

    def test_hollow_light_reads_as_off(self):
        pool = BlinkTrackerPool()
        pool.update(hollow_square(center=(100, 100)))
        assert list(pool.slots[0].history) == [False]

    def test_blinking_light_gets_frequency(self):
        pool = BlinkTrackerPool(shutter_fps=250)
        for _ in range(15):
            pool.update(bright_square(center=(100, 100), value=255))
            pool.update(hollow_square(center=(100, 100)))
        assert pool.slots[0].frequency_hz == 100.0

    def test_history_is_capped(self):
        pool = BlinkTrackerPool()
        for _ in range(40):
            pool.update(bright_square(center=(100, 100), value=255))
        assert len(pool.slots[0].history) == 30

    def test_full_pool_evicts_slot_with_fewest_off_samples(self):
        pool = BlinkTrackerPool()
        centers = [Point(20.0, 20.0), Point(300.0, 20.0), Point(20.0, 220.0)]
        off_counts = [3, 1, 2]
        for slot, center, offs in zip(pool.slots, centers, off_counts):
            slot.region = Rect(int(center.x) - 10, int(center.y) - 10, 20, 20)
            slot.last_center = center
            slot.history.extend([False] * offs + [True] * 5)

        pool.update(bright_square(center=(160, 120), value=255))

        evicted = pool.slots[1]
        assert evicted.last_center == Point(160.0, 120.0)
        assert list(evicted.history) == [True]
        assert len(pool.slots[0].history) == 8
        assert len(pool.slots[2].history) == 7

    def test_slots_survive_frames_without_lights(self, blank_frame):
        pool = BlinkTrackerPool()
        pool.update(bright_square(center=(100, 100), value=255))
        pool.update(blank_frame)
        assert pool.slots[0].region is not None
        assert len(pool.slots[0].history) == 1

    def test_snapshot(self):
        pool = BlinkTrackerPool()
        pool.update(bright_square(center=(100, 100), value=255))
        snap = pool.snapshot()
        assert [s.slot for s in snap] == [1, 2, 3]
        assert snap[0].region == (90, 90, 20, 20)
        assert snap[0].samples == 1
        assert snap[1].region is None

    def test_draw_labels_with_frequency(self):
        pool = BlinkTrackerPool()
        frame = bright_square(center=(100, 100), value=255)
        pool.update(frame)
        out = pool.draw(frame.copy())
        assert not np.array_equal(out, frame)

    @pytest.mark.parametrize("value", [0, 120])
    def test_dark_frames_leave_pool_empty(self, value):
        pool = BlinkTrackerPool()
        pool.update(np.full((240, 320, 3), value, dtype=np.uint8))
        assert all(slot.region is None for slot in pool.slots)
