"""
Unit tests for the particle field and palettes.

Run with: python -m pytest tests/test_particle.py -v
"""

import numpy as np
import pytest

from particle import Palette, Particle, ParticleField, load_palettes


@pytest.fixture
def field(rng):
    return ParticleField({"particle_count": 50, "particle_size": 2.0, "size_jitter": 1.0}, 400, 300, rng)


class TestParticleField:
    def test_array_shapes(self, field):
        assert field.positions.shape == (50, 3)
        assert field.sizes.shape == (50,)
        assert field.phases.shape == (50,)
        assert field.colors.shape == (50, 3)
        assert field.screen_xy.shape == (50, 2)
        assert field.visible.dtype == np.bool_

    def test_target_index_is_identity(self, field):
        np.testing.assert_array_equal(field.target_index, np.arange(50))

    def test_start_positions_cover_viewport(self, field):
        assert np.all(np.abs(field.positions[:, 0]) <= 200)
        assert np.all(np.abs(field.positions[:, 1]) <= 150)

    def test_sizes_within_jitter(self, field):
        assert np.all(field.sizes >= 2.0)
        assert np.all(field.sizes < 3.0)

    def test_invalid_particle_count_raises(self, rng):
        with pytest.raises(ValueError, match="particle_count"):
            ParticleField({"particle_count": 0}, 100, 100, rng)

    def test_recolor_uses_palette(self, field, rng):
        palette = Palette("p", ["#ff0000", "#00ff00"])
        field.recolor(palette, rng)
        allowed = {(255, 0, 0), (0, 255, 0)}
        assert {tuple(int(c) for c in row) for row in field.colors} <= allowed
        np.testing.assert_array_equal(field.colors, palette.colors[field.palette_index])

    def test_particle_snapshot(self, field, rng):
        field.recolor(Palette("p", [[1, 2, 3]]), rng)
        snapshot = field.particle(3)
        assert isinstance(snapshot, Particle)
        assert snapshot.index == 3
        assert snapshot.target_index == 3
        assert snapshot.color == (1, 2, 3)
        assert snapshot.position == pytest.approx(tuple(field.positions[3]))
        with pytest.raises(AttributeError):
            snapshot.size = 10.0


class TestPalette:
    def test_weights_are_normalised(self):
        palette = Palette("p", ["#000000", "#ffffff"], [3, 1])
        assert palette.weights == pytest.approx([0.75, 0.25])

    def test_zero_weight_color_is_never_drawn(self, rng):
        palette = Palette("p", ["#000000", "#ffffff"], [1, 0])
        assert np.all(palette.draw(500, rng) == 0)

    def test_weighted_draw_favours_primary(self, rng):
        palette = Palette("p", ["#4285f4", "#9b72cb", "#d96570"], [8, 1, 1])
        drawn = palette.draw(5000, rng)
        assert np.mean(drawn == 0) > 0.7

    @pytest.mark.parametrize(
        "colors,weights",
        [
            ([], None),
            (["#000000"], [1, 2]),
            (["#000000", "#ffffff"], [-1, 2]),
            (["#000000"], [0]),
            (["nope"], None),
        ],
    )
    def test_invalid_palettes_raise(self, colors, weights):
        with pytest.raises(ValueError):
            Palette("bad", colors, weights)

    def test_load_palettes_adds_defaults(self):
        palettes = load_palettes({"gold": ["#ffd700"]})
        assert set(palettes) == {"gold", "shape", "text"}
        assert len(palettes["gold"]) == 1

    def test_load_palettes_accepts_weighted_entries(self):
        palettes = load_palettes({"text": {"colors": ["#000000", "#ffffff"], "weights": [1, 3]}})
        assert palettes["text"].weights == pytest.approx([0.25, 0.75])
