"""
Tests for the pixel buffer.
"""

import pytest
import numpy as np
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestConstructors:
    """Test buffer creation."""

    def test_blank(self):
        from scanbinder.utils.pixels import PixelBuffer

        buf = PixelBuffer.blank(4, 3, (10, 20, 30))

        assert buf.size == (4, 3)
        assert buf.get_pixel(3, 2) == (10, 20, 30, 255)

    def test_from_gray_array(self):
        from scanbinder.utils.pixels import PixelBuffer

        gray = np.full((5, 6), 77, dtype=np.uint8)
        buf = PixelBuffer.from_array(gray)

        assert buf.width == 6
        assert buf.height == 5
        assert buf.get_pixel(0, 0) == (77, 77, 77, 255)

    def test_from_rgb_array(self):
        from scanbinder.utils.pixels import PixelBuffer

        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        rgb[1, 0] = [1, 2, 3]
        buf = PixelBuffer.from_array(rgb)

        assert buf.get_pixel(0, 1) == (1, 2, 3, 255)

    def test_from_array_copies(self):
        from scanbinder.utils.pixels import PixelBuffer

        rgb = np.zeros((2, 2, 3), dtype=np.uint8)
        buf = PixelBuffer.from_array(rgb)
        rgb[0, 0] = [255, 255, 255]

        assert buf.get_pixel(0, 0) == (0, 0, 0, 255)

    def test_rejects_bad_shape(self):
        from scanbinder.utils.pixels import PixelBuffer

        with pytest.raises(ValueError):
            PixelBuffer.from_array(np.zeros((2, 2, 2), dtype=np.uint8))
        with pytest.raises(ValueError):
            PixelBuffer(np.zeros((2, 2, 3), dtype=np.uint8))

    def test_pil_round_trip(self):
        from scanbinder.utils.pixels import PixelBuffer

        buf = PixelBuffer.blank(8, 4, (12, 34, 56))
        again = PixelBuffer.from_pil(buf.to_pil())

        assert again == buf


class TestAccess:
    """Test pixel access and copies."""

    def test_set_pixel_returns_copy(self):
        from scanbinder.utils.pixels import PixelBuffer

        buf = PixelBuffer.blank(3, 3)
        changed = buf.set_pixel(1, 1, (0, 0, 0))

        assert buf.get_pixel(1, 1) == (255, 255, 255, 255)
        assert changed.get_pixel(1, 1) == (0, 0, 0, 255)

    def test_copy_region(self):
        from scanbinder.utils.pixels import PixelBuffer

        data = np.arange(10 * 10, dtype=np.uint8).reshape(10, 10)
        buf = PixelBuffer.from_array(data)
        region = buf.copy_region(2, 3, 4, 5)

        assert region.size == (4, 5)
        assert region.get_pixel(0, 0)[0] == data[3, 2]

    def test_copy_region_clamps(self):
        from scanbinder.utils.pixels import PixelBuffer

        buf = PixelBuffer.blank(10, 10)

        assert buf.copy_region(-5, -5, 10, 10).size == (5, 5)
        assert buf.copy_region(8, 8, 10, 10).size == (2, 2)
        assert buf.copy_region(20, 20, 5, 5).is_empty()

    def test_luminance(self):
        from scanbinder.utils.pixels import PixelBuffer

        buf = PixelBuffer.blank(2, 2, (30, 60, 90))

        np.testing.assert_allclose(buf.luminance(), 60.0)

    def test_equality(self):
        from scanbinder.utils.pixels import PixelBuffer

        a = PixelBuffer.blank(2, 2)
        assert a == a.copy()
        assert a != PixelBuffer.blank(2, 3)
        assert a != a.set_pixel(0, 0, (1, 1, 1))

    def test_unhashable(self):
        from scanbinder.utils.pixels import PixelBuffer

        with pytest.raises(TypeError):
            hash(PixelBuffer.blank(2, 2))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
