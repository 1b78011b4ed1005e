"""
Tests for photo carousel navigation.
"""

import pytest

from client.carousel import Carousel, CarouselPhoto


def _resolve(block, side):
    return f"/uploads/{block['photo_' + side]}"


class TestCarousel:
    def test_for_block_keeps_side_order_and_skips_missing(self):
        block = {"photo_front": "f.png", "photo_left": "l.png", "photo_right": None}

        carousel = Carousel.for_block(block, _resolve)

        assert carousel.photos == [
            CarouselPhoto(url="/uploads/f.png", label="Frente"),
            CarouselPhoto(url="/uploads/l.png", label="Lado Esquerdo"),
        ]
        assert carousel.index == 0

    def test_navigation_wraps_in_both_directions(self):
        carousel = Carousel([CarouselPhoto(str(i), str(i)) for i in range(3)])

        assert carousel.previous().url == "2"
        assert carousel.next().url == "0"
        assert carousel.next().url == "1"
        assert carousel.next().url == "2"
        assert carousel.next().url == "0"

    def test_go_to(self):
        carousel = Carousel([CarouselPhoto("a", "A"), CarouselPhoto("b", "B")])

        assert carousel.go_to(1).url == "b"
        assert carousel.index == 1
        with pytest.raises(IndexError):
            carousel.go_to(2)
        assert carousel.index == 1

    def test_empty_carousel(self):
        carousel = Carousel()

        assert len(carousel) == 0
        with pytest.raises(IndexError):
            carousel.next()
        with pytest.raises(IndexError):
            _ = carousel.current
