"""Tests for dimension normalization and image URL building."""

from __future__ import annotations

import random
from urllib.parse import parse_qs, urlsplit

import pytest

from shigen.core.generation.images import (
    build_image_batch,
    build_image_url,
    normalize_dimensions,
)
from shigen.core.generation.models import ImageRequestSpec

BASE = "https://image.example.test"


def _query(url: str) -> dict[str, str]:
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


class TestNormalizeDimensions:
    @pytest.mark.parametrize(
        ("ratio", "expected"),
        [
            ("1:1", (1024, 1024)),
            ("16:9", (1024, 576)),
            ("9:16", (576, 1024)),
            ("4:3", (1024, 768)),
            ("3:2", (1024, 680)),
            ("21:9", (1024, 432)),
        ],
    )
    def test_known_ratios(self, ratio: str, expected: tuple[int, int]) -> None:
        assert normalize_dimensions(ratio) == expected

    @pytest.mark.parametrize("ratio", [None, "", "wide", "16-9", "a:b", "0:1", "-4:3", "1:2:3"])
    def test_malformed_defaults_to_square(self, ratio: str | None) -> None:
        assert normalize_dimensions(ratio) == (512, 512)

    def test_results_are_multiples_of_eight(self) -> None:
        for w in range(1, 40):
            for h in range(1, 40):
                width, height = normalize_dimensions(f"{w}:{h}")
                assert width % 8 == 0
                assert height % 8 == 0
                assert max(width, height) == 1024

    def test_extreme_ratio_keeps_minimum_side(self) -> None:
        assert normalize_dimensions("1000:1") == (1024, 8)


class TestBuildImageUrl:
    def test_explicit_seed_is_deterministic(self) -> None:
        spec = ImageRequestSpec(prompt="a red fox, snow", model="flux", seed=42, aspect_ratio="16:9")
        assert build_image_url(spec, base_url=BASE) == build_image_url(spec, base_url=BASE)

    def test_url_layout(self) -> None:
        spec = ImageRequestSpec(prompt="a red fox/snow?", model="flux", seed=7)
        url = build_image_url(spec, base_url=BASE)
        parts = urlsplit(url)
        assert parts.path == "/prompt/a%20red%20fox%2Fsnow%3F"
        assert _query(url) == {
            "model": "flux",
            "width": "512",
            "height": "512",
            "seed": "7",
            "safe": "true",
            "nologo": "true",
        }

    def test_optional_parameters(self) -> None:
        spec = ImageRequestSpec(
            prompt="castle",
            model="turbo",
            seed=1,
            source_image_url="https://cdn.example.test/a.png?x=1",
            negative_prompt="blurry, text",
            safe=False,
        )
        query = _query(build_image_url(spec, base_url=BASE))
        assert query["image"] == "https://cdn.example.test/a.png?x=1"
        assert query["negative_prompt"] == "blurry, text"
        assert query["safe"] == "false"

    def test_random_seed_only_changes_seed(self) -> None:
        spec = ImageRequestSpec(prompt="castle", model="flux")
        first = build_image_url(spec, base_url=BASE, rng=random.Random(1))
        second = build_image_url(spec, base_url=BASE, rng=random.Random(2))
        q1, q2 = _query(first), _query(second)
        assert q1.pop("seed") != q2.pop("seed")
        assert q1 == q2
        assert urlsplit(first).path == urlsplit(second).path

    def test_random_seed_range(self) -> None:
        spec = ImageRequestSpec(prompt="castle", model="flux")
        rng = random.Random(0)
        for _ in range(50):
            seed = int(_query(build_image_url(spec, base_url=BASE, rng=rng))["seed"])
            assert 0 <= seed < 1_000_000

    def test_negative_seed_rejected(self) -> None:
        with pytest.raises(ValueError):
            ImageRequestSpec(prompt="castle", model="flux", seed=-1)


class TestBuildImageBatch:
    def test_seeds_increment(self) -> None:
        spec = ImageRequestSpec(prompt="castle", model="flux", seed=100)
        urls = build_image_batch(spec, 3, base_url=BASE)
        assert [_query(u)["seed"] for u in urls] == ["100", "101", "102"]

    def test_random_base_seed_is_shared(self) -> None:
        spec = ImageRequestSpec(prompt="castle", model="flux")
        urls = build_image_batch(spec, 4, base_url=BASE, rng=random.Random(3))
        seeds = [int(_query(u)["seed"]) for u in urls]
        assert seeds == list(range(seeds[0], seeds[0] + 4))

    def test_count_must_be_positive(self) -> None:
        spec = ImageRequestSpec(prompt="castle", model="flux", seed=1)
        with pytest.raises(ValueError):
            build_image_batch(spec, 0)
