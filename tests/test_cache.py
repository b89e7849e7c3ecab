"""Tests for the local result cache."""

import json

from conftest import make_answers, make_product
from skin_matcher.cache import ResultCache, now_millis
from skin_matcher.schema import RecommendationResult, ScoredProduct


def _result(timestamp: int = 1_700_000_000_000) -> RecommendationResult:
    return RecommendationResult(
        answers=make_answers(concerns=["acne", "dark_spots"]),
        recommendations=[
            ScoredProduct(product=make_product(id="s1", extra_field="kept"), score=6,
                          reasons=["Targets acne and breakouts effectively"]),
        ],
        timestamp=timestamp,
    )


class TestResultCache:
    """Tests for ResultCache."""

    def test_save_and_load(self, tmp_path):
        cache = ResultCache(tmp_path / "results")
        result = _result()

        path = cache.save("session-1", result)

        assert path.exists()
        assert cache.load("session-1") == result

    def test_saved_file_is_flat_json(self, tmp_path):
        cache = ResultCache(tmp_path)
        path = cache.save("session-1", _result())

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["timestamp"] == 1_700_000_000_000
        assert data["answers"]["concerns"] == ["acne", "dark_spots"]
        assert data["recommendations"][0]["product"]["extra_field"] == "kept"

    def test_load_missing(self, tmp_path):
        assert ResultCache(tmp_path).load("nobody") is None

    def test_load_corrupt_file(self, tmp_path):
        cache = ResultCache(tmp_path)
        cache.path_for("bad").write_text("{broken", encoding="utf-8")
        assert cache.load("bad") is None

    def test_load_invalid_utf8(self, tmp_path):
        cache = ResultCache(tmp_path)
        cache.path_for("s").write_bytes(b"\xff\xfe\x00garbage")
        assert cache.load("s") is None

    def test_session_id_is_sanitized(self, tmp_path):
        cache = ResultCache(tmp_path)
        path = cache.path_for("../../etc/passwd")
        assert path.parent == tmp_path
        assert "/" not in path.name

    def test_clear(self, tmp_path):
        cache = ResultCache(tmp_path)
        cache.save("s", _result())
        assert cache.clear("s")
        assert not cache.clear("s")
        assert cache.load("s") is None


class TestStaleness:
    """Tests for ResultCache.is_stale."""

    def test_no_max_age_never_stale(self):
        assert not ResultCache.is_stale(_result(timestamp=0), None)

    def test_stale_after_max_age(self):
        result = _result(timestamp=1_000)
        assert not ResultCache.is_stale(result, 60, now=61_000)
        assert ResultCache.is_stale(result, 60, now=61_001)

    def test_now_millis_is_milliseconds(self):
        # Any time after 2020 in milliseconds has 13 digits
        assert len(str(now_millis())) == 13
