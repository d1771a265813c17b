"""Smoke tests for the developer CLI against a small YAML catalog."""

import json
from pathlib import Path

import pytest

from thirdplace.__main__ import main

CATALOG = """\
venues:
  - id: v1
    category: cafe
    coordinates: {lat: 51.5155, lng: -0.0922}
    engagement: {regulars: 12}
  - id: v2
    category: cafe
    coordinates: {lat: 51.52, lng: -0.13}
    engagement: {regulars: 3}
articles:
  - id: a1
    linked_venue_ids: [v1]
    engagement: {views: 40}
"""


@pytest.fixture
def catalog(tmp_path: Path) -> str:
    path = tmp_path / "catalog.yml"
    path.write_text(CATALOG, encoding="utf-8")
    return str(path)


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> object:
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_popular(catalog: str, capsys: pytest.CaptureFixture[str]) -> None:
    out = _run(capsys, "popular", "--catalog", catalog, "--limit", "1")
    assert isinstance(out, dict)
    assert [r["item"]["id"] for r in out["results"]] == ["v1"]
    assert out["map_center"] == {"lat": 51.5155, "lng": -0.0922}


def test_related(catalog: str, capsys: pytest.CaptureFixture[str]) -> None:
    out = _run(capsys, "related", "v1", "--catalog", catalog)
    assert isinstance(out, dict)
    assert [s["item"]["id"] for s in out["similar_venues"]] == ["v2"]
    assert [s["item"]["id"] for s in out["related_articles"]] == ["a1"]


def test_feed(catalog: str, capsys: pytest.CaptureFixture[str]) -> None:
    out = _run(capsys, "feed", "--catalog", catalog, "--seen", "venue")
    assert isinstance(out, dict)
    assert {i["item"]["id"] for i in out["items"]} == {"v1", "v2", "a1"}
    assert out["degradation"] is None


def test_invalid_input_exits_2(catalog: str) -> None:
    with pytest.raises(SystemExit) as info:
        main(["popular", "--catalog", catalog, "--limit", "-1"])
    assert info.value.code == 2


def test_no_source_exits_2(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("thirdplace.config.INDEX_URL", "")
    with pytest.raises(SystemExit) as info:
        main(["trending"])
    assert info.value.code == 2
