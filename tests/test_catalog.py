"""Tests for catalog parsing and index helpers."""

from __future__ import annotations

import json
import logging

import pytest

from jitplay.services.catalog import (
    PLACEHOLDER_COVER,
    Catalog,
    CatalogError,
    Track,
    load_catalog,
    parse_catalog,
    track_from_record,
)


def _song(track_id: str, title: str = "Song", **extra) -> dict[str, object]:
    record: dict[str, object] = {
        "trackId": track_id,
        "title": title,
        "artist": "Band",
        "source": "netease",
    }
    record.update(extra)
    return record


def test_parse_catalog_accepts_songs_object() -> None:
    catalog = parse_catalog({"songs": [_song("1"), _song("2", title="Other")]})
    assert len(catalog) == 2
    assert [track.id for track in catalog] == ["1", "2"]
    assert catalog[1].title == "Other"


def test_parse_catalog_accepts_bare_list() -> None:
    catalog = parse_catalog([_song("1")])
    assert catalog[0].source == "netease"
    assert catalog[0].default_bitrate == 320


@pytest.mark.parametrize("payload", [{"tracks": []}, "songs", 7, None])
def test_parse_catalog_rejects_other_shapes(payload) -> None:
    with pytest.raises(CatalogError):
        parse_catalog(payload)


def test_parse_catalog_skips_duplicates_and_non_objects(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        catalog = parse_catalog(
            {"songs": [_song("1"), "junk", _song("1", title="Again"), _song("2")]}
        )
    assert [track.id for track in catalog] == ["1", "2"]
    assert catalog[0].title == "Song"
    assert len(caplog.records) == 2


def test_parse_catalog_keeps_entries_without_id(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        catalog = parse_catalog([_song(""), _song("")])
    assert len(catalog) == 2
    assert all(track.id == "" for track in catalog)
    assert any("without track id" in r.message for r in caplog.records)


def test_track_from_record_defaults() -> None:
    track = track_from_record({"trackId": 1901371647})
    assert track == Track(
        id="1901371647",
        title="Unknown title",
        artist="Unknown artist",
        source="netease",
        default_bitrate=320,
        cover_ref=PLACEHOLDER_COVER,
    )


def test_track_from_record_accepts_alternate_keys() -> None:
    track = track_from_record(
        {
            "id": " 9 ",
            "title": "T",
            "artist": "A",
            "source": " KuGou ",
            "bitrate": 128,
            "cover_ref": "covers/9.png",
        }
    )
    assert track.id == "9"
    assert track.source == "kugou"
    assert track.default_bitrate == 128
    assert track.cover_ref == "covers/9.png"


def test_track_from_record_normalizes_bitrate() -> None:
    assert track_from_record(_song("1", br="bad")).default_bitrate == 320
    assert track_from_record(_song("1", br=5000)).default_bitrate == 999


def test_catalog_wrap_handles_both_directions() -> None:
    catalog = parse_catalog([_song("1"), _song("2"), _song("3")])
    assert catalog.wrap(3) == 0
    assert catalog.wrap(-1) == 2
    assert catalog.wrap(7) == 1


def test_catalog_wrap_empty_raises() -> None:
    with pytest.raises(IndexError):
        Catalog([]).wrap(0)


def test_catalog_with_source_rewrites_every_track() -> None:
    catalog = parse_catalog([_song("1"), _song("2")])
    switched = catalog.with_source("Tencent")
    assert {track.source for track in switched} == {"tencent"}
    assert {track.source for track in catalog} == {"netease"}
    assert [track.id for track in switched] == ["1", "2"]
    assert switched[1:] == (switched[1],)


def test_load_catalog_reads_file(tmp_path) -> None:
    path = tmp_path / "music_data.json"
    path.write_text(json.dumps({"songs": [_song("1")]}), encoding="utf-8")
    catalog = load_catalog(path)
    assert [track.id for track in catalog] == ["1"]


def test_load_catalog_missing_file(tmp_path) -> None:
    with pytest.raises(CatalogError, match="Cannot read"):
        load_catalog(tmp_path / "missing.json")


def test_load_catalog_invalid_json(tmp_path) -> None:
    path = tmp_path / "music_data.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError, match="not valid JSON"):
        load_catalog(path)
