import json

from app.schemas.place import CachedPlace
from app.utils.disk_cache import PlaceDetailsDiskCache


def _place(place_id: str = "p1", **fields) -> CachedPlace:
    return CachedPlace.model_validate({"place_id": place_id, "name": "重庆火锅", **fields})


def test_missing_file_reads_as_empty(tmp_path):
    cache = PlaceDetailsDiskCache(tmp_path / "place-details.json")
    assert cache.get("p1") is None
    assert not cache.path.exists()


def test_put_rewrites_whole_file(tmp_path):
    path = tmp_path / "data" / "place-details.json"
    cache = PlaceDetailsDiskCache(path)
    cache.put("p1", _place("p1", rating=4.5))
    cache.put("p2", _place("p2"))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"p1", "p2"}
    assert data["p1"]["rating"] == 4.5
    # None fields are not written
    assert "website" not in data["p1"]


def test_entries_survive_a_new_instance(tmp_path):
    path = tmp_path / "place-details.json"
    PlaceDetailsDiskCache(path).put("p1", _place("p1", formatted_address="Av. Reforma 1"))

    reloaded = PlaceDetailsDiskCache(path)
    place = reloaded.get("p1")
    assert place is not None
    assert place.formatted_address == "Av. Reforma 1"


def test_unknown_provider_keys_are_kept(tmp_path):
    path = tmp_path / "place-details.json"
    path.write_text(
        json.dumps({"p1": {"place_id": "p1", "name": "A", "thumbnail": "https://x/t.jpg"}}),
        encoding="utf-8",
    )
    cache = PlaceDetailsDiskCache(path)
    cache.put("p2", _place("p2"))

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["p1"]["thumbnail"] == "https://x/t.jpg"


def test_corrupt_file_is_ignored(tmp_path):
    path = tmp_path / "place-details.json"
    path.write_text("{not json", encoding="utf-8")
    cache = PlaceDetailsDiskCache(path)
    assert cache.get("p1") is None


def test_find_by_name(tmp_path):
    cache = PlaceDetailsDiskCache(tmp_path / "place-details.json")
    cache.put("p1", _place("p1"))
    assert cache.find_by_name("重庆火锅").place_id == "p1"
    assert cache.find_by_name("other") is None
    assert cache.find_by_name("") is None
