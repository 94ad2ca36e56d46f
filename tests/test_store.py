"""
Music Inventory - Entity Store Tests

Tests for music_inventory/store.py against a real temporary SQLite file:
- insert / find_by_id / find_all ordering / count
- update and remove (including missing and malformed ids)
- dependents lookups for authors and categories
- populate_song resolving author and categories in selection order
- foreign key enforcement and StorageError wrapping
"""

import pytest

from music_inventory.exceptions import StorageError
from music_inventory.models import AUTHOR, CATEGORY, SONG, Author, Category, Song
from music_inventory.store import CatalogStore, parse_id
from tests.helpers import PNG_BYTES, run


class TestParseId:
    def test_int(self):
        assert parse_id(5) == 5

    def test_numeric_string(self):
        assert parse_id(" 12 ") == 12

    def test_garbage(self):
        assert parse_id("abc") is None

    def test_none(self):
        assert parse_id(None) is None

    def test_bool_rejected(self):
        assert parse_id(True) is None

    def test_beyond_integer_column_range(self):
        assert parse_id("99999999999999999999") is None
        assert parse_id(2**63) is None
        assert parse_id(-(2**63) - 1) is None

    def test_integer_column_bounds_accepted(self):
        assert parse_id(str(2**63 - 1)) == 2**63 - 1
        assert parse_id(-(2**63)) == -(2**63)


class TestInsertAndFind:
    def test_insert_returns_model_with_id(self, store):
        author = run(store.insert(AUTHOR, {"first_name": "Nina", "family_name": "Simone"}))
        assert isinstance(author, Author)
        assert author.id > 0
        assert author.url == f"/catalog/author/{author.id}"

    def test_find_by_id(self, store, make_category):
        created = make_category("Jazz")
        found = run(store.find_by_id(CATEGORY, created.id))
        assert found == created

    def test_find_by_id_missing(self, store):
        assert run(store.find_by_id(CATEGORY, 999)) is None

    def test_find_by_id_malformed(self, store):
        assert run(store.find_by_id(CATEGORY, "not-an-id")) is None

    def test_find_all_sorted_by_name(self, store, make_category):
        for name in ["Rock", "Blues", "Jazz"]:
            make_category(name)
        names = [c.name for c in run(store.find_all(CATEGORY))]
        assert names == ["Blues", "Jazz", "Rock"]

    def test_authors_sorted_by_family_name(self, store, make_author):
        make_author("Miles", "Davis")
        make_author("Nina", "Simone")
        make_author("Chet", "Baker")
        names = [a.family_name for a in run(store.find_all(AUTHOR))]
        assert names == ["Baker", "Davis", "Simone"]

    def test_find_one_by_name(self, store, make_category):
        jazz = make_category("Jazz")
        assert run(store.find_one(CATEGORY, name="Jazz")) == jazz
        assert run(store.find_one(CATEGORY, name="Polka")) is None

    def test_filter_on_unknown_column(self, store):
        with pytest.raises(ValueError):
            run(store.find_by_filter(CATEGORY, colour="red"))

    def test_unknown_kind(self, store):
        with pytest.raises(ValueError):
            run(store.find_all("album"))

    def test_count(self, store, make_category):
        assert run(store.count(CATEGORY)) == 0
        make_category("A")
        make_category("B")
        assert run(store.count(CATEGORY)) == 2


class TestSongs:
    def test_song_roundtrip(self, store, make_author, make_category):
        author = make_author()
        a, b = make_category("A"), make_category("B")
        song = run(
            store.insert(
                SONG,
                {
                    "title": "Killer Queen",
                    "author_id": author.id,
                    "summary": "Sheer Heart Attack",
                    "price": 0.99,
                    "stock": 7,
                    "category_ids": [b.id, a.id],
                    "image_data": PNG_BYTES,
                    "image_content_type": "image/png",
                },
            )
        )
        found = run(store.find_by_id(SONG, song.id))
        assert isinstance(found, Song)
        assert found.category_ids == [b.id, a.id]
        assert found.image_data == PNG_BYTES
        assert found.image_url == f"/catalog/song/{song.id}/image"

    def test_populate_song_resolves_relations(self, store, make_author, make_category, make_song):
        author = make_author("Nina", "Simone")
        a, b = make_category("A"), make_category("B")
        song = make_song(author_id=author.id, category_ids=[b.id, a.id])

        resolved_author, categories = run(store.populate_song(song))
        assert resolved_author == author
        assert all(isinstance(c, Category) for c in categories)
        assert [c.name for c in categories] == ["B", "A"]

    def test_find_many_skips_missing(self, store, make_category):
        a = make_category("A")
        found = run(store.find_many(CATEGORY, [999, a.id, "x"]))
        assert found == [a]

    def test_song_requires_existing_author(self, store):
        with pytest.raises(StorageError):
            run(
                store.insert(
                    SONG,
                    {
                        "title": "Orphan",
                        "author_id": 12345,
                        "summary": "s",
                        "price": 1,
                        "stock": 1,
                    },
                )
            )


class TestDependents:
    def test_songs_by_author(self, store, make_author, make_song):
        queen = make_author("Freddie", "Mercury")
        other = make_author("Nina", "Simone")
        make_song("Song 1", author_id=queen.id)
        make_song("Song 2", author_id=other.id)
        titles = [s.title for s in run(store.find_dependents(AUTHOR, queen.id))]
        assert titles == ["Song 1"]

    def test_songs_by_category(self, store, make_category, make_song):
        rock, jazz = make_category("Rock"), make_category("Jazz")
        make_song("Both", category_ids=[rock.id, jazz.id])
        make_song("Only jazz", category_ids=[jazz.id])
        make_song("None")
        titles = [s.title for s in run(store.find_dependents(CATEGORY, rock.id))]
        assert titles == ["Both"]
        titles = [s.title for s in run(store.find_dependents(CATEGORY, jazz.id))]
        assert titles == ["Both", "Only jazz"]

    def test_category_id_prefix_does_not_match(self, store, make_category, make_song):
        """Category 1 must not match a song that only has category 11."""
        categories = [make_category(f"C{i}") for i in range(11)]
        eleventh = categories[10]
        make_song("Eleven", category_ids=[eleventh.id])
        assert run(store.find_dependents(CATEGORY, categories[0].id)) == []

    def test_songs_have_no_dependents(self, store, make_song):
        song = make_song()
        assert run(store.find_dependents(SONG, song.id)) == []


class TestUpdateAndRemove:
    def test_update(self, store, make_category):
        cat = make_category("Rock")
        assert run(store.update(CATEGORY, cat.id, {"name": "Metal"})) is True
        assert run(store.find_by_id(CATEGORY, cat.id)).name == "Metal"

    def test_update_missing(self, store):
        assert run(store.update(CATEGORY, 999, {"name": "X"})) is False

    def test_update_ignores_unknown_fields(self, store, make_category):
        cat = make_category("Rock")
        assert run(store.update(CATEGORY, cat.id, {"colour": "red"})) is False

    def test_remove(self, store, make_category):
        cat = make_category("Rock")
        assert run(store.remove(CATEGORY, cat.id)) is True
        assert run(store.find_by_id(CATEGORY, cat.id)) is None

    def test_remove_missing_is_false(self, store):
        assert run(store.remove(CATEGORY, 999)) is False

    def test_remove_malformed_id(self, store):
        assert run(store.remove(CATEGORY, "abc")) is False

    def test_oversized_id_is_missing(self, store, make_category):
        make_category("Rock")
        huge = "99999999999999999999"
        assert run(store.find_by_id(SONG, huge)) is None
        assert run(store.find_dependents(CATEGORY, huge)) == []
        assert run(store.remove(CATEGORY, huge)) is False
        assert run(store.count(CATEGORY)) == 1


class TestStorageErrors:
    def test_missing_schema_raises_storage_error(self, tmp_path):
        broken = CatalogStore(tmp_path / "empty.db")
        with pytest.raises(StorageError) as exc_info:
            run(broken.find_all(CATEGORY))
        assert "no such table" in exc_info.value.details

    def test_oversized_integer_value_raises_storage_error(self, store, make_author):
        author = make_author()
        with pytest.raises(StorageError):
            run(
                store.insert(
                    SONG,
                    {
                        "title": "Overflow",
                        "author_id": author.id,
                        "summary": "s",
                        "price": 1,
                        "stock": 2**70,
                    },
                )
            )
        assert run(store.count(SONG)) == 0
