"""
Music Inventory - Cascading Integrity Checker Tests

Tests for music_inventory/integrity.py:
- Authors and categories referenced by songs cannot be deleted
- Unreferenced records are removed (exactly one record)
- Deleting a record that no longer exists is a no-op
- Lookup failures propagate and nothing is deleted
"""

from unittest.mock import patch

import pytest

from music_inventory.exceptions import StorageError
from music_inventory.integrity import check_delete, delete_unless_referenced
from music_inventory.models import AUTHOR, CATEGORY, SONG
from tests.helpers import run


class TestCheckDelete:
    def test_author_with_songs_is_blocked(self, store, make_author, make_song):
        author = make_author()
        make_song("One", author_id=author.id)
        make_song("Two", author_id=author.id)

        check = run(check_delete(store, AUTHOR, author.id))
        assert check.exists
        assert check.blocked
        assert [s.title for s in check.dependents] == ["One", "Two"]

    def test_unreferenced_category(self, store, make_category):
        cat = make_category("Polka")
        check = run(check_delete(store, CATEGORY, cat.id))
        assert check.exists
        assert not check.blocked

    def test_missing_record(self, store):
        check = run(check_delete(store, CATEGORY, 404))
        assert not check.exists
        assert not check.blocked


class TestDeleteUnlessReferenced:
    def test_blocked_author_left_untouched(self, store, make_author, make_song):
        author = make_author()
        make_song(author_id=author.id)

        outcome = run(delete_unless_referenced(store, AUTHOR, author.id))
        assert outcome.blocked
        assert not outcome.removed
        assert run(store.find_by_id(AUTHOR, author.id)) == author
        assert run(store.count(SONG)) == 1

    def test_blocked_category_left_untouched(self, store, make_category, make_song):
        rock = make_category("Rock")
        make_song(category_ids=[rock.id])

        outcome = run(delete_unless_referenced(store, CATEGORY, rock.id))
        assert outcome.blocked
        assert run(store.count(CATEGORY)) == 1

    def test_unreferenced_author_removed(self, store, make_author):
        keep = make_author("Nina", "Simone")
        drop = make_author("Miles", "Davis")

        outcome = run(delete_unless_referenced(store, AUTHOR, drop.id))
        assert outcome.removed
        assert run(store.count(AUTHOR)) == 1
        assert run(store.find_by_id(AUTHOR, keep.id)) == keep

    def test_category_removed_once_songs_gone(self, store, make_category, make_song):
        rock = make_category("Rock")
        song = make_song(category_ids=[rock.id])

        assert run(delete_unless_referenced(store, CATEGORY, rock.id)).blocked
        assert run(delete_unless_referenced(store, SONG, song.id)).removed
        assert run(delete_unless_referenced(store, CATEGORY, rock.id)).removed
        assert run(store.count(CATEGORY)) == 0

    def test_song_delete_never_blocked(self, store, make_song):
        song = make_song()
        outcome = run(delete_unless_referenced(store, SONG, song.id))
        assert outcome.removed
        assert run(store.count(SONG)) == 0

    def test_second_delete_is_noop(self, store, make_category):
        cat = make_category("Rock")
        other = make_category("Jazz")

        assert run(delete_unless_referenced(store, CATEGORY, cat.id)).removed
        outcome = run(delete_unless_referenced(store, CATEGORY, cat.id))
        assert not outcome.removed
        assert not outcome.blocked
        assert run(store.find_all(CATEGORY)) == [other]

    def test_lookup_failure_propagates(self, store, make_author):
        author = make_author()
        with patch.object(
            store, "find_dependents", side_effect=StorageError("Storage operation failed")
        ):
            with pytest.raises(StorageError):
                run(delete_unless_referenced(store, AUTHOR, author.id))
        assert run(store.find_by_id(AUTHOR, author.id)) == author

    def test_remove_not_called_when_blocked(self, store, make_author, make_song):
        author = make_author()
        make_song(author_id=author.id)
        with patch.object(store, "remove") as mock_remove:
            run(delete_unless_referenced(store, AUTHOR, author.id))
        mock_remove.assert_not_called()
