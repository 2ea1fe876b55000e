from __future__ import annotations

from unittest.mock import MagicMock

from coursecat_import.db.store import InMemoryCategoryStore, StoreError
from coursecat_import.models.category import ROOT_ID, UNRESOLVED_PARENT, CategoryEntity
from coursecat_import.services.hierarchy import (
    ancestor_segments,
    leaf_name,
    resolve_parent,
    split_path,
    strip_root_alias,
)


def test_split_and_leaf():
    assert split_path("Top/Science/Physics") == ["Top", "Science", "Physics"]
    assert leaf_name(" Science / Physics ") == "Physics"
    assert ancestor_segments("Science/Physics") == ["Science"]
    assert ancestor_segments("Science") == []


def test_split_ignores_slash_inside_tags():
    name = 'Science/<lang lang="en">Art</lang><lang lang="fr">Arts</lang>'
    assert split_path(name) == ["Science", '<lang lang="en">Art</lang><lang lang="fr">Arts</lang>']


def test_split_on_slash_before_greater_than_sign():
    assert split_path("Science/Physics > Advanced") == ["Science", "Physics > Advanced"]
    assert split_path("A < B/C > D") == ["A < B", "C > D"]
    assert split_path('Top/<span lang="en" class="multilang">A</span>/B') == [
        "Top",
        '<span lang="en" class="multilang">A</span>',
        "B",
    ]


def test_strip_root_alias_only_at_start():
    assert strip_root_alias(["Top", "A"], "Top") == ["A"]
    assert strip_root_alias([" Top ", "A"], "Top") == ["A"]
    assert strip_root_alias(["A", "Top"], "Top") == ["A", "Top"]
    assert strip_root_alias([], "Top") == []


def test_resolve_existing_path(store):
    assert resolve_parent(store, ["Science"]) == 5
    assert resolve_parent(store, ["Top", " science "]) == 5
    assert resolve_parent(store, ["Science", "Physics"]) == 6
    assert resolve_parent(store, []) == ROOT_ID


def test_resolve_skips_blank_segments(store):
    assert resolve_parent(store, ["", "Science", "  "]) == 5


def test_resolve_missing_without_create(store):
    spy = MagicMock(wraps=store)
    assert resolve_parent(spy, ["Science", "Nope", "Deeper"]) == UNRESOLVED_PARENT
    # 見つからなかった時点で打ち切り
    assert spy.find_one.call_count == 2
    spy.create.assert_not_called()


def test_resolve_with_custom_root_alias(store):
    assert resolve_parent(store, ["Racine", "Science"], root_alias="Racine") == 5
    assert resolve_parent(store, ["Top", "Science"], root_alias="Racine") == UNRESOLVED_PARENT


def test_resolve_creates_missing_chain():
    """Three levels from an empty store: every level hangs off the previous one."""
    store = InMemoryCategoryStore()
    parent = resolve_parent(store, ["A", "B", "C"], create_missing=True)
    c = store.get(parent)
    b = store.get(c.parent)
    a = store.get(b.parent)
    assert [a.name, b.name, c.name] == ["A", "B", "C"]
    assert a.parent == ROOT_ID
    assert len(store) == 3


def test_resolve_created_ancestors_get_defaults():
    store = InMemoryCategoryStore()
    parent = resolve_parent(store, ["A"], create_missing=True, defaults={"visible": False, "theme": "classic"})
    created = store.get(parent)
    assert created.visible is False
    assert created.theme == "classic"


def test_resolve_from_start_parent():
    store = InMemoryCategoryStore([CategoryEntity(id=3, name="Base")])
    parent = resolve_parent(store, ["Child"], start_parent_id=3, create_missing=True)
    assert store.get(parent).parent == 3


def test_resolve_ancestor_creation_failure():
    store = MagicMock()
    store.find_one.return_value = None
    store.create.side_effect = StoreError("down")
    assert resolve_parent(store, ["A"], create_missing=True) == UNRESOLVED_PARENT
