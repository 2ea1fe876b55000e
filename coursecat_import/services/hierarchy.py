from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from ..db.store import CategoryStore
from ..models.category import ROOT_ID, UNRESOLVED_PARENT

"""Category path resolution.

A category name in the import file is a slash separated path, e.g.
"Top/Science/Physics". Slashes inside markup tags do not separate
segments. The last segment is the category itself; the others
are its ancestors, walked from the root. A leading root alias ("Top") is
dropped before walking.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "split_path",
    "leaf_name",
    "ancestor_segments",
    "strip_root_alias",
    "resolve_parent",
]


_TAG_TOKEN_RE = re.compile(r"(</?[a-zA-Z][^<>]*>)")


def split_path(name: str) -> list[str]:
    segments = [""]
    for i, token in enumerate(_TAG_TOKEN_RE.split(name)):
        if i % 2:
            # タグ内の "/" (</lang> など) では分割しない
            segments[-1] += token
            continue
        head, *rest = token.split("/")
        segments[-1] += head
        segments.extend(rest)
    return segments


def leaf_name(name: str) -> str:
    return split_path(name)[-1].strip()


def ancestor_segments(name: str) -> list[str]:
    return split_path(name)[:-1]


def strip_root_alias(segments: Sequence[str], root_alias: str) -> list[str]:
    if segments and segments[0].strip() == root_alias:
        return list(segments[1:])
    return list(segments)


def resolve_parent(
    store: CategoryStore,
    segments: Sequence[str],
    start_parent_id: int = ROOT_ID,
    create_missing: bool = False,
    *,
    root_alias: str = "Top",
    defaults: Mapping[str, Any] | None = None,
) -> int:
    """Walk `segments` from `start_parent_id` and return the id of the last one.

    Args:
        store: category store used for lookups (and creation)
        segments: ancestor names, root first
        start_parent_id: id the walk starts from (ROOT_ID for absolute paths)
        create_missing: create ancestors that do not exist yet
        root_alias: leading segment naming the root, dropped when present
        defaults: field defaults applied to created ancestors

    Returns:
        Parent id (>= 0), or UNRESOLVED_PARENT when an ancestor is missing and
        cannot (or may not) be created.
    """
    chain = [s.strip() for s in strip_root_alias(segments, root_alias)]
    chain = [s for s in chain if s]  # 空セグメント ("A//B") は無視

    parent_id = start_parent_id
    for depth, segment in enumerate(chain, start=1):
        found = store.find_one(segment, parent_id)
        if found is not None:
            parent_id = found.id
            continue
        if not create_missing:
            return UNRESOLVED_PARENT
        created_id = _create_ancestor(
            store, "/".join(chain[:depth]), start_parent_id, root_alias, defaults
        )
        if created_id is None:
            return UNRESOLVED_PARENT
        parent_id = created_id
    return parent_id


def _create_ancestor(
    store: CategoryStore,
    path: str,
    start_parent_id: int,
    root_alias: str,
    defaults: Mapping[str, Any] | None,
) -> int | None:
    # 循環 import 回避 (category -> hierarchy -> category)
    from ..models.import_policy import ImportMode, ImportPolicy, UpdateMode
    from .category import CategoryRecord

    policy = ImportPolicy(
        mode=ImportMode.CREATE_NEW,
        update_mode=UpdateMode.NOTHING,
        create_missing=True,
        root_alias=root_alias,
        defaults=defaults or {},
    )
    record = CategoryRecord(policy, {"name": path}, store, parent_id=start_parent_id)
    if not record.prepare():
        logger.debug("missing parent path=%s rejected errors=%s", path, sorted(record.errors))
        return None
    record.proceed()
    if record.has_errors():
        logger.debug("missing parent path=%s not created errors=%s", path, sorted(record.errors))
        return None
    logger.debug("created missing parent path=%s id=%s", path, record.get_id())
    return record.get_id()
