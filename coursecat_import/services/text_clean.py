from __future__ import annotations

import re

"""Name standardisation: strip markup but keep multilang spans.

Two multilang syntaxes survive cleaning when they are well formed
(properly paired, never nested):

    <lang lang="en">Science</lang><lang lang="fr">Sciences</lang>
    <span lang="en" class="multilang">Science</span><span ...>Sciences</span>

Anything else, including malformed multilang markup, loses all of its tags.
"""

__all__ = [
    "strip_tags",
    "clean_multilang",
]

_TAG_RE = re.compile(r"<!--.*?-->|<\s*/?\s*([a-zA-Z][\w-]*)?[^>]*>", re.S)
_ANY_TAG_RE = re.compile(r"<.*?>", re.S)
_LANG_OPEN_RE = re.compile(r'^<lang lang="[a-zA-Z0-9_-]+"\s*>$')
_SPAN_OPEN_RE = re.compile(r'^<span(\s+lang="[a-zA-Z0-9_-]+"|\s+class="multilang"){2}\s*>$')


def strip_tags(text: str, allowed: frozenset[str] | set[str] = frozenset()) -> str:
    """Remove HTML tags and comments, keeping tags whose name is in `allowed`."""
    def _replace(m: re.Match[str]) -> str:
        name = (m.group(1) or "").lower()
        return m.group(0) if name and name in allowed else ""
    return _TAG_RE.sub(_replace, text)


def _well_formed(text: str, open_re: re.Pattern[str], close_tag: str) -> bool:
    is_open = False
    for tag in _ANY_TAG_RE.findall(text):
        if tag == close_tag:
            if not is_open:
                return False
            is_open = False
            continue
        if is_open or not open_re.match(tag):
            return False
        is_open = True
    return not is_open


def clean_multilang(text: str) -> str:
    # 不正なサロゲート等は捨てる
    text = text.encode("utf-8", "ignore").decode("utf-8")
    if "</lang>" in text:
        candidate = strip_tags(text, {"lang"})
        if _well_formed(candidate, _LANG_OPEN_RE, "</lang>"):
            return candidate
    elif "</span>" in text:
        candidate = strip_tags(text, {"span"})
        if _well_formed(candidate, _SPAN_OPEN_RE, "</span>"):
            return candidate
    return strip_tags(text)
