from datetime import datetime, timezone

from inkwell.collections import EntryCollection, TagCollection
from inkwell.entry import Entry


def make(entry_id, day, hour=0, tags=None, kind="entry"):
    created = datetime(2024, 1, day, hour, tzinfo=timezone.utc)
    return Entry(id=entry_id, created=created, tags=tags or [], kind=kind)


def test_entry_collection_filters_keep_order():
    entries = EntryCollection(
        [
            make("blog/c", 3, tags=["python"]),
            make("blog/deep/b", 2, kind="link"),
            make("notes/a", 1, tags=["python", "web"]),
        ]
    )
    assert len(entries) == 3
    assert [e.id for e in entries.in_section("blog")] == ["blog/c", "blog/deep/b"]
    assert [e.id for e in entries.in_section("blog", recursive=False)] == ["blog/c"]
    assert [e.id for e in entries.with_tag("python")] == ["blog/c", "notes/a"]
    assert [e.id for e in entries.links()] == ["blog/deep/b"]
    assert [e.id for e in entries.posts()] == ["blog/c", "notes/a"]
    assert isinstance(entries[:2], EntryCollection)
    assert entries[0].id == "blog/c"


def test_entry_collection_sorted_and_latest():
    entries = EntryCollection([make("b", 1), make("c", 2), make("a", 1)])
    assert [e.id for e in entries.sorted()] == ["c", "a", "b"]
    assert [e.id for e in entries.latest(2)] == ["c", "a"]


def test_by_day_groups_consecutive_entries():
    entries = EntryCollection([make("c", 2, 12), make("b", 2, 8), make("a", 1)])
    groups = entries.by_day()
    assert [day for day, _ in groups] == ["2024-01-02", "2024-01-01"]
    assert [e.id for e in groups[0][1]] == ["c", "b"]


def test_tag_collection_from_entries():
    tags = TagCollection.from_entries(
        [make("b", 2, tags=["web", "python"]), make("a", 1, tags=["python"])]
    )
    assert list(tags) == ["python", "web"]
    assert [e.id for e in tags["python"]] == ["b", "a"]
    assert len(tags) == 2
