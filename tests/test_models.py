from webbook.models import BookBuilder, Chapter, Metadata


def test_unique_toc_entries_are_added_once():
    book = BookBuilder()
    assert book.add_toc_entry("a", unique=True)
    assert book.add_toc_entry("b", unique=True)
    assert not book.add_toc_entry("a", unique=True)

    assert [e.url for e in book.build().toc] == ["a", "b"]


def test_chapter_entry_appends_toc_and_chapter():
    book = BookBuilder()
    book.add_chapter_entry("a", Chapter("A", "<p>a</p>"))
    book.add_chapter("unlisted", Chapter("U", "<p>u</p>"))
    book.add_chapter("a", Chapter("A", "<p>a</p>"))

    built = book.build()
    assert [e.url for e in built.toc] == ["a"]
    assert set(built.chapters) == {"a", "unlisted"}
    assert built.missing_chapters() == []


def test_build_snapshots_state():
    book = BookBuilder(Metadata(title="T"))
    book.add_toc_entry("a")
    first = book.build()
    book.add_toc_entry("b")

    assert len(first.toc) == 1
    assert first.missing_chapters() == ["a"]
    assert first.metadata.title == "T"


def test_metadata_defaults_when_never_set():
    book = BookBuilder()
    assert not book.has_metadata
    assert book.build().metadata == Metadata()
