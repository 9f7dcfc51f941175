import threading

from livenotes.services.notes_store import NotesStore


def test_entries_are_separated_by_blank_line(tmp_path):
    path = tmp_path / "show_notes.md"
    store = NotesStore(str(path))

    assert store.append("Topic: X") == "Topic: X"
    assert store.append("  Topic: Y\n") == "Topic: X\n\nTopic: Y"

    assert path.read_text(encoding="utf-8") == "Topic: X\n\nTopic: Y"
    assert store.entry_count() == 2


def test_blank_entries_are_ignored(tmp_path):
    store = NotesStore(str(tmp_path / "notes.md"))
    store.append("Topic: X")

    assert store.append("   ") == "Topic: X"
    assert store.entry_count() == 1


def test_existing_file_is_appended_not_truncated(tmp_path):
    path = tmp_path / "show_notes.md"
    path.write_text("Previous session", encoding="utf-8")
    store = NotesStore(str(path))

    store.append("New topic")

    assert path.read_text(encoding="utf-8") == "Previous session\n\nNew topic"
    assert store.text() == "New topic"


def test_parent_directory_is_created(tmp_path):
    path = tmp_path / "nested" / "dir" / "notes.md"
    store = NotesStore(str(path))
    store.append("entry")
    assert path.exists()


def test_in_memory_store_without_path():
    store = NotesStore()
    store.append("one")
    store.append("two")
    assert store.path is None
    assert store.text() == "one\n\ntwo"


def test_concurrent_appends_are_not_interleaved(tmp_path):
    path = tmp_path / "notes.md"
    store = NotesStore(str(path))

    def writer(prefix: str) -> None:
        for index in range(50):
            store.append(f"{prefix}-{index}")

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    entries = path.read_text(encoding="utf-8").split("\n\n")
    assert len(entries) == 150
    assert entries == store.text().split("\n\n")
    for prefix in ("a", "b", "c"):
        own = [entry for entry in entries if entry.startswith(prefix + "-")]
        assert own == [f"{prefix}-{index}" for index in range(50)]
