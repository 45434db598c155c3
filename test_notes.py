from pathlib import Path

import pytest

from echosidian.errors import ConfigError, LocalStoreError
from echosidian.notes import (
    NoopNoteStore,
    NoteContext,
    VaultNoteStore,
    get_provider,
    note_filename,
    provider_from_env,
    sanitize_title,
)


def test_filename_strips_punctuation_and_emoji():
    assert note_filename("Hello, World! \U0001F600", "2024-03-05") == "2024-03-05 Hello World.md"


def test_sanitize_keeps_other_alphabets_and_digits():
    assert sanitize_title("Привет, мир 2024!") == "Привет мир 2024"
    assert sanitize_title("snake_case / path") == "snakecase  path"


def test_sanitize_transliterates_when_asked():
    assert sanitize_title("Привет, мир", transliterate=True) == "Privet mir"


def test_sanitize_falls_back_to_untitled():
    assert sanitize_title("!!! \U0001F600") == "Untitled"
    assert sanitize_title("") == "Untitled"


def test_sanitize_collapses_line_breaks():
    assert sanitize_title("First\nSecond") == "First Second"


def test_sanitize_keeps_combining_marks():
    assert sanitize_title("नमस्ते दुनिया") == "नमस्ते दुनिया"
    assert sanitize_title("Cafe\u0301!") == "Cafe\u0301"


def test_sanitize_drops_superscripts_and_fractions():
    assert sanitize_title("x² + ½ cup") == "x   cup"
    assert sanitize_title("½") == "Untitled"


def make_ctx(tmp_path: Path) -> NoteContext:
    return NoteContext(vault_path=tmp_path, vault_name=tmp_path.name)


def test_ensure_folder_is_idempotent(tmp_path):
    store = VaultNoteStore()
    ctx = make_ctx(tmp_path)
    first = store.ensure_folder(Path("Echo/Inbox"), ctx)
    second = store.ensure_folder(Path("Echo/Inbox"), ctx)
    assert first == second == tmp_path / "Echo" / "Inbox"
    assert first.is_dir()


def test_ensure_folder_rejects_a_file(tmp_path):
    (tmp_path / "Echo").write_text("oops", encoding="utf-8")
    with pytest.raises(LocalStoreError):
        VaultNoteStore().ensure_folder(Path("Echo"), make_ctx(tmp_path))


def test_create_note_writes_raw_content(tmp_path):
    store = VaultNoteStore()
    ctx = make_ctx(tmp_path)
    store.ensure_folder(Path("Echo"), ctx)

    path = store.create_note("# raw\n\nno front matter", Path("Echo/2024-03-05 Hello.md"), ctx)

    assert path.read_text(encoding="utf-8") == "# raw\n\nno front matter"
    assert store.exists(Path("Echo/2024-03-05 Hello.md"), ctx)


def test_create_note_refuses_to_overwrite(tmp_path):
    store = VaultNoteStore()
    ctx = make_ctx(tmp_path)
    store.ensure_folder(Path("Echo"), ctx)
    store.create_note("first", Path("Echo/a.md"), ctx)

    with pytest.raises(LocalStoreError) as err:
        store.create_note("second", Path("Echo/a.md"), ctx)

    assert err.value.path == tmp_path / "Echo" / "a.md"
    assert (tmp_path / "Echo" / "a.md").read_text(encoding="utf-8") == "first"


def test_create_note_in_missing_folder_is_a_store_error(tmp_path):
    with pytest.raises(LocalStoreError):
        VaultNoteStore().create_note("x", Path("Nope/a.md"), make_ctx(tmp_path))


def test_provider_registry_defaults_to_vault(monkeypatch):
    assert get_provider(None).name == "vault"
    assert provider_from_env().name == "vault"
    monkeypatch.setenv("ECHOSIDIAN_NOTE_PROVIDER", "vault")
    assert provider_from_env().name == "vault"


def test_provider_registry_resolves_noop(monkeypatch):
    monkeypatch.setenv("ECHOSIDIAN_NOTE_PROVIDER", " Noop ")
    store = provider_from_env()
    assert isinstance(store, NoopNoteStore)
    assert store.dry_run


def test_provider_registry_rejects_unknown_names(monkeypatch):
    with pytest.raises(ConfigError):
        get_provider("vualt")
    monkeypatch.setenv("ECHOSIDIAN_NOTE_PROVIDER", "dryrun")
    with pytest.raises(ConfigError):
        provider_from_env()


def test_noop_store_writes_nothing(tmp_path):
    store = NoopNoteStore()
    ctx = make_ctx(tmp_path)

    folder = store.ensure_folder(Path("Echo"), ctx)
    path = store.create_note("body", Path("Echo/a.md"), ctx)

    assert folder == tmp_path / "Echo"
    assert path == tmp_path / "Echo" / "a.md"
    assert not store.exists(Path("Echo/a.md"), ctx)
    assert list(tmp_path.iterdir()) == []


def test_vault_store_reports_missing_vault(tmp_path):
    store = VaultNoteStore()
    assert store.validate_connection(make_ctx(tmp_path))
    assert not store.validate_connection(make_ctx(tmp_path / "missing"))
