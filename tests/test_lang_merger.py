import json

import pytest

from ckbuilder.core.errors import LanguageFileError, SourceTreeError
from ckbuilder.core.lang import TranslationMerger, language_files, load_language_file, to_pseudo_object


def _tree(tmp_path):
    src = tmp_path / "src"
    (src / "lang").mkdir(parents=True)
    (src / "plugins" / "link" / "lang").mkdir(parents=True)
    (src / "plugins" / "other" / "lang").mkdir(parents=True)
    (src / "lang" / "en.json").write_text(json.dumps({"editor": "Editor", "common": {"ok": "OK", "cancel": "Cancel"}}))
    (src / "lang" / "de.yaml").write_text("common:\n  ok: Gut\n", encoding="utf-8")
    (src / "plugins" / "link" / "lang" / "en.json").write_text(json.dumps({"title": "Link", "url": "URL"}))
    (src / "plugins" / "link" / "lang" / "de.json").write_text(json.dumps({"title": "Verweis"}))
    (src / "plugins" / "other" / "lang" / "en.json").write_text(json.dumps({"title": "Other"}))
    return src


def test_merge_layers_languages_over_fallback(tmp_path):
    src = _tree(tmp_path)

    table = TranslationMerger().merge(src, ["link"])

    assert table["de"]["common"] == {"ok": "Gut", "cancel": "Cancel"}
    assert table["de"]["editor"] == "Editor"
    assert table["de"]["link"] == {"title": "Verweis", "url": "URL"}
    assert table["en"]["link"] == {"title": "Link", "url": "URL"}
    assert "other" not in table["en"]


def test_requested_language_without_file_copies_fallback(tmp_path):
    src = _tree(tmp_path)

    table = TranslationMerger().merge(src, [], ["pl"])

    assert table["pl"] == table["en"]
    assert table["pl"] is not table["en"]


def test_missing_fallback_is_fatal(tmp_path):
    src = _tree(tmp_path)

    with pytest.raises(SourceTreeError):
        TranslationMerger(fallback="fr").merge(src, [])


def test_merge_all_writes_selected_and_drops_the_rest(tmp_path):
    src = _tree(tmp_path)
    target = tmp_path / "out" / "lang"
    target.mkdir(parents=True)
    (target / "en.json").write_text("{}")

    TranslationMerger().merge_all(src, target, ["link"], ["de"])

    assert sorted(p.name for p in target.iterdir()) == ["de.js"]
    raw = (target / "de.js").read_text(encoding="utf-8")
    assert raw.startswith("\ufeff/*\n")
    assert "CKEDITOR.lang['de']=" in raw
    assert '"link":{"title":"Verweis","url":"URL"}' in raw


def test_render_unminified_is_pretty(tmp_path):
    out = TranslationMerger(leave_unminified=True).render("en", {"editor": "Editor"})

    assert "CKEDITOR.lang['en'] = {\n" in out
    assert "    editor : 'Editor'" in out
    assert "\r\n*/\r\n" in out


def test_pseudo_objects(tmp_path):
    assert to_pseudo_object({"a": "b", "c": {"d": 1}}) == '"a":"b","c":{"d":1}'

    target = tmp_path / "lang"
    target.mkdir()
    TranslationMerger().write_pseudo_objects({"en": {"a": "ü"}}, target)
    assert (target / "en.js").read_text(encoding="utf-8") == '\ufeff"a":"ü"'


def test_language_files_prefers_data_files(tmp_path):
    (tmp_path / "en.js").write_text("CKEDITOR.lang['en'] = { editor: 'Old' };")
    (tmp_path / "en.json").write_text('{"editor": "New"}')
    (tmp_path / "de.js").write_text("CKEDITOR.lang['de'] = { editor: 'Editor', common: { ok: 'OK', }, };")
    (tmp_path / "readme.json").write_text("{}")

    files = language_files(tmp_path)

    assert set(files) == {"en", "de"}
    assert files["en"].name == "en.json"
    assert load_language_file(files["de"]) == {"editor": "Editor", "common": {"ok": "OK"}}


def test_load_language_file_rejects_non_mapping(tmp_path):
    bad = tmp_path / "en.json"
    bad.write_text("[1, 2]")

    with pytest.raises(LanguageFileError):
        load_language_file(bad)
