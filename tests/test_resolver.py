import pytest

from ckbuilder.core.errors import CircularDependencyError, MissingDependencyError
from ckbuilder.core.resolver import DependencyResolver, PluginDependencyTable, resolve


def test_resolver_orders_prerequisites_first():
    table = {
        "ckeditor": ["ckeditor_base", "event"],
        "_bootstrap": ["ckeditor", "env"],
        "event": [],
        "env": [],
    }

    order = resolve(["ckeditor", "_bootstrap"], table)

    assert order == ["event", "ckeditor", "env", "_bootstrap"]
    assert "ckeditor_base" not in order


def test_resolver_emits_each_name_once():
    table = {"a": ["b", "c"], "b": ["c"], "c": [], "d": ["c", "a"]}

    order = DependencyResolver(table).resolve(["a", "d", "a"])

    assert order == ["c", "b", "a", "d"]
    assert len(order) == len(set(order))


def test_resolver_missing_prerequisite():
    with pytest.raises(MissingDependencyError) as exc:
        resolve(["a"], {"a": ["ghost"]})

    assert exc.value.name == "ghost"
    assert "ghost" in str(exc.value)


def test_resolver_empty_request_is_an_error():
    with pytest.raises(MissingDependencyError):
        resolve([], {"a": []})


def test_resolver_detects_cycle():
    table = {"A": ["C"], "B": ["A"], "C": ["B"]}

    with pytest.raises(CircularDependencyError) as exc:
        resolve(["A"], table)

    assert exc.value.cycle[0] == exc.value.cycle[-1]
    assert set(exc.value.cycle) == {"A", "B", "C"}


def test_plugin_table_reads_requires(tmp_path):
    plugins = tmp_path / "plugins"
    (plugins / "a").mkdir(parents=True)
    (plugins / "b").mkdir(parents=True)
    (plugins / "a" / "plugin.js").write_text(
        "CKEDITOR.plugins.add( 'a', {\n\trequires: [ 'b' ]\n} );\n", encoding="utf-8"
    )
    (plugins / "b" / "plugin.js").write_text("CKEDITOR.plugins.add( 'b', {} );\n", encoding="utf-8")

    table = PluginDependencyTable(plugins)

    assert "a" in table
    assert "zzz" not in table
    assert table["a"] == ["b"]
    assert list(table) == ["a", "b"]
    assert resolve(["a"], table) == ["b", "a"]


def test_plugin_table_missing_plugin(tmp_path):
    (tmp_path / "plugins").mkdir()

    with pytest.raises(MissingDependencyError):
        resolve(["nope"], PluginDependencyTable(tmp_path / "plugins"))
