"""Tests for loading graph documents into a SymbolGraph."""
import json

import pytest

from deadwood.analyzer.graph_provider import ImportOptions, SymbolGraph, load_symbol_graph
from deadwood.analyzer.symbols import Origin, SymbolKind
from deadwood.errors import ImportFailure

from conftest import PKG, SAMPLE_APP, make_graph


class TestLoading:
    """Reading the document from disk."""

    def test_sample_app_loads(self, sample_graph):
        classes = sample_graph.list_symbols(SymbolKind.CLASS)
        assert f"{PKG}.ComponentD" in [c.name for c in classes]
        # Test classes are outside the default scope
        assert f"{PKG}.ArchunitUnusedRuleApplicationTests" not in [c.name for c in classes]

    def test_missing_file(self, tmp_path):
        with pytest.raises(ImportFailure, match="not found"):
            load_symbol_graph(tmp_path / "nope.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ImportFailure, match="not valid JSON"):
            load_symbol_graph(path)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "graph.json"
        path.write_text(json.dumps({"format": 99, "classes": []}), encoding="utf-8")
        with pytest.raises(ImportFailure, match="Unsupported graph format"):
            load_symbol_graph(path)

    def test_error_mentions_path(self, tmp_path):
        path = tmp_path / "missing.json"
        with pytest.raises(ImportFailure) as excinfo:
            load_symbol_graph(path)
        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)


class TestDocumentValidation:
    """Malformed records abort the import."""

    @pytest.mark.parametrize("document", [
        [],
        {"classes": {}},
        {"classes": [{"name": ""}]},
        {"classes": [{"name": "a.B", "tags": "not-a-list"}]},
        {"classes": [{"name": "a.B", "line": -1}]},
        {"classes": [{"name": "a.B", "line": True}]},
        {"classes": [{"name": "a.B", "origin": "elsewhere"}]},
        {"classes": [{"name": "a.B", "methods": [{"parameters": []}]}]},
        {"classes": [{"name": "a.B"}, {"name": "a.B"}]},
        {"classes": [{"name": "a.B", "methods": [{"name": "m"}, {"name": "m"}]}]},
    ])
    def test_rejects(self, document):
        with pytest.raises(ImportFailure):
            SymbolGraph.from_document(document)

    @pytest.mark.parametrize("record", [
        {"name": "a.Padded "},
        {"name": "a.Tab\tbed"},
        {"name": "a.B", "methods": [{"name": " m"}]},
        {"name": "a.B", "methods": [{"name": "m", "parameters": ["int\n"]}]},
    ])
    def test_rejects_names_a_baseline_cannot_hold(self, record):
        with pytest.raises(ImportFailure, match="surrounding whitespace or control characters"):
            make_graph(record)

    def test_overloads_are_distinct(self):
        graph = make_graph({"name": "a.B", "methods": [
            {"name": "m", "parameters": ["int"]},
            {"name": "m", "parameters": ["long"]},
        ]})
        assert len(graph.list_symbols(SymbolKind.METHOD)) == 2

    def test_edges_to_unknown_symbols_are_skipped(self):
        graph = make_graph({"name": "a.B", "accesses": ["java.lang.String"], "dependencies": ["x.Y"]})
        assert graph.graph.number_of_edges() == 0


class TestQueries:
    """Graph queries used by predicates and the detector."""

    def test_identity_lookup_normalizes_parameter_spacing(self):
        graph = make_graph({"name": "a.B", "methods": [{"name": "m", "parameters": ["int", "long"]}]})
        assert graph.get("a.B.m(int,long)") is graph.get("a.B.m(int, long)")
        assert "a.B.m(int ,  long)" in graph

    def test_list_members(self, sample_graph):
        members = sample_graph.list_members(sample_graph.get(f"{PKG}.ComponentD"))
        assert [m.name for m in members] == ["doSomething"]

    def test_list_accesses_of_a_method(self, sample_graph):
        process = sample_graph.get(f"{PKG}.ServiceA.process({PKG}.ModelA)")
        accesses = sample_graph.list_accesses(process)
        assert [e.source.name for e in accesses.incoming] == ["postModel"]
        assert not accesses.outgoing

    def test_class_accesses_include_members(self, sample_graph):
        accesses = sample_graph.list_accesses(sample_graph.get(f"{PKG}.ServiceA"))
        assert len(accesses.incoming) == 1

    def test_direct_type_dependents(self, sample_graph):
        model = sample_graph.get(f"{PKG}.ModelA")
        dependents = {s.name for s in sample_graph.list_direct_type_dependents(model)}
        assert dependents == {f"{PKG}.ControllerA", f"{PKG}.ServiceA"}

    def test_inheritance_resolves_unknown_supertypes_as_archive(self):
        graph = make_graph(
            {"name": "a.Base", "interfaces": ["a.Api"]},
            {"name": "a.Api", "interface": True},
            {"name": "a.Child", "superclasses": ["a.Base", "java.lang.Object"]},
        )
        inheritance = graph.list_inheritance(graph.get("a.Child"))
        assert [s.name for s in inheritance.superclasses] == ["a.Base", "java.lang.Object"]
        assert inheritance.superclasses[1].origin is Origin.ARCHIVE
        assert {s.name for s in inheritance.interfaces} == {"a.Api"}

    def test_owner_of(self, sample_graph):
        method = sample_graph.get(f"{PKG}.ModelF.toUpper()")
        assert sample_graph.owner_of(method).name == f"{PKG}.ModelF"


class TestImportOptions:
    """Scoping by origin and package."""

    def test_archives_excluded_by_default(self):
        graph = make_graph({"name": "lib.Util", "origin": "archive"}, {"name": "app.Main"})
        assert [s.name for s in graph.list_symbols(SymbolKind.CLASS)] == ["app.Main"]

    def test_include_archives(self):
        graph = make_graph({"name": "lib.Util", "origin": "archive"}, {"name": "app.Main"},
                           options=ImportOptions(include_archives=True))
        assert [s.name for s in graph.list_symbols(SymbolKind.CLASS)] == ["app.Main", "lib.Util"]

    def test_package_filter(self):
        graph = make_graph({"name": "app.core.A"}, {"name": "app.corex.B"}, {"name": "other.C"},
                           options=ImportOptions(packages=("app.core",)))
        assert [s.name for s in graph.list_symbols()] == ["app.core.A"]

    def test_methods_inherit_class_origin(self):
        graph = load_symbol_graph(SAMPLE_APP, ImportOptions(include_tests=True))
        method = graph.get(f"{PKG}.ArchunitUnusedRuleApplicationTests.contextLoads()")
        assert method.origin is Origin.TEST
        assert graph.in_scope(method)
