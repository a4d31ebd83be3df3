"""
Тесты пула типов и замыкания нужных типов
"""

import random

from swagger_to_api.internal.generator.type_graph import TypeGraphBuilder, collect_schema_refs
from swagger_to_api.internal.parser.spec_adapter import SpecAdapter


def make_spec(definitions, paths=None):
    return SpecAdapter.normalize(
        {
            "swagger": "2.0",
            "info": {"title": "t"},
            "paths": paths or {},
            "definitions": definitions,
        }
    )


def ref(name):
    return {"$ref": f"#/definitions/{name}"}


def returning(name):
    return {
        "/x": {
            "get": {
                "operationId": "getX",
                "responses": {"200": {"description": "OK", "schema": ref(name)}},
            }
        }
    }


class TestTypesPool:
    """Тесты пула типов"""

    def test_generic_wins_over_plain(self):
        """Из Foo и Foo«Bar» в пуле остается generic"""
        definitions = {
            "Foo": {"properties": {"value": {"type": "string"}}},
            "Foo«Bar»": {"properties": {"value": ref("Bar")}},
            "Bar": {"properties": {}},
        }

        for order in (list(definitions), list(reversed(list(definitions)))):
            builder = TypeGraphBuilder(make_spec({k: definitions[k] for k in order}))
            pool = builder.types_pool

            assert sorted(pool) == ["Bar", "Foo"]
            assert pool["Foo"].is_generic is True
            assert pool["Foo"].original_name == "Foo«Bar»"

    def test_preference_is_order_independent(self):
        """Выбор между generic вариантами не зависит от порядка"""
        definitions = {
            "Result«string»": {"properties": {"data": {"type": "string"}}},
            "Result«Foo»": {"properties": {"data": ref("Foo")}},
            "Result«Bar»": {"properties": {"data": ref("Bar")}},
            "Foo": {},
            "Bar": {},
        }
        names = list(definitions)
        chosen = set()
        for seed in range(5):
            random.Random(seed).shuffle(names)
            builder = TypeGraphBuilder(make_spec({k: definitions[k] for k in names}))
            chosen.add(builder.types_pool["Result"].original_name)

        assert chosen == {"Result«Bar»"}

    def test_reserved_names_excluded(self):
        definitions = {
            "Map«string,Foo»": {},
            "List«Foo»": {},
            "PlainObject": {},
            "Foo": {},
        }

        assert list(TypeGraphBuilder(make_spec(definitions)).types_pool) == ["Foo"]

    def test_catalog_wrapper_without_markers_is_generic(self):
        definitions = {
            "Result": {"properties": {"code": {"type": "integer"}, "data": ref("Foo")}},
            "Foo": {},
        }
        pool = TypeGraphBuilder(make_spec(definitions)).types_pool

        assert pool["Result"].is_generic is True
        assert pool["Result"].generic_params == []


class TestApiPool:
    """Тесты пула операций"""

    def test_api_keys_and_type_names(self, swagger2_doc):
        builder = TypeGraphBuilder(SpecAdapter.normalize(swagger2_doc))
        pool = builder.build_api_pool()

        assert sorted(pool) == [
            "/ping::get",
            "/widgets/{id}::get",
            "/widgets/{id}::put",
            "/widgets::get",
        ]
        assert pool["/widgets/{id}::put"].input_type_names == {"Widget"}
        assert pool["/widgets::get"].output_type_names == {"Result", "PageResult", "Widget"}
        assert pool["/ping::get"].all_referenced_type_names == set()

    def test_selected_operations(self, swagger2_doc):
        builder = TypeGraphBuilder(SpecAdapter.normalize(swagger2_doc))

        assert list(builder.build_api_pool(selected_operations=["/ping::get"])) == ["/ping::get"]


class TestRequiredTypes:
    """Тесты замыкания"""

    def test_chain_closure(self):
        """A -> B -> C дает все три типа"""
        definitions = {
            "A": {"properties": {"b": ref("B")}},
            "B": {"properties": {"c": {"type": "array", "items": ref("C")}}},
            "C": {"properties": {"name": {"type": "string"}}},
            "D": {"properties": {}},
        }
        builder = TypeGraphBuilder(make_spec(definitions, returning("A")))
        required = builder.collect_required_types(builder.build_api_pool())

        assert required == {"A", "B", "C"}

    def test_cycle_terminates(self):
        definitions = {
            "Node": {"properties": {"parent": ref("Node"), "meta": ref("Meta")}},
            "Meta": {"properties": {"owner": ref("Node")}},
        }
        builder = TypeGraphBuilder(make_spec(definitions, returning("Node")))

        assert builder.collect_required_types(builder.build_api_pool()) == {"Node", "Meta"}

    def test_nested_schema_edges(self):
        """allOf, additionalProperties и вложенные items тоже ребра графа"""
        definitions = {
            "A": {
                "allOf": [ref("Base"), {"properties": {"tags": ref("Tag")}}],
                "properties": {
                    "index": {"type": "object", "additionalProperties": ref("Entry")},
                    "matrix": {"type": "array", "items": {"type": "array", "items": ref("Cell")}},
                },
            },
            "Base": {},
            "Tag": {},
            "Entry": {},
            "Cell": {},
        }
        builder = TypeGraphBuilder(make_spec(definitions, returning("A")))

        assert builder.collect_required_types(builder.build_api_pool()) == {
            "A",
            "Base",
            "Tag",
            "Entry",
            "Cell",
        }

    def test_generics_always_included(self, swagger2_doc):
        """Generic-обертки объявляются даже без выбранных операций"""
        builder = TypeGraphBuilder(SpecAdapter.normalize(swagger2_doc))

        assert builder.collect_required_types({}) == {"Result", "PageResult"}

    def test_full_closure(self, swagger2_doc):
        builder = TypeGraphBuilder(SpecAdapter.normalize(swagger2_doc))
        required = builder.collect_required_types(builder.build_api_pool())

        assert required == {"Result", "PageResult", "Widget", "Owner", "Address"}
        assert "Unused" not in required

    def test_dangling_reference_skipped(self):
        builder = TypeGraphBuilder(make_spec({"A": {"properties": {"x": ref("Gone")}}}, returning("A")))

        assert builder.collect_required_types(builder.build_api_pool()) == {"A"}

    def test_bare_wrapper_payload_followed(self):
        """Поле data обертки без скобок попадает в замыкание"""
        definitions = {
            "Result": {"properties": {"data": ref("PageResult«Widget»")}},
            "PageResult«Widget»": {
                "properties": {"records": {"type": "array", "items": ref("Widget")}}
            },
            "Widget": {"properties": {"id": {"type": "integer"}}},
        }
        builder = TypeGraphBuilder(make_spec(definitions, returning("Result")))

        assert builder.collect_required_types(builder.build_api_pool()) == {
            "Result",
            "PageResult",
            "Widget",
        }

    def test_ordered_definitions(self, swagger2_doc):
        builder = TypeGraphBuilder(SpecAdapter.normalize(swagger2_doc))
        required = builder.collect_required_types(builder.build_api_pool())

        assert [d.key for d in builder.ordered_definitions(required)] == [
            "PageResult",
            "Result",
            "Address",
            "Owner",
            "Widget",
        ]


def test_collect_schema_refs():
    schema = {
        "properties": {
            "a": ref("A"),
            "b": {"type": "array", "items": ref("B")},
            "c": {"anyOf": [ref("C"), ref("A")]},
        }
    }

    assert collect_schema_refs(schema) == ["A", "B", "C"]
    assert collect_schema_refs(schema, skip_properties=["a"]) == ["B", "C", "A"]
