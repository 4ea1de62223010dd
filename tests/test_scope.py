import logging

import pytest
from polymer_expr.compiler.expressions import parse_expression
from polymer_expr.compiler.markup import Element, parse_markup
from polymer_expr.compiler.scope import (
    DiagnosticKind,
    FunctionDefinition,
    TransformScope,
    extract_paths,
    is_global,
    member_path,
    path_references,
    resolve_iteration_scope,
)


@pytest.mark.parametrize(
    "text, paths",
    [
        ("a", ["a"]),
        ("a.b.c", ["a.b.c"]),
        ("a.b + a.b + c", ["a.b", "c"]),
        ("c[d.e]", ["c", "d.e"]),
        ("a?.b", ["a"]),
        ("fn(x.y, 2)", ["fn", "x.y"]),
        ("items.indexOf(item) > -1", ["items", "item"]),
        ("!a ? [b, c.d] : e || f", ["a", "b", "c.d", "e", "f"]),
        ("this.value + x", ["this.value", "x"]),
        ("'str' + 1", []),
    ],
)
def test_extract_paths(text: str, paths: list) -> None:
    assert extract_paths(parse_expression(text)) == paths


def test_path_references_keep_every_occurrence() -> None:
    refs = path_references(parse_expression("a.b + a.b"))
    assert [(r.path, r.start, r.end) for r in refs] == [
        ("a.b", 0, 3),
        ("a.b", 6, 9),
    ]
    assert refs[0].root == "a"


def test_member_path() -> None:
    assert member_path(parse_expression("a.b.c")) == "a.b.c"
    assert member_path(parse_expression("a[0].b")) is None
    assert member_path(parse_expression("f().b")) is None


def test_is_global() -> None:
    for name in ("Math", "JSON", "parseInt", "undefined", "encodeURIComponent"):
        assert is_global(name)
    assert not is_global("window")
    assert is_global("window", ["window"])


def _find_span(document, text: str) -> Element:
    for span in document.find_all("span"):
        if span.text == text:
            return span
    raise AssertionError(text)


def test_iteration_scope_composes_nested_repeats() -> None:
    document = parse_markup(
        """
<template>
  <span>outside</span>
  <template is="dom-repeat" items="[[rows]]" as="row">
    <span>one</span>
    <template is="dom-repeat" items="[[row.cells]]" as="cell" index-as="j">
      <span>two</span>
    </template>
  </template>
  <template is="dom-repeat" items="[[x]]" indexas="k">
    <span>three</span>
  </template>
</template>
"""
    )
    assert resolve_iteration_scope(_find_span(document, "outside")) == frozenset()
    assert resolve_iteration_scope(_find_span(document, "one")) == {"row", "index"}
    assert resolve_iteration_scope(_find_span(document, "two")) == {
        "row",
        "index",
        "cell",
        "j",
    }
    assert resolve_iteration_scope(_find_span(document, "three")) == {"item", "k"}
    assert resolve_iteration_scope(None) == frozenset()


def test_repeat_template_counts_itself() -> None:
    document = parse_markup('<template is="dom-repeat" as="row"></template>')
    template = document.find("template")
    assert resolve_iteration_scope(template) == {"row", "index"}


def test_function_names_are_sequential() -> None:
    scope = TransformScope.create("x-a")
    assert [scope.next_function_name() for _ in range(3)] == [
        "__c_0",
        "__c_1",
        "__c_2",
    ]
    custom = TransformScope.create("x-a", function_prefix="_gen")
    assert custom.next_function_name() == "_gen0"


def test_scope_globals_include_extras() -> None:
    scope = TransformScope.create("x-a", extra_globals=["moment"])
    assert scope.is_global("moment")
    assert scope.is_global("Math")
    assert not scope.is_global("x")


def test_report_records_and_logs(caplog) -> None:
    scope = TransformScope.create("x-a", file_path="x-a.html")
    with caplog.at_level(logging.WARNING, logger="polymer_expr.compiler.scope"):
        diagnostic = scope.report(DiagnosticKind.INVALID_EXPRESSION, "bad", "a +")
    assert scope.diagnostics == [diagnostic]
    assert diagnostic.expression == "a +"
    assert "x-a.html: bad" in caplog.text


def test_function_definition_rendering() -> None:
    definition = FunctionDefinition("__c_0", ("a", "b__c"), "a + b__c")
    assert definition.to_source() == "function __c_0(a,b__c){ return a + b__c; }"
    assert definition.to_property() == (
        "'__c_0': function __c_0(a,b__c){ return a + b__c; },"
    )
    assert FunctionDefinition("__c_1", (), "1").to_source() == (
        "function __c_1(){ return 1; }"
    )
