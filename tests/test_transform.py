import pytest
from polymer_expr import (
    BindingTransformer,
    MissingDeclarationError,
    TransformOptions,
    transform,
)
from polymer_expr.compiler.scope import DiagnosticKind


def component(template: str, properties: str = "a: Number, b: Number", is_: str = "x-sum") -> str:
    return f"""<dom-module id="x-sum">
  <template>
    {template}
  </template>
  <script>
    Polymer({{
      is: '{is_}',
      properties: {{ {properties} }}
    }});
  </script>
</dom-module>
"""


def test_computed_call_is_unchanged() -> None:
    source = component("<span>[[_compute(a, b.c)]]</span>")
    assert transform(source) == source


def test_complex_binding_is_rewritten() -> None:
    result = BindingTransformer().transform(component("<span>[[a + b]]</span>"))
    assert "<span>[[__c_0(a,b)]]</span>" in result.text
    assert "'__c_0': function __c_0(a,b){ return a + b; }," in result.text
    assert result.module_id == "x-sum"
    assert [f.name for f in result.functions] == ["__c_0"]
    assert result.diagnostics == []
    assert result.changed


def test_injected_block_follows_the_object_brace() -> None:
    text = transform(component("<span>[[a + b]]</span>"))
    assert (
        "Polymer({\n"
        "//### auto-generated *Computed Bindings*\n"
        "'__c_0': function __c_0(a,b){ return a + b; },\n"
        "//###\n"
        "\n      is: 'x-sum',"
    ) in text


def test_wildcard_path_is_unchanged() -> None:
    source = component("<span>[[items.*]]</span>", properties="items: Array")
    result = BindingTransformer().transform(source)
    assert result.text == source
    assert result.diagnostics == []


def test_transform_is_idempotent() -> None:
    source = component(
        """<span title="[[a * 2]]">[[a + b]]</span>
    <template is="dom-repeat" items="[[rows]]" as="row">
      <b>[[row.x + a]]</b>
    </template>""",
        properties="a: Number, b: Number, rows: Array",
    )
    once = transform(source)
    assert once != source
    assert transform(once) == once


def test_names_are_sequential_in_document_order() -> None:
    result = BindingTransformer().transform(
        component(
            '<p title="[[a - 1]]">[[a + 1]]</p><p>[[b + 1]] [[b - 1]]</p>'
        )
    )
    assert [f.name for f in result.functions] == ["__c_0", "__c_1", "__c_2", "__c_3"]
    assert [f.body for f in result.functions] == ["a - 1", "a + 1", "b + 1", "b - 1"]
    for name in ("__c_0", "__c_1", "__c_2", "__c_3"):
        assert result.text.count(f"'{name}': function {name}(") == 1


def test_repeat_scope_composition() -> None:
    source = component(
        """<template is="dom-repeat" items="[[rows]]" as="row">
      <template is="dom-repeat" items="[[row.cells]]" as="cell" index-as="j">
        <span>[[cell.value + row.offset + j]]</span>
      </template>
    </template>""",
        properties="rows: Array",
    )
    result = BindingTransformer().transform(source)
    assert "[[__c_0(cell.value,row.offset,j)]]" in result.text
    (definition,) = result.functions
    assert definition.parameters == ("cell__value", "row__offset", "j")
    assert definition.body == "cell__value + row__offset + j"
    assert result.diagnostics == []


def test_two_way_bindings_join_component_state() -> None:
    source = component(
        '<input value="{{name::input}}"><span>[[name.length > 3]]</span>',
        properties="",
    )
    result = BindingTransformer().transform(source)
    assert "[[__c_0(name.length)]]" in result.text
    assert result.functions[0].body == "name__length > 3"


def test_inadmissible_two_way_is_left_alone() -> None:
    source = component('<input value="{{a + b}}">')
    result = BindingTransformer().transform(source)
    assert result.text == source
    assert [d.kind for d in result.diagnostics] == [
        DiagnosticKind.TWO_WAY_NOT_ADMISSIBLE
    ]


def test_invalid_expression_is_reported() -> None:
    source = component("<span>[[a +]]</span>")
    result = BindingTransformer().transform(source)
    assert result.text == source
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.INVALID_EXPRESSION]


def test_attribute_binding_rewrites_start_tag() -> None:
    text = transform(component('<div class="box" hidden$="[[!a && b]]"></div>'))
    assert '<div class="box" hidden$="[[__c_0(a,b)]]"></div>' in text
    assert "return !a && b;" in text


def test_attribute_rewrite_keeps_the_rest_of_the_tag() -> None:
    text = transform(
        component("<div Class=\"a &amp; b\"  hidden$='[[!a && b]]'></div>")
    )
    assert "<div Class=\"a &amp; b\"  hidden$='[[__c_0(a,b)]]'></div>" in text


def test_extra_globals() -> None:
    source = component("<span>[[format(a) + b]]</span>")
    loose = BindingTransformer().transform(source)
    assert [d.kind for d in loose.diagnostics] == [DiagnosticKind.UNRESOLVED_IDENTIFIER]

    result = BindingTransformer(TransformOptions(globals=["format"])).transform(source)
    assert result.diagnostics == []
    assert "[[__c_0(a,b)]]" in result.text
    assert result.functions[0].body == "format(a) + b"


def test_custom_register() -> None:
    source = """<dom-module id="x-a">
  <template><span>[[a + 1]]</span></template>
  <script>Register({is: 'x-a', properties: {a: Number}});</script>
</dom-module>"""
    options = TransformOptions(register="Register")
    text = BindingTransformer(options).transform(source).text
    assert "Register({\n//### auto-generated *Computed Bindings*\n" in text
    assert "[[__c_0(a)]]" in text


def test_missing_declaration_is_an_error_by_default() -> None:
    source = '<dom-module id="x-a"><template>[[a + 1]]</template></dom-module>'
    with pytest.raises(MissingDeclarationError, match="x-a"):
        transform(source)


def test_missing_declaration_non_strict() -> None:
    source = '<dom-module id="x-a"><template>[[a + 1]]</template></dom-module>'
    result = BindingTransformer(TransformOptions(strict=False)).transform(source)
    assert result.text == (
        '<dom-module id="x-a"><template>[[__c_0()]]</template></dom-module>'
    )
    kinds = [d.kind for d in result.diagnostics]
    assert DiagnosticKind.MISSING_DECLARATION in kinds


def test_missing_declaration_without_rewrites_is_fine() -> None:
    source = '<dom-module id="x-a"><template>[[a]]</template></dom-module>'
    assert transform(source) == source


def test_module_mismatch_still_injects() -> None:
    result = BindingTransformer().transform(
        component("<span>[[a + b]]</span>", is_="x-other")
    )
    assert [d.kind for d in result.diagnostics] == [DiagnosticKind.MODULE_MISMATCH]
    assert "'__c_0': function" in result.text


def test_no_dom_module_is_passthrough() -> None:
    source = "<template><span>[[a + b]]</span></template>"
    result = BindingTransformer().transform(source)
    assert result.text == source
    assert result.module_id is None
    assert not result.changed


def test_runs_do_not_share_state() -> None:
    transformer = BindingTransformer()
    first = transformer.transform(component("<span>[[a + b]]</span>"))
    second = transformer.transform(component("<span>[[a - b]]</span>"))
    assert [f.name for f in first.functions] == ["__c_0"]
    assert [f.name for f in second.functions] == ["__c_0"]


def test_options_validation() -> None:
    with pytest.raises(ValueError):
        TransformOptions(function_prefix="1abc")
    with pytest.raises(ValueError):
        TransformOptions(separator=".")
    assert TransformOptions(globals=["x"]).globals == ("x",)
