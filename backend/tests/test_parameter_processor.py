"""
Test Suite for Parameter Processing.

Tests:
- Nested parameter trees
- Review and ambiguity detection
- Evaluation mode
"""


class TestConvertParameters:
    """Tests for convert_parameters_across_platforms."""

    def test_nested_tree(self):
        """Expressions are rewritten at any depth; other leaves are kept."""
        from flowbridge.services.parameters.parameter_processor import convert_parameters_across_platforms

        tree = {
            "url": "={{ $json.url }}",
            "method": "GET",
            "headers": {"Authorization": "=Bearer {{ $json.token }}"},
            "items": ["={{ $json.a }}", 3, True, None],
        }

        result = convert_parameters_across_platforms(tree, "n8nToMake")

        assert result == {
            "url": "{{1.url}}",
            "method": "GET",
            "headers": {"Authorization": "Bearer {{1.token}}"},
            "items": ["{{1.a}}", 3, True, None],
        }

    def test_input_is_not_modified(self):
        from flowbridge.services.parameters.parameter_processor import convert_parameters_across_platforms

        tree = {"a": {"b": "={{ $json.x }}"}}

        convert_parameters_across_platforms(tree, "n8nToMake")

        assert tree == {"a": {"b": "={{ $json.x }}"}}

    def test_none_and_scalars(self):
        """None gives an empty tree; a bare scalar is wrapped under `value`."""
        from flowbridge.services.parameters.parameter_processor import convert_parameters_across_platforms

        assert convert_parameters_across_platforms(None, "n8nToMake") == {}
        assert convert_parameters_across_platforms("{{1.a}}", "makeToN8n") == {"value": "={{ $json.a }}"}

    def test_make_to_n8n_with_names(self):
        from flowbridge.services.parameters.parameter_processor import convert_parameters_across_platforms

        result = convert_parameters_across_platforms(
            {"text": "{{1.name}} / {{2.name}}"},
            "makeToN8n",
            module_names={"1": "Start", "2": "Lookup"},
            upstream_ref="2",
        )

        assert result == {"text": '={{ $node["Start"].json.name }} / {{ $json.name }}'}


class TestReviewDetection:
    """Tests for review and ambiguity helpers."""

    def test_identify_expressions_for_review(self):
        from flowbridge.services.parameters.parameter_processor import identify_expressions_for_review

        tree = {"a": "={{ $json.a }}", "b": {"c": ["x", "Hi {{1.name}}"]}, "d": 1}

        assert identify_expressions_for_review(tree) == ["a", "b.c[1]"]
        assert identify_expressions_for_review(None) == []

    def test_find_ambiguous_expressions(self):
        from flowbridge.services.parameters.parameter_processor import find_ambiguous_expressions

        tree = {
            "simple": "={{ $json.a }}",
            "ternary": "={{ $json.a ? 'y' : 'n' }}",
            "nested": {"items": "={{ $items() }}"},
        }

        assert find_ambiguous_expressions(tree, "n8nToMake") == ["ternary", "nested.items"]

    def test_processor_collects_ambiguous_paths(self):
        from flowbridge.models.workflow_models import Direction
        from flowbridge.services.parameters.parameter_processor import ParameterProcessor

        processor = ParameterProcessor(Direction.N8N_TO_MAKE)
        processor.convert({"ok": "={{ $json.a }}", "bad": ["={{ $json.a === 1 }}"]})

        assert processor.ambiguous_paths == ["bad[0]"]
        assert processor.reasons["bad[0]"]


class TestEvaluateExpressions:
    """Tests for evaluation mode."""

    def test_evaluates_leaves(self):
        from flowbridge.services.parameters.parameter_processor import evaluate_expressions

        tree = {"total": "={{ $json.price * 2 }}", "label": "fixed"}

        result = evaluate_expressions(tree, {"$json": {"price": 4}})

        assert result == {"total": 8, "label": "fixed"}

    def test_unevaluable_becomes_none(self):
        from flowbridge.services.parameters.parameter_processor import evaluate_expressions

        assert evaluate_expressions({"x": "={{ $json.a === 1 }}"}, {}) == {"x": None}

    def test_templates_are_rendered(self):
        """Text with several embedded expressions keeps its literal parts."""
        from flowbridge.services.parameters.parameter_processor import evaluate_parameters

        context = {"$json": {"first": "Ada", "last": "Lovelace"}}
        tree = {
            "full": "{{1.first}} {{1.last}}",
            "greeting": "=Hi {{ $json.first }}!",
            "broken": ["{{1.first}} {{1.missing.deep}}"],
        }

        result, unresolved = evaluate_parameters(tree, context)

        assert result["full"] == "Ada Lovelace"
        assert result["greeting"] == "Hi Ada!"
        assert result["broken"] == ["{{1.first}} {{1.missing.deep}}"]
        assert unresolved == ["broken[0]"]

    def test_evaluate_parameters_none(self):
        from flowbridge.services.parameters.parameter_processor import evaluate_parameters

        assert evaluate_parameters(None) == ({}, [])
        assert evaluate_parameters("={{ 1 + 1 }}") == ({"value": 2}, [])

    def test_iter_leaves_paths(self):
        from flowbridge.services.parameters.parameter_processor import iter_leaves

        assert list(iter_leaves({"a": {"b": 1}, "c": [2, {"d": 3}]})) == [
            ("a.b", 1), ("c[0]", 2), ("c[1].d", 3),
        ]
