"""
Test Suite for Cross-Platform Expression Translation.

Tests:
- n8n -> Make.com rewriting
- Make.com -> n8n rewriting
- Ambiguity reporting
"""
import pytest


class TestN8nToMake:
    """Tests for translate_n8n_to_make."""

    @pytest.mark.parametrize("source,expected", [
        ("={{ $json.name }}", "{{1.name}}"),
        ("={{ $json.count * 2 }}", "{{1.count * 2}}"),
        ("={{ $str.upper($json.name) }}", "{{upper(1.name)}}"),
        ("={{ $workflow.name }}", "{{scenario.name}}"),
        ("={{ $env.API_KEY }}", "{{env.API_KEY}}"),
        ('={{ $json["first name"] }}', "{{1.`first name`}}"),
        ("=Hello, {{ $json.name }}!", "Hello, {{1.name}}!"),
        ('={{ $if($json.a, "y", "n") }}', '{{if(1.a; "y"; "n")}}'),
    ])
    def test_rewrites(self, source, expected):
        from flowbridge.services.expression.translator import translate_n8n_to_make

        result = translate_n8n_to_make(source)

        assert result.text == expected
        assert not result.ambiguous

    def test_module_ref(self):
        """`$json` refers to the module given as module_ref."""
        from flowbridge.services.expression.translator import translate_n8n_to_make

        assert translate_n8n_to_make("={{ $json.id }}", module_ref=3).text == "{{3.id}}"

    def test_named_node_references(self):
        """Both n8n node reference forms become the target module id."""
        from flowbridge.services.expression.translator import translate_n8n_to_make

        refs = {"Webhook": "4"}

        old_style = translate_n8n_to_make('={{ $node["Webhook"].json.id }}', node_refs=refs)
        new_style = translate_n8n_to_make('={{ $("Webhook").item.json.id }}', node_refs=refs)

        assert old_style.text == "{{4.id}}"
        assert new_style.text == "{{4.id}}"
        assert not old_style.ambiguous
        assert not new_style.ambiguous

    def test_function_arguments_use_semicolons(self):
        from flowbridge.services.expression.translator import translate_n8n_to_make

        result = translate_n8n_to_make("={{ $str.replace($json.a, 'x', 'y') }}")

        assert result.text == "{{replace(1.a; 'x'; 'y')}}"

    def test_comparison_is_kept_but_flagged(self):
        """Unsupported syntax is copied verbatim and reported."""
        from flowbridge.services.expression.translator import translate_n8n_to_make

        result = translate_n8n_to_make("={{ $json.active === true }}")

        assert result.text == "{{1.active === true}}"
        assert result.ambiguous

    def test_unsupported_reference(self):
        from flowbridge.services.expression.translator import translate_n8n_to_make

        result = translate_n8n_to_make("={{ $items().length }}")

        assert result.ambiguous
        assert any("$items" in reason for reason in result.reasons)
        assert "$items" in result.text

    def test_argument_semantics_note(self):
        """substr takes a length in n8n and an end index in Make.com."""
        from flowbridge.services.expression.translator import translate_n8n_to_make

        result = translate_n8n_to_make("={{ $str.substr($json.a, 0, 2) }}")

        assert result.text == "{{substring(1.a; 0; 2)}}"
        assert result.ambiguous

    def test_plain_values_pass_through(self):
        from flowbridge.services.expression.translator import translate_n8n_to_make

        assert translate_n8n_to_make("hello").text == "hello"
        assert translate_n8n_to_make(5).text == 5


class TestMakeToN8n:
    """Tests for translate_make_to_n8n."""

    @pytest.mark.parametrize("source,expected", [
        ("{{1.name}}", "={{ $json.name }}"),
        ("{{upper(1.name)}}", "={{ $str.upper($json.name) }}"),
        ('{{replace(1.a; "x"; "y")}}', '={{ $str.replace($json.a, "x", "y") }}'),
        ("{{scenario.name}}", "={{ $workflow.name }}"),
        ("{{1.`first name`}}", '={{ $json["first name"] }}'),
        ("Hi {{1.name}}!", "=Hi {{ $json.name }}!"),
        ('{{if(1.a; "y"; "n")}}', '={{ $if($json.a, "y", "n") }}'),
    ])
    def test_rewrites(self, source, expected):
        from flowbridge.services.expression.translator import translate_make_to_n8n

        result = translate_make_to_n8n(source)

        assert result.text == expected
        assert not result.ambiguous

    def test_non_upstream_module_becomes_node_reference(self):
        from flowbridge.services.expression.translator import translate_make_to_n8n

        names = {"1": "Webhook", "2": "HTTP Request"}

        upstream = translate_make_to_n8n("{{2.id}}", module_names=names, upstream_ref="2")
        earlier = translate_make_to_n8n("{{1.id}}", module_names=names, upstream_ref="2")

        assert upstream.text == "={{ $json.id }}"
        assert earlier.text == '={{ $node["Webhook"].json.id }}'

    def test_unknown_function_is_flagged(self):
        from flowbridge.services.expression.translator import translate_make_to_n8n

        result = translate_make_to_n8n("{{md5(1.a)}}")

        assert result.text == "={{ md5($json.a) }}"
        assert "unknown function md5" in result.reasons

    def test_arrow_function_parameters_are_kept(self):
        """Names bound by `=>` are local to the callback, not module references."""
        from flowbridge.services.expression.translator import translate_make_to_n8n

        single = translate_make_to_n8n("{{1.items.map(x => x.id)}}")
        grouped = translate_make_to_n8n("{{1.items.filter((item, i) => item.ok)}}")

        assert single.text == "={{ $json.items.map(x => x.id) }}"
        assert single.ambiguous
        assert grouped.text == "={{ $json.items.filter((item, i) => item.ok) }}"
        assert '$node' not in grouped.text

    def test_n8n_values_are_left_alone(self):
        from flowbridge.services.expression.translator import translate_make_to_n8n

        assert translate_make_to_n8n("={{ $json.a }}").text == "={{ $json.a }}"


class TestRoundTrip:
    """Supported expressions survive a round trip unchanged."""

    @pytest.mark.parametrize("expression", [
        "={{ $json.name }}",
        "={{ $str.upper($json.name) }}",
        "={{ $workflow.id }}",
        '={{ $if($json.a, "y", "n") }}',
    ])
    def test_round_trip(self, expression):
        from flowbridge.services.expression.translator import (
            convert_make_to_n8n_expression,
            convert_n8n_to_make_expression,
        )

        assert convert_make_to_n8n_expression(convert_n8n_to_make_expression(expression)) == expression

    def test_analyze_expression_directions(self):
        from flowbridge.services.expression.expressions import is_ambiguous_expression

        assert not is_ambiguous_expression("={{ $json.a }}", "n8nToMake")
        assert is_ambiguous_expression("={{ $json.a ? 1 : 2 }}", "n8nToMake")
        assert not is_ambiguous_expression("{{1.a}}", "makeToN8n")
        assert not is_ambiguous_expression("no expression here")
