"""
Test Suite for Expression Parsing and Evaluation.

Tests:
- Tokenizer and parser
- Expression detection and extraction
- Evaluation against a context
- Context builder
"""
import pytest


class TestTokenizer:
    """Tests for the expression tokenizer."""

    def test_quoted_member_name(self):
        """Make.com backtick names become a single token."""
        from flowbridge.services.expression.tokenizer import TokenType, tokenize

        tokens = tokenize("1.`First Name`")

        assert [t.type for t in tokens] == [
            TokenType.NUMBER, TokenType.DOT, TokenType.QUOTED_NAME, TokenType.EOF
        ]
        assert tokens[2].value == "First Name"

    def test_offsets_cover_source(self):
        """Token offsets point back into the source text."""
        from flowbridge.services.expression.tokenizer import tokenize

        text = " $json.name "
        tokens = tokenize(text)

        assert text[tokens[0].start:tokens[0].end] == "$json"
        assert tokens[-1].start == len(text)

    def test_unknown_characters_do_not_fail(self):
        """Characters outside the grammar become UNKNOWN tokens."""
        from flowbridge.services.expression.tokenizer import TokenType, tokenize

        tokens = tokenize("a # b")

        assert TokenType.UNKNOWN in [t.type for t in tokens]


class TestParser:
    """Tests for the recursive descent parser."""

    def test_operator_precedence(self):
        """Multiplication binds tighter than addition."""
        from flowbridge.services.expression.ast_nodes import BinaryOp
        from flowbridge.services.expression.parser import parse

        tree = parse("$json.a + 2 * 3")

        assert isinstance(tree, BinaryOp)
        assert tree.op == "+"
        assert isinstance(tree.right, BinaryOp)
        assert tree.right.op == "*"

    def test_module_reference(self):
        """`1.name` parses as a module reference, `1.5` as a number."""
        from flowbridge.services.expression.ast_nodes import Literal, MemberAccess, ModuleRef
        from flowbridge.services.expression.parser import parse

        tree = parse("1.name")
        assert isinstance(tree, MemberAccess)
        assert isinstance(tree.obj, ModuleRef)

        number = parse("1.5")
        assert isinstance(number, Literal)
        assert number.value == 1.5

    @pytest.mark.parametrize("body", ["", "$json.a ===", "$json.a ? 1 : 2", "(1 + 2"])
    def test_syntax_errors(self, body):
        """Constructs outside the grammar raise SyntaxError."""
        from flowbridge.services.expression.parser import parse

        with pytest.raises(SyntaxError):
            parse(body)


class TestExpressionHelpers:
    """Tests for detection and extraction helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("={{ $json.name }}", True),
        ("{{1.name}}", True),
        ("plain text", False),
        ("Hello {{1.name}}", False),
        (42, False),
        (None, False),
    ])
    def test_is_expression(self, value, expected):
        from flowbridge.services.expression.expressions import is_expression

        assert is_expression(value) is expected

    def test_contains_expression(self):
        """Templates contain expressions without being one."""
        from flowbridge.services.expression.expressions import contains_expression

        assert contains_expression("Hello {{1.name}}!")
        assert not contains_expression("Hello!")
        assert not contains_expression({"a": "{{1.name}}"})

    def test_extract_content(self):
        from flowbridge.services.expression.expressions import extract_expression_content

        assert extract_expression_content("={{ $json.name }}") == "$json.name"
        assert extract_expression_content("{{1.name}}") == "1.name"
        assert extract_expression_content("plain") == "plain"
        assert extract_expression_content(None) == ""

    def test_extract_is_idempotent(self):
        """Extracting twice equals extracting once, even for nested delimiters."""
        from flowbridge.services.expression.expressions import extract_expression_content

        value = "={{ {{ $json.a }} }}"
        once = extract_expression_content(value)

        assert once == "$json.a"
        assert extract_expression_content(once) == once


class TestEvaluation:
    """Tests for expression evaluation."""

    def test_arithmetic(self):
        from flowbridge.services.expression.expressions import evaluate_expression

        assert evaluate_expression("={{ $json.count * 2 }}", {"$json": {"count": 21}}) == 42
        assert evaluate_expression("={{ 10 / 4 }}") == 2.5
        assert evaluate_expression("={{ 4 / 2 }}") == 2

    def test_string_concatenation(self):
        """`+` with a string operand concatenates left to right."""
        from flowbridge.services.expression.expressions import evaluate_expression

        context = {"$json": {"name": "Ada"}}

        assert evaluate_expression("={{ 'Hello, ' + $json.name }}", context) == "Hello, Ada"
        assert evaluate_expression("={{ 1 + 2 + 'x' }}") == "3x"

    def test_n8n_functions(self):
        from flowbridge.services.expression.expressions import evaluate_expression

        context = {"$json": {"name": "ada", "tags": ["a", "b"]}}

        assert evaluate_expression("={{ $str.upper($json.name) }}", context) == "ADA"
        assert evaluate_expression("={{ $array.join($json.tags, '-') }}", context) == "a-b"
        assert evaluate_expression("={{ $str.substr('abcdef', 1, 3) }}") == "bcd"

    def test_make_functions(self):
        """Make.com spellings evaluate too; substring takes an end index."""
        from flowbridge.services.expression.expressions import evaluate_expression

        context = {"$json": {"name": "ada"}}

        assert evaluate_expression("{{upper(1.name)}}", context) == "ADA"
        assert evaluate_expression("{{substring('abcdef'; 1; 3)}}") == "bc"

    def test_method_calls(self):
        from flowbridge.services.expression.expressions import evaluate_expression

        assert evaluate_expression("={{ $json.name.toUpperCase() }}", {"$json": {"name": "ada"}}) == "ADA"

    def test_date_format(self):
        from flowbridge.services.expression.expressions import evaluate_expression

        assert evaluate_expression("={{ $date.format('2024-01-15', 'YYYY/MM/DD') }}") == "2024/01/15"

    def test_module_outputs(self):
        """Numbered module references read `$modules` before falling back to `$json`."""
        from flowbridge.services.expression.expressions import evaluate_expression

        context = {"$modules": {"2": {"price": 10}}, "$json": {"price": 5}}

        assert evaluate_expression("{{2.price}}", context) == 10
        assert evaluate_expression("{{1.price}}", context) == 5

    @pytest.mark.parametrize("value", [
        "={{ 1 / 0 }}",
        "={{ $json.a === 1 }}",
        "={{ $unknown() }}",
        "={{}}",
        "not an expression",
    ])
    def test_failures_give_none(self, value):
        """Anything that cannot be evaluated gives None instead of raising."""
        from flowbridge.services.expression.expressions import evaluate_expression

        assert evaluate_expression(value, {"$json": {"a": 1}}) is None

    def test_template_segments(self):
        from flowbridge.services.expression.expressions import evaluate_template

        context = {"$json": {"first": "A", "last": "B", "n": 2}}

        assert evaluate_template("{{1.first}} {{1.last}}", context) == ("A B", [])
        assert evaluate_template("=n is {{ $json.n + 1 }}", context) == ("n is 3", [])
        assert evaluate_template("{{1.first}}-{{1.x.y}}", context) == ("{{1.first}}-{{1.x.y}}", ["{{1.x.y}}"])

    def test_process_object_keeps_shape(self):
        from flowbridge.services.expression.expressions import process_object_with_expressions

        tree = {"a": "={{ 1 + 2 }}", "b": ["x", "={{ $json.v }}"], "c": 5}

        result = process_object_with_expressions(tree, {"$json": {"v": "y"}})

        assert result == {"a": 3, "b": ["x", "y"], "c": 5}
        assert tree["a"] == "={{ 1 + 2 }}"


class TestContextBuilder:
    """Tests for ExpressionContextBuilder."""

    def test_n8n_workflow_context(self):
        from flowbridge.services.expression.context_builder import ExpressionContextBuilder
        from flowbridge.services.expression.expressions import evaluate_expression

        context = ExpressionContextBuilder.from_n8n_workflow({"id": "w1", "name": "Orders", "active": True})

        assert context["$workflow"] == {"id": "w1", "name": "Orders", "active": True}
        assert evaluate_expression("={{ $workflow.name }}", context) == "Orders"

    def test_make_scenario_context(self):
        """`scenario` reads the workflow namespace."""
        from flowbridge.services.expression.context_builder import ExpressionContextBuilder
        from flowbridge.services.expression.expressions import evaluate_expression

        context = ExpressionContextBuilder.from_make_workflow({"name": "Orders"})

        assert evaluate_expression("{{scenario.name}}", context) == "Orders"

    def test_node_outputs(self):
        from flowbridge.services.expression.context_builder import ExpressionContextBuilder
        from flowbridge.services.expression.expressions import evaluate_expression

        context = ExpressionContextBuilder().with_node_output("Webhook", {"customer": "Ada"}).build()

        assert evaluate_expression('={{ $node["Webhook"].json.customer }}', context) == "Ada"
        assert evaluate_expression("{{Webhook.customer}}", context) == "Ada"

    def test_build_returns_independent_copies(self):
        from flowbridge.services.expression.context_builder import ExpressionContextBuilder

        builder = ExpressionContextBuilder().with_json_data({"items": [1]})
        first = builder.build()
        first["$json"]["items"].append(2)

        assert builder.build()["$json"]["items"] == [1]
