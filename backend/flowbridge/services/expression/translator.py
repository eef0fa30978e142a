"""
Cross-platform expression rewriting.

Rewrites n8n expressions (`={{ $json.name }}`) into Make.com expressions
(`{{1.name}}`) and back. The rewrite works on the token stream and copies every
character it does not understand verbatim, so unsupported constructs pass
through unchanged instead of being corrupted. Whether an expression could be
translated with full confidence is reported separately through
`TranslationResult.ambiguous`.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .ast_nodes import Call, Identifier, MemberAccess, Variable, qualified_name, walk
from .functions import MAKE_TO_N8N_FUNCTIONS, N8N_TO_MAKE_FUNCTIONS, SUPPORTED_METHODS, get_function
from .parser import parse
from .tokenizer import Token, TokenType, tokenize

logger = logging.getLogger(__name__)


# n8n variable -> Make.com namespace
N8N_TO_MAKE_NAMESPACES = {
    '$binary': 'binary',
    '$parameter': 'parameters',
    '$env': 'env',
    '$workflow': 'scenario',
}
MAKE_TO_N8N_NAMESPACES = {make: n8n for n8n, make in N8N_TO_MAKE_NAMESPACES.items()}

# n8n variables with a Make.com counterpart or a meaning the evaluator knows
KNOWN_N8N_VARIABLES = {
    '$json', '$node', '$', '$now', '$today',
} | set(N8N_TO_MAKE_NAMESPACES)

FUNCTION_NAMESPACES = {'$str', '$array', '$date', '$math'}

MAKE_KEYWORDS = {'true', 'false', 'null', 'now'}

EXPRESSION_PATTERN = re.compile(r'^=?\{\{[\s\S]*\}\}$')
N8N_SEGMENT_PATTERN = re.compile(r'=?\{\{([\s\S]*?)\}\}')
MAKE_SEGMENT_PATTERN = re.compile(r'\{\{([\s\S]*?)\}\}')


@dataclass
class TranslationResult:
    """Rewritten expression text plus why it may need review."""
    text: str
    reasons: List[str] = field(default_factory=list)

    @property
    def ambiguous(self) -> bool:
        return bool(self.reasons)


def body_of(expression: str) -> str:
    """Inner text of a single expression layer."""
    if expression.startswith('={{'):
        return expression[3:-2]
    return expression[2:-2]


def is_single_expression(value: str) -> bool:
    """True when the whole string is exactly one expression."""
    return bool(EXPRESSION_PATTERN.match(value)) and '{{' not in body_of(value)


# ==================== Token stream helpers ====================

def _is_adjacent(left: Token, right: Token) -> bool:
    return left.end == right.start


def _types(tokens: List[Token], start: int, count: int) -> Tuple[TokenType, ...]:
    return tuple(t.type for t in tokens[start:start + count])


def _arrow_parameters(tokens: List[Token]) -> Dict[str, int]:
    """
    Names bound by arrow functions (`x => ...`, `(a, b) => ...`), with the
    index of the token that binds them.
    """
    bound: Dict[str, int] = {}
    for i in range(1, len(tokens) - 1):
        if not (tokens[i].type == TokenType.UNKNOWN and tokens[i].value == '='
                and tokens[i + 1].value == '>' and _is_adjacent(tokens[i], tokens[i + 1])):
            continue
        prev = tokens[i - 1]
        if prev.type == TokenType.IDENTIFIER:
            bound.setdefault(prev.value, i - 1)
        elif prev.type == TokenType.RPAREN:
            j = i - 2
            while j >= 0 and tokens[j].type in (TokenType.IDENTIFIER, TokenType.COMMA):
                j -= 1
            if j >= 0 and tokens[j].type == TokenType.LPAREN:
                for k in range(j + 1, i - 1):
                    if tokens[k].type == TokenType.IDENTIFIER:
                        bound.setdefault(tokens[k].value, k)
    return bound


def _quote(name: str) -> str:
    return '"' + name.replace('\\', '\\\\').replace('"', '\\"') + '"'


class _Rewriter:
    """Walks a token stream and substitutes recognized references."""

    def __init__(self, body: str):
        self.body = body
        self.tokens = tokenize(body)
        self.reasons: List[str] = []
        self._parts: List[str] = []
        self._copied = 0
        # innermost open bracket kinds: call, group, index, object
        self._brackets: List[str] = []

    def replace(self, first: int, count: int, text: str) -> None:
        start = self.tokens[first].start
        end = self.tokens[first + count - 1].end
        self._parts.append(self.body[self._copied:start])
        self._parts.append(text)
        self._copied = end

    def finish(self) -> str:
        self._parts.append(self.body[self._copied:])
        return ''.join(self._parts).strip()

    def flag(self, reason: str) -> None:
        if reason not in self.reasons:
            self.reasons.append(reason)

    def previous(self, index: int) -> Optional[Token]:
        return self.tokens[index - 1] if index > 0 else None

    def after_dot(self, index: int) -> bool:
        prev = self.previous(index)
        return prev is not None and prev.type == TokenType.DOT

    def track_bracket(self, index: int) -> None:
        token = self.tokens[index]
        prev = self.previous(index)
        if token.type == TokenType.LPAREN:
            is_call = prev is not None and prev.type in (
                TokenType.IDENTIFIER, TokenType.VARIABLE, TokenType.RPAREN
            ) and _is_adjacent(prev, token)
            self._brackets.append('call' if is_call else 'group')
        elif token.type == TokenType.LBRACKET:
            self._brackets.append('index')
        elif token.type == TokenType.LBRACE:
            self._brackets.append('object')
        elif token.type in (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE):
            if self._brackets:
                self._brackets.pop()

    @property
    def in_call(self) -> bool:
        return bool(self._brackets) and self._brackets[-1] == 'call'


# ==================== n8n -> Make.com ====================

def _rewrite_n8n_body(body: str, module_ref: int, node_refs: Optional[Dict[str, str]]) -> TranslationResult:
    rw = _Rewriter(body)
    tokens = rw.tokens
    node_refs = node_refs or {}
    i = 0

    while tokens[i].type != TokenType.EOF:
        token = tokens[i]
        rw.track_bracket(i)

        if token.type == TokenType.VARIABLE and not rw.after_dot(i):
            name = token.value
            nxt = tokens[i + 1]

            if name == '$json':
                if nxt.type in (TokenType.DOT, TokenType.LBRACKET):
                    rw.replace(i, 1, str(module_ref))
                else:
                    rw.flag("whole-item reference $json has no Make.com equivalent")
                i += 1
                continue

            # $node["Name"].json -> Name (single hop)
            if name == '$node' and _types(tokens, i, 6) == (
                TokenType.VARIABLE, TokenType.LBRACKET, TokenType.STRING,
                TokenType.RBRACKET, TokenType.DOT, TokenType.IDENTIFIER
            ) and tokens[i + 5].value == 'json':
                node_name = tokens[i + 2].value
                rw.replace(i, 6, node_refs.get(node_name, node_name))
                i += 6
                continue

            # $("Name").item.json -> Name
            if name == '$' and _types(tokens, i, 8) == (
                TokenType.VARIABLE, TokenType.LPAREN, TokenType.STRING, TokenType.RPAREN,
                TokenType.DOT, TokenType.IDENTIFIER, TokenType.DOT, TokenType.IDENTIFIER
            ) and tokens[i + 5].value == 'item' and tokens[i + 7].value == 'json':
                node_name = tokens[i + 2].value
                rw.replace(i, 8, node_refs.get(node_name, node_name))
                i += 8
                continue

            if name in N8N_TO_MAKE_NAMESPACES:
                rw.replace(i, 1, N8N_TO_MAKE_NAMESPACES[name])
                i += 1
                continue

            # $str.upper( -> upper(
            if name in FUNCTION_NAMESPACES and _types(tokens, i, 4) == (
                TokenType.VARIABLE, TokenType.DOT, TokenType.IDENTIFIER, TokenType.LPAREN
            ):
                qualified = f"{name}.{tokens[i + 2].value}"
                if qualified in N8N_TO_MAKE_FUNCTIONS:
                    rw.replace(i, 3, N8N_TO_MAKE_FUNCTIONS[qualified])
                    _flag_function_note(rw, qualified)
                else:
                    rw.flag(f"unknown function {qualified}")
                i += 3
                continue

            if name == '$if' and nxt.type == TokenType.LPAREN:
                rw.replace(i, 1, N8N_TO_MAKE_FUNCTIONS['$if'])
                i += 1
                continue

            if name == '$now':
                rw.replace(i, 1, 'now')
                i += 1
                continue

            rw.flag(f"unsupported reference {name}")
            i += 1
            continue

        # ["field name"] -> .`field name`
        if token.type == TokenType.LBRACKET and _types(tokens, i, 3) == (
            TokenType.LBRACKET, TokenType.STRING, TokenType.RBRACKET
        ):
            prev = rw.previous(i)
            if prev is not None and _is_adjacent(prev, token) and prev.type in (
                TokenType.IDENTIFIER, TokenType.VARIABLE, TokenType.RBRACKET, TokenType.QUOTED_NAME
            ):
                rw.replace(i, 3, f".`{tokens[i + 1].value}`")
                rw.track_bracket(i + 2)
                i += 3
                continue

        # Make.com separates function arguments with semicolons
        if token.type == TokenType.COMMA and rw.in_call:
            rw.replace(i, 1, ';')

        i += 1

    return TranslationResult(rw.finish(), rw.reasons)


def _flag_function_note(rw: _Rewriter, name: str) -> None:
    mapping = get_function(name)
    if mapping is not None and mapping.review_note:
        rw.flag(f"{name}: {mapping.review_note}")


# ==================== Make.com -> n8n ====================

def _rewrite_make_body(
    body: str,
    module_names: Optional[Dict[str, str]],
    upstream_ref: Optional[str],
) -> TranslationResult:
    rw = _Rewriter(body)
    tokens = rw.tokens
    module_names = module_names or {}
    arrow_parameters = _arrow_parameters(tokens)
    i = 0

    while tokens[i].type != TokenType.EOF:
        token = tokens[i]
        nxt = tokens[i + 1]
        rw.track_bracket(i)

        # 1.field -> $json.field
        if (token.type == TokenType.NUMBER and not rw.after_dot(i)
                and nxt.type == TokenType.DOT and _is_adjacent(token, nxt)
                and tokens[i + 2].type in (TokenType.IDENTIFIER, TokenType.QUOTED_NAME)):
            ref = token.value
            if ref in module_names and upstream_ref is not None and ref != str(upstream_ref):
                rw.replace(i, 1, f"$node[{_quote(module_names[ref])}].json")
            else:
                rw.replace(i, 1, '$json')
            i += 1
            continue

        # .`field name` -> ["field name"]
        if token.type == TokenType.DOT and nxt.type == TokenType.QUOTED_NAME:
            rw.replace(i, 2, f"[{_quote(nxt.value)}]")
            i += 2
            continue

        if token.type == TokenType.IDENTIFIER and not rw.after_dot(i):
            name = token.value

            # arrow function parameters are local names
            if i >= arrow_parameters.get(name, len(tokens)):
                rw.flag("arrow function parameters are not checked")
                i += 1
                continue

            if nxt.type == TokenType.LPAREN:
                if name in MAKE_TO_N8N_FUNCTIONS:
                    rw.replace(i, 1, MAKE_TO_N8N_FUNCTIONS[name])
                    _flag_function_note(rw, name)
                else:
                    rw.flag(f"unknown function {name}")
                i += 1
                continue

            if nxt.type == TokenType.DOT and tokens[i + 2].type in (
                TokenType.IDENTIFIER, TokenType.QUOTED_NAME
            ):
                if name in MAKE_TO_N8N_NAMESPACES:
                    rw.replace(i, 1, MAKE_TO_N8N_NAMESPACES[name])
                else:
                    # Named module reference, one path hop only
                    rw.replace(i, 1, f"$node[{_quote(name)}].json")
                i += 1
                continue

            if name == 'now':
                rw.replace(i, 1, '$now')
            elif name not in MAKE_KEYWORDS:
                rw.flag(f"unsupported reference {name}")
            i += 1
            continue

        # Make.com argument separator
        if token.type == TokenType.SEMICOLON:
            rw.replace(i, 1, ',')

        i += 1

    return TranslationResult(rw.finish(), rw.reasons)


# ==================== Static analysis ====================

def analyze_body(body: str) -> List[str]:
    """
    Reasons why an expression body falls outside the supported grammar.

    An empty list means the body parses and only uses known references and
    functions.
    """
    if not body or not body.strip():
        return []
    try:
        tree = parse(body)
    except SyntaxError as e:
        return [f"unsupported syntax: {e}"]

    reasons = []
    for node in walk(tree):
        if isinstance(node, Variable) and node.name not in KNOWN_N8N_VARIABLES \
                and node.name not in FUNCTION_NAMESPACES and node.name != '$if':
            reasons.append(f"unsupported reference {node.name}")
        elif isinstance(node, Call):
            name = qualified_name(node.callee)
            if name == '$' or (name is not None and get_function(name) is not None):
                continue
            if isinstance(node.callee, MemberAccess) and node.callee.name in SUPPORTED_METHODS:
                continue
            if isinstance(node.callee, Identifier) or name is not None:
                reasons.append(f"unknown function {name}")
            else:
                reasons.append("call on a computed value")
    return reasons


def _merge_reasons(*groups: List[str]) -> List[str]:
    merged: List[str] = []
    for group in groups:
        for reason in group:
            if reason not in merged:
                merged.append(reason)
    return merged


# ==================== Public API ====================

def translate_n8n_to_make(
    value: str,
    module_ref: int = 1,
    node_refs: Optional[Dict[str, str]] = None,
) -> TranslationResult:
    """
    Rewrite an n8n string (whole expression or template) into Make.com syntax.

    Non-expression strings are returned unchanged.
    """
    if not isinstance(value, str) or '{{' not in value:
        return TranslationResult(value)

    if is_single_expression(value):
        body = body_of(value)
        result = _rewrite_n8n_body(body, module_ref, node_refs)
        reasons = _merge_reasons(analyze_body(body), result.reasons)
        return TranslationResult(f"{{{{{result.text}}}}}", reasons)

    if not N8N_SEGMENT_PATTERN.search(value):
        return TranslationResult(value)

    reasons: List[str] = []
    template = value[1:] if value.startswith('=') else value

    def _segment(match: 're.Match') -> str:
        body = match.group(1)
        result = _rewrite_n8n_body(body, module_ref, node_refs)
        reasons.extend(_merge_reasons(analyze_body(body), result.reasons))
        return f"{{{{{result.text}}}}}"

    text = N8N_SEGMENT_PATTERN.sub(_segment, template)
    return TranslationResult(text, _merge_reasons(reasons))


def translate_make_to_n8n(
    value: str,
    module_names: Optional[Dict[str, str]] = None,
    upstream_ref: Optional[str] = None,
) -> TranslationResult:
    """
    Rewrite a Make.com string (whole expression or template) into n8n syntax.

    Strings that embed expressions in literal text become n8n templates
    (`=Hello {{ $json.name }}!`). Non-expression strings are returned unchanged.
    """
    if not isinstance(value, str) or '{{' not in value:
        return TranslationResult(value)

    if is_single_expression(value) and not value.startswith('='):
        body = body_of(value)
        result = _rewrite_make_body(body, module_names, upstream_ref)
        reasons = _merge_reasons(analyze_body(result.text), result.reasons)
        if not result.text:
            return TranslationResult('={{}}', reasons)
        return TranslationResult(f"={{{{ {result.text} }}}}", reasons)

    if value.startswith('='):
        # already in n8n form
        return TranslationResult(value)

    if not MAKE_SEGMENT_PATTERN.search(value):
        return TranslationResult(value)

    reasons: List[str] = []

    def _segment(match: 're.Match') -> str:
        result = _rewrite_make_body(match.group(1), module_names, upstream_ref)
        reasons.extend(_merge_reasons(analyze_body(result.text), result.reasons))
        return f"{{{{ {result.text} }}}}"

    text = '=' + MAKE_SEGMENT_PATTERN.sub(_segment, value)
    return TranslationResult(text, _merge_reasons(reasons))


def convert_n8n_to_make_expression(
    expression: str,
    module_ref: int = 1,
    node_refs: Optional[Dict[str, str]] = None,
) -> str:
    """
    Convert an n8n expression to Make.com format.

    Example:
        >>> convert_n8n_to_make_expression('={{ $str.upper($json.name) }}')
        '{{upper(1.name)}}'
    """
    return translate_n8n_to_make(expression, module_ref, node_refs).text


def convert_make_to_n8n_expression(
    expression: str,
    module_names: Optional[Dict[str, str]] = None,
    upstream_ref: Optional[str] = None,
) -> str:
    """
    Convert a Make.com expression to n8n format.

    Example:
        >>> convert_make_to_n8n_expression('{{upper(1.name)}}')
        '={{ $str.upper($json.name) }}'
    """
    return translate_make_to_n8n(expression, module_names, upstream_ref).text
