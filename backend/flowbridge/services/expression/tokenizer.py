"""
Expression Tokenizer.

Tokenizes the body of an n8n (`={{ ... }}`) or Make.com (`{{ ... }}`) expression.
Every token keeps its start/end offsets so the rewriter can copy untouched
source text verbatim. Tokenizing never fails: characters outside the grammar
become UNKNOWN tokens.
"""
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List


class TokenType(Enum):
    """Token types shared by both expression syntaxes."""
    NUMBER = auto()        # 123, 45.67
    STRING = auto()        # "text", 'text'
    QUOTED_NAME = auto()   # `Field Name` (Make.com member name)
    VARIABLE = auto()      # $json, $env, $node, $
    IDENTIFIER = auto()    # upper, scenario, true
    DOT = auto()           # .
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    COMMA = auto()         # ,
    SEMICOLON = auto()     # ; (Make.com argument separator)
    OPERATOR = auto()      # + - * / %
    COMPARISON = auto()    # === !== == != <= >= < >
    LOGICAL = auto()       # && || !
    QUESTION = auto()      # ?
    COLON = auto()         # :
    UNKNOWN = auto()       # anything else
    EOF = auto()           # end of expression


@dataclass
class Token:
    """Represents a single token."""
    type: TokenType
    value: str
    start: int
    end: int

    @property
    def position(self) -> int:
        return self.start


# Token patterns in order of precedence
TOKEN_PATTERNS = [
    (TokenType.STRING, re.compile(r'"((?:[^"\\]|\\.)*)"')),
    (TokenType.STRING, re.compile(r"'((?:[^'\\]|\\.)*)'")),
    (TokenType.QUOTED_NAME, re.compile(r'`([^`]*)`')),
    (TokenType.NUMBER, re.compile(r'\d+(?:\.\d+)?')),
    (TokenType.VARIABLE, re.compile(r'\$[A-Za-z_][A-Za-z0-9_]*|\$(?=\s*\()')),
    (TokenType.IDENTIFIER, re.compile(r'[A-Za-z_][A-Za-z0-9_]*')),
    (TokenType.COMPARISON, re.compile(r'===|!==|==|!=|<=|>=|<|>')),
    (TokenType.LOGICAL, re.compile(r'&&|\|\||!')),
    (TokenType.OPERATOR, re.compile(r'[+\-*/%]')),
]

SINGLE_CHAR_TOKENS = {
    '.': TokenType.DOT,
    '[': TokenType.LBRACKET,
    ']': TokenType.RBRACKET,
    '(': TokenType.LPAREN,
    ')': TokenType.RPAREN,
    '{': TokenType.LBRACE,
    '}': TokenType.RBRACE,
    ',': TokenType.COMMA,
    ';': TokenType.SEMICOLON,
    '?': TokenType.QUESTION,
    ':': TokenType.COLON,
}

_ESCAPES = {'n': '\n', 't': '\t', 'r': '\r'}


def _unescape(value: str) -> str:
    return re.sub(r'\\(.)', lambda m: _ESCAPES.get(m.group(1), m.group(1)), value)


class ExpressionTokenizer:
    """Tokenizes expression bodies."""

    def __init__(self, expression: str):
        self.expression = expression
        self.position = 0
        self.tokens: List[Token] = []

    def tokenize(self) -> List[Token]:
        """Convert expression to list of tokens."""
        text = self.expression
        while self.position < len(text):
            char = text[self.position]

            # Skip whitespace
            if char.isspace():
                self.position += 1
                continue

            if char in SINGLE_CHAR_TOKENS:
                self._emit(SINGLE_CHAR_TOKENS[char], char, 1)
                continue

            for token_type, pattern in TOKEN_PATTERNS:
                match = pattern.match(text, self.position)
                if match:
                    if token_type == TokenType.STRING:
                        value = _unescape(match.group(1))
                    elif match.lastindex:
                        value = match.group(1)
                    else:
                        value = match.group(0)
                    self._emit(token_type, value, len(match.group(0)))
                    break
            else:
                self._emit(TokenType.UNKNOWN, char, 1)

        self.tokens.append(Token(TokenType.EOF, '', len(text), len(text)))
        return self.tokens

    def _emit(self, token_type: TokenType, value: str, length: int) -> None:
        start = self.position
        self.position += length
        self.tokens.append(Token(token_type, value, start, self.position))


def tokenize(expression: str) -> List[Token]:
    """Tokenize an expression body."""
    return ExpressionTokenizer(expression or '').tokenize()
