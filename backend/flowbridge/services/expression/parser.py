"""
Expression Parser.

Recursive descent parser for the arithmetic and reference subset shared by
n8n and Make.com expressions.
"""
from typing import List

from .ast_nodes import (
    Node, Literal, Variable, Identifier, ModuleRef, MemberAccess,
    IndexAccess, Call, BinaryOp, UnaryOp
)
from .tokenizer import Token, TokenType, tokenize


KEYWORD_LITERALS = {
    'true': True,
    'false': False,
    'null': None,
    'undefined': None,
}


class ExpressionParser:
    """
    Recursive descent parser for expression bodies.

    Grammar:
        expression -> term (('+' | '-') term)*
        term -> unary (('*' | '/' | '%') unary)*
        unary -> '-' unary | postfix
        postfix -> primary ('.' name | '[' expression ']' | '(' args ')')*
        primary -> NUMBER | STRING | VARIABLE | IDENTIFIER | module_ref | '(' expression ')'
        module_ref -> NUMBER '.' name       (no whitespace around the dot)
        name -> IDENTIFIER | QUOTED_NAME
        args -> expression ((',' | ';') expression)*

    Anything else (comparisons, ternaries, object literals, arrow functions)
    raises SyntaxError.
    """

    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.position = 0

    def current(self) -> Token:
        """Get current token."""
        if self.position < len(self.tokens):
            return self.tokens[self.position]
        return self.tokens[-1]  # EOF

    def peek(self, offset: int = 1) -> Token:
        index = self.position + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return self.tokens[-1]

    def advance(self) -> Token:
        """Advance and return previous token."""
        token = self.current()
        self.position += 1
        return token

    def match(self, *types: TokenType) -> bool:
        """Check if current token matches any of the given types."""
        return self.current().type in types

    def expect(self, token_type: TokenType) -> Token:
        """Expect current token to be of given type."""
        if self.match(token_type):
            return self.advance()
        raise SyntaxError(
            f"Expected {token_type.name}, got {self.current().type.name} "
            f"at position {self.current().position}"
        )

    def parse(self) -> Node:
        """Parse the whole body; trailing tokens are a syntax error."""
        if self.match(TokenType.EOF):
            raise SyntaxError("Empty expression")
        node = self.expression()
        if not self.match(TokenType.EOF):
            token = self.current()
            raise SyntaxError(
                f"Unexpected token {token.type.name}: '{token.value}' "
                f"at position {token.position}"
            )
        return node

    def expression(self) -> Node:
        """Parse expression: term (('+' | '-') term)*"""
        left = self.term()

        while self.match(TokenType.OPERATOR) and self.current().value in ('+', '-'):
            op = self.advance().value
            right = self.term()
            left = BinaryOp(left, op, right)

        return left

    def term(self) -> Node:
        """Parse term: unary (('*' | '/' | '%') unary)*"""
        left = self.unary()

        while self.match(TokenType.OPERATOR) and self.current().value in ('*', '/', '%'):
            op = self.advance().value
            right = self.unary()
            left = BinaryOp(left, op, right)

        return left

    def unary(self) -> Node:
        """Parse unary: '-' unary | postfix"""
        if self.match(TokenType.OPERATOR) and self.current().value == '-':
            self.advance()
            return UnaryOp('-', self.unary())
        return self.postfix()

    def postfix(self) -> Node:
        """Parse member access, indexing and calls after a primary."""
        node = self.primary()

        while True:
            if self.match(TokenType.DOT):
                self.advance()
                node = MemberAccess(node, self.member_name())
            elif self.match(TokenType.LBRACKET):
                self.advance()
                index = self.expression()
                self.expect(TokenType.RBRACKET)
                node = IndexAccess(node, index)
            elif self.match(TokenType.LPAREN):
                self.advance()
                node = Call(node, self.arguments())
            else:
                return node

    def member_name(self) -> str:
        if self.match(TokenType.IDENTIFIER, TokenType.QUOTED_NAME):
            return self.advance().value
        token = self.current()
        raise SyntaxError(
            f"Expected member name, got {token.type.name} at position {token.position}"
        )

    def arguments(self) -> List[Node]:
        """Parse call arguments up to the closing parenthesis."""
        args = []
        if not self.match(TokenType.RPAREN):
            args.append(self.expression())
            while self.match(TokenType.COMMA, TokenType.SEMICOLON):
                self.advance()
                args.append(self.expression())
        self.expect(TokenType.RPAREN)
        return args

    def primary(self) -> Node:
        """Parse primary: NUMBER | STRING | VARIABLE | IDENTIFIER | module_ref | '(' expr ')'"""
        token = self.current()

        if self.match(TokenType.NUMBER):
            self.advance()
            # Make.com module reference: 1.field
            dot = self.current()
            if (dot.type == TokenType.DOT and dot.start == token.end
                    and self.peek().type in (TokenType.IDENTIFIER, TokenType.QUOTED_NAME)):
                return ModuleRef(token.value)
            if '.' in token.value:
                return Literal(float(token.value))
            return Literal(int(token.value))

        if self.match(TokenType.STRING):
            self.advance()
            return Literal(token.value)

        if self.match(TokenType.VARIABLE):
            self.advance()
            return Variable(token.value)

        if self.match(TokenType.IDENTIFIER):
            self.advance()
            if token.value in KEYWORD_LITERALS:
                return Literal(KEYWORD_LITERALS[token.value])
            return Identifier(token.value)

        if self.match(TokenType.LPAREN):
            self.advance()
            expr = self.expression()
            self.expect(TokenType.RPAREN)
            return expr

        raise SyntaxError(
            f"Unexpected token {token.type.name}: '{token.value}' "
            f"at position {token.position}"
        )


def parse(expression: str) -> Node:
    """Parse an expression body into an AST."""
    tokens = tokenize(expression)
    parser = ExpressionParser(tokens)
    return parser.parse()
