"""
R Lexer - Tokenizes R source code into tokens.

Handles:
- Numbers (decimal, hex, exponents, L suffix for integers)
- Strings (single/double quoted, escapes, raw strings r"(...)")
- Identifiers and `backtick quoted` names
- Reserved words and literal constants (TRUE, NULL, Inf, ...)
- Operators, including user-defined %op%
- Comments (# to end of line)
- Newlines, which the parser needs to find the end of an expression
"""

from enum import Enum, auto
from dataclasses import dataclass
from typing import Any, List, Optional

from ..errors import UnparsableText


class TokenType(Enum):
    """R token types."""
    # Delimiters
    LPAREN = auto()      # (
    RPAREN = auto()      # )
    LBRACE = auto()      # {
    RBRACE = auto()      # }
    LBRACKET = auto()    # [
    LBB = auto()         # [[
    RBRACKET = auto()    # ]
    COMMA = auto()       # ,
    SEMICOLON = auto()   # ;

    # Literals
    NUMBER = auto()      # 1, 1.5, 0x10, 1L
    STRING = auto()      # "text", 'text'
    CONSTANT = auto()    # TRUE FALSE NULL Inf NaN
    SYMBOL = auto()      # identifier or `quoted name`

    KEYWORD = auto()     # if else for in while repeat function break next
    OPERATOR = auto()    # + - <- %in% ...

    NEWLINE = auto()
    EOF = auto()


@dataclass
class Token:
    """Represents a single token."""
    type: TokenType
    value: Any
    line: int
    column: int

    def __repr__(self):
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"


KEYWORDS = frozenset(['if', 'else', 'for', 'in', 'while', 'repeat',
                      'function', 'break', 'next'])

INT_MAX = 2**31 - 1       # largest R integer

CONSTANTS = {
    'TRUE': True,
    'FALSE': False,
    'NULL': None,
    'Inf': float('inf'),
    'NaN': float('nan'),
}

# Longest first so that "<<-" wins over "<-" and "<".
OPERATORS = [
    ':::', '<<-', '->>',
    '::', '<-', '->', '<=', '>=', '==', '!=', '&&', '||', '|>', '**',
    '+', '-', '*', '/', '^', '<', '>', '!', '&', '|', '~', '?', ':', '=',
    '$', '@',
]

ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', '0': '\0', 'a': '\a', 'b': '\b',
    'f': '\f', 'v': '\v', '\\': '\\', '"': '"', "'": "'", '`': '`', ' ': ' ',
}

RAW_CLOSERS = {'(': ')', '[': ']', '{': '}'}


class Lexer:
    """Tokenizes R source code."""

    def __init__(self, source: str, filename: str = "<input>"):
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self.tokens: List[Token] = []

    def error(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        """Raise a lexer error with location information."""
        raise UnparsableText(message, self.filename,
                             line if line is not None else self.line,
                             column if column is not None else self.column)

    def peek(self, offset: int = 0) -> Optional[str]:
        """Peek at character at current position + offset."""
        pos = self.pos + offset
        if pos < len(self.source):
            return self.source[pos]
        return None

    def advance(self) -> Optional[str]:
        """Consume and return current character."""
        if self.pos >= len(self.source):
            return None

        ch = self.source[self.pos]
        self.pos += 1

        if ch == '\n':
            self.line += 1
            self.column = 1
        else:
            self.column += 1

        return ch

    def skip_whitespace(self):
        """Skip blanks; newlines are tokens."""
        while self.peek() and self.peek() in ' \t\r\f':
            self.advance()

    def skip_comment(self):
        """Skip a # comment up to (not including) the newline."""
        while self.peek() is not None and self.peek() != '\n':
            self.advance()

    def is_ident_start(self, ch: Optional[str]) -> bool:
        if ch is None:
            return False
        if ch == '.':
            nxt = self.peek(1)
            return nxt is None or not nxt.isdigit()
        return ch.isalpha()

    @staticmethod
    def is_ident_char(ch: Optional[str]) -> bool:
        return ch is not None and (ch.isalnum() or ch in '._')

    def read_identifier(self) -> str:
        chars = []
        while self.is_ident_char(self.peek()):
            chars.append(self.advance())
        return ''.join(chars)

    def read_backtick(self) -> str:
        """Read a `quoted` name."""
        line, col = self.line, self.column
        self.advance()  # `
        chars = []
        while True:
            ch = self.peek()
            if ch is None:
                self.error("Unterminated backtick name", line, col)
            if ch == '`':
                self.advance()
                break
            if ch == '\\':
                chars.append(self.read_escape())
            else:
                chars.append(self.advance())
        if not chars:
            self.error("Empty backtick name", line, col)
        return ''.join(chars)

    def read_escape(self) -> str:
        """Read a backslash escape inside a string or backtick name."""
        line, col = self.line, self.column
        self.advance()  # backslash
        ch = self.advance()
        if ch is None:
            self.error("Unterminated escape sequence", line, col)
        if ch in ESCAPES:
            return ESCAPES[ch]
        if ch == 'x':
            digits = ''
            while len(digits) < 2 and self.peek() and self.peek() in '0123456789abcdefABCDEF':
                digits += self.advance()
            if not digits:
                self.error("'\\x' used without hex digits", line, col)
            return chr(int(digits, 16))
        if ch in 'uU':
            limit = 4 if ch == 'u' else 8
            braced = self.peek() == '{'
            if braced:
                self.advance()
            digits = ''
            while len(digits) < limit and self.peek() and self.peek() in '0123456789abcdefABCDEF':
                digits += self.advance()
            if braced:
                if self.peek() != '}':
                    self.error("Invalid \\u{xxxx} sequence", line, col)
                self.advance()
            if not digits:
                self.error(f"'\\{ch}' used without hex digits", line, col)
            return chr(int(digits, 16))
        self.error(f"'\\{ch}' is an unrecognized escape", line, col)

    def read_string(self) -> str:
        """Read a single or double quoted string."""
        line, col = self.line, self.column
        quote = self.advance()
        chars = []
        while True:
            ch = self.peek()
            if ch is None:
                self.error("Unterminated string", line, col)
            if ch == quote:
                self.advance()
                break
            if ch == '\\':
                chars.append(self.read_escape())
            else:
                chars.append(self.advance())
        return ''.join(chars)

    def read_raw_string(self) -> str:
        """Read r"(...)", R"[...]", r"---{...}---" and friends."""
        line, col = self.line, self.column
        self.advance()  # r or R
        quote = self.advance()
        dashes = 0
        while self.peek() == '-':
            self.advance()
            dashes += 1
        opener = self.advance()
        if opener not in RAW_CLOSERS:
            self.error("Malformed raw string literal", line, col)
        terminator = RAW_CLOSERS[opener] + '-' * dashes + quote
        end = self.source.find(terminator, self.pos)
        if end < 0:
            self.error("Unterminated raw string", line, col)
        chars = []
        while self.pos < end:
            chars.append(self.advance())
        for _ in terminator:
            self.advance()
        return ''.join(chars)

    def read_number(self) -> Any:
        """Read a numeric literal: float by default, int with an L suffix."""
        line, col = self.line, self.column
        chars = []

        if self.peek() == '0' and self.peek(1) in ('x', 'X'):
            self.advance()
            self.advance()
            while self.peek() and self.peek() in '0123456789abcdefABCDEF':
                chars.append(self.advance())
            if not chars:
                self.error("Invalid hex number", line, col)
            value: Any = float(int(''.join(chars), 16))
        else:
            while self.peek() and self.peek().isdigit():
                chars.append(self.advance())
            if self.peek() == '.':
                chars.append(self.advance())
                while self.peek() and self.peek().isdigit():
                    chars.append(self.advance())
            if self.peek() in ('e', 'E'):
                sign = self.peek(1)
                if sign and (sign.isdigit() or (sign in '+-' and (self.peek(2) or '').isdigit())):
                    chars.append(self.advance())
                    if self.peek() in ('+', '-'):
                        chars.append(self.advance())
                    while self.peek() and self.peek().isdigit():
                        chars.append(self.advance())
            num_str = ''.join(chars)
            try:
                value = float(num_str)
            except ValueError:
                self.error(f"Invalid number: {num_str}", line, col)

        if self.peek() == 'L':
            self.advance()
            # out of range: R keeps such literals as doubles
            if value.is_integer() and abs(value) <= INT_MAX:
                value = int(value)
        elif self.peek() == 'i':
            self.error("Complex literals are not supported", line, col)

        if self.is_ident_char(self.peek()):
            self.error(f"Unexpected character {self.peek()!r} after number", self.line, self.column)
        return value

    def read_special_operator(self) -> str:
        """Read %op%."""
        line, col = self.line, self.column
        chars = [self.advance()]
        while True:
            ch = self.peek()
            if ch is None or ch == '\n':
                self.error("Unterminated %operator%", line, col)
            chars.append(self.advance())
            if ch == '%':
                return ''.join(chars)

    def add(self, token_type: TokenType, value: Any, line: int, col: int):
        self.tokens.append(Token(token_type, value, line, col))

    def tokenize(self) -> List[Token]:
        """Tokenize the entire source code."""
        while self.pos < len(self.source):
            self.skip_whitespace()

            if self.pos >= len(self.source):
                break

            ch = self.peek()
            line = self.line
            col = self.column

            if ch == '#':
                self.skip_comment()
                continue

            if ch == '\n':
                self.advance()
                # Runs of blank lines collapse into one NEWLINE
                if not self.tokens or self.tokens[-1].type != TokenType.NEWLINE:
                    self.add(TokenType.NEWLINE, '\n', line, col)
                continue

            # Delimiters
            if ch == '(':
                self.advance()
                self.add(TokenType.LPAREN, '(', line, col)
            elif ch == ')':
                self.advance()
                self.add(TokenType.RPAREN, ')', line, col)
            elif ch == '{':
                self.advance()
                self.add(TokenType.LBRACE, '{', line, col)
            elif ch == '}':
                self.advance()
                self.add(TokenType.RBRACE, '}', line, col)
            elif ch == '[':
                self.advance()
                if self.peek() == '[':
                    self.advance()
                    self.add(TokenType.LBB, '[[', line, col)
                else:
                    self.add(TokenType.LBRACKET, '[', line, col)
            elif ch == ']':
                self.advance()
                self.add(TokenType.RBRACKET, ']', line, col)
            elif ch == ',':
                self.advance()
                self.add(TokenType.COMMA, ',', line, col)
            elif ch == ';':
                self.advance()
                self.add(TokenType.SEMICOLON, ';', line, col)

            # Strings and names
            elif ch in ('"', "'"):
                self.add(TokenType.STRING, self.read_string(), line, col)
            elif ch in ('r', 'R') and self.peek(1) in ('"', "'"):
                self.add(TokenType.STRING, self.read_raw_string(), line, col)
            elif ch == '`':
                self.add(TokenType.SYMBOL, self.read_backtick(), line, col)

            # Numbers: 1, 1.5, .5, 0x1F
            elif ch.isdigit() or (ch == '.' and (self.peek(1) or '').isdigit()):
                self.add(TokenType.NUMBER, self.read_number(), line, col)

            elif self.is_ident_start(ch):
                name = self.read_identifier()
                if name in KEYWORDS:
                    self.add(TokenType.KEYWORD, name, line, col)
                elif name in CONSTANTS:
                    self.add(TokenType.CONSTANT, CONSTANTS[name], line, col)
                else:
                    self.add(TokenType.SYMBOL, name, line, col)

            # \(x) is shorthand for function(x)
            elif ch == '\\':
                self.advance()
                self.add(TokenType.KEYWORD, 'function', line, col)

            elif ch == '%':
                self.add(TokenType.OPERATOR, self.read_special_operator(), line, col)

            else:
                for op in OPERATORS:
                    if self.source.startswith(op, self.pos):
                        for _ in op:
                            self.advance()
                        # ** is an old spelling of ^
                        self.add(TokenType.OPERATOR, '^' if op == '**' else op, line, col)
                        break
                else:
                    self.error(f"Unexpected character {ch!r}")

        # Add EOF token
        self.tokens.append(Token(TokenType.EOF, None, self.line, self.column))
        return self.tokens


def tokenize(source: str, filename: str = "<input>") -> List[Token]:
    """Convenience function to tokenize R source code."""
    lexer = Lexer(source, filename)
    return lexer.tokenize()
