"""
R Parser - Builds expression trees from tokens.

Operators are resolved with precedence climbing over R's operator table.
Control flow keywords (if, for, while, repeat, function) become ordinary
calls whose head is the keyword symbol, exactly as R represents them:
`if (a) b else c` is the call `if`(a, b, c).
"""

from typing import List, Optional, Tuple

from ..errors import UnparsableText
from ..lexer import Lexer, Token, TokenType
from .ast_nodes import ASTNode, Arg, Call, Constant, MISSING, Param, ParamList, Symbol


# Binding powers: higher binds tighter. (power, right_associative)
BINARY_OPS = {
    '?': (10, False),
    '=': (20, True),
    '<-': (30, True),
    '<<-': (30, True),
    '->': (40, False),
    '->>': (40, False),
    '~': (50, False),
    '||': (60, False),
    '|': (60, False),
    '&&': (70, False),
    '&': (70, False),
    '==': (90, False),
    '!=': (90, False),
    '<': (90, False),
    '>': (90, False),
    '<=': (90, False),
    '>=': (90, False),
    '+': (100, False),
    '-': (100, False),
    '*': (110, False),
    '/': (110, False),
    '|>': (120, False),
    ':': (130, False),
    '^': (150, True),
    '$': (170, False),
    '@': (170, False),
    '::': (180, False),
    ':::': (180, False),
}

SPECIAL_OP_POWER = 120      # %any%

PREFIX_OPS = {
    '?': 10,
    '~': 50,
    '!': 80,
    '-': 140,
    '+': 140,
}

POSTFIX_POWER = 160         # f(...), x[...], x[[...]]

ASSIGN_POWER = BINARY_OPS['='][0]


def binary_info(op: str) -> Optional[Tuple[int, bool]]:
    """Binding power and associativity of a binary operator, or None."""
    if op in BINARY_OPS:
        return BINARY_OPS[op]
    if len(op) >= 2 and op.startswith('%') and op.endswith('%'):
        return (SPECIAL_OP_POWER, False)
    return None


def describe(token: Token) -> str:
    if token.type == TokenType.EOF:
        return "end of input"
    if token.type == TokenType.NEWLINE:
        return "end of line"
    if token.type == TokenType.STRING:
        return f"string {token.value!r}"
    if token.type == TokenType.NUMBER:
        return f"number {token.value!r}"
    return f"'{token.value}'" if token.value is not None else token.type.name


class Parser:
    """Parses R tokens into expression trees."""

    def __init__(self, tokens: List[Token], filename: str = "<input>"):
        self.tokens = tokens
        self.filename = filename
        self.pos = 0
        # 'top' and 'brace' treat newlines as terminators, 'paren' skips them
        self.contexts: List[str] = ['top']

    def error(self, message: str, token: Optional[Token] = None):
        """Raise a parser error with location information."""
        token = token or self.tokens[self.pos]
        raise UnparsableText(message, self.filename, token.line, token.column)

    def skip_newlines(self):
        while self.tokens[self.pos].type == TokenType.NEWLINE:
            self.pos += 1

    def peek(self) -> Token:
        """Current token; newlines are invisible inside brackets."""
        if self.contexts[-1] == 'paren':
            self.skip_newlines()
        return self.tokens[self.pos]

    def advance(self) -> Token:
        """Consume and return current token."""
        token = self.peek()
        if self.pos < len(self.tokens) - 1:
            self.pos += 1
        return token

    def expect(self, token_type: TokenType, value: Optional[str] = None) -> Token:
        """Consume token of expected type or raise error."""
        token = self.peek()
        if token.type != token_type or (value is not None and token.value != value):
            wanted = f"'{value}'" if value is not None else token_type.name
            self.error(f"Expected {wanted}, got {describe(token)}", token)
        return self.advance()

    def at_operator(self, value: str) -> bool:
        token = self.peek()
        return token.type == TokenType.OPERATOR and token.value == value

    def parse(self) -> List[ASTNode]:
        """Parse every top-level expression."""
        exprs = []
        while True:
            self.skip_separators()
            if self.peek().type == TokenType.EOF:
                break
            exprs.append(self.parse_expression())
            token = self.peek()
            if token.type not in (TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.EOF):
                self.error(f"Unexpected {describe(token)}", token)
        return exprs

    def skip_separators(self):
        while self.tokens[self.pos].type in (TokenType.NEWLINE, TokenType.SEMICOLON):
            self.pos += 1

    def parse_expression(self, right_power: int = 0) -> ASTNode:
        """Parse an expression whose operators all bind tighter than right_power."""
        left = self.parse_prefix(self.advance())
        while True:
            token = self.peek()
            if self.left_power(token) <= right_power:
                return left
            self.advance()
            left = self.parse_infix(token, left)

    def left_power(self, token: Token) -> int:
        if token.type == TokenType.OPERATOR:
            info = binary_info(token.value)
            return info[0] if info else 0
        if token.type in (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBB):
            return POSTFIX_POWER
        return 0

    # ------------------------------------------------------------------
    # Prefix positions

    def parse_prefix(self, token: Token) -> ASTNode:
        line, col = token.line, token.column

        if token.type in (TokenType.NUMBER, TokenType.STRING, TokenType.CONSTANT):
            return Constant(token.value, line=line, column=col)

        if token.type == TokenType.SYMBOL:
            return Symbol(token.value, line=line, column=col)

        if token.type == TokenType.OPERATOR and token.value in PREFIX_OPS:
            self.skip_newlines()
            operand = self.parse_expression(PREFIX_OPS[token.value])
            return Call(Symbol(token.value, line=line, column=col), [operand], line=line, column=col)

        if token.type == TokenType.LPAREN:
            self.contexts.append('paren')
            inner = self.parse_expression()
            self.expect(TokenType.RPAREN)
            self.contexts.pop()
            return Call(Symbol('(', line=line, column=col), [inner], line=line, column=col)

        if token.type == TokenType.LBRACE:
            return self.parse_block(token)

        if token.type == TokenType.KEYWORD:
            if token.value == 'if':
                return self.parse_if(token)
            if token.value == 'for':
                return self.parse_for(token)
            if token.value == 'while':
                return self.parse_while(token)
            if token.value == 'repeat':
                self.skip_newlines()
                body = self.parse_expression()
                return Call(Symbol('repeat', line=line, column=col), [body], line=line, column=col)
            if token.value == 'function':
                return self.parse_function(token)
            if token.value in ('break', 'next'):
                return Call(Symbol(token.value, line=line, column=col), [], line=line, column=col)

        self.error(f"Unexpected {describe(token)}", token)

    def parse_block(self, token: Token) -> Call:
        """Parse { stmt; stmt ... }."""
        self.contexts.append('brace')
        statements = []
        while True:
            self.skip_separators()
            current = self.peek()
            if current.type == TokenType.RBRACE:
                break
            if current.type == TokenType.EOF:
                self.error("Unclosed '{'", token)
            statements.append(self.parse_expression())
            current = self.peek()
            if current.type not in (TokenType.NEWLINE, TokenType.SEMICOLON, TokenType.RBRACE):
                self.error(f"Unexpected {describe(current)}", current)
        self.expect(TokenType.RBRACE)
        self.contexts.pop()
        return Call(Symbol('{', line=token.line, column=token.column), statements,
                    line=token.line, column=token.column)

    def parse_condition(self) -> ASTNode:
        """Parse the parenthesised condition of if/while."""
        self.expect(TokenType.LPAREN)
        self.contexts.append('paren')
        cond = self.parse_expression()
        self.expect(TokenType.RPAREN)
        self.contexts.pop()
        return cond

    def at_else(self) -> bool:
        """Consume up to an `else` that continues the current if, if there is one."""
        i = self.pos
        # At top level a newline ends the if statement before any else
        if self.contexts[-1] != 'top':
            while self.tokens[i].type == TokenType.NEWLINE:
                i += 1
        token = self.tokens[i]
        if token.type == TokenType.KEYWORD and token.value == 'else':
            self.pos = i
            return True
        return False

    def parse_if(self, token: Token) -> Call:
        cond = self.parse_condition()
        self.skip_newlines()
        args = [cond, self.parse_expression()]
        if self.at_else():
            self.advance()
            self.skip_newlines()
            args.append(self.parse_expression())
        return Call(Symbol('if', line=token.line, column=token.column), args,
                    line=token.line, column=token.column)

    def parse_for(self, token: Token) -> Call:
        self.expect(TokenType.LPAREN)
        self.contexts.append('paren')
        var_token = self.expect(TokenType.SYMBOL)
        self.expect(TokenType.KEYWORD, 'in')
        seq = self.parse_expression()
        self.expect(TokenType.RPAREN)
        self.contexts.pop()
        self.skip_newlines()
        body = self.parse_expression()
        var = Symbol(var_token.value, line=var_token.line, column=var_token.column)
        return Call(Symbol('for', line=token.line, column=token.column), [var, seq, body],
                    line=token.line, column=token.column)

    def parse_while(self, token: Token) -> Call:
        cond = self.parse_condition()
        self.skip_newlines()
        body = self.parse_expression()
        return Call(Symbol('while', line=token.line, column=token.column), [cond, body],
                    line=token.line, column=token.column)

    def parse_function(self, token: Token) -> Call:
        """Parse function(x, y = 2) body."""
        params_token = self.expect(TokenType.LPAREN)
        self.contexts.append('paren')
        params = []
        seen = set()
        if self.peek().type == TokenType.RPAREN:
            self.advance()
        else:
            while True:
                name_token = self.expect(TokenType.SYMBOL)
                if name_token.value in seen:
                    self.error(f"Repeated formal argument '{name_token.value}'", name_token)
                seen.add(name_token.value)
                default = MISSING
                if self.at_operator('='):
                    self.advance()
                    default = self.parse_expression(ASSIGN_POWER)
                params.append(Param(name_token.value, default))
                sep = self.advance()
                if sep.type == TokenType.RPAREN:
                    break
                if sep.type != TokenType.COMMA:
                    self.error(f"Expected ',' or ')', got {describe(sep)}", sep)
        self.contexts.pop()
        self.skip_newlines()
        body = self.parse_expression()
        param_list = ParamList(params, line=params_token.line, column=params_token.column)
        return Call(Symbol('function', line=token.line, column=token.column), [param_list, body],
                    line=token.line, column=token.column)

    # ------------------------------------------------------------------
    # Infix and postfix positions

    def parse_infix(self, token: Token, left: ASTNode) -> ASTNode:
        line, col = left.line, left.column

        if token.type == TokenType.LPAREN:
            args = self.parse_arguments(TokenType.RPAREN)
            return Call(left, args, line=line, column=col)

        if token.type in (TokenType.LBRACKET, TokenType.LBB):
            args = self.parse_arguments(TokenType.RBRACKET)
            if token.type == TokenType.LBB:
                self.expect(TokenType.RBRACKET)
            head = Symbol(token.value, line=token.line, column=token.column)
            return Call(head, [Arg(None, left)] + args, line=line, column=col)

        op = token.value
        head = Symbol(op, line=token.line, column=token.column)

        if op in ('$', '@'):
            return Call(head, [left, self.parse_member(token)], line=line, column=col)

        if op in ('::', ':::'):
            if not (isinstance(left, Symbol) or (isinstance(left, Constant) and isinstance(left.value, str))):
                self.error(f"Unexpected '{op}'", token)
            return Call(head, [left, self.parse_member(token)], line=line, column=col)

        power, right_assoc = binary_info(op)
        self.skip_newlines()
        right = self.parse_expression(power - 1 if right_assoc else power)

        # Rightward assignment is stored as ordinary assignment
        if op == '->':
            return Call(Symbol('<-', line=token.line, column=token.column), [right, left],
                        line=line, column=col)
        if op == '->>':
            return Call(Symbol('<<-', line=token.line, column=token.column), [right, left],
                        line=line, column=col)
        if op == '|>':
            return self.parse_pipe(token, left, right)

        return Call(head, [left, right], line=line, column=col)

    def parse_member(self, token: Token) -> ASTNode:
        """Parse the name after $, @ or ::."""
        self.skip_newlines()
        name = self.advance()
        if name.type == TokenType.SYMBOL:
            return Symbol(name.value, line=name.line, column=name.column)
        if name.type == TokenType.STRING:
            return Constant(name.value, line=name.line, column=name.column)
        self.error(f"Unexpected {describe(name)} after '{token.value}'", name)

    def parse_pipe(self, token: Token, left: ASTNode, right: ASTNode) -> Call:
        """x |> f(y) is rewritten to f(x, y) at parse time."""
        if not isinstance(right, Call) or right.is_call_to('function'):
            self.error("The pipe operator requires a function call as RHS", token)
        return right.add_arg(left, index=0)

    def parse_arguments(self, closing: TokenType) -> List[Arg]:
        """Parse call arguments up to and including the closing delimiter."""
        self.contexts.append('paren')
        args = []
        if self.peek().type == closing:
            self.advance()
            self.contexts.pop()
            return args

        while True:
            token = self.peek()
            if token.type in (TokenType.COMMA, closing):
                self.error("Empty arguments are not supported", token)

            name = None
            if token.type in (TokenType.SYMBOL, TokenType.STRING) and self.named_argument_follows():
                name = token.value
                self.advance()  # name
                self.advance()  # =
                following = self.peek()
                if following.type in (TokenType.COMMA, closing):
                    self.error(f"Missing value for argument '{name}'", following)
                value = self.parse_expression(ASSIGN_POWER)
            else:
                value = self.parse_expression()
            args.append(Arg(name, value))

            sep = self.advance()
            if sep.type == closing:
                break
            if sep.type != TokenType.COMMA:
                self.error(f"Expected ',' or closing bracket, got {describe(sep)}", sep)

        self.contexts.pop()
        return args

    def named_argument_follows(self) -> bool:
        """True if the token after the current one is '='."""
        i = self.pos + 1
        while self.tokens[i].type == TokenType.NEWLINE:
            i += 1
        token = self.tokens[i]
        return token.type == TokenType.OPERATOR and token.value == '='


def parse(text: str, filename: str = "<input>") -> List[ASTNode]:
    """Parse source text into its top-level expressions."""
    tokens = Lexer(text, filename).tokenize()
    return Parser(tokens, filename).parse()


def parse_expr(text: str, filename: str = "<input>") -> ASTNode:
    """Parse source text holding exactly one expression."""
    exprs = parse(text, filename)
    if len(exprs) != 1:
        raise UnparsableText(f"expected exactly one expression, found {len(exprs)}", filename)
    return exprs[0]
