"""
R Deparser - Renders expression trees back to source text.

Operators are written infix only when the operator table guarantees that
re-parsing the text gives back the same tree; otherwise the call is written
in function form with a backtick-quoted head, e.g. `+`(a, b) * c. Comments
and the original layout are not preserved.
"""

import math
from typing import List, Sequence, Tuple

from ..lexer.lexer import CONSTANTS, KEYWORDS
from .ast_nodes import ASTNode, Arg, Call, Constant, MissingArg, ParamList, Symbol
from .parser import ASSIGN_POWER, POSTFIX_POWER, PREFIX_OPS, binary_info

ATOM_POWER = 200            # symbols, constants, f(x), (x), {...}
OPEN_POWER = 0              # if/for/while/repeat/function: their body runs to the end

CONTROL_FORMS = ('if', 'for', 'while', 'repeat', 'function')

# Binary operators the parser rewrites, or whose right side is a name
NO_INFIX = frozenset(['->', '->>', '|>', '$', '@', '::', ':::'])

RESERVED_NAMES = KEYWORDS | frozenset(CONSTANTS) | frozenset(
    ['NA', 'NA_integer_', 'NA_real_', 'NA_character_'])

STRING_ESCAPES = {'\\': '\\\\', '"': '\\"', '\n': '\\n', '\t': '\\t', '\r': '\\r'}


def is_syntactic_name(name: str) -> bool:
    """True if name can be written without backticks."""
    if not name or name in RESERVED_NAMES:
        return False
    first = name[0]
    if first == '.':
        if len(name) > 1 and name[1].isdigit():
            return False
    elif not first.isalpha():
        return False
    return all(ch.isalnum() or ch in '._' for ch in name)


def format_name(name: str) -> str:
    if is_syntactic_name(name):
        return name
    return '`' + name.replace('\\', '\\\\').replace('`', '\\`') + '`'


def format_string(value: str) -> str:
    out = []
    for ch in value:
        if ch in STRING_ESCAPES:
            out.append(STRING_ESCAPES[ch])
        elif ord(ch) < 0x20 or ord(ch) == 0x7f:
            out.append(f"\\x{ord(ch):02x}")
        else:
            out.append(ch)
    return '"' + ''.join(out) + '"'


def format_constant(value) -> str:
    if value is None:
        return 'NULL'
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, int):
        return f"{value}L"
    if isinstance(value, float):
        if math.isnan(value):
            return 'NaN'
        if math.isinf(value):
            return 'Inf' if value > 0 else '-Inf'
        if value.is_integer() and abs(value) < 1e15:
            return str(int(value))
        return repr(value)
    return format_string(value)


# A rendered fragment: its text, the binding power of its outermost
# operator, and whether it ends in an open body (if/function/...) that
# would swallow anything written after it.
Fragment = Tuple[str, int, bool]


class Deparser:
    """Renders expression trees as R source."""

    def __init__(self, indent: str = "    "):
        self.indent = indent

    def render(self, node: ASTNode) -> str:
        return self.fragment(node, 0)[0]

    def fragment(self, node: ASTNode, depth: int) -> Fragment:
        if isinstance(node, Constant):
            text = format_constant(node.value)
            if text.startswith('-'):
                return text, PREFIX_OPS['-'], False
            return text, ATOM_POWER, False
        if isinstance(node, Symbol):
            return format_name(node.name), ATOM_POWER, False
        if isinstance(node, MissingArg):
            return '', ATOM_POWER, False
        if isinstance(node, ParamList):
            return self.render_params(node, depth), ATOM_POWER, False
        return self.render_call(node, depth)

    # ------------------------------------------------------------------

    def protect(self, node: ASTNode, depth: int) -> str:
        """Render node so that it is safe in any operand position."""
        if isinstance(node, Call) and not node.is_call_to('function'):
            return self.render_prefix(node, depth)
        text, power, open_end = self.fragment(node, depth)
        if power < ATOM_POWER or open_end:
            # Function definitions and negative numbers have no function
            # form; parentheses keep the meaning but add a `(` call.
            return f"({text})"
        return text

    def operand(self, node: ASTNode, depth: int, needs: int, strict: bool) -> Tuple[str, bool]:
        """Render an operand that must bind at least as tightly as `needs`.

        With strict, an equal binding power is not enough either.
        """
        text, power, open_end = self.fragment(node, depth)
        if open_end and power == OPEN_POWER:
            # if/for/function read greedily from where they start
            return text, True
        if power < needs or (strict and power == needs):
            return self.protect(node, depth), False
        return text, open_end

    def left_operand(self, node: ASTNode, depth: int, needs: int, strict: bool) -> str:
        text, open_end = self.operand(node, depth, needs, strict)
        if open_end:
            return self.protect(node, depth)
        return text

    def render_prefix(self, call: Call, depth: int) -> str:
        """f(a, b = 1) form, always unambiguous."""
        if isinstance(call.head, Symbol):
            head = format_name(call.head.name)
        else:
            head = self.left_operand(call.head, depth, POSTFIX_POWER, False)
        return f"{head}({self.render_args(call.args, depth)})"

    def render_args(self, args: Sequence[Arg], depth: int) -> str:
        return ', '.join(self.render_arg(a, depth) for a in args)

    def render_arg(self, arg: Arg, depth: int) -> str:
        # `a = 1` as an argument would read back as a named argument
        text, power, _ = self.fragment(arg.value, depth)
        if OPEN_POWER < power <= ASSIGN_POWER:
            text = self.protect(arg.value, depth)
        if arg.name is None:
            return text
        return f"{format_name(arg.name)} = {text}"

    def render_params(self, params: ParamList, depth: int) -> str:
        parts = []
        for p in params.params:
            if not p.has_default:
                parts.append(format_name(p.name))
                continue
            text, power, _ = self.fragment(p.default, depth)
            if OPEN_POWER < power <= ASSIGN_POWER:
                text = self.protect(p.default, depth)
            parts.append(f"{format_name(p.name)} = {text}")
        return ', '.join(parts)

    def render_call(self, call: Call, depth: int) -> Fragment:
        if isinstance(call.head, Symbol):
            special = self.render_special(call, depth)
            if special is not None:
                return special
        return self.render_prefix(call, depth), ATOM_POWER, False

    def render_special(self, call: Call, depth: int):
        """Render call with R's own syntax, or return None when it has none."""
        name = call.head.name
        args = call.args
        values = [a.value for a in args]
        unnamed = all(a.name is None for a in args)
        n = len(args)

        if name == '{' and unnamed:
            return self.render_block(values, depth), ATOM_POWER, False

        if name == '(' and n == 1 and unnamed:
            return f"({self.fragment(values[0], depth)[0]})", ATOM_POWER, False

        if name in ('[', '[[') and n >= 1 and args[0].name is None:
            target = self.left_operand(values[0], depth, POSTFIX_POWER, False)
            close = ']' if name == '[' else ']]'
            return f"{target}{name}{self.render_args(args[1:], depth)}{close}", ATOM_POWER, False

        if not unnamed:
            return None

        if name in CONTROL_FORMS:
            return self.render_control(name, values, depth)

        if name in ('break', 'next') and n == 0:
            return name, ATOM_POWER, False

        if name in ('$', '@') and n == 2 and self.is_member(values[1], allow_string=True):
            power = binary_info(name)[0]
            target = self.left_operand(values[0], depth, power, False)
            return f"{target}{name}{self.fragment(values[1], depth)[0]}", power, False

        if name in ('::', ':::') and n == 2 and all(self.is_member(v, allow_string=True) for v in values):
            return (f"{self.fragment(values[0], depth)[0]}{name}{self.fragment(values[1], depth)[0]}",
                    binary_info(name)[0], False)

        if n == 1 and name in PREFIX_OPS:
            power = PREFIX_OPS[name]
            # ~a ~ b reads as (~a) ~ b: a binary operand of equal power must be protected
            strict = isinstance(values[0], Call) and not self.is_prefix_call(values[0])
            text, open_end = self.operand(values[0], depth, power, strict)
            return f"{name}{text}", power, open_end

        info = binary_info(name)
        if n == 2 and info is not None and name not in NO_INFIX:
            power, right_assoc = info
            left = self.left_operand(values[0], depth, power, right_assoc)
            right, open_end = self.operand(values[1], depth, power, not right_assoc)
            sep = '' if name in ('^', ':') else ' '
            return f"{left}{sep}{name}{sep}{right}", power, open_end

        return None

    @staticmethod
    def is_prefix_call(node: Call) -> bool:
        return (isinstance(node.head, Symbol) and node.head.name in PREFIX_OPS
                and len(node.args) == 1 and node.args[0].name is None)

    @staticmethod
    def is_member(node: ASTNode, allow_string: bool) -> bool:
        if isinstance(node, Symbol):
            return True
        return allow_string and isinstance(node, Constant) and isinstance(node.value, str)

    def render_block(self, statements: List[ASTNode], depth: int) -> str:
        if not statements:
            return "{\n" + self.indent * depth + "}"
        inner = self.indent * (depth + 1)
        lines = [inner + self.fragment(s, depth + 1)[0] for s in statements]
        return "{\n" + "\n".join(lines) + "\n" + self.indent * depth + "}"

    def render_control(self, name: str, values: List[ASTNode], depth: int):
        n = len(values)
        if name == 'if' and n in (2, 3):
            cond = self.fragment(values[0], depth)[0]
            if n == 2:
                body = self.fragment(values[1], depth)[0]
                return f"if ({cond}) {body}", OPEN_POWER, True
            # An open then-branch would claim the else
            then_text, _, then_open = self.fragment(values[1], depth)
            if then_open:
                then_text = self.protect(values[1], depth)
            other = self.fragment(values[2], depth)[0]
            return f"if ({cond}) {then_text} else {other}", OPEN_POWER, True
        if name == 'for' and n == 3 and isinstance(values[0], Symbol):
            var = format_name(values[0].name)
            seq = self.fragment(values[1], depth)[0]
            body = self.fragment(values[2], depth)[0]
            return f"for ({var} in {seq}) {body}", OPEN_POWER, True
        if name == 'while' and n == 2:
            cond = self.fragment(values[0], depth)[0]
            body = self.fragment(values[1], depth)[0]
            return f"while ({cond}) {body}", OPEN_POWER, True
        if name == 'repeat' and n == 1:
            return f"repeat {self.fragment(values[0], depth)[0]}", OPEN_POWER, True
        if name == 'function' and n == 2 and isinstance(values[0], ParamList):
            params = self.render_params(values[0], depth)
            body = self.fragment(values[1], depth)[0]
            return f"function({params}) {body}", OPEN_POWER, True
        return None


def render(node: ASTNode) -> str:
    """Render one tree as R source text."""
    return Deparser().render(node)


def render_all(nodes: Sequence[ASTNode]) -> str:
    """Render a sequence of top-level trees, one per line."""
    deparser = Deparser()
    return "\n".join(deparser.render(node) for node in nodes)
