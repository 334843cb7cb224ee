"""R Parser - Builds expression trees from tokens and renders them back."""

from .parser import Parser, parse, parse_expr
from .deparser import Deparser, render, render_all
from .ast_nodes import *

__all__ = ['Parser', 'Deparser', 'parse', 'parse_expr', 'render', 'render_all']
