""" the state threaded through the expansion of one compilation unit """

import logging
from contextlib import contextmanager

from . import interp
from .lexer import TokenReader
from .parser import Parser
from .symbols import SymbolTable

log = logging.getLogger(__name__)


class Context:
    """ everything one expansion shares

    nothing here is module state, two units expanded side by side each
    get their own readtable stack, symbol table and scope chain """

    def __init__(self, readtables, symbols=None, bindings=None, name=None):
        self.readtables = readtables
        self.symbols = SymbolTable() if symbols is None else symbols
        self.name = name
        self.quote_depth = 0
        self.environment = interp.Environment({**interp.builtins(self), **(bindings or {})})
        self.scope = self.symbols.scope(name or 'unit', environment=self.environment)

    def token_reader(self, chars, dispatch=True, nested=False, shebang=True):
        return TokenReader(chars, self, dispatch=dispatch, nested=nested, shebang=shebang)

    def parser(self, tokens, dispatch=True):
        return Parser(tokens, self, dispatch=dispatch)

    def evaluate(self, node, environment=None):
        return interp.evaluate(node, self.environment if environment is None else environment, self)

    def run(self, items):
        """ evaluate items at the top of the unit environment """
        return interp.run(items, self.environment, self)

    @contextmanager
    def scoped(self, name=None):
        """ quotes inside capture a fresh scope nested in the current one """
        previous = self.scope
        self.scope = self.symbols.scope(name, parent=previous)
        log.debug('enter %r', self.scope)
        try:
            yield self.scope
        finally:
            self.scope = previous

    @contextmanager
    def quoting(self, quoted=True):
        """ lexing a quote body, or with quoted=False an unquote inside one """
        previous = self.quote_depth
        self.quote_depth = previous + 1 if quoted else 0
        try:
            yield
        finally:
            self.quote_depth = previous

    def gensym(self, name=None):
        return self.symbols.gensym(name, self.scope)

    def expanded(self, name):
        return self.symbols.expanded(name)

    def __repr__(self):
        return f'<context {self.name or ""} {self.readtables.names!r}>'
